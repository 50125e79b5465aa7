"""Alias and override resolution: raw POM license entries to canonical identities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Set, Tuple, Union

from common.logging_utils import extra_context, is_debug_enabled
from .errors import ConfigurationError
from .models import (
    AliasKey,
    DependencyCoordinate,
    LicenseIdentity,
    RawLicense,
    _normalize_name,
    _normalize_url,
    license,
    resolve_alias_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyOverrideKey:
    """Override keyed by dependency: ``group``, ``group:artifact`` or ``group:artifact:version``."""
    text: str


@dataclass(frozen=True)
class LicenseOverrideKey:
    """Override keyed by a license: any resolved license equal to it is replaced.

    A key without a url matches on the license name alone.
    """
    identity: LicenseIdentity


OverrideKey = Union[DependencyOverrideKey, LicenseOverrideKey]
AliasValue = Union[str, LicenseIdentity]


def _dependency_key(text: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ConfigurationError("Override dependency key must be a non-empty string")
    parts = [p.strip() for p in text.strip().split(":")]
    if len(parts) > 3 or not all(parts):
        raise ConfigurationError(
            f"Invalid override dependency key '{text}', expected group[:artifact[:version]]"
        )
    return ":".join(parts)


class LicenseNormalizer:
    """Maps raw (name, url) license declarations to canonical identities.

    Tables are validated up front; every problem is a ConfigurationError raised
    from the constructor, before any descriptor is fetched.
    """

    def __init__(
        self,
        aliases: Optional[Mapping[AliasKey, Sequence[AliasValue]]] = None,
        overrides: Optional[Mapping[OverrideKey, LicenseIdentity]] = None,
    ):
        self._by_pair: Dict[Tuple[str, str], LicenseIdentity] = {}
        self._by_name: Dict[str, LicenseIdentity] = {}
        self._dependency_overrides: Dict[str, LicenseIdentity] = {}
        self._license_overrides: Dict[LicenseIdentity, LicenseIdentity] = {}
        self._license_overrides_by_name: Dict[str, LicenseIdentity] = {}
        self._build_aliases(aliases or {})
        self._build_overrides(overrides or {})

    def _register(self, index: Dict, key, canonical: LicenseIdentity, raw: str) -> None:
        existing = index.get(key)
        if existing is not None and existing != canonical:
            raise ConfigurationError(
                f"Alias '{raw}' maps to both '{existing.name}' and '{canonical.name}'"
            )
        index[key] = canonical

    def _build_aliases(self, aliases: Mapping[AliasKey, Sequence[AliasValue]]) -> None:
        implicit: Dict[str, Optional[LicenseIdentity]] = {}
        for alias_key, values in aliases.items():
            try:
                canonical = resolve_alias_key(alias_key)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid alias key {alias_key!r}: {exc}") from exc
            if isinstance(values, (str, LicenseIdentity)):
                values = [values]
            for value in values:
                if isinstance(value, LicenseIdentity):
                    self._register(self._by_pair, value.normalized, canonical, str(value))
                elif isinstance(value, str) and value.strip():
                    self._register(self._by_name, _normalize_name(value), canonical, value)
                else:
                    raise ConfigurationError(
                        f"Invalid alias {value!r} for license '{canonical.name}'"
                    )
            # The canonical name resolves to itself unless two canonicals share it
            name_key = _normalize_name(canonical.name)
            if name_key in implicit and implicit[name_key] != canonical:
                implicit[name_key] = None
            else:
                implicit.setdefault(name_key, canonical)
        for name_key, canonical in implicit.items():
            if canonical is not None:
                self._by_name.setdefault(name_key, canonical)

    def _build_overrides(self, overrides: Mapping[OverrideKey, LicenseIdentity]) -> None:
        for key, replacement in overrides.items():
            if not isinstance(replacement, LicenseIdentity):
                raise ConfigurationError(f"Override for {key!r} must be a license, got {replacement!r}")
            if isinstance(key, DependencyOverrideKey):
                self._dependency_overrides[_dependency_key(key.text)] = replacement
            elif isinstance(key, LicenseOverrideKey):
                self._license_overrides[key.identity] = replacement
                if not key.identity.url:
                    self._license_overrides_by_name[_normalize_name(key.identity.name)] = replacement
            else:
                raise ConfigurationError(f"Unsupported override key {key!r}")

    def dependency_override(self, coordinate: DependencyCoordinate) -> Optional[LicenseIdentity]:
        """Most specific dependency override for ``coordinate``, if any."""
        for key in (str(coordinate), coordinate.key, coordinate.group):
            found = self._dependency_overrides.get(key)
            if found is not None:
                return found
        return None

    def canonical(self, name: Optional[str], url: Optional[str]) -> Optional[LicenseIdentity]:
        """Canonical identity for one raw declaration, or None if it is blank."""
        name = (name or "").strip() or (url or "").strip()
        if not name:
            return None
        found = self._by_pair.get((_normalize_name(name), _normalize_url(url)))
        if found is None:
            found = self._by_name.get(_normalize_name(name))
        if found is None:
            found = license(name, url)
        replacement = self._license_overrides.get(found)
        if replacement is None:
            # a url-less override key matches the name whatever url was declared
            replacement = self._license_overrides_by_name.get(_normalize_name(found.name))
        return replacement or found

    def normalize(
        self, coordinate: DependencyCoordinate, raw_licenses: Iterable[RawLicense]
    ) -> FrozenSet[LicenseIdentity]:
        """Resolve one dependency's declarations to a deduplicated identity set."""
        override = self.dependency_override(coordinate)
        if override is not None:
            if is_debug_enabled(logger):
                logger.debug("Dependency override applied", extra=extra_context(
                    event="decision", component="normalizer", action="normalize",
                    outcome="override", coordinate=str(coordinate)
                ))
            return frozenset([override])

        resolved: Set[LicenseIdentity] = set()
        for name, url in raw_licenses:
            identity = self.canonical(name, url)
            if identity is not None:
                resolved.add(identity)
        return frozenset(resolved)

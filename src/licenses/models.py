"""Data models for license resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple, Union

_WS_RE = re.compile(r"\s+")


def _normalize_name(name: str) -> str:
    return _WS_RE.sub(" ", name.strip()).casefold()


def _normalize_url(url: Optional[str]) -> str:
    if not url:
        return ""
    return url.strip().rstrip("/").casefold()


@dataclass(frozen=True, order=True)
class DependencyCoordinate:
    """Resolved Maven dependency node (groupId:artifactId:version).

    ``internal`` marks a module of the project being reported on and does not
    take part in equality or ordering.
    """
    group: str
    artifact: str
    version: str
    internal: bool = field(default=False, compare=False)

    @classmethod
    def parse(cls, token: str, internal: bool = False) -> "DependencyCoordinate":
        """Parse ``group:artifact:version``; extra trailing parts are ignored."""
        parts = [p.strip() for p in token.strip().split(":")]
        if len(parts) < 3 or not all(parts[:3]):
            raise ValueError(f"Invalid dependency coordinate '{token}', expected group:artifact:version")
        return cls(parts[0], parts[1], parts[2], internal=internal)

    @property
    def key(self) -> str:
        """Group and artifact without the version."""
        return f"{self.group}:{self.artifact}"

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"


@dataclass(frozen=True, eq=False)
class LicenseIdentity:
    """Canonical license value (name + url).

    Two identities are equal when their normalized (name, url) pairs match:
    whitespace collapsed, case folded, trailing slash dropped from the url.
    The original spelling is kept for display.
    """
    name: str
    url: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("License name must be a non-empty string")

    @property
    def normalized(self) -> Tuple[str, str]:
        """Normalized (name, url) pair used for equality."""
        return _normalize_name(self.name), _normalize_url(self.url)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LicenseIdentity):
            return NotImplemented
        return self.normalized == other.normalized

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __lt__(self, other: "LicenseIdentity") -> bool:
        return self.normalized < other.normalized

    def __str__(self) -> str:
        return self.name if not self.url else f"{self.name} ({self.url})"

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Plain mapping used by the report writers."""
        return {"name": self.name, "url": self.url}


def license(name: str, url: Optional[str] = None) -> LicenseIdentity:  # pylint: disable=redefined-builtin
    """Shorthand for building a LicenseIdentity."""
    return LicenseIdentity(name.strip(), url.strip() if url else None)


@dataclass(frozen=True)
class RawAlias:
    """Alias-table key given as plain license text."""
    text: str


@dataclass(frozen=True)
class IdentityAlias:
    """Alias-table key given as an already built license identity."""
    identity: LicenseIdentity


AliasKey = Union[RawAlias, IdentityAlias]


def resolve_alias_key(key: AliasKey) -> LicenseIdentity:
    """Turn an alias-table key into the canonical identity it stands for."""
    if isinstance(key, IdentityAlias):
        return key.identity
    if isinstance(key, RawAlias):
        return license(key.text)
    raise TypeError(f"Unsupported alias key: {key!r}")


class ParseStatus(Enum):
    """Outcome kinds of a descriptor fetch."""
    SUCCESS = "success"
    SUCCESS_EMPTY = "success_empty"
    FAILURE = "failure"


RawLicense = Tuple[Optional[str], Optional[str]]


@dataclass(frozen=True)
class ParseOutcome:
    """Result of fetching one dependency's descriptor."""
    status: ParseStatus
    licenses: Tuple[RawLicense, ...] = ()
    reason: Optional[str] = None
    warning: Optional[str] = None

    @classmethod
    def success(cls, licenses) -> "ParseOutcome":
        licenses = tuple(licenses)
        if not licenses:
            return cls.empty()
        return cls(ParseStatus.SUCCESS, licenses)

    @classmethod
    def empty(cls, warning: Optional[str] = None) -> "ParseOutcome":
        return cls(ParseStatus.SUCCESS_EMPTY, warning=warning)

    @classmethod
    def failure(cls, reason: str) -> "ParseOutcome":
        return cls(ParseStatus.FAILURE, reason=reason)

    @property
    def failed(self) -> bool:
        return self.status is ParseStatus.FAILURE


# Engine output: dependency -> deduplicated license identities.
ResolutionResult = Dict[DependencyCoordinate, FrozenSet[LicenseIdentity]]

"""Run configuration for license resolution and reporting.

Settings come from a YAML (or JSON) file using the camelCase option names of
the report task, with CLI flags applied on top. The resulting
``LicenseReportConfig`` is immutable for the lifetime of a run.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from constants import Constants
from .aliases import DependencyOverrideKey, LicenseOverrideKey, OverrideKey
from .errors import ConfigurationError
from .models import AliasKey, IdentityAlias, LicenseIdentity, RawAlias, license

logger = logging.getLogger(__name__)

AliasTable = Dict[AliasKey, Tuple[Any, ...]]
OverrideTable = Dict[OverrideKey, LicenseIdentity]


@dataclass(frozen=True)
class LicenseReportConfig:  # pylint: disable=too-many-instance-attributes
    """Immutable settings for one resolution and reporting run."""
    include_project_dependencies: bool = False
    ignore_fatal_parse_errors: bool = False
    exclude_dependencies: Tuple[str, ...] = ()
    aliases: AliasTable = field(default_factory=dict)
    licenses: OverrideTable = field(default_factory=dict)
    dependency_configuration: str = Constants.DEFAULT_CONFIGURATION

    report_by_dependency: bool = True
    report_by_license_type: bool = True
    xml: bool = True
    html: bool = True
    json: bool = True
    xml_destination: str = os.path.join(Constants.REPORT_DESTINATION, "xml")
    html_destination: str = os.path.join(Constants.REPORT_DESTINATION, "html")
    json_destination: str = os.path.join(Constants.REPORT_DESTINATION, "json")
    report_by_dependency_file_name: str = Constants.REPORT_BY_DEPENDENCY_FILE_NAME
    report_by_license_file_name: str = Constants.REPORT_BY_LICENSE_FILE_NAME

    repositories: Tuple[str, ...] = (Constants.REPOSITORY_URL_MAVEN,)
    local_repositories: Tuple[str, ...] = ()
    max_parent_depth: int = Constants.MAX_PARENT_DEPTH
    fetch_timeout: float = Constants.FETCH_TIMEOUT_SEC
    max_workers: int = Constants.MAX_WORKERS

    def with_overrides(self, **changes: Any) -> "LicenseReportConfig":
        """Copy with the given fields replaced; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


# camelCase file key -> (field name, expected type)
_OPTIONS: Dict[str, Tuple[str, Any]] = {
    "includeProjectDependencies": ("include_project_dependencies", bool),
    "ignoreFatalParseErrors": ("ignore_fatal_parse_errors", bool),
    "dependencyConfiguration": ("dependency_configuration", str),
    "reportByDependency": ("report_by_dependency", bool),
    "reportByLicenseType": ("report_by_license_type", bool),
    "xml": ("xml", bool),
    "html": ("html", bool),
    "json": ("json", bool),
    "xmlDestination": ("xml_destination", str),
    "htmlDestination": ("html_destination", str),
    "jsonDestination": ("json_destination", str),
    "reportByDependencyFileName": ("report_by_dependency_file_name", str),
    "reportByLicenseFileName": ("report_by_license_file_name", str),
    "maxParentDepth": ("max_parent_depth", int),
    "fetchTimeout": ("fetch_timeout", (int, float)),
    "maxWorkers": ("max_workers", int),
}
_LIST_OPTIONS = {
    "excludeDependencies": "exclude_dependencies",
    "repositories": "repositories",
    "localRepositories": "local_repositories",
}


def parse_license(value: Any, where: str) -> LicenseIdentity:
    """Build a license from ``"Name"`` or ``{name: ..., url: ...}``."""
    try:
        if isinstance(value, str):
            return license(value)
        if isinstance(value, Mapping):
            name = value.get("name")
            url = value.get("url")
            if not isinstance(name, str) or (url is not None and not isinstance(url, str)):
                raise ValueError("expected string 'name' and optional string 'url'")
            return license(name, url)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid license in {where}: {exc}") from exc
    raise ConfigurationError(f"Invalid license in {where}: {value!r}")


def _alias_values(values: Any, where: str) -> Tuple[Any, ...]:
    if isinstance(values, (str, Mapping)):
        values = [values]
    if not isinstance(values, list):
        raise ConfigurationError(f"Aliases for {where} must be a list")
    result: List[Any] = []
    for val in values:
        if isinstance(val, str):
            if not val.strip():
                raise ConfigurationError(f"Empty alias for {where}")
            result.append(val)
        else:
            result.append(parse_license(val, f"aliases of {where}"))
    return tuple(result)


def parse_aliases(raw: Any) -> AliasTable:
    """Parse the ``aliases`` option.

    Either a mapping of canonical license name to aliases, or a list of
    ``{license: {name, url}, aliases: [...]}`` entries.
    """
    table: AliasTable = {}
    if raw is None:
        return table
    if isinstance(raw, Mapping):
        for key, values in raw.items():
            if not isinstance(key, str) or not key.strip():
                raise ConfigurationError(f"Invalid alias key {key!r}")
            table[RawAlias(key.strip())] = _alias_values(values, key)
        return table
    if isinstance(raw, list):
        for entry in raw:
            if not isinstance(entry, Mapping) or "license" not in entry:
                raise ConfigurationError(f"Alias entry must have a 'license' key: {entry!r}")
            canonical = parse_license(entry["license"], "aliases")
            table[IdentityAlias(canonical)] = _alias_values(entry.get("aliases", []), canonical.name)
        return table
    raise ConfigurationError("'aliases' must be a mapping or a list")


def parse_overrides(raw: Any) -> OverrideTable:
    """Parse the ``licenses`` option.

    Either a mapping of dependency key (``group[:artifact[:version]]``) to
    license, or a list of ``{dependency: ..., with: ...}`` /
    ``{license: ..., with: ...}`` entries.
    """
    table: OverrideTable = {}
    if raw is None:
        return table
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            if not isinstance(key, str) or not key.strip():
                raise ConfigurationError(f"Invalid license override key {key!r}")
            table[DependencyOverrideKey(key.strip())] = parse_license(value, f"licenses[{key}]")
        return table
    if isinstance(raw, list):
        for entry in raw:
            if not isinstance(entry, Mapping) or "with" not in entry:
                raise ConfigurationError(f"License override entry must have a 'with' key: {entry!r}")
            replacement = parse_license(entry["with"], "licenses")
            if isinstance(entry.get("dependency"), str):
                table[DependencyOverrideKey(entry["dependency"].strip())] = replacement
            elif "license" in entry:
                table[LicenseOverrideKey(parse_license(entry["license"], "licenses"))] = replacement
            else:
                raise ConfigurationError(
                    f"License override entry needs a 'dependency' or 'license' key: {entry!r}"
                )
        return table
    raise ConfigurationError("'licenses' must be a mapping or a list")


def config_from_mapping(data: Mapping[str, Any]) -> LicenseReportConfig:
    """Build a LicenseReportConfig from a parsed config document."""
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration must be a mapping")
    values: Dict[str, Any] = {}
    for key, raw in data.items():
        if key in _OPTIONS:
            name, expected = _OPTIONS[key]
            # bool is an int subclass; keep numeric options strict
            if not isinstance(raw, expected) or (expected is not bool and isinstance(raw, bool)):
                raise ConfigurationError(f"Option '{key}' has invalid value {raw!r}")
            values[name] = raw
        elif key in _LIST_OPTIONS:
            if isinstance(raw, str):
                raw = [raw]
            if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
                raise ConfigurationError(f"Option '{key}' must be a list of strings")
            values[_LIST_OPTIONS[key]] = tuple(raw)
        elif key == "aliases":
            values["aliases"] = parse_aliases(raw)
        elif key == "licenses":
            values["licenses"] = parse_overrides(raw)
        else:
            logger.warning("Unknown configuration option ignored: %s", key)

    config = LicenseReportConfig(**values)
    validate_config(config)
    return config


def validate_config(config: LicenseReportConfig) -> None:
    """Reject settings that would only fail later in the run."""
    if config.dependency_configuration not in Constants.CONFIGURATION_SCOPES:
        raise ConfigurationError(
            f"Unknown dependencyConfiguration '{config.dependency_configuration}', expected one of "
            + ", ".join(sorted(Constants.CONFIGURATION_SCOPES))
        )
    if config.max_parent_depth < 0:
        raise ConfigurationError("maxParentDepth must not be negative")
    if config.max_workers < 1:
        raise ConfigurationError("maxWorkers must be at least 1")
    if config.fetch_timeout <= 0:
        raise ConfigurationError("fetchTimeout must be positive")
    for pattern in config.exclude_dependencies:
        if not pattern.strip():
            raise ConfigurationError("excludeDependencies entries must not be empty")


def load_config(path: Optional[str]) -> LicenseReportConfig:
    """Load configuration from a YAML or JSON file; defaults when no path is given."""
    if not path:
        return LicenseReportConfig()
    if not os.path.isfile(path):
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to load config {path}: {exc}") from exc
    if data is None:
        data = {}
    logger.info("Loaded configuration from %s", path)
    return config_from_mapping(data)

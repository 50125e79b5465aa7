"""License identity, normalization and resolution."""

from .models import (
    DependencyCoordinate,
    LicenseIdentity,
    ParseOutcome,
    ParseStatus,
    license,
)
from .errors import ConfigurationError, LicenseResolutionError

__all__ = [
    "DependencyCoordinate",
    "LicenseIdentity",
    "ParseOutcome",
    "ParseStatus",
    "license",
    "ConfigurationError",
    "LicenseResolutionError",
]

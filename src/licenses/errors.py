"""Exceptions raised by license resolution."""

from __future__ import annotations

from typing import Optional


class ConfigurationError(ValueError):
    """Raised when alias/override tables or report settings are malformed."""


class LicenseResolutionError(RuntimeError):
    """Raised when a dependency descriptor cannot be read or parsed."""

    def __init__(self, coordinate, reason: str):
        self.coordinate = coordinate
        self.reason = reason
        super().__init__(f"Unable to resolve licenses for {coordinate}: {reason}")


class DescriptorFetchError(Exception):
    """Descriptor exists but could not be read or parsed."""

    def __init__(self, message: str, location: Optional[str] = None):
        self.location = location
        super().__init__(message)

"""Report views and writers for resolved dependency licenses."""

from .aggregate import UNKNOWN_LICENSE, by_dependency, by_license
from .reporter import LicenseReporter, generate_reports

__all__ = ["UNKNOWN_LICENSE", "by_dependency", "by_license", "LicenseReporter", "generate_reports"]

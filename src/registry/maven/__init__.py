"""Maven POM fetching and project scanning."""

from .pom import PomDescriptor, PomDescriptorFetcher, parse_pom, pom_path
from .scan import scan_source

__all__ = ["PomDescriptor", "PomDescriptorFetcher", "parse_pom", "pom_path", "scan_source"]

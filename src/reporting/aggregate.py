"""Report views derived from a ResolutionResult."""

from __future__ import annotations

from typing import Dict, List, Tuple

from constants import Constants
from licenses.models import DependencyCoordinate, LicenseIdentity, ResolutionResult, license

UNKNOWN_LICENSE = license(Constants.NO_LICENSE_FOUND)

DependencyView = List[Tuple[DependencyCoordinate, List[LicenseIdentity]]]
LicenseView = List[Tuple[LicenseIdentity, List[DependencyCoordinate]]]


def by_dependency(result: ResolutionResult) -> DependencyView:
    """Dependency -> licenses, sorted by coordinate then license."""
    return [(dep, sorted(result[dep])) for dep in sorted(result)]


def by_license(result: ResolutionResult) -> LicenseView:
    """License -> dependencies, the inversion of ``result``.

    Dependencies without any license are grouped under "No license found".
    """
    buckets: Dict[LicenseIdentity, set] = {}
    for dep, licenses in result.items():
        for lic in licenses or (UNKNOWN_LICENSE,):
            buckets.setdefault(lic, set()).add(dep)
    return [(lic, sorted(buckets[lic])) for lic in sorted(buckets)]

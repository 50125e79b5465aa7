"""Maven source scanner: collect dependency coordinates from project pom.xml files."""
from __future__ import annotations

import logging
import os
import re
import sys
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Set, Tuple

from constants import Constants, ExitCodes
from licenses.models import DependencyCoordinate
from .pom import _child, _namespace, _text

logger = logging.getLogger(__name__)

_PROPERTY_RE = re.compile(r"\$\{([^}]+)\}")


def _interpolate(value: Optional[str], props: Dict[str, str]) -> Optional[str]:
    """Replace ``${name}`` references; unknown references are left as-is."""
    if value is None:
        return None
    for _ in range(10):  # nested references
        replaced = _PROPERTY_RE.sub(lambda m: props.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def _properties(root: ET.Element, ns: str) -> Dict[str, str]:
    props: Dict[str, str] = {}
    props_elem = _child(root, ns, "properties")
    if props_elem is not None:
        for prop in props_elem:
            if isinstance(prop.text, str):
                props[prop.tag.rsplit("}", 1)[-1]] = prop.text.strip()
    parent = _child(root, ns, "parent")
    parent_group = _text(parent, ns, "groupId") if parent is not None else None
    parent_version = _text(parent, ns, "version") if parent is not None else None
    group = _text(root, ns, "groupId") or parent_group
    version = _text(root, ns, "version") or parent_version
    for key, val in (
        ("project.groupId", group),
        ("project.version", version),
        ("project.artifactId", _text(root, ns, "artifactId")),
        ("project.parent.groupId", parent_group),
        ("project.parent.version", parent_version),
        ("pom.version", version),
        ("version", version),
    ):
        if val:
            props.setdefault(key, val)
    return props


def _managed_versions(root: ET.Element, ns: str, props: Dict[str, str]) -> Dict[str, str]:
    managed: Dict[str, str] = {}
    mgmt = _child(root, ns, "dependencyManagement")
    deps = _child(mgmt, ns, "dependencies") if mgmt is not None else None
    if deps is None:
        return managed
    for dep in deps:
        group = _interpolate(_text(dep, ns, "groupId"), props)
        artifact = _interpolate(_text(dep, ns, "artifactId"), props)
        version = _interpolate(_text(dep, ns, "version"), props)
        if group and artifact and version:
            managed[f"{group}:{artifact}"] = version
    return managed


def _find_pom_files(dir_name: str, recursive: bool) -> List[str]:
    pom_files: List[str] = []
    if recursive:
        for root, _, files in os.walk(dir_name):
            if Constants.POM_XML_FILE in files:
                pom_files.append(os.path.join(root, Constants.POM_XML_FILE))
    else:
        path = os.path.join(dir_name, Constants.POM_XML_FILE)
        if os.path.isfile(path):
            pom_files.append(path)
    if not pom_files:
        logging.error("pom.xml not found. Unable to scan.")
        sys.exit(ExitCodes.FILE_ERROR.value)
    return sorted(pom_files)


def scan_source(  # pylint: disable=too-many-locals
    dir_name: str,
    recursive: bool = False,
    configuration: str = Constants.DEFAULT_CONFIGURATION,
) -> List[DependencyCoordinate]:
    """Scan the source directory for pom.xml files.

    Args:
        dir_name (str): Directory to scan.
        recursive (bool, optional): Whether to scan recursively. Defaults to False.
        configuration (str, optional): Dependency configuration selecting the
            Maven scopes to include (compile, runtime, test).

    Returns:
        Sorted list of dependency coordinates. Dependencies on modules of the
        scanned project are flagged ``internal``.
    """
    logging.info("Maven scanner engaged.")
    scopes = Constants.CONFIGURATION_SCOPES.get(configuration)
    if scopes is None:
        logging.error("Unknown dependency configuration: %s", configuration)
        sys.exit(ExitCodes.FILE_ERROR.value)

    modules: Set[str] = set()
    found: List[Tuple[str, str, str]] = []
    for pom_path in _find_pom_files(dir_name, recursive):
        try:
            root = ET.parse(pom_path).getroot()
        except (OSError, ET.ParseError) as e:
            logging.error("Couldn't import from given path, error: %s", e)
            sys.exit(ExitCodes.FILE_ERROR.value)
        ns = _namespace(root)
        props = _properties(root, ns)
        own_group = props.get("project.groupId")
        own_artifact = _text(root, ns, "artifactId")
        if own_group and own_artifact:
            modules.add(f"{own_group}:{own_artifact}")
        managed = _managed_versions(root, ns, props)

        deps = _child(root, ns, "dependencies")
        if deps is None:
            continue
        for dep in deps:
            group = _interpolate(_text(dep, ns, "groupId"), props)
            artifact = _interpolate(_text(dep, ns, "artifactId"), props)
            if not group or not artifact:
                continue
            scope = (_text(dep, ns, "scope") or "compile").lower()
            if scope not in scopes:
                continue
            version = _interpolate(_text(dep, ns, "version"), props) or managed.get(f"{group}:{artifact}")
            if not version or "${" in version:
                logging.warning("Skipping %s:%s in %s: version cannot be determined", group, artifact, pom_path)
                continue
            found.append((group, artifact, version))

    coordinates = {
        DependencyCoordinate(g, a, v, internal=f"{g}:{a}" in modules) for g, a, v in found
    }
    return sorted(coordinates)

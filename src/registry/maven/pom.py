"""Maven POM descriptor fetcher: locate, parse and inherit license declarations."""
from __future__ import annotations

import logging
import os
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import requests

from constants import Constants
from common.http_client import safe_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from licenses.errors import DescriptorFetchError
from licenses.models import DependencyCoordinate, ParseOutcome, RawLicense

logger = logging.getLogger(__name__)

GAV = Tuple[str, str, str]


@dataclass(frozen=True)
class PomDescriptor:
    """The parts of a POM the license resolution cares about."""
    licenses: Tuple[RawLicense, ...]
    parent: Optional[GAV]
    location: str


def pom_path(group: str, artifact: str, version: str) -> str:
    """Repository-relative path of a POM in the Maven layout."""
    group_path = group.replace(".", "/")
    return f"{group_path}/{artifact}/{version}/{artifact}-{version}.pom"


def _namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag[1:].split("}", 1)[0]
    return ""


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element, ns: str, name: str) -> Optional[ET.Element]:
    return elem.find(f"{{{ns}}}{name}" if ns else name)


def _text(elem: ET.Element, ns: str, name: str) -> Optional[str]:
    node = _child(elem, ns, name)
    if node is None or not isinstance(node.text, str):
        return None
    val = node.text.strip()
    return val or None


def parse_pom(content: bytes, location: str = "<memory>") -> PomDescriptor:
    """Parse POM content into its license declarations and parent reference.

    Only the ``<licenses>`` and ``<parent>`` elements directly under
    ``<project>`` are considered; profiles and plugin configuration are not.

    Raises:
        DescriptorFetchError: content is not well-formed XML or not a POM.
    """
    try:
        root = ET.fromstring(content)
    except (ET.ParseError, ValueError) as exc:
        raise DescriptorFetchError(f"Malformed POM at {location}: {exc}", location) from exc
    if _local_name(root.tag) != "project":
        raise DescriptorFetchError(
            f"Malformed POM at {location}: root element is <{_local_name(root.tag)}>, expected <project>",
            location,
        )
    ns = _namespace(root)

    licenses: List[RawLicense] = []
    licenses_elem = _child(root, ns, "licenses")
    if licenses_elem is not None:
        for lic_elem in licenses_elem.findall(f"{{{ns}}}license" if ns else "license"):
            name = _text(lic_elem, ns, "name")
            url = _text(lic_elem, ns, "url")
            if name is None and url is None:
                continue
            licenses.append((name or url, url))

    parent: Optional[GAV] = None
    parent_elem = _child(root, ns, "parent")
    if parent_elem is not None:
        fields = tuple(_text(parent_elem, ns, f) for f in ("groupId", "artifactId", "version"))
        if all(fields):
            parent = fields  # type: ignore[assignment]

    return PomDescriptor(tuple(licenses), parent, location)


class PomDescriptorFetcher:
    """Fetches license declarations for Maven coordinates.

    POMs are looked up in the local repositories first, then in the remote
    ones. Descriptors and outcomes are cached for the lifetime of the fetcher,
    which is one resolution run.
    """

    def __init__(
        self,
        repositories: Sequence[str] = (Constants.REPOSITORY_URL_MAVEN,),
        local_repositories: Sequence[str] = (),
        ignore_fatal_parse_errors: bool = False,
        max_parent_depth: int = Constants.MAX_PARENT_DEPTH,
    ):
        self.repositories = [r.rstrip("/") for r in repositories]
        self.local_repositories = [os.path.expanduser(p) for p in local_repositories]
        self.ignore_fatal_parse_errors = ignore_fatal_parse_errors
        self.max_parent_depth = max_parent_depth
        self._outcomes: Dict[DependencyCoordinate, ParseOutcome] = {}
        self._descriptors: Dict[GAV, Optional[PomDescriptor]] = {}
        self._lock = threading.Lock()

    def fetch(self, coordinate: DependencyCoordinate) -> ParseOutcome:
        """Return the license declarations of ``coordinate`` as a ParseOutcome."""
        with self._lock:
            cached = self._outcomes.get(coordinate)
        if cached is not None:
            return cached

        with Timer() as t:
            try:
                outcome = self._collect(coordinate)
            except DescriptorFetchError as exc:
                if self.ignore_fatal_parse_errors:
                    logger.warning(
                        "Ignoring unreadable POM for %s: %s", coordinate, exc,
                        extra=extra_context(
                            event="anomaly", component="pom_fetcher", action="fetch",
                            outcome="ignored_parse_error", coordinate=str(coordinate)
                        )
                    )
                    outcome = ParseOutcome.empty(warning=str(exc))
                else:
                    outcome = ParseOutcome.failure(str(exc))

        if is_debug_enabled(logger):
            logger.debug("POM licenses collected", extra=extra_context(
                event="function_exit", component="pom_fetcher", action="fetch",
                outcome=outcome.status.value, count=len(outcome.licenses),
                duration_ms=t.duration_ms(), coordinate=str(coordinate)
            ))
        with self._lock:
            self._outcomes[coordinate] = outcome
        return outcome

    def _collect(self, coordinate: DependencyCoordinate) -> ParseOutcome:
        gav: GAV = (coordinate.group, coordinate.artifact, coordinate.version)
        seen = {gav}
        depth = 0
        while True:
            descriptor = self._descriptor(gav)
            if descriptor is None:
                if depth == 0:
                    message = f"POM not found for {coordinate}"
                    logger.warning(message, extra=extra_context(
                        event="anomaly", component="pom_fetcher", action="locate",
                        outcome="not_found", coordinate=str(coordinate)
                    ))
                    return ParseOutcome.empty(warning=message)
                # Missing parent ends inheritance
                return ParseOutcome.empty()
            if descriptor.licenses:
                return ParseOutcome.success(descriptor.licenses)
            parent = descriptor.parent
            if parent is None or depth >= self.max_parent_depth or parent in seen:
                return ParseOutcome.empty()
            if is_debug_enabled(logger):
                logger.debug("No license declared, following parent POM", extra=extra_context(
                    event="decision", component="pom_fetcher", action="inherit",
                    target=":".join(parent), count=depth + 1, coordinate=str(coordinate)
                ))
            seen.add(parent)
            gav = parent
            depth += 1

    def _descriptor(self, gav: GAV) -> Optional[PomDescriptor]:
        with self._lock:
            if gav in self._descriptors:
                return self._descriptors[gav]
        located = self._locate(*gav)
        descriptor = parse_pom(located[0], located[1]) if located is not None else None
        with self._lock:
            self._descriptors[gav] = descriptor
        return descriptor

    def _locate(self, group: str, artifact: str, version: str) -> Optional[Tuple[bytes, str]]:
        """Return (content, location) of the POM, or None when no repository has it.

        Raises:
            DescriptorFetchError: a repository has the POM but it cannot be read.
        """
        relative = pom_path(group, artifact, version)
        for local in self.local_repositories:
            path = os.path.join(local, *relative.split("/"))
            if not os.path.isfile(path):
                continue
            try:
                with open(path, "rb") as fh:
                    return fh.read(), path
            except OSError as exc:
                raise DescriptorFetchError(f"Unable to read {path}: {exc}", path) from exc

        for base in self.repositories:
            url = f"{base}/{relative}"
            try:
                response = safe_get(url, context="maven", fatal=False)
            except requests.RequestException as exc:
                raise DescriptorFetchError(f"Unable to download {safe_url(url)}: {exc}", url) from exc
            if response.status_code == 200:
                return response.content, url
            if response.status_code == 404:
                continue
            raise DescriptorFetchError(
                f"Unable to download {safe_url(url)}: HTTP {response.status_code}", url
            )
        return None

"""License resolution engine.

Runs the descriptor fetcher over every reported dependency, normalizes the
declared licenses and memoizes the aggregate mapping so the report writers of
one run share a single, expensive resolution pass.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from common.logging_utils import extra_context, is_debug_enabled, Timer
from .aliases import LicenseNormalizer
from .config import LicenseReportConfig
from .errors import LicenseResolutionError
from .models import DependencyCoordinate, ParseOutcome, ResolutionResult

logger = logging.getLogger(__name__)

DependencySource = Union[Iterable[DependencyCoordinate], Callable[[], Iterable[DependencyCoordinate]]]


def is_excluded(coordinate: DependencyCoordinate, patterns: Sequence[str]) -> bool:
    """True when ``coordinate`` matches an exclusion pattern.

    Patterns are shell-style globs matched against ``group:artifact:version``;
    a pattern with a single colon matches every version of ``group:artifact``.
    """
    full = str(coordinate)
    for pattern in patterns:
        pattern = pattern.strip()
        if pattern.count(":") == 1:
            if fnmatch.fnmatchcase(coordinate.key, pattern):
                return True
        elif fnmatch.fnmatchcase(full, pattern):
            return True
    return False


class LicenseResolver:
    """Maps each reported dependency to its canonical license identities.

    ``resolve()`` runs the computation at most once per instance. Concurrent
    callers wait for the first computation and share its result; a fatal
    error is remembered and raised again to later callers.
    """

    def __init__(
        self,
        dependencies: DependencySource,
        config: LicenseReportConfig,
        fetcher,
        normalizer: Optional[LicenseNormalizer] = None,
    ):
        self._dependencies = dependencies
        self.config = config
        self.fetcher = fetcher
        self.normalizer = normalizer or LicenseNormalizer(config.aliases, config.licenses)
        self._gate = threading.Lock()
        self._done = False
        self._result: Optional[ResolutionResult] = None
        self._error: Optional[Exception] = None

    def resolve(self) -> ResolutionResult:
        """Return the memoized dependency -> licenses mapping."""
        with self._gate:
            if not self._done:
                try:
                    self._result = self.compute()
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    self._error = exc
                self._done = True
        if self._error is not None:
            raise self._error
        return self._result  # type: ignore[return-value]

    def select(self) -> List[DependencyCoordinate]:
        """Sorted dependencies to report on, after exclusions."""
        deps = self._dependencies() if callable(self._dependencies) else self._dependencies
        selected = set()
        for dep in deps:
            if dep.internal and not self.config.include_project_dependencies:
                continue
            if is_excluded(dep, self.config.exclude_dependencies):
                if is_debug_enabled(logger):
                    logger.debug("Dependency excluded", extra=extra_context(
                        event="decision", component="resolver", action="select",
                        outcome="excluded", coordinate=str(dep)
                    ))
                continue
            selected.add(dep)
        return sorted(selected)

    def compute(self) -> ResolutionResult:
        """Resolve licenses for every selected dependency, without memoization.

        Raises:
            LicenseResolutionError: a descriptor failed and failures are not ignored.
        """
        with Timer() as t:
            coordinates = self.select()
            logger.info("Resolving licenses", extra=extra_context(
                event="start", component="resolver", action="resolve", count=len(coordinates)
            ))
            outcomes = self._fetch_all(coordinates)

            result: ResolutionResult = {}
            for coordinate in coordinates:
                outcome = outcomes[coordinate]
                if outcome.failed:
                    outcome = self._failure(coordinate, outcome.reason or "unknown error")
                if outcome.failed:
                    logger.error("License resolution failed for %s: %s", coordinate, outcome.reason,
                                 extra=extra_context(
                                     event="anomaly", component="resolver", action="resolve",
                                     outcome="failure", coordinate=str(coordinate)
                                 ))
                    raise LicenseResolutionError(coordinate, outcome.reason or "unknown error")
                result[coordinate] = self.normalizer.normalize(coordinate, outcome.licenses)

        logger.info("License resolution completed", extra=extra_context(
            event="complete", component="resolver", action="resolve",
            outcome="success", count=len(result), duration_ms=t.duration_ms()
        ))
        return result

    def _failure(self, coordinate: DependencyCoordinate, reason: str) -> ParseOutcome:
        if self.config.ignore_fatal_parse_errors:
            logger.warning("Ignoring descriptor error for %s: %s", coordinate, reason)
            return ParseOutcome.empty(warning=reason)
        return ParseOutcome.failure(reason)

    def _fetch_one(self, coordinate: DependencyCoordinate) -> ParseOutcome:
        try:
            return self.fetcher.fetch(coordinate)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # Surfaced as a failure so the run names the offending coordinate
            return self._failure(coordinate, f"{type(exc).__name__}: {exc}")

    def _fetch_all(self, coordinates: List[DependencyCoordinate]) -> Dict[DependencyCoordinate, ParseOutcome]:
        """Fetch descriptors in parallel, bounded by ``config.fetch_timeout``.

        Fetches still running at the deadline are reported as failures and
        queued ones are cancelled. A worker already inside a request cannot be
        interrupted; it finishes on its own once the HTTP timeout and retries
        of its current descriptor chain run out, and interpreter exit waits
        for it.
        """
        if not coordinates:
            return {}
        outcomes: Dict[DependencyCoordinate, ParseOutcome] = {}
        workers = max(1, min(self.config.max_workers, len(coordinates)))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="license-fetch")
        try:
            futures = {executor.submit(self._fetch_one, c): c for c in coordinates}
            done, not_done = wait(futures, timeout=self.config.fetch_timeout)
            for future in done:
                outcomes[futures[future]] = future.result()
            for future in not_done:
                future.cancel()
                coordinate = futures[future]
                outcomes[coordinate] = self._failure(
                    coordinate,
                    f"descriptor fetch did not finish within {self.config.fetch_timeout} seconds",
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

"""Tests for the memoized license resolution engine."""
import random
import threading
import time

import pytest

from licenses.aliases import DependencyOverrideKey
from licenses.config import LicenseReportConfig
from licenses.engine import LicenseResolver, is_excluded
from licenses.errors import LicenseResolutionError
from licenses.models import DependencyCoordinate, ParseOutcome, RawAlias, license
from reporting.aggregate import by_license

A = DependencyCoordinate("org.a", "a", "1.0")
B = DependencyCoordinate("org.b", "b", "2.0")
C = DependencyCoordinate("org.c", "c", "3.0")
BAD = DependencyCoordinate("org.bad", "bad", "0.1")
INTERNAL = DependencyCoordinate("com.example", "core", "1.0.0", internal=True)

APACHE_ALIASES = {RawAlias("Apache License 2.0"): ("Apache 2.0", "Apache-2.0")}


class FakeFetcher:
    """Serves canned outcomes and counts fetch calls."""

    def __init__(self, outcomes, delay=0.0):
        self.outcomes = outcomes
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, coordinate):
        with self._lock:
            self.calls.append(coordinate)
        if self.delay:
            time.sleep(self.delay)
        return self.outcomes.get(coordinate, ParseOutcome.empty())


def _outcomes():
    return {
        A: ParseOutcome.success([("Apache 2.0", None)]),
        B: ParseOutcome.success([("Apache-2.0", None)]),
        C: ParseOutcome.success([("MIT", None), ("EPL-2.0", None)]),
        BAD: ParseOutcome.failure("Malformed POM"),
        INTERNAL: ParseOutcome.success([("Proprietary", None)]),
    }


def test_resolve_is_memoized():
    fetcher = FakeFetcher(_outcomes())
    resolver = LicenseResolver([A, B, C], LicenseReportConfig(aliases=APACHE_ALIASES), fetcher)

    first = resolver.resolve()
    second = resolver.resolve()

    assert first is second
    assert sorted(fetcher.calls) == [A, B, C]


def test_concurrent_resolve_runs_once():
    fetcher = FakeFetcher(_outcomes(), delay=0.05)
    resolver = LicenseResolver([A, B, C], LicenseReportConfig(), fetcher)
    results = []

    threads = [threading.Thread(target=lambda: results.append(resolver.resolve())) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 5
    assert all(r is results[0] for r in results)
    assert len(fetcher.calls) == 3


def test_alias_collapse_example_by_license():
    resolver = LicenseResolver([A, B], LicenseReportConfig(aliases=APACHE_ALIASES), FakeFetcher(_outcomes()))

    view = by_license(resolver.resolve())

    assert view == [(license("Apache License 2.0"), [A, B])]


def test_multi_license_preserved():
    resolver = LicenseResolver([C], LicenseReportConfig(), FakeFetcher(_outcomes()))

    assert resolver.resolve()[C] == frozenset([license("MIT"), license("EPL-2.0")])


def test_result_independent_of_input_order():
    deps = [A, B, C]
    expected = LicenseResolver(deps, LicenseReportConfig(), FakeFetcher(_outcomes())).resolve()
    for seed in range(5):
        shuffled = deps[:]
        random.Random(seed).shuffle(shuffled)
        result = LicenseResolver(shuffled, LicenseReportConfig(max_workers=3), FakeFetcher(_outcomes())).resolve()
        assert result == expected
        assert list(result) == sorted(result)


def test_excluded_dependencies_are_absent():
    config = LicenseReportConfig(exclude_dependencies=("org.b:b:2.0", "org.c:*"))
    fetcher = FakeFetcher(_outcomes())
    result = LicenseResolver([A, B, C], config, fetcher).resolve()

    assert set(result) == {A}
    assert fetcher.calls == [A]


def test_override_precedence():
    config = LicenseReportConfig(licenses={DependencyOverrideKey("org.c:c:3.0"): license("Apache License 2.0")})
    result = LicenseResolver([C], config, FakeFetcher(_outcomes())).resolve()

    assert result[C] == frozenset([license("Apache License 2.0")])


def test_project_dependencies_dropped_unless_included():
    fetcher = FakeFetcher(_outcomes())
    assert INTERNAL not in LicenseResolver([A, INTERNAL], LicenseReportConfig(), fetcher).resolve()
    assert INTERNAL not in fetcher.calls

    config = LicenseReportConfig(include_project_dependencies=True)
    result = LicenseResolver([A, INTERNAL], config, FakeFetcher(_outcomes())).resolve()
    assert result[INTERNAL] == frozenset([license("Proprietary")])


def test_failure_aborts_with_offending_coordinate():
    fetcher = FakeFetcher(_outcomes())
    resolver = LicenseResolver([A, BAD, B], LicenseReportConfig(), fetcher)

    with pytest.raises(LicenseResolutionError) as exc_info:
        resolver.resolve()
    assert exc_info.value.coordinate == BAD
    assert "org.bad:bad:0.1" in str(exc_info.value)

    # the failure is memoized as well
    calls = len(fetcher.calls)
    with pytest.raises(LicenseResolutionError):
        resolver.resolve()
    assert len(fetcher.calls) == calls


def test_empty_license_set_kept_for_undeclared_dependency():
    missing = DependencyCoordinate("org.none", "none", "1")
    result = LicenseResolver([missing], LicenseReportConfig(), FakeFetcher({})).resolve()

    assert result == {missing: frozenset()}


class RaisingFetcher:
    def fetch(self, coordinate):
        raise RuntimeError(f"exploded on {coordinate}")


def test_unexpected_fetch_exception_is_failure():
    with pytest.raises(LicenseResolutionError) as exc_info:
        LicenseResolver([A], LicenseReportConfig(), RaisingFetcher()).resolve()
    assert "exploded" in exc_info.value.reason


def test_unexpected_fetch_exception_ignored_when_configured():
    config = LicenseReportConfig(ignore_fatal_parse_errors=True)
    assert LicenseResolver([A], config, RaisingFetcher()).resolve() == {A: frozenset()}


def test_fetch_timeout_is_failure():
    config = LicenseReportConfig(fetch_timeout=0.05)
    resolver = LicenseResolver([A], config, FakeFetcher(_outcomes(), delay=0.5))

    with pytest.raises(LicenseResolutionError) as exc_info:
        resolver.resolve()
    assert "did not finish" in exc_info.value.reason


def test_dependencies_supplier_called_lazily():
    calls = []

    def supplier():
        calls.append(1)
        return [A]

    resolver = LicenseResolver(supplier, LicenseReportConfig(), FakeFetcher(_outcomes()))
    assert calls == []
    resolver.resolve()
    resolver.resolve()
    assert calls == [1]


@pytest.mark.parametrize("pattern,expected", [
    ("org.a:a:1.0", True),
    ("org.a:a", True),
    ("org.a:*", True),
    ("org.a:a:2.*", False),
    ("org.*:*:*", True),
    ("org.b:b", False),
])
def test_is_excluded_patterns(pattern, expected):
    assert is_excluded(A, [pattern]) is expected


def test_returned_failure_ignored_when_configured():
    config = LicenseReportConfig(ignore_fatal_parse_errors=True)
    fetcher = FakeFetcher(_outcomes())

    result = LicenseResolver([A, BAD], config, fetcher).resolve()

    assert result[BAD] == frozenset()
    assert result[A] == frozenset([license("Apache 2.0")])


class BlockingFetcher:
    """Blocks every fetch until released."""

    def __init__(self):
        self.release = threading.Event()

    def fetch(self, coordinate):
        self.release.wait(5)
        return ParseOutcome.success([("MIT", None)])


def test_fetch_timeout_ignored_when_configured():
    fetcher = BlockingFetcher()
    config = LicenseReportConfig(fetch_timeout=0.05, ignore_fatal_parse_errors=True)
    try:
        result = LicenseResolver([A, B], config, fetcher).resolve()
    finally:
        fetcher.release.set()

    assert result == {A: frozenset(), B: frozenset()}


def test_unexpected_error_is_memoized():
    calls = []

    def supplier():
        calls.append(1)
        raise OSError("dependency list unreadable")

    resolver = LicenseResolver(supplier, LicenseReportConfig(), FakeFetcher(_outcomes()))

    with pytest.raises(OSError):
        resolver.resolve()
    with pytest.raises(OSError, match="unreadable"):
        resolver.resolve()
    assert calls == [1]

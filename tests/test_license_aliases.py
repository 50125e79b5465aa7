"""Tests for alias and override resolution."""
import pytest

from licenses.aliases import DependencyOverrideKey, LicenseNormalizer, LicenseOverrideKey
from licenses.errors import ConfigurationError
from licenses.models import DependencyCoordinate, IdentityAlias, RawAlias, license

APACHE = license("Apache License 2.0")
MIT = license("MIT License", "https://opensource.org/licenses/MIT")
DEP = DependencyCoordinate("com.example", "lib", "1.0")


def test_aliases_collapse_to_one_identity():
    normalizer = LicenseNormalizer(aliases={RawAlias("Apache License 2.0"): ["Apache 2.0", "Apache-2.0"]})

    result = normalizer.normalize(DEP, [("Apache 2.0", None), ("Apache-2.0", "http://x")])

    assert result == frozenset([APACHE])


def test_distinct_canonical_licenses_are_kept():
    normalizer = LicenseNormalizer(aliases={
        RawAlias("Apache License 2.0"): ["Apache 2.0"],
        IdentityAlias(MIT): ["MIT", "The MIT License"],
    })

    result = normalizer.normalize(DEP, [("Apache 2.0", None), ("The MIT License", None)])

    assert result == frozenset([APACHE, MIT])


def test_unaliased_license_is_taken_verbatim():
    normalizer = LicenseNormalizer()

    result = normalizer.normalize(DEP, [("EPL 2.0", "https://www.eclipse.org/legal/epl-2.0/")])

    assert result == frozenset([license("EPL 2.0", "https://www.eclipse.org/legal/epl-2.0")])


def test_name_and_url_alias_takes_precedence_over_name_alias():
    bsd2 = license("BSD 2-Clause")
    bsd3 = license("BSD 3-Clause")
    normalizer = LicenseNormalizer(aliases={
        RawAlias("BSD 3-Clause"): ["BSD"],
        RawAlias("BSD 2-Clause"): [license("BSD", "https://opensource.org/licenses/BSD-2-Clause")],
    })

    assert normalizer.canonical("BSD", "https://opensource.org/licenses/BSD-2-Clause") == bsd2
    assert normalizer.canonical("BSD", None) == bsd3


def test_canonical_name_resolves_to_identity_with_url():
    normalizer = LicenseNormalizer(aliases={IdentityAlias(MIT): ["MIT"]})

    assert normalizer.canonical("MIT License", None) == MIT


def test_dependency_override_replaces_declarations():
    normalizer = LicenseNormalizer(
        aliases={RawAlias("Apache License 2.0"): ["Apache 2.0"]},
        overrides={DependencyOverrideKey("com.example:lib:1.0"): MIT},
    )

    assert normalizer.normalize(DEP, [("Apache 2.0", None)]) == frozenset([MIT])


def test_dependency_override_most_specific_key_wins():
    gpl = license("GPL")
    normalizer = LicenseNormalizer(overrides={
        DependencyOverrideKey("com.example"): gpl,
        DependencyOverrideKey("com.example:lib"): MIT,
    })

    assert normalizer.normalize(DEP, []) == frozenset([MIT])
    other = DependencyCoordinate("com.example", "other", "2.0")
    assert normalizer.normalize(other, [("Apache 2.0", None)]) == frozenset([gpl])


def test_license_override_replaces_matching_license():
    normalizer = LicenseNormalizer(
        aliases={RawAlias("Apache License 2.0"): ["Apache 2.0"]},
        overrides={LicenseOverrideKey(APACHE): license("Apache-2.0", "https://www.apache.org/licenses/LICENSE-2.0")},
    )

    result = normalizer.normalize(DEP, [("Apache 2.0", None), ("MIT", None)])

    assert result == frozenset([license("Apache-2.0", "https://www.apache.org/licenses/LICENSE-2.0"), license("MIT")])


def test_license_override_without_url_matches_any_declared_url():
    replacement = license("GPL-2.0-only")
    normalizer = LicenseNormalizer(overrides={LicenseOverrideKey(license("GPL")): replacement})

    result = normalizer.normalize(DEP, [("GPL", "https://www.gnu.org/licenses/gpl-2.0.html")])

    assert result == frozenset([replacement])


def test_blank_entries_are_skipped_and_url_only_entries_use_url():
    normalizer = LicenseNormalizer()

    result = normalizer.normalize(DEP, [(None, None), ("", "https://example.com/license")])

    assert result == frozenset([license("https://example.com/license", "https://example.com/license")])


@pytest.mark.parametrize("key", ["", "  ", "a:b:c:d", "a::c"])
def test_malformed_dependency_override_key_is_configuration_error(key):
    with pytest.raises(ConfigurationError):
        LicenseNormalizer(overrides={DependencyOverrideKey(key): MIT})


def test_override_value_must_be_license():
    with pytest.raises(ConfigurationError):
        LicenseNormalizer(overrides={DependencyOverrideKey("a:b"): "MIT"})  # type: ignore[dict-item]


def test_ambiguous_alias_is_configuration_error():
    with pytest.raises(ConfigurationError):
        LicenseNormalizer(aliases={
            RawAlias("Apache License 2.0"): ["Apache"],
            RawAlias("Apache License 1.1"): ["Apache"],
        })


def test_empty_alias_is_configuration_error():
    with pytest.raises(ConfigurationError):
        LicenseNormalizer(aliases={RawAlias("MIT"): ["  "]})


def test_invalid_alias_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        LicenseNormalizer(aliases={RawAlias(""): ["MIT"]})

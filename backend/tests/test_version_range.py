import pytest

from services.errors import InvalidRangeError
from services.version_range import (
    VersionRange,
    canonical_range,
    is_pinned,
    resolve_version_range,
    version_sort_key,
)


@pytest.mark.parametrize("version", ["1.2.3", "0.0.1", "10.20.30", "2.0.0"])
def test_exact_version_is_inclusive_on_both_ends(version):
    assert resolve_version_range(version) == VersionRange(version, version, True, True)


@pytest.mark.parametrize("expression", ["v1.2.3", "=1.2.3", "= 1.2.3"])
def test_exact_version_prefixes(expression):
    assert resolve_version_range(expression) == VersionRange("1.2.3", "1.2.3", True, True)


@pytest.mark.parametrize("low,high", [("1.0.0", "2.0.0"), ("1.2.3", "1.2.3"), ("0.1.0", "0.9.9")])
def test_closed_range(low, high):
    assert resolve_version_range(f">={low} <={high}") == VersionRange(low, high, True, True)


def test_whitespace_after_operator():
    assert resolve_version_range(">= 1.0.0 <= 2.0.0") == VersionRange("1.0.0", "2.0.0", True, True)


@pytest.mark.parametrize("expression", ["", "   ", "abc", "latest", "*", "x"])
def test_invalid_or_boundless_expressions(expression):
    with pytest.raises(InvalidRangeError):
        resolve_version_range(expression)


def test_prerelease_zero_marker_is_ignored():
    assert resolve_version_range(">=1.0.0-0 <=2.0.0") == resolve_version_range(">=1.0.0 <=2.0.0")


def test_canonical_range_strips_prerelease_zero():
    assert canonical_range("^1.2.3") == ">=1.2.3 <2.0.0"


def test_caret():
    assert resolve_version_range("^1.2.3") == VersionRange("1.2.3", "2.0.0", True, False)


def test_caret_below_one():
    assert resolve_version_range("^0.2.3") == VersionRange("0.2.3", "0.3.0", True, False)
    assert resolve_version_range("^0.0.3") == VersionRange("0.0.3", "0.0.4", True, False)


def test_tilde():
    assert resolve_version_range("~1.2.3") == VersionRange("1.2.3", "1.3.0", True, False)
    assert resolve_version_range("~1") == VersionRange("1.0.0", "2.0.0", True, False)


def test_hyphen_range():
    assert resolve_version_range("1.2.3 - 2.3.4") == VersionRange("1.2.3", "2.3.4", True, True)


def test_hyphen_range_with_partial_upper():
    assert resolve_version_range("1.2.3 - 2.3") == VersionRange("1.2.3", "2.4.0", True, False)


@pytest.mark.parametrize("expression", ["1.x", "1.*", "1"])
def test_x_range(expression):
    assert resolve_version_range(expression) == VersionRange("1.0.0", "2.0.0", True, False)


def test_exclusive_lower_bound_is_reported_exclusive():
    assert resolve_version_range(">1.0.0 <2.0.0") == VersionRange("1.0.0", "2.0.0", False, False)


def test_lone_greater_than_has_no_maximum():
    with pytest.raises(InvalidRangeError):
        resolve_version_range(">1.2.3")


def test_disjunction_spans_both_sets():
    assert resolve_version_range("1.2.3 || 2.0.0") == VersionRange("1.2.3", "2.0.0", True, True)


def test_upper_bound_written_first():
    assert resolve_version_range("<=2.0.0 >=1.0.0") == VersionRange("1.0.0", "2.0.0", True, True)


@pytest.mark.parametrize("expression,expected", [
    ("1.5.0 || 1.0.0", VersionRange("1.0.0", "1.5.0", True, True)),
    (">=1.0.0 <2.0.0 || 0.5.0", VersionRange("0.5.0", "2.0.0", True, False)),
    ("0.5.0 || >=1.0.0 <2.0.0", VersionRange("0.5.0", "2.0.0", True, False)),
    ("<1.5.0 >=1.0.0 || 1.5.0", VersionRange("1.0.0", "1.5.0", True, True)),
])
def test_disjunction_maximum_is_the_greatest_bound(expression, expected):
    assert resolve_version_range(expression) == expected


def test_minimum_above_maximum_is_rejected():
    with pytest.raises(InvalidRangeError):
        resolve_version_range(">=3.0.0 <=2.0.0")


def test_invalid_range_error_is_a_client_fault():
    with pytest.raises(InvalidRangeError) as excinfo:
        resolve_version_range("")
    assert excinfo.value.client_fault
    assert excinfo.value.status_code == 400


def test_version_sort_key_orders_numerically():
    assert version_sort_key("1.2.3") == "000001.000002.000003"
    assert version_sort_key("10.0.0") > version_sort_key("9.99.99")
    assert version_sort_key("1.2") == "000001.000002.000000"
    assert version_sort_key("not-a-version") is None


def test_version_sort_key_rejects_components_wider_than_the_padding():
    assert version_sort_key("999999.0.0") == "999999.000000.000000"
    assert version_sort_key("1000000.0.0") is None
    assert version_sort_key("1.2.99999999") is None


@pytest.mark.parametrize("expression", ["99999999.0.0", ">=1.0.0 <=1.0.10000000", "^999999.0.0"])
def test_oversized_version_components_are_rejected(expression):
    with pytest.raises(InvalidRangeError):
        resolve_version_range(expression)


@pytest.mark.parametrize("spec", ["1.2.3", "~1.2.3", "1.2.x", "^0.2.3"])
def test_pinned_specs(spec):
    assert is_pinned(spec)


@pytest.mark.parametrize("spec", ["^1.2.3", ">=1.0.0", "*", "latest", "git+https://github.com/acme/widget.git"])
def test_unpinned_specs(spec):
    assert not is_pinned(spec)

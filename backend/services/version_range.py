"""
Semantic-version range resolution.

Turns npm-style range expressions (``^1.2.3``, ``>=1.0.0 <2.0.0``,
``1.x || 2.3.4``) into a single min/max window that the metadata
repository can turn into a range predicate.

Supported expressions:
- exact versions, optionally prefixed with ``v`` or ``=``
- primitive comparators ``>=``, ``<=``, ``>``, ``<``, ``=``
- x-ranges and partial versions (``1``, ``1.2``, ``1.x``, ``1.2.*``, ``*``)
- hyphen ranges (``1.2.3 - 2.3.4``)
- tilde ranges ~x.y.z → >=x.y.z <x.y+1.0
- caret ranges ^x.y.z → >=x.y.z <x+1.0.0 (leftmost non-zero component)
- whitespace conjunction and ``||`` disjunction
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from packaging.version import InvalidVersion, Version

from services.errors import InvalidRangeError


@dataclass(frozen=True)
class VersionRange:
    """Normalized bounds of a version-range expression."""

    min: str
    max: str
    min_inclusive: bool
    max_inclusive: bool


@dataclass(frozen=True)
class Comparator:
    """A primitive comparator; an empty operator with an empty version matches anything."""

    operator: str
    version: str

    def __str__(self) -> str:
        if self.operator == "=":
            return self.version
        return f"{self.operator}{self.version}"


# Partial version: each component may be a number, an x-wildcard, or missing
_PARTIAL_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)
_OPERATOR_RE = re.compile(r"^(?P<op>~>|<=|>=|<|>|=|~|\^)?(?P<version>.*)$")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OPERATOR_SPACE_RE = re.compile(r"(~>|<=|>=|<|>|=|~|\^)\s+")
_CORE_VERSION_RE = re.compile(r"\d+\.\d+\.\d+")
_PRERELEASE_ZERO_RE = re.compile(r"-0(?=\s|$)")
_LEADING_CORE_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")

_ANY = Comparator("", "")

# Widest component version_sort_key can pad to six digits
MAX_VERSION_COMPONENT = 999_999

Partial = Tuple[Optional[int], Optional[int], Optional[int], Optional[str]]


def _parse_partial(text: str, expression: str) -> Partial:
    match = _PARTIAL_RE.match(text)
    if not match:
        raise InvalidRangeError(expression, f"'{text}' is not a version")

    def component(name: str) -> Optional[int]:
        value = match.group(name)
        if value is None or value in ("x", "X", "*"):
            return None
        return int(value)

    major, minor, patch = component("major"), component("minor"), component("patch")
    # Anything after a wildcard is a wildcard too (1.x.3 == 1.x)
    if major is None:
        minor = patch = None
    elif minor is None:
        patch = None
    return major, minor, patch, match.group("pre")


def _fmt(major: int, minor: int, patch: int, pre: Optional[str] = None) -> str:
    version = f"{major}.{minor}.{patch}"
    return f"{version}-{pre}" if pre else version


def _upper(major: int, minor: int, patch: int) -> Comparator:
    """Exclusive upper bound that also excludes the bound's own pre-releases."""
    return Comparator("<", f"{_fmt(major, minor, patch)}-0")


def _desugar_plain(partial: Partial) -> List[Comparator]:
    major, minor, patch, pre = partial
    if major is None:
        return [_ANY]
    if minor is None:
        return [Comparator(">=", _fmt(major, 0, 0)), _upper(major + 1, 0, 0)]
    if patch is None:
        return [Comparator(">=", _fmt(major, minor, 0)), _upper(major, minor + 1, 0)]
    return [Comparator("=", _fmt(major, minor, patch, pre))]


def _desugar_tilde(partial: Partial) -> List[Comparator]:
    major, minor, patch, pre = partial
    if major is None:
        return [_ANY]
    if minor is None:
        return [Comparator(">=", _fmt(major, 0, 0)), _upper(major + 1, 0, 0)]
    return [
        Comparator(">=", _fmt(major, minor, patch or 0, pre)),
        _upper(major, minor + 1, 0),
    ]


def _desugar_caret(partial: Partial) -> List[Comparator]:
    major, minor, patch, pre = partial
    if major is None:
        return [_ANY]
    if minor is None:
        return [Comparator(">=", _fmt(major, 0, 0)), _upper(major + 1, 0, 0)]
    lower = Comparator(">=", _fmt(major, minor, patch or 0, pre))
    if major > 0:
        return [lower, _upper(major + 1, 0, 0)]
    if minor > 0 or patch is None:
        return [lower, _upper(0, minor + 1, 0)]
    return [lower, _upper(0, 0, patch + 1)]


def _desugar_comparator(op: str, partial: Partial, expression: str) -> List[Comparator]:
    major, minor, patch, pre = partial
    if op == ">":
        if major is None:
            raise InvalidRangeError(expression, "'>*' matches no version")
        if minor is None:
            return [Comparator(">=", _fmt(major + 1, 0, 0))]
        if patch is None:
            return [Comparator(">=", _fmt(major, minor + 1, 0))]
        return [Comparator(">", _fmt(major, minor, patch, pre))]
    if op == ">=":
        if major is None:
            return [_ANY]
        return [Comparator(">=", _fmt(major, minor or 0, patch or 0, pre))]
    if op == "<":
        if major is None:
            raise InvalidRangeError(expression, "'<*' matches no version")
        if minor is None:
            return [_upper(major, 0, 0)]
        if patch is None:
            return [_upper(major, minor, 0)]
        return [Comparator("<", _fmt(major, minor, patch, pre))]
    # "<="
    if major is None:
        return [_ANY]
    if minor is None:
        return [_upper(major + 1, 0, 0)]
    if patch is None:
        return [_upper(major, minor + 1, 0)]
    return [Comparator("<=", _fmt(major, minor, patch, pre))]


def _desugar_hyphen(low: Partial, high: Partial) -> List[Comparator]:
    comparators: List[Comparator] = []
    if low[0] is not None:
        comparators.append(Comparator(">=", _fmt(low[0], low[1] or 0, low[2] or 0, low[3])))
    major, minor, patch, pre = high
    if major is not None:
        if minor is None:
            comparators.append(_upper(major + 1, 0, 0))
        elif patch is None:
            comparators.append(_upper(major, minor + 1, 0))
        else:
            comparators.append(Comparator("<=", _fmt(major, minor, patch, pre)))
    return comparators or [_ANY]


def _desugar_set(text: str, expression: str) -> List[Comparator]:
    text = _OPERATOR_SPACE_RE.sub(r"\1", text.strip())

    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        return _desugar_hyphen(
            _parse_partial(hyphen.group("low"), expression),
            _parse_partial(hyphen.group("high"), expression),
        )

    comparators: List[Comparator] = []
    for token in text.split():
        match = _OPERATOR_RE.match(token)
        op = match.group("op") or ""
        version = match.group("version")
        if not version or version in ("*", "x", "X"):
            if op in (">", "<"):
                raise InvalidRangeError(expression, f"'{token}' matches no version")
            comparators.append(_ANY)
            continue

        partial = _parse_partial(version, expression)
        if op in ("", "="):
            comparators.extend(_desugar_plain(partial))
        elif op in ("~", "~>"):
            comparators.extend(_desugar_tilde(partial))
        elif op == "^":
            comparators.extend(_desugar_caret(partial))
        else:
            comparators.extend(_desugar_comparator(op, partial, expression))

    # "*" alongside real comparators adds nothing
    concrete = [c for c in comparators if c.version]
    return concrete or [_ANY]


def to_comparators(expression: str) -> List[List[Comparator]]:
    """
    Desugar a range expression into primitive comparator sets.

    Args:
        expression: Version-range expression

    Returns:
        One list of comparators per ``||`` alternative
    """
    if expression is None or not expression.strip():
        raise InvalidRangeError(expression or "", "empty range")
    return [_desugar_set(part, expression) for part in expression.split("||")]


def canonical_range(expression: str) -> str:
    """
    Canonical comparator string: each set's tokens joined by spaces,
    sets joined by ``||``, with ``-0`` pre-release markers stripped.
    """
    sets = to_comparators(expression)
    canonical = " || ".join(" ".join(str(c) for c in comparators) for comparators in sets)
    return _PRERELEASE_ZERO_RE.sub("", canonical)


def _parse_canonical(canonical: str) -> List[List[Comparator]]:
    sets: List[List[Comparator]] = []
    for part in canonical.split("||"):
        comparators = []
        for token in part.split():
            match = _OPERATOR_RE.match(token)
            comparators.append(Comparator(match.group("op") or "=", match.group("version")))
        sets.append(comparators or [_ANY])
    return sets


def _as_version(text: str) -> Version:
    try:
        return Version(text)
    except InvalidVersion:
        # Pre-release tags PEP 440 cannot express order by their core version
        core = _CORE_VERSION_RE.match(text)
        return Version(core.group(0) if core else "0.0.0")


def _bump_patch(text: str) -> str:
    version = _as_version(text)
    return _fmt(version.major, version.minor, version.micro + 1)


def _satisfies(candidate: str, comparator: Comparator) -> bool:
    if not comparator.version:
        return True
    value, bound = _as_version(candidate), _as_version(comparator.version)
    return {
        ">=": value >= bound,
        ">": value > bound,
        "<=": value <= bound,
        "<": value < bound,
        "=": value == bound,
    }[comparator.operator]


def _set_minimum(comparators: List[Comparator]) -> Optional[Tuple[str, Optional[Comparator]]]:
    """Smallest version admitted by one comparator set, with the comparator that set it."""
    minimum: Optional[str] = None
    source: Optional[Comparator] = None
    for comparator in comparators:
        if comparator.operator in (">=", "="):
            candidate = comparator.version
        elif comparator.operator == ">":
            candidate = _bump_patch(comparator.version)
        else:
            continue
        if minimum is None or _as_version(candidate) > _as_version(minimum):
            minimum, source = candidate, comparator

    if minimum is None:
        minimum = "0.0.0"
    if all(_satisfies(minimum, comparator) for comparator in comparators):
        return minimum, source
    return None


def _min_bound(expression: str, sets: List[List[Comparator]]) -> Tuple[str, Optional[Comparator]]:
    best: Optional[Tuple[str, Optional[Comparator]]] = None
    for comparators in sets:
        found = _set_minimum(comparators)
        if found is None:
            continue
        if best is None or _as_version(found[0]) < _as_version(best[0]):
            best = found
    if best is None:
        raise InvalidRangeError(expression, "no version satisfies the range")
    return best


def _core(comparator: Comparator) -> str:
    return _CORE_VERSION_RE.search(comparator.version).group(0)


def _set_maximum(comparators: List[Comparator]) -> Optional[Tuple[str, Comparator]]:
    bounded = [c for c in comparators if c.version]
    upper = [c for c in bounded if c.operator in ("<", "<=", "=")]
    if upper:
        # Tightest upper bound of the conjunction, exclusive on a tie
        source = min(upper, key=lambda c: (_as_version(_core(c)), c.operator != "<"))
    elif bounded:
        source = max(bounded, key=lambda c: _as_version(_core(c)))
    else:
        return None
    return _core(source), source


def _max_bound(expression: str, sets: List[List[Comparator]]) -> Tuple[str, Comparator]:
    best: Optional[Tuple[str, Comparator]] = None
    for comparators in sets:
        found = _set_maximum(comparators)
        if found is None:
            continue
        if best is None or (_as_version(found[0]), found[1].operator != "<") > (
            _as_version(best[0]), best[1].operator != "<"
        ):
            best = found
    if best is None:
        raise InvalidRangeError(expression, "no versions found in range")
    return best


def resolve_version_range(expression: str) -> VersionRange:
    """
    Resolve a version-range expression into min/max bounds.

    Args:
        expression: npm-style range, e.g. ``^1.2.3`` or ``>=1.0.0 <=2.0.0``

    Returns:
        VersionRange with inclusive/exclusive flags for each bound

    Raises:
        InvalidRangeError: empty or malformed input, or no concrete bounds
    """
    canonical = canonical_range(expression)
    sets = _parse_canonical(canonical)

    minimum, min_source = _min_bound(expression, sets)
    maximum, max_source = _max_bound(expression, sets)

    # A lone comparator is treated as an exact match
    if not re.search(r"\s", canonical):
        result = VersionRange(minimum, maximum, True, True)
    else:
        min_inclusive = True
        if min_source is not None and min_source.operator == ">":
            minimum, min_inclusive = min_source.version, False
        result = VersionRange(
            min=minimum,
            max=maximum,
            min_inclusive=min_inclusive,
            max_inclusive=max_source.operator != "<",
        )

    if _as_version(result.min) > _as_version(result.max):
        raise InvalidRangeError(expression, f"minimum {result.min} is above maximum {result.max}")
    if version_sort_key(result.min) is None or version_sort_key(result.max) is None:
        raise InvalidRangeError(
            expression, f"version components above {MAX_VERSION_COMPONENT} are not supported"
        )
    return result


def version_sort_key(version: str) -> Optional[str]:
    """
    Zero-padded ``major.minor.patch`` key that orders lexicographically
    the way versions order numerically. None for non-semver strings and
    for components wider than the padding.
    """
    match = _LEADING_CORE_RE.match(version.strip()) if version else None
    if not match:
        return None
    major, minor, patch = (int(part or 0) for part in match.groups())
    if max(major, minor, patch) > MAX_VERSION_COMPONENT:
        return None
    return f"{major:06d}.{minor:06d}.{patch:06d}"


def is_pinned(spec: str) -> bool:
    """
    True when every version a dependency spec admits shares one major.minor.

    ``1.2.3``, ``~1.2.3`` and ``1.2.x`` are pinned; ``^1.2.3``, ``>=1.0.0``
    and ``*`` are not. Non-version specs (git URLs, tags) are not pinned.
    """
    try:
        sets = _parse_canonical(canonical_range(spec))
        bounds = resolve_version_range(spec)
    except InvalidRangeError:
        return False

    for comparators in sets:
        if not any(c.operator in ("<", "<=", "=") for c in comparators):
            return False

    low, high = _as_version(bounds.min), _as_version(bounds.max)
    if (low.major, low.minor) == (high.major, high.minor):
        return True
    return (
        not bounds.max_inclusive
        and high.major == low.major
        and high.minor == low.minor + 1
        and high.micro == 0
    )

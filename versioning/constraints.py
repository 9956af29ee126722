"""SPT version constraint parsing and matching.

A constraint is one or more alternatives joined by `||`. Each alternative is a
hyphen range (`1.0.0 - 2.0.0`) or a list of comparators joined by whitespace or
commas, all of which must hold. Supported comparators:

- exact: `1.2.3`, `=1.2.3`, `==1.2.3`
- comparison: `>`, `>=`, `<`, `<=`, `!=` (partial versions are zero-padded)
- tilde: `~1.2.3` (>=1.2.3 <1.3.0), `~1.2` (>=1.2.0 <1.3.0), `~1` (>=1.0.0 <2.0.0)
- caret: `^1.2.3` (<2.0.0), `^0.2.3` (<0.3.0), `^0.0.3` (<0.0.4)
- wildcards: `*`, `x`, `1.*`, `1.2.x` and bare partial versions such as `1.2`

Wildcards stand alone: `>=3.9.x`, `^3.x` and `3.x - 4.0.0` are rejected, while
the partial forms `>=3.9`, `^3` and `3 - 4.0.0` are accepted.

Bounds without a suffix compare against the numeric triple only, so
`3.9.0-hotfix` satisfies `3.9.0`, `3.9.*` and `<=3.9.0`. Bounds with a suffix
compare against the full version ordering.

Anything else raises `UnsupportedConstraint`; unrecognized syntax is never
treated as satisfied or unsatisfied.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from .dto import EngineVersion
from .semver import SemanticVersion, VersioningError, parse_version, version_sort_key

_PARTIAL_RE = re.compile(
    r"^[vV]?(?P<major>\d+|[xX*])(?:\.(?P<minor>\d+|[xX*]))?(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<suffix>[0-9A-Za-z][0-9A-Za-z.\-]*))?$"
)
_COMPARATOR_RE = re.compile(r"^(?P<op>>=|<=|==|!=|>|<|=|~|\^)?(?P<version>.*)$")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_SEPARATOR_RE = re.compile(r"[\s,]+")
_BARE_OPERATORS = frozenset({">=", "<=", "==", "!=", ">", "<", "=", "~", "^"})
_WILDCARDS = frozenset({"x", "X", "*"})


class UnsupportedConstraint(VersioningError):
    """Raised when a constraint uses syntax outside the supported grammar."""

    def __init__(self, constraint: object, reason: str) -> None:
        """Initialize the error.

        Args:
            constraint: The rejected constraint expression.
            reason: Short description of what could not be parsed.
        """

        super().__init__(f"Unsupported constraint {constraint!r}: {reason}.")
        self.constraint = constraint
        self.reason = reason


@dataclass(frozen=True, slots=True)
class Comparison:
    """A primitive comparison against a bound.

    Attributes:
        op: One of `==`, `!=`, `>`, `>=`, `<`, `<=`.
        bound: A 3-tuple (numeric triple) or 4-tuple (full sort key).
    """

    op: str
    bound: tuple

    def allows(self, version: SemanticVersion) -> bool:
        """Return True when `version` satisfies this comparison."""

        candidate = version.numeric if len(self.bound) == 3 else version.sort_key()
        if self.op == "==":
            return candidate == self.bound
        if self.op == "!=":
            return candidate != self.bound
        if self.op == ">":
            return candidate > self.bound
        if self.op == ">=":
            return candidate >= self.bound
        if self.op == "<":
            return candidate < self.bound
        return candidate <= self.bound


@dataclass(frozen=True, slots=True)
class VersionConstraint:
    """A parsed constraint expression.

    Attributes:
        raw: The original expression.
        alternatives: OR-ed groups of AND-ed comparisons. An empty group
            matches every version.
    """

    raw: str
    alternatives: tuple[tuple[Comparison, ...], ...]

    def allows(self, version: str | SemanticVersion) -> bool:
        """Return True when `version` satisfies any alternative.

        Raises:
            MalformedVersion: When `version` cannot be parsed.
        """

        parsed = parse_version(version)
        return any(all(c.allows(parsed) for c in group) for group in self.alternatives)


@dataclass(frozen=True, slots=True)
class _Partial:
    """A possibly-partial version: `parts` holds only the concrete segments.

    `wildcard` is True when an explicit `x`, `X` or `*` segment was written.
    """

    parts: tuple[int, ...]
    suffix: str
    wildcard: bool = False

    def padded(self) -> tuple:
        base = tuple(self.parts) + (0,) * (3 - len(self.parts))
        return base + (self.suffix,) if self.suffix else base

    def bumped(self) -> tuple:
        """Return the exclusive upper bound of the partial's wildcard range."""

        head = list(self.parts)
        head[-1] += 1
        return tuple(head) + (0,) * (3 - len(head))


@lru_cache(maxsize=512)
def parse_constraint(constraint: str) -> VersionConstraint:
    """Parse a constraint expression.

    Args:
        constraint: Expression such as `3.9.8`, `~3.9.0`, `>=3.8.0 <3.10.0`
            or `3.8.* || 3.9.*`.

    Returns:
        A VersionConstraint ready for matching.

    Raises:
        UnsupportedConstraint: When the expression is empty or uses syntax
            outside the documented grammar.
    """

    if not isinstance(constraint, str):
        raise UnsupportedConstraint(constraint, "expected a string")
    if not constraint.strip():
        raise UnsupportedConstraint(constraint, "empty constraint")

    alternatives: list[tuple[Comparison, ...]] = []
    for alternative in constraint.split("||"):
        text = alternative.strip()
        if not text:
            raise UnsupportedConstraint(constraint, "empty alternative around '||'")
        hyphen = _HYPHEN_RE.match(text)
        if hyphen is not None:
            alternatives.append(_hyphen_range(constraint, hyphen.group("low"), hyphen.group("high")))
            continue
        group: list[Comparison] = []
        for token in _tokens(constraint, text):
            group.extend(_comparator(constraint, token))
        alternatives.append(tuple(group))
    return VersionConstraint(raw=constraint, alternatives=tuple(alternatives))


def satisfies_constraint(
    constraint: str | VersionConstraint,
    engine_version: str | SemanticVersion | EngineVersion,
) -> bool:
    """Return True when `engine_version` satisfies `constraint`.

    Raises:
        UnsupportedConstraint: When the constraint cannot be parsed.
        MalformedVersion: When the engine version cannot be parsed.
    """

    parsed = parse_constraint(constraint) if isinstance(constraint, str) else constraint
    if isinstance(engine_version, EngineVersion):
        engine_version = engine_version.version
    return parsed.allows(engine_version)


def satisfying_versions(
    constraint: str | VersionConstraint,
    catalog: Iterable[EngineVersion],
) -> tuple[EngineVersion, ...]:
    """Return catalog entries satisfying `constraint`, highest version first."""

    parsed = parse_constraint(constraint) if isinstance(constraint, str) else constraint
    matches = [engine for engine in catalog if parsed.allows(engine.version)]
    return tuple(sorted(matches, key=lambda engine: version_sort_key(engine.version), reverse=True))


def latest_satisfying_version(
    constraint: str | VersionConstraint,
    catalog: Iterable[EngineVersion],
) -> EngineVersion | None:
    """Return the highest catalog entry satisfying `constraint`, or None."""

    matches = satisfying_versions(constraint, catalog)
    return matches[0] if matches else None


def _tokens(constraint: str, text: str) -> list[str]:
    """Split an alternative into comparator tokens, re-attaching bare operators."""

    if any(not piece.strip() for piece in text.split(",")):
        raise UnsupportedConstraint(constraint, "empty comparator around ','")

    tokens: list[str] = []
    pending: str | None = None
    for piece in _SEPARATOR_RE.split(text):
        if not piece:
            continue
        if piece in _BARE_OPERATORS:
            if pending is not None:
                raise UnsupportedConstraint(constraint, f"operator {pending!r} without a version")
            pending = piece
            continue
        tokens.append(f"{pending}{piece}" if pending else piece)
        pending = None
    if pending is not None:
        raise UnsupportedConstraint(constraint, f"operator {pending!r} without a version")
    if not tokens:
        raise UnsupportedConstraint(constraint, "no comparators")
    return tokens


def _parse_partial(constraint: str, raw: str) -> _Partial:
    match = _PARTIAL_RE.match(raw)
    if match is None:
        raise UnsupportedConstraint(constraint, f"malformed version {raw!r}")

    parts: list[int] = []
    wildcard_seen = False
    explicit_wildcard = False
    for name in ("major", "minor", "patch"):
        segment = match.group(name)
        if segment is None or segment in _WILDCARDS:
            wildcard_seen = True
            explicit_wildcard = explicit_wildcard or segment is not None
            continue
        if wildcard_seen:
            raise UnsupportedConstraint(constraint, f"number after wildcard in {raw!r}")
        parts.append(int(segment))

    suffix = match.group("suffix") or ""
    if suffix and len(parts) < 3:
        raise UnsupportedConstraint(constraint, f"suffix on partial version {raw!r}")
    return _Partial(parts=tuple(parts), suffix=suffix, wildcard=explicit_wildcard)


def _comparator(constraint: str, token: str) -> list[Comparison]:
    """Expand one comparator token into primitive comparisons."""

    match = _COMPARATOR_RE.match(token)
    if match is None:
        raise UnsupportedConstraint(constraint, f"unrecognized comparator {token!r}")
    op = match.group("op") or ""
    partial = _parse_partial(constraint, match.group("version"))
    parts = partial.parts
    exact = len(parts) == 3

    if op in ("", "=", "=="):
        if exact:
            return [Comparison("==", partial.padded())]
        if not parts:
            return []
        return [Comparison(">=", partial.padded()), Comparison("<", partial.bumped())]

    if partial.wildcard:
        raise UnsupportedConstraint(constraint, f"operator {op!r} cannot take a wildcard")
    if not parts:
        raise UnsupportedConstraint(constraint, f"operator {op!r} requires a version")

    if op == "!=":
        if not exact:
            raise UnsupportedConstraint(constraint, "'!=' requires a full version")
        return [Comparison("!=", partial.padded())]
    if op == ">=":
        return [Comparison(">=", partial.padded())]
    if op == "<":
        return [Comparison("<", partial.padded())]
    if op == ">":
        return [Comparison(">", partial.padded())] if exact else [Comparison(">=", partial.bumped())]
    if op == "<=":
        return [Comparison("<=", partial.padded())] if exact else [Comparison("<", partial.bumped())]

    if op == "~":
        if len(parts) == 1:
            upper = (parts[0] + 1, 0, 0)
        else:
            upper = (parts[0], parts[1] + 1, 0)
        return [Comparison(">=", partial.padded()), Comparison("<", upper)]

    # Caret: the first non-zero segment may not change.
    major, minor, patch = (tuple(parts) + (0, 0))[:3]
    if major > 0 or len(parts) == 1:
        upper = (major + 1, 0, 0)
    elif minor > 0 or len(parts) == 2:
        upper = (0, minor + 1, 0)
    else:
        upper = (0, 0, patch + 1)
    return [Comparison(">=", partial.padded()), Comparison("<", upper)]


def _hyphen_range(constraint: str, low: str, high: str) -> tuple[Comparison, ...]:
    lower = _parse_partial(constraint, low)
    upper = _parse_partial(constraint, high)
    if lower.wildcard or upper.wildcard or not lower.parts or not upper.parts:
        raise UnsupportedConstraint(constraint, "hyphen range bounds may not be wildcards")
    if len(upper.parts) == 3:
        upper_cmp = Comparison("<=", upper.padded())
    else:
        upper_cmp = Comparison("<", upper.bumped())
    return (Comparison(">=", lower.padded()), upper_cmp)

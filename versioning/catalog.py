"""Queries over the SPT engine version catalog.

The catalog is an immutable snapshot supplied by the caller. Nothing here reads
ambient state; callers own caching of the results.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from .dto import EngineVersion
from .semver import SemanticVersion, parse_version

V = TypeVar("V", str, EngineVersion)

DEFAULT_ACTIVE_MINORS = 3


def _parsed(item: str | EngineVersion | SemanticVersion) -> SemanticVersion:
    if isinstance(item, EngineVersion):
        return item.parsed
    return parse_version(item)


def is_latest_minor(candidate: V, all_versions: Iterable[V]) -> bool:
    """Return True when no version in the same minor line orders after `candidate`.

    Args:
        candidate: Version to test.
        all_versions: Catalog to test against. `candidate` need not be a member.

    Returns:
        True when `candidate` is the tip of its `(major, minor)` line.

    Raises:
        MalformedVersion: When any version cannot be parsed.
    """

    target = _parsed(candidate)
    for other in all_versions:
        parsed = _parsed(other)
        if parsed.minor_line == target.minor_line and parsed > target:
            return False
    return True


def latest_minor_versions(all_versions: Iterable[V]) -> tuple[V, ...]:
    """Return the tip of every minor line, highest first.

    This is the "hotfix" set used as the default SPT filter on mod listings.
    """

    tips: dict[tuple[int, int], tuple[SemanticVersion, V]] = {}
    for item in all_versions:
        parsed = _parsed(item)
        current = tips.get(parsed.minor_line)
        if current is None or parsed > current[0]:
            tips[parsed.minor_line] = (parsed, item)
    ordered = sorted(tips.values(), key=lambda pair: pair[0], reverse=True)
    return tuple(item for _, item in ordered)


def versions_for_last_three_minors(
    all_versions: Iterable[V],
    *,
    minors: int = DEFAULT_ACTIVE_MINORS,
) -> tuple[V, ...]:
    """Return every version belonging to the most recent minor lines.

    Versions are grouped by distinct `(major, minor)` pair, the pairs are
    ordered descending and the top `minors` pairs are kept. All versions of
    those lines are returned, not just their tips, highest version first.
    Duplicate version strings are collapsed to their first occurrence.

    Args:
        all_versions: Engine catalog snapshot. May be empty.
        minors: Number of minor lines considered current.

    Returns:
        The active versions; empty when the catalog is empty. Fewer than
        `minors` distinct lines returns all of them.

    Raises:
        MalformedVersion: When any version cannot be parsed.
    """

    parsed_items: list[tuple[SemanticVersion, V]] = []
    seen: set[SemanticVersion] = set()
    for item in all_versions:
        parsed = _parsed(item)
        if parsed in seen:
            continue
        seen.add(parsed)
        parsed_items.append((parsed, item))

    lines = sorted({parsed.minor_line for parsed, _ in parsed_items}, reverse=True)[: max(minors, 0)]
    active_lines = set(lines)
    active = [pair for pair in parsed_items if pair[0].minor_line in active_lines]
    active.sort(key=lambda pair: pair[0], reverse=True)
    return tuple(item for _, item in active)


def active_version_set(active_versions: Iterable[str | EngineVersion]) -> frozenset[SemanticVersion]:
    """Return the parsed membership set of an active-version snapshot."""

    return frozenset(_parsed(item) for item in active_versions)

"""Latest-version selection and the public visibility gate.

A mod release is *eligible* when at least one engine version in the catalog
satisfies its SPT constraint. Ineligible releases stay stored and still count
toward downloads, but never become a mod's "latest" version.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .catalog import active_version_set, versions_for_last_three_minors
from .constraints import latest_satisfying_version, parse_constraint
from .dto import EngineVersion, ModSnapshot, ModVersionSnapshot
from .semver import version_sort_key


def is_eligible(mod_version: ModVersionSnapshot, engine_catalog: Iterable[EngineVersion]) -> bool:
    """Return True when any catalog entry satisfies the release's constraint.

    Raises:
        UnsupportedConstraint: When the constraint cannot be parsed.
        MalformedVersion: When a catalog version cannot be parsed.
    """

    constraint = parse_constraint(mod_version.spt_version_constraint)
    return any(constraint.allows(engine.version) for engine in engine_catalog)


def eligible_versions(
    mod_versions: Iterable[ModVersionSnapshot],
    engine_catalog: Sequence[EngineVersion],
) -> tuple[ModVersionSnapshot, ...]:
    """Return eligible releases ordered by version, then `updated_at`, descending."""

    eligible = [mv for mv in mod_versions if is_eligible(mv, engine_catalog)]
    eligible.sort(key=lambda mv: (version_sort_key(mv.version), mv.updated_at), reverse=True)
    return tuple(eligible)


def latest_eligible_version(
    mod_versions: Iterable[ModVersionSnapshot],
    engine_catalog: Sequence[EngineVersion],
) -> ModVersionSnapshot | None:
    """Select a mod's latest release.

    Args:
        mod_versions: Every stored release of the mod.
        engine_catalog: Engine catalog snapshot.

    Returns:
        The eligible release with the highest version, ties broken by the most
        recent `updated_at`; None when no release is eligible.

    Raises:
        MalformedVersion: When a release or catalog version cannot be parsed.
        UnsupportedConstraint: When a release constraint cannot be parsed.
    """

    ordered = eligible_versions(mod_versions, engine_catalog)
    return ordered[0] if ordered else None


def latest_updated_version(
    mod_versions: Iterable[ModVersionSnapshot],
    engine_catalog: Sequence[EngineVersion],
) -> ModVersionSnapshot | None:
    """Return the most recently updated eligible release, or None."""

    eligible = [mv for mv in mod_versions if is_eligible(mv, engine_catalog)]
    if not eligible:
        return None
    return max(eligible, key=lambda mv: (mv.updated_at, version_sort_key(mv.version)))


def total_downloads(mod_versions: Iterable[ModVersionSnapshot]) -> int:
    """Return downloads summed over every release, eligible or not."""

    return sum(mv.downloads for mv in mod_versions)


def should_be_indexed(
    mod: ModSnapshot,
    engine_catalog: Sequence[EngineVersion],
    *,
    active_versions: Iterable[str | EngineVersion] | None = None,
) -> bool:
    """Return True when a mod may appear in public listings and search.

    A mod is listed when it is not disabled, has a publish timestamp, has a
    latest eligible release, and that release's latest supported engine
    version belongs to the active minor lines.

    Args:
        mod: Snapshot of the mod and all of its releases.
        engine_catalog: Engine catalog snapshot.
        active_versions: Optional precomputed (e.g. cached) result of
            `versions_for_last_three_minors`; computed from the catalog when
            omitted.

    Returns:
        Whether the mod passes the visibility gate.
    """

    if mod.disabled:
        return False
    if mod.published_at is None:
        return False

    latest = latest_eligible_version(mod.versions, engine_catalog)
    if latest is None:
        return False

    latest_engine = latest_satisfying_version(latest.spt_version_constraint, engine_catalog)
    if latest_engine is None:
        return False

    if active_versions is None:
        active_versions = versions_for_last_three_minors(engine_catalog)
    return latest_engine.parsed in active_version_set(active_versions)

"""Service-layer functions for the mods app.

Services coordinate Django persistence concerns (ORM, cache, transactions)
with the pure `versioning` resolver. The resolver only ever sees immutable
snapshots built here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from mods.models import Mod, ModDependency, ModVersion, SptVersion
from versioning import (
    EngineVersion,
    ModSnapshot,
    VersioningError,
    latest_eligible_version,
    parse_constraint,
    parse_version,
    should_be_indexed,
    versions_for_last_three_minors,
)
from versioning import latest_updated_version as select_latest_updated_version
from versioning.constraints import satisfying_versions

logger = logging.getLogger(__name__)

ACTIVE_SPT_VERSIONS_CACHE_KEY = "active-spt-versions"


@dataclass(frozen=True, slots=True)
class ResolveSummary:
    """Counts for a resolve run."""

    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0


def engine_catalog() -> tuple[EngineVersion, ...]:
    """Return a snapshot of every well-formed SPT version row.

    Rows whose version string does not parse are logged and left out so a
    single bad row cannot block resolution for the whole catalog.
    """

    catalog: list[EngineVersion] = []
    for row in SptVersion.objects.order_by("id"):
        engine = row.to_engine_version()
        try:
            parse_version(engine.version)
        except VersioningError as exc:
            logger.warning("Skipping SPT version id=%s: %s", row.pk, exc)
            continue
        catalog.append(engine)
    return tuple(catalog)


def active_spt_versions() -> tuple[str, ...]:
    """Return the version strings of the active minor lines, cached.

    The snapshot is cached under `active-spt-versions` for
    `FORGE_ACTIVE_SPT_VERSIONS_TTL` seconds and forgotten whenever the SPT
    catalog changes.
    """

    def compute() -> tuple[str, ...]:
        active = versions_for_last_three_minors(engine_catalog(), minors=settings.FORGE_ACTIVE_MINOR_LINES)
        logger.debug("Computed %d active SPT versions", len(active))
        return tuple(engine.version for engine in active)

    return cache.get_or_set(
        ACTIVE_SPT_VERSIONS_CACHE_KEY,
        compute,
        timeout=settings.FORGE_ACTIVE_SPT_VERSIONS_TTL,
    )


def forget_active_spt_versions() -> None:
    """Drop the cached active SPT version snapshot."""

    cache.delete(ACTIVE_SPT_VERSIONS_CACHE_KEY)


def _listed_versions(mod: Mod) -> list[ModVersion]:
    """Return a mod's non-disabled releases, using a prefetch when present."""

    return [mv for mv in mod.versions.all() if not mv.disabled]


def mod_snapshot(mod: Mod) -> ModSnapshot:
    """Build a resolver snapshot of a mod and its non-disabled releases."""

    return ModSnapshot(
        versions=tuple(mv.to_snapshot() for mv in _listed_versions(mod)),
        disabled=mod.disabled or mod.deleted_at is not None,
        published_at=mod.published_at,
        id=mod.pk,
    )


def latest_version(mod: Mod, *, catalog: tuple[EngineVersion, ...] | None = None) -> ModVersion | None:
    """Return the release with the highest version that supports any SPT version.

    Raises:
        VersioningError: When a release version or constraint cannot be parsed.
    """

    versions = _listed_versions(mod)
    selected = latest_eligible_version(
        [mv.to_snapshot() for mv in versions],
        engine_catalog() if catalog is None else catalog,
    )
    if selected is None:
        return None
    return next(mv for mv in versions if mv.pk == selected.id)


def latest_updated_version(mod: Mod, *, catalog: tuple[EngineVersion, ...] | None = None) -> ModVersion | None:
    """Return the most recently updated release that supports any SPT version."""

    versions = _listed_versions(mod)
    selected = select_latest_updated_version(
        [mv.to_snapshot() for mv in versions],
        engine_catalog() if catalog is None else catalog,
    )
    if selected is None:
        return None
    return next(mv for mv in versions if mv.pk == selected.id)


def latest_spt_version_for(mod_version: ModVersion, *, catalog: tuple[EngineVersion, ...] | None = None) -> SptVersion | None:
    """Return the highest SPT version satisfying a release's constraint."""

    matches = satisfying_versions(
        mod_version.spt_version_constraint,
        engine_catalog() if catalog is None else catalog,
    )
    if not matches:
        return None
    return SptVersion.objects.filter(pk=matches[0].id).first()


def should_be_searchable(mod: Mod, *, catalog: tuple[EngineVersion, ...] | None = None) -> bool:
    """Return True when a mod may appear in listings and search.

    Malformed release data makes the mod ineligible instead of failing the
    caller; the problem is logged for moderation.
    """

    catalog = engine_catalog() if catalog is None else catalog
    try:
        return should_be_indexed(mod_snapshot(mod), catalog, active_versions=active_spt_versions())
    except VersioningError as exc:
        logger.warning("Mod id=%s is not searchable: %s", mod.pk, exc)
        return False


def _epoch(value) -> int | None:
    return int(value.timestamp()) if value is not None else None


def search_document(mod: Mod) -> dict[str, object] | None:
    """Return the search index payload for a mod, or None when it must not be indexed.

    Args:
        mod: Mod row; releases may be prefetched.

    Returns:
        A JSON-serializable dict, or None when the visibility gate rejects the mod.
    """

    catalog = engine_catalog()
    if not should_be_searchable(mod, catalog=catalog):
        return None

    latest = latest_version(mod, catalog=catalog)
    latest_engine = satisfying_versions(latest.spt_version_constraint, catalog)[0] if latest else None
    return {
        "id": mod.pk,
        "name": mod.name,
        "slug": mod.slug,
        "description": mod.description,
        "thumbnail": mod.thumbnail,
        "featured": mod.featured,
        "created_at": _epoch(mod.created_at),
        "updated_at": _epoch(mod.updated_at),
        "published_at": _epoch(mod.published_at),
        "latest_version": latest_engine.version_formatted if latest_engine else None,
        "latest_version_color_class": latest_engine.color_class if latest_engine else None,
    }


def resolve_spt_versions(*, write: bool, mod_id: int | None = None) -> ResolveSummary:
    """Recompute each release's satisfying SPT versions and latest SPT pointer.

    Args:
        write: When True, persist changes. When False, compute counts only.
        mod_id: Optional Mod id restricting the run to one mod's releases.

    Returns:
        ResolveSummary. Releases whose constraint cannot be parsed are
        logged and counted as skipped.
    """

    catalog = engine_catalog()
    queryset = ModVersion.objects.prefetch_related("spt_versions").order_by("id")
    if mod_id is not None:
        queryset = queryset.filter(mod_id=mod_id)

    counts = {"processed": 0, "updated": 0, "unchanged": 0, "skipped": 0}
    for mod_version in queryset:
        counts["processed"] += 1
        try:
            matches = satisfying_versions(mod_version.spt_version_constraint, catalog)
        except VersioningError as exc:
            logger.warning("Skipping mod version id=%s: %s", mod_version.pk, exc)
            counts["skipped"] += 1
            continue

        resolved_ids = {engine.id for engine in matches}
        latest_id = matches[0].id if matches else None
        current_ids = {spt.pk for spt in mod_version.spt_versions.all()}
        if resolved_ids == current_ids and latest_id == mod_version.latest_spt_version_id:
            counts["unchanged"] += 1
            continue

        counts["updated"] += 1
        if write:
            with transaction.atomic():
                mod_version.spt_versions.set(resolved_ids)
                # Queryset update keeps `updated_at` untouched.
                ModVersion.objects.filter(pk=mod_version.pk).update(latest_spt_version_id=latest_id)

    summary = ResolveSummary(**counts)
    logger.info("Resolved SPT versions: %s", summary)
    return summary


def resolve_dependencies(*, write: bool, mod_id: int | None = None) -> ResolveSummary:
    """Recompute which releases of each dependency satisfy the declared constraint.

    Args:
        write: When True, persist changes. When False, compute counts only.
        mod_id: Optional Mod id restricting the run to that mod's declared
            dependencies.

    Returns:
        ResolveSummary. Dependencies with an unparsable constraint, or whose
        candidate releases carry malformed versions, are logged and skipped.
    """

    queryset = (
        ModDependency.objects.select_related("mod_version", "dependency_mod")
        .prefetch_related("resolved_versions", "dependency_mod__versions")
        .order_by("id")
    )
    if mod_id is not None:
        queryset = queryset.filter(mod_version__mod_id=mod_id)

    counts = {"processed": 0, "updated": 0, "unchanged": 0, "skipped": 0}
    for dependency in queryset:
        counts["processed"] += 1
        try:
            constraint = parse_constraint(dependency.constraint)
            resolved_ids = {
                candidate.pk
                for candidate in _listed_versions(dependency.dependency_mod)
                if constraint.allows(candidate.version)
            }
        except VersioningError as exc:
            logger.warning("Skipping mod dependency id=%s: %s", dependency.pk, exc)
            counts["skipped"] += 1
            continue

        current_ids = {mv.pk for mv in dependency.resolved_versions.all()}
        if resolved_ids == current_ids:
            counts["unchanged"] += 1
            continue

        counts["updated"] += 1
        if write:
            with transaction.atomic():
                dependency.resolved_versions.set(resolved_ids)

    summary = ResolveSummary(**counts)
    logger.info("Resolved mod dependencies: %s", summary)
    return summary


def refresh_mod_downloads(*, write: bool, mod_id: int | None = None) -> ResolveSummary:
    """Roll release download counters up to every mod, including hidden ones."""

    queryset = Mod.all_objects.prefetch_related("versions").order_by("id")
    if mod_id is not None:
        queryset = queryset.filter(pk=mod_id)

    counts = {"processed": 0, "updated": 0, "unchanged": 0, "skipped": 0}
    for mod in queryset:
        counts["processed"] += 1
        total = sum(mv.downloads for mv in mod.versions.all())
        if total == mod.downloads:
            counts["unchanged"] += 1
            continue
        counts["updated"] += 1
        if write:
            mod.calculate_downloads()

    summary = ResolveSummary(**counts)
    logger.info("Refreshed mod downloads: %s", summary)
    return summary

"""Mod listing queries: the filterable index and the homepage sections."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from django.db.models import Q

from mods.models import Mod, ModVersion
from mods.services import engine_catalog, latest_updated_version, latest_version
from versioning import EngineVersion, VersioningError, latest_minor_versions, parse_version
from versioning.constraints import latest_satisfying_version, satisfying_versions

logger = logging.getLogger(__name__)

FEATURED_CHOICES = ("include", "exclude", "only")
ORDER_FIELDS = {
    "created": "-created_at",
    "updated": "-updated_at",
    "downloaded": "-downloads",
}
HOMEPAGE_SECTION_SIZE = 6


@dataclass(frozen=True)
class ModCard:
    """A mod paired with the release and SPT version shown on its card."""

    mod: Mod
    version: ModVersion
    spt_version: EngineVersion | None


@dataclass(frozen=True)
class HomepageSection:
    """One titled homepage row of mod cards."""

    title: str
    link: str
    cards: tuple[ModCard, ...]


def default_spt_version_filter(catalog: Iterable[EngineVersion] | None = None) -> list[str]:
    """Return the tip of every SPT minor line, used as the listing's default filter."""

    catalog = engine_catalog() if catalog is None else catalog
    return [engine.version for engine in latest_minor_versions(tuple(catalog))]


def filter_mods(
    *,
    query: str = "",
    featured: str = "include",
    order: str = "created",
    spt_versions: Iterable[str] | None = None,
) -> list[ModCard]:
    """Return visible mods matching the listing filters.

    Args:
        query: Case-insensitive text matched against name and teaser.
        featured: `include` (no filter), `exclude` or `only`.
        order: `created`, `updated` or `downloaded`, newest/highest first.
        spt_versions: Optional SPT version strings; a mod is kept when its
            latest release supports at least one of them.

    Returns:
        Mod cards for mods that have a latest compatible release.

    Raises:
        ValueError: When `featured` or `order` is not a supported value, or
            an SPT filter value is not a valid version.
    """

    if featured not in FEATURED_CHOICES:
        raise ValueError(f"Unsupported featured filter {featured!r}; expected one of {FEATURED_CHOICES}.")
    if order not in ORDER_FIELDS:
        raise ValueError(f"Unsupported order {order!r}; expected one of {tuple(ORDER_FIELDS)}.")

    queryset = Mod.objects.select_related("license").prefetch_related("versions")
    if query.strip():
        term = query.strip()
        queryset = queryset.filter(Q(name__icontains=term) | Q(teaser__icontains=term))
    if featured == "only":
        queryset = queryset.filter(featured=True)
    elif featured == "exclude":
        queryset = queryset.filter(featured=False)
    queryset = queryset.order_by(ORDER_FIELDS[order], "-id")

    wanted = {parse_version(raw) for raw in spt_versions} if spt_versions else None
    catalog = engine_catalog()
    cards: list[ModCard] = []
    for mod in queryset:
        card = _card(mod, catalog=catalog, select=latest_version)
        if card is None:
            continue
        if wanted is not None:
            supported = satisfying_versions(card.version.spt_version_constraint, catalog)
            if not any(engine.parsed in wanted for engine in supported):
                continue
        cards.append(card)
    return cards


def homepage_listings() -> dict[str, HomepageSection]:
    """Return the featured, newest and recently updated homepage sections.

    Each section is cached for `FORGE_HOMEPAGE_CACHE_TTL` seconds.
    """

    timeout = settings.FORGE_HOMEPAGE_CACHE_TTL
    return {
        "featured": HomepageSection(
            title="Featured Mods",
            link="/mods?featured=only",
            cards=cache.get_or_set("homepage-featured-mods", _featured_cards, timeout=timeout),
        ),
        "latest": HomepageSection(
            title="Newest Mods",
            link="/mods",
            cards=cache.get_or_set("homepage-latest-mods", _latest_cards, timeout=timeout),
        ),
        "updated": HomepageSection(
            title="Recently Updated Mods",
            link="/mods?order=updated",
            cards=cache.get_or_set("homepage-updated-mods", _updated_cards, timeout=timeout),
        ),
    }


def _card(mod: Mod, *, catalog: tuple[EngineVersion, ...], select) -> ModCard | None:
    """Build a card using `select` to pick the release; None when nothing is eligible."""

    try:
        version = select(mod, catalog=catalog)
        if version is None:
            return None
        spt_version = latest_satisfying_version(version.spt_version_constraint, catalog)
    except VersioningError as exc:
        logger.warning("Leaving mod id=%s out of listings: %s", mod.pk, exc)
        return None
    return ModCard(mod=mod, version=version, spt_version=spt_version)


def _collect(queryset, *, select) -> tuple[ModCard, ...]:
    catalog = engine_catalog()
    cards: list[ModCard] = []
    for mod in queryset.prefetch_related("versions", "authors").select_related("license"):
        card = _card(mod, catalog=catalog, select=select)
        if card is not None:
            cards.append(card)
        if len(cards) >= HOMEPAGE_SECTION_SIZE:
            break
    return tuple(cards)


def _featured_cards() -> tuple[ModCard, ...]:
    return _collect(Mod.objects.filter(featured=True).order_by("?"), select=latest_version)


def _latest_cards() -> tuple[ModCard, ...]:
    return _collect(Mod.objects.order_by("-created_at", "-id"), select=latest_version)


def _updated_cards() -> tuple[ModCard, ...]:
    return _collect(Mod.objects.order_by("-updated_at", "-id"), select=latest_updated_version)

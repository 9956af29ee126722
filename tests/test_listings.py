"""Integration tests for mod listings and homepage sections."""

from __future__ import annotations

import pytest

from mods.listings import HOMEPAGE_SECTION_SIZE, default_spt_version_filter, filter_mods, homepage_listings
from mods.models import Mod, ModVersion

pytestmark = pytest.mark.integration


@pytest.fixture
def catalog_mods(make_spt_versions, make_mod):
    """Create a small catalog: two compatible mods, one incompatible and one hidden."""

    make_spt_versions("3.8.0", "3.9.0", "3.9.8")
    alpha = make_mod("Alpha Weapons", featured=True, teaser="guns", versions=[("1.0.0", "~3.9.0")])
    bravo = make_mod("Bravo Maps", versions=[("2.0.0", "3.8.0")])
    make_mod("Charlie Future", versions=[("1.0.0", "9.9.9")])
    make_mod("Delta Hidden", disabled=True, versions=[("1.0.0", "3.9.0")])
    return alpha, bravo


def _names(cards) -> list[str]:
    return [card.mod.name for card in cards]


@pytest.mark.django_db
def test_default_spt_version_filter_is_tip_of_each_minor_line(make_spt_versions) -> None:
    """The default listing filter is the newest hotfix of every minor line."""

    make_spt_versions("3.8.0", "3.9.0", "3.9.8", "3.10.0")

    assert default_spt_version_filter() == ["3.10.0", "3.9.8", "3.8.0"]


@pytest.mark.django_db
def test_filter_mods_lists_only_visible_mods_with_a_latest_version(catalog_mods) -> None:
    """Hidden mods and mods without a compatible release are left out."""

    cards = filter_mods()

    assert _names(cards) == ["Bravo Maps", "Alpha Weapons"]
    assert cards[1].version.version == "1.0.0"
    assert cards[1].spt_version.version == "3.9.8"


@pytest.mark.django_db
def test_filter_mods_featured_and_query_filters(catalog_mods) -> None:
    """Featured and text filters narrow the result set."""

    assert _names(filter_mods(featured="only")) == ["Alpha Weapons"]
    assert _names(filter_mods(featured="exclude")) == ["Bravo Maps"]
    assert _names(filter_mods(query="MAPS")) == ["Bravo Maps"]
    assert _names(filter_mods(query="guns")) == ["Alpha Weapons"]


@pytest.mark.django_db
def test_filter_mods_by_spt_version(catalog_mods) -> None:
    """A mod is kept when its latest release supports one of the selected versions."""

    assert _names(filter_mods(spt_versions=["3.8.0"])) == ["Bravo Maps"]
    assert _names(filter_mods(spt_versions=["3.9.8"])) == ["Alpha Weapons"]
    assert filter_mods(spt_versions=["3.7.0"]) == []


@pytest.mark.django_db
def test_filter_mods_orders_by_downloads(catalog_mods) -> None:
    """`downloaded` orders by the rolled-up download count."""

    alpha, bravo = catalog_mods
    Mod.all_objects.filter(pk=alpha.pk).update(downloads=100)
    Mod.all_objects.filter(pk=bravo.pk).update(downloads=5)

    assert _names(filter_mods(order="downloaded")) == ["Alpha Weapons", "Bravo Maps"]


@pytest.mark.django_db
def test_filter_mods_rejects_unknown_options(catalog_mods) -> None:
    """Unsupported filter values raise instead of being ignored."""

    with pytest.raises(ValueError):
        filter_mods(featured="sometimes")
    with pytest.raises(ValueError):
        filter_mods(order="alphabetical")
    with pytest.raises(ValueError):
        filter_mods(spt_versions=["3.9"])


@pytest.mark.django_db
def test_filter_mods_leaves_out_mods_with_corrupted_releases(catalog_mods) -> None:
    """A corrupted constraint hides that mod without failing the listing."""

    alpha, _ = catalog_mods
    ModVersion.objects.filter(mod=alpha).update(spt_version_constraint="~>3.9")

    assert _names(filter_mods()) == ["Bravo Maps"]


@pytest.mark.django_db
def test_homepage_listings_sections(catalog_mods) -> None:
    """Homepage sections hold only listable mods."""

    sections = homepage_listings()

    assert set(sections) == {"featured", "latest", "updated"}
    assert _names(sections["featured"].cards) == ["Alpha Weapons"]
    assert _names(sections["latest"].cards) == ["Bravo Maps", "Alpha Weapons"]
    assert set(_names(sections["updated"].cards)) == {"Alpha Weapons", "Bravo Maps"}
    assert sections["featured"].link == "/mods?featured=only"


@pytest.mark.django_db
def test_homepage_listings_are_cached(catalog_mods, make_mod) -> None:
    """Sections are served from cache until the TTL expires."""

    before = homepage_listings()
    make_mod("Echo New", versions=[("1.0.0", "3.9.0")])

    after = homepage_listings()

    assert _names(after["latest"].cards) == _names(before["latest"].cards)


@pytest.mark.django_db
def test_homepage_section_size_is_capped(make_spt_versions, make_mod) -> None:
    """Each section holds at most the configured number of cards."""

    make_spt_versions("3.9.0")
    for index in range(HOMEPAGE_SECTION_SIZE + 2):
        make_mod(f"Mod {index}", versions=[("1.0.0", "3.9.0")])

    assert len(homepage_listings()["latest"].cards) == HOMEPAGE_SECTION_SIZE

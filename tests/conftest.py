"""Pytest fixtures shared across Django integration tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty cache so cached snapshots never leak."""

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_spt_versions(db) -> Callable[..., list]:
    """Return a factory creating SptVersion rows from version strings."""

    from mods.models import SptVersion

    def factory(*versions: str) -> list[SptVersion]:
        return [SptVersion.objects.create(version=version, color_class=f"color-{version}") for version in versions]

    return factory


@pytest.fixture
def make_mod(db) -> Callable[..., object]:
    """Return a factory creating a published mod with optional releases.

    Releases are given as `(version, constraint)` or `(version, constraint, downloads)` tuples.
    """

    from mods.models import Mod, ModVersion

    def factory(name: str = "Example Mod", *, versions: Sequence[tuple] = (), **fields) -> Mod:
        fields.setdefault("published_at", timezone.now() - timedelta(days=1))
        mod = Mod.all_objects.create(name=name, **fields)
        for entry in versions:
            version, constraint, *rest = entry
            ModVersion.objects.create(
                mod=mod,
                version=version,
                spt_version_constraint=constraint,
                downloads=rest[0] if rest else 0,
            )
        return mod

    return factory


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    The suite is runnable by intent:
    - `unit`: pure, fast tests with no database access.
    - `integration`: tests touching Django, database, commands, or IO.

    Each test must have exactly one of these markers.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            markers = []
            if has_unit:
                markers.append("unit")
            if has_integration:
                markers.append("integration")
            invalid.append(f"{item.nodeid} (markers={markers or 'none'})")

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )

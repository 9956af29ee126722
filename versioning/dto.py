"""Snapshot types consumed by the version resolver.

Snapshots are plain, immutable data containers. Persistence layers build them
from their own rows; the resolver never sees ORM objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .semver import SemanticVersion, parse_version


@dataclass(frozen=True, slots=True)
class EngineVersion:
    """One published SPT (engine) release.

    Attributes:
        version: Semantic version string of the release.
        color_class: Display hint; opaque to the resolver.
        id: Optional identifier of the underlying persisted record.
    """

    version: str
    color_class: str = ""
    id: int | None = None

    @property
    def parsed(self) -> SemanticVersion:
        """Return the parsed semantic version.

        Raises:
            MalformedVersion: When `version` is not a valid semantic version.
        """

        return parse_version(self.version)

    @property
    def minor_line(self) -> tuple[int, int]:
        """Return the `(major, minor)` pair of this release."""

        return self.parsed.minor_line

    @property
    def version_formatted(self) -> str:
        """Return the version rendered for display (e.g. `SPT 3.9.8`)."""

        return f"SPT {self.parsed}"


@dataclass(frozen=True, slots=True)
class ModVersionSnapshot:
    """One published release of a mod.

    Attributes:
        version: Semantic version string of the mod release.
        spt_version_constraint: Constraint expression against SPT versions.
        updated_at: Last update timestamp; used as the "latest" tie-break.
        downloads: Download counter for this release.
        id: Optional identifier of the underlying persisted record.
    """

    version: str
    spt_version_constraint: str
    updated_at: datetime
    downloads: int = 0
    id: int | None = None


@dataclass(frozen=True, slots=True)
class ModSnapshot:
    """A mod and its releases, as seen by the visibility gate.

    Attributes:
        versions: Every stored release, eligible or not.
        disabled: Whether the mod has been disabled by moderation.
        published_at: Publish timestamp, or None when unpublished.
        id: Optional identifier of the underlying persisted record.
    """

    versions: tuple[ModVersionSnapshot, ...] = ()
    disabled: bool = False
    published_at: datetime | None = None
    id: int | None = None

    @property
    def total_downloads(self) -> int:
        """Return the download count summed over every release."""

        return sum(version.downloads for version in self.versions)

"""Pure version resolution package for Forge.

This package orders semantic versions, matches SPT version constraints and
selects a mod's latest compatible release. It must not import Django or
perform any database I/O; callers pass immutable snapshots in.
"""

from .catalog import is_latest_minor, latest_minor_versions, versions_for_last_three_minors
from .constraints import UnsupportedConstraint, parse_constraint, satisfies_constraint
from .dto import EngineVersion, ModSnapshot, ModVersionSnapshot
from .selection import latest_eligible_version, latest_updated_version, should_be_indexed
from .semver import MalformedVersion, Ordering, VersioningError, compare_versions, parse_version

__all__ = [
    "EngineVersion",
    "MalformedVersion",
    "ModSnapshot",
    "ModVersionSnapshot",
    "Ordering",
    "UnsupportedConstraint",
    "VersioningError",
    "compare_versions",
    "is_latest_minor",
    "latest_eligible_version",
    "latest_minor_versions",
    "latest_updated_version",
    "parse_constraint",
    "parse_version",
    "satisfies_constraint",
    "should_be_indexed",
    "versions_for_last_three_minors",
]

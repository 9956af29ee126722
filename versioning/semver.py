"""Semantic version parsing and ordering.

Every "latest" computation in Forge composes on `compare_versions`. Numeric
segments are compared as integers (never lexically), and an optional suffix
(`-beta`, `-hotfix2`) is compared lexically as the final tie-break. A version
without a suffix carries the empty suffix and therefore sorts before any
suffixed version of the same numeric triple.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from functools import total_ordering

_VERSION_RE = re.compile(
    r"^[ \t]*[vV]?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?:-(?P<suffix>[0-9A-Za-z][0-9A-Za-z.\-]*))?[ \t]*$"
)


class VersioningError(ValueError):
    """Base class for version resolution failures."""


class MalformedVersion(VersioningError):
    """Raised when a version string does not match `MAJOR.MINOR.PATCH[-suffix]`."""

    def __init__(self, raw_value: object) -> None:
        """Initialize the error.

        Args:
            raw_value: The rejected input, as received.
        """

        super().__init__(f"Malformed version {raw_value!r}: expected MAJOR.MINOR.PATCH[-suffix].")
        self.raw_value = raw_value


class Ordering(IntEnum):
    """Three-way comparison result."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


@total_ordering
@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """A parsed semantic version.

    Attributes:
        major: Major release number.
        minor: Minor release number.
        patch: Patch release number.
        suffix: Pre-release/hotfix segment without the leading dash, or "".
    """

    major: int
    minor: int
    patch: int
    suffix: str = ""

    @property
    def minor_line(self) -> tuple[int, int]:
        """Return the `(major, minor)` pair identifying this version's minor line."""

        return (self.major, self.minor)

    @property
    def numeric(self) -> tuple[int, int, int]:
        """Return the numeric triple without the suffix."""

        return (self.major, self.minor, self.patch)

    def sort_key(self) -> tuple[int, int, int, str]:
        """Return a tuple whose natural ordering matches `compare_versions`."""

        return (self.major, self.minor, self.patch, self.suffix)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.suffix}" if self.suffix else base


def parse_version(raw: str | SemanticVersion) -> SemanticVersion:
    """Parse a version string into a SemanticVersion.

    Args:
        raw: Version string such as `3.9.8` or `1.0.0-beta`. A leading `v` and
            surrounding whitespace are accepted. Already-parsed versions are
            returned unchanged.

    Returns:
        The parsed SemanticVersion.

    Raises:
        MalformedVersion: When the input is not a string of the expected form.
    """

    if isinstance(raw, SemanticVersion):
        return raw
    if not isinstance(raw, str):
        raise MalformedVersion(raw)
    match = _VERSION_RE.match(raw)
    if match is None:
        raise MalformedVersion(raw)
    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        suffix=match.group("suffix") or "",
    )


def compare_versions(a: str | SemanticVersion, b: str | SemanticVersion) -> Ordering:
    """Compare two semantic versions.

    Args:
        a: Left-hand version.
        b: Right-hand version.

    Returns:
        Ordering.LESS, Ordering.EQUAL or Ordering.GREATER for `a` relative to `b`.

    Raises:
        MalformedVersion: When either input cannot be parsed.
    """

    left = parse_version(a).sort_key()
    right = parse_version(b).sort_key()
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


def version_sort_key(raw: str | SemanticVersion) -> tuple[int, int, int, str]:
    """Return a sort key for use with `sorted`, `max` and friends."""

    return parse_version(raw).sort_key()


def is_valid_version(raw: object) -> bool:
    """Return True when `raw` parses as a semantic version."""

    try:
        parse_version(raw)  # type: ignore[arg-type]
    except MalformedVersion:
        return False
    return True

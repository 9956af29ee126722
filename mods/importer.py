"""Bulk ingestion of SPT versions, mods and releases from YAML documents.

The document shape is:

    spt_versions:
      - version: 3.9.8
        color_class: green
    licenses:
      - name: MIT
        link: https://opensource.org/licenses/MIT
    mods:
      - name: Example Mod
        slug: example-mod
        published_at: 2024-05-01T12:00:00Z
        license: MIT
        versions:
          - version: 1.0.0
            spt_version_constraint: ~3.9.0
            downloads: 10
            dependencies:
              - mod: other-mod
                constraint: ^1.0.0

Dependencies refer to mods by slug and are linked after every mod exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Any

import yaml
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.text import slugify

from mods.models import License, Mod, ModDependency, ModVersion, SptVersion

logger = logging.getLogger(__name__)


class ImportDocumentError(ValueError):
    """Raised when an import document is malformed."""


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """Counts for an import run."""

    spt_versions: int = 0
    licenses: int = 0
    mods: int = 0
    mod_versions: int = 0
    dependencies: int = 0


class _Rollback(Exception):
    """Internal signal used to roll back a dry-run import."""


def load_document(text: str) -> dict[str, Any]:
    """Parse and shape-check a YAML import document.

    Raises:
        ImportDocumentError: When the YAML is invalid or has the wrong shape.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ImportDocumentError(f"Invalid YAML: {exc}") from exc
    if not isinstance(payload, dict):
        raise ImportDocumentError("Import document must be a mapping at the top level.")
    for key in ("spt_versions", "licenses", "mods"):
        value = payload.get(key, [])
        if not isinstance(value, list):
            raise ImportDocumentError(f"`{key}` must be a list.")
    return payload


def import_document(payload: dict[str, Any], *, write: bool) -> ImportSummary:
    """Create or update rows described by an import document.

    Args:
        payload: Parsed document from `load_document`.
        write: When False, every row is validated inside a transaction that is
            rolled back, so nothing is persisted.

    Returns:
        ImportSummary with the number of rows seen per kind.

    Raises:
        ImportDocumentError: When a row is invalid or references an unknown
            mod or license.
    """

    try:
        with transaction.atomic():
            summary = _import(payload)
            if not write:
                raise _Rollback()
    except _Rollback:
        pass
    except ValidationError as exc:
        raise ImportDocumentError(f"Invalid row: {exc}") from exc
    logger.info("Imported document (write=%s): %s", write, summary)
    return summary


def _import(payload: dict[str, Any]) -> ImportSummary:
    spt_count = 0
    for entry in payload.get("spt_versions", []):
        entry = _mapping(entry, "spt_versions")
        SptVersion.objects.update_or_create(
            version=_required(entry, "version", "spt_versions"),
            defaults={
                "color_class": str(entry.get("color_class", "")),
                "link": str(entry.get("link", "")),
            },
        )
        spt_count += 1

    licenses: dict[str, License] = {}
    for entry in payload.get("licenses", []):
        entry = _mapping(entry, "licenses")
        license_row, _ = License.objects.update_or_create(
            name=_required(entry, "name", "licenses"),
            defaults={"link": str(entry.get("link", ""))},
        )
        licenses[license_row.name] = license_row

    mods_by_slug: dict[str, Mod] = {}
    pending_dependencies: list[tuple[ModVersion, dict[str, Any]]] = []
    version_count = 0
    for entry in payload.get("mods", []):
        entry = _mapping(entry, "mods")
        mod = _upsert_mod(entry, licenses=licenses)
        mods_by_slug[mod.slug] = mod
        for version_entry in entry.get("versions") or []:
            version_entry = _mapping(version_entry, "versions")
            mod_version = _upsert_version(mod, version_entry)
            version_count += 1
            for dependency_entry in version_entry.get("dependencies") or []:
                pending_dependencies.append((mod_version, _mapping(dependency_entry, "dependencies")))
        if entry.get("downloads") is None:
            mod.calculate_downloads()

    for mod_version, entry in pending_dependencies:
        slug = slugify(_required(entry, "mod", "dependencies"))
        dependency_mod = mods_by_slug.get(slug) or Mod.all_objects.filter(slug=slug).first()
        if dependency_mod is None:
            raise ImportDocumentError(f"Unknown dependency mod {slug!r} for {mod_version}.")
        dependency = ModDependency.objects.filter(mod_version=mod_version, dependency_mod=dependency_mod).first()
        if dependency is None:
            dependency = ModDependency(mod_version=mod_version, dependency_mod=dependency_mod)
        dependency.constraint = _required(entry, "constraint", "dependencies")
        dependency.save()

    return ImportSummary(
        spt_versions=spt_count,
        licenses=len(licenses),
        mods=len(mods_by_slug),
        mod_versions=version_count,
        dependencies=len(pending_dependencies),
    )


def _upsert_mod(entry: dict[str, Any], *, licenses: dict[str, License]) -> Mod:
    name = _required(entry, "name", "mods")
    slug = slugify(str(entry.get("slug") or name))
    mod = Mod.all_objects.filter(slug=slug).first() or Mod(slug=slug)
    mod.name = name
    mod.teaser = str(entry.get("teaser", ""))
    mod.description = str(entry.get("description", ""))
    mod.source_code_link = str(entry.get("source_code_link", ""))
    mod.featured = _bool(entry, "featured")
    mod.contains_ai_content = _bool(entry, "contains_ai_content")
    mod.contains_ads = _bool(entry, "contains_ads")
    mod.disabled = _bool(entry, "disabled")
    mod.published_at = _datetime(entry.get("published_at"))
    if entry.get("downloads") is not None:
        mod.downloads = _int(entry, "downloads", default=0)

    license_name = entry.get("license")
    if license_name:
        license_row = licenses.get(license_name) or License.objects.filter(name=license_name).first()
        if license_row is None:
            raise ImportDocumentError(f"Unknown license {license_name!r} for mod {slug!r}.")
        mod.license = license_row

    mod.full_clean()
    mod.save()
    return mod


def _upsert_version(mod: Mod, entry: dict[str, Any]) -> ModVersion:
    version = _required(entry, "version", "versions")
    mod_version = ModVersion.objects.filter(mod=mod, version=version).first() or ModVersion(
        mod=mod, version=version
    )
    mod_version.spt_version_constraint = _required(entry, "spt_version_constraint", "versions")
    mod_version.description = str(entry.get("description", ""))
    mod_version.link = str(entry.get("link", ""))
    mod_version.downloads = _int(entry, "downloads", default=mod_version.downloads or 0)
    mod_version.disabled = _bool(entry, "disabled")
    mod_version.save()
    return mod_version


def _mapping(entry: object, section: str) -> dict[str, Any]:
    if not isinstance(entry, dict):
        raise ImportDocumentError(f"Entries in `{section}` must be mappings, got {entry!r}.")
    return entry


def _required(entry: dict[str, Any], key: str, section: str) -> str:
    value = entry.get(key)
    if value is None or str(value).strip() == "":
        raise ImportDocumentError(f"Missing `{key}` in `{section}` entry {entry!r}.")
    return str(value).strip()


def _bool(entry: dict[str, Any], key: str) -> bool:
    """Read an optional flag, accepting YAML booleans and `true`/`false` style strings."""

    value = entry.get(key)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off", ""}:
            return False
    raise ImportDocumentError(f"`{key}` must be a boolean, got {value!r}.")


def _int(entry: dict[str, Any], key: str, *, default: int) -> int:
    """Read an optional non-negative integer."""

    value = entry.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ImportDocumentError(f"`{key}` must be a non-negative integer, got {value!r}.")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ImportDocumentError(f"`{key}` must be a non-negative integer, got {value!r}.") from exc
    if parsed < 0 or (isinstance(value, float) and not value.is_integer()):
        raise ImportDocumentError(f"`{key}` must be a non-negative integer, got {value!r}.")
    return parsed


def _datetime(value: object) -> datetime | None:
    """Coerce YAML timestamps and ISO strings into aware datetimes."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value))
        if parsed is None:
            raise ImportDocumentError(f"Invalid datetime {value!r}.")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed

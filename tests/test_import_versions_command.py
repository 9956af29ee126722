"""Integration tests for the import_versions management command."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from mods.importer import ImportDocumentError, load_document
from mods.models import License, Mod, ModDependency, ModVersion, SptVersion

pytestmark = pytest.mark.integration

DOCUMENT = """
spt_versions:
  - version: "3.9.0"
    color_class: blue
  - version: "3.9.8"
    color_class: green
licenses:
  - name: MIT
    link: https://opensource.org/licenses/MIT
mods:
  - name: Shared Library
    slug: shared-library
    published_at: "2024-05-01T12:00:00Z"
    license: MIT
    versions:
      - version: "1.0.0"
        spt_version_constraint: "~3.9.0"
        downloads: 10
      - version: "1.2.0"
        spt_version_constraint: "~3.9.0"
        downloads: 5
  - name: Realism
    published_at: "2024-05-02T12:00:00Z"
    featured: true
    versions:
      - version: "2.0.0"
        spt_version_constraint: ">=3.9.0"
        dependencies:
          - mod: shared-library
            constraint: "^1.0.0"
"""


def _write(tmp_path: Path, text: str = DOCUMENT) -> Path:
    path = tmp_path / "catalog.yaml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.django_db
def test_import_versions_write_creates_rows(tmp_path: Path) -> None:
    """Write mode persists every row in the document."""

    out = StringIO()

    call_command("import_versions", str(_write(tmp_path)), "--write", stdout=out)

    assert set(SptVersion.objects.values_list("version", flat=True)) == {"3.9.0", "3.9.8"}
    library = Mod.all_objects.get(slug="shared-library")
    assert library.license == License.objects.get(name="MIT")
    assert library.downloads == 15
    assert ModVersion.objects.filter(mod=library).count() == 2
    realism = Mod.objects.get(slug="realism")
    assert realism.featured is True
    assert ModDependency.objects.get().dependency_mod == library
    assert "[WRITE] ImportSummary(spt_versions=2, licenses=1, mods=2, mod_versions=3, dependencies=1)" in out.getvalue()


@pytest.mark.django_db
def test_import_versions_check_does_not_write(tmp_path: Path) -> None:
    """Check mode validates the document and rolls everything back."""

    out = StringIO()

    call_command("import_versions", str(_write(tmp_path)), "--check", stdout=out)

    assert not SptVersion.objects.exists()
    assert not Mod.all_objects.exists()
    assert out.getvalue().startswith("[CHECK] ")


@pytest.mark.django_db
def test_import_versions_is_idempotent(tmp_path: Path) -> None:
    """Re-importing the same document updates rows in place."""

    path = _write(tmp_path)
    call_command("import_versions", str(path), "--write", stdout=StringIO())
    call_command("import_versions", str(path), "--write", stdout=StringIO())

    assert SptVersion.objects.count() == 2
    assert Mod.all_objects.count() == 2
    assert ModVersion.objects.count() == 3
    assert ModDependency.objects.count() == 1


@pytest.mark.django_db
def test_import_versions_resolve_links_spt_and_dependency_versions(tmp_path: Path) -> None:
    """`--resolve` runs the resolvers after writing."""

    out = StringIO()

    call_command("import_versions", str(_write(tmp_path)), "--write", "--resolve", stdout=out)

    realism_release = ModVersion.objects.get(mod__slug="realism")
    assert realism_release.latest_spt_version.version == "3.9.8"
    dependency = ModDependency.objects.get()
    assert sorted(dependency.resolved_versions.values_list("version", flat=True)) == ["1.0.0", "1.2.0"]
    assert "[WRITE] spt_versions:" in out.getvalue()


@pytest.mark.django_db
def test_import_versions_rejects_invalid_rows(tmp_path: Path) -> None:
    """Invalid versions abort the import without partial writes."""

    document = DOCUMENT.replace('version: "3.9.8"', 'version: "3.9"')

    with pytest.raises(CommandError):
        call_command("import_versions", str(_write(tmp_path, document)), "--write", stdout=StringIO())
    assert not SptVersion.objects.exists()


@pytest.mark.django_db
def test_import_versions_rejects_unknown_dependency(tmp_path: Path) -> None:
    """Dependencies must reference a known mod slug."""

    document = DOCUMENT.replace("mod: shared-library", "mod: missing-mod")

    with pytest.raises(CommandError, match="missing-mod"):
        call_command("import_versions", str(_write(tmp_path, document)), "--write", stdout=StringIO())
    assert not Mod.all_objects.exists()


@pytest.mark.django_db
def test_import_versions_requires_existing_file_and_mode(tmp_path: Path) -> None:
    """Missing files and missing modes are command errors."""

    with pytest.raises(CommandError):
        call_command("import_versions", str(tmp_path / "missing.yaml"), "--write", stdout=StringIO())
    with pytest.raises(CommandError):
        call_command("import_versions", str(_write(tmp_path)), stdout=StringIO())


@pytest.mark.parametrize("text", ["[1, 2]", "mods: {}", "spt_versions: [\n"])
def test_load_document_rejects_malformed_documents(text: str) -> None:
    """Documents with the wrong shape or invalid YAML are rejected."""

    with pytest.raises(ImportDocumentError):
        load_document(text)


@pytest.mark.django_db
@pytest.mark.parametrize(
    ("original", "replacement"),
    [
        ("downloads: 10", "downloads: lots"),
        ("downloads: 10", "downloads: -3"),
        ("featured: true", "featured: sometimes"),
    ],
)
def test_import_versions_rejects_badly_typed_fields(tmp_path: Path, original: str, replacement: str) -> None:
    """Badly typed counters and flags are command errors, not tracebacks."""

    document = DOCUMENT.replace(original, replacement)

    with pytest.raises(CommandError):
        call_command("import_versions", str(_write(tmp_path, document)), "--write", stdout=StringIO())
    assert not Mod.all_objects.exists()


@pytest.mark.django_db
def test_import_versions_reads_string_flags(tmp_path: Path) -> None:
    """Quoted `"false"` flags stay false."""

    document = DOCUMENT.replace("featured: true", 'featured: "false"')

    call_command("import_versions", str(_write(tmp_path, document)), "--write", stdout=StringIO())

    assert Mod.all_objects.get(slug="realism").featured is False


@pytest.mark.django_db
def test_import_versions_rejects_resolve_in_check_mode(tmp_path: Path) -> None:
    """`--resolve` only makes sense after a write."""

    with pytest.raises(CommandError, match="--resolve"):
        call_command("import_versions", str(_write(tmp_path)), "--check", "--resolve", stdout=StringIO())

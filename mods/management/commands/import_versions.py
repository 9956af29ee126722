"""Import SPT versions, mods and releases from a YAML document."""

from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from mods.importer import ImportDocumentError, import_document, load_document
from mods.services import forget_active_spt_versions, resolve_dependencies, resolve_spt_versions


class Command(BaseCommand):
    """Bulk-ingest catalog rows from YAML."""

    help = "Import SPT versions, mods and mod versions from a YAML document."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument("path", help="Path to the YAML document.")
        parser.add_argument(
            "--check",
            action="store_true",
            help="Dry-run: validate the document without writing.",
        )
        parser.add_argument(
            "--write",
            action="store_true",
            help="Write changes to the database.",
        )
        parser.add_argument(
            "--resolve",
            action="store_true",
            help="Resolve SPT and dependency versions after a successful write (requires --write).",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        path = Path(options["path"])
        check: bool = options["check"]
        write: bool = options["write"]

        if check and write:
            raise CommandError("Use either --check or --write, not both.")
        if not check and not write:
            raise CommandError("Refusing to write without explicit intent; pass --check or --write.")
        if check and options["resolve"]:
            raise CommandError("--resolve only applies to --write runs.")
        if not path.is_file():
            raise CommandError(f"File not found: {path}")

        try:
            payload = load_document(path.read_text(encoding="utf-8"))
            summary = import_document(payload, write=write)
        except ImportDocumentError as exc:
            raise CommandError(str(exc)) from exc

        mode = "CHECK" if check else "WRITE"
        self.stdout.write(f"[{mode}] {summary}")

        if write:
            forget_active_spt_versions()
            if options["resolve"]:
                spt_summary = resolve_spt_versions(write=True)
                dependency_summary = resolve_dependencies(write=True)
                self.stdout.write(f"[{mode}] spt_versions: {spt_summary}")
                self.stdout.write(f"[{mode}] dependencies: {dependency_summary}")
        return None

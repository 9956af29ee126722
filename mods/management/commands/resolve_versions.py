"""Resolve SPT versions, dependency versions and download rollups for all mods."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from mods.models import Mod
from mods.services import (
    forget_active_spt_versions,
    refresh_mod_downloads,
    resolve_dependencies,
    resolve_spt_versions,
)


class Command(BaseCommand):
    """Recompute persisted resolver results (idempotent)."""

    help = "Resolve SPT and dependency versions for all mods (idempotent)."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument(
            "--check",
            action="store_true",
            help="Dry-run: report what would change without writing.",
        )
        parser.add_argument(
            "--write",
            action="store_true",
            help="Write changes to the database.",
        )
        parser.add_argument(
            "--mod",
            type=int,
            default=None,
            help="Optional Mod id to restrict the run to.",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        check: bool = options["check"]
        write: bool = options["write"]
        mod_id: int | None = options["mod"]

        if check and write:
            raise CommandError("Use either --check or --write, not both.")
        if not check and not write:
            raise CommandError("Refusing to write without explicit intent; pass --check or --write.")
        if mod_id is not None and not Mod.all_objects.filter(pk=mod_id).exists():
            raise CommandError(f"Unknown mod id: {mod_id}")

        totals = {
            "spt_versions": resolve_spt_versions(write=write, mod_id=mod_id),
            "dependencies": resolve_dependencies(write=write, mod_id=mod_id),
            "downloads": refresh_mod_downloads(write=write, mod_id=mod_id),
        }
        if write:
            forget_active_spt_versions()

        mode = "CHECK" if check else "WRITE"
        for name, summary in totals.items():
            self.stdout.write(
                f"[{mode}] {name}: processed={summary.processed} updated={summary.updated} "
                f"unchanged={summary.unchanged} skipped={summary.skipped}"
            )
        return None

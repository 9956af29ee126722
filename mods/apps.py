"""Django app configuration for Mods."""

from __future__ import annotations

from django.apps import AppConfig


class ModsConfig(AppConfig):
    """AppConfig for mods, their releases and SPT versions."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "mods"

    def ready(self) -> None:
        """Register Mods signal handlers."""

        from mods import signals  # noqa: F401

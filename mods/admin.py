"""Admin registrations for Mods models."""

from __future__ import annotations

from django.contrib import admin
from django.db.models import QuerySet

from mods.models import License, Mod, ModDependency, ModVersion, SptVersion
from mods.services import active_spt_versions, latest_version, should_be_searchable
from versioning import VersioningError


@admin.register(SptVersion)
class SptVersionAdmin(admin.ModelAdmin):
    """Admin configuration for SptVersion."""

    list_display = ("version", "color_class", "is_active", "updated_at")
    search_fields = ("version",)

    @admin.display(boolean=True, description="Active")
    def is_active(self, obj: SptVersion) -> bool:
        """Return whether the version belongs to the active minor lines."""

        return obj.version in active_spt_versions()


@admin.register(License)
class LicenseAdmin(admin.ModelAdmin):
    """Admin configuration for License."""

    list_display = ("name", "link")
    search_fields = ("name",)


class ModVersionInline(admin.TabularInline):
    """Inline editor for a mod's releases."""

    model = ModVersion
    extra = 0
    fields = ("version", "spt_version_constraint", "latest_spt_version", "downloads", "disabled")
    readonly_fields = ("latest_spt_version",)
    show_change_link = True


@admin.register(Mod)
class ModAdmin(admin.ModelAdmin):
    """Admin configuration for Mod, including hidden and soft-deleted mods."""

    list_display = ("name", "slug", "featured", "disabled", "published_at", "downloads", "latest", "searchable")
    list_filter = ("featured", "disabled", "contains_ai_content", "contains_ads")
    search_fields = ("name", "slug", "teaser")
    readonly_fields = ("downloads", "deleted_at", "created_at", "updated_at")
    filter_horizontal = ("authors",)
    inlines = (ModVersionInline,)
    actions = ("soft_delete_selected", "restore_selected")

    def get_queryset(self, request) -> QuerySet:
        """Return every mod regardless of visibility."""

        return Mod.all_objects.prefetch_related("versions")

    @admin.display(description="Latest version")
    def latest(self, obj: Mod) -> str:
        """Return the latest compatible release, if any."""

        try:
            version = latest_version(obj)
        except VersioningError:
            return "invalid"
        return version.version if version is not None else "-"

    @admin.display(boolean=True, description="Searchable")
    def searchable(self, obj: Mod) -> bool:
        """Return whether the mod passes the visibility gate."""

        return should_be_searchable(obj)

    @admin.action(description="Soft delete selected mods")
    def soft_delete_selected(self, request, queryset: QuerySet) -> None:
        """Soft delete the selected mods."""

        for mod in queryset:
            mod.soft_delete()

    @admin.action(description="Restore selected mods")
    def restore_selected(self, request, queryset: QuerySet) -> None:
        """Restore soft-deleted mods."""

        for mod in queryset:
            mod.restore()


@admin.register(ModVersion)
class ModVersionAdmin(admin.ModelAdmin):
    """Admin configuration for ModVersion."""

    list_display = ("mod", "version", "spt_version_constraint", "latest_spt_version", "downloads", "updated_at")
    list_filter = ("disabled", "latest_spt_version")
    search_fields = ("mod__name", "version", "spt_version_constraint")
    readonly_fields = ("spt_versions", "latest_spt_version", "created_at", "updated_at")
    list_select_related = ("mod", "latest_spt_version")


@admin.register(ModDependency)
class ModDependencyAdmin(admin.ModelAdmin):
    """Admin configuration for ModDependency."""

    list_display = ("mod_version", "dependency_mod", "constraint")
    search_fields = ("mod_version__mod__name", "dependency_mod__name", "constraint")
    readonly_fields = ("resolved_versions",)

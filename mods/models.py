"""Database models for SPT versions, mods and their releases."""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from versioning import EngineVersion, MalformedVersion, ModVersionSnapshot, UnsupportedConstraint
from versioning import parse_constraint, parse_version


def _validate_version(value: str) -> None:
    """Reject strings that do not parse as semantic versions."""

    try:
        parse_version(value)
    except MalformedVersion as exc:
        raise ValidationError(str(exc)) from exc


def _validate_constraint(value: str) -> None:
    """Reject constraint expressions outside the supported grammar."""

    try:
        parse_constraint(value)
    except UnsupportedConstraint as exc:
        raise ValidationError(str(exc)) from exc


class SptVersion(models.Model):
    """A published SPT release that mods declare compatibility against."""

    version = models.CharField(max_length=32, unique=True, validators=[_validate_version])
    color_class = models.CharField(
        max_length=32,
        blank=True,
        default="",
        help_text="CSS color hint used when rendering the version badge.",
    )
    link = models.URLField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "SPT Version"
        verbose_name_plural = "SPT Versions"

    def __str__(self) -> str:
        """Return the raw version string."""

        return self.version

    def save(self, *args, **kwargs) -> None:
        """Save after validating the version string."""

        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def version_formatted(self) -> str:
        """Return the version rendered for badges (e.g. `SPT 3.9.8`)."""

        return self.to_engine_version().version_formatted

    def to_engine_version(self) -> EngineVersion:
        """Return an immutable resolver snapshot of this row."""

        return EngineVersion(version=self.version, color_class=self.color_class, id=self.pk)


class License(models.Model):
    """A license a mod can be published under."""

    name = models.CharField(max_length=120, unique=True)
    link = models.URLField(blank=True, default="")

    def __str__(self) -> str:
        """Return the license name."""

        return self.name


class ModQuerySet(models.QuerySet):
    """QuerySet helpers shared by the scoped and unscoped Mod managers."""

    def visible(self) -> "ModQuerySet":
        """Exclude disabled, unpublished, scheduled and soft-deleted mods."""

        return self.filter(
            disabled=False,
            published_at__isnull=False,
            published_at__lte=timezone.now(),
            deleted_at__isnull=True,
        )

    def only_trashed(self) -> "ModQuerySet":
        """Return only soft-deleted mods."""

        return self.filter(deleted_at__isnull=False)


class VisibleModManager(models.Manager.from_queryset(ModQuerySet)):  # type: ignore[misc]
    """Manager that only returns publicly visible mods."""

    def get_queryset(self) -> ModQuerySet:
        return super().get_queryset().visible()


class Mod(models.Model):
    """A mod listed on the platform.

    `Mod.objects` only returns publicly visible mods; use `Mod.all_objects`
    for moderation and background jobs.
    """

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    teaser = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    thumbnail = models.CharField(max_length=255, blank=True, default="")
    license = models.ForeignKey(License, on_delete=models.SET_NULL, null=True, blank=True, related_name="mods")
    authors = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name="mods")
    source_code_link = models.URLField(blank=True, default="")
    featured = models.BooleanField(default=False)
    contains_ai_content = models.BooleanField(default=False)
    contains_ads = models.BooleanField(default=False)
    disabled = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True, editable=False)
    downloads = models.PositiveBigIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    all_objects = ModQuerySet.as_manager()
    objects = VisibleModManager()

    class Meta:
        default_manager_name = "all_objects"

    def __str__(self) -> str:
        """Return the mod name."""

        return self.name

    def save(self, *args, **kwargs) -> None:
        """Save with a lower-cased, slugified slug."""

        self.slug = slugify(self.slug or self.name).lower()
        super().save(*args, **kwargs)

    def soft_delete(self) -> None:
        """Hide the mod everywhere without removing its rows."""

        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at"])

    def restore(self) -> None:
        """Undo a soft delete."""

        self.deleted_at = None
        self.save(update_fields=["deleted_at"])

    def calculate_downloads(self) -> int:
        """Roll release download counters up to the mod and persist quietly.

        Every release counts, including ones without a compatible SPT version.
        """

        total = self.versions.aggregate(total=models.Sum("downloads"))["total"] or 0
        Mod.all_objects.filter(pk=self.pk).update(downloads=total)
        self.downloads = total
        return total


class ModVersion(models.Model):
    """One published release of a mod."""

    mod = models.ForeignKey(Mod, on_delete=models.CASCADE, related_name="versions")
    version = models.CharField(max_length=64, validators=[_validate_version])
    description = models.TextField(blank=True, default="")
    link = models.URLField(blank=True, default="")
    spt_version_constraint = models.CharField(max_length=128, validators=[_validate_constraint])
    downloads = models.PositiveBigIntegerField(default=0)
    disabled = models.BooleanField(default=False)
    spt_versions = models.ManyToManyField(
        SptVersion,
        blank=True,
        related_name="mod_versions",
        help_text="SPT versions satisfying the constraint, as of the last resolve run.",
    )
    latest_spt_version = models.ForeignKey(
        SptVersion,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="latest_for_mod_versions",
        help_text="Highest SPT version satisfying the constraint, as of the last resolve run.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Mod Version"
        verbose_name_plural = "Mod Versions"
        indexes = [models.Index(fields=["mod", "updated_at"], name="mod_version_updated_idx")]

    def __str__(self) -> str:
        """Return a concise display string for admin/debug usage."""

        return f"{self.mod_id}@{self.version}"

    def save(self, *args, **kwargs) -> None:
        """Save after validating the version and constraint strings."""

        self.full_clean()
        super().save(*args, **kwargs)

    def to_snapshot(self) -> ModVersionSnapshot:
        """Return an immutable resolver snapshot of this row."""

        return ModVersionSnapshot(
            version=self.version,
            spt_version_constraint=self.spt_version_constraint,
            updated_at=self.updated_at,
            downloads=self.downloads,
            id=self.pk,
        )


class ModDependency(models.Model):
    """A release's declared dependency on another mod."""

    mod_version = models.ForeignKey(ModVersion, on_delete=models.CASCADE, related_name="dependencies")
    dependency_mod = models.ForeignKey(Mod, on_delete=models.CASCADE, related_name="dependents")
    constraint = models.CharField(max_length=128, validators=[_validate_constraint])
    resolved_versions = models.ManyToManyField(
        ModVersion,
        blank=True,
        related_name="dependent_resolutions",
        help_text="Releases of the dependency satisfying the constraint, as of the last resolve run.",
    )

    class Meta:
        verbose_name = "Mod Dependency"
        verbose_name_plural = "Mod Dependencies"
        constraints = [
            models.UniqueConstraint(
                fields=["mod_version", "dependency_mod"],
                name="uniq_mod_version_dependency",
            ),
        ]

    def __str__(self) -> str:
        """Return a concise display string for admin/debug usage."""

        return f"ModDependency(mod_version={self.mod_version_id}, dependency_mod={self.dependency_mod_id})"

    def clean(self) -> None:
        """Reject self-dependencies."""

        if self.mod_version_id and self.mod_version.mod_id == self.dependency_mod_id:
            raise ValidationError("A mod version cannot depend on its own mod.")

    def save(self, *args, **kwargs) -> None:
        """Save while enforcing dependency invariants."""

        self.full_clean()
        super().save(*args, **kwargs)

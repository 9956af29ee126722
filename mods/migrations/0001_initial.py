"""Initial schema for SPT versions, mods, releases and dependencies."""

from __future__ import annotations

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import mods.models


class Migration(migrations.Migration):
    """Create the mods app tables."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="License",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120, unique=True)),
                ("link", models.URLField(blank=True, default="")),
            ],
        ),
        migrations.CreateModel(
            name="SptVersion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "version",
                    models.CharField(max_length=32, unique=True, validators=[mods.models._validate_version]),
                ),
                (
                    "color_class",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="CSS color hint used when rendering the version badge.",
                        max_length=32,
                    ),
                ),
                ("link", models.URLField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "SPT Version",
                "verbose_name_plural": "SPT Versions",
            },
        ),
        migrations.CreateModel(
            name="Mod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255)),
                ("teaser", models.CharField(blank=True, default="", max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("thumbnail", models.CharField(blank=True, default="", max_length=255)),
                ("source_code_link", models.URLField(blank=True, default="")),
                ("featured", models.BooleanField(default=False)),
                ("contains_ai_content", models.BooleanField(default=False)),
                ("contains_ads", models.BooleanField(default=False)),
                ("disabled", models.BooleanField(default=False)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("deleted_at", models.DateTimeField(blank=True, editable=False, null=True)),
                ("downloads", models.PositiveBigIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "license",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="mods",
                        to="mods.license",
                    ),
                ),
                (
                    "authors",
                    models.ManyToManyField(blank=True, related_name="mods", to=settings.AUTH_USER_MODEL),
                ),
            ],
            options={
                "default_manager_name": "all_objects",
            },
            managers=[
                ("all_objects", models.Manager()),
            ],
        ),
        migrations.CreateModel(
            name="ModVersion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("version", models.CharField(max_length=64, validators=[mods.models._validate_version])),
                ("description", models.TextField(blank=True, default="")),
                ("link", models.URLField(blank=True, default="")),
                (
                    "spt_version_constraint",
                    models.CharField(max_length=128, validators=[mods.models._validate_constraint]),
                ),
                ("downloads", models.PositiveBigIntegerField(default=0)),
                ("disabled", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "mod",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="versions",
                        to="mods.mod",
                    ),
                ),
                (
                    "latest_spt_version",
                    models.ForeignKey(
                        blank=True,
                        help_text="Highest SPT version satisfying the constraint, as of the last resolve run.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="latest_for_mod_versions",
                        to="mods.sptversion",
                    ),
                ),
                (
                    "spt_versions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="SPT versions satisfying the constraint, as of the last resolve run.",
                        related_name="mod_versions",
                        to="mods.sptversion",
                    ),
                ),
            ],
            options={
                "verbose_name": "Mod Version",
                "verbose_name_plural": "Mod Versions",
                "indexes": [models.Index(fields=["mod", "updated_at"], name="mod_version_updated_idx")],
            },
        ),
        migrations.CreateModel(
            name="ModDependency",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("constraint", models.CharField(max_length=128, validators=[mods.models._validate_constraint])),
                (
                    "dependency_mod",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dependents",
                        to="mods.mod",
                    ),
                ),
                (
                    "mod_version",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dependencies",
                        to="mods.modversion",
                    ),
                ),
                (
                    "resolved_versions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Releases of the dependency satisfying the constraint, as of the last resolve run.",
                        related_name="dependent_resolutions",
                        to="mods.modversion",
                    ),
                ),
            ],
            options={
                "verbose_name": "Mod Dependency",
                "verbose_name_plural": "Mod Dependencies",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("mod_version", "dependency_mod"),
                        name="uniq_mod_version_dependency",
                    )
                ],
            },
        ),
    ]

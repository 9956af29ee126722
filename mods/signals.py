"""Signals keeping cached resolver snapshots in step with the SPT catalog."""

from __future__ import annotations

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from mods.models import SptVersion
from mods.services import forget_active_spt_versions

logger = logging.getLogger(__name__)


@receiver(post_save, sender=SptVersion)
@receiver(post_delete, sender=SptVersion)
def forget_active_spt_versions_on_catalog_change(sender, instance: SptVersion, **kwargs) -> None:
    """Drop the cached active SPT versions whenever the catalog changes.

    A newly published SPT version can retire older minor lines, so every mod's
    visibility gate must be re-evaluated against a fresh snapshot.
    """

    if kwargs.get("raw", False):
        return

    logger.debug("SPT catalog changed (version=%s); forgetting active versions", instance.version)
    forget_active_spt_versions()

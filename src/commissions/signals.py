"""Signals: drop cached reports when sales, collections or rules change."""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from commissions.models import CollectionRecord, CommissionRule, SalesRecord

logger = logging.getLogger(__name__)


def _invalidate_reports() -> None:
    from reports.services import invalidate_report_cache

    invalidate_report_cache()


@receiver(post_save, sender=SalesRecord)
@receiver(post_delete, sender=SalesRecord)
@receiver(post_save, sender=CollectionRecord)
@receiver(post_delete, sender=CollectionRecord)
@receiver(post_save, sender=CommissionRule)
@receiver(post_delete, sender=CommissionRule)
def on_commission_data_changed(sender, instance, **kwargs):
    logger.debug("%s %s changed, report cache invalidated on commit.", sender.__name__, instance.pk)
    # Outside an atomic block on_commit runs the callback immediately.
    transaction.on_commit(_invalidate_reports)

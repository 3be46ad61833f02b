"""Celery tasks for the reports app."""
import logging

from celery import shared_task
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger("tracker")


@shared_task(name="reports.tasks.warm_current_period_report")
def warm_current_period_report():
    """Rebuild and cache the commission report of the current month.

    Runs hourly (see ``config/celery.py`` beat schedule).
    """
    from reports.services import build_period_report, report_cache_key

    today = timezone.localdate()
    report = build_period_report(today.year, today.month)

    timeout = getattr(settings, "COMMISSION_REPORT_CACHE_SECONDS", 300)
    if timeout > 0:
        cache.set(report_cache_key(today.year, today.month), report, timeout)

    summary = report["summary"]
    logger.info(
        "Rapport %04d-%02d prechauffe: %d commercial(aux), commission totale %s.",
        today.year,
        today.month,
        summary["representatives_count"],
        summary["total_commission"],
    )
    return {
        "year": today.year,
        "month": today.month,
        "representatives": summary["representatives_count"],
    }

"""Service functions for the reports app.

These functions load sales, collections, audits and commission rules from the
database, hand immutable snapshots to ``commissions.aggregation`` and shape
the result as JSON-ready dicts, so that views stay thin and the same payloads
can be rebuilt from Celery tasks. Money and percentages are rounded to the
cent here, once, at the edge.
"""
import logging
import uuid

from django.conf import settings
from django.core.cache import cache

from commissions.aggregation import (
    DEFAULT_WEIGHTS,
    PeriodRange,
    PeriodSummary,
    ScoreWeights,
    aggregate_period,
    compare_periods,
    distribute_net_sales,
    filter_records,
    period_highlights,
    rank_by_balanced_score,
    summarize_by_category,
    summarize_by_month,
)
from commissions.engine import ZERO, achievement_percentage, quantize_money
from commissions.models import CollectionRecord, FinancialAudit, Representative, SalesRecord
from commissions.services import (
    audit_entry_from_record,
    collection_entry_from_record,
    load_tier_rates,
    sales_entry_from_record,
)
from core.export import rows_to_csv_response

logger = logging.getLogger("tracker")

REPORT_CACHE_PREFIX = "commissions:report"
_GENERATION_KEY = f"{REPORT_CACHE_PREFIX}:generation"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _filter_period(queryset, *, year=None, month=None, period_range=None, representative_id=None):
    if year is not None:
        queryset = queryset.filter(year=year)
    if month is not None:
        queryset = queryset.filter(month=month)
    if period_range is not None:
        # Coarse filter in SQL, exact (year, month) bounds applied in Python.
        queryset = queryset.filter(
            year__gte=period_range.start.year,
            year__lte=period_range.end.year,
        )
    if representative_id is not None:
        queryset = queryset.filter(representative_id=representative_id)
    return queryset


def load_snapshot(*, year=None, month=None, period_range=None, representative_id=None):
    """Return ``(sales_entries, collection_entries, tier_rates)`` for a slice."""
    filters = {
        "year": year,
        "month": month,
        "period_range": period_range,
        "representative_id": representative_id,
    }
    sales_qs = _filter_period(
        SalesRecord.objects.select_related("representative", "company"), **filters,
    ).order_by("representative__name", "year", "month", "category")
    collections_qs = _filter_period(
        CollectionRecord.objects.select_related("representative"), **filters,
    ).order_by("representative__name", "year", "month")

    sales = [sales_entry_from_record(record) for record in sales_qs]
    collections = [collection_entry_from_record(record) for record in collections_qs]
    if period_range is not None:
        sales = filter_records(sales, period_range)
        collections = filter_records(collections, period_range)
    return sales, collections, load_tier_rates()


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def _summary_payload(summary: PeriodSummary) -> dict:
    return {
        "total_sales": quantize_money(summary.total_sales),
        "total_target": quantize_money(summary.total_target),
        "total_collection": quantize_money(summary.total_collection),
        "total_commission": quantize_money(summary.total_commission),
        "achievement_percentage": quantize_money(summary.achievement_percentage),
        "collection_rate": quantize_money(summary.collection_rate),
    }


def _totals_payload(summary: PeriodSummary) -> dict:
    return {
        "sales": quantize_money(summary.total_sales),
        "target": quantize_money(summary.total_target),
        "collection": quantize_money(summary.total_collection),
        "commission": quantize_money(summary.total_commission),
        "achievement_percentage": quantize_money(summary.achievement_percentage),
        "collection_rate": quantize_money(summary.collection_rate),
    }


def _detail_payload(detail) -> dict:
    entry = detail.entry
    return {
        "id": entry.record_id,
        "company_id": entry.company_id,
        "company_name": entry.company_name,
        "category": entry.category,
        "sales": quantize_money(entry.sales),
        "target": quantize_money(entry.target),
        "achievement_percentage": quantize_money(detail.achievement_percentage),
        "commission": detail.commission.as_dict(),
        "year": entry.year,
        "month": entry.month,
    }


def _collection_payload(entry) -> dict:
    return {
        "id": entry.record_id,
        "amount": quantize_money(entry.amount),
        "year": entry.year,
        "month": entry.month,
    }


def _period_payload(year, month) -> dict:
    return {"year": year, "month": month}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def build_period_report(year=None, month=None) -> dict:
    """Overall and per-representative totals for a month (or any slice).

    Without ``year``/``month`` every record is included.
    """
    sales, collections, rules = load_snapshot(year=year, month=month)
    aggregate = aggregate_period(sales, collections, rules)

    representatives = []
    for rep_id, summary in aggregate.per_representative.items():
        representatives.append({
            "representative_id": rep_id,
            "representative_name": summary.label,
            "totals": _totals_payload(summary),
            "sales_details": [_detail_payload(d) for d in aggregate.sales_details.get(rep_id, ())],
            "collection_records": [
                _collection_payload(c) for c in aggregate.collections.get(rep_id, ())
            ],
        })

    summary = _summary_payload(aggregate.overall)
    summary["representatives_count"] = len(representatives)
    return {
        "period": _period_payload(year, month),
        "summary": summary,
        "representatives": representatives,
    }


def build_representative_report(representative_id, year=None, month=None) -> dict:
    """Report for one representative.

    Raises ``Representative.DoesNotExist`` for an unknown id.
    """
    representative = Representative.objects.get(pk=representative_id)
    rep_key = str(representative.pk)

    sales, collections, rules = load_snapshot(
        year=year, month=month, representative_id=representative.pk,
    )
    aggregate = aggregate_period(sales, collections, rules)
    summary = aggregate.per_representative.get(
        rep_key, PeriodSummary(key=rep_key, label=representative.name),
    )

    return {
        "representative_id": rep_key,
        "representative_name": representative.name,
        "period": _period_payload(year, month),
        "summary": _summary_payload(summary),
        "sales_details": [_detail_payload(d) for d in aggregate.sales_details.get(rep_key, ())],
        "collection_records": [
            _collection_payload(c) for c in aggregate.collections.get(rep_key, ())
        ],
    }


def _highlight_payload(summary: PeriodSummary | None) -> dict | None:
    if summary is None:
        return None
    return {
        "key": summary.key,
        "label": summary.label,
        "total_sales": quantize_money(summary.total_sales),
        "achievement_percentage": quantize_money(summary.achievement_percentage),
    }


def build_period_analysis(period_range: PeriodRange) -> dict:
    """Compare a range of months with the range of equal length just before it."""
    previous_range = period_range.previous()
    sales, collections, rules = load_snapshot(
        period_range=PeriodRange(previous_range.start, period_range.end),
    )

    current_sales = filter_records(sales, period_range)
    current_collections = filter_records(collections, period_range)
    current = aggregate_period(current_sales, current_collections, rules)
    previous = aggregate_period(
        filter_records(sales, previous_range),
        filter_records(collections, previous_range),
        rules,
    )

    by_category = summarize_by_category(current_sales, rules)
    monthly = summarize_by_month(current_sales, current_collections, rules)
    highlights = period_highlights(current.per_representative, by_category)
    changes = compare_periods(current.overall, previous.overall)

    logger.debug(
        "Analyse %s..%s: %d commercial(aux), %d ligne(s) de vente.",
        period_range.start, period_range.end,
        len(current.per_representative), len(current_sales),
    )

    return {
        "range": {"start": str(period_range.start), "end": str(period_range.end)},
        "previous_range": {"start": str(previous_range.start), "end": str(previous_range.end)},
        "current": _summary_payload(current.overall),
        "previous": _summary_payload(previous.overall),
        "changes": {key: quantize_money(value) for key, value in changes.as_dict().items()},
        "highlights": {
            "top_seller": _highlight_payload(highlights.top_seller),
            "top_category": _highlight_payload(highlights.top_category),
            "lowest_performer": _highlight_payload(highlights.lowest_performer),
        },
        "categories": [
            {"category": key, **_totals_payload(summary)} for key, summary in by_category.items()
        ],
        "monthly": [
            {"period": str(period), **_totals_payload(monthly.get(str(period), PeriodSummary()))}
            for period in period_range.months()
        ],
    }


def build_balanced_ranking(year=None, month=None, weights: ScoreWeights = DEFAULT_WEIGHTS) -> dict:
    """Rank representatives on achievement, sales and collection together."""
    aggregate = aggregate_period(*load_snapshot(year=year, month=month))
    ranked = rank_by_balanced_score(aggregate.per_representative.values(), weights)
    return {
        "period": _period_payload(year, month),
        "weights": {
            "achievement": weights.achievement,
            "sales": weights.sales,
            "collection": weights.collection,
        },
        "ranking": [
            {
                "rank": row.rank,
                "representative_id": row.summary.key,
                "representative_name": row.summary.label,
                **_totals_payload(row.summary),
                "sales_norm": quantize_money(row.sales_norm),
                "collection_norm": quantize_money(row.collection_norm),
                "attainment_score": quantize_money(row.attainment_score),
                "sales_score": quantize_money(row.sales_score),
                "collection_score": quantize_money(row.collection_score),
                "balanced_score": quantize_money(row.balanced_score),
            }
            for row in ranked
        ],
    }


# ---------------------------------------------------------------------------
# Net sales
# ---------------------------------------------------------------------------

def load_audits(*, year=None, month=None, representative_id=None) -> list:
    queryset = _filter_period(
        FinancialAudit.objects.select_related("discount_item"),
        year=year, month=month, representative_id=representative_id,
    )
    return [audit_entry_from_record(audit) for audit in queryset]


def build_net_sales_report(year=None, month=None, representative_id=None) -> dict:
    """Sales rows with their share of the audited net sales.

    Rows come ordered by representative, company, most recent month first,
    then category. A group without an audit keeps its gross sales as net.
    """
    sales_qs = _filter_period(
        SalesRecord.objects.select_related("representative", "company"),
        year=year, month=month, representative_id=representative_id,
    ).order_by("representative__name", "company__name", "-year", "-month", "category")
    sales = [sales_entry_from_record(record) for record in sales_qs]
    audits = load_audits(year=year, month=month, representative_id=representative_id)
    lines = distribute_net_sales(sales, audits)

    rows = []
    for line in lines:
        entry = line.entry
        rows.append({
            "id": entry.record_id,
            "representative_id": entry.representative_id,
            "representative_name": entry.representative_name,
            "company_id": entry.company_id,
            "company_name": entry.company_name,
            "category": entry.category,
            "year": entry.year,
            "month": entry.month,
            "sales": quantize_money(entry.sales),
            "net_total_sales": quantize_money(line.net_total_sales),
            "net_sales": quantize_money(line.net_sales),
            "net_percentage": quantize_money(line.net_percentage),
            "has_financial_audit": line.audit is not None,
        })

    total_sales = sum((line.entry.sales for line in lines), ZERO)
    net_sales = sum((line.net_sales for line in lines), ZERO)
    return {
        "period": _period_payload(year, month),
        "summary": {
            "total_sales": quantize_money(total_sales),
            "net_sales": quantize_money(net_sales),
            "net_percentage": quantize_money(achievement_percentage(net_sales, total_sales)),
            "total_deductions": quantize_money(sum((a.total_deductions for a in audits), ZERO)),
            "total_discount": quantize_money(sum((a.discount_value for a in audits), ZERO)),
            "audits_count": len(audits),
        },
        "lines": rows,
    }


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

def _cache_generation() -> str:
    generation = cache.get(_GENERATION_KEY)
    if generation is None:
        cache.add(_GENERATION_KEY, uuid.uuid4().hex, timeout=None)
        generation = cache.get(_GENERATION_KEY)
    return generation


def report_cache_key(year=None, month=None) -> str:
    return f"{REPORT_CACHE_PREFIX}:{_cache_generation()}:{year or 'all'}:{month or 'all'}"


def invalidate_report_cache() -> None:
    """Orphan every cached report by rotating the key generation."""
    cache.set(_GENERATION_KEY, uuid.uuid4().hex, timeout=None)


def get_cached_period_report(year=None, month=None) -> dict:
    timeout = getattr(settings, "COMMISSION_REPORT_CACHE_SECONDS", 300)
    if timeout <= 0:
        return build_period_report(year, month)

    key = report_cache_key(year, month)
    report = cache.get(key)
    if report is None:
        report = build_period_report(year, month)
        cache.set(key, report, timeout)
    return report


# ---------------------------------------------------------------------------
# Export helpers
# ---------------------------------------------------------------------------

REPORT_CSV_COLUMNS = [
    ("representative_name", "Commercial"),
    ("company_name", "Societe"),
    ("category", "Categorie"),
    ("year", "Annee"),
    ("month", "Mois"),
    ("sales", "Ventes"),
    ("target", "Objectif"),
    ("achievement_percentage", "Realisation %"),
    (lambda row: row["commission"]["tier1_commission"], "Commission palier 1"),
    (lambda row: row["commission"]["tier2_commission"], "Commission palier 2"),
    (lambda row: row["commission"]["tier3_commission"], "Commission palier 3"),
    (lambda row: row["commission"]["total_commission"], "Commission totale"),
]


def export_period_report_csv(year=None, month=None):
    """Flatten the period report to one CSV row per sales detail."""
    report = build_period_report(year, month)
    rows = [
        {"representative_name": rep["representative_name"], **detail}
        for rep in report["representatives"]
        for detail in rep["sales_details"]
    ]
    suffix = f"{year or 'tout'}_{month or 'tout'}"
    return rows_to_csv_response(rows, REPORT_CSV_COLUMNS, f"commissions_{suffix}")

"""
Aggregation of sales, targets, collections, commissions and net sales.

Works on immutable snapshots (``SalesEntry``, ``CollectionEntry``,
``TierRates``, ``AuditEntry``) that the report layer builds from the
database, and returns freshly built summaries. Nothing here touches the
ORM or keeps state between calls, so report requests can share it freely.

Missing reference data never raises: a category without a rule earns zero
commission, a representative without collections has zero collected.
Commissions are rounded per record by the engine and then summed.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from decimal import Decimal

from commissions.engine import (
    HUNDRED,
    ZERO,
    CommissionBreakdown,
    achievement_percentage,
    calculate_commission,
    is_greater,
    quantize_money,
    to_decimal,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Input snapshots
# ------------------------------------------------------------------

@dataclass(frozen=True)
class SalesEntry:
    """One sales row: representative x company x category x month."""

    representative_id: str
    category: str
    sales: Decimal
    target: Decimal
    year: int
    month: int
    representative_name: str = ""
    company_id: str | None = None
    company_name: str = ""
    record_id: str | None = None


@dataclass(frozen=True)
class CollectionEntry:
    """Amount collected by one representative for one month."""

    representative_id: str
    amount: Decimal
    year: int
    month: int
    representative_name: str = ""
    company_id: str | None = None
    record_id: str | None = None


@dataclass(frozen=True)
class TierRates:
    category: str
    tier1_rate: Decimal
    tier2_rate: Decimal
    tier3_rate: Decimal


def index_rules(rules: Iterable[TierRates] | Mapping[str, TierRates]) -> dict[str, TierRates]:
    """Key rules by category. The first rule seen for a category wins."""
    if isinstance(rules, Mapping):
        return dict(rules)
    indexed: dict[str, TierRates] = {}
    for rule in rules:
        indexed.setdefault(rule.category, rule)
    return indexed


def commission_for(entry: SalesEntry, rules_by_category: Mapping[str, TierRates]) -> CommissionBreakdown:
    rule = rules_by_category.get(entry.category)
    if rule is None:
        logger.debug("No commission rule for category %r, counting zero.", entry.category)
        return CommissionBreakdown()
    return calculate_commission(
        entry.sales,
        entry.target,
        rule.tier1_rate,
        rule.tier2_rate,
        rule.tier3_rate,
    )


# ------------------------------------------------------------------
# Periods
# ------------------------------------------------------------------

@dataclass(frozen=True, order=True)
class Period:
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Mois invalide: {self.month}")

    def __str__(self):
        return period_key(self.year, self.month)

    @property
    def index(self) -> int:
        return self.year * 12 + self.month - 1

    @classmethod
    def from_index(cls, index: int) -> Period:
        year, month0 = divmod(index, 12)
        return cls(year, month0 + 1)

    @classmethod
    def parse(cls, value: str) -> Period:
        """Parse a ``YYYY-MM`` key."""
        try:
            year, month = value.split("-")
            return cls(int(year), int(month))
        except (AttributeError, ValueError) as exc:
            raise ValueError(f"Periode invalide: {value!r} (attendu AAAA-MM)") from exc

    def shift(self, months: int) -> Period:
        return Period.from_index(self.index + months)


@dataclass(frozen=True)
class PeriodRange:
    """Inclusive range of months."""

    start: Period
    end: Period

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError("La periode de debut doit preceder la periode de fin.")

    @classmethod
    def single(cls, year: int, month: int) -> PeriodRange:
        period = Period(year, month)
        return cls(period, period)

    @property
    def length(self) -> int:
        return self.end.index - self.start.index + 1

    def contains(self, year: int, month: int) -> bool:
        return self.start.index <= year * 12 + month - 1 <= self.end.index

    def months(self) -> list[Period]:
        return [Period.from_index(i) for i in range(self.start.index, self.end.index + 1)]

    def previous(self) -> PeriodRange:
        """Range of the same length ending the month before ``start``."""
        return PeriodRange(self.start.shift(-self.length), self.start.shift(-1))


def period_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def filter_records(records, period_range: PeriodRange) -> list:
    return [r for r in records if period_range.contains(r.year, r.month)]


# ------------------------------------------------------------------
# Summaries
# ------------------------------------------------------------------

@dataclass(frozen=True)
class PeriodSummary:
    """Totals for one representative, category or month, or for everything.

    ``key`` is the grouping value (representative id, category, ``YYYY-MM``)
    and is None for the overall summary.
    """

    total_sales: Decimal = ZERO
    total_target: Decimal = ZERO
    total_collection: Decimal = ZERO
    total_commission: Decimal = ZERO
    key: str | None = None
    label: str = ""

    @property
    def achievement_percentage(self) -> Decimal:
        return achievement_percentage(self.total_sales, self.total_target)

    @property
    def collection_rate(self) -> Decimal:
        if self.total_sales == 0:
            return ZERO
        return self.total_collection / self.total_sales * HUNDRED


@dataclass
class _Totals:
    key: str | None = None
    label: str = ""
    sales: Decimal = ZERO
    target: Decimal = ZERO
    collection: Decimal = ZERO
    commission: Decimal = ZERO

    def freeze(self) -> PeriodSummary:
        return PeriodSummary(
            total_sales=self.sales,
            total_target=self.target,
            total_collection=self.collection,
            total_commission=self.commission,
            key=self.key,
            label=self.label,
        )


def _totals_for(groups: dict[str, _Totals], key: str, label: str = "") -> _Totals:
    totals = groups.get(key)
    if totals is None:
        totals = groups[key] = _Totals(key=key, label=label)
    elif label and not totals.label:
        totals.label = label
    return totals


def combine_summaries(summaries: Iterable[PeriodSummary]) -> PeriodSummary:
    totals = _Totals()
    for summary in summaries:
        totals.sales += summary.total_sales
        totals.target += summary.total_target
        totals.collection += summary.total_collection
        totals.commission += summary.total_commission
    return totals.freeze()


@dataclass(frozen=True)
class SalesDetail:
    entry: SalesEntry
    commission: CommissionBreakdown

    @property
    def achievement_percentage(self) -> Decimal:
        return achievement_percentage(self.entry.sales, self.entry.target)


@dataclass(frozen=True)
class PeriodAggregate:
    per_representative: dict[str, PeriodSummary]
    overall: PeriodSummary
    sales_details: dict[str, tuple[SalesDetail, ...]] = field(default_factory=dict)
    collections: dict[str, tuple[CollectionEntry, ...]] = field(default_factory=dict)


def aggregate_period(
    sales_records: Iterable[SalesEntry],
    collection_records: Iterable[CollectionEntry],
    commission_rules: Iterable[TierRates] | Mapping[str, TierRates],
) -> PeriodAggregate:
    """Group records by representative and total them.

    The engine runs once per sales record. Representatives that only have
    collections in the slice are included with zero sales and commission.
    Representatives keep the order in which they first appear.
    """
    rules = index_rules(commission_rules)
    groups: dict[str, _Totals] = {}
    details: dict[str, list[SalesDetail]] = {}
    collections: dict[str, list[CollectionEntry]] = {}

    for entry in sales_records:
        breakdown = commission_for(entry, rules)
        totals = _totals_for(groups, entry.representative_id, entry.representative_name)
        totals.sales += to_decimal(entry.sales)
        totals.target += to_decimal(entry.target)
        totals.commission += breakdown.total_commission
        details.setdefault(entry.representative_id, []).append(SalesDetail(entry, breakdown))

    for record in collection_records:
        totals = _totals_for(groups, record.representative_id, record.representative_name)
        totals.collection += to_decimal(record.amount)
        collections.setdefault(record.representative_id, []).append(record)

    per_representative = {key: totals.freeze() for key, totals in groups.items()}
    return PeriodAggregate(
        per_representative=per_representative,
        overall=combine_summaries(per_representative.values()),
        sales_details={key: tuple(rows) for key, rows in details.items()},
        collections={key: tuple(rows) for key, rows in collections.items()},
    )


def summarize_by_category(
    sales_records: Iterable[SalesEntry],
    commission_rules: Iterable[TierRates] | Mapping[str, TierRates],
) -> dict[str, PeriodSummary]:
    rules = index_rules(commission_rules)
    groups: dict[str, _Totals] = {}
    for entry in sales_records:
        totals = _totals_for(groups, entry.category, entry.category)
        totals.sales += to_decimal(entry.sales)
        totals.target += to_decimal(entry.target)
        totals.commission += commission_for(entry, rules).total_commission
    return {key: totals.freeze() for key, totals in groups.items()}


def summarize_by_month(
    sales_records: Iterable[SalesEntry],
    collection_records: Iterable[CollectionEntry],
    commission_rules: Iterable[TierRates] | Mapping[str, TierRates],
) -> dict[str, PeriodSummary]:
    """Monthly series keyed by ``YYYY-MM``, in chronological order."""
    rules = index_rules(commission_rules)
    groups: dict[str, _Totals] = {}
    for entry in sales_records:
        totals = _totals_for(groups, period_key(entry.year, entry.month))
        totals.sales += to_decimal(entry.sales)
        totals.target += to_decimal(entry.target)
        totals.commission += commission_for(entry, rules).total_commission
    for record in collection_records:
        totals = _totals_for(groups, period_key(record.year, record.month))
        totals.collection += to_decimal(record.amount)
    return {key: groups[key].freeze() for key in sorted(groups)}


@dataclass(frozen=True)
class PeriodHighlights:
    top_seller: PeriodSummary | None = None
    top_category: PeriodSummary | None = None
    lowest_performer: PeriodSummary | None = None


def _highest_sales(summaries: Iterable[PeriodSummary]) -> PeriodSummary | None:
    best, best_sales = None, ZERO
    for summary in summaries:
        if is_greater(summary.total_sales, best_sales):
            best, best_sales = summary, summary.total_sales
    return best


def period_highlights(
    per_representative: Mapping[str, PeriodSummary],
    by_category: Mapping[str, PeriodSummary] | None = None,
) -> PeriodHighlights:
    lowest = None
    for summary in per_representative.values():
        if not is_greater(summary.total_target, ZERO):
            continue
        if lowest is None or is_greater(lowest.achievement_percentage, summary.achievement_percentage):
            lowest = summary
    return PeriodHighlights(
        top_seller=_highest_sales(per_representative.values()),
        top_category=_highest_sales((by_category or {}).values()),
        lowest_performer=lowest,
    )


# ------------------------------------------------------------------
# Balanced ranking
# ------------------------------------------------------------------

@dataclass(frozen=True)
class ScoreWeights:
    achievement: Decimal = Decimal("0.5")
    sales: Decimal = Decimal("0.3")
    collection: Decimal = Decimal("0.2")


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class RankedRepresentative:
    rank: int
    summary: PeriodSummary
    sales_norm: Decimal
    collection_norm: Decimal
    attainment_score: Decimal
    sales_score: Decimal
    collection_score: Decimal
    balanced_score: Decimal


def _maximum(values: Iterable[Decimal]) -> Decimal:
    return max((v for v in values if not v.is_nan()), default=ZERO)


def _normalize(value: Decimal, maximum: Decimal) -> Decimal:
    if not is_greater(maximum, ZERO):
        return ZERO
    return value / maximum * HUNDRED


def _sort_key(score: Decimal) -> Decimal:
    return Decimal("-Infinity") if score.is_nan() else score


def rank_by_balanced_score(
    representatives: Iterable[PeriodSummary],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> list[RankedRepresentative]:
    """Rank by the weighted mix of capped achievement, sales and collection.

    Sales and collection are normalized against the best value of the
    period. Ties keep the input order.
    """
    summaries = list(representatives)
    max_sales = _maximum(s.total_sales for s in summaries)
    max_collection = _maximum(s.total_collection for s in summaries)

    scored = []
    for summary in summaries:
        achievement = summary.achievement_percentage
        if is_greater(achievement, HUNDRED):
            achievement = HUNDRED
        sales_norm = _normalize(summary.total_sales, max_sales)
        collection_norm = _normalize(summary.total_collection, max_collection)
        attainment_score = achievement * weights.achievement
        sales_score = sales_norm * weights.sales
        collection_score = collection_norm * weights.collection
        scored.append((
            summary,
            sales_norm,
            collection_norm,
            attainment_score,
            sales_score,
            collection_score,
            attainment_score + sales_score + collection_score,
        ))

    scored.sort(key=lambda row: _sort_key(row[-1]), reverse=True)
    return [RankedRepresentative(rank, *row) for rank, row in enumerate(scored, start=1)]


# ------------------------------------------------------------------
# Period comparison
# ------------------------------------------------------------------

def percentage_change(previous, current) -> Decimal:
    previous, current = to_decimal(previous), to_decimal(current)
    if previous == 0:
        return HUNDRED if is_greater(current, ZERO) else ZERO
    return (current - previous) / previous * HUNDRED


@dataclass(frozen=True)
class PeriodComparison:
    sales: Decimal
    target: Decimal
    collection: Decimal
    commission: Decimal
    achievement_percentage: Decimal
    collection_rate: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def compare_periods(current: PeriodSummary, previous: PeriodSummary) -> PeriodComparison:
    return PeriodComparison(
        sales=percentage_change(previous.total_sales, current.total_sales),
        target=percentage_change(previous.total_target, current.total_target),
        collection=percentage_change(previous.total_collection, current.total_collection),
        commission=percentage_change(previous.total_commission, current.total_commission),
        achievement_percentage=percentage_change(
            previous.achievement_percentage, current.achievement_percentage,
        ),
        collection_rate=percentage_change(previous.collection_rate, current.collection_rate),
    )


# ------------------------------------------------------------------
# Net sales
# ------------------------------------------------------------------

MULTIPLE_DEDUCTIONS_LABEL = "Deductions multiples"


def net_total_sales(total_sales, deductions) -> Decimal:
    """Gross sales minus deductions, floored at zero."""
    net = to_decimal(total_sales) - to_decimal(deductions)
    return net if is_greater(net, ZERO) else ZERO


def discount_value(amount, percentage) -> Decimal:
    """``amount * percentage / 100`` rounded to the cent; 0 without a percentage."""
    if percentage is None:
        return ZERO
    return quantize_money(to_decimal(amount) * to_decimal(percentage) / HUNDRED)


def combine_custom_deductions(items: Iterable[tuple[str, Decimal]]) -> tuple[str, Decimal]:
    """Fold free-form deductions into one ``(label, amount)`` pair.

    A single deduction keeps its label; several are summed under
    ``MULTIPLE_DEDUCTIONS_LABEL``.
    """
    items = [(label.strip(), to_decimal(amount)) for label, amount in items]
    if not items:
        return "", ZERO
    total = sum((amount for _, amount in items), ZERO)
    if len(items) == 1:
        return items[0][0], total
    return MULTIPLE_DEDUCTIONS_LABEL, total


@dataclass(frozen=True)
class AuditEntry:
    """Deductions recorded for one representative x company x month."""

    representative_id: str
    company_id: str
    year: int
    month: int
    total_sales: Decimal
    deduction_operating: Decimal = ZERO
    deduction_transportation: Decimal = ZERO
    deduction_general: Decimal = ZERO
    deduction_custom: Decimal = ZERO
    discount_percentage: Decimal | None = None
    record_id: str | None = None

    @property
    def key(self) -> tuple[str, str, int, int]:
        return (self.representative_id, self.company_id, self.year, self.month)

    @property
    def total_deductions(self) -> Decimal:
        return sum(
            (
                to_decimal(self.deduction_operating),
                to_decimal(self.deduction_transportation),
                to_decimal(self.deduction_general),
                to_decimal(self.deduction_custom),
            ),
            ZERO,
        )

    @property
    def net_total_sales(self) -> Decimal:
        return net_total_sales(self.total_sales, self.total_deductions)

    @property
    def discount_value(self) -> Decimal:
        return discount_value(self.total_sales, self.discount_percentage)


@dataclass(frozen=True)
class NetSalesLine:
    """One sales row with its share of the audited net sales.

    ``net_total_sales`` belongs to the whole representative x company x
    month group; ``net_sales`` is the part of it this category carries,
    in proportion to its gross sales.
    """

    entry: SalesEntry
    audit: AuditEntry | None
    group_sales: Decimal
    net_total_sales: Decimal
    net_sales: Decimal

    @property
    def net_percentage(self) -> Decimal:
        if self.entry.sales == 0:
            return ZERO
        return self.net_sales / self.entry.sales * HUNDRED


def _audit_key(entry: SalesEntry) -> tuple:
    return (entry.representative_id, entry.company_id, entry.year, entry.month)


def distribute_net_sales(sales: Iterable[SalesEntry], audits: Iterable[AuditEntry]) -> list[NetSalesLine]:
    """Spread each audit's net total over the categories of its group.

    A group without an audit has no deductions: its net total is its
    gross sales. A group whose gross sales are zero gives every row a
    zero share.
    """
    sales = list(sales)
    audits_by_key = {audit.key: audit for audit in audits}

    group_sales: dict[tuple, Decimal] = {}
    for entry in sales:
        key = _audit_key(entry)
        group_sales[key] = group_sales.get(key, ZERO) + to_decimal(entry.sales)

    lines = []
    for entry in sales:
        key = _audit_key(entry)
        gross = group_sales[key]
        audit = audits_by_key.get(key)
        net_total = audit.net_total_sales if audit is not None else gross
        share = net_total * to_decimal(entry.sales) / gross if gross != 0 else ZERO
        lines.append(NetSalesLine(
            entry=entry,
            audit=audit,
            group_sales=gross,
            net_total_sales=net_total,
            net_sales=share,
        ))
    return lines

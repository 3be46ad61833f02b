"""
Tiered commission engine.

Maps one (sales, target, tier rates) record to a three-tier breakdown:

* Tier 1 pays on 70% of the target, whatever the actual sales.
* Tier 2 pays on the remaining 30% of the target once achievement
  reaches 71% (inclusive). There is no partial tier 2.
* Tier 3 pays on the overage when sales exceed the target.

With a zero target every sale falls into tier 1.

The functions here are pure: no ORM, no cache, no shared state. Every
amount is a ``Decimal`` and every field of the result is rounded half-up
to the cent. NaN and infinite inputs never raise: a NaN sales figure clears no
threshold, a NaN target makes every tier 1 field NaN, an infinite sales
figure yields infinite amounts (NaN where it meets a zero rate). Amounts
beyond the default 28-digit precision are still rounded to the cent.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

TIER1_TARGET_SHARE = Decimal("0.7")
TIER2_TARGET_SHARE = Decimal("0.3")
TIER2_MIN_ACHIEVEMENT = Decimal("71")

WORKING_PRECISION = 60


# ------------------------------------------------------------------
# Numeric helpers
# ------------------------------------------------------------------

def to_decimal(value) -> Decimal:
    """Coerce an int, float, str or Decimal to Decimal (None -> 0)."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    if isinstance(value, float):
        # repr gives the shortest round-tripping form: 0.1 -> Decimal("0.1")
        return Decimal(repr(value))
    return Decimal(value)


def quantize_money(value: Decimal) -> Decimal:
    value = to_decimal(value)
    if not value.is_finite():
        return value
    with localcontext() as ctx:
        # The cent-rounded coefficient must fit in the working precision.
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def is_greater(value: Decimal, threshold: Decimal) -> bool:
    # Ordering a NaN raises InvalidOperation; NaN never clears a threshold.
    if value.is_nan() or threshold.is_nan():
        return False
    return value > threshold


def is_at_least(value: Decimal, threshold: Decimal) -> bool:
    if value.is_nan() or threshold.is_nan():
        return False
    return value >= threshold


def achievement_percentage(sales, target) -> Decimal:
    """``sales / target * 100``, or 0 when there is no target."""
    sales, target = to_decimal(sales), to_decimal(target)
    if target == 0:
        return ZERO
    return sales / target * HUNDRED


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

@dataclass(frozen=True)
class CommissionBreakdown:
    tier1_amount: Decimal = ZERO
    tier1_commission: Decimal = ZERO
    tier2_amount: Decimal = ZERO
    tier2_commission: Decimal = ZERO
    tier3_amount: Decimal = ZERO
    tier3_commission: Decimal = ZERO
    total_commission: Decimal = ZERO

    def as_dict(self) -> dict:
        return asdict(self)


def calculate_commission(sales, target, tier1_rate, tier2_rate, tier3_rate) -> CommissionBreakdown:
    """Compute the three-tier commission for one record.

    Never raises for numeric input. Rates are used as given, negative
    ones included. ``total_commission`` is the sum of the unrounded tier
    commissions, rounded once.
    """
    sales = to_decimal(sales)
    target = to_decimal(target)
    tier1_rate = to_decimal(tier1_rate)
    tier2_rate = to_decimal(tier2_rate)
    tier3_rate = to_decimal(tier3_rate)

    tier2_amount = tier2_commission = ZERO
    tier3_amount = tier3_commission = ZERO

    with localcontext() as ctx:
        # Infinity times zero, or infinity over infinity, gives NaN.
        ctx.traps[InvalidOperation] = False
        ctx.prec = WORKING_PRECISION

        if target == 0:
            tier1_amount = sales
            tier1_commission = sales * tier1_rate
        else:
            achievement = achievement_percentage(sales, target)

            tier1_amount = target * TIER1_TARGET_SHARE
            tier1_commission = tier1_amount * tier1_rate

            if is_at_least(achievement, TIER2_MIN_ACHIEVEMENT):
                tier2_amount = target * TIER2_TARGET_SHARE
                tier2_commission = tier2_amount * tier2_rate

            if is_greater(sales, target):
                tier3_amount = sales - target
                tier3_commission = tier3_amount * tier3_rate

        total = tier1_commission + tier2_commission + tier3_commission

    return CommissionBreakdown(
        tier1_amount=quantize_money(tier1_amount),
        tier1_commission=quantize_money(tier1_commission),
        tier2_amount=quantize_money(tier2_amount),
        tier2_commission=quantize_money(tier2_commission),
        tier3_amount=quantize_money(tier3_amount),
        tier3_commission=quantize_money(tier3_commission),
        total_commission=quantize_money(total),
    )

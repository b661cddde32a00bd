"""
Scope aggregation and payment schedule.

Everything here is a pure function of a ClaimRecord (or of its totals), so
the review screen can recompute on every toggle without caching.
"""

import logging
from typing import List

from ..models.claim import ClaimRecord, Trade
from ..models.totals import PaymentSchedule, TradeTotals, Totals

logger = logging.getLogger(__name__)

# Upfront collection is capped at this share of total replacement value.
UPFRONT_RCV_SHARE = 0.5


def compute_trade_totals(trade: Trade) -> TradeTotals:
    """
    Sum the included money for a single trade.

    Only checked line items count. Supplements always count, and are added
    to RCV and ACV alike since they carry no depreciation split.
    """
    rcv = 0.0
    acv = 0.0
    for item in trade.line_items:
        if item.checked:
            rcv += item.rcv
            if item.acv:
                acv += item.acv

    supplement_total = sum(s.amount for s in trade.supplements)

    return TradeTotals(
        trade_id=trade.id,
        name=trade.name,
        rcv=rcv + supplement_total,
        acv=acv + supplement_total,
        supplements=supplement_total,
    )


def compute_totals(record: ClaimRecord) -> Totals:
    """
    Aggregate a claim record into per-trade and whole-claim totals.

    Args:
        record: Claim record as currently edited by the reviewer

    Returns:
        Totals; ``leftover_acv`` is the ACV of every unchecked line item,
        whether or not its trade is checked.
    """
    totals = Totals()

    for trade in record.trades:
        trade_totals = compute_trade_totals(trade)
        totals.trades.append(trade_totals)
        totals.total_rcv += trade_totals.rcv
        totals.total_acv += trade_totals.acv
        totals.total_supplements += trade_totals.supplements

        for item in trade.line_items:
            if not item.checked and item.acv:
                totals.leftover_acv += item.acv

    logger.debug(
        f"Computed totals: trades={len(totals.trades)}, rcv={totals.total_rcv:.2f}, "
        f"acv={totals.total_acv:.2f}, leftover_acv={totals.leftover_acv:.2f}"
    )
    return totals


def compute_payment_schedule(totals: Totals, deductible: float) -> PaymentSchedule:
    """
    Derive the payment views shown on the review and summary pages.

    When the ACV payout is under half of the replacement value, the full ACV
    plus the deductible is collected today. Otherwise today's collection is
    capped at half the replacement value and the rest of the ACV is due on
    substantial completion.

    Args:
        totals: Output of compute_totals
        deductible: Homeowner deductible (may be any number the reviewer typed)

    Returns:
        PaymentSchedule
    """
    total_rcv = totals.total_rcv
    total_acv = totals.total_acv

    if total_acv < total_rcv * UPFRONT_RCV_SHARE:
        due_today = total_acv + deductible
    else:
        due_today = total_rcv * UPFRONT_RCV_SHARE

    due_on_completion = max(0.0, total_acv - due_today)

    return PaymentSchedule(
        deductible=deductible,
        due_today=due_today,
        due_on_completion=due_on_completion,
        acv_payments_total=due_today + due_on_completion,
        depreciation_plus_deductible=(total_rcv - total_acv) + deductible,
        insurance_pays=max(0.0, total_rcv - deductible),
        homeowner_pays=deductible,
    )


def work_not_doing(trades: List[Trade]) -> List[str]:
    """
    List the work excluded from the scope, one line per exclusion.

    An unchecked trade is reported once as a whole; a checked trade reports
    each of its unchecked line items.
    """
    lines: List[str] = []
    for trade in trades:
        if not trade.checked:
            lines.append(f"{trade.name} (entire trade)")
            continue
        for item in trade.line_items:
            if not item.checked:
                lines.append(f"{trade.name}: {item.description}")
    return lines


def work_not_doing_text(trades: List[Trade]) -> str:
    return "\n".join(work_not_doing(trades))

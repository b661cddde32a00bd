"""Tests for scope aggregation and the payment schedule."""

import pytest

from scope_calculator.models.claim import ClaimRecord, LineItem, Trade
from scope_calculator.models.totals import Totals
from scope_calculator.scope import updates
from scope_calculator.scope.aggregator import (
    compute_payment_schedule,
    compute_totals,
    work_not_doing,
    work_not_doing_text,
)


def test_compute_totals_is_idempotent(sample_record):
    first = compute_totals(sample_record)
    second = compute_totals(sample_record)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_unchecked_item_acv_counts_as_leftover(roofing_trade):
    record = ClaimRecord(trades=[roofing_trade])

    totals = compute_totals(record)
    trade_totals = totals.for_trade("trade-1")

    assert trade_totals.rcv == pytest.approx(100.0)
    assert trade_totals.acv == pytest.approx(60.0)
    assert totals.leftover_acv == pytest.approx(30.0)


def test_leftover_ignores_trade_checked_flag(roofing_trade):
    roofing_trade.checked = False
    record = ClaimRecord(trades=[roofing_trade])

    assert compute_totals(record).leftover_acv == pytest.approx(30.0)


def test_toggling_item_changes_trade_rcv_by_item_rcv(sample_record):
    before = compute_totals(sample_record).for_trade("trade-1").rcv

    toggled = updates.toggle_line_item(sample_record, "trade-1", "item-2")
    after = compute_totals(toggled).for_trade("trade-1").rcv

    assert after - before == pytest.approx(50.0)

    toggled_back = updates.toggle_line_item(toggled, "trade-1", "item-2")
    assert compute_totals(toggled_back).for_trade("trade-1").rcv == pytest.approx(before)


def test_missing_acv_counts_as_zero(gutters_trade):
    gutters_trade.line_items[0].checked = True
    totals = compute_totals(ClaimRecord(trades=[gutters_trade]))

    assert totals.total_rcv == pytest.approx(1200.0)
    assert totals.total_acv == 0.0
    assert not totals.show_depreciation
    assert totals.to_dict()["depreciation"] is None


def test_supplements_add_to_rcv_and_acv(roofing_trade, supplement):
    roofing_trade.supplements.append(supplement)
    totals = compute_totals(ClaimRecord(trades=[roofing_trade]))

    trade_totals = totals.for_trade("trade-1")
    assert trade_totals.rcv == pytest.approx(350.0)
    assert trade_totals.acv == pytest.approx(310.0)
    assert trade_totals.supplements == pytest.approx(250.0)
    assert totals.total_supplements == pytest.approx(250.0)
    assert totals.depreciation == pytest.approx(40.0)


def test_duplicate_trade_names_merge_in_name_projection():
    record = ClaimRecord(trades=[
        Trade(id="trade-1", name="Roofing", line_items=[
            LineItem(id="item-1", description="Front slope", rcv=100.0, acv=80.0, checked=True),
        ]),
        Trade(id="trade-2", name="Roofing", line_items=[
            LineItem(id="item-1", description="Garage roof", rcv=200.0, checked=True),
        ]),
    ])

    totals = compute_totals(record)

    assert totals.for_trade("trade-1").rcv == pytest.approx(100.0)
    assert totals.for_trade("trade-2").rcv == pytest.approx(200.0)
    assert totals.totals_by_name() == {"Roofing": {"rcv": 300.0, "acv": 80.0}}


@pytest.mark.parametrize(
    "total_rcv, total_acv, deductible, due_today, due_on_completion",
    [
        (1000.0, 400.0, 50.0, 450.0, 0.0),
        (1000.0, 700.0, 50.0, 500.0, 200.0),
        (1000.0, 500.0, 0.0, 500.0, 0.0),
    ],
)
def test_payment_schedule_branches(total_rcv, total_acv, deductible, due_today, due_on_completion):
    schedule = compute_payment_schedule(
        Totals(total_rcv=total_rcv, total_acv=total_acv), deductible
    )

    assert schedule.due_today == pytest.approx(due_today)
    assert schedule.due_on_completion == pytest.approx(due_on_completion)
    assert schedule.acv_payments_total == pytest.approx(due_today + due_on_completion)


def test_payment_schedule_secondary_view():
    schedule = compute_payment_schedule(Totals(total_rcv=1000.0, total_acv=700.0), 1500.0)

    assert schedule.insurance_pays == 0.0
    assert schedule.homeowner_pays == pytest.approx(1500.0)
    assert schedule.depreciation_plus_deductible == pytest.approx(1800.0)


def test_work_not_doing_lists_whole_trades_and_single_items():
    trades = [
        Trade(id="trade-1", name="A", checked=False, line_items=[
            LineItem(id="item-1", description="Anything", rcv=10.0),
        ]),
        Trade(id="trade-2", name="B", checked=True, line_items=[
            LineItem(id="item-2", description="Included", rcv=10.0, checked=True),
            LineItem(id="item-3", description="Gutter guards", rcv=20.0, checked=False),
        ]),
    ]

    assert work_not_doing(trades) == ["A (entire trade)", "B: Gutter guards"]
    assert work_not_doing_text(trades) == "A (entire trade)\nB: Gutter guards"


def test_empty_record_produces_zero_totals():
    totals = compute_totals(ClaimRecord())
    schedule = compute_payment_schedule(totals, 0.0)

    assert totals.total_rcv == 0.0
    assert totals.trades == []
    assert schedule.due_today == 0.0
    assert schedule.due_on_completion == 0.0

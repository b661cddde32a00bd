"""Tests for copy-on-write review updates."""

import copy

import pytest

from scope_calculator.models.claim import Signature
from scope_calculator.scope import updates
from scope_calculator.utils.errors import RecordFinalizedError, ReviewActionError


def test_updates_do_not_mutate_input(sample_record):
    snapshot = copy.deepcopy(sample_record)

    updates.toggle_trade(sample_record, "trade-2")
    updates.toggle_line_item(sample_record, "trade-1", "item-2")
    updates.add_supplement(sample_record, "trade-1", "supp-1")
    updates.update_notes(sample_record, "trade-1", "item-1", "Use starter strip")
    updates.set_deductible(sample_record, 2500)
    updates.finalize(sample_record)

    assert sample_record == snapshot


def test_toggle_trade_sets_every_item(sample_record):
    updated = updates.toggle_trade(sample_record, "trade-1")

    trade = updated.find_trade("trade-1")
    assert trade.checked is False
    assert all(not item.checked for item in trade.line_items)

    again = updates.toggle_trade(updated, "trade-1")
    assert all(item.checked for item in again.find_trade("trade-1").line_items)


def test_toggle_line_item_updates_trade_flag(sample_record):
    # trade-1 starts checked with one of two items checked
    all_checked = updates.toggle_line_item(sample_record, "trade-1", "item-2")
    assert all_checked.find_trade("trade-1").checked is True

    none_checked = updates.toggle_line_item(
        updates.toggle_line_item(all_checked, "trade-1", "item-1"), "trade-1", "item-2"
    )
    assert none_checked.find_trade("trade-1").checked is False

    partial = updates.toggle_line_item(none_checked, "trade-1", "item-1")
    assert partial.find_trade("trade-1").checked is False


def test_partial_selection_keeps_current_trade_flag(sample_record):
    unchecked_one = updates.toggle_line_item(sample_record, "trade-1", "item-1")
    rechecked_one = updates.toggle_line_item(unchecked_one, "trade-1", "item-1")

    assert unchecked_one.find_trade("trade-1").checked is False
    assert rechecked_one.find_trade("trade-1").checked is False

    assert updates.toggle_trade(rechecked_one, "trade-1").find_trade("trade-1").checked is True


def test_supplement_lifecycle(sample_record):
    record = updates.add_supplement(sample_record, "trade-1", "supp-1")
    supplements = record.find_trade("trade-1").supplements
    assert len(supplements) == 1
    assert (supplements[0].title, supplements[0].quantity, supplements[0].amount) == ("", "", 0.0)

    record = updates.update_supplement(record, "trade-1", "supp-1", "title", "Extra flashing")
    record = updates.update_supplement(record, "trade-1", "supp-1", "amount", "250.5")
    supplement = record.find_trade("trade-1").supplements[0]
    assert supplement.title == "Extra flashing"
    assert supplement.amount == pytest.approx(250.5)

    record = updates.update_supplement(record, "trade-1", "supp-1", "amount", "lots")
    assert record.find_trade("trade-1").supplements[0].amount == 0.0

    record = updates.remove_supplement(record, "trade-1", "supp-1")
    assert record.find_trade("trade-1").supplements == []


def test_generated_supplement_ids_are_prefixed(sample_record):
    record = updates.add_supplement(sample_record, "trade-2")

    assert record.find_trade("trade-2").supplements[0].id.startswith("supp-")


def test_set_deductible_coerces_non_numbers(sample_record):
    assert updates.set_deductible(sample_record, "1500").deductible == 1500.0
    assert updates.set_deductible(sample_record, "abc").deductible == 0.0
    assert updates.set_deductible(sample_record, -200).deductible == -200.0
    assert updates.set_deductible(sample_record, "nan").deductible == 0.0
    assert updates.set_deductible(sample_record, float("inf")).deductible == 0.0


def test_finalize_records_work_not_doing(sample_record):
    signature = Signature(contractor_name="Sam Ortiz", homeowner_name="Jordan Lee")

    finalized = updates.finalize(sample_record, rep="Alex Kim", signature=signature)

    assert finalized.finalized is True
    assert finalized.rep == "Alex Kim"
    assert finalized.signature == signature
    assert finalized.work_not_doing == "Roofing: Ridge vent\nGutters (entire trade)"


def test_finalize_requires_both_names(sample_record):
    with pytest.raises(ReviewActionError):
        updates.finalize(sample_record, signature=Signature(contractor_name="Sam", homeowner_name=" "))


def test_finalized_record_rejects_updates(sample_record):
    finalized = updates.finalize(sample_record)

    with pytest.raises(RecordFinalizedError):
        updates.toggle_trade(finalized, "trade-1")
    with pytest.raises(RecordFinalizedError):
        updates.set_deductible(finalized, 10)
    with pytest.raises(RecordFinalizedError):
        updates.finalize(finalized)


def test_apply_action_dispatches(sample_record):
    record = updates.apply_action(
        sample_record, {"type": "toggle_line_item", "tradeId": "trade-1", "itemId": "item-2"}
    )
    assert record.find_trade("trade-1").line_items[1].checked is True

    record = updates.apply_action(record, {"type": "set_deductible", "value": "750"})
    assert record.deductible == 750.0

    record = updates.apply_action(
        record, {"type": "update_notes", "tradeId": "trade-1", "itemId": "item-1", "notes": "Two layers"}
    )
    assert record.find_trade("trade-1").line_items[0].notes == "Two layers"


@pytest.mark.parametrize("action", [
    {"type": "explode"},
    {"type": "toggle_trade"},
    {"type": "toggle_trade", "tradeId": "trade-9"},
    {"type": "toggle_line_item", "tradeId": "trade-1", "itemId": "item-9"},
    {"type": "update_supplement", "tradeId": "trade-1", "supplementId": "supp-9",
     "field": "title", "value": "x"},
    {"type": "update_supplement", "tradeId": "trade-1", "supplementId": "supp-9",
     "field": "color", "value": "x"},
    {"type": "remove_supplement", "tradeId": "trade-1", "supplementId": "supp-9"},
])
def test_apply_action_rejects_bad_actions(sample_record, action):
    with pytest.raises(ReviewActionError):
        updates.apply_action(sample_record, action)

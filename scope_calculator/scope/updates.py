"""
Copy-on-write updates applied while the reviewer edits a claim record.

Each function takes a record and returns a new one; the input record and the
trades, items and supplements it holds are never mutated. Once a record is
finalized every update is rejected.
"""

import logging
import math
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from ..models.claim import ClaimRecord, Signature, SupplementItem, Trade
from ..utils.errors import RecordFinalizedError, ReviewActionError
from .aggregator import work_not_doing_text

logger = logging.getLogger(__name__)

SUPPLEMENT_FIELDS = ("title", "quantity", "amount")


def _ensure_draft(record: ClaimRecord, action: str) -> None:
    if record.finalized:
        raise RecordFinalizedError.for_action(action)


def _replace_trade(
    record: ClaimRecord,
    trade_id: str,
    update: Callable[[Trade], Trade]
) -> ClaimRecord:
    trades: List[Trade] = []
    found = False
    for trade in record.trades:
        if trade.id == trade_id:
            trades.append(update(trade))
            found = True
        else:
            trades.append(trade)
    if not found:
        raise ReviewActionError.invalid(f"Unknown trade '{trade_id}'", trade_id=trade_id)
    return replace(record, trades=trades)


def _to_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def toggle_trade(record: ClaimRecord, trade_id: str) -> ClaimRecord:
    """Flip a trade and set every one of its line items to the new state."""
    _ensure_draft(record, "toggle_trade")

    def update(trade: Trade) -> Trade:
        new_checked = not trade.checked
        return replace(
            trade,
            checked=new_checked,
            line_items=[replace(item, checked=new_checked) for item in trade.line_items],
        )

    return _replace_trade(record, trade_id, update)


def toggle_line_item(record: ClaimRecord, trade_id: str, item_id: str) -> ClaimRecord:
    """
    Flip one line item.

    The trade becomes checked when all of its items are checked, unchecked
    when none are, and otherwise keeps its current flag.
    """
    _ensure_draft(record, "toggle_line_item")

    def update(trade: Trade) -> Trade:
        if not any(item.id == item_id for item in trade.line_items):
            raise ReviewActionError.invalid(
                f"Unknown line item '{item_id}' in trade '{trade_id}'",
                trade_id=trade_id, item_id=item_id,
            )
        items = [
            replace(item, checked=not item.checked) if item.id == item_id else item
            for item in trade.line_items
        ]
        all_checked = all(item.checked for item in items)
        none_checked = not any(item.checked for item in items)
        return replace(
            trade,
            line_items=items,
            checked=all_checked or (not none_checked and trade.checked),
        )

    return _replace_trade(record, trade_id, update)


def add_supplement(
    record: ClaimRecord,
    trade_id: str,
    supplement_id: Optional[str] = None
) -> ClaimRecord:
    """Append an empty supplement to a trade."""
    _ensure_draft(record, "add_supplement")
    new_id = supplement_id or f"supp-{time.time_ns()}"

    def update(trade: Trade) -> Trade:
        if any(s.id == new_id for s in trade.supplements):
            raise ReviewActionError.invalid(
                f"Supplement '{new_id}' already exists", trade_id=trade_id, supplement_id=new_id
            )
        return replace(trade, supplements=trade.supplements + [SupplementItem(id=new_id)])

    return _replace_trade(record, trade_id, update)


def update_supplement(
    record: ClaimRecord,
    trade_id: str,
    supplement_id: str,
    field_name: str,
    value: Any
) -> ClaimRecord:
    """Set the title, quantity or amount of a supplement."""
    _ensure_draft(record, "update_supplement")
    if field_name not in SUPPLEMENT_FIELDS:
        raise ReviewActionError.invalid(
            f"Supplement field must be one of {', '.join(SUPPLEMENT_FIELDS)}", field=field_name
        )
    new_value = _to_amount(value) if field_name == "amount" else ("" if value is None else str(value))

    def update(trade: Trade) -> Trade:
        if not any(s.id == supplement_id for s in trade.supplements):
            raise ReviewActionError.invalid(
                f"Unknown supplement '{supplement_id}'", trade_id=trade_id, supplement_id=supplement_id
            )
        return replace(trade, supplements=[
            replace(s, **{field_name: new_value}) if s.id == supplement_id else s
            for s in trade.supplements
        ])

    return _replace_trade(record, trade_id, update)


def remove_supplement(record: ClaimRecord, trade_id: str, supplement_id: str) -> ClaimRecord:
    _ensure_draft(record, "remove_supplement")

    def update(trade: Trade) -> Trade:
        if not any(s.id == supplement_id for s in trade.supplements):
            raise ReviewActionError.invalid(
                f"Unknown supplement '{supplement_id}'", trade_id=trade_id, supplement_id=supplement_id
            )
        return replace(trade, supplements=[s for s in trade.supplements if s.id != supplement_id])

    return _replace_trade(record, trade_id, update)


def update_notes(record: ClaimRecord, trade_id: str, item_id: str, notes: str) -> ClaimRecord:
    _ensure_draft(record, "update_notes")

    def update(trade: Trade) -> Trade:
        if not any(item.id == item_id for item in trade.line_items):
            raise ReviewActionError.invalid(
                f"Unknown line item '{item_id}' in trade '{trade_id}'",
                trade_id=trade_id, item_id=item_id,
            )
        return replace(trade, line_items=[
            replace(item, notes=notes or "") if item.id == item_id else item
            for item in trade.line_items
        ])

    return _replace_trade(record, trade_id, update)


def set_deductible(record: ClaimRecord, value: Any) -> ClaimRecord:
    """Set the deductible; input that is not a number becomes 0."""
    _ensure_draft(record, "set_deductible")
    return replace(record, deductible=_to_amount(value))


def finalize(
    record: ClaimRecord,
    rep: Optional[str] = None,
    signature: Optional[Signature] = None
) -> ClaimRecord:
    """
    Close the draft: record the work not being done and mark it read-only.

    Raises:
        ReviewActionError: If a signature is given without both names
        RecordFinalizedError: If the record was already finalized
    """
    _ensure_draft(record, "finalize")
    if signature is not None and (
        not signature.contractor_name.strip() or not signature.homeowner_name.strip()
    ):
        raise ReviewActionError.invalid("Please fill in both contractor and homeowner names")

    finalized = replace(
        record,
        rep=rep if rep is not None else record.rep,
        signature=signature if signature is not None else record.signature,
        work_not_doing=work_not_doing_text(record.trades),
        finalized=True,
    )
    logger.info(
        f"Finalized scope: trades={len(finalized.trades)}, "
        f"exclusions={len(finalized.work_not_doing.splitlines())}"
    )
    return finalized


def apply_action(record: ClaimRecord, action: Dict[str, Any]) -> ClaimRecord:
    """
    Dispatch a review action payload to the matching update.

    Payloads look like ``{"type": "toggle_line_item", "tradeId": "trade-1",
    "itemId": "item-3"}``.

    Raises:
        ReviewActionError: For unknown action types or missing arguments
    """
    action_type = action.get("type")
    try:
        if action_type == "toggle_trade":
            return toggle_trade(record, action["tradeId"])
        if action_type == "toggle_line_item":
            return toggle_line_item(record, action["tradeId"], action["itemId"])
        if action_type == "add_supplement":
            return add_supplement(record, action["tradeId"], action.get("supplementId"))
        if action_type == "update_supplement":
            return update_supplement(
                record, action["tradeId"], action["supplementId"], action["field"], action.get("value")
            )
        if action_type == "remove_supplement":
            return remove_supplement(record, action["tradeId"], action["supplementId"])
        if action_type == "update_notes":
            return update_notes(record, action["tradeId"], action["itemId"], action.get("notes", ""))
        if action_type == "set_deductible":
            return set_deductible(record, action.get("value"))
    except KeyError as e:
        raise ReviewActionError.invalid(
            f"Action '{action_type}' is missing {e.args[0]!r}", action=action_type
        )

    raise ReviewActionError.invalid(f"Unknown action type '{action_type}'", action=action_type)

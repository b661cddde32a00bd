"""
Validation of parsed model output.

Parsed JSON is only trusted after it has been coerced into a ClaimRecord
here: required structure is checked, optional fields get defaults, and
currency strings such as "$1,250.00" become numbers.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Set

from ..models.claim import ClaimAdjuster, ClaimRecord, LineItem, SupplementItem, Trade
from ..utils.errors import InvalidShapeError

logger = logging.getLogger(__name__)

_CURRENCY_NOISE = re.compile(r'[$,\s]')


def coerce_amount(value: Any) -> Optional[float]:
    """
    Convert a model-provided amount to a float.

    Returns None for missing values, NaN, infinities and anything that is
    not a number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = _CURRENCY_NOISE.sub('', value)
    elif not isinstance(value, (int, float)):
        return None
    try:
        amount = float(value)
    except (ValueError, OverflowError):
        return None
    return amount if math.isfinite(amount) else None


def _non_negative(value: Any) -> Optional[float]:
    amount = coerce_amount(value)
    return amount if amount is not None and amount >= 0 else None


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _unique_id(candidate: Any, prefix: str, counter: int, seen: Set[str]) -> str:
    item_id = _text(candidate)
    if not item_id or item_id in seen:
        item_id = f"{prefix}-{counter}"
        while item_id in seen:
            counter += 1
            item_id = f"{prefix}-{counter}"
    seen.add(item_id)
    return item_id


def _validate_line_item(
    raw: Any,
    trade_name: str,
    position: int,
    seen_ids: Set[str],
    preview: str
) -> LineItem:
    if not isinstance(raw, dict):
        raise InvalidShapeError.missing_field(
            f"line item {position} of trade '{trade_name}' is not an object", preview
        )

    rcv = coerce_amount(raw.get("rcv"))
    if rcv is None:
        raise InvalidShapeError.missing_field(
            f"line item {position} of trade '{trade_name}' has no numeric rcv", preview
        )
    if rcv < 0:
        raise InvalidShapeError.missing_field(
            f"line item {position} of trade '{trade_name}' has a negative rcv", preview
        )

    line_number = raw.get("documentLineNumber")
    return LineItem(
        id=_unique_id(raw.get("id"), "item", position, seen_ids),
        description=_text(raw.get("description")),
        rcv=rcv,
        quantity=_text(raw.get("quantity"), "1 EA"),
        acv=_non_negative(raw.get("acv")),
        checked=raw.get("checked") is True,
        notes=_text(raw.get("notes")),
        document_line_number=_text(line_number) or None,
    )


def _validate_supplements(raw: Any, trade_name: str, preview: str) -> List[SupplementItem]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidShapeError.missing_field(
            f"supplements of trade '{trade_name}' is not a list", preview
        )

    supplements = []
    seen: Set[str] = set()
    for position, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            raise InvalidShapeError.missing_field(
                f"supplement {position} of trade '{trade_name}' is not an object", preview
            )
        supplements.append(SupplementItem(
            id=_unique_id(entry.get("id"), "supp", position, seen),
            title=_text(entry.get("title")),
            quantity=_text(entry.get("quantity")),
            amount=_non_negative(entry.get("amount")) or 0.0,
        ))
    return supplements


def _validate_trade(raw: Any, position: int, seen_ids: Set[str], preview: str) -> Trade:
    if not isinstance(raw, dict):
        raise InvalidShapeError.missing_field(f"trade {position} is not an object", preview)

    name = _text(raw.get("name"), "Miscellaneous")
    raw_items = raw.get("lineItems")
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise InvalidShapeError.missing_field(f"lineItems of trade '{name}' is not a list", preview)

    item_ids: Set[str] = set()
    line_items = [
        _validate_line_item(item, name, index, item_ids, preview)
        for index, item in enumerate(raw_items, start=1)
    ]

    return Trade(
        id=_unique_id(raw.get("id"), "trade", position, seen_ids),
        name=name,
        checked=raw.get("checked") is True,
        line_items=line_items,
        supplements=_validate_supplements(raw.get("supplements"), name, preview),
    )


def validate_claim_payload(data: Any, preview: str = "") -> ClaimRecord:
    """
    Coerce parsed model output into a ClaimRecord.

    Args:
        data: Parsed JSON value
        preview: Bounded preview of the source text, attached to errors

    Returns:
        ClaimRecord with defaults applied

    Raises:
        InvalidShapeError: If the value is not an object with a trades list,
            or a line item lacks a finite, non-negative rcv
    """
    if not isinstance(data, dict):
        raise InvalidShapeError.missing_field("response is not a JSON object", preview)

    raw_trades = data.get("trades")
    if not isinstance(raw_trades, list):
        raise InvalidShapeError.missing_field("missing trades array", preview)

    trade_ids: Set[str] = set()
    trades = [
        _validate_trade(raw, position, trade_ids, preview)
        for position, raw in enumerate(raw_trades, start=1)
    ]

    adjuster: Dict[str, Any] = data.get("claimAdjuster") if isinstance(data.get("claimAdjuster"), dict) else {}

    record = ClaimRecord(
        trades=trades,
        deductible=_non_negative(data.get("deductible")) or 0.0,
        claim_number=_text(data.get("claimNumber")),
        claim_adjuster=ClaimAdjuster(
            name=_text(adjuster.get("name")),
            email=_text(adjuster.get("email")),
        ),
    )

    logger.info(
        f"Validated claim record: {len(trades)} trades, "
        f"{sum(len(t.line_items) for t in trades)} line items"
    )
    return record

"""Aggregation result models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class TradeTotals:
    """
    Money included for one trade.

    Attributes:
        trade_id: Id of the trade these totals belong to
        name: Trade display name
        rcv: Checked-item RCV plus supplements
        acv: Checked-item ACV (absent ACV counts as 0) plus supplements
        supplements: Sum of supplement amounts for the trade
    """
    trade_id: str
    name: str
    rcv: float
    acv: float
    supplements: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tradeId": self.trade_id,
            "name": self.name,
            "rcv": self.rcv,
            "acv": self.acv,
            "supplements": self.supplements,
        }


@dataclass
class Totals:
    """
    Whole-claim totals, recomputed from scratch on every edit.

    Per-trade totals are kept in trade order and looked up by trade id.
    """
    trades: List[TradeTotals] = field(default_factory=list)
    total_rcv: float = 0.0
    total_acv: float = 0.0
    total_supplements: float = 0.0
    leftover_acv: float = 0.0

    @property
    def depreciation(self) -> float:
        return self.total_rcv - self.total_acv

    @property
    def show_depreciation(self) -> bool:
        return self.total_acv > 0

    def for_trade(self, trade_id: str) -> Optional[TradeTotals]:
        for trade_totals in self.trades:
            if trade_totals.trade_id == trade_id:
                return trade_totals
        return None

    def totals_by_name(self) -> Dict[str, Dict[str, float]]:
        """
        Project per-trade totals onto display names.

        Trades sharing a name are summed into one entry.
        """
        by_name: Dict[str, Dict[str, float]] = {}
        for trade_totals in self.trades:
            entry = by_name.setdefault(trade_totals.name, {"rcv": 0.0, "acv": 0.0})
            entry["rcv"] += trade_totals.rcv
            entry["acv"] += trade_totals.acv
        return by_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trades": [t.to_dict() for t in self.trades],
            "tradeTotals": self.totals_by_name(),
            "totalRcv": self.total_rcv,
            "totalAcv": self.total_acv,
            "totalSupplements": self.total_supplements,
            "leftoverAcv": self.leftover_acv,
            "depreciation": self.depreciation if self.show_depreciation else None,
        }


@dataclass
class PaymentSchedule:
    """
    Payment views derived from the totals and the deductible.

    ``due_today``/``due_on_completion`` split the ACV money by job stage;
    ``insurance_pays``/``homeowner_pays`` is a separate, simpler view shown
    during review. The two are intentionally not reconciled.
    """
    deductible: float
    due_today: float
    due_on_completion: float
    acv_payments_total: float
    depreciation_plus_deductible: float
    insurance_pays: float
    homeowner_pays: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deductible": self.deductible,
            "dueToday": self.due_today,
            "dueOnCompletion": self.due_on_completion,
            "acvPaymentsTotal": self.acv_payments_total,
            "depreciationPlusDeductible": self.depreciation_plus_deductible,
            "insurancePays": self.insurance_pays,
            "homeownerPays": self.homeowner_pays,
        }

"""Claim record data models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ClaimAdjuster:
    """Insurance adjuster contact, carried through untouched."""
    name: str = ""
    email: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClaimAdjuster":
        data = data or {}
        return cls(name=data.get("name") or "", email=data.get("email") or "")


@dataclass
class Customer:
    """
    CRM contact the finished summary is attached to.

    Attributes:
        display_name: Name shown in the CRM and used for the PDF filename
        address: Property address
        jnid: CRM record identifier the attachment is related to
    """
    display_name: str
    address: str = ""
    jnid: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"displayName": self.display_name, "address": self.address, "jnid": self.jnid}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Customer"]:
        if not data:
            return None
        return cls(
            display_name=data.get("displayName") or "",
            address=data.get("address") or "",
            jnid=data.get("jnid") or "",
        )


@dataclass
class Signature:
    """
    Sign-off captured when the reviewer confirms the scope.

    Attributes:
        contractor_name: Name of the signing contractor representative
        homeowner_name: Name of the signing homeowner
        homeowner_email: Homeowner contact email
        signature_date: ISO date of signing (YYYY-MM-DD)
        signature: Signature image as a data URL, if one was drawn
    """
    contractor_name: str
    homeowner_name: str
    homeowner_email: str = ""
    signature_date: str = ""
    signature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractorName": self.contractor_name,
            "homeownerName": self.homeowner_name,
            "homeownerEmail": self.homeowner_email,
            "signatureDate": self.signature_date,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Signature"]:
        if not data:
            return None
        return cls(
            contractor_name=data.get("contractorName") or "",
            homeowner_name=data.get("homeownerName") or "",
            homeowner_email=data.get("homeownerEmail") or "",
            signature_date=data.get("signatureDate") or "",
            signature=data.get("signature"),
        )


@dataclass
class SupplementItem:
    """
    Reviewer-added work for a trade. Always counted as included.

    Attributes:
        id: Identifier unique within the trade
        title: Short description of the supplement
        quantity: Free-text magnitude and unit
        amount: Currency amount, added to both RCV and ACV totals
    """
    id: str
    title: str = ""
    quantity: str = ""
    amount: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "quantity": self.quantity, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SupplementItem":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            quantity=data.get("quantity") or "",
            amount=float(data.get("amount") or 0.0),
        )


@dataclass
class LineItem:
    """
    A single scope line extracted from the claim document.

    Attributes:
        id: Identifier unique within the trade
        description: Work description as written in the document
        rcv: Replacement Cost Value, always present
        quantity: Free-text magnitude and unit (e.g. "45 SQ"); display only
        acv: Actual Cash Value; None when the document only lists one price
        checked: Whether this item is part of the work being done
        notes: Reviewer notes
        document_line_number: Original line reference from the document
    """
    id: str
    description: str
    rcv: float
    quantity: str = "1 EA"
    acv: Optional[float] = None
    checked: bool = False
    notes: str = ""
    document_line_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        if self.document_line_number is not None:
            data["documentLineNumber"] = self.document_line_number
        data.update({
            "quantity": self.quantity,
            "description": self.description,
            "rcv": self.rcv,
        })
        if self.acv is not None:
            data["acv"] = self.acv
        data.update({"checked": self.checked, "notes": self.notes})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        acv = data.get("acv")
        line_number = data.get("documentLineNumber")
        return cls(
            id=str(data["id"]),
            description=data.get("description") or "",
            rcv=float(data["rcv"]),
            quantity=data.get("quantity") or "1 EA",
            acv=float(acv) if acv is not None else None,
            checked=bool(data.get("checked", False)),
            notes=data.get("notes") or "",
            document_line_number=str(line_number) if line_number is not None else None,
        )


@dataclass
class Trade:
    """
    A trade grouping (Roofing, Gutters, ...) with its line items and supplements.

    ``checked`` is a convenience flag for the reviewer; money is included
    per line item, never per trade.
    """
    id: str
    name: str
    checked: bool = False
    line_items: List[LineItem] = field(default_factory=list)
    supplements: List[SupplementItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "checked": self.checked,
            "supplements": [s.to_dict() for s in self.supplements],
            "lineItems": [item.to_dict() for item in self.line_items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trade":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            checked=bool(data.get("checked", False)),
            line_items=[LineItem.from_dict(item) for item in data.get("lineItems") or []],
            supplements=[SupplementItem.from_dict(s) for s in data.get("supplements") or []],
        )


@dataclass
class ClaimRecord:
    """
    Root aggregate for one claim in one wizard session.

    Attributes:
        trades: Trades in document order
        deductible: Homeowner deductible; editable during review
        claim_number: Insurance claim number, pass-through
        claim_adjuster: Adjuster contact, pass-through
        rep: Company representative handling the claim
        customer: CRM contact the summary is delivered to
        work_not_doing: Itemized exclusions, set when the record is finalized
        signature: Sign-off captured at finalization
        finalized: True once the reviewer has proceeded past review
    """
    trades: List[Trade] = field(default_factory=list)
    deductible: float = 0.0
    claim_number: str = ""
    claim_adjuster: ClaimAdjuster = field(default_factory=ClaimAdjuster)
    rep: str = ""
    customer: Optional[Customer] = None
    work_not_doing: str = ""
    signature: Optional[Signature] = None
    finalized: bool = False

    def find_trade(self, trade_id: str) -> Optional[Trade]:
        for trade in self.trades:
            if trade.id == trade_id:
                return trade
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the extraction contract."""
        return {
            "deductible": self.deductible,
            "claimNumber": self.claim_number,
            "claimAdjuster": self.claim_adjuster.to_dict(),
            "trades": [trade.to_dict() for trade in self.trades],
            "rep": self.rep,
            "customer": self.customer.to_dict() if self.customer else None,
            "workNotDoing": self.work_not_doing,
            "signature": self.signature.to_dict() if self.signature else None,
            "finalized": self.finalized,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimRecord":
        """
        Build a record from already-validated data.

        Model output must go through the extraction validator first; this
        only applies defaults for optional fields.
        """
        return cls(
            trades=[Trade.from_dict(t) for t in data.get("trades") or []],
            deductible=float(data.get("deductible") or 0.0),
            claim_number=data.get("claimNumber") or "",
            claim_adjuster=ClaimAdjuster.from_dict(data.get("claimAdjuster")),
            rep=data.get("rep") or "",
            customer=Customer.from_dict(data.get("customer")),
            work_not_doing=data.get("workNotDoing") or "",
            signature=Signature.from_dict(data.get("signature")),
            finalized=bool(data.get("finalized", False)),
        )

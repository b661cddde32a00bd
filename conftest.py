"""Pytest configuration and shared fixtures."""

import pytest

from scope_calculator.models.claim import (
    ClaimAdjuster,
    ClaimRecord,
    Customer,
    LineItem,
    SupplementItem,
    Trade,
)


@pytest.fixture
def roofing_trade() -> Trade:
    """Checked roofing trade with one included and one excluded item."""
    return Trade(
        id="trade-1",
        name="Roofing",
        checked=True,
        line_items=[
            LineItem(id="item-1", description="Tear off shingles", rcv=100.0, acv=60.0,
                     checked=True, document_line_number="01"),
            LineItem(id="item-2", description="Ridge vent", rcv=50.0, acv=30.0,
                     checked=False, document_line_number="02"),
        ],
    )


@pytest.fixture
def gutters_trade() -> Trade:
    """Unchecked gutters trade whose item has no separate ACV."""
    return Trade(
        id="trade-2",
        name="Gutters",
        checked=False,
        line_items=[
            LineItem(id="item-3", description='Replace 5" K-style gutters', rcv=1200.0,
                     quantity="120 LF"),
        ],
    )


@pytest.fixture
def sample_record(roofing_trade: Trade, gutters_trade: Trade) -> ClaimRecord:
    return ClaimRecord(
        trades=[roofing_trade, gutters_trade],
        deductible=1000.0,
        claim_number="CLM-2024-0042",
        claim_adjuster=ClaimAdjuster(name="Dana Reyes", email="dana.reyes@example.com"),
        rep="Sam Ortiz",
        customer=Customer(display_name="Jordan Lee", address="12 Elm St", jnid="jn-123"),
    )


@pytest.fixture
def supplement() -> SupplementItem:
    return SupplementItem(id="supp-1", title="Extra flashing", quantity="2 EA", amount=250.0)

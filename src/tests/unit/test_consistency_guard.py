# src/tests/unit/test_consistency_guard.py

import pytest
from datetime import datetime
from decimal import Decimal

from src.core.models.transaction import Transaction
from src.logic.consistency_guard import ConsistencyGuard
from src.logic.cost_objects import Allocation, ConsumptionRecord, Lot, SellComputation

@pytest.fixture
def guard():
    return ConsistencyGuard()

def make_lot(txn_id, day, qty="10", remaining=None):
    lot = Lot(
        transaction_id=txn_id, transaction_date=datetime(2023, 1, day), quantity=Decimal(qty),
        unit_cost=Decimal("10"), entry_price=Decimal("10")
    )
    if remaining is not None:
        lot.remaining_quantity = Decimal(remaining)
    return lot

def make_computation(consumed, sell_qty="5", day=20, cost_basis=None, estimate="0"):
    """consumed: list of (lot_index, quantity); every unit costs 10."""
    sell = Transaction(
        transaction_id="S1", account_id="ACC1", instrument_id="AAPL", transaction_type="SELL",
        transaction_date=datetime(2023, 1, day), quantity=Decimal(sell_qty), price=Decimal("12")
    )
    records = [
        ConsumptionRecord(lot_index=i, lot_transaction_id=f"B{i}", sell_transaction_id="S1",
                          consumed_quantity=Decimal(q), consumed_cost=Decimal(q) * 10)
        for i, q in consumed
    ]
    matched = sum((r.consumed_quantity for r in records), Decimal(0))
    record_cost = sum((r.consumed_cost for r in records), Decimal(0))
    allocation = Allocation(
        sell_transaction_id="S1", sell_quantity=sell.quantity, records=records,
        total_cost_basis=record_cost, matched_quantity=matched, unmatched_quantity=sell.quantity - matched
    )
    basis = Decimal(cost_basis) if cost_basis is not None else record_cost + Decimal(estimate)
    return SellComputation(
        sell=sell, allocation=allocation, proceeds=Decimal("60"), cost_basis=basis,
        estimated_unmatched_cost=Decimal(estimate), realized_pnl=Decimal("60") - basis,
        initial_risk_amount=None, r_multiple=None
    )

def test_consistent_state_has_no_violations(guard):
    lots = [make_lot("B0", 1, remaining="0"), make_lot("B1", 2, remaining="7")]
    computation = make_computation([(0, "10"), (1, "3")], sell_qty="13")

    assert guard.check(lots, [computation]) == []

def test_no_lots_no_sells(guard):
    assert guard.check([], []) == []

def test_negative_remaining_is_clamped_and_reported(guard):
    lots = [make_lot("B0", 1, remaining="-2")]
    violations = guard.check(lots, [])

    assert lots[0].remaining_quantity == Decimal("0")
    assert any(v.invariant == "lot_bounds" and v.transaction_id == "B0" for v in violations)

def test_remaining_above_original_is_reported(guard):
    violations = guard.check([make_lot("B0", 1, remaining="11")], [])
    assert [v.invariant for v in violations] == ["lot_bounds", "conservation"]

def test_conservation_mismatch(guard):
    """Lot shows 4 consumed but the only record says 3."""
    lots = [make_lot("B0", 1, remaining="6")]
    violations = guard.check(lots, [make_computation([(0, "3")], sell_qty="3")])

    assert len(violations) == 1
    assert violations[0].invariant == "conservation"

def test_cost_basis_mismatch(guard):
    lots = [make_lot("B0", 1, remaining="5")]
    violations = guard.check(lots, [make_computation([(0, "5")], cost_basis="49")])

    assert [v.invariant for v in violations] == ["cost_basis"]
    assert violations[0].transaction_id == "S1"

def test_estimate_counts_towards_cost_basis(guard):
    lots = [make_lot("B0", 1, remaining="0")]
    computation = make_computation([(0, "10")], sell_qty="12", estimate="20")
    assert guard.check(lots, [computation]) == []

def test_out_of_order_consumption(guard):
    lots = [make_lot("B0", 1, remaining="8"), make_lot("B1", 2, remaining="8")]
    computation = make_computation([(1, "2"), (0, "2")], sell_qty="4")

    violations = guard.check(lots, [computation])
    assert [v.invariant for v in violations] == ["fifo_order"]

def test_lot_dated_after_sell(guard):
    lots = [make_lot("B0", 25, remaining="5")]
    violations = guard.check(lots, [make_computation([(0, "5")], day=20)])

    assert [v.invariant for v in violations] == ["fifo_order"]

# src/tests/unit/test_pnl_calculator.py

import pytest
from datetime import datetime
from decimal import Decimal

from src.core.models.transaction import Transaction
from src.logic.cost_objects import Allocation
from src.logic.pnl_calculator import RealizedPnLCalculator

@pytest.fixture
def calculator():
    return RealizedPnLCalculator()

@pytest.fixture
def sell():
    return Transaction(
        transaction_id="S1", account_id="ACC1", instrument_id="AAPL", transaction_type="SELL",
        transaction_date=datetime(2023, 1, 10), quantity=Decimal("15"), price=Decimal("30"),
        commission=Decimal("5")
    )

def make_allocation(cost, matched, unmatched="0"):
    return Allocation(
        sell_transaction_id="S1", sell_quantity=Decimal(matched) + Decimal(unmatched), records=[],
        total_cost_basis=Decimal(cost), matched_quantity=Decimal(matched), unmatched_quantity=Decimal(unmatched)
    )

def test_proceeds_net_of_commission(calculator, sell):
    assert calculator.proceeds(sell) == Decimal("445")

def test_realized_pnl(calculator, sell):
    pnl = calculator.calculate(sell, make_allocation("200", "15"))

    assert pnl.proceeds == Decimal("445")
    assert pnl.cost_basis == Decimal("200")
    assert pnl.realized_pnl == Decimal("245")

def test_realized_loss_is_negative(calculator, sell):
    pnl = calculator.calculate(sell, make_allocation("500", "15"))
    assert pnl.realized_pnl == Decimal("-55")

def test_unmatched_quantity_has_zero_cost_by_default(calculator, sell):
    pnl = calculator.calculate(sell, make_allocation("100", "10", "5"))

    assert pnl.cost_basis == Decimal("100")
    assert pnl.realized_pnl == Decimal("345")

def test_estimated_unmatched_cost_is_added(calculator, sell):
    pnl = calculator.calculate(sell, make_allocation("100", "10", "5"), estimated_unmatched_cost=Decimal("50"))

    assert pnl.cost_basis == Decimal("150")
    assert pnl.realized_pnl == Decimal("295")

# src/tests/unit/test_ledger_replayer.py

import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

from src.core.enums.oversell_policy import OverSellPolicy
from src.core.enums.recompute_state import RecomputeState
from src.core.models.errors import InvariantViolation
from src.core.models.transaction import LedgerScope, Transaction
from src.logic.consistency_guard import ConsistencyGuard
from src.logic.ledger_replayer import LedgerReplayer

SCOPE = LedgerScope("ACC1", "AAPL")

def buy(txn_id, day, qty, price, commission="0", stop=None, take_profit=None, account="ACC1"):
    return Transaction(
        transaction_id=txn_id, account_id=account, instrument_id="AAPL", transaction_type="BUY",
        transaction_date=datetime(2023, 1, day), quantity=Decimal(qty), price=Decimal(price),
        commission=Decimal(commission),
        stop_loss_price=Decimal(stop) if stop else None,
        take_profit_price=Decimal(take_profit) if take_profit else None
    )

def sell(txn_id, day, qty, price, commission="0"):
    return Transaction(
        transaction_id=txn_id, account_id="ACC1", instrument_id="AAPL", transaction_type="SELL",
        transaction_date=datetime(2023, 1, day), quantity=Decimal(qty), price=Decimal(price),
        commission=Decimal(commission)
    )

@pytest.fixture
def replayer():
    return LedgerReplayer(oversell_policy=OverSellPolicy.ZERO_COST)

@pytest.fixture
def fifo_transactions():
    """B1: 10 @ 10, B2: 10 @ 20, S1: 15 @ 30."""
    return [buy("B1", 1, "10", "10"), buy("B2", 2, "10", "20"), sell("S1", 3, "15", "30")]

def test_fifo_replay(replayer, fifo_transactions):
    result = replayer.replay(SCOPE, fifo_transactions)

    assert result.is_ok
    state = result.value
    assert state.get_lot("B1").remaining_quantity == Decimal("0")
    assert state.get_lot("B2").remaining_quantity == Decimal("5")
    s1 = state.get_sell("S1")
    assert s1.cost_basis == Decimal("200")
    assert s1.proceeds == Decimal("450")
    assert s1.realized_pnl == Decimal("250")
    assert s1.matched_quantity == Decimal("15")
    assert s1.unmatched_quantity == Decimal("0")
    assert s1.r_multiple is None
    assert state.open_quantity == Decimal("5")
    assert state.open_cost_basis == Decimal("100")
    assert state.average_open_cost == Decimal("20")
    assert state.total_realized_pnl == Decimal("250")
    assert state.warnings == []

def test_replay_is_independent_of_insertion_order(replayer, fifo_transactions):
    forward = replayer.replay(SCOPE, fifo_transactions).value
    backward = replayer.replay(SCOPE, list(reversed(fifo_transactions))).value
    assert forward == backward

def test_replay_is_idempotent(replayer, fifo_transactions):
    assert replayer.replay(SCOPE, fifo_transactions).value == replayer.replay(SCOPE, fifo_transactions).value

def test_commission_is_part_of_unit_cost_and_reduces_proceeds(replayer):
    state = replayer.replay(SCOPE, [
        buy("B1", 1, "10", "100", commission="5"),
        sell("S1", 2, "10", "110", commission="3"),
    ]).value

    assert state.get_lot("B1").unit_cost == Decimal("100.5")
    s1 = state.get_sell("S1")
    assert s1.proceeds == Decimal("1097")
    assert s1.cost_basis == Decimal("1005")
    assert s1.realized_pnl == Decimal("92")

def test_retroactive_buy_changes_later_sell(replayer, fifo_transactions):
    """An earlier BUY inserted later in time order is consumed first on replay."""
    before = replayer.replay(SCOPE, fifo_transactions).value
    after = replayer.replay(SCOPE, fifo_transactions + [buy("B0", 1, "5", "5")]).value

    assert before.get_sell("S1").cost_basis == Decimal("200")
    s1 = after.get_sell("S1")
    assert s1.cost_basis == Decimal("125")
    assert after.get_lot("B0").remaining_quantity == Decimal("0")
    assert after.get_lot("B1").remaining_quantity == Decimal("0")
    assert after.get_lot("B2").remaining_quantity == Decimal("10")

def test_same_day_buys_consumed_in_insertion_order(replayer):
    state = replayer.replay(SCOPE, [
        buy("B_first", 1, "5", "10"), buy("B_second", 1, "5", "20"), sell("S1", 2, "5", "30"),
    ]).value

    assert state.get_lot("B_first").remaining_quantity == Decimal("0")
    assert state.get_lot("B_second").remaining_quantity == Decimal("5")

def test_sell_before_any_buy_is_an_over_sell(replayer):
    state = replayer.replay(SCOPE, [sell("S1", 1, "5", "30"), buy("B1", 2, "10", "10")]).value

    s1 = state.get_sell("S1")
    assert s1.matched_quantity == Decimal("0")
    assert s1.unmatched_quantity == Decimal("5")
    assert state.get_lot("B1").remaining_quantity == Decimal("10")
    assert [w.transaction_id for w in state.warnings] == ["S1"]

def test_over_sell_zero_cost(replayer):
    state = replayer.replay(SCOPE, [buy("B1", 1, "10", "10"), sell("S1", 2, "15", "20")]).value

    s1 = state.get_sell("S1")
    assert s1.matched_quantity == Decimal("10")
    assert s1.unmatched_quantity == Decimal("5")
    assert s1.cost_basis == Decimal("100")
    assert s1.estimated_unmatched_cost == Decimal("0")
    assert s1.realized_pnl == Decimal("200")
    assert s1.over_sell_warning is not None
    assert s1.over_sell_warning.unmatched_quantity == Decimal("5")
    assert state.warnings == [s1.over_sell_warning]
    assert state.open_quantity == Decimal("0")

def test_over_sell_reject():
    replayer = LedgerReplayer(oversell_policy=OverSellPolicy.REJECT)
    result = replayer.replay(SCOPE, [buy("B1", 1, "10", "10"), sell("S1", 2, "15", "20")])

    assert not result.is_ok
    assert result.error.kind == "OVER_SELL"
    assert result.error.transaction_id == "S1"
    assert result.error.unmatched_quantity == Decimal("5")

def test_over_sell_proportional_estimate():
    replayer = LedgerReplayer(oversell_policy=OverSellPolicy.PROPORTIONAL_ESTIMATE)
    state = replayer.replay(SCOPE, [
        buy("B1", 1, "5", "10"), buy("B2", 2, "5", "20"), sell("S1", 3, "12", "30"),
    ]).value

    s1 = state.get_sell("S1")
    assert s1.estimated_unmatched_cost == Decimal("30")
    assert s1.cost_basis == Decimal("180")
    assert s1.realized_pnl == Decimal("180")
    assert len(state.warnings) == 1

def test_r_multiple(replayer):
    state = replayer.replay(SCOPE, [
        buy("B1", 1, "10", "100", stop="90", take_profit="130"),
        sell("S1", 2, "10", "115"),
    ]).value

    lot = state.get_lot("B1")
    assert lot.risk_per_share == Decimal("10")
    assert lot.risk_reward_ratio == Decimal("3")
    s1 = state.get_sell("S1")
    assert s1.realized_pnl == Decimal("150")
    assert s1.initial_risk_amount == Decimal("100")
    assert s1.r_multiple == Decimal("1.5")

def test_r_multiple_weighted_across_lots(replayer):
    state = replayer.replay(SCOPE, [
        buy("B1", 1, "6", "100", stop="90"),
        buy("B2", 2, "10", "50", stop="45"),
        sell("S1", 3, "10", "100"),
    ]).value

    s1 = state.get_sell("S1")
    assert s1.initial_risk_amount == Decimal("80")
    assert s1.realized_pnl == Decimal("200")
    assert s1.r_multiple == Decimal("2.5")

def test_values_are_rounded_half_up_once(replayer):
    """Three shares for 100 total: unit cost 33.333..., sold one at a time."""
    state = replayer.replay(SCOPE, [
        buy("B1", 1, "3", "33", commission="1"),
        sell("S1", 2, "1", "40"),
    ]).value

    assert state.get_lot("B1").unit_cost == Decimal("33.3333")
    s1 = state.get_sell("S1")
    assert s1.cost_basis == Decimal("33.33")
    assert s1.realized_pnl == Decimal("6.67")
    assert state.open_cost_basis == Decimal("66.67")

def test_empty_scope(replayer):
    state = replayer.replay(SCOPE, []).value

    assert state.lots == []
    assert state.sells == []
    assert state.open_quantity == Decimal("0")
    assert state.average_open_cost is None

def test_transaction_from_other_scope_is_rejected(replayer):
    result = replayer.replay(SCOPE, [buy("B1", 1, "10", "10", account="ACC2")])

    assert not result.is_ok
    assert result.error.kind == "VALIDATION_ERROR"
    assert result.error.transaction_id == "B1"

def test_invalid_record_reports_every_error(replayer):
    bad_price = Transaction.model_construct(
        transaction_id="B_BAD", account_id="ACC1", instrument_id="AAPL", transaction_type="BUY",
        transaction_date=datetime(2023, 1, 1), quantity=Decimal("1"), price=Decimal("0"), commission=Decimal("0")
    )
    bad_qty = Transaction.model_construct(
        transaction_id="S_BAD", account_id="ACC1", instrument_id="AAPL", transaction_type="SELL",
        transaction_date=datetime(2023, 1, 2), quantity=Decimal("-1"), price=Decimal("5"), commission=Decimal("0")
    )
    result = replayer.replay(SCOPE, [bad_price, bad_qty])

    assert not result.is_ok
    assert [e.transaction_id for e in result.errors] == ["B_BAD", "S_BAD"]

def test_state_notifications(replayer, fifo_transactions):
    seen = []
    replayer.replay(SCOPE, fifo_transactions, on_state=seen.append)
    assert seen == [RecomputeState.RESET, RecomputeState.REPLAY]

def test_guard_violation_becomes_recompute_failed(fifo_transactions):
    guard = MagicMock(spec=ConsistencyGuard)
    guard.check.return_value = [InvariantViolation(invariant="conservation", error_reason="Simulated")]
    replayer = LedgerReplayer(consistency_guard=guard)

    result = replayer.replay(SCOPE, fifo_transactions)

    assert not result.is_ok
    assert result.error.kind == "RECOMPUTE_FAILED"
    assert result.error.account_id == "ACC1"
    assert result.error.violations[0].invariant == "conservation"

def test_conservation_holds_after_many_sells(replayer):
    transactions = [buy(f"B{i}", i, "7", str(10 + i)) for i in range(1, 6)]
    transactions += [sell(f"S{i}", 10 + i, "4", "30") for i in range(1, 8)]

    state = replayer.replay(SCOPE, transactions).value

    bought = sum((lot.original_quantity for lot in state.lots), Decimal(0))
    sold = sum((s.matched_quantity for s in state.sells), Decimal(0))
    assert bought - sold == state.open_quantity
    assert state.open_quantity == Decimal("7")

def test_lot_carries_initial_risk_amount(replayer):
    state = replayer.replay(SCOPE, [
        buy("B1", 1, "10", "100", stop="90"),
        buy("B2", 2, "5", "100"),
    ]).value

    assert state.get_lot("B1").initial_risk_amount == Decimal("100")
    assert state.get_lot("B2").initial_risk_amount is None

def test_values_beyond_decimal_precision_return_err(replayer):
    """A unit cost of 1E+29 cannot be stored with four decimals in 28 digits."""
    result = replayer.replay(SCOPE, [buy("B1", 1, "1E-20", "1", commission="1000000000")])

    assert not result.is_ok
    assert result.error.kind == "RECOMPUTE_FAILED"
    assert "decimal precision" in result.error.error_reason

# src/logic/consistency_guard.py

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Sequence

from src.core.models.errors import InvariantViolation
from src.logic.cost_objects import Lot, SellComputation

logger = logging.getLogger(__name__)


class ConsistencyGuard:
    """
    Verifies the ledger invariants against a replay's working state before it is committed.

    Any violation found here is an internal defect: correct allocation cannot produce
    one. A negative remaining quantity is clamped to zero so nothing downstream sees it,
    but it is still reported, and the caller must abort the commit.
    """

    def check(self, lots: Sequence[Lot], sells: Sequence[SellComputation]) -> List[InvariantViolation]:
        violations: List[InvariantViolation] = []
        violations.extend(self._check_lot_bounds(lots))
        violations.extend(self._check_conservation(lots, sells))
        violations.extend(self._check_cost_basis(sells))
        violations.extend(self._check_fifo_order(lots, sells))

        if violations:
            logger.error(f"ConsistencyGuard: {len(violations)} invariant violation(s) found: {[v.error_reason for v in violations]}")
        else:
            logger.debug(f"ConsistencyGuard: All invariants hold for {len(lots)} lots and {len(sells)} sells.")
        return violations

    def _check_lot_bounds(self, lots: Sequence[Lot]) -> List[InvariantViolation]:
        violations = []
        for lot in lots:
            if lot.remaining_quantity < Decimal(0):
                logger.error(
                    f"ConsistencyGuard: Lot {lot.transaction_id} has negative remaining quantity "
                    f"({lot.remaining_quantity}); clamping to zero."
                )
                violations.append(InvariantViolation(
                    invariant="lot_bounds",
                    transaction_id=lot.transaction_id,
                    error_reason=f"Lot {lot.transaction_id} remaining quantity {lot.remaining_quantity} is negative."
                ))
                lot.remaining_quantity = Decimal(0)
            elif lot.remaining_quantity > lot.original_quantity:
                violations.append(InvariantViolation(
                    invariant="lot_bounds",
                    transaction_id=lot.transaction_id,
                    error_reason=(f"Lot {lot.transaction_id} remaining quantity {lot.remaining_quantity} "
                                  f"exceeds original quantity {lot.original_quantity}.")
                ))
        return violations

    def _check_conservation(self, lots: Sequence[Lot], sells: Sequence[SellComputation]) -> List[InvariantViolation]:
        consumed_by_lot: Dict[int, Decimal] = defaultdict(Decimal)
        for computation in sells:
            for record in computation.allocation.records:
                consumed_by_lot[record.lot_index] += record.consumed_quantity

        violations = []
        for index, lot in enumerate(lots):
            consumed = consumed_by_lot.get(index, Decimal(0))
            if lot.consumed_quantity != consumed:
                violations.append(InvariantViolation(
                    invariant="conservation",
                    transaction_id=lot.transaction_id,
                    error_reason=(f"Lot {lot.transaction_id} shows {lot.consumed_quantity} consumed "
                                  f"but its consumption records sum to {consumed}.")
                ))
        return violations

    def _check_cost_basis(self, sells: Sequence[SellComputation]) -> List[InvariantViolation]:
        violations = []
        for computation in sells:
            allocation = computation.allocation
            record_cost = sum((r.consumed_cost for r in allocation.records), Decimal(0))
            record_qty = sum((r.consumed_quantity for r in allocation.records), Decimal(0))
            txn_id = computation.sell.transaction_id

            if computation.cost_basis != record_cost + computation.estimated_unmatched_cost:
                violations.append(InvariantViolation(
                    invariant="cost_basis",
                    transaction_id=txn_id,
                    error_reason=(f"Sell {txn_id} cost basis {computation.cost_basis} does not equal "
                                  f"its consumed cost {record_cost} plus estimate {computation.estimated_unmatched_cost}.")
                ))
            if record_qty != allocation.matched_quantity or \
                    allocation.matched_quantity + allocation.unmatched_quantity != computation.sell.quantity:
                violations.append(InvariantViolation(
                    invariant="cost_basis",
                    transaction_id=txn_id,
                    error_reason=(f"Sell {txn_id} matched ({allocation.matched_quantity}) and unmatched "
                                  f"({allocation.unmatched_quantity}) quantities do not add up to {computation.sell.quantity}.")
                ))
        return violations

    def _check_fifo_order(self, lots: Sequence[Lot], sells: Sequence[SellComputation]) -> List[InvariantViolation]:
        violations = []
        for computation in sells:
            sell = computation.sell
            previous_index = -1
            for record in computation.allocation.records:
                lot = lots[record.lot_index]
                if record.lot_index <= previous_index:
                    violations.append(InvariantViolation(
                        invariant="fifo_order",
                        transaction_id=sell.transaction_id,
                        error_reason=f"Sell {sell.transaction_id} consumed lot {lot.transaction_id} out of FIFO order."
                    ))
                if lot.transaction_date > sell.transaction_date:
                    violations.append(InvariantViolation(
                        invariant="fifo_order",
                        transaction_id=sell.transaction_id,
                        error_reason=(f"Sell {sell.transaction_id} dated {sell.transaction_date} consumed "
                                      f"lot {lot.transaction_id} dated {lot.transaction_date}.")
                    ))
                previous_index = record.lot_index
        return violations

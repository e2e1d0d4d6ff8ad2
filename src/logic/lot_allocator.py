# src/logic/lot_allocator.py

import logging
from decimal import Decimal
from typing import List, Sequence

from src.core.enums.transaction_type import TransactionType
from src.core.models.errors import LedgerValidationError
from src.core.models.result import Err, Ok, Result
from src.core.models.transaction import Transaction
from src.logic.cost_objects import Allocation, ConsumptionRecord, Lot
from src.logic.validator import validate_transaction

logger = logging.getLogger(__name__)


class LotAllocator:
    """
    Matches a sell against the open lots of its scope, oldest lot first (FIFO).

    The lots sequence is the scope's arena, already in FIFO order (ascending date,
    insertion order on ties). allocate() only reads it; apply() is the separate
    mutation step the replay runs once an allocation has succeeded.
    """

    def allocate(
        self, sell: Transaction, lots: Sequence[Lot]
    ) -> Result[Allocation, LedgerValidationError]:
        error = validate_transaction(sell, expected_type=TransactionType.SELL)
        if error:
            logger.debug(f"LotAllocator: Rejected {sell.transaction_id}: {error.error_reason}")
            return Err([error])

        still_needed = sell.quantity
        total_cost = Decimal(0)
        records: List[ConsumptionRecord] = []

        logger.debug(f"LotAllocator: Allocating {sell.quantity} for sell {sell.transaction_id} dated {sell.transaction_date}.")

        for index, lot in enumerate(lots):
            if still_needed <= Decimal(0):
                break
            if lot.transaction_date > sell.transaction_date:
                # Arena is date ordered, nothing later can be eligible.
                break
            if lot.remaining_quantity <= Decimal(0):
                continue

            consumed = min(lot.remaining_quantity, still_needed)
            consumed_cost = consumed * lot.unit_cost
            records.append(ConsumptionRecord(
                lot_index=index,
                lot_transaction_id=lot.transaction_id,
                sell_transaction_id=sell.transaction_id,
                consumed_quantity=consumed,
                consumed_cost=consumed_cost,
            ))
            total_cost += consumed_cost
            still_needed -= consumed
            logger.debug(f"  LotAllocator: Took {consumed} from lot {lot.transaction_id} @ {lot.unit_cost:.4f}. Still needed: {still_needed}.")

        matched = sell.quantity - still_needed
        if still_needed > Decimal(0):
            logger.warning(
                f"LotAllocator: Sell {sell.transaction_id} quantity ({sell.quantity}) exceeds open lots "
                f"for {sell.scope}. Unmatched: {still_needed}."
            )

        return Ok(Allocation(
            sell_transaction_id=sell.transaction_id,
            sell_quantity=sell.quantity,
            records=records,
            total_cost_basis=total_cost,
            matched_quantity=matched,
            unmatched_quantity=still_needed,
        ))

    def apply(self, allocation: Allocation, lots: Sequence[Lot]) -> None:
        """Decrements the working lots by a completed allocation."""
        for record in allocation.records:
            lots[record.lot_index].remaining_quantity -= record.consumed_quantity

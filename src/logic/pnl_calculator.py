# src/logic/pnl_calculator.py

import logging
from decimal import Decimal
from typing import NamedTuple

from src.core.models.transaction import Transaction
from src.logic.cost_objects import Allocation

logger = logging.getLogger(__name__)


class RealizedPnL(NamedTuple):
    proceeds: Decimal
    cost_basis: Decimal
    realized_pnl: Decimal


class RealizedPnLCalculator:
    """
    Derives proceeds, cost basis and realized P&L for a sell from its allocation.
    Works at full precision; rounding happens when the replay result is committed.
    """

    def proceeds(self, sell: Transaction) -> Decimal:
        """Sell proceeds net of commission: price * quantity - commission."""
        commission = sell.commission if sell.commission is not None else Decimal(0)
        return sell.price * sell.quantity - commission

    def calculate(
        self,
        sell: Transaction,
        allocation: Allocation,
        estimated_unmatched_cost: Decimal = Decimal(0),
    ) -> RealizedPnL:
        proceeds = self.proceeds(sell)
        cost_basis = allocation.total_cost_basis + estimated_unmatched_cost
        realized_pnl = proceeds - cost_basis
        logger.debug(f"RealizedPnLCalculator: Sell {sell.transaction_id}: proceeds={proceeds}, cost_basis={cost_basis}, pnl={realized_pnl}")
        return RealizedPnL(proceeds=proceeds, cost_basis=cost_basis, realized_pnl=realized_pnl)

# src/logic/risk_calculator.py

import logging
from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from src.logic.cost_objects import Allocation, Lot

logger = logging.getLogger(__name__)


class RiskMultiple(NamedTuple):
    initial_risk_per_share: Optional[Decimal]
    initial_risk_amount: Optional[Decimal]
    r_multiple: Optional[Decimal]


class RiskMultipleCalculator:
    """
    Computes the initial risk and R-multiple of a sell from the stop-loss data of
    the lots it actually consumed.

    Unknown risk stays None all the way through. A zero R-multiple means a
    break-even trade, so it is never used as a stand-in for "no risk data".
    """

    def initial_risk_per_share(self, allocation: Allocation, lots: Sequence[Lot]) -> Optional[Decimal]:
        """Consumed-quantity weighted average of risk_per_share over lots that carry one."""
        weighted_risk = Decimal(0)
        weight = Decimal(0)
        for record in allocation.records:
            risk = lots[record.lot_index].risk_per_share
            if risk is None:
                continue
            weighted_risk += risk * record.consumed_quantity
            weight += record.consumed_quantity

        if weight == Decimal(0):
            return None
        return weighted_risk / weight

    def calculate(
        self, allocation: Allocation, lots: Sequence[Lot], realized_pnl: Decimal
    ) -> RiskMultiple:
        risk_per_share = self.initial_risk_per_share(allocation, lots)
        if risk_per_share is None:
            logger.debug(f"RiskMultipleCalculator: No consumed lot of sell {allocation.sell_transaction_id} carries a stop; R-multiple left undefined.")
            return RiskMultiple(None, None, None)

        initial_risk_amount = risk_per_share * allocation.sell_quantity
        if initial_risk_amount <= Decimal(0):
            return RiskMultiple(risk_per_share, initial_risk_amount, None)

        r_multiple = realized_pnl / initial_risk_amount
        logger.debug(f"RiskMultipleCalculator: Sell {allocation.sell_transaction_id}: risk/share={risk_per_share}, risk={initial_risk_amount}, R={r_multiple}")
        return RiskMultiple(risk_per_share, initial_risk_amount, r_multiple)

    def risk_reward_ratio(self, lot: Lot) -> Optional[Decimal]:
        """|take_profit - entry| / |entry - stop| for a lot with both levels set."""
        risk = lot.risk_per_share
        if risk is None or lot.take_profit_price is None or risk == Decimal(0):
            return None
        return abs(lot.take_profit_price - lot.entry_price) / risk

# src/logic/cost_objects.py

from datetime import datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional

from src.core.models.errors import OverSellWarning
from src.core.models.transaction import Transaction


class Lot:
    """
    Working copy of a 'lot' opened by a BUY transaction.
    Only the replay loop changes remaining_quantity; everything else is fixed at creation.
    """
    def __init__(
        self,
        transaction_id: str,
        transaction_date: datetime,
        quantity: Decimal,
        unit_cost: Decimal,
        entry_price: Decimal,
        stop_loss_price: Optional[Decimal] = None,
        take_profit_price: Optional[Decimal] = None,
    ):
        self.transaction_id = transaction_id
        self.transaction_date = transaction_date
        self.original_quantity = quantity
        self.remaining_quantity = quantity
        self.unit_cost = unit_cost
        self.entry_price = entry_price
        self.stop_loss_price = stop_loss_price
        self.take_profit_price = take_profit_price

    @property
    def risk_per_share(self) -> Optional[Decimal]:
        if self.stop_loss_price is None:
            return None
        return abs(self.entry_price - self.stop_loss_price)

    @property
    def initial_risk_amount(self) -> Optional[Decimal]:
        """Amount at risk on the whole lot when it was opened."""
        risk = self.risk_per_share
        return risk * self.original_quantity if risk is not None else None

    @property
    def consumed_quantity(self) -> Decimal:
        return self.original_quantity - self.remaining_quantity

    def __repr__(self) -> str:
        return (f"Lot(txn_id='{self.transaction_id}', "
                f"original_qty={self.original_quantity:.2f}, "
                f"remaining_qty={self.remaining_quantity:.2f}, "
                f"unit_cost={self.unit_cost:.4f})")


class ConsumptionRecord(NamedTuple):
    """One slice of a sell matched against one lot. Lives only for the duration of a replay."""
    lot_index: int
    lot_transaction_id: str
    sell_transaction_id: str
    consumed_quantity: Decimal
    consumed_cost: Decimal


class Allocation(NamedTuple):
    """Outcome of matching one sell against the open lots of its scope."""
    sell_transaction_id: str
    sell_quantity: Decimal
    records: List[ConsumptionRecord]
    total_cost_basis: Decimal
    matched_quantity: Decimal
    unmatched_quantity: Decimal

    @property
    def is_over_sell(self) -> bool:
        return self.unmatched_quantity > Decimal(0)


class SellComputation(NamedTuple):
    """Working (unrounded) results for one sell during a replay."""
    sell: Transaction
    allocation: Allocation
    proceeds: Decimal
    cost_basis: Decimal
    estimated_unmatched_cost: Decimal
    realized_pnl: Decimal
    initial_risk_amount: Optional[Decimal]
    r_multiple: Optional[Decimal]
    over_sell_warning: Optional[OverSellWarning] = None

# src/core/models/ledger.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from src.core.models.errors import OverSellWarning
from src.core.models.transaction import LedgerScope


class LotState(BaseModel):
    """
    Committed view of a BUY lot after the latest replay of its scope.
    """
    transaction_id: str = Field(..., description="The BUY transaction that opened the lot")
    transaction_date: datetime
    original_quantity: Decimal
    remaining_quantity: Decimal = Field(..., description="Quantity still open after all sells in scope")
    unit_cost: Decimal = Field(..., description="(price * quantity + commission) / quantity")
    entry_price: Decimal
    stop_loss_price: Optional[Decimal] = None
    take_profit_price: Optional[Decimal] = None
    risk_per_share: Optional[Decimal] = Field(None, description="|entry_price - stop_loss_price|, when a stop was set")
    initial_risk_amount: Optional[Decimal] = Field(None, description="risk_per_share * original_quantity")
    risk_reward_ratio: Optional[Decimal] = Field(None, description="|take_profit - entry| / risk_per_share")

    model_config = ConfigDict(frozen=True)


class SellResult(BaseModel):
    """
    Committed computed fields of a SELL transaction.
    """
    transaction_id: str
    transaction_date: datetime
    quantity: Decimal
    proceeds: Decimal = Field(..., description="price * quantity - commission")
    matched_quantity: Decimal = Field(..., description="Quantity matched against open lots")
    unmatched_quantity: Decimal = Field(..., description="Quantity with no lot behind it (over-sell)")
    cost_basis: Decimal
    estimated_unmatched_cost: Decimal = Field(default=Decimal(0), description="Estimated cost of the unmatched part, PROPORTIONAL_ESTIMATE policy only")
    realized_pnl: Decimal
    initial_risk_amount: Optional[Decimal] = None
    r_multiple: Optional[Decimal] = Field(None, description="realized_pnl / initial_risk_amount; None when the risk is unknown")
    over_sell_warning: Optional[OverSellWarning] = None

    model_config = ConfigDict(frozen=True)


class DerivedState(BaseModel):
    """
    Everything the ledger derives for one (account, instrument) scope.
    Replaced as a whole on every recompute, never patched.
    """
    account_id: str
    instrument_id: str
    lots: List[LotState] = Field(default_factory=list)
    sells: List[SellResult] = Field(default_factory=list)
    open_quantity: Decimal = Field(default=Decimal(0), description="Sum of remaining lot quantity")
    open_cost_basis: Decimal = Field(default=Decimal(0), description="Cost of the remaining lot quantity")
    average_open_cost: Optional[Decimal] = Field(None, description="open_cost_basis / open_quantity")
    total_realized_pnl: Decimal = Field(default=Decimal(0))
    warnings: List[OverSellWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def scope(self) -> LedgerScope:
        return LedgerScope(self.account_id, self.instrument_id)

    def get_lot(self, transaction_id: str) -> Optional[LotState]:
        return next((lot for lot in self.lots if lot.transaction_id == transaction_id), None)

    def get_sell(self, transaction_id: str) -> Optional[SellResult]:
        return next((sell for sell in self.sells if sell.transaction_id == transaction_id), None)

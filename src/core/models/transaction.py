# src/core/models/transaction.py

from datetime import datetime, timezone
from typing import NamedTuple, Optional
from pydantic import BaseModel, Field, condecimal, ConfigDict, field_validator
from decimal import Decimal

from src.core.enums.transaction_type import TransactionType


class LedgerScope(NamedTuple):
    """The (account, instrument) pair a lot pool belongs to."""
    account_id: str
    instrument_id: str

    def __str__(self) -> str:
        return f"{self.account_id}/{self.instrument_id}"


class Transaction(BaseModel):
    """
    Represents a single BUY or SELL recorded in the trading journal.
    Records are immutable; an edit replaces the whole record in the store.
    """
    transaction_id: str = Field(..., description="Unique identifier for the transaction")
    account_id: str = Field(..., alias="accountId", description="Identifier for the account")
    instrument_id: str = Field(..., alias="instrumentId", description="Identifier for the instrument (e.g., ticker)")
    transaction_type: TransactionType = Field(..., description="BUY or SELL")
    transaction_date: datetime = Field(..., description="When the trade was executed (ISO format)")
    quantity: condecimal(gt=0) = Field(..., description="Number of units traded")
    price: condecimal(gt=0) = Field(..., description="Execution price per unit")
    commission: condecimal(ge=0) = Field(default=Decimal(0), description="Commission charged for the trade")
    stop_loss_price: Optional[condecimal(gt=0)] = Field(None, description="Protective stop set at entry (BUY only)")
    take_profit_price: Optional[condecimal(gt=0)] = Field(None, description="Profit target set at entry (BUY only)")
    notes: Optional[str] = Field(None, description="Free-form journal notes")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        frozen=True
    )

    @field_validator("transaction_date")
    @classmethod
    def _normalize_to_naive_utc(cls, value: datetime) -> datetime:
        # Aware and naive datetimes cannot be compared, so every timestamp is stored as naive UTC.
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @property
    def scope(self) -> LedgerScope:
        return LedgerScope(self.account_id, self.instrument_id)

    @property
    def is_buy(self) -> bool:
        return self.transaction_type == TransactionType.BUY

    @property
    def is_sell(self) -> bool:
        return self.transaction_type == TransactionType.SELL

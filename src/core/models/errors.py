# src/core/models/errors.py

from decimal import Decimal
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


class LedgerValidationError(BaseModel):
    """
    A record was rejected before any state was touched: not a SELL where a sell
    was expected, a non-positive quantity or price, an unknown id, and so on.
    """
    kind: Literal["VALIDATION_ERROR"] = "VALIDATION_ERROR"
    code: Literal["INVALID", "NOT_FOUND", "DUPLICATE"] = "INVALID"
    transaction_id: Optional[str] = Field(None, description="The offending transaction, when one is known.")
    error_reason: str = Field(..., description="Why the record was rejected.")

    model_config = ConfigDict(frozen=True)


class OverSellWarning(BaseModel):
    """
    A sell asked for more quantity than the open lots held at that point in history.
    """
    kind: Literal["OVER_SELL"] = "OVER_SELL"
    transaction_id: str = Field(..., description="The sell that exceeded available lots.")
    sell_quantity: Decimal
    matched_quantity: Decimal
    unmatched_quantity: Decimal
    error_reason: str

    model_config = ConfigDict(frozen=True)


class InvariantViolation(BaseModel):
    """
    A post-replay ledger check failed. Always an internal defect, never user error.
    """
    kind: Literal["INVARIANT_VIOLATION"] = "INVARIANT_VIOLATION"
    invariant: str = Field(..., description="Short name of the broken rule, e.g. 'lot_bounds'.")
    transaction_id: Optional[str] = None
    error_reason: str

    model_config = ConfigDict(frozen=True)


class RecomputeFailed(BaseModel):
    """
    A recompute was aborted; the previously committed state is still authoritative.
    """
    kind: Literal["RECOMPUTE_FAILED"] = "RECOMPUTE_FAILED"
    account_id: str
    instrument_id: str
    error_reason: str
    violations: List[InvariantViolation] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


LedgerError = Union[LedgerValidationError, OverSellWarning, RecomputeFailed]

# src/core/models/response.py

from typing import List, Optional
from pydantic import BaseModel, Field

from src.core.models.errors import LedgerError
from src.core.models.ledger import DerivedState
from src.core.models.transaction import Transaction

class ErroredTransaction(BaseModel):
    """
    Represents a transaction that failed processing, along with the reason for failure.
    """
    transaction_id: str = Field(..., description="The ID of the transaction that failed.")
    error_reason: str = Field(..., description="The reason why the transaction processing failed.")


class TransactionMutationResponse(BaseModel):
    """
    Returned by create/update/delete: the stored record (None after a delete) and
    the freshly committed ledger of every scope the change touched.
    """
    transaction: Optional[Transaction] = None
    ledgers: List[DerivedState] = Field(default_factory=list)


class RecomputeAllResponse(BaseModel):
    recomputed: List[DerivedState] = Field(default_factory=list)
    failed: List[LedgerError] = Field(default_factory=list)


class SnapshotComputationResponse(BaseModel):
    """
    Represents the output of a stateless ledger computation over a posted snapshot.
    """
    ledgers: List[DerivedState] = Field(
        ...,
        description="Derived state per (account, instrument) scope found in the snapshot."
    )
    errored_transactions: List[ErroredTransaction] = Field(
        default_factory=list,
        description="Transactions that failed validation, carry an over-sell warning, or belong to a scope that failed."
    )

# src/logic/validator.py

from decimal import Decimal
from typing import Optional

from src.core.enums.transaction_type import TransactionType
from src.core.models.errors import LedgerValidationError
from src.core.models.transaction import LedgerScope, Transaction


def validate_transaction(
    transaction: Transaction,
    expected_type: Optional[TransactionType] = None,
    scope: Optional[LedgerScope] = None,
) -> Optional[LedgerValidationError]:
    """
    Checks the trade fields the ledger depends on. Pydantic already enforces most of
    this at parse time, but records built with model_construct() skip validation.
    Returns None when the record is usable.
    """
    txn_id = transaction.transaction_id

    if not TransactionType.is_valid(transaction.transaction_type):
        return LedgerValidationError(
            transaction_id=txn_id,
            error_reason=f"Unknown transaction type '{transaction.transaction_type}'."
        )
    if expected_type is not None and transaction.transaction_type != expected_type:
        return LedgerValidationError(
            transaction_id=txn_id,
            error_reason=f"Expected a {expected_type.value} transaction, got {TransactionType(transaction.transaction_type).value}."
        )
    if scope is not None and transaction.scope != scope:
        return LedgerValidationError(
            transaction_id=txn_id,
            error_reason=f"Transaction belongs to scope {transaction.scope}, not {scope}."
        )
    if transaction.quantity is None or transaction.quantity <= Decimal(0):
        return LedgerValidationError(
            transaction_id=txn_id,
            error_reason=f"Quantity must be positive, got {transaction.quantity}."
        )
    if transaction.price is None or transaction.price <= Decimal(0):
        return LedgerValidationError(
            transaction_id=txn_id,
            error_reason=f"Price must be positive, got {transaction.price}."
        )
    if transaction.commission is not None and transaction.commission < Decimal(0):
        return LedgerValidationError(
            transaction_id=txn_id,
            error_reason=f"Commission cannot be negative, got {transaction.commission}."
        )
    return None

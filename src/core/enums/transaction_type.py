# src/core/enums/transaction_type.py

from enum import Enum

class TransactionType(str, Enum):
    """
    Defines the transaction types understood by the ledger.
    Inheriting from 'str' ensures that the enum values are strings,
    making them directly usable and comparable with string inputs.
    """
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def list(cls):
        """Returns a list of all transaction type values."""
        return list(map(lambda c: c.value, cls))

    @classmethod
    def is_valid(cls, transaction_type_str: str) -> bool:
        """Checks if a given string is a valid transaction type."""
        return transaction_type_str in cls.list()

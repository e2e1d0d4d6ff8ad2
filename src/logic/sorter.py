# src/logic/sorter.py

from typing import List, Sequence
from src.core.models.transaction import Transaction

class TransactionSorter:
    """
    Responsible for putting the transactions of a scope into replay order.
    """

    def sort_transactions(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """
        Sorts transactions chronologically.

        Sorting Rules:
        1. Primary sort: transaction_date ascending.
        2. Ties keep the order the transactions were given in (insertion order).

        Args:
            transactions: Transactions in store insertion order.

        Returns:
            A new, sorted list; the input is left untouched.
        """
        # sorted() is stable, so equal dates keep insertion order
        return sorted(transactions, key=lambda txn: txn.transaction_date)

    def split_buys_and_sells(self, transactions: Sequence[Transaction]):
        """Sorts, then separates BUY lots from SELL events, both in replay order."""
        ordered = self.sort_transactions(transactions)
        buys = [txn for txn in ordered if txn.is_buy]
        sells = [txn for txn in ordered if txn.is_sell]
        return buys, sells

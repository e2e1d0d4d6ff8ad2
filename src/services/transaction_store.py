# src/services/transaction_store.py

import logging
import threading
from typing import Dict, List, Optional, Protocol, Sequence

from src.core.models.ledger import DerivedState
from src.core.models.transaction import LedgerScope, Transaction

logger = logging.getLogger(__name__)


class TransactionStore(Protocol):
    """
    Adapter interface to the transaction store the ledger reads from and commits to.
    """
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        ...

    def list_transactions(self, scope: LedgerScope) -> List[Transaction]:
        """All transactions of a scope, in insertion order."""
        ...

    def add_transaction(self, transaction: Transaction) -> None:
        ...

    def replace_transaction(self, transaction: Transaction) -> None:
        """Replaces the record with the same id, keeping its insertion position."""
        ...

    def remove_transaction(self, transaction_id: str) -> Transaction:
        ...

    def position_of(self, transaction_id: str) -> int:
        ...

    def insert_transaction_at(self, position: int, transaction: Transaction) -> None:
        ...

    def list_scopes(self) -> List[LedgerScope]:
        ...

    def get_derived_state(self, scope: LedgerScope) -> Optional[DerivedState]:
        ...

    def commit_derived_states(self, states: Sequence[DerivedState]) -> None:
        """Persists the derived state of one or more scopes as a single atomic write."""
        ...


class InMemoryTransactionStore:
    """
    Dictionary-backed TransactionStore.

    Raw transactions and committed derived state each sit behind one lock. Committed
    DerivedState objects are immutable, so a reader that got one keeps a consistent
    view even while the next recompute commits.
    """
    def __init__(self, transactions: Sequence[Transaction] = ()):
        self._lock = threading.Lock()
        self._transactions: Dict[str, Transaction] = {}
        self._derived: Dict[LedgerScope, DerivedState] = {}
        for transaction in transactions:
            self.add_transaction(transaction)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def list_transactions(self, scope: LedgerScope) -> List[Transaction]:
        with self._lock:
            return [txn for txn in self._transactions.values() if txn.scope == scope]

    def add_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.transaction_id in self._transactions:
                raise ValueError(f"Transaction {transaction.transaction_id} already exists.")
            self._transactions[transaction.transaction_id] = transaction
        logger.debug(f"InMemoryTransactionStore: Added {transaction.transaction_id} to {transaction.scope}.")

    def insert_transaction_at(self, position: int, transaction: Transaction) -> None:
        """Re-inserts a record at a given insertion position (used to undo a delete)."""
        with self._lock:
            if transaction.transaction_id in self._transactions:
                raise ValueError(f"Transaction {transaction.transaction_id} already exists.")
            items = list(self._transactions.items())
            items.insert(position, (transaction.transaction_id, transaction))
            self._transactions = dict(items)

    def position_of(self, transaction_id: str) -> int:
        with self._lock:
            return list(self._transactions).index(transaction_id)

    def replace_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.transaction_id not in self._transactions:
                raise KeyError(transaction.transaction_id)
            # Assigning to an existing key keeps its position in the dict
            self._transactions[transaction.transaction_id] = transaction
        logger.debug(f"InMemoryTransactionStore: Replaced {transaction.transaction_id}.")

    def remove_transaction(self, transaction_id: str) -> Transaction:
        with self._lock:
            removed = self._transactions.pop(transaction_id)
        logger.debug(f"InMemoryTransactionStore: Removed {transaction_id}.")
        return removed

    def list_scopes(self) -> List[LedgerScope]:
        with self._lock:
            scopes = {txn.scope for txn in self._transactions.values()}
            scopes.update(self._derived.keys())
        return sorted(scopes)

    def get_derived_state(self, scope: LedgerScope) -> Optional[DerivedState]:
        with self._lock:
            return self._derived.get(scope)

    def commit_derived_states(self, states: Sequence[DerivedState]) -> None:
        with self._lock:
            staged = dict(self._derived)
            for state in states:
                staged[state.scope] = state
            self._derived = staged
        logger.debug(f"InMemoryTransactionStore: Committed {len(states)} scope(s): {[str(s.scope) for s in states]}.")

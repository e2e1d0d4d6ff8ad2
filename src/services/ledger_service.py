# src/services/ledger_service.py

import logging
from typing import List, NamedTuple, Optional, Tuple

from src.core.models.errors import LedgerError, LedgerValidationError
from src.core.models.ledger import DerivedState
from src.core.models.result import Err, Ok, Result
from src.core.models.transaction import LedgerScope, Transaction
from src.services.recalculation_orchestrator import RecalculationOrchestrator
from src.services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)


class LedgerMutation(NamedTuple):
    """A committed create/update/delete: the stored record (None after delete) and the rebuilt ledgers."""
    transaction: Optional[Transaction]
    ledgers: List[DerivedState]


MutationResult = Result[LedgerMutation, LedgerError]


class LedgerService:
    """
    Entry point for journal edits. Every create, update or delete of a transaction
    is applied and followed by a full recompute of the scopes it touches, all under
    the scope locks. If the recompute fails the raw change is undone, so stored
    transactions and committed ledger state never disagree.
    """
    def __init__(self, store: TransactionStore, orchestrator: RecalculationOrchestrator):
        self._store = store
        self._orchestrator = orchestrator

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._store.get_transaction(transaction_id)

    def get_ledger(self, account_id: str, instrument_id: str) -> Optional[DerivedState]:
        """Committed derived state; lock-free, safe to call while a recompute runs."""
        return self._store.get_derived_state(LedgerScope(account_id, instrument_id))

    def create_transaction(self, transaction: Transaction) -> MutationResult:
        scope = transaction.scope
        with self._orchestrator.locked(scope):
            if self._store.get_transaction(transaction.transaction_id) is not None:
                return Err([LedgerValidationError(
                    code="DUPLICATE",
                    transaction_id=transaction.transaction_id,
                    error_reason=f"Transaction {transaction.transaction_id} already exists."
                )])

            self._store.add_transaction(transaction)
            result = self._orchestrator.recompute_many([scope])
            if not result.is_ok:
                self._store.remove_transaction(transaction.transaction_id)
                logger.info(f"LedgerService: Create of {transaction.transaction_id} rolled back.")
                return result

        logger.info(f"LedgerService: Created {transaction.transaction_type.value} {transaction.transaction_id} in {scope}.")
        return Ok(LedgerMutation(transaction=transaction, ledgers=result.value))

    def update_transaction(self, transaction_id: str, transaction: Transaction) -> MutationResult:
        if transaction.transaction_id != transaction_id:
            return Err([LedgerValidationError(
                transaction_id=transaction_id,
                error_reason=f"Body transaction_id '{transaction.transaction_id}' does not match '{transaction_id}'."
            )])

        while True:
            previous = self._store.get_transaction(transaction_id)
            if previous is None:
                return Err([self._not_found(transaction_id)])

            # An edit may move the record to another account or instrument: both scopes are rebuilt together.
            scopes = {previous.scope, transaction.scope}
            with self._orchestrator.locked(*scopes):
                current = self._store.get_transaction(transaction_id)
                if current is None:
                    return Err([self._not_found(transaction_id)])
                if current.scope not in scopes:
                    # Moved by a concurrent edit; retry with the scopes it has now.
                    continue

                self._store.replace_transaction(transaction)
                result = self._orchestrator.recompute_many(scopes)
                if not result.is_ok:
                    self._store.replace_transaction(current)
                    logger.info(f"LedgerService: Update of {transaction_id} rolled back.")
                    return result

            logger.info(f"LedgerService: Updated {transaction_id}; rebuilt {[str(s) for s in sorted(scopes)]}.")
            return Ok(LedgerMutation(transaction=transaction, ledgers=result.value))

    def delete_transaction(self, transaction_id: str) -> MutationResult:
        while True:
            existing = self._store.get_transaction(transaction_id)
            if existing is None:
                return Err([self._not_found(transaction_id)])

            with self._orchestrator.locked(existing.scope):
                current = self._store.get_transaction(transaction_id)
                if current is None:
                    return Err([self._not_found(transaction_id)])
                if current.scope != existing.scope:
                    continue

                position = self._store.position_of(transaction_id)
                removed = self._store.remove_transaction(transaction_id)
                result = self._orchestrator.recompute_many([removed.scope])
                if not result.is_ok:
                    self._store.insert_transaction_at(position, removed)
                    logger.info(f"LedgerService: Delete of {transaction_id} rolled back.")
                    return result

            logger.info(f"LedgerService: Deleted {transaction_id} from {removed.scope}.")
            return Ok(LedgerMutation(transaction=None, ledgers=result.value))

    def recompute(self, account_id: str, instrument_id: str) -> Result[DerivedState, LedgerError]:
        return self._orchestrator.recompute(account_id, instrument_id)

    def recompute_all(self) -> Tuple[List[DerivedState], List[LedgerError]]:
        return self._orchestrator.recompute_all()

    @staticmethod
    def _not_found(transaction_id: str) -> LedgerValidationError:
        return LedgerValidationError(
            code="NOT_FOUND",
            transaction_id=transaction_id,
            error_reason=f"Transaction {transaction_id} not found."
        )

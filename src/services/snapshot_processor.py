# src/services/snapshot_processor.py

import logging
from collections import defaultdict
from typing import Any, Dict, List, Tuple

from src.core.models.errors import RecomputeFailed
from src.core.models.ledger import DerivedState
from src.core.models.response import ErroredTransaction
from src.core.models.transaction import LedgerScope, Transaction
from src.logic.error_reporter import ErrorReporter
from src.logic.ledger_replayer import LedgerReplayer
from src.logic.parser import TransactionParser

logger = logging.getLogger(__name__)

class SnapshotProcessor:
    """
    Computes ledgers for a posted snapshot of transactions without touching any store.
    It combines parsing, grouping by scope, replay, and error reporting.
    """
    def __init__(
        self,
        parser: TransactionParser,
        replayer: LedgerReplayer,
        error_reporter: ErrorReporter
    ):
        self._parser = parser
        self._replayer = replayer
        self._error_reporter = error_reporter

    def process_transactions(
        self, raw_transactions: list[dict[str, Any]]
    ) -> Tuple[List[DerivedState], List[ErroredTransaction]]:
        """
        Parses the snapshot, replays every (account, instrument) scope it contains,
        and returns the derived states plus every transaction that could not be used.
        A scope whose replay fails is left out entirely; its transactions are reported.
        """
        logger.info(f"Starting snapshot computation over {len(raw_transactions)} transactions.")

        # 1. Parse; invalid records go to the error reporter and are dropped
        parsed = self._parser.parse_transactions(raw_transactions)

        # 2. Group by scope, keeping input order inside each scope
        by_scope: Dict[LedgerScope, List[Transaction]] = defaultdict(list)
        for transaction in parsed:
            by_scope[transaction.scope].append(transaction)

        # 3. Replay each scope independently
        ledgers: List[DerivedState] = []
        for scope in sorted(by_scope):
            transactions = by_scope[scope]
            try:
                result = self._replayer.replay(scope, transactions)
            except Exception as e:
                logger.exception(f"Unexpected error while replaying snapshot scope {scope}.")
                for transaction in transactions:
                    self._error_reporter.add_error(
                        transaction.transaction_id, f"Unexpected processing error: {type(e).__name__}: {e}"
                    )
                continue

            if result.is_ok:
                ledgers.append(result.value)
                for warning in result.value.warnings:
                    self._error_reporter.add_ledger_error(warning)
                continue

            for error in result.errors:
                if isinstance(error, RecomputeFailed):
                    for transaction in transactions:
                        self._error_reporter.add_error(transaction.transaction_id, error.error_reason)
                else:
                    self._error_reporter.add_ledger_error(error, fallback_id=str(scope))

        errored = self._error_reporter.get_errors()
        if self._error_reporter.has_errors():
            logger.warning(f"Snapshot computation reported {len(errored)} errored transaction(s).")
        logger.info(f"Finished snapshot computation. {len(ledgers)} scope(s) computed.")

        # The reporter is per request; clear it in case the processor is reused.
        self._error_reporter.clear()
        return ledgers, errored

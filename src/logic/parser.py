# src/logic/parser.py

import logging
from typing import Any
from pydantic import ValidationError, TypeAdapter

from src.core.models.transaction import Transaction
from src.logic.error_reporter import ErrorReporter

logger = logging.getLogger(__name__)

class TransactionParser:
    """
    Parses raw transaction dictionaries into validated Transaction objects.
    Handles data type conversions and initial validation using Pydantic.
    All parsing errors are reported to the shared ErrorReporter.
    """
    def __init__(self, error_reporter: ErrorReporter):
        self._single_transaction_adapter = TypeAdapter(Transaction)
        self._error_reporter = error_reporter

    def parse_transactions(self, raw_transactions_data: list[dict[str, Any]]) -> list[Transaction]:
        """
        Parses a list of raw transaction dictionaries into validated Transaction objects.
        Records that fail validation are left out of the result and reported to the
        ErrorReporter under their transaction_id (or a positional placeholder).
        """
        logger.debug(f"TransactionParser: Parsing {len(raw_transactions_data)} raw transactions.")
        parsed_transactions: list[Transaction] = []
        seen_ids: set[str] = set()

        for position, raw_txn_data in enumerate(raw_transactions_data):
            transaction_id = str(raw_txn_data.get("transaction_id") or f"UNKNOWN_ID_AT_{position}")

            try:
                validated_txn = self._single_transaction_adapter.validate_python(raw_txn_data)
            except ValidationError as e:
                error_messages = "; ".join(
                    f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}" for err in e.errors()
                )
                self._error_reporter.add_error(transaction_id, f"Validation error: {error_messages}")
                logger.debug(f"TransactionParser: Rejected {transaction_id}: {error_messages}")
                continue

            if validated_txn.transaction_id in seen_ids:
                self._error_reporter.add_error(
                    validated_txn.transaction_id,
                    f"Duplicate transaction_id '{validated_txn.transaction_id}'."
                )
                continue

            seen_ids.add(validated_txn.transaction_id)
            parsed_transactions.append(validated_txn)

        return parsed_transactions

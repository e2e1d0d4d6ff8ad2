# src/logic/error_reporter.py

from src.core.models.response import ErroredTransaction

class ErrorReporter:
    """
    Manages the collection and reporting of processing errors for transactions.
    """
    def __init__(self):
        self._errored_transactions: dict[str, ErroredTransaction] = {}

    def add_error(self, transaction_id: str, error_reason: str):
        """
        Adds an error for a specific transaction. If an error for the same
        transaction ID already exists, the new reason is appended to it.
        """
        if transaction_id in self._errored_transactions:
            existing = self._errored_transactions[transaction_id]
            if error_reason not in existing.error_reason: # Avoid duplicate messages
                self._errored_transactions[transaction_id] = ErroredTransaction(
                    transaction_id=transaction_id,
                    error_reason=f"{existing.error_reason}; {error_reason}"
                )
        else:
            self._errored_transactions[transaction_id] = ErroredTransaction(
                transaction_id=transaction_id,
                error_reason=error_reason
            )

    def add_ledger_error(self, error, fallback_id: str = "UNKNOWN"):
        """
        Records a structured ledger error (validation, over-sell or failed recompute).
        Errors without a transaction id are filed under fallback_id.
        """
        transaction_id = getattr(error, "transaction_id", None) or fallback_id
        self.add_error(transaction_id, error.error_reason)

    def get_errors(self) -> list[ErroredTransaction]:
        """
        Returns a list of all collected errored transactions.
        """
        return list(self._errored_transactions.values())

    def has_errors(self) -> bool:
        """
        Checks if any errors have been reported.
        """
        return bool(self._errored_transactions)

    def clear(self):
        """
        Clears all collected errors.
        """
        self._errored_transactions = {}

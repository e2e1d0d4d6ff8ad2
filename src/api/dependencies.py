# src/api/dependencies.py

from functools import lru_cache

from src.core.config.settings import settings
from src.logic.error_reporter import ErrorReporter
from src.logic.ledger_replayer import LedgerReplayer
from src.logic.parser import TransactionParser
from src.services.ledger_service import LedgerService
from src.services.recalculation_orchestrator import RecalculationOrchestrator
from src.services.snapshot_processor import SnapshotProcessor
from src.services.transaction_store import InMemoryTransactionStore


def build_ledger_service() -> LedgerService:
    """
    Wires a LedgerService over a fresh in-memory store, using the configured
    over-sell policy and decimal precision.
    """
    store = InMemoryTransactionStore()
    replayer = LedgerReplayer(
        oversell_policy=settings.OVERSELL_POLICY,
        decimal_precision=settings.DECIMAL_PRECISION,
    )
    orchestrator = RecalculationOrchestrator(store=store, replayer=replayer)
    return LedgerService(store=store, orchestrator=orchestrator)


@lru_cache(maxsize=1)
def get_ledger_service() -> LedgerService:
    """Process-wide ledger; the store must outlive individual requests."""
    return build_ledger_service()


def get_snapshot_processor() -> SnapshotProcessor:
    """
    Provides a new SnapshotProcessor per request, with its own error reporter.
    """
    error_reporter = ErrorReporter()
    return SnapshotProcessor(
        parser=TransactionParser(error_reporter=error_reporter),
        replayer=LedgerReplayer(
            oversell_policy=settings.OVERSELL_POLICY,
            decimal_precision=settings.DECIMAL_PRECISION,
        ),
        error_reporter=error_reporter
    )

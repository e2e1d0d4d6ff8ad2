# src/api/v1/ledger.py

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_ledger_service, get_snapshot_processor
from src.api.v1.errors import raise_for_errors
from src.core.models.ledger import DerivedState
from src.core.models.request import SnapshotComputationRequest
from src.core.models.response import RecomputeAllResponse, SnapshotComputationResponse
from src.services.ledger_service import LedgerService
from src.services.snapshot_processor import SnapshotProcessor

router = APIRouter()


@router.post(
    "/ledger/compute",
    response_model=SnapshotComputationResponse,
    summary="Compute FIFO ledgers for a snapshot of transactions",
    description="Stateless: parses the posted transactions, groups them by (account, instrument), "
                "replays each scope and returns lots, sells and errored transactions. Nothing is stored."
)
def compute_snapshot(
    request: SnapshotComputationRequest,
    processor: SnapshotProcessor = Depends(get_snapshot_processor)
) -> SnapshotComputationResponse:
    ledgers, errored = processor.process_transactions(request.transactions)
    return SnapshotComputationResponse(ledgers=ledgers, errored_transactions=errored)


@router.post(
    "/ledger/recompute-all",
    response_model=RecomputeAllResponse,
    summary="Rebuild every stored scope"
)
def recompute_all(service: LedgerService = Depends(get_ledger_service)) -> RecomputeAllResponse:
    recomputed, failed = service.recompute_all()
    return RecomputeAllResponse(recomputed=recomputed, failed=failed)


@router.get(
    "/ledger/{account_id}/{instrument_id}",
    response_model=DerivedState,
    summary="Read the committed ledger of a scope"
)
def get_ledger(
    account_id: str,
    instrument_id: str,
    service: LedgerService = Depends(get_ledger_service)
) -> DerivedState:
    ledger = service.get_ledger(account_id, instrument_id)
    if ledger is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No ledger computed for account '{account_id}' and instrument '{instrument_id}'."
        )
    return ledger


@router.post(
    "/ledger/{account_id}/{instrument_id}/recompute",
    response_model=DerivedState,
    summary="Rebuild one scope from its stored transactions"
)
def recompute_scope(
    account_id: str,
    instrument_id: str,
    service: LedgerService = Depends(get_ledger_service)
) -> DerivedState:
    result = service.recompute(account_id, instrument_id)
    if not result.is_ok:
        raise_for_errors(result)
    return result.value

# src/api/v1/transactions.py

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_ledger_service
from src.api.v1.errors import raise_for_errors
from src.core.models.response import TransactionMutationResponse
from src.core.models.transaction import Transaction
from src.services.ledger_service import LedgerService

router = APIRouter()


def _to_response(result) -> TransactionMutationResponse:
    if not result.is_ok:
        raise_for_errors(result)
    mutation = result.value
    return TransactionMutationResponse(transaction=mutation.transaction, ledgers=mutation.ledgers)


@router.post(
    "/transactions",
    response_model=TransactionMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a BUY or SELL transaction",
    description="Stores the transaction and rebuilds the ledger of its (account, instrument) scope. "
                "The transaction is not kept if the rebuild fails."
)
def create_transaction(
    transaction: Transaction,
    service: LedgerService = Depends(get_ledger_service)
) -> TransactionMutationResponse:
    return _to_response(service.create_transaction(transaction))


@router.get(
    "/transactions/{transaction_id}",
    response_model=Transaction,
    summary="Fetch a stored transaction"
)
def get_transaction(
    transaction_id: str,
    service: LedgerService = Depends(get_ledger_service)
) -> Transaction:
    transaction = service.get_transaction(transaction_id)
    if transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Transaction {transaction_id} not found.")
    return transaction


@router.put(
    "/transactions/{transaction_id}",
    response_model=TransactionMutationResponse,
    summary="Edit a transaction",
    description="Replaces the transaction and rebuilds every scope it belonged to before and after the edit."
)
def update_transaction(
    transaction_id: str,
    transaction: Transaction,
    service: LedgerService = Depends(get_ledger_service)
) -> TransactionMutationResponse:
    return _to_response(service.update_transaction(transaction_id, transaction))


@router.delete(
    "/transactions/{transaction_id}",
    response_model=TransactionMutationResponse,
    summary="Delete a transaction",
    description="Removes the transaction and rebuilds the ledger of its scope."
)
def delete_transaction(
    transaction_id: str,
    service: LedgerService = Depends(get_ledger_service)
) -> TransactionMutationResponse:
    return _to_response(service.delete_transaction(transaction_id))

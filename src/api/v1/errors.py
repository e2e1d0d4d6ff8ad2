# src/api/v1/errors.py

from fastapi import HTTPException, status

from src.core.models.errors import LedgerValidationError, OverSellWarning
from src.core.models.result import Err


def raise_for_errors(result: Err) -> None:
    """
    Maps a failed ledger result onto an HTTP error carrying the structured errors.
    Validation -> 422 (404 for unknown ids), rejected over-sell -> 409, failed recompute -> 500.
    """
    primary = result.error
    if isinstance(primary, LedgerValidationError):
        status_code = status.HTTP_404_NOT_FOUND if primary.code == "NOT_FOUND" else 422
        if primary.code == "DUPLICATE":
            status_code = status.HTTP_409_CONFLICT
    elif isinstance(primary, OverSellWarning):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    raise HTTPException(
        status_code=status_code,
        detail=[error.model_dump(mode="json") for error in result.errors]
    )

import uuid
from typing import List

from fastapi import APIRouter, Depends, Request, status

from ..core.security import get_current_user_id, get_ledger_service
from ..models.filters import TransactionFilter
from ..models.transaction import Transaction, TransactionInput, TransactionStats
from ..services.ledger import LedgerService


router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


@router.post(
    "",
    response_model=Transaction,
    status_code=status.HTTP_201_CREATED,
)
def create_transaction(
    payload: TransactionInput,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.create_transaction(user_id, payload)


@router.get(
    "",
    response_model=List[Transaction],
    status_code=status.HTTP_200_OK,
)
def list_transactions(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Query keys: categories, type, min, max, currency, from, to."""
    filters = TransactionFilter.from_params(dict(request.query_params))
    return ledger.list_transactions(user_id, filters)


@router.get(
    "/stats",
    response_model=TransactionStats,
    status_code=status.HTTP_200_OK,
)
def transaction_stats(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    filters = TransactionFilter.from_params(dict(request.query_params))
    return ledger.get_transaction_stats(user_id, filters)


@router.get(
    "/{transaction_id}",
    response_model=Transaction,
    status_code=status.HTTP_200_OK,
)
def get_transaction(
    transaction_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.get_transaction_by_id(user_id, transaction_id)

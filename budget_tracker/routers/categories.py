import uuid
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status

from ..core.security import get_current_user_id, get_ledger_service
from ..models.category import (
    CategoryStats,
    ExpenseCategoryInput,
    ExpenseCategoryRead,
    ExpenseCategoryUpdate,
    IncomeCategoryInput,
    IncomeCategoryRead,
    IncomeCategoryUpdate,
)
from ..models.filters import ExpenseCategoryFilter, IncomeCategoryFilter
from ..services.ledger import LedgerService


router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)


# ─────────────────────────────
#   EXPENSE
# ─────────────────────────────

@router.post(
    "/expense",
    response_model=ExpenseCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_expense_category(
    payload: ExpenseCategoryInput,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.create_expense_category(user_id, payload)


@router.get(
    "/expense",
    response_model=List[ExpenseCategoryRead],
    status_code=status.HTTP_200_OK,
)
def list_expense_categories(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Query keys: names, max, period, from, to."""
    filters = ExpenseCategoryFilter.from_params(dict(request.query_params))
    return ledger.list_expense_categories(user_id, filters)


@router.get(
    "/expense/stats",
    response_model=CategoryStats,
    status_code=status.HTTP_200_OK,
)
def expense_category_stats(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    filters = ExpenseCategoryFilter.from_params(dict(request.query_params))
    return ledger.get_expense_category_stats(user_id, filters)


@router.put(
    "/expense/{category_id}",
    response_model=ExpenseCategoryRead,
    status_code=status.HTTP_200_OK,
)
def update_expense_category(
    category_id: uuid.UUID,
    payload: ExpenseCategoryInput,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    update = ExpenseCategoryUpdate(
        id=category_id,
        new_name=payload.name,
        new_max_amount=payload.max_amount,
        new_period_day=payload.period_day,
        new_note=payload.note,
    )
    return ledger.update_expense_category(user_id, update)


@router.delete(
    "/expense/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_expense_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    ledger.delete_expense_category(user_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─────────────────────────────
#   INCOME
# ─────────────────────────────

@router.post(
    "/income",
    response_model=IncomeCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_income_category(
    payload: IncomeCategoryInput,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.create_income_category(user_id, payload)


@router.get(
    "/income",
    response_model=List[IncomeCategoryRead],
    status_code=status.HTTP_200_OK,
)
def list_income_categories(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Query keys: names, target, from, to."""
    filters = IncomeCategoryFilter.from_params(dict(request.query_params))
    return ledger.list_income_categories(user_id, filters)


@router.get(
    "/income/stats",
    response_model=CategoryStats,
    status_code=status.HTTP_200_OK,
)
def income_category_stats(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    filters = IncomeCategoryFilter.from_params(dict(request.query_params))
    return ledger.get_income_category_stats(user_id, filters)


@router.put(
    "/income/{category_id}",
    response_model=IncomeCategoryRead,
    status_code=status.HTTP_200_OK,
)
def update_income_category(
    category_id: uuid.UUID,
    payload: IncomeCategoryInput,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    update = IncomeCategoryUpdate(
        id=category_id,
        new_name=payload.name,
        new_target_amount=payload.target_amount,
        new_note=payload.note,
    )
    return ledger.update_income_category(user_id, update)


@router.delete(
    "/income/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_income_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    ledger.delete_income_category(user_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

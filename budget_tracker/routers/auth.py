import uuid

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import SQLModel

from ..core.security import get_bearer_token, get_current_user_id, get_ledger_service
from ..models.category import UserDataExport
from ..models.user import AccountInfo, Credentials, DeleteAccountRequest, NewUser
from ..services.ledger import LedgerService


router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


class TokenOut(SQLModel):
    access_token: str
    token_type: str = "bearer"


class SessionOut(SQLModel):
    user_id: uuid.UUID


@router.post(
    "/register",
    response_model=TokenOut,
    status_code=status.HTTP_201_CREATED,
)
def register(payload: NewUser, ledger: LedgerService = Depends(get_ledger_service)):
    return TokenOut(access_token=ledger.register(payload))


@router.post(
    "/login",
    response_model=TokenOut,
    status_code=status.HTTP_200_OK,
)
def login(payload: Credentials, ledger: LedgerService = Depends(get_ledger_service)):
    return TokenOut(access_token=ledger.login(payload))


@router.post(
    "/token",
    response_model=TokenOut,
    status_code=status.HTTP_200_OK,
)
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    ledger: LedgerService = Depends(get_ledger_service),
):
    # Same as /login, in the form encoding the OpenAPI "Authorize" button sends
    credentials = Credentials(username=form_data.username, password=form_data.password)
    return TokenOut(access_token=ledger.login(credentials))


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(
    token: str = Depends(get_bearer_token),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    ledger.logout(user_id, token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/check",
    response_model=SessionOut,
    status_code=status.HTTP_200_OK,
)
def check(user_id: uuid.UUID = Depends(get_current_user_id)):
    return SessionOut(user_id=user_id)


@router.get(
    "/me",
    response_model=AccountInfo,
    status_code=status.HTTP_200_OK,
)
def me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.get_account_info(user_id)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_me(
    payload: DeleteAccountRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    ledger.delete_account(user_id, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/export",
    response_model=UserDataExport,
    status_code=status.HTTP_200_OK,
)
def export(
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return ledger.export_user_data(user_id)

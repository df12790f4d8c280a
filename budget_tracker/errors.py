from enum import Enum
from typing import Optional
import uuid


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT FOUND"
    INVALID_INPUT = "INVALID INPUT"
    AUTH = "UNAUTHORIZED"
    ACCESS_DENIED = "ACCESS DENIED"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


class LedgerError(Exception):
    """Single failure type raised by the ledger service and its stores."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"code: {self.kind.value}, message: {self.message}"

    def to_dict(self) -> dict:
        return {"code": self.kind.value, "message": self.message}


class PartialRegistrationError(LedgerError):
    """The user row was saved but the follow-up login could not be completed."""

    def __init__(self, user_id: uuid.UUID, message: Optional[str] = None):
        super().__init__(
            ErrorKind.INTERNAL,
            message or "Registration completed but something went wrong, try log in please.",
        )
        self.user_id = user_id


def invalid_input(message: str) -> LedgerError:
    return LedgerError(ErrorKind.INVALID_INPUT, message)


def not_found(message: str) -> LedgerError:
    return LedgerError(ErrorKind.NOT_FOUND, message)


def conflict(message: str) -> LedgerError:
    return LedgerError(ErrorKind.CONFLICT, message)


def unauthorized(message: str) -> LedgerError:
    return LedgerError(ErrorKind.AUTH, message)


def access_denied(message: str) -> LedgerError:
    return LedgerError(ErrorKind.ACCESS_DENIED, message)


def internal(message: str) -> LedgerError:
    return LedgerError(ErrorKind.INTERNAL, message)

import logging
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from budget_tracker.core.sessions import SessionManager
from budget_tracker.errors import ErrorKind, LedgerError
from budget_tracker.models.user import User


@pytest.fixture
def user_id(storage, clock):
    user = User(
        id=uuid.uuid4(),
        username="bob",
        full_name="Bob",
        email="bob@x.io",
        pending_email="bob@x.io",
        hashed_password="pbkdf2_sha256$00$00",
        created_at=clock(),
    )
    storage.save_user(user)
    return user.id


@pytest.fixture
def manager(storage, config, clock):
    return SessionManager(storage, config, clock)


def test_token_is_32_hex_chars_and_expires_in_three_months(manager, storage, user_id):
    token = manager.create_session(user_id)

    assert len(token) == 32
    int(token, 16)
    session = storage.get_session_by_token(token)
    assert session.user_id == user_id
    assert session.expire_at == datetime(2025, 4, 15, 12, 0, tzinfo=timezone.utc)


def test_tokens_are_unique(manager, user_id):
    assert len({manager.create_session(user_id) for _ in range(20)}) == 20


def test_validate_returns_owner(manager, user_id):
    token = manager.create_session(user_id)
    assert manager.validate_session(token) == user_id


def test_unknown_token_is_auth_error(manager):
    with pytest.raises(LedgerError) as exc_info:
        manager.validate_session("f" * 32)
    assert exc_info.value.kind == ErrorKind.AUTH
    assert exc_info.value.message == "Session does not exist, please login."


def test_expired_session_is_auth_error(manager, user_id, clock):
    token = manager.create_session(user_id)
    clock.now = datetime(2025, 4, 15, 12, 0, 1, tzinfo=timezone.utc)

    with pytest.raises(LedgerError) as exc_info:
        manager.validate_session(token)
    assert exc_info.value.kind == ErrorKind.AUTH
    assert "expired" in exc_info.value.message


def test_no_renewal_outside_window(manager, storage, user_id, clock):
    token = manager.create_session(user_id)
    original = storage.get_session_by_token(token).expire_at

    clock.now = original - timedelta(days=6)
    manager.validate_session(token)

    assert storage.get_session_by_token(token).expire_at == original


def test_renews_when_five_days_or_less_remain(manager, storage, user_id, clock):
    token = manager.create_session(user_id)
    original = storage.get_session_by_token(token).expire_at

    clock.now = original - timedelta(days=3)
    assert manager.validate_session(token) == user_id

    renewed = storage.get_session_by_token(token).expire_at
    assert renewed == datetime(2025, 5, 12, 12, 0, tzinfo=timezone.utc)
    assert renewed > original


def test_renewal_only_touches_the_checked_session(manager, storage, user_id, clock):
    first = manager.create_session(user_id)
    clock.advance(days=1)
    second = manager.create_session(user_id)
    second_expiry = storage.get_session_by_token(second).expire_at

    clock.now = storage.get_session_by_token(first).expire_at - timedelta(days=1)
    manager.validate_session(first)

    assert storage.get_session_by_token(second).expire_at == second_expiry


def test_renewal_failure_still_authorizes(manager, storage, user_id, clock, monkeypatch, caplog):
    token = manager.create_session(user_id)
    clock.now = storage.get_session_by_token(token).expire_at - timedelta(days=1)

    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(storage, "update_session_expiry", broken)
    with caplog.at_level(logging.WARNING, logger="budget_tracker"):
        assert manager.validate_session(token) == user_id
    assert "failed to renew session" in caplog.text


def test_invalidate_ends_session(manager, user_id):
    token = manager.create_session(user_id)
    manager.invalidate_session(user_id, token)

    with pytest.raises(LedgerError) as exc_info:
        manager.validate_session(token)
    assert exc_info.value.kind == ErrorKind.AUTH


def test_invalidate_is_idempotent(manager, storage, user_id, clock):
    token = manager.create_session(user_id)
    manager.invalidate_session(user_id, token)
    first = storage.get_session_by_token(token).expire_at

    clock.advance(minutes=5)
    manager.invalidate_session(user_id, token)

    assert storage.get_session_by_token(token).expire_at == first


def test_invalidate_unknown_token(manager, user_id):
    with pytest.raises(LedgerError) as exc_info:
        manager.invalidate_session(user_id, "0" * 32)
    assert exc_info.value.kind == ErrorKind.AUTH


def test_invalidate_someone_elses_session(manager, user_id):
    token = manager.create_session(user_id)
    with pytest.raises(LedgerError) as exc_info:
        manager.invalidate_session(uuid.uuid4(), token)
    assert exc_info.value.kind == ErrorKind.ACCESS_DENIED


def test_save_failure_is_internal(manager, storage, user_id, monkeypatch):
    def broken(session):
        raise RuntimeError("db down")

    monkeypatch.setattr(storage, "save_session", broken)
    with pytest.raises(LedgerError) as exc_info:
        manager.create_session(user_id)
    assert exc_info.value.kind == ErrorKind.INTERNAL

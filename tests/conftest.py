"""Shared fixtures: a controllable clock, both storage implementations and a wired service."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from budget_tracker.config import Settings
from budget_tracker.database import init_db, make_engine
from budget_tracker.main import create_app
from budget_tracker.models.user import NewUser
from budget_tracker.services.ledger import LedgerService
from budget_tracker.storage.memory import InMemoryStorage
from budget_tracker.storage.sql import SQLStorage


START = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return Settings(environment="test", log_dir=str(tmp_path / "logs"), storage_type="memory")


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def sql_storage(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield SQLStorage(engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Runs the test once per storage implementation."""
    return request.getfixturevalue(f"{request.param}_storage")


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def service(storage, config, clock):
    return LedgerService(storage, config, clock)


@pytest.fixture
def alice(service):
    """Registered user; returns (user_id, token)."""
    token = service.register(
        NewUser(username="alice", full_name="alice smith", email="a@x.io", password="pw123")
    )
    return service.check_session(token), token


@pytest.fixture
def client(config, clock):
    app = create_app(LedgerService(InMemoryStorage(), config, clock), config)
    with TestClient(app) as test_client:
        yield test_client

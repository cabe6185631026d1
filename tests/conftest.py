"""
Shared fixtures.

Everything runs against MockStorageClient: no network, no bucket. Time
is frozen so keys are predictable.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from bucketfs.api.dependencies import get_clock, get_storage_client
from bucketfs.config.settings import Settings, get_settings
from bucketfs.core.storage.clock import to_millis
from bucketfs.infrastructure.storage.client import MockStorageClient
from bucketfs.main import create_app

API_KEY = "test-key"

FROZEN_AT = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
FROZEN_MILLIS = to_millis(FROZEN_AT)


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, moment: datetime = FROZEN_AT) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, **kwargs) -> None:
        self.moment = self.moment + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def frozen_millis() -> int:
    """Timestamp prefix every key minted at FROZEN_AT carries."""
    return FROZEN_MILLIS


@pytest.fixture
def store(clock) -> MockStorageClient:
    return MockStorageClient(now=clock.now)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_keys=API_KEY,
        r2_mock_mode=True,
        max_upload_size_mb=1,
        _env_file=None,
    )


@pytest.fixture
def client(store, clock, settings):
    """TestClient wired to the mock store, frozen clock and test settings."""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_storage_client] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app, headers={"X-API-Key": API_KEY}) as test_client:
        yield test_client

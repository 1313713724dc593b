"""Shared fixtures for the security core tests."""

from datetime import datetime, timedelta, timezone

import pytest

from records_auth import SecurityService, SecuritySettings


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FailingStore(dict):
    """Dict store that rejects writes to selected keys."""

    def __init__(self, *args, fail_keys=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_keys = set(fail_keys)

    def __setitem__(self, key, value):
        if key in self.fail_keys:
            raise OSError(f"disk full while writing {key}")
        super().__setitem__(key, value)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    # Low iteration count keeps key derivation fast in tests
    return SecuritySettings(kdf_iterations=1_000, service_salt="test-salt")


@pytest.fixture
def store():
    return {}


@pytest.fixture
def service(store, settings, clock):
    return SecurityService(store=store, settings=settings, clock=clock)

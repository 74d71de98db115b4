"""Shared fixtures. scrypt cost is kept low so the suite runs quickly."""

from datetime import datetime, timedelta, timezone

import pytest

from credadmin.auth import LocalAuthenticationProvider
from credadmin.config import Settings
from credadmin.policy import PasswordPolicyValidator
from credadmin.service import AccountService
from credadmin.store import CredentialStore

FAST_SCRYPT = {"n": 2**10, "r": 8, "p": 1}


class FakeClock:
    """Returns a fixed time, advanced one minute per call."""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "account-info.json")


@pytest.fixture
def store(store_path):
    return CredentialStore(store_path)


@pytest.fixture
def validator():
    return PasswordPolicyValidator.from_config({"minLength": 8})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider(validator, clock):
    return LocalAuthenticationProvider(validator, clock=clock, **FAST_SCRYPT)


@pytest.fixture
def service(store, provider):
    return AccountService(store, provider)


@pytest.fixture
def settings(store_path):
    return Settings(store_path=store_path, scrypt_n=FAST_SCRYPT["n"],
                    min_password_length=8, log_level="CRITICAL")

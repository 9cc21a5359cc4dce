"""
Shared pytest fixtures for the SecureKey test suite.

Autouse fixtures below isolate tests from process-wide state:
  - Settings / services singletons -> reset per test
  - Event logger singleton         -> fresh instance per test

Everything time-dependent takes the injectable ``FakeClock`` and every
database lives under ``tmp_path``.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# Low iteration count keeps account tests fast; the format is unchanged
TEST_HASH_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Reset module singletons so tests never share settings or services."""
    import securekey.api.services as services_mod
    import securekey.core.config as config_mod
    import securekey.core.event_log as event_log_mod

    old = (config_mod._settings, services_mod._services, event_log_mod._event_logger)
    config_mod._settings = None
    services_mod._services = None
    event_log_mod._event_logger = None

    yield

    config_mod._settings, services_mod._services, event_log_mod._event_logger = old


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def key_provider():
    """Ephemeral 256-bit vault key."""
    from securekey.vault.encryption import StaticKeyProvider
    return StaticKeyProvider(os.urandom(32))


@pytest.fixture
def encryption(key_provider):
    from securekey.vault.encryption import EncryptionService
    return EncryptionService(key_provider)


@pytest.fixture
def database(tmp_path):
    from securekey.storage import SQLiteDatabase
    return SQLiteDatabase(tmp_path / "securekey.db")


@pytest.fixture
def account_store(database):
    from securekey.storage import SQLiteAccountStore
    return SQLiteAccountStore(database)


@pytest.fixture
def credential_store(database):
    from securekey.storage import SQLiteCredentialStore
    return SQLiteCredentialStore(database)


@pytest.fixture
def notifier():
    from securekey.mfa import OutboxNotifier
    return OutboxNotifier()


@pytest.fixture
def mfa_manager(account_store, notifier, clock):
    from securekey.mfa import MFASessionManager
    return MFASessionManager(account_store, notifier, clock=clock, pepper=b"test-pepper")


@pytest.fixture
def account_service(account_store, mfa_manager, notifier, clock):
    from securekey.accounts import AccountService
    return AccountService(
        account_store,
        mfa_manager,
        notifier,
        clock=clock,
        pepper=b"test-pepper",
        hash_iterations=TEST_HASH_ITERATIONS,
    )


@pytest.fixture
def evaluator():
    from securekey.strength import StrengthEvaluator
    return StrengthEvaluator()


@pytest.fixture
def credential_manager(credential_store, account_store, encryption, evaluator, mfa_manager, clock):
    from securekey.vault import CredentialManager
    return CredentialManager(
        credential_store,
        account_store,
        encryption,
        evaluator,
        mfa=mfa_manager,
        clock=clock,
    )


@pytest.fixture
def verified_user(account_service, mfa_manager, notifier):
    """Registered account with a confirmed code and a running MFA session."""
    from securekey.mfa import CodePurpose

    account = account_service.register("Alice Example", "alice@example.com", "Str0ng!Passw0rd")
    code = notifier.latest(account.email, CodePurpose.MFA)
    mfa_manager.verify(account.id, code.value)
    return account_service.get(account.id)

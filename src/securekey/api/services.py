# SecureKey API - Service Wiring
#
# Builds the storage, encryption, MFA, account and vault services from
# Settings once per process. Routes fetch them through get_services();
# tests swap in their own container with set_services().

import logging
from dataclasses import dataclass
from typing import Optional

from ..accounts.service import AccountService
from ..core.clock import Clock, utcnow
from ..core.config import Settings, get_settings
from ..mfa.manager import MFASessionManager
from ..mfa.notifier import CodeNotifier, OutboxNotifier
from ..storage.sqlite import SQLiteAccountStore, SQLiteCredentialStore, SQLiteDatabase
from ..strength.evaluator import StrengthEvaluator
from ..strength.generator import RecommendationGenerator
from ..vault.encryption import EncryptionService, KeyProvider, SecretKeyProvider
from ..vault.vault_manager import CredentialManager

logger = logging.getLogger(__name__)


@dataclass
class VaultServices:
    settings: Settings
    database: SQLiteDatabase
    notifier: CodeNotifier
    mfa: MFASessionManager
    accounts: AccountService
    vault: CredentialManager
    evaluator: StrengthEvaluator
    generator: RecommendationGenerator
    clock: Clock = utcnow


def build_services(
    settings: Settings,
    notifier: Optional[CodeNotifier] = None,
    key_provider: Optional[KeyProvider] = None,
    clock: Clock = utcnow,
    hash_iterations: Optional[int] = None,
) -> VaultServices:
    """
    Wire every service against one SQLite database.

    Args:
        settings: Process configuration
        notifier: Code delivery (defaults to an in-memory outbox)
        key_provider: Vault key source (defaults to scrypt over the
                      configured encryption secret)
        clock: Time source shared by every service
        hash_iterations: PBKDF2 iterations override for login passwords
    """
    database = SQLiteDatabase(settings.db_path)
    account_store = SQLiteAccountStore(database)
    credential_store = SQLiteCredentialStore(database)

    notifier = notifier or OutboxNotifier()
    pepper = settings.session_secret.encode("utf-8")

    if key_provider is None:
        key_provider = SecretKeyProvider(settings.encryption_secret, salt=settings.kdf_salt)
        if not key_provider.configured:
            logger.warning(
                "SECUREKEY_ENCRYPTION_KEY is not set; vault operations will fail "
                "until it is configured"
            )

    mfa = MFASessionManager(account_store, notifier, clock=clock, pepper=pepper)

    account_kwargs = {}
    if hash_iterations is not None:
        account_kwargs["hash_iterations"] = hash_iterations
    accounts = AccountService(
        account_store, mfa, notifier, clock=clock, pepper=pepper, **account_kwargs
    )

    evaluator = StrengthEvaluator()
    vault = CredentialManager(
        credential_store,
        account_store,
        EncryptionService(key_provider, mode=settings.cipher_mode),
        evaluator,
        mfa=mfa,
        clock=clock,
    )

    logger.info("Services ready (db=%s, cipher=%s)", settings.db_path, settings.cipher_mode)

    return VaultServices(
        settings=settings,
        database=database,
        notifier=notifier,
        mfa=mfa,
        accounts=accounts,
        vault=vault,
        evaluator=evaluator,
        generator=RecommendationGenerator(evaluator),
        clock=clock,
    )


# ── Singleton ────────────────────────────────────────────────────────

_services: Optional[VaultServices] = None


def get_services() -> VaultServices:
    """Get or build the process-wide service container."""
    global _services
    if _services is None:
        _services = build_services(get_settings())
    return _services


def set_services(services: Optional[VaultServices]) -> None:
    """Replace the singleton (for testing)."""
    global _services
    _services = services

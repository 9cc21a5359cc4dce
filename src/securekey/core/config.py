# SecureKey - Process Configuration
#
# Settings come from the environment, optionally seeded from a .env file.
# The encryption secret is read here but only required at first vault use:
# a process without it can still serve strength checks and login.

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ValidationError

logger = logging.getLogger(__name__)

# ── Boundaries ──────────────────────────────────────────────────────

REMINDER_FREQUENCY_MIN_DAYS = 30
REMINDER_FREQUENCY_MAX_DAYS = 365
DEFAULT_REMINDER_FREQUENCY_DAYS = 90

MFA_DURATION_MIN_MINUTES = 1
MFA_DURATION_MAX_MINUTES = 60
DEFAULT_MFA_DURATION_MINUTES = 10

CIPHER_MODES = ("aes-256-gcm", "aes-256-cbc")


def validate_reminder_frequency(days: int) -> int:
    """Reject reminder frequencies outside [30, 365] days."""
    if not REMINDER_FREQUENCY_MIN_DAYS <= days <= REMINDER_FREQUENCY_MAX_DAYS:
        raise ValidationError(
            f"Reminder frequency must be between {REMINDER_FREQUENCY_MIN_DAYS} "
            f"and {REMINDER_FREQUENCY_MAX_DAYS} days"
        )
    return days


def validate_mfa_duration(minutes: int) -> int:
    """Reject MFA session durations outside [1, 60] minutes."""
    if not MFA_DURATION_MIN_MINUTES <= minutes <= MFA_DURATION_MAX_MINUTES:
        raise ValidationError(
            f"MFA session duration must be between {MFA_DURATION_MIN_MINUTES} "
            f"and {MFA_DURATION_MAX_MINUTES} minutes"
        )
    return minutes


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Resolved process configuration.

    Args:
        encryption_secret: Secret the vault key is derived from (None = unset)
        session_secret: HMAC key for auth tokens and one-time code digests
        db_path: SQLite database file
        kdf_salt: Fixed salt for the vault key derivation
        cipher_mode: "aes-256-gcm" (default) or "aes-256-cbc" (legacy blobs)
        token_ttl_days: Lifetime of signed auth tokens
        log_level: Root log level name
        log_json: Render log lines as JSON instead of console format
    """

    encryption_secret: Optional[str] = None
    session_secret: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    db_path: Path = Path("data/securekey.db")
    kdf_salt: bytes = b"salt"
    cipher_mode: str = "aes-256-gcm"
    token_ttl_days: int = 10
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        if self.cipher_mode not in CIPHER_MODES:
            raise ValidationError(
                f"Unsupported cipher mode {self.cipher_mode!r} "
                f"(expected one of {', '.join(CIPHER_MODES)})"
            )
        if self.token_ttl_days < 1:
            raise ValidationError("Token lifetime must be at least one day")

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """Build settings from SECUREKEY_* environment variables."""
        load_dotenv(dotenv_path=env_file)

        session_secret = os.environ.get("SECUREKEY_SESSION_SECRET")
        if not session_secret:
            logger.warning(
                "SECUREKEY_SESSION_SECRET is not set; using a random secret. "
                "Issued tokens will not survive a restart."
            )
            session_secret = secrets.token_urlsafe(32)

        return cls(
            encryption_secret=os.environ.get("SECUREKEY_ENCRYPTION_KEY") or None,
            session_secret=session_secret,
            db_path=Path(os.environ.get("SECUREKEY_DB_PATH", "data/securekey.db")),
            kdf_salt=os.environ.get("SECUREKEY_KDF_SALT", "salt").encode("utf-8"),
            cipher_mode=os.environ.get("SECUREKEY_CIPHER_MODE", "aes-256-gcm"),
            token_ttl_days=int(os.environ.get("SECUREKEY_TOKEN_TTL_DAYS", "10")),
            log_level=os.environ.get("SECUREKEY_LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("SECUREKEY_LOG_JSON", False),
        )


# ── Singleton ────────────────────────────────────────────────────────

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or load the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the singleton (for testing)."""
    global _settings
    _settings = settings

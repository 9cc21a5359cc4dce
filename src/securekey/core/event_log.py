# SecureKey - Structured Security Events
#
# Vault, MFA and account events are emitted as structured records through
# structlog on top of the stdlib logging pipeline. This is operational
# logging only: nothing is persisted to a separate trail.
#
# Events must never carry plaintext secrets, key material or OTP values.

import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of security events emitted by the core."""

    # Vault Events
    VAULT_RECORD_CREATED = "vault.record.created"
    VAULT_RECORD_ACCESSED = "vault.record.accessed"
    VAULT_RECORD_UPDATED = "vault.record.updated"
    VAULT_RECORD_DELETED = "vault.record.deleted"
    VAULT_CRYPTO_ERROR = "vault.crypto.error"

    # MFA Events
    MFA_CODE_ISSUED = "mfa.code.issued"
    MFA_VERIFIED = "mfa.verified"
    MFA_VERIFY_FAILED = "mfa.verify.failed"
    MFA_SESSION_ENDED = "mfa.session.ended"
    MFA_DURATION_CHANGED = "mfa.duration.changed"
    MFA_REQUIRED = "mfa.required"

    # Account Events
    ACCOUNT_REGISTERED = "account.registered"
    ACCOUNT_LOGIN = "account.login"
    ACCOUNT_LOGIN_FAILED = "account.login.failed"
    ACCOUNT_LOGOUT = "account.logout"
    ACCOUNT_PASSWORD_CHANGED = "account.password.changed"
    ACCOUNT_RESET_REQUESTED = "account.reset.requested"
    ACCOUNT_PASSWORD_RESET = "account.password.reset"
    ACCOUNT_SETTINGS_CHANGED = "account.settings.changed"
    ACCOUNT_PROFILE_UPDATED = "account.profile.updated"

    # System Events
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for security events.

    - INFO: Normal activity
    - INVESTIGATE: A failed attempt worth watching (bad code, bad login)
    - ALERT: Something refused to decrypt or verify
    - CRITICAL: The process cannot serve vault operations
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self.value]


_LOG_LEVELS = {
    "info": logging.INFO,
    "investigate": logging.WARNING,
    "alert": logging.WARNING,
    "critical": logging.CRITICAL,
}

_configured = False
_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Configure stdlib logging and structlog for the process.

    Args:
        level: Root log level name
        json: Render JSON lines instead of the console renderer
    """
    global _configured, _handler

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))  # structlog handles formatting

    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    _handler = handler
    _configured = True


class EventLogger:
    """
    Emits structured security events.

    Features:
    - Structured key/value records (JSON when configured)
    - Automatic timestamp and event ID
    - Severity mapped onto stdlib log levels
    """

    def __init__(self, name: str = "securekey.events"):
        if not _configured:
            configure_logging()
        self.logger = structlog.get_logger(name)

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> str:
        """
        Emit a security event.

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (ids, counts; never secrets)
            user_id: Account the event concerns

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        self.logger.log(
            severity.log_level,
            "security_event",
            event_id=event_id,
            event_type=event_type.value,
            severity=severity.value,
            message=message,
            user_id=user_id,
            details=details or {},
            occurred_at=datetime.now(timezone.utc).isoformat(),
        )

        return event_id

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Log a routine vault event (record ids only, never passwords)."""
        return self.log_event(
            event_type=event_type,
            severity=EventSeverity.INFO,
            message=f"Vault: {message}",
            details=details,
            user_id=user_id,
        )


# Global logger instance
_event_logger: Optional[EventLogger] = None


def get_event_logger() -> EventLogger:
    """Get global event logger (singleton pattern)."""
    global _event_logger
    if _event_logger is None:
        _event_logger = EventLogger()
    return _event_logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging security events.

    Usage:
        log_security_event(
            EventType.MFA_VERIFY_FAILED,
            EventSeverity.INVESTIGATE,
            "Invalid verification code",
            user_id=user.id,
        )
    """
    return get_event_logger().log_event(event_type, severity, message, **kwargs)

# Core module provides shared functionality across SecureKey modules:
# - Configuration
# - Error taxonomy
# - Structured security events
# - Clock

from .clock import utcnow
from .config import Settings, get_settings, set_settings
from .errors import (
    AccountExistsError,
    AuthenticationError,
    CryptoError,
    IntegrityError,
    InvalidOrExpiredCode,
    KeyNotConfiguredError,
    MFARequiredError,
    NotFoundError,
    RecommendationError,
    SecureKeyError,
    ValidationError,
    VerificationRequiredError,
)
from .event_log import (
    EventLogger,
    EventSeverity,
    EventType,
    configure_logging,
    get_event_logger,
    log_security_event,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "set_settings",
    "utcnow",
    # Errors
    "SecureKeyError",
    "CryptoError",
    "KeyNotConfiguredError",
    "IntegrityError",
    "MFARequiredError",
    "InvalidOrExpiredCode",
    "NotFoundError",
    "ValidationError",
    "VerificationRequiredError",
    "AuthenticationError",
    "AccountExistsError",
    "RecommendationError",
    # Events
    "EventLogger",
    "EventType",
    "EventSeverity",
    "configure_logging",
    "get_event_logger",
    "log_security_event",
]

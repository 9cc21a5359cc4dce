# SecureKey - Main Package
#
# Encrypted credential vault: per-secret AES-256 sealing, MFA-gated access,
# password strength scoring and rotation reminders.

__version__ = "0.3.0"
__author__ = "SecureKey Team"
__description__ = "Encrypted credential vault with MFA-gated access"

from .core import (
    EventSeverity,
    EventType,
    SecureKeyError,
    Settings,
    get_event_logger,
    get_settings,
)

__all__ = [
    "__version__",
    "EventSeverity",
    "EventType",
    "SecureKeyError",
    "Settings",
    "get_event_logger",
    "get_settings",
]

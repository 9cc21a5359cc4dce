# MFA Module - one-time codes and the time-boxed verification session

from .otp import CodePurpose, OneTimeCode, StoredCode, OTP_TTL
from .session import MFAState, PendingCode, Unverified, Verified
from .notifier import CodeNotifier, Delivery, OutboxNotifier
from .manager import MFASessionManager, MFAStatus

__all__ = [
    "CodePurpose",
    "OneTimeCode",
    "StoredCode",
    "OTP_TTL",
    "MFAState",
    "PendingCode",
    "Unverified",
    "Verified",
    "CodeNotifier",
    "Delivery",
    "OutboxNotifier",
    "MFASessionManager",
    "MFAStatus",
]

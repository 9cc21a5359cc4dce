"""One-time codes for MFA challenges and password resets.

A code's plaintext value only exists in the ``OneTimeCode`` handed to the
notifier. What gets stored is a ``StoredCode``: an HMAC digest of the
value plus its expiry.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from ..core.clock import parse_timestamp

OTP_DIGITS = 6
OTP_TTL = timedelta(minutes=10)


class CodePurpose(str, Enum):
    MFA = "mfa"
    RESET = "reset"


@dataclass(frozen=True)
class OneTimeCode:
    """A freshly issued code, on its way to out-of-band delivery."""

    value: str
    purpose: CodePurpose
    expiry: datetime

    def __repr__(self) -> str:
        # Keep the value out of tracebacks and debug output
        return f"OneTimeCode(purpose={self.purpose.value}, expiry={self.expiry.isoformat()})"


@dataclass(frozen=True)
class StoredCode:
    """The persisted half of a code: digest + expiry."""

    digest: str
    expiry: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expiry

    def matches(self, submitted: str, now: datetime, pepper: bytes = b"") -> bool:
        """True iff ``submitted`` is this code and it has not expired."""
        if self.is_expired(now):
            return False
        candidate = digest_code(submitted, pepper)
        return hmac.compare_digest(candidate, self.digest)

    def to_dict(self) -> Dict[str, str]:
        return {"digest": self.digest, "expiry": self.expiry.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredCode":
        return cls(digest=data["digest"], expiry=parse_timestamp(data["expiry"]))


def digest_code(value: str, pepper: bytes = b"") -> str:
    return hmac.new(pepper, value.strip().encode("utf-8"), hashlib.sha256).hexdigest()


def generate_code_value(randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    """Uniform 6-digit numeric code, zero-padded."""
    return f"{randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


def issue_code(
    purpose: CodePurpose,
    now: datetime,
    ttl: timedelta = OTP_TTL,
    pepper: bytes = b"",
    randbelow: Callable[[int], int] = secrets.randbelow,
) -> Tuple[OneTimeCode, StoredCode]:
    """
    Issue a new code.

    Returns:
        (code for delivery, stored digest)
    """
    value = generate_code_value(randbelow)
    expiry = now + ttl
    return (
        OneTimeCode(value=value, purpose=purpose, expiry=expiry),
        StoredCode(digest=digest_code(value, pepper), expiry=expiry),
    )


def stored_code_from_dict(data: Optional[Dict[str, Any]]) -> Optional[StoredCode]:
    return StoredCode.from_dict(data) if data else None

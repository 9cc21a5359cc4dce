"""Account model shared by the account store, MFA manager and API."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.clock import utcnow
from ..core.config import DEFAULT_MFA_DURATION_MINUTES, DEFAULT_REMINDER_FREQUENCY_DAYS
from ..mfa.otp import StoredCode
from ..mfa.session import MFAState, Unverified


@dataclass
class UserAccount:
    """A vault owner.

    ``verified`` flips on the first successful MFA verification (e-mail
    ownership proven) and gates destructive operations.
    """

    id: str
    name: str
    email: str
    password_hash: str
    verified: bool = False
    created_at: datetime = field(default_factory=utcnow)
    reminder_frequency_days: int = DEFAULT_REMINDER_FREQUENCY_DAYS
    mfa_state: MFAState = field(default_factory=Unverified)
    mfa_duration_minutes: int = DEFAULT_MFA_DURATION_MINUTES
    reset_code: Optional[StoredCode] = None

    def to_public_dict(self) -> Dict[str, Any]:
        """Profile fields safe to return to the owner."""
        return {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
            "verified": self.verified,
            "reminderFrequency": self.reminder_frequency_days,
            "createdAt": self.created_at.isoformat(),
        }

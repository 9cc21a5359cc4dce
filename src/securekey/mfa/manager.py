# SecureKey MFA - Session Manager
#
# Loads a user's MFA state from the account store, applies one transition
# with the injected clock, persists the result, and reports.
# Nothing runs in the background: expiry is evaluated on every check.

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..core.clock import Clock, utcnow
from ..core.config import validate_mfa_duration
from ..core.errors import InvalidOrExpiredCode, MFARequiredError, NotFoundError
from ..core.event_log import EventSeverity, EventType, get_event_logger
from . import session as mfa
from .notifier import CodeNotifier
from .otp import OTP_TTL, OneTimeCode

if TYPE_CHECKING:
    from ..accounts.models import UserAccount
    from ..storage.base import AccountStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MFAStatus:
    mfa_required: bool
    session_expiry: Optional[datetime]
    duration_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mfaRequired": self.mfa_required,
            "mfaSessionExpiry": self.session_expiry.isoformat() if self.session_expiry else None,
            "mfaSessionDuration": self.duration_minutes,
        }


class MFASessionManager:
    """
    Gates vault access behind a time-boxed, code-verified session.

    Args:
        accounts: Account store holding each user's MFA state
        notifier: Receives issued codes for out-of-band delivery
        clock: Time source (UTC)
        code_ttl: Lifetime of an issued code
        pepper: HMAC key for stored code digests
    """

    def __init__(
        self,
        accounts: "AccountStore",
        notifier: CodeNotifier,
        clock: Clock = utcnow,
        code_ttl: timedelta = OTP_TTL,
        pepper: bytes = b"",
    ):
        self.accounts = accounts
        self.notifier = notifier
        self.clock = clock
        self.code_ttl = code_ttl
        self.pepper = pepper
        self.events = get_event_logger()

    def _load(self, user_id: str) -> "UserAccount":
        account = self.accounts.get(user_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    def issue_code(self, user_id: str) -> OneTimeCode:
        """Issue (or reissue) an MFA code and hand it to the notifier.

        Any running session ends: the user must confirm the new code.
        """
        account = self._load(user_id)
        account.mfa_state, code = mfa.issue(
            account.mfa_state, self.clock(), ttl=self.code_ttl, pepper=self.pepper
        )
        self.accounts.update(account, fields=("mfa_state",))

        self.notifier.deliver(account.email, code)
        self.events.log_event(
            event_type=EventType.MFA_CODE_ISSUED,
            severity=EventSeverity.INFO,
            message="MFA verification code issued",
            user_id=user_id,
            details={"expiry": code.expiry.isoformat()},
        )
        return code

    def verify(self, user_id: str, submitted: str) -> mfa.Verified:
        """
        Confirm the pending code and open a session.

        The first successful verification also marks the account verified.

        Raises:
            InvalidOrExpiredCode: Wrong/expired/absent code (state unchanged)
        """
        account = self._load(user_id)
        now = self.clock()
        try:
            verified = mfa.verify(
                account.mfa_state, submitted, now,
                duration_minutes=account.mfa_duration_minutes,
                pepper=self.pepper,
            )
        except InvalidOrExpiredCode:
            self.events.log_event(
                event_type=EventType.MFA_VERIFY_FAILED,
                severity=EventSeverity.INVESTIGATE,
                message="Invalid or expired MFA code submitted",
                user_id=user_id,
                details={"state": mfa.effective(account.mfa_state, now).name},
            )
            raise

        account.mfa_state = verified
        account.verified = True
        self.accounts.update(account, fields=("mfa_state", "verified"))

        self.events.log_event(
            event_type=EventType.MFA_VERIFIED,
            severity=EventSeverity.INFO,
            message="MFA session started",
            user_id=user_id,
            details={"expiry": verified.expiry.isoformat()},
        )
        return verified

    def is_valid(self, user_id: str) -> bool:
        """Pure query: is there a running, unexpired session?"""
        return mfa.is_valid(self._load(user_id).mfa_state, self.clock())

    def require_valid(self, user_id: str) -> None:
        """
        Raises:
            MFARequiredError: When the session is absent or lapsed
        """
        if not self.is_valid(user_id):
            self.events.log_event(
                event_type=EventType.MFA_REQUIRED,
                severity=EventSeverity.INFO,
                message="Protected operation refused: MFA session absent or lapsed",
                user_id=user_id,
            )
            raise MFARequiredError("MFA verification required")

    def end(self, user_id: str) -> None:
        """End a running session (logout, re-challenge). A pending code is kept."""
        account = self._load(user_id)
        ended = mfa.end(account.mfa_state)
        if ended == account.mfa_state:
            return
        account.mfa_state = ended
        self.accounts.update(account, fields=("mfa_state",))
        self.events.log_event(
            event_type=EventType.MFA_SESSION_ENDED,
            severity=EventSeverity.INFO,
            message="MFA session ended",
            user_id=user_id,
        )

    def set_duration(self, user_id: str, minutes: int) -> MFAStatus:
        """
        Change the session window; a running session keeps its elapsed time.

        Raises:
            ValidationError: minutes outside [1, 60]
        """
        validate_mfa_duration(minutes)
        account = self._load(user_id)
        account.mfa_duration_minutes = minutes
        account.mfa_state = mfa.rescale(account.mfa_state, minutes, self.clock())
        self.accounts.update(account, fields=("mfa_state", "mfa_duration_minutes"))

        self.events.log_event(
            event_type=EventType.MFA_DURATION_CHANGED,
            severity=EventSeverity.INFO,
            message=f"MFA session duration set to {minutes} minutes",
            user_id=user_id,
        )
        return self._status(account)

    def status(self, user_id: str) -> MFAStatus:
        return self._status(self._load(user_id))

    def _status(self, account: "UserAccount") -> MFAStatus:
        state = mfa.effective(account.mfa_state, self.clock())
        return MFAStatus(
            mfa_required=not isinstance(state, mfa.Verified),
            session_expiry=state.expiry if isinstance(state, mfa.Verified) else None,
            duration_minutes=account.mfa_duration_minutes,
        )

# SecureKey Accounts - Account Service
#
# Registration, login, profile, login-password change and reset, reminder
# settings.
# The password-reset code lives in its own slot on the account and has a
# lifecycle independent of the MFA code.

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from ..core.clock import Clock, utcnow
from ..core.config import validate_reminder_frequency
from ..core.errors import (
    AuthenticationError,
    InvalidOrExpiredCode,
    NotFoundError,
    ValidationError,
    VerificationRequiredError,
)
from ..core.event_log import EventSeverity, EventType, get_event_logger
from ..mfa.notifier import CodeNotifier
from ..mfa.otp import OTP_TTL, CodePurpose, OneTimeCode, issue_code
from .models import UserAccount
from .passwords import PBKDF2_ITERATIONS, check_password_policy, hash_password, verify_password

if TYPE_CHECKING:
    from ..mfa.manager import MFASessionManager
    from ..storage.base import AccountStore

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """
    Manages vault owner accounts.

    Args:
        accounts: Account store
        mfa: Session manager (registration issues the first MFA code)
        notifier: Receives password-reset codes
        clock: Time source (UTC)
        code_ttl: Lifetime of a reset code
        pepper: HMAC key for stored code digests
        hash_iterations: PBKDF2 iterations for login passwords
    """

    def __init__(
        self,
        accounts: "AccountStore",
        mfa: "MFASessionManager",
        notifier: CodeNotifier,
        clock: Clock = utcnow,
        code_ttl: timedelta = OTP_TTL,
        pepper: bytes = b"",
        hash_iterations: int = PBKDF2_ITERATIONS,
    ):
        self.accounts = accounts
        self.mfa = mfa
        self.notifier = notifier
        self.clock = clock
        self.code_ttl = code_ttl
        self.pepper = pepper
        self.hash_iterations = hash_iterations
        self.events = get_event_logger()
        # Unknown e-mails are checked against this so login timing does not
        # reveal which addresses have accounts
        self._unknown_user_hash = hash_password(uuid.uuid4().hex, hash_iterations)

    def _load(self, user_id: str) -> UserAccount:
        account = self.accounts.get(user_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    @staticmethod
    def _check_policy(password: str) -> None:
        ok, message = check_password_policy(password)
        if not ok:
            raise ValidationError(message)

    def get(self, user_id: str) -> UserAccount:
        return self._load(user_id)

    def register(self, name: str, email: str, password: str) -> UserAccount:
        """
        Create an account and send its first MFA code.

        Raises:
            ValidationError: Password does not meet policy
            AccountExistsError: E-mail already registered
        """
        self._check_policy(password)

        account = UserAccount(
            id=str(uuid.uuid4()),
            name=name.strip(),
            email=normalize_email(email),
            password_hash=hash_password(password, self.hash_iterations),
            created_at=self.clock(),
        )
        self.accounts.add(account)

        self.events.log_event(
            event_type=EventType.ACCOUNT_REGISTERED,
            severity=EventSeverity.INFO,
            message="Account registered",
            user_id=account.id,
        )

        self.mfa.issue_code(account.id)
        return self._load(account.id)

    def authenticate(self, email: str, password: str) -> UserAccount:
        """
        Check login credentials.

        If the account has no running MFA session it is explicitly ended,
        so the caller must go through the code challenge.

        Raises:
            AuthenticationError: Unknown e-mail or wrong password
        """
        account = self.accounts.get_by_email(normalize_email(email))
        stored_hash = account.password_hash if account else self._unknown_user_hash
        if not verify_password(password, stored_hash) or account is None:
            self.events.log_event(
                event_type=EventType.ACCOUNT_LOGIN_FAILED,
                severity=EventSeverity.INVESTIGATE,
                message="Login failed: invalid credentials",
                user_id=account.id if account else None,
            )
            raise AuthenticationError("Invalid email and/or password")

        if not account.verified or not self.mfa.is_valid(account.id):
            self.mfa.end(account.id)

        self.events.log_event(
            event_type=EventType.ACCOUNT_LOGIN,
            severity=EventSeverity.INFO,
            message="Login succeeded",
            user_id=account.id,
        )
        return self._load(account.id)

    def logout(self, user_id: str) -> None:
        self.mfa.end(user_id)
        self.events.log_event(
            event_type=EventType.ACCOUNT_LOGOUT,
            severity=EventSeverity.INFO,
            message="Logged out",
            user_id=user_id,
        )

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """
        Raises:
            VerificationRequiredError: Account not verified
            AuthenticationError: Old password wrong
            ValidationError: New password does not meet policy
        """
        account = self._load(user_id)
        if not account.verified:
            raise VerificationRequiredError(
                "User is not verified. Please verify your account to perform this action."
            )
        if not verify_password(old_password, account.password_hash):
            raise AuthenticationError("Invalid Old Password")
        self._check_policy(new_password)

        account.password_hash = hash_password(new_password, self.hash_iterations)
        self.accounts.update(account, fields=("password_hash",))

        self.events.log_event(
            event_type=EventType.ACCOUNT_PASSWORD_CHANGED,
            severity=EventSeverity.INFO,
            message="Login password changed",
            user_id=user_id,
        )

    def update_profile(self, user_id: str, name: Optional[str] = None) -> UserAccount:
        """
        Change the display name. ``None`` leaves it as it is.

        Raises:
            VerificationRequiredError: Account not verified
            ValidationError: Name not 2-50 characters after trimming
        """
        account = self._load(user_id)
        if not account.verified:
            raise VerificationRequiredError(
                "User is not verified. Please verify your account to perform this action."
            )

        if name is not None:
            name = name.strip()
            if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
                raise ValidationError(
                    f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
                )
            account.name = name
            self.accounts.update(account, fields=("name",))

        self.events.log_event(
            event_type=EventType.ACCOUNT_PROFILE_UPDATED,
            severity=EventSeverity.INFO,
            message="Profile updated",
            user_id=user_id,
        )
        return account

    def request_password_reset(self, email: str) -> OneTimeCode:
        """
        Issue a reset code into the account's reset slot (latest wins).

        Raises:
            NotFoundError: No account for ``email``
        """
        account = self.accounts.get_by_email(normalize_email(email))
        if account is None:
            raise NotFoundError("Invalid email")

        code, stored = issue_code(
            CodePurpose.RESET, self.clock(), ttl=self.code_ttl, pepper=self.pepper
        )
        account.reset_code = stored
        self.accounts.update(account, fields=("reset_code",))

        self.notifier.deliver(account.email, code)
        self.events.log_event(
            event_type=EventType.ACCOUNT_RESET_REQUESTED,
            severity=EventSeverity.INFO,
            message="Password reset code issued",
            user_id=account.id,
            details={"expiry": code.expiry.isoformat()},
        )
        return code

    def reset_password(self, email: str, code: str, new_password: str) -> None:
        """
        Set a new login password using the reset code.

        Raises:
            InvalidOrExpiredCode: Unknown e-mail, no code, wrong or expired code
            ValidationError: New password does not meet policy
        """
        self._check_policy(new_password)

        account = self.accounts.get_by_email(normalize_email(email))
        stored = account.reset_code if account else None
        if stored is None or not stored.matches(code, self.clock(), self.pepper):
            self.events.log_event(
                event_type=EventType.ACCOUNT_RESET_REQUESTED,
                severity=EventSeverity.INVESTIGATE,
                message="Password reset rejected: invalid or expired code",
                user_id=account.id if account else None,
            )
            raise InvalidOrExpiredCode("Otp Invalid or has been expired")

        account.password_hash = hash_password(new_password, self.hash_iterations)
        account.reset_code = None
        self.accounts.update(account, fields=("password_hash", "reset_code"))

        self.events.log_event(
            event_type=EventType.ACCOUNT_PASSWORD_RESET,
            severity=EventSeverity.INFO,
            message="Login password reset",
            user_id=account.id,
        )

    def update_reminder_frequency(self, user_id: str, days: int) -> UserAccount:
        """
        Raises:
            ValidationError: days outside [30, 365]
        """
        validate_reminder_frequency(days)
        account = self._load(user_id)
        account.reminder_frequency_days = days
        self.accounts.update(account, fields=("reminder_frequency_days",))

        self.events.log_event(
            event_type=EventType.ACCOUNT_SETTINGS_CHANGED,
            severity=EventSeverity.INFO,
            message=f"Reminder frequency set to {days} days",
            user_id=user_id,
        )
        return account

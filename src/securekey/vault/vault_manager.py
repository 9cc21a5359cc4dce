# SecureKey Vault - Credential Record Manager
#
# Orchestrates the encryption service and strength evaluator to create,
# read, update and delete vault records through the credential store.
# Every operation is gated by the MFA session when a session manager is
# wired in.

import logging
import math
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, List, Optional

from ..core.clock import Clock, utcnow
from ..core.errors import CryptoError, NotFoundError, VerificationRequiredError
from ..core.event_log import EventSeverity, EventType, get_event_logger
from ..strength.evaluator import StrengthEvaluator
from .encryption import EncryptionService
from .records import CredentialRecord, RevealedCredential, SearchPage

if TYPE_CHECKING:
    from ..accounts.models import UserAccount
    from ..mfa.manager import MFASessionManager
    from ..storage.base import AccountStore, CredentialStore

logger = logging.getLogger(__name__)

SORT_KEYS = {
    "newest": (lambda r: r.last_updated, True),
    "oldest": (lambda r: r.last_updated, False),
    "strength": (lambda r: r.strength_score, True),
    "alphabetical": (lambda r: r.url.lower(), False),
}


class CredentialManager:
    """
    Manages one user's encrypted credential records.

    Security:
    - Each secret sealed individually (fresh IV per write)
    - Strength score recomputed on every password write
    - Plaintext only ever returned from read(); never stored or logged

    Args:
        credentials: Credential store
        accounts: Account store (reminder frequency, verified flag)
        encryption: Encryption service
        evaluator: Strength evaluator
        mfa: Session manager gating every operation (None = ungated)
        clock: Time source (UTC)
    """

    def __init__(
        self,
        credentials: "CredentialStore",
        accounts: "AccountStore",
        encryption: EncryptionService,
        evaluator: StrengthEvaluator,
        mfa: Optional["MFASessionManager"] = None,
        clock: Clock = utcnow,
    ):
        self.credentials = credentials
        self.accounts = accounts
        self.encryption = encryption
        self.evaluator = evaluator
        self.mfa = mfa
        self.clock = clock
        self.events = get_event_logger()

    def _authorize(self, user_id: str) -> "UserAccount":
        if self.mfa is not None:
            self.mfa.require_valid(user_id)
        account = self.accounts.get(user_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    def _get_owned(self, user_id: str, record_id: str) -> CredentialRecord:
        record = self.credentials.get(user_id, record_id)
        if record is None:
            raise NotFoundError("Password not found")
        return record

    def _seal(self, record: CredentialRecord, password: str) -> None:
        record.encrypted_secret = self.encryption.encrypt(password)
        record.strength_score = self.evaluator.evaluate(password).score

    def _stamp(self, record: CredentialRecord, account: "UserAccount") -> None:
        record.last_updated = self.clock()
        record.next_reminder = record.last_updated + timedelta(
            days=account.reminder_frequency_days
        )

    def create(
        self,
        user_id: str,
        url: str,
        username: str,
        password: str,
        notes: str = "",
    ) -> CredentialRecord:
        """
        Add a new credential.

        Args:
            user_id: Owning account
            url: Site the credential belongs to
            username: Login name on that site
            password: Plaintext secret to seal
            notes: Optional free text

        Returns:
            The stored record (sealed secret, score, reminder date)
        """
        account = self._authorize(user_id)

        now = self.clock()
        record = CredentialRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            url=url,
            username=username,
            encrypted_secret=self.encryption.encrypt(password),
            strength_score=self.evaluator.evaluate(password).score,
            notes=notes or "",
            last_updated=now,
            next_reminder=now + timedelta(days=account.reminder_frequency_days),
        )
        self.credentials.add(record)

        self.events.log_vault_event(
            EventType.VAULT_RECORD_CREATED,
            "Password added",
            user_id=user_id,
            details={"record_id": record.id, "strength_score": record.strength_score},
        )
        return record

    def read(self, user_id: str, record_id: str) -> RevealedCredential:
        """
        Fetch and decrypt one credential.

        Raises:
            NotFoundError: No such record for this user
            CryptoError: The stored secret cannot be opened
        """
        self._authorize(user_id)
        record = self._get_owned(user_id, record_id)

        try:
            password = self.encryption.decrypt(record.encrypted_secret)
        except CryptoError as e:
            self.events.log_event(
                event_type=EventType.VAULT_CRYPTO_ERROR,
                severity=EventSeverity.ALERT,
                message=f"Failed to open stored secret: {type(e).__name__}",
                user_id=user_id,
                details={"record_id": record_id},
            )
            raise

        self.events.log_vault_event(
            EventType.VAULT_RECORD_ACCESSED,
            "Password accessed",
            user_id=user_id,
            details={"record_id": record_id},
        )
        return RevealedCredential(record=record, password=password)

    def update(
        self,
        user_id: str,
        record_id: str,
        url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CredentialRecord:
        """
        Update any subset of fields in place.

        A new password is resealed and rescored. ``last_updated`` and the
        reminder date are reset on every update.
        """
        account = self._authorize(user_id)
        record = self._get_owned(user_id, record_id)

        if url:
            record.url = url
        if username:
            record.username = username
        if password:
            self._seal(record, password)
        if notes is not None:
            record.notes = notes
        self._stamp(record, account)

        self.credentials.update(record)

        self.events.log_vault_event(
            EventType.VAULT_RECORD_UPDATED,
            "Password updated",
            user_id=user_id,
            details={"record_id": record_id, "password_changed": bool(password)},
        )
        return record

    def delete(self, user_id: str, record_id: str) -> None:
        """
        Remove a credential. The owner must have a verified account.

        Raises:
            VerificationRequiredError: Account not verified
            NotFoundError: No such record for this user
        """
        account = self._authorize(user_id)
        if not account.verified:
            raise VerificationRequiredError(
                "User is not verified. Please verify your account to perform this action."
            )

        if not self.credentials.delete(user_id, record_id):
            raise NotFoundError("Password not found")

        self.events.log_vault_event(
            EventType.VAULT_RECORD_DELETED,
            "Password deleted",
            user_id=user_id,
            details={"record_id": record_id},
        )

    def list_records(self, user_id: str) -> List[CredentialRecord]:
        """All records for the user, metadata only."""
        self._authorize(user_id)
        return self.credentials.list_for_user(user_id)

    def list_due_for_reminder(self, user_id: str) -> List[CredentialRecord]:
        """Records whose reminder date has arrived. Pure filter, no writes."""
        self._authorize(user_id)
        now = self.clock()
        return [r for r in self.credentials.list_for_user(user_id) if r.is_due(now)]

    def search(
        self,
        user_id: str,
        query: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchPage:
        """
        Filter, sort and paginate the user's records.

        Args:
            query: Case-insensitive substring matched against url, username, notes
            sort: newest | oldest | strength | alphabetical (None keeps store order)
            page: 1-based page number
            limit: Page size
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        if sort and sort not in SORT_KEYS:
            raise ValueError(f"Unknown sort order: {sort}")

        records = self.list_records(user_id)

        if query:
            needle = query.strip().lower()
            records = [
                r for r in records
                if needle in r.url.lower()
                or needle in r.username.lower()
                or needle in (r.notes or "").lower()
            ]

        if sort:
            key, reverse = SORT_KEYS[sort]
            records.sort(key=key, reverse=reverse)

        start = (page - 1) * limit
        return SearchPage(
            total=len(records),
            total_pages=math.ceil(len(records) / limit),
            page=page,
            records=records[start:start + limit],
        )

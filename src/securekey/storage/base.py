"""Persistence interfaces for accounts and vault records.

The managers only talk to these; swapping SQLite for a document store
means implementing both classes. Implementations must make each call an
atomic single-document write; concurrent writers to the same field of
the same record are last-write-wins.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..accounts.models import UserAccount
from ..vault.records import CredentialRecord


class AccountStore(ABC):

    @abstractmethod
    def add(self, account: UserAccount) -> None:
        """Insert a new account. Raises AccountExistsError on duplicate e-mail."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserAccount]:
        ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserAccount]:
        ...

    @abstractmethod
    def update(self, account: UserAccount, fields: Optional[Iterable[str]] = None) -> None:
        """Write ``account`` back.

        ``fields`` names the UserAccount attributes that changed; only those
        are written, so concurrent writers touching different fields do not
        undo each other. None overwrites the whole account.
        """


class CredentialStore(ABC):

    @abstractmethod
    def add(self, record: CredentialRecord) -> None:
        ...

    @abstractmethod
    def get(self, user_id: str, record_id: str) -> Optional[CredentialRecord]:
        """Fetch a record owned by ``user_id`` (None if absent or not theirs)."""

    @abstractmethod
    def update(self, record: CredentialRecord) -> None:
        ...

    @abstractmethod
    def delete(self, user_id: str, record_id: str) -> bool:
        """Remove a record. Returns True if it existed."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[CredentialRecord]:
        ...

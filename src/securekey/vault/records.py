"""Vault record types.

A ``CredentialRecord`` only ever holds the sealed secret; the plaintext
travels separately in ``RevealedCredential`` and is never stored.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from .encryption import EncryptedBlob


@dataclass
class CredentialRecord:
    id: str
    user_id: str
    url: str
    username: str
    encrypted_secret: EncryptedBlob
    strength_score: int
    notes: str
    last_updated: datetime
    next_reminder: datetime

    def is_due(self, now: datetime) -> bool:
        return self.next_reminder <= now

    def to_public_dict(self) -> Dict[str, Any]:
        """Metadata view; the sealed secret is never returned to clients."""
        return {
            "_id": self.id,
            "url": self.url,
            "username": self.username,
            "notes": self.notes,
            "strengthScore": self.strength_score,
            "lastUpdated": self.last_updated.isoformat(),
            "nextUpdateReminder": self.next_reminder.isoformat(),
        }


@dataclass(frozen=True)
class RevealedCredential:
    record: CredentialRecord
    password: str

    def __repr__(self) -> str:
        return f"RevealedCredential(record_id={self.record.id!r}, password=<hidden>)"

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_public_dict()
        data["password"] = self.password
        return data


@dataclass(frozen=True)
class SearchPage:
    total: int
    total_pages: int
    page: int
    records: List[CredentialRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.total,
            "totalPages": self.total_pages,
            "currentPage": self.page,
            "passwords": [r.to_public_dict() for r in self.records],
        }

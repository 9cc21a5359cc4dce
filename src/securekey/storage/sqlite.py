# SecureKey - SQLite Account & Credential Stores
#
# One database file, two tables:
#   users       - account profile, MFA state (JSON), reset-code slot (JSON)
#   credentials - vault records; the secret column holds the serialized
#                 EncryptedBlob, never plaintext
#
# Every method opens its own connection (see core.db) and commits a single
# statement, which gives atomic per-document writes. Account updates name
# the fields they changed and write only those columns.

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from ..accounts.models import UserAccount
from ..core.clock import parse_timestamp
from ..core.db import connect as db_connect
from ..core.errors import AccountExistsError, CryptoError
from ..mfa.otp import stored_code_from_dict
from ..mfa.session import state_from_dict, state_to_dict
from ..vault.encryption import EncryptedBlob
from ..vault.records import CredentialRecord
from .base import AccountStore, CredentialStore

logger = logging.getLogger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        verified INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        reminder_frequency INTEGER NOT NULL DEFAULT 90,
        mfa_state TEXT NOT NULL,
        mfa_duration INTEGER NOT NULL DEFAULT 10,
        reset_code TEXT
    );

    CREATE TABLE IF NOT EXISTS credentials (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        url TEXT NOT NULL,
        username TEXT NOT NULL,
        encrypted_secret TEXT NOT NULL,
        strength_score INTEGER NOT NULL,
        notes TEXT NOT NULL DEFAULT '',
        last_updated TEXT NOT NULL,
        next_reminder TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_credentials_user ON credentials(user_id);
"""


class SQLiteDatabase:
    """Owns the database file and schema.

    Args:
        db_path: Path to SQLite file. Parent directories are created.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self):
        with self.session() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success, rolls back on error, always closes."""
        conn = db_connect(self.db_path, row_factory=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# ── Accounts ────────────────────────────────────────────────────────

# UserAccount attribute -> (column, encoder); order matches the INSERT below
_ACCOUNT_COLUMNS = {
    "name": ("name", lambda a: a.name),
    "email": ("email", lambda a: a.email),
    "password_hash": ("password_hash", lambda a: a.password_hash),
    "verified": ("verified", lambda a: int(a.verified)),
    "created_at": ("created_at", lambda a: a.created_at.isoformat()),
    "reminder_frequency_days": ("reminder_frequency", lambda a: a.reminder_frequency_days),
    "mfa_state": ("mfa_state", lambda a: json.dumps(state_to_dict(a.mfa_state))),
    "mfa_duration_minutes": ("mfa_duration", lambda a: a.mfa_duration_minutes),
    "reset_code": (
        "reset_code",
        lambda a: json.dumps(a.reset_code.to_dict()) if a.reset_code else None,
    ),
}


class SQLiteAccountStore(AccountStore):

    def __init__(self, database: SQLiteDatabase):
        self.database = database

    @staticmethod
    def _to_row(account: UserAccount) -> tuple:
        return tuple(encode(account) for _, encode in _ACCOUNT_COLUMNS.values()) + (account.id,)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> UserAccount:
        return UserAccount(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            verified=bool(row["verified"]),
            created_at=parse_timestamp(row["created_at"]),
            reminder_frequency_days=row["reminder_frequency"],
            mfa_state=state_from_dict(json.loads(row["mfa_state"])),
            mfa_duration_minutes=row["mfa_duration"],
            reset_code=stored_code_from_dict(
                json.loads(row["reset_code"]) if row["reset_code"] else None
            ),
        )

    def add(self, account: UserAccount) -> None:
        try:
            with self.database.session() as conn:
                conn.execute(
                    """INSERT INTO users
                       (name, email, password_hash, verified, created_at,
                        reminder_frequency, mfa_state, mfa_duration, reset_code, id)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    self._to_row(account),
                )
        except sqlite3.IntegrityError:
            raise AccountExistsError("User already exists") from None

    def get(self, user_id: str) -> Optional[UserAccount]:
        with self.database.session() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._from_row(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        with self.database.session() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
        return self._from_row(row) if row else None

    def update(self, account: UserAccount, fields: Optional[Iterable[str]] = None) -> None:
        names = list(_ACCOUNT_COLUMNS) if fields is None else list(dict.fromkeys(fields))
        unknown = [n for n in names if n not in _ACCOUNT_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown account fields: {unknown}")
        if not names:
            return

        # Column names come from the fixed map above, never from callers
        assignments = ", ".join(f"{_ACCOUNT_COLUMNS[n][0]} = ?" for n in names)
        params = [_ACCOUNT_COLUMNS[n][1](account) for n in names]
        with self.database.session() as conn:
            conn.execute(
                f"UPDATE users SET {assignments} WHERE id = ?",
                (*params, account.id),
            )


# ── Credentials ─────────────────────────────────────────────────────


class SQLiteCredentialStore(CredentialStore):

    def __init__(self, database: SQLiteDatabase):
        self.database = database

    @staticmethod
    def _to_row(record: CredentialRecord) -> tuple:
        return (
            record.user_id,
            record.url,
            record.username,
            record.encrypted_secret.serialize(),
            record.strength_score,
            record.notes,
            record.last_updated.isoformat(),
            record.next_reminder.isoformat(),
            record.id,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> CredentialRecord:
        try:
            blob = EncryptedBlob.deserialize(row["encrypted_secret"])
        except CryptoError:
            logger.error("Stored secret for record %s is malformed", row["id"])
            raise
        return CredentialRecord(
            id=row["id"],
            user_id=row["user_id"],
            url=row["url"],
            username=row["username"],
            encrypted_secret=blob,
            strength_score=row["strength_score"],
            notes=row["notes"],
            last_updated=parse_timestamp(row["last_updated"]),
            next_reminder=parse_timestamp(row["next_reminder"]),
        )

    def add(self, record: CredentialRecord) -> None:
        with self.database.session() as conn:
            conn.execute(
                """INSERT INTO credentials
                   (user_id, url, username, encrypted_secret, strength_score,
                    notes, last_updated, next_reminder, id)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                self._to_row(record),
            )

    def get(self, user_id: str, record_id: str) -> Optional[CredentialRecord]:
        with self.database.session() as conn:
            row = conn.execute(
                "SELECT * FROM credentials WHERE id = ? AND user_id = ?",
                (record_id, user_id),
            ).fetchone()
        return self._from_row(row) if row else None

    def update(self, record: CredentialRecord) -> None:
        with self.database.session() as conn:
            conn.execute(
                """UPDATE credentials SET
                       user_id = ?, url = ?, username = ?, encrypted_secret = ?,
                       strength_score = ?, notes = ?, last_updated = ?, next_reminder = ?
                   WHERE id = ?""",
                self._to_row(record),
            )

    def delete(self, user_id: str, record_id: str) -> bool:
        with self.database.session() as conn:
            cur = conn.execute(
                "DELETE FROM credentials WHERE id = ? AND user_id = ?",
                (record_id, user_id),
            )
            return cur.rowcount > 0

    def list_for_user(self, user_id: str) -> List[CredentialRecord]:
        with self.database.session() as conn:
            rows = conn.execute(
                "SELECT * FROM credentials WHERE user_id = ? ORDER BY last_updated DESC",
                (user_id,),
            ).fetchall()
        return [self._from_row(row) for row in rows]

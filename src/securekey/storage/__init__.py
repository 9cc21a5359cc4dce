# Storage Module - account and vault persistence

from .base import AccountStore, CredentialStore
from .sqlite import SQLiteAccountStore, SQLiteCredentialStore, SQLiteDatabase

__all__ = [
    "AccountStore",
    "CredentialStore",
    "SQLiteDatabase",
    "SQLiteAccountStore",
    "SQLiteCredentialStore",
]

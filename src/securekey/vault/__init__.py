# Vault Module - Encrypted credential storage
#
# Per-record AES-256 encryption under a process-wide derived key

from .encryption import (
    CipherMode,
    EncryptedBlob,
    EncryptionService,
    KeyProvider,
    SecretKeyProvider,
    StaticKeyProvider,
)
from .records import CredentialRecord, RevealedCredential, SearchPage
from .vault_manager import CredentialManager

__all__ = [
    "CipherMode",
    "EncryptedBlob",
    "EncryptionService",
    "KeyProvider",
    "SecretKeyProvider",
    "StaticKeyProvider",
    "CredentialRecord",
    "RevealedCredential",
    "SearchPage",
    "CredentialManager",
]

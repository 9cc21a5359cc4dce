# SecureKey Vault - Encryption Service
#
# Process secret → vault key (scrypt, fixed salt, derived once)
# Secret encryption (AES-256-GCM by default, AES-256-CBC for legacy blobs)
# Fresh 16-byte IV per encryption

import json
import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..core.errors import CryptoError, IntegrityError, KeyNotConfiguredError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32  # 256 bits for AES-256
IV_LENGTH = 16
GCM_TAG_LENGTH = 16
DEFAULT_KDF_SALT = b"salt"


class CipherMode(str, Enum):
    GCM = "aes-256-gcm"
    CBC = "aes-256-cbc"


# ── Key Providers ───────────────────────────────────────────────────


class KeyProvider:
    """Supplies the 256-bit vault key. Subclasses decide where it comes from."""

    def get_key(self) -> bytes:
        raise NotImplementedError


class SecretKeyProvider(KeyProvider):
    """
    Derives the vault key from the process-wide secret.

    scrypt is deliberately slow, so the key is derived on first use and
    cached for the lifetime of the provider. The cached key is read-only
    afterwards and safe to share between request threads.

    Args:
        secret: Process-wide secret (None or "" means not configured)
        salt: Fixed KDF salt
    """

    # Same cost parameters as the legacy deployment, so its blobs stay readable
    SCRYPT_N = 2 ** 14
    SCRYPT_R = 8
    SCRYPT_P = 1

    def __init__(self, secret: Optional[str], salt: bytes = DEFAULT_KDF_SALT):
        self._secret = secret
        self._salt = salt
        self._key: Optional[bytes] = None
        self._lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def get_key(self) -> bytes:
        if self._key is not None:
            return self._key

        if not self._secret:
            raise KeyNotConfiguredError(
                "Encryption key is not configured (set SECUREKEY_ENCRYPTION_KEY)"
            )

        with self._lock:
            if self._key is None:
                kdf = Scrypt(
                    salt=self._salt,
                    length=KEY_LENGTH,
                    n=self.SCRYPT_N,
                    r=self.SCRYPT_R,
                    p=self.SCRYPT_P,
                )
                self._key = kdf.derive(self._secret.encode("utf-8"))
                logger.info("Vault encryption key derived")
        return self._key


class StaticKeyProvider(KeyProvider):
    """Wraps an already-derived key (tests, embedding)."""

    def __init__(self, key: bytes):
        if len(key) != KEY_LENGTH:
            raise ValueError(f"Vault key must be {KEY_LENGTH} bytes, got {len(key)}")
        self._key = key

    def get_key(self) -> bytes:
        return self._key


# ── Blob Format ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class EncryptedBlob:
    """
    One sealed secret.

    Storage format (JSON string):
        {"iv": "<32 lowercase hex chars>", "encryptedData": "<hex>"}

    In GCM mode ``ciphertext`` carries the 16-byte tag at its end.
    """

    iv: bytes
    ciphertext: bytes

    def to_dict(self) -> Dict[str, str]:
        return {"iv": self.iv.hex(), "encryptedData": self.ciphertext.hex()}

    def serialize(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "EncryptedBlob":
        if not isinstance(data, dict):
            raise CryptoError("Malformed encrypted blob")
        try:
            iv = bytes.fromhex(data["iv"])
            ciphertext = bytes.fromhex(data["encryptedData"])
        except (KeyError, TypeError, ValueError):
            raise CryptoError("Malformed encrypted blob") from None

        if len(iv) != IV_LENGTH:
            raise CryptoError("Malformed encrypted blob: bad IV length")
        if not ciphertext:
            raise CryptoError("Malformed encrypted blob: empty ciphertext")
        return cls(iv=iv, ciphertext=ciphertext)

    @classmethod
    def deserialize(cls, raw: str) -> "EncryptedBlob":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise CryptoError("Malformed encrypted blob") from None
        return cls.from_dict(data)


# ── Encryption Service ──────────────────────────────────────────────


class EncryptionService:
    """
    Seals and opens individual vault secrets.

    Flow:
    1. KeyProvider supplies the 256-bit key (derived once per process)
    2. A random 16-byte IV is drawn for every encryption
    3. AES-256-GCM encrypts and authenticates the secret
       (AES-256-CBC + PKCS7 when reading or writing legacy blobs)

    Stateless apart from the provider's cached key.
    """

    def __init__(
        self,
        key_provider: KeyProvider,
        mode: Union[CipherMode, str] = CipherMode.GCM,
    ):
        self.key_provider = key_provider
        self.mode = CipherMode(mode)

    def encrypt(self, plaintext: str) -> EncryptedBlob:
        """
        Encrypt a single secret.

        Raises:
            KeyNotConfiguredError: If the process secret is absent
        """
        key = self.key_provider.get_key()
        iv = os.urandom(IV_LENGTH)
        data = plaintext.encode("utf-8")

        if self.mode is CipherMode.GCM:
            ciphertext = AESGCM(key).encrypt(iv, data, None)
        else:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(data) + padder.finalize()
            encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()

        return EncryptedBlob(iv=iv, ciphertext=ciphertext)

    def decrypt(self, blob: EncryptedBlob) -> str:
        """
        Open a sealed secret.

        Raises:
            IntegrityError: GCM tag mismatch (tampered, truncated or wrong key)
            CryptoError: Malformed blob, bad padding, or undecodable output
        """
        key = self.key_provider.get_key()

        if self.mode is CipherMode.GCM:
            try:
                data = AESGCM(key).decrypt(blob.iv, blob.ciphertext, None)
            except InvalidTag:
                raise IntegrityError("Encrypted secret failed integrity check") from None
        else:
            if len(blob.ciphertext) % IV_LENGTH:
                raise CryptoError("Encrypted secret is truncated")
            try:
                decryptor = Cipher(algorithms.AES(key), modes.CBC(blob.iv)).decryptor()
                padded = decryptor.update(blob.ciphertext) + decryptor.finalize()
                unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
                data = unpadder.update(padded) + unpadder.finalize()
            except ValueError:
                raise CryptoError("Unable to decrypt secret") from None

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise CryptoError("Unable to decrypt secret") from None

    def encrypt_to_string(self, plaintext: str) -> str:
        """Encrypt and serialize for storage."""
        return self.encrypt(plaintext).serialize()

    def decrypt_from_string(self, raw: str) -> str:
        """Deserialize a stored blob and decrypt it."""
        return self.decrypt(EncryptedBlob.deserialize(raw))

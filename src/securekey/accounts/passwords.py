# SecureKey Accounts - Login Password Hashing
#
# Login passwords (not vault secrets) are hashed with PBKDF2-HMAC-SHA256
# and a per-user salt. Stored format:
#
#     pbkdf2_sha256$<iterations>$<salt b64>$<hash b64>

import base64
import hmac
import os
import re
from typing import Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 600_000  # OWASP 2023: 600k iterations for PBKDF2-SHA256
SALT_LENGTH = 16
HASH_LENGTH = 32

MIN_PASSWORD_LENGTH = 8
POLICY_SPECIAL_CHARACTERS = "@$!%*?&"

_POLICY_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=HASH_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = os.urandom(SALT_LENGTH)
    digest = _derive(password, salt, iterations)
    return f"{ALGORITHM}${iterations}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, stored: str) -> bool:
    """Constant-time check of ``password`` against a stored hash."""
    try:
        algorithm, iterations, salt_b64, digest_b64 = stored.split("$")
        if algorithm != ALGORITHM:
            return False
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
        candidate = _derive(password, salt, int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(candidate, expected)


def check_password_policy(password: str) -> Tuple[bool, str]:
    """
    Verify a login password meets account requirements.

    Requirements:
    - At least 8 characters
    - Upper and lower case letters, a number
    - One of @$!%*?&

    Returns:
        (is_valid, error_message)
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    if (
        not re.search(r"[a-z]", password)
        or not re.search(r"[A-Z]", password)
        or not re.search(r"\d", password)
        or not any(c in POLICY_SPECIAL_CHARACTERS for c in password)
    ):
        return False, _POLICY_MESSAGE

    return True, ""

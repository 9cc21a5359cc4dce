# Accounts Module - vault owners, login passwords, reset codes

from .models import UserAccount
from .passwords import check_password_policy, hash_password, verify_password
from .service import AccountService, normalize_email

__all__ = [
    "UserAccount",
    "AccountService",
    "check_password_policy",
    "hash_password",
    "verify_password",
    "normalize_email",
]

"""
SecureKey Exception Classes
"""


class SecureKeyError(Exception):
    """Base exception for vault, MFA and account operations"""
    pass


class CryptoError(SecureKeyError):
    """Raised when a secret cannot be sealed or opened.

    Messages never include plaintext or key material.
    """
    pass


class KeyNotConfiguredError(CryptoError):
    """Raised when the process-wide encryption secret is missing"""
    pass


class IntegrityError(CryptoError):
    """Raised when an authenticated blob fails tag verification"""
    pass


class MFARequiredError(SecureKeyError):
    """Raised when a protected operation runs without a valid MFA session.

    Not a failure: callers route the user back to the code challenge.
    """
    pass


class InvalidOrExpiredCode(SecureKeyError):
    """Raised when a submitted one-time code is wrong, expired or absent"""
    pass


class NotFoundError(SecureKeyError):
    """Raised when a record or user does not exist for the caller"""
    pass


class ValidationError(SecureKeyError):
    """Raised when configuration input is out of range"""
    pass


class VerificationRequiredError(SecureKeyError):
    """Raised when an unverified account attempts a destructive operation"""
    pass


class AuthenticationError(SecureKeyError):
    """Raised when login credentials do not match"""
    pass


class AccountExistsError(SecureKeyError):
    """Raised when registering an e-mail that already has an account"""
    pass


class RecommendationError(SecureKeyError):
    """Raised when the password generator produces a malformed candidate"""
    pass

# SecureKey API - Session Authentication
#
# Login hands out a signed token: "<user_id>.<expiry_epoch>.<hmac>".
# The HMAC-SHA256 key is the process session secret, so tokens do not
# survive a secret rotation. Every protected route reads the token from
# the X-Session-Token header.

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header

from ..core.errors import AuthenticationError
from .services import VaultServices, get_services

logger = logging.getLogger(__name__)


def _sign(payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def issue_token(user_id: str, secret: str, now: datetime, ttl: timedelta) -> str:
    """
    Create a signed session token for ``user_id``.

    Returns:
        Token string for the X-Session-Token header
    """
    expiry = int((now + ttl).timestamp())
    payload = f"{user_id}.{expiry}"
    return f"{payload}.{_sign(payload, secret)}"


def decode_token(token: str, secret: str, now: datetime) -> Optional[str]:
    """
    Check signature and expiry.

    Returns:
        The user id, or None if the token is malformed, forged or expired
    """
    try:
        user_id, expiry_raw, signature = token.rsplit(".", 2)
        expiry = int(expiry_raw)
    except ValueError:
        return None

    # Constant-time comparison to prevent timing attacks
    if not hmac.compare_digest(signature, _sign(f"{user_id}.{expiry_raw}", secret)):
        return None
    if now >= datetime.fromtimestamp(expiry, tz=timezone.utc):
        return None
    return user_id or None


def create_session_token(services: VaultServices, user_id: str) -> str:
    settings = services.settings
    return issue_token(
        user_id,
        settings.session_secret,
        services.clock(),
        timedelta(days=settings.token_ttl_days),
    )


def get_current_user_id(
    x_session_token: str = Header(None),
    services: VaultServices = Depends(get_services),
) -> str:
    """
    FastAPI dependency resolving the caller's user id.

    Raises:
        AuthenticationError: Mapped to 401 if token is missing, invalid or expired
    """
    if x_session_token is None:
        raise AuthenticationError("Missing X-Session-Token header")

    user_id = decode_token(x_session_token, services.settings.session_secret, services.clock())
    if user_id is None or services.accounts.accounts.get(user_id) is None:
        raise AuthenticationError("Invalid session token")
    return user_id


def require_mfa(
    user_id: str = Depends(get_current_user_id),
    services: VaultServices = Depends(get_services),
) -> str:
    """
    Dependency for routes that need a running MFA session.

    Raises:
        MFARequiredError: Mapped to 403 {requireMFA: true}
    """
    services.mfa.require_valid(user_id)
    return user_id

"""MFA session state machine.

    Unverified ──issue──▶ PendingCode ──verify──▶ Verified(expiry)
        ▲                       ▲ issue (latest wins)     │
        └──────────────────────────────── end / expiry ◀───┘

States are immutable values; transition functions take the current state
and return the next one, so there is no way to hold ``verified`` without
an expiry. Expiry is evaluated lazily against the caller's clock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Tuple, Union

from ..core.clock import parse_timestamp
from ..core.errors import InvalidOrExpiredCode
from .otp import CodePurpose, OneTimeCode, StoredCode, issue_code as _issue_code, OTP_TTL


@dataclass(frozen=True)
class Unverified:
    name = "unverified"


@dataclass(frozen=True)
class PendingCode:
    code: StoredCode
    name = "pending"


@dataclass(frozen=True)
class Verified:
    started_at: datetime
    expiry: datetime
    name = "verified"


MFAState = Union[Unverified, PendingCode, Verified]


# ── Transitions ─────────────────────────────────────────────────────


def issue(
    state: MFAState,
    now: datetime,
    ttl: timedelta = OTP_TTL,
    pepper: bytes = b"",
) -> Tuple[PendingCode, OneTimeCode]:
    """Issue a fresh MFA code from any state.

    A running session is dropped; a previously pending code is replaced.
    """
    code, stored = _issue_code(CodePurpose.MFA, now, ttl=ttl, pepper=pepper)
    return PendingCode(code=stored), code


def verify(
    state: MFAState,
    submitted: str,
    now: datetime,
    duration_minutes: int,
    pepper: bytes = b"",
) -> Verified:
    """Confirm a pending code and open a session.

    Raises:
        InvalidOrExpiredCode: No pending code, wrong code, or code expired.
            The caller keeps its current state.
    """
    if not isinstance(state, PendingCode) or not state.code.matches(submitted, now, pepper):
        raise InvalidOrExpiredCode("Invalid verification code or code has expired")
    return Verified(started_at=now, expiry=now + timedelta(minutes=duration_minutes))


def is_valid(state: MFAState, now: datetime) -> bool:
    return isinstance(state, Verified) and now < state.expiry


def effective(state: MFAState, now: datetime) -> MFAState:
    """The state as observed at ``now``: a lapsed session reads as Unverified."""
    if isinstance(state, Verified) and not is_valid(state, now):
        return Unverified()
    return state


def end(state: MFAState) -> MFAState:
    """Close a running session.

    A pending code survives: only a successful verify or a newer code
    invalidates it.
    """
    if isinstance(state, PendingCode):
        return state
    return Unverified()


def rescale(state: MFAState, duration_minutes: int, now: datetime) -> MFAState:
    """Apply a new session duration to a running session.

    The elapsed part of the session is preserved: the new expiry is
    ``started_at + duration``. If that is already in the past the session
    simply stops being valid. A session that has already lapsed is
    collapsed to Unverified and never extended.
    """
    state = effective(state, now)
    if not isinstance(state, Verified):
        return state
    return Verified(
        started_at=state.started_at,
        expiry=state.started_at + timedelta(minutes=duration_minutes),
    )


# ── Serialization ───────────────────────────────────────────────────


def state_to_dict(state: MFAState) -> Dict[str, Any]:
    if isinstance(state, PendingCode):
        return {"state": state.name, "code": state.code.to_dict()}
    if isinstance(state, Verified):
        return {
            "state": state.name,
            "started_at": state.started_at.isoformat(),
            "expiry": state.expiry.isoformat(),
        }
    return {"state": Unverified.name}


def state_from_dict(data: Dict[str, Any]) -> MFAState:
    kind = (data or {}).get("state", Unverified.name)
    if kind == PendingCode.name:
        return PendingCode(code=StoredCode.from_dict(data["code"]))
    if kind == Verified.name:
        return Verified(
            started_at=parse_timestamp(data["started_at"]),
            expiry=parse_timestamp(data["expiry"]),
        )
    return Unverified()

# SecureKey API - Vault endpoints
#
# CRUD, search and reminder listing for stored credentials.
# Every route needs a session token and a running MFA session; updating
# and deleting additionally need a verified account.
# Decrypted passwords are only returned by GET /api/passwords/{id}.

from typing import Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator

from ..core.errors import VerificationRequiredError
from .security import require_mfa
from .services import VaultServices, get_services

router = APIRouter(prefix="/api/passwords", tags=["vault"])

SORT_PATTERN = "^(newest|oldest|strength|alphabetical)?$"


def _validate_url(v: str) -> str:
    v = v.strip()
    parts = urlsplit(v)
    if not parts.scheme or not parts.netloc:
        raise ValueError("URL is invalid")
    return v


# ── Pydantic Models ────────────────────────────────────────────────

class AddPasswordRequest(BaseModel):
    url: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    notes: str = Field("", max_length=500)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _validate_url(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v


class UpdatePasswordRequest(BaseModel):
    url: Optional[str] = None
    username: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        if v is None:
            return v
        return _validate_url(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        return v.strip() if v is not None else v


# ── Endpoints ──────────────────────────────────────────────────────

@router.post("", status_code=status.HTTP_201_CREATED)
def add_password(
    request: AddPasswordRequest,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    """
    Store a new credential.

    The password is sealed immediately; the response carries only metadata.
    """
    record = services.vault.create(
        user_id,
        url=request.url,
        username=request.username,
        password=request.password,
        notes=request.notes,
    )
    return {
        "success": True,
        "message": "Password saved successfully",
        "password": record.to_public_dict(),
    }


@router.get("")
def list_passwords(
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    """List all credentials (metadata only, no decrypted passwords)."""
    records = services.vault.list_records(user_id)
    return {
        "success": True,
        "count": len(records),
        "passwords": [r.to_public_dict() for r in records],
    }


@router.get("/search")
def search_passwords(
    query: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, pattern=SORT_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    result = services.vault.search(
        user_id, query=query, sort=sort or None, page=page, limit=limit
    )
    return {"success": True, **result.to_dict()}


@router.get("/update-needed")
def passwords_needing_update(
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    records = services.vault.list_due_for_reminder(user_id)
    return {
        "success": True,
        "count": len(records),
        "passwords": [r.to_public_dict() for r in records],
    }


@router.get("/{password_id}")
def get_password(
    password_id: str,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    """Get one credential with its decrypted password."""
    revealed = services.vault.read(user_id, password_id)
    return {"success": True, "password": revealed.to_dict()}


@router.put("/{password_id}")
def update_password(
    password_id: str,
    request: UpdatePasswordRequest,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    account = services.accounts.get(user_id)
    if not account.verified:
        raise VerificationRequiredError(
            "User is not verified. Please verify your account to perform this action."
        )

    record = services.vault.update(
        user_id,
        password_id,
        url=request.url,
        username=request.username,
        password=request.password,
        notes=request.notes,
    )
    return {
        "success": True,
        "message": "Password updated successfully",
        "password": record.to_public_dict(),
    }


@router.delete("/{password_id}")
def delete_password(
    password_id: str,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    services.vault.delete(user_id, password_id)
    return {"success": True, "message": "Password deleted successfully"}

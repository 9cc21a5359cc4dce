# SecureKey API - Account and MFA endpoints
#
# Registration, login/logout, MFA code challenge, session status and
# duration, profile view and update, login-password change and reset,
# reminder settings.
# Login and registration always answer with a session token; the
# requireMFA flag tells the client whether vault routes will accept it yet.

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator, model_validator

from ..accounts.models import UserAccount
from ..accounts.passwords import check_password_policy
from ..core.config import (
    MFA_DURATION_MAX_MINUTES,
    MFA_DURATION_MIN_MINUTES,
    REMINDER_FREQUENCY_MAX_DAYS,
    REMINDER_FREQUENCY_MIN_DAYS,
)
from .security import create_session_token, get_current_user_id, require_mfa
from .services import VaultServices, get_services

router = APIRouter(prefix="/api", tags=["accounts"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
OTP_PATTERN = r"^\d{6}$"


def _enforce_policy(value: str) -> str:
    ok, message = check_password_policy(value)
    if not ok:
        raise ValueError(message)
    return value


# ── Pydantic Models ────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _enforce_policy(v)


class LoginRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class VerifyMFARequest(BaseModel):
    otp: str = Field(..., pattern=OTP_PATTERN)


class MFADurationRequest(BaseModel):
    duration: int = Field(..., ge=MFA_DURATION_MIN_MINUTES, le=MFA_DURATION_MAX_MINUTES)


class ChangePasswordRequest(BaseModel):
    oldPassword: str = Field(..., min_length=1)
    newPassword: str
    confirmPassword: str = Field(..., min_length=1)

    @field_validator("newPassword")
    @classmethod
    def validate_new_password(cls, v):
        return _enforce_policy(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirmPassword != self.newPassword:
            raise ValueError("Passwords do not match")
        return self


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    otp: str = Field(..., pattern=OTP_PATTERN)
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_new_password(cls, v):
        return _enforce_policy(v)


class ReminderSettingsRequest(BaseModel):
    reminderFrequency: int = Field(
        ..., ge=REMINDER_FREQUENCY_MIN_DAYS, le=REMINDER_FREQUENCY_MAX_DAYS
    )


def _session_response(
    services: VaultServices, account: UserAccount, message: str
) -> Dict[str, Any]:
    token = create_session_token(services, account.id)
    mfa_status = services.mfa.status(account.id)
    body = {
        "success": True,
        "token": token,
        "message": message,
        "user": account.to_public_dict(),
        "verified": account.verified,
        **mfa_status.to_dict(),
    }
    if mfa_status.mfa_required:
        body["requireMFA"] = True
    return body


# ── Authentication ──────────────────────────────────────────────────

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, services: VaultServices = Depends(get_services)):
    """
    Create an account and send the first verification code.

    The returned token only reaches the MFA routes until the code is confirmed.
    """
    account = services.accounts.register(request.name, request.email, request.password)
    return _session_response(
        services,
        account,
        "Registration successful! Please verify your account with the code sent to your email.",
    )


@router.post("/login")
def login(request: LoginRequest, services: VaultServices = Depends(get_services)):
    account = services.accounts.authenticate(request.email, request.password)
    if services.mfa.is_valid(account.id):
        message = "Login successful"
    elif account.verified:
        message = "Login successful! MFA required."
    else:
        message = "Registration successful! MFA required."
    return _session_response(services, account, message)


@router.get("/logout")
def logout(
    user_id: str = Depends(get_current_user_id),
    services: VaultServices = Depends(get_services),
):
    services.accounts.logout(user_id)
    return {"success": True, "message": "Logged out Successfully"}


# ── MFA ─────────────────────────────────────────────────────────────

@router.post("/send-mfa-code")
def send_mfa_code(
    user_id: str = Depends(get_current_user_id),
    services: VaultServices = Depends(get_services),
):
    """Issue a fresh code. Any running session ends until it is confirmed."""
    services.mfa.issue_code(user_id)
    return {
        "success": True,
        "message": "MFA verification code sent to your email.",
        "requireMFA": True,
    }


@router.post("/verify-mfa")
def verify_mfa(
    request: VerifyMFARequest,
    user_id: str = Depends(get_current_user_id),
    services: VaultServices = Depends(get_services),
):
    services.mfa.verify(user_id, request.otp)
    account = services.accounts.get(user_id)
    return {
        "success": True,
        "message": "MFA verification successful",
        "verified": account.verified,
        **services.mfa.status(user_id).to_dict(),
    }


@router.get("/mfa/status")
def mfa_status(
    user_id: str = Depends(get_current_user_id),
    services: VaultServices = Depends(get_services),
):
    return {"success": True, **services.mfa.status(user_id).to_dict()}


@router.put("/mfa/duration")
def update_mfa_duration(
    request: MFADurationRequest,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    result = services.mfa.set_duration(user_id, request.duration)
    return {
        "success": True,
        "message": "MFA session duration updated successfully",
        **result.to_dict(),
    }


# ── Profile ─────────────────────────────────────────────────────────

@router.get("/me")
def get_my_profile(
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    account = services.accounts.get(user_id)
    return _session_response(services, account, f"Welcome back! {account.name}")


@router.put("/updateprofile")
def update_profile(
    request: UpdateProfileRequest,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    account = services.accounts.update_profile(user_id, name=request.name)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": account.to_public_dict(),
    }


@router.put("/updatepassword")
def update_login_password(
    request: ChangePasswordRequest,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    services.accounts.change_password(user_id, request.oldPassword, request.newPassword)
    return {"success": True, "message": "Password updated successfully"}


@router.post("/forgotpassword")
def forgot_password(
    request: ForgotPasswordRequest,
    services: VaultServices = Depends(get_services),
):
    services.accounts.request_password_reset(request.email)
    return {"success": True, "message": f"OTP sent to {request.email}"}


@router.post("/resetpassword")
def reset_password(
    request: ResetPasswordRequest,
    services: VaultServices = Depends(get_services),
):
    services.accounts.reset_password(request.email, request.otp, request.newPassword)
    return {"success": True, "message": "Password Changed Successfully"}


@router.put("/reminder-settings")
def update_reminder_settings(
    request: ReminderSettingsRequest,
    user_id: str = Depends(require_mfa),
    services: VaultServices = Depends(get_services),
):
    account = services.accounts.update_reminder_frequency(user_id, request.reminderFrequency)
    return {
        "success": True,
        "message": "Reminder settings updated successfully",
        "reminderFrequency": account.reminder_frequency_days,
    }

# SecureKey API - Password strength check
#
# Public endpoint: scores a candidate password and always offers a
# generated replacement. Nothing is stored.

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from .services import VaultServices, get_services

router = APIRouter(prefix="/api", tags=["strength"])


class StrengthCheckRequest(BaseModel):
    password: str = Field(..., min_length=1)


@router.post("/check-password-strength")
def check_password_strength(
    request: StrengthCheckRequest,
    services: VaultServices = Depends(get_services),
):
    """
    Score a password and recommend a strong replacement.

    ``recommendation`` is only filled in for passwords scoring below 60.
    """
    result = services.evaluator.evaluate(request.password)
    recommended = services.generator.generate()
    return {
        "success": True,
        "strengthScore": result.score,
        "strengthCategory": result.category.value,
        "recommendation": result.feedback.to_dict() if result.feedback else None,
        "recommendedPassword": recommended.to_dict(),
        "details": result.details(),
    }

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from steersolo.api.deps import OptionalProfile, SessionDependency
from steersolo.api.schemas import SendOtpRequest, VerifyOtpRequest
from steersolo.services.phone_verification_service import PhoneVerificationService

router = APIRouter(prefix="/phone", tags=["phone"])


@router.post("/send-otp")
async def send_otp(payload: SendOtpRequest, profile: OptionalProfile, session: SessionDependency) -> dict[str, Any]:
    result = await PhoneVerificationService(session).send_otp(profile, payload.phone)
    response: dict[str, Any] = {
        "success": True,
        "message": result.message,
        "expiresIn": result.expires_in,
    }
    if result.dev_otp is not None:
        response["devOtp"] = result.dev_otp
    return response


@router.post("/verify-otp")
async def verify_otp(payload: VerifyOtpRequest, profile: OptionalProfile, session: SessionDependency) -> dict[str, Any]:
    verified = await PhoneVerificationService(session).verify_otp(profile, payload.otp)
    return {
        "success": True,
        "message": "Phone number verified successfully!",
        "phone": verified.phone,
    }

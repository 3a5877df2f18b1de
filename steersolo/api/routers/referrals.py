from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import ApplyReferralRequest
from steersolo.core.enums import UserRole
from steersolo.core.errors import Forbidden
from steersolo.infrastructure.db.models import Referral
from steersolo.services.referral_service import ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])


def _referral_payload(referral: Referral) -> dict[str, Any]:
    return {
        "id": referral.id,
        "referrer_id": referral.referrer_id,
        "referred_id": referral.referred_id,
        "referral_code": referral.referral_code,
        "status": referral.status.value,
        "points_earned": referral.points_earned,
        "qualified_at": referral.qualified_at,
        "rewarded_at": referral.rewarded_at,
        "created_at": referral.created_at,
    }


@router.get("/code")
async def referral_code(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    code = await ReferralService(session).get_or_create_code(profile)
    return {"code": code.code, "is_active": code.is_active}


@router.post("/apply")
async def apply_referral(
    payload: ApplyReferralRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    referral = await ReferralService(session).apply_code(payload.code, profile)
    return {"success": True, "referral": _referral_payload(referral)}


@router.get("")
async def list_referrals(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    referrals = await ReferralService(session).list_referrals(profile)
    return {"referrals": [_referral_payload(item) for item in referrals]}


@router.get("/stats")
async def referral_stats(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    stats = await ReferralService(session).stats(profile)
    return asdict(stats)


@router.get("/all")
async def list_all_referrals(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    if profile.role != UserRole.ADMIN:
        raise Forbidden("Admin access required")
    referrals = await ReferralService(session).list_all()
    return {"referrals": [_referral_payload(item) for item in referrals]}

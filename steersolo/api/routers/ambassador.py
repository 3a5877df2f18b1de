from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.services.ambassador_service import AmbassadorService

router = APIRouter(prefix="/ambassador", tags=["ambassador"])


@router.post("/check-tier")
async def check_tier(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    result = await AmbassadorService(session).check_tiers(profile)
    return {"success": True, **asdict(result)}


@router.get("/progress")
async def tier_progress(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    return asdict(await AmbassadorService(session).progress(profile))

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import PosterTransformRequest
from steersolo.services.poster_service import PosterService
from steersolo.services.shop_service import ShopService

router = APIRouter(prefix="/marketing", tags=["marketing"])


@router.post("/posters/transform")
async def transform_poster(
    payload: PosterTransformRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    shop = await ShopService(session).require_owned_shop(payload.shop_id, profile)
    canvas = await PosterService(session).generate(profile, shop, payload.template)
    return {"success": True, "canvas": canvas}

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import ProductDescriptionRequest, ShopRequest
from steersolo.services.ai_service import AIService

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/product-description")
async def product_description(
    payload: ProductDescriptionRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    copy = await AIService(session).generate_product_description(
        profile,
        product_name=payload.product_name,
        category=payload.category,
        price=payload.price,
    )
    return {
        "description": copy.description,
        "price_suggestion": {"min": copy.price_min, "max": copy.price_max},
    }


@router.post("/know-this-shop")
async def know_this_shop(payload: ShopRequest, session: SessionDependency) -> dict[str, Any]:
    return await AIService(session).know_this_shop(payload.shop_id)


@router.post("/stroke-my-shop")
async def stroke_my_shop(payload: ShopRequest, profile: CurrentProfile, session: SessionDependency) -> StreamingResponse:
    stream = await AIService(session).stroke_my_shop(profile, payload.shop_id)
    # The usage row must be durable before the body starts streaming.
    await session.commit()
    return StreamingResponse(stream.iter_bytes(), media_type="text/event-stream")

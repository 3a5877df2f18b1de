from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import CouponCreateRequest, CouponOut, CouponToggleRequest, CouponValidateRequest
from steersolo.services.coupon_service import CouponService
from steersolo.services.shop_service import ShopService

router = APIRouter(tags=["coupons"])


@router.get("/shops/{shop_id}/coupons")
async def list_coupons(shop_id: int, profile: CurrentProfile, session: SessionDependency) -> list[CouponOut]:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    coupons = await CouponService(session).list_coupons(shop)
    return [CouponOut.model_validate(coupon) for coupon in coupons]


@router.post("/shops/{shop_id}/coupons", status_code=status.HTTP_201_CREATED)
async def create_coupon(
    shop_id: int,
    payload: CouponCreateRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> CouponOut:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    coupon = await CouponService(session).create_coupon(
        shop,
        code=payload.code,
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
        min_order_amount=payload.min_order_amount,
        max_uses=payload.max_uses,
        valid_from=payload.valid_from,
        valid_until=payload.valid_until,
    )
    return CouponOut.model_validate(coupon)


@router.patch("/shops/{shop_id}/coupons/{coupon_id}")
async def toggle_coupon(
    shop_id: int,
    coupon_id: int,
    payload: CouponToggleRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> CouponOut:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    coupon = await CouponService(session).toggle_coupon(shop, coupon_id, payload.is_active)
    return CouponOut.model_validate(coupon)


@router.delete("/shops/{shop_id}/coupons/{coupon_id}")
async def delete_coupon(
    shop_id: int,
    coupon_id: int,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    await CouponService(session).delete_coupon(shop, coupon_id)
    return {"success": True}


@router.post("/coupons/validate")
async def validate_coupon(payload: CouponValidateRequest, session: SessionDependency) -> dict[str, Any]:
    check = await CouponService(session).validate_coupon(payload.shop_id, payload.code, payload.order_total)
    if not check.valid:
        return {"valid": False, "discount": 0, "error": check.error}
    return {
        "valid": True,
        "discount": float(check.discount),
        "coupon_id": check.coupon.id if check.coupon is not None else None,
    }

from __future__ import annotations

from typing import Any

import orjson
from fastapi import APIRouter, Request

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import BookDeliveryRequest, DeliveryEventOut, DeliveryOut, DeliveryStatusRequest, RatesRequest
from steersolo.core.errors import Forbidden
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import DeliveryOrder, Profile
from steersolo.services.delivery_service import DeliveryService, style_for_status
from steersolo.services.order_service import OrderService
from steersolo.services.shop_service import ShopService

router = APIRouter(prefix="/logistics", tags=["logistics"])
log = get_logger(__name__)


def _delivery_payload(delivery: DeliveryOrder) -> dict[str, Any]:
    payload = DeliveryOut.model_validate(delivery).model_dump(mode="json")
    style = style_for_status(delivery.status)
    payload["status_style"] = {"label": style.label, "color": style.color, "icon": style.icon}
    return payload


async def _owned_delivery(session: SessionDependency, delivery_id: int, profile: Profile) -> DeliveryOrder:
    delivery = await DeliveryService(session).require_delivery(delivery_id)
    shop = await ShopService(session).require_shop(delivery.shop_id)
    if shop.owner_id != profile.id:
        raise Forbidden("Unauthorized")
    return delivery


@router.post("/rates")
async def get_rates(payload: RatesRequest, session: SessionDependency) -> dict[str, Any]:
    quote = await DeliveryService(session).get_rates(
        payload.pickup_address,
        payload.delivery_address,
        weight_kg=payload.weight_kg,
    )
    rates = [
        {
            "carrier": rate.carrier,
            "carrier_logo": rate.carrier_logo,
            "price": float(rate.price),
            "currency": rate.currency,
            "estimated_days": rate.estimated_days,
            "rate_id": rate.rate_id,
        }
        for rate in quote.rates
    ]
    response: dict[str, Any] = {"success": quote.success, "rates": rates}
    if quote.error:
        response["error"] = quote.error
    return response


@router.post("/book")
async def book_delivery(payload: BookDeliveryRequest, profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    shop = await ShopService(session).require_owned_shop(payload.shop_id, profile)
    order = await OrderService(session).require_order(payload.order_id)
    delivery = await DeliveryService(session).book_delivery(
        shop,
        order,
        provider=payload.provider,
        pickup_address=payload.pickup_address,
        delivery_address=payload.delivery_address,
        delivery_fee=payload.delivery_fee,
        rate_id=payload.rate_id,
        weight_kg=payload.weight_kg,
        dimensions=payload.dimensions,
    )
    return {"success": True, "delivery_order": _delivery_payload(delivery)}


@router.get("/deliveries")
async def list_deliveries(shop_id: int, profile: CurrentProfile, session: SessionDependency) -> list[dict[str, Any]]:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    return [_delivery_payload(delivery) for delivery in await DeliveryService(session).list_for_shop(shop)]


@router.get("/track")
async def track_delivery(delivery_order_id: int, profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    delivery = await _owned_delivery(session, delivery_order_id, profile)
    result = await DeliveryService(session).track(delivery)
    return {
        "success": True,
        "delivery_order": _delivery_payload(result.delivery),
        "events": [DeliveryEventOut.model_validate(event).model_dump(mode="json") for event in result.events],
    }


@router.patch("/{delivery_order_id}/status")
async def update_delivery_status(
    delivery_order_id: int,
    payload: DeliveryStatusRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    delivery = await _owned_delivery(session, delivery_order_id, profile)
    await DeliveryService(session).update_status(
        delivery,
        payload.status,
        description=payload.description,
        location=payload.location,
    )
    return {"success": True, "delivery_order": _delivery_payload(delivery)}


@router.post("/webhook")
async def logistics_webhook(request: Request, session: SessionDependency) -> dict[str, Any]:
    raw_body = await request.body()
    try:
        body = orjson.loads(raw_body)
    except orjson.JSONDecodeError:
        log.warning("delivery_webhook_invalid_body")
        return {"success": False, "message": "Invalid payload"}
    if not isinstance(body, dict):
        return {"success": False, "message": "Invalid payload"}
    return await DeliveryService(session).handle_webhook(body)

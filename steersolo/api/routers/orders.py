from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from steersolo.api.deps import CurrentProfile, OptionalProfile, SessionDependency
from steersolo.api.schemas import OrderCreateRequest, OrderNotifyRequest, OrderOut, OrderStatusRequest
from steersolo.core.errors import Forbidden
from steersolo.infrastructure.db.models import Order
from steersolo.services.order_notification_service import OrderNotificationService
from steersolo.services.order_presentation import badge_for_payment, badge_for_status
from steersolo.services.order_service import OrderLine, OrderService, allowed_next_statuses
from steersolo.services.order_timeline_service import OrderTimelineService
from steersolo.services.shop_service import ShopService
from steersolo.services.whatsapp import order_summary_message, whatsapp_link

router = APIRouter(tags=["orders"])


def _order_payload(order: Order) -> dict[str, Any]:
    payload = OrderOut.model_validate(order).model_dump(mode="json")
    status_badge = badge_for_status(order.status.value)
    payment_badge = badge_for_payment(order.payment_status.value)
    payload["status_badge"] = {"label": status_badge.label, "color": status_badge.color}
    payload["payment_badge"] = {"label": payment_badge.label, "color": payment_badge.color}
    payload["allowed_next_statuses"] = [item.value for item in allowed_next_statuses(order.status)]
    return payload


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateRequest,
    customer: OptionalProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    shop = await ShopService(session).require_shop(payload.shop_id)
    order = await OrderService(session).create_order(
        shop,
        customer_name=payload.customer_name,
        lines=[OrderLine(product_id=item.product_id, quantity=item.quantity) for item in payload.items],
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
        delivery_address=payload.delivery_address,
        coupon_code=payload.coupon_code,
        pay_on_delivery=payload.pay_on_delivery,
        customer=customer,
        notes=payload.notes,
    )
    return {
        "order": _order_payload(order),
        "whatsapp_link": whatsapp_link(shop.whatsapp_number, order_summary_message(shop.shop_name, order)),
    }


@router.get("/orders/public/{public_id}")
async def get_public_order(public_id: str, session: SessionDependency) -> dict[str, Any]:
    order = await OrderService(session).require_public_order(public_id)
    return {"order": _order_payload(order)}


@router.get("/shops/{shop_id}/orders")
async def list_orders(shop_id: int, profile: CurrentProfile, session: SessionDependency) -> list[dict[str, Any]]:
    shop = await ShopService(session).require_owned_shop(shop_id, profile)
    orders = await OrderService(session).list_orders(shop)
    return [_order_payload(order) for order in orders]


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: int,
    payload: OrderStatusRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    service = OrderService(session)
    order = await service.require_order(order_id)
    shop = await ShopService(session).require_shop(order.shop_id)
    if shop.owner_id != profile.id:
        raise Forbidden("Only the shop owner can update this order")
    await service.transition(order, payload.status, actor="shop_owner", note=payload.note)
    return {"order": _order_payload(order)}


@router.get("/orders/{order_id}/timeline")
async def order_timeline(order_id: int, profile: CurrentProfile, session: SessionDependency) -> list[dict[str, Any]]:
    order = await OrderService(session).require_order(order_id)
    shop = await ShopService(session).require_shop(order.shop_id)
    if shop.owner_id != profile.id and order.customer_id != profile.id:
        raise Forbidden("You cannot view this order")
    events = await OrderTimelineService(session).list_events(order)
    return [
        {
            "status": event.status,
            "label": OrderTimelineService.label_for_status(event.status),
            "note": event.note,
            "actor": event.actor,
            "created_at": event.created_at,
        }
        for event in events
    ]


@router.post("/orders/{order_id}/notify")
async def notify_order(order_id: int, payload: OrderNotifyRequest, session: SessionDependency) -> dict[str, Any]:
    order = await OrderService(session).require_order(order_id)
    shop = await ShopService(session).require_shop(order.shop_id)
    result = await OrderNotificationService(session).notify(
        order,
        shop,
        payload.event_type,
        status_update=payload.status_update,
    )
    return {"success": True, "already_sent": result.already_sent, "sent_to": len(result.sent_to)}

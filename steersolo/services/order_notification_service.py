from __future__ import annotations

from dataclasses import dataclass, field
from html import escape
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import NotificationEvent, OrderStatus
from steersolo.core.errors import ServiceUnavailable, UpstreamError, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Order, Shop
from steersolo.infrastructure.db.repositories import OrderRepository, ProfileRepository
from steersolo.services.money import format_naira
from steersolo.services.resend_client import ResendClient, ResendError

NOTIFICATION_META_KEY = "notifications"

STATUS_MESSAGES: dict[str, str] = {
    "confirmed": "Your order has been confirmed by the seller and will be processed soon.",
    "processing": "Your order is now being prepared.",
    "out_for_delivery": "Great news! Your order is on its way to you.",
    "delivered": "Your order has been delivered. Enjoy!",
    "completed": "Your order is complete. Thank you for shopping with us!",
    "cancelled": "Your order has been cancelled. If you have questions, please contact the seller.",
}
DEFAULT_STATUS_MESSAGE = "Your order status has been updated."

_CELL = "padding:8px;border-bottom:1px solid #eee"
_WRAPPER = "font-family:Arial,sans-serif;max-width:600px;margin:0 auto"
_BODY = "padding:24px;background:#fff;border:1px solid #e5e7eb;border-top:none;border-radius:0 0 8px 8px"
_FOOTER = "color:#6b7280;font-size:12px;margin-top:24px"


@dataclass
class NotificationResult:
    event: str
    sent_to: list[str] = field(default_factory=list)
    already_sent: bool = False


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str


def _header(colour: str, title: str) -> str:
    return (
        f'<div style="background:{colour};color:white;padding:20px;text-align:center;'
        f'border-radius:8px 8px 0 0"><h1 style="margin:0">{title}</h1></div>'
    )


def _items_table(order: Order) -> str:
    rows = "".join(
        f'<tr><td style="{_CELL}">{escape(item.product_name)}</td>'
        f'<td style="{_CELL};text-align:center">{item.quantity}</td>'
        f'<td style="{_CELL};text-align:right">{format_naira(item.line_total)}</td></tr>'
        for item in order.items
    )
    return (
        '<table style="width:100%;border-collapse:collapse;margin:16px 0">'
        '<thead><tr style="background:#f9fafb"><th style="padding:8px;text-align:left">Item</th>'
        '<th style="padding:8px;text-align:center">Qty</th>'
        '<th style="padding:8px;text-align:right">Amount</th></tr></thead>'
        f"<tbody>{rows}</tbody>"
        '<tfoot><tr><td colspan="2" style="padding:8px;font-weight:bold">Total</td>'
        f'<td style="padding:8px;text-align:right;font-weight:bold">{format_naira(order.total_amount)}</td></tr></tfoot>'
        "</table>"
    )


def build_order_placed_emails(order: Order, shop: Shop, owner_email: str | None) -> list[EmailMessage]:
    shop_name = escape(shop.shop_name)
    customer = escape(order.customer_name or "Valued Customer")
    messages: list[EmailMessage] = []
    if order.customer_email:
        messages.append(
            EmailMessage(
                to=order.customer_email,
                subject=f"Order Confirmed #{order.short_id} - {shop.shop_name}",
                html=(
                    f'<div style="{_WRAPPER}">{_header("#16a34a", "Order Confirmed! ✅")}'
                    f'<div style="{_BODY}"><p>Hi {customer},</p>'
                    f"<p>Thank you for your order from <strong>{shop_name}</strong>!</p>"
                    f"<p><strong>Order ID:</strong> #{order.short_id}</p>"
                    f"{_items_table(order)}"
                    "<p>The seller will review and process your order shortly.</p>"
                    f'<p style="{_FOOTER}">This is an automated email from SteerSolo. '
                    "Please do not reply directly.</p></div></div>"
                ),
            )
        )
    if owner_email:
        messages.append(
            EmailMessage(
                to=owner_email,
                subject=f"🛒 New Order #{order.short_id} - {format_naira(order.total_amount)}",
                html=(
                    f'<div style="{_WRAPPER}">{_header("#f97316", "New Order Received! 🎉")}'
                    f'<div style="{_BODY}"><p>Hey there,</p>'
                    f"<p>You have a new order on <strong>{shop_name}</strong>!</p>"
                    f"<p><strong>Order ID:</strong> #{order.short_id}</p>"
                    f"<p><strong>Customer:</strong> {escape(order.customer_name or 'N/A')}</p>"
                    f"<p><strong>Email:</strong> {escape(order.customer_email or 'N/A')}</p>"
                    f"{_items_table(order)}"
                    "<p>Log in to your SteerSolo dashboard to review and process this order.</p>"
                    f'<p style="{_FOOTER}">This is an automated email from SteerSolo.</p></div></div>'
                ),
            )
        )
    return messages


def build_status_email(order: Order, shop: Shop, status: str) -> EmailMessage | None:
    if not order.customer_email:
        return None
    label = status.replace("_", " ")
    return EmailMessage(
        to=order.customer_email,
        subject=f"Order #{order.short_id} - {label[:1].upper()}{label[1:]}",
        html=(
            f'<div style="{_WRAPPER}">{_header("#2563eb", "Order Update 📦")}'
            f'<div style="{_BODY}"><p>Hi {escape(order.customer_name or "Valued Customer")},</p>'
            f"<p><strong>Order #{order.short_id}</strong> from <strong>{escape(shop.shop_name)}</strong></p>"
            '<div style="background:#f0f9ff;border:1px solid #bae6fd;border-radius:8px;padding:16px;margin:16px 0">'
            f'<p style="margin:0;font-weight:bold">Status: {escape(label.upper())}</p>'
            f'<p style="margin:8px 0 0;color:#374151">{STATUS_MESSAGES.get(status, DEFAULT_STATUS_MESSAGE)}</p>'
            "</div>"
            f"<p>Amount: <strong>{format_naira(order.total_amount)}</strong></p>"
            f'<p style="{_FOOTER}">This is an automated email from SteerSolo.</p></div></div>'
        ),
    )


class OrderNotificationService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._orders = OrderRepository(session)
        self._profiles = ProfileRepository(session)
        self._settings = get_settings()
        self._log = get_logger(__name__)

    async def notify(
        self,
        order: Order,
        shop: Shop,
        event_type: str,
        *,
        status_update: str | None = None,
    ) -> NotificationResult:
        try:
            event = NotificationEvent(event_type)
        except ValueError as exc:
            raise ValidationFailed("Unknown event type") from exc

        status = order.status.value if order.status else ""
        if event == NotificationEvent.STATUS_UPDATE:
            requested = (status_update or status).strip()
            try:
                OrderStatus(requested)
            except ValueError as exc:
                raise ValidationFailed("Unknown order status") from exc
            if requested != status:
                raise ValidationFailed("Status update does not match the order status")
        marker = event.value if event == NotificationEvent.ORDER_PLACED else f"{event.value}:{status}"
        meta = self._notification_meta(order)
        if meta.get(marker):
            return NotificationResult(event=event.value, already_sent=True)

        if event == NotificationEvent.ORDER_PLACED:
            owner = await self._profiles.get_by_id(shop.owner_id)
            messages = build_order_placed_emails(order, shop, owner.email if owner is not None else None)
        else:
            message = build_status_email(order, shop, status)
            messages = [message] if message is not None else []

        result = NotificationResult(event=event.value)
        if not messages:
            return result

        client = self._require_client()
        for message in messages:
            try:
                await client.send_email(to=[message.to], subject=message.subject, html=message.html)
            except ResendError as exc:
                self._log.error(
                    "order_email_failed",
                    order_id=order.id,
                    notification=marker,
                    status_code=exc.status_code,
                    error=str(exc),
                )
                raise UpstreamError("Failed to send email") from exc
            result.sent_to.append(message.to)

        meta[marker] = {"sent_at": self._timestamp(), "recipients": len(result.sent_to)}
        await self._persist_meta(order, meta)
        self._log.info("order_email_sent", order_id=order.id, notification=marker, recipients=len(result.sent_to))
        return result

    def _notification_meta(self, order: Order) -> dict[str, Any]:
        extra = order.extra_attrs or {}
        data = extra.get(NOTIFICATION_META_KEY)
        return dict(data) if isinstance(data, dict) else {}

    async def _persist_meta(self, order: Order, meta: dict[str, Any]) -> None:
        await self._orders.merge_extra_attrs(order, {NOTIFICATION_META_KEY: meta})
        await self._session.flush()

    @staticmethod
    def _timestamp() -> str:
        return utcnow().isoformat()

    def _require_client(self) -> ResendClient:
        try:
            return self._get_client()
        except ValueError as exc:
            raise ServiceUnavailable("Email service not configured") from exc

    def _get_client(self) -> ResendClient:
        return ResendClient(
            api_key=self._settings.resend_api_key or "",
            sender=self._settings.email_sender,
        )

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import quote

from steersolo.infrastructure.db.models import Order
from steersolo.services.money import format_naira

WHATSAPP_SEND_URL = "https://api.whatsapp.com/send"
_NON_DIAL = re.compile(r"[^\d+]")


def normalise_whatsapp_number(phone: str | None) -> str | None:
    cleaned = _NON_DIAL.sub("", phone or "")
    if not cleaned:
        return None
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("234"):
        return f"+{cleaned}"
    return "+234" + cleaned.lstrip("0")


def inquiry_message(shop_name: str) -> str:
    return (
        f"👋 Hello {shop_name}!\n\n"
        "I found your shop on SteerSolo and would like to make an inquiry.\n\n"
        "Please let me know more about your products/services."
    )


def product_inquiry_message(shop_name: str, product_name: str) -> str:
    return (
        f"👋 Hello {shop_name}!\n\n"
        f'I\'m interested in "{product_name}" from your SteerSolo shop.\n\n'
        "Could you please provide more details about availability and pricing?"
    )


def order_summary_message(shop_name: str, order: Order, items: Iterable | None = None) -> str:
    lines = [f"👋 Hello {shop_name}!", "", f"I just placed order #{order.short_id} on SteerSolo:"]
    for item in items if items is not None else order.items:
        lines.append(f"• {item.quantity} x {item.product_name} - {format_naira(item.line_total)}")
    lines += ["", f"Total: {format_naira(order.total_amount)}"]
    if order.delivery_address:
        lines.append(f"Delivery to: {order.delivery_address}")
    return "\n".join(lines)


def whatsapp_link(phone: str | None, message: str) -> str | None:
    number = normalise_whatsapp_number(phone)
    if number is None:
        return None
    return f"{WHATSAPP_SEND_URL}?phone={quote(number, safe='')}&text={quote(message, safe='')}"

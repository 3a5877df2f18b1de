from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StatusBadge:
    label: str
    color: str


ORDER_BADGES: dict[str, StatusBadge] = {
    "awaiting_approval": StatusBadge("Awaiting Approval", "orange"),
    "pending": StatusBadge("Pending", "yellow"),
    "confirmed": StatusBadge("Confirmed", "blue"),
    "paid_awaiting_delivery": StatusBadge("Paid - Awaiting Delivery", "green"),
    "processing": StatusBadge("Processing", "purple"),
    "out_for_delivery": StatusBadge("Out for Delivery", "indigo"),
    "delivered": StatusBadge("Delivered", "green"),
    "completed": StatusBadge("Completed", "purple"),
    "cancelled": StatusBadge("Cancelled", "red"),
}

PAYMENT_BADGES: dict[str, StatusBadge] = {
    "pending": StatusBadge("Payment Pending", "yellow"),
    "paid": StatusBadge("Paid", "green"),
    "failed": StatusBadge("Payment Failed", "red"),
    "refunded": StatusBadge("Refunded", "gray"),
    "on_delivery": StatusBadge("Pay on Delivery", "blue"),
}


def badge_for_status(status: str | None) -> StatusBadge:
    key = str(status or "")
    badge = ORDER_BADGES.get(key)
    if badge is not None:
        return badge
    return StatusBadge(key.replace("_", " ").title() or "Unknown", "gray")


def badge_for_payment(status: str | None) -> StatusBadge:
    key = str(status or "")
    return PAYMENT_BADGES.get(key, StatusBadge(key.replace("_", " ").title() or "Unknown", "gray"))

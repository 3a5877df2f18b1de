from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.infrastructure.db.models import Order, OrderTimeline
from steersolo.infrastructure.db.repositories import OrderTimelineRepository


class OrderTimelineService:
    DEFAULT_LABELS: dict[str, str] = {
        "created": "Order placed",
        "awaiting_approval": "Awaiting approval",
        "pending": "Awaiting payment",
        "confirmed": "Order confirmed",
        "paid_awaiting_delivery": "Paid - awaiting delivery",
        "processing": "Processing",
        "out_for_delivery": "Out for delivery",
        "delivered": "Delivered",
        "completed": "Completed",
        "cancelled": "Order cancelled",
        "note": "Note",
    }

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = OrderTimelineRepository(session)

    async def add_event(
        self,
        order: Order,
        *,
        status: str | None = None,
        note: str | None = None,
        actor: str | None = None,
        event_type: str = "status",
        meta: dict | None = None,
    ) -> OrderTimeline:
        entry = await self._repo.add_event(
            order.id,
            event_type=event_type,
            status=status,
            note=note,
            actor=actor,
            meta=meta,
        )
        if status:
            extra = dict(order.extra_attrs or {})
            extra["timeline_status"] = {
                "status": status,
                "actor": actor,
                "updated_at": entry.created_at.isoformat() if entry.created_at else None,
            }
            order.extra_attrs = extra
        return entry

    async def list_events(self, order: Order) -> list[OrderTimeline]:
        return await self._repo.list_for_order(order.id)

    @classmethod
    def label_for_status(cls, status: str | None) -> str:
        if not status:
            return "Update"
        return cls.DEFAULT_LABELS.get(status, status.replace("_", " ").title())

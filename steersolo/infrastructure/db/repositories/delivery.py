from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from steersolo.infrastructure.db.models import DeliveryOrder, DeliveryTrackingEvent

from .base import BaseRepository


class DeliveryRepository(BaseRepository):
    async def get_by_id(self, delivery_id: int) -> DeliveryOrder | None:
        return await self.session.get(DeliveryOrder, delivery_id)

    async def get_by_shipment_id(self, shipment_id: str) -> DeliveryOrder | None:
        result = await self.session.execute(
            select(DeliveryOrder).where(DeliveryOrder.provider_shipment_id == shipment_id)
        )
        return result.scalars().first()

    async def get_latest_for_order(self, order_id: int) -> DeliveryOrder | None:
        result = await self.session.execute(
            select(DeliveryOrder)
            .where(DeliveryOrder.order_id == order_id)
            .order_by(DeliveryOrder.created_at.desc(), DeliveryOrder.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, delivery: DeliveryOrder) -> DeliveryOrder:
        await self.add(delivery)
        return delivery

    async def add_event(self, event: DeliveryTrackingEvent) -> DeliveryTrackingEvent:
        await self.add(event)
        return event

    async def list_events(self, delivery_id: int) -> list[DeliveryTrackingEvent]:
        result = await self.session.execute(
            select(DeliveryTrackingEvent)
            .where(DeliveryTrackingEvent.delivery_order_id == delivery_id)
            .order_by(DeliveryTrackingEvent.event_time.desc(), DeliveryTrackingEvent.id.desc())
        )
        return list(result.scalars().all())

    async def provider_event_ids(self, delivery_id: int) -> set[str]:
        result = await self.session.execute(
            select(DeliveryTrackingEvent.provider_event_id).where(
                DeliveryTrackingEvent.delivery_order_id == delivery_id,
                DeliveryTrackingEvent.provider_event_id.is_not(None),
            )
        )
        return {str(value) for value in result.scalars().all()}

    async def list_for_shop(self, shop_id: int) -> list[DeliveryOrder]:
        result = await self.session.execute(
            select(DeliveryOrder)
            .options(selectinload(DeliveryOrder.events))
            .where(DeliveryOrder.shop_id == shop_id)
            .order_by(DeliveryOrder.created_at.desc(), DeliveryOrder.id.desc())
        )
        return list(result.scalars().all())

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from steersolo.core.enums import OrderStatus
from steersolo.infrastructure.db.models import Order

from .base import BaseRepository


class OrderRepository(BaseRepository):
    async def get_by_id(self, order_id: int) -> Order | None:
        result = await self.session.execute(
            select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        )
        return result.scalar_one_or_none()

    async def get_by_public_id(self, public_id: str) -> Order | None:
        result = await self.session.execute(
            select(Order).options(selectinload(Order.items)).where(Order.public_id == public_id)
        )
        return result.scalar_one_or_none()

    async def create(self, order: Order) -> Order:
        await self.add(order)
        return order

    async def list_for_shop(self, shop_id: int, *, limit: int = 50) -> list[Order]:
        result = await self.session.execute(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.shop_id == shop_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_shop(self, shop_id: int, *, status: OrderStatus | None = None) -> int:
        stmt = select(func.count()).select_from(Order).where(Order.shop_id == shop_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def merge_extra_attrs(self, order: Order, updates: dict) -> Order:
        extra = dict(order.extra_attrs or {})
        extra.update(updates)
        order.extra_attrs = extra
        return order

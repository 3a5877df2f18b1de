from __future__ import annotations

from sqlalchemy import select

from steersolo.infrastructure.db.models import ShopCoupon

from .base import BaseRepository


class CouponRepository(BaseRepository):
    async def get_by_id(self, coupon_id: int) -> ShopCoupon | None:
        return await self.session.get(ShopCoupon, coupon_id)

    async def get_by_code(self, shop_id: int, code: str, *, active_only: bool = False) -> ShopCoupon | None:
        stmt = select(ShopCoupon).where(ShopCoupon.shop_id == shop_id, ShopCoupon.code == code)
        if active_only:
            stmt = stmt.where(ShopCoupon.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_shop(self, shop_id: int) -> list[ShopCoupon]:
        result = await self.session.execute(
            select(ShopCoupon)
            .where(ShopCoupon.shop_id == shop_id)
            .order_by(ShopCoupon.created_at.desc(), ShopCoupon.id.desc())
        )
        return list(result.scalars().all())

    async def create_coupon(self, coupon: ShopCoupon) -> ShopCoupon:
        await self.add(coupon)
        return coupon

    async def delete_coupon(self, coupon: ShopCoupon) -> None:
        await self.delete(coupon)

from __future__ import annotations

from sqlalchemy import func, select, update

from steersolo.infrastructure.db.models import FeaturedShop, Shop, ShopAddress

from .base import BaseRepository


class ShopRepository(BaseRepository):
    async def get_by_id(self, shop_id: int) -> Shop | None:
        return await self.session.get(Shop, shop_id)

    async def get_by_slug(self, slug: str) -> Shop | None:
        result = await self.session.execute(select(Shop).where(Shop.shop_slug == slug))
        return result.scalar_one_or_none()

    async def get_owned(self, shop_id: int, owner_id: int) -> Shop | None:
        result = await self.session.execute(
            select(Shop).where(Shop.id == shop_id, Shop.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def get_first_for_owner(self, owner_id: int) -> Shop | None:
        result = await self.session.execute(
            select(Shop).where(Shop.owner_id == owner_id).order_by(Shop.id.asc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(Shop).where(Shop.shop_slug == slug)
        )
        return int(result.scalar_one()) > 0

    async def create(self, shop: Shop) -> Shop:
        await self.add(shop)
        return shop

    async def get_featured(self, shop_id: int) -> FeaturedShop | None:
        result = await self.session.execute(
            select(FeaturedShop).where(FeaturedShop.shop_id == shop_id)
        )
        return result.scalar_one_or_none()

    async def upsert_featured(self, shop_id: int, **values: object) -> FeaturedShop:
        featured = await self.get_featured(shop_id)
        if featured is None:
            featured = FeaturedShop(shop_id=shop_id, **values)
            await self.add(featured)
            return featured
        for key, value in values.items():
            setattr(featured, key, value)
        await self.session.flush()
        return featured

    async def list_addresses(self, shop_id: int) -> list[ShopAddress]:
        result = await self.session.execute(
            select(ShopAddress)
            .where(ShopAddress.shop_id == shop_id)
            .order_by(ShopAddress.is_default.desc(), ShopAddress.id.asc())
        )
        return list(result.scalars().all())

    async def get_address(self, address_id: int) -> ShopAddress | None:
        return await self.session.get(ShopAddress, address_id)

    async def clear_default_address(self, shop_id: int) -> None:
        await self.session.execute(
            update(ShopAddress).where(ShopAddress.shop_id == shop_id).values(is_default=False)
        )

from __future__ import annotations

from sqlalchemy import func, select

from steersolo.infrastructure.db.models import Product, Review, Shop

from .base import BaseRepository


class ProductRepository(BaseRepository):
    async def get_by_id(self, product_id: int) -> Product | None:
        return await self.session.get(Product, product_id)

    async def get_many(self, shop_id: int, product_ids: list[int]) -> dict[int, Product]:
        if not product_ids:
            return {}
        result = await self.session.execute(
            select(Product).where(Product.shop_id == shop_id, Product.id.in_(product_ids))
        )
        return {product.id: product for product in result.scalars().all()}

    async def list_for_shop(self, shop_id: int, *, available_only: bool = False) -> list[Product]:
        stmt = select(Product).where(Product.shop_id == shop_id)
        if available_only:
            stmt = stmt.where(Product.is_available.is_(True))
        result = await self.session.execute(stmt.order_by(Product.created_at.desc(), Product.id.desc()))
        return list(result.scalars().all())

    async def count_for_shop(self, shop_id: int, *, available_only: bool = False) -> int:
        stmt = select(func.count()).select_from(Product).where(Product.shop_id == shop_id)
        if available_only:
            stmt = stmt.where(Product.is_available.is_(True))
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def count_for_owner(self, owner_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Product)
            .join(Shop, Shop.id == Product.shop_id)
            .where(Shop.owner_id == owner_id)
        )
        return int(result.scalar_one())

    async def create(self, product: Product) -> Product:
        await self.add(product)
        return product

    async def add_review(self, review: Review) -> Review:
        await self.add(review)
        return review

    async def list_recent_reviews(self, shop_id: int, *, limit: int = 5) -> list[Review]:
        result = await self.session.execute(
            select(Review)
            .where(Review.shop_id == shop_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def review_summary(self, shop_id: int) -> tuple[float, int]:
        result = await self.session.execute(
            select(func.avg(Review.rating), func.count(Review.id)).where(Review.shop_id == shop_id)
        )
        average, count = result.one()
        return float(average or 0), int(count or 0)

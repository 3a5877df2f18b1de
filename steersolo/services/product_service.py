from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.errors import Forbidden, NotFound, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Product, Profile, Shop
from steersolo.infrastructure.db.repositories import ProductRepository
from steersolo.services.usage_service import FeatureUsageService

log = get_logger(__name__)


class ProductService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ProductRepository(session)
        self._usage = FeatureUsageService(session)

    async def list_products(self, shop: Shop, *, available_only: bool = False) -> list[Product]:
        return await self._repo.list_for_shop(shop.id, available_only=available_only)

    async def create_product(
        self,
        owner: Profile,
        shop: Shop,
        *,
        name: str,
        price: Decimal | int | float | str,
        description: str | None = None,
        image_url: str | None = None,
        category: str | None = None,
        stock_quantity: int | None = None,
    ) -> Product:
        if shop.owner_id != owner.id:
            raise Forbidden("Shop not found or unauthorized")
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Product name is required")
        try:
            amount = Decimal(str(price))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationFailed("Price must be a number") from exc
        if amount < 0:
            raise ValidationFailed("Price cannot be negative")
        if stock_quantity is not None and stock_quantity < 0:
            raise ValidationFailed("Stock quantity cannot be negative")

        limit = await self._usage.check_product_limit(owner)
        if not limit.can_create:
            raise Forbidden(
                f"You have reached the {limit.max_allowed} product limit. Upgrade to add more products.",
                payload={
                    "upgrade_required": True,
                    "current_count": limit.current_count,
                    "max_allowed": limit.max_allowed,
                },
            )

        product = Product(
            shop_id=shop.id,
            name=name,
            price=amount,
            description=description,
            image_url=image_url,
            category=category,
            stock_quantity=stock_quantity,
            is_available=True,
        )
        await self._repo.create(product)
        log.info("product_created", product_id=product.id, shop_id=shop.id)
        return product

    async def set_availability(self, shop: Shop, product_id: int, is_available: bool) -> Product:
        product = await self._repo.get_by_id(product_id)
        if product is None or product.shop_id != shop.id:
            raise NotFound("Product not found")
        product.is_available = is_available
        await self._session.flush()
        return product

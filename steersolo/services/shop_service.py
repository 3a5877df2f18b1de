from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.errors import Forbidden, NotFound, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import FeaturedShop, Profile, Review, Shop, ShopAddress
from steersolo.infrastructure.db.repositories import ProductRepository, ShopRepository

log = get_logger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    slug = _SLUG_STRIP.sub("-", value.strip().lower()).strip("-")
    return slug or "shop"


class ShopService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ShopRepository(session)
        self._products = ProductRepository(session)

    async def get_shop(self, shop_id: int) -> Shop | None:
        return await self._repo.get_by_id(shop_id)

    async def require_shop(self, shop_id: int) -> Shop:
        shop = await self._repo.get_by_id(shop_id)
        if shop is None:
            raise NotFound("Shop not found")
        return shop

    async def require_shop_by_slug(self, slug: str) -> Shop:
        shop = await self._repo.get_by_slug(slug.strip().lower())
        if shop is None or not shop.is_active:
            raise NotFound("Shop not found")
        return shop

    async def require_owned_shop(self, shop_id: int, owner: Profile, *, message: str = "Shop not found or unauthorized") -> Shop:
        shop = await self._repo.get_owned(shop_id, owner.id)
        if shop is None:
            raise Forbidden(message)
        return shop

    async def shop_for_owner(self, owner: Profile) -> Shop | None:
        return await self._repo.get_first_for_owner(owner.id)

    async def create_shop(
        self,
        owner: Profile,
        *,
        shop_name: str,
        description: str | None = None,
        whatsapp_number: str | None = None,
        payment_method: str | None = None,
        logo_url: str | None = None,
        banner_url: str | None = None,
    ) -> Shop:
        name = (shop_name or "").strip()
        if not name:
            raise ValidationFailed("Shop name is required")
        shop = Shop(
            owner_id=owner.id,
            shop_name=name,
            shop_slug=await self._unique_slug(name),
            description=description,
            whatsapp_number=whatsapp_number,
            payment_method=payment_method,
            logo_url=logo_url,
            banner_url=banner_url,
            average_rating=Decimal("0"),
            total_reviews=0,
            is_active=True,
        )
        await self._repo.create(shop)
        log.info("shop_created", shop_id=shop.id, owner_id=owner.id, slug=shop.shop_slug)
        return shop

    async def feature_shop(
        self,
        shop: Shop,
        *,
        expires_at: datetime,
        label: str | None = None,
        tagline: str | None = None,
    ) -> FeaturedShop:
        return await self._repo.upsert_featured(
            shop.id,
            is_active=True,
            expires_at=expires_at,
            label=label,
            tagline=tagline,
        )

    async def list_addresses(self, shop: Shop) -> list[ShopAddress]:
        return await self._repo.list_addresses(shop.id)

    async def save_address(
        self,
        shop: Shop,
        *,
        line1: str,
        city: str,
        state: str,
        contact_name: str | None = None,
        contact_phone: str | None = None,
        label: str | None = None,
        is_default: bool = False,
        address_id: int | None = None,
    ) -> ShopAddress:
        if not line1 or not city or not state:
            raise ValidationFailed("Address, city and state are required")
        if is_default:
            await self._repo.clear_default_address(shop.id)

        if address_id is not None:
            address = await self._require_address(shop, address_id)
        else:
            address = ShopAddress(shop_id=shop.id)
            self._session.add(address)
        address.line1 = line1
        address.city = city
        address.state = state
        address.contact_name = contact_name
        address.contact_phone = contact_phone
        address.label = label
        address.is_default = is_default
        await self._session.flush()
        return address

    async def delete_address(self, shop: Shop, address_id: int) -> None:
        address = await self._require_address(shop, address_id)
        await self._repo.delete(address)

    async def add_review(
        self,
        shop: Shop,
        *,
        rating: int,
        comment: str | None = None,
        customer_name: str | None = None,
        product_id: int | None = None,
        order_id: int | None = None,
    ) -> Review:
        if rating < 1 or rating > 5:
            raise ValidationFailed("Rating must be between 1 and 5")
        review = Review(
            shop_id=shop.id,
            rating=rating,
            comment=comment,
            customer_name=customer_name,
            product_id=product_id,
            order_id=order_id,
        )
        await self._products.add_review(review)
        average, count = await self._products.review_summary(shop.id)
        shop.average_rating = Decimal(str(round(average, 2)))
        shop.total_reviews = count
        await self._session.flush()
        return review

    async def _require_address(self, shop: Shop, address_id: int) -> ShopAddress:
        address = await self._repo.get_address(address_id)
        if address is None or address.shop_id != shop.id:
            raise NotFound("Address not found")
        return address

    async def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        candidate = base
        suffix = 2
        while await self._repo.slug_exists(candidate):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.enums import UserRole
from steersolo.core.errors import Forbidden, NotFound, ValidationFailed
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Profile
from steersolo.services.product_service import ProductService
from steersolo.services.profile_service import ProfileService
from steersolo.services.shop_service import ShopService, slugify


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


async def _create_owner(session: AsyncSession, auth_user_id: str = "owner-1") -> Profile:
    return await ProfileService(session).get_or_create(auth_user_id, email=f"{auth_user_id}@example.com")


def test_slugify() -> None:
    assert slugify("  Kemi's Kitchen & Grill ") == "kemi-s-kitchen-grill"
    assert slugify("!!!") == "shop"


@pytest.mark.asyncio()
async def test_get_or_create_starts_trial_once(session: AsyncSession) -> None:
    service = ProfileService(session)

    owner = await service.get_or_create("owner-1", email="kemi@example.com")
    again = await service.get_or_create("owner-1", full_name="Kemi Adeyemi")
    customer = await service.get_or_create("customer-1", role=UserRole.CUSTOMER)

    assert again.id == owner.id
    assert again.full_name == "Kemi Adeyemi"
    assert owner.is_subscribed is False
    remaining = ensure_utc(owner.subscription_expires_at) - utcnow()
    assert timedelta(days=6) < remaining <= timedelta(days=7)
    assert customer.subscription_expires_at is None
    with pytest.raises(NotFound):
        await service.require(999)


@pytest.mark.asyncio()
async def test_create_shop_generates_unique_slugs(session: AsyncSession) -> None:
    owner = await _create_owner(session)
    service = ShopService(session)

    first = await service.create_shop(owner, shop_name="Kemi Kitchen")
    second = await service.create_shop(owner, shop_name="Kemi  Kitchen!")
    third = await service.create_shop(owner, shop_name="kemi kitchen")

    assert [first.shop_slug, second.shop_slug, third.shop_slug] == ["kemi-kitchen", "kemi-kitchen-2", "kemi-kitchen-3"]
    assert (await service.shop_for_owner(owner)).id == first.id
    with pytest.raises(ValidationFailed, match="Shop name is required"):
        await service.create_shop(owner, shop_name="  ")


@pytest.mark.asyncio()
async def test_owned_shop_lookup(session: AsyncSession) -> None:
    owner = await _create_owner(session)
    stranger = await _create_owner(session, "stranger")
    service = ShopService(session)
    shop = await service.create_shop(owner, shop_name="Kemi Kitchen")

    assert (await service.require_owned_shop(shop.id, owner)).id == shop.id
    with pytest.raises(Forbidden, match="unauthorized"):
        await service.require_owned_shop(shop.id, stranger)
    with pytest.raises(NotFound):
        await service.require_shop(shop.id + 100)


@pytest.mark.asyncio()
async def test_default_address_is_exclusive(session: AsyncSession) -> None:
    owner = await _create_owner(session)
    service = ShopService(session)
    shop = await service.create_shop(owner, shop_name="Kemi Kitchen")

    home = await service.save_address(shop, line1="1 Broad St", city="Lagos", state="Lagos", is_default=True)
    store = await service.save_address(shop, line1="4 Ring Rd", city="Ibadan", state="Oyo", is_default=True)

    assert home.is_default is False
    assert store.is_default is True
    assert [address.id for address in await service.list_addresses(shop)] == [store.id, home.id]

    updated = await service.save_address(
        shop, line1="2 Broad St", city="Lagos", state="Lagos", address_id=home.id, label="Home"
    )
    assert updated.id == home.id
    assert updated.line1 == "2 Broad St"

    with pytest.raises(ValidationFailed):
        await service.save_address(shop, line1="", city="Lagos", state="Lagos")
    await service.delete_address(shop, home.id)
    with pytest.raises(NotFound):
        await service.delete_address(shop, home.id)


@pytest.mark.asyncio()
async def test_reviews_update_shop_rating(session: AsyncSession) -> None:
    owner = await _create_owner(session)
    service = ShopService(session)
    shop = await service.create_shop(owner, shop_name="Kemi Kitchen")

    await service.add_review(shop, rating=5, comment="Delicious")
    await service.add_review(shop, rating=4)
    await service.add_review(shop, rating=4)

    assert shop.total_reviews == 3
    assert shop.average_rating == Decimal("4.33")
    with pytest.raises(ValidationFailed, match="between 1 and 5"):
        await service.add_review(shop, rating=6)


@pytest.mark.asyncio()
async def test_create_product_validation_and_ownership(session: AsyncSession) -> None:
    owner = await _create_owner(session)
    stranger = await _create_owner(session, "stranger")
    shop = await ShopService(session).create_shop(owner, shop_name="Kemi Kitchen")
    service = ProductService(session)

    product = await service.create_product(owner, shop, name=" Jollof Rice ", price="2500", stock_quantity=3)
    assert product.name == "Jollof Rice"
    assert product.price == Decimal("2500")

    with pytest.raises(Forbidden):
        await service.create_product(stranger, shop, name="Suya", price=1000)
    with pytest.raises(ValidationFailed, match="Price must be a number"):
        await service.create_product(owner, shop, name="Suya", price="cheap")
    with pytest.raises(ValidationFailed, match="cannot be negative"):
        await service.create_product(owner, shop, name="Suya", price=-1)

    hidden = await service.set_availability(shop, product.id, False)
    assert hidden.is_available is False
    assert await service.list_products(shop, available_only=True) == []
    with pytest.raises(NotFound):
        await service.set_availability(shop, product.id + 100, True)

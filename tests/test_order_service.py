from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.enums import OrderStatus, PaymentStatus
from steersolo.core.errors import ValidationFailed
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Product, Profile, Shop
from steersolo.infrastructure.db.repositories import OrderRepository
from steersolo.services.coupon_service import CouponService
from steersolo.services.order_service import OrderLine, OrderService, allowed_next_statuses, can_transition
from steersolo.services.order_timeline_service import OrderTimelineService


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


async def _create_shop(session: AsyncSession) -> tuple[Shop, Product, Product]:
    owner = Profile(auth_user_id="owner-1", email="owner@example.com")
    session.add(owner)
    await session.flush()
    shop = Shop(owner_id=owner.id, shop_name="Kemi Kitchen", shop_slug="kemi-kitchen", whatsapp_number="08031234567")
    session.add(shop)
    await session.flush()
    jollof = Product(shop_id=shop.id, name="Jollof Rice", price=Decimal("2500"), stock_quantity=3)
    chops = Product(shop_id=shop.id, name="Small Chops", price=Decimal("1500"))
    session.add_all([jollof, chops])
    await session.flush()
    return shop, jollof, chops


@pytest.mark.asyncio()
async def test_create_order_totals_and_stock(session: AsyncSession) -> None:
    shop, jollof, chops = await _create_shop(session)
    service = OrderService(session)

    order = await service.create_order(
        shop,
        customer_name=" Bola ",
        customer_email="bola@example.com",
        lines=[OrderLine(product_id=jollof.id, quantity=2), OrderLine(product_id=chops.id, quantity=1)],
    )

    assert order.status is OrderStatus.PENDING
    assert order.payment_status is PaymentStatus.PENDING
    assert order.customer_name == "Bola"
    assert order.subtotal_amount == Decimal("6500")
    assert order.total_amount == Decimal("6500")
    assert len(order.public_id) == 36
    assert [item.product_name for item in order.items] == ["Jollof Rice", "Small Chops"]
    assert jollof.stock_quantity == 1
    assert chops.stock_quantity is None

    events = await OrderTimelineService(session).list_events(order)
    assert [(event.status, event.actor) for event in events] == [("pending", "customer")]
    assert order.extra_attrs["timeline_status"]["status"] == "pending"


@pytest.mark.asyncio()
async def test_pay_on_delivery_awaits_approval(session: AsyncSession) -> None:
    shop, jollof, _ = await _create_shop(session)

    order = await OrderService(session).create_order(
        shop,
        customer_name="Bola",
        lines=[OrderLine(product_id=jollof.id, quantity=1)],
        pay_on_delivery=True,
    )

    assert order.status is OrderStatus.AWAITING_APPROVAL
    assert order.payment_status is PaymentStatus.ON_DELIVERY


@pytest.mark.asyncio()
async def test_create_order_applies_coupon(session: AsyncSession) -> None:
    shop, jollof, _ = await _create_shop(session)
    coupon = await CouponService(session).create_coupon(shop, code="KEMI10", discount_value=10)

    order = await OrderService(session).create_order(
        shop,
        customer_name="Bola",
        lines=[OrderLine(product_id=jollof.id, quantity=2)],
        coupon_code="kemi10",
    )

    assert order.discount_amount == Decimal("500")
    assert order.total_amount == Decimal("4500")
    assert order.coupon_code == "KEMI10"
    assert coupon.used_count == 1


@pytest.mark.asyncio()
async def test_create_order_rejections(session: AsyncSession) -> None:
    shop, jollof, chops = await _create_shop(session)
    chops.is_available = False
    service = OrderService(session)

    with pytest.raises(ValidationFailed, match="Customer name is required"):
        await service.create_order(shop, customer_name=" ", lines=[OrderLine(jollof.id, 1)])
    with pytest.raises(ValidationFailed, match="at least one item"):
        await service.create_order(shop, customer_name="Bola", lines=[])
    with pytest.raises(ValidationFailed, match="Only 3 of Jollof Rice left"):
        await service.create_order(shop, customer_name="Bola", lines=[OrderLine(jollof.id, 4)])
    with pytest.raises(ValidationFailed, match="is not available"):
        await service.create_order(shop, customer_name="Bola", lines=[OrderLine(chops.id, 1)])
    with pytest.raises(ValidationFailed, match="Invalid coupon code"):
        await service.create_order(shop, customer_name="Bola", lines=[OrderLine(jollof.id, 1)], coupon_code="NOPE")

    assert jollof.stock_quantity == 3


def test_transition_table() -> None:
    assert can_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED)
    assert can_transition("processing", "out_for_delivery")
    assert not can_transition(OrderStatus.PENDING, OrderStatus.DELIVERED)
    assert not can_transition(OrderStatus.COMPLETED, OrderStatus.CANCELLED)
    assert not can_transition("pending", "teleported")
    assert allowed_next_statuses(OrderStatus.DELIVERED) == (OrderStatus.COMPLETED,)
    assert allowed_next_statuses("unknown") == ()


@pytest.mark.asyncio()
async def test_transition_records_timestamps_and_timeline(session: AsyncSession) -> None:
    shop, jollof, _ = await _create_shop(session)
    service = OrderService(session)
    order = await service.create_order(shop, customer_name="Bola", lines=[OrderLine(jollof.id, 1)])

    await service.transition(order, OrderStatus.CONFIRMED, actor="shop_owner")
    await service.transition(order, OrderStatus.PROCESSING, actor="shop_owner", note="Cooking now")

    assert order.status is OrderStatus.PROCESSING
    assert order.confirmed_at is not None
    assert order.processing_at is not None
    events = await OrderTimelineService(session).list_events(order)
    assert {event.status for event in events} == {"pending", "confirmed", "processing"}

    with pytest.raises(ValidationFailed) as exc_info:
        await service.transition(order, OrderStatus.COMPLETED)
    assert exc_info.value.payload["allowed"] == ["out_for_delivery", "cancelled"]

    forced = await service.transition(order, OrderStatus.DELIVERED, actor="logistics", enforce=False)
    assert forced.status is OrderStatus.DELIVERED
    assert forced.delivered_at is not None


@pytest.mark.asyncio()
async def test_confirm_payment_is_idempotent(session: AsyncSession) -> None:
    shop, jollof, _ = await _create_shop(session)
    service = OrderService(session)
    order = await service.create_order(shop, customer_name="Bola", lines=[OrderLine(jollof.id, 1)])

    await service.confirm_payment(order, "ORDER_1_123")
    await service.confirm_payment(order, "ORDER_1_123")

    reloaded = await OrderRepository(session).get_by_id(order.id)
    assert reloaded is not None
    assert reloaded.payment_status is PaymentStatus.PAID
    assert reloaded.status is OrderStatus.CONFIRMED
    assert reloaded.payment_reference == "ORDER_1_123"
    events = await OrderTimelineService(session).list_events(order)
    assert [event.status for event in events].count("confirmed") == 1

from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.enums import OrderStatus
from steersolo.core.errors import ServiceUnavailable, UpstreamError, ValidationFailed
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Order, Product, Profile, Shop
from steersolo.services.order_notification_service import NOTIFICATION_META_KEY, OrderNotificationService
from steersolo.services.order_service import OrderLine, OrderService
from steersolo.services.resend_client import ResendError


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


class StubResend:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict] = []

    async def send_email(self, *, to: list[str], subject: str, html: str) -> str | None:
        if self.fail:
            raise ResendError("Domain not verified", status_code=403)
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"email-{len(self.sent)}"


async def _create_order(session: AsyncSession, *, customer_email: str | None = "bola@example.com") -> tuple[Shop, Order]:
    owner = Profile(auth_user_id="owner-1", email="kemi@example.com")
    session.add(owner)
    await session.flush()
    shop = Shop(owner_id=owner.id, shop_name="Kemi <Kitchen>", shop_slug="kemi-kitchen")
    session.add(shop)
    await session.flush()
    product = Product(shop_id=shop.id, name="Jollof Rice", price=Decimal("2500"))
    session.add(product)
    await session.flush()
    order = await OrderService(session).create_order(
        shop,
        customer_name="Bola",
        customer_email=customer_email,
        lines=[OrderLine(product.id, 2)],
    )
    return shop, order


def _service(session: AsyncSession, stub: StubResend) -> OrderNotificationService:
    service = OrderNotificationService(session)
    service._get_client = lambda: stub  # type: ignore[assignment]
    return service


@pytest.mark.asyncio()
async def test_order_placed_emails_customer_and_owner(session: AsyncSession) -> None:
    shop, order = await _create_order(session)
    stub = StubResend()
    service = _service(session, stub)

    result = await service.notify(order, shop, "order_placed")

    assert result.sent_to == ["bola@example.com", "kemi@example.com"]
    assert result.already_sent is False
    customer_email, owner_email = stub.sent
    assert customer_email["subject"] == f"Order Confirmed #{order.short_id} - Kemi <Kitchen>"
    assert "Kemi &lt;Kitchen&gt;" in customer_email["html"]
    assert "₦5,000" in customer_email["html"]
    assert owner_email["subject"].startswith(f"🛒 New Order #{order.short_id}")
    assert order.extra_attrs[NOTIFICATION_META_KEY]["order_placed"]["recipients"] == 2


@pytest.mark.asyncio()
async def test_repeat_notification_is_skipped(session: AsyncSession) -> None:
    shop, order = await _create_order(session)
    stub = StubResend()
    service = _service(session, stub)

    await service.notify(order, shop, "order_placed")
    again = await service.notify(order, shop, "order_placed")

    assert again.already_sent is True
    assert again.sent_to == []
    assert len(stub.sent) == 2


@pytest.mark.asyncio()
async def test_status_update_emails_customer_per_status(session: AsyncSession) -> None:
    shop, order = await _create_order(session)
    stub = StubResend()
    service = _service(session, stub)

    order.status = OrderStatus.OUT_FOR_DELIVERY
    await service.notify(order, shop, "status_update", status_update="out_for_delivery")
    await service.notify(order, shop, "status_update", status_update="out_for_delivery")
    order.status = OrderStatus.DELIVERED
    await service.notify(order, shop, "status_update")

    assert [email["subject"] for email in stub.sent] == [
        f"Order #{order.short_id} - Out for delivery",
        f"Order #{order.short_id} - Delivered",
    ]
    assert "on its way to you" in stub.sent[0]["html"]
    assert set(order.extra_attrs[NOTIFICATION_META_KEY]) == {
        "status_update:out_for_delivery",
        "status_update:delivered",
    }


@pytest.mark.asyncio()
async def test_status_update_without_customer_email_sends_nothing(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    shop, order = await _create_order(session, customer_email=None)
    order.status = OrderStatus.CONFIRMED
    service = OrderNotificationService(session)
    monkeypatch.setattr(service._settings, "resend_api_key", None)

    result = await service.notify(order, shop, "status_update", status_update="confirmed")

    assert result.sent_to == []
    assert result.already_sent is False


@pytest.mark.asyncio()
async def test_unknown_event_is_rejected(session: AsyncSession) -> None:
    shop, order = await _create_order(session)

    with pytest.raises(ValidationFailed, match="Unknown event type"):
        await _service(session, StubResend()).notify(order, shop, "order_shipped")


@pytest.mark.asyncio()
async def test_missing_key_and_provider_failure(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    shop, order = await _create_order(session)
    service = OrderNotificationService(session)
    monkeypatch.setattr(service._settings, "resend_api_key", None)

    with pytest.raises(ServiceUnavailable):
        await service.notify(order, shop, "order_placed")

    with pytest.raises(UpstreamError, match="Failed to send email"):
        await _service(session, StubResend(fail=True)).notify(order, shop, "order_placed")
    assert NOTIFICATION_META_KEY not in (order.extra_attrs or {})


@pytest.mark.asyncio()
async def test_status_update_must_match_current_status(session: AsyncSession) -> None:
    shop, order = await _create_order(session)
    stub = StubResend()
    service = _service(session, stub)

    with pytest.raises(ValidationFailed, match="does not match"):
        await service.notify(order, shop, "status_update", status_update="delivered")
    with pytest.raises(ValidationFailed, match="Unknown order status"):
        await service.notify(order, shop, "status_update", status_update="spam-1")

    assert stub.sent == []
    assert NOTIFICATION_META_KEY not in (order.extra_attrs or {})

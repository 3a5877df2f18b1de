from __future__ import annotations

from collections.abc import AsyncIterator
from decimal import Decimal

import jwt
import orjson
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.api.app import create_app
from steersolo.api.deps import get_db_session
from steersolo.core.config import get_settings
from steersolo.core.enums import DeliveryProvider
from steersolo.core.security import hmac_sha512_hex
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Product, Profile, Shop
from steersolo.services.delivery_service import DeliveryService
from steersolo.services.order_notification_service import OrderNotificationService
from steersolo.services.order_service import OrderLine, OrderService

SECRET = "steersolo-api-test-secret-0123456789"


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


@pytest.fixture()
def app(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    monkeypatch.setattr(get_settings(), "auth_jwt_secret", SECRET)
    monkeypatch.setattr(get_settings(), "auth_jwt_audience", [])
    application = create_app(with_lifespan=False)

    async def _session() -> AsyncIterator[AsyncSession]:
        yield session

    application.dependency_overrides[get_db_session] = _session
    return application


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


def _auth(auth_user_id: str) -> dict[str, str]:
    token = jwt.encode({"sub": auth_user_id, "email": f"{auth_user_id}@example.com"}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


async def _create_shop(session: AsyncSession) -> tuple[Shop, Product]:
    owner = Profile(auth_user_id="owner-1", email="kemi@example.com")
    session.add(owner)
    await session.flush()
    shop = Shop(owner_id=owner.id, shop_name="Kemi Kitchen", shop_slug="kemi-kitchen", whatsapp_number="08031234567")
    session.add(shop)
    await session.flush()
    product = Product(shop_id=shop.id, name="Jollof Rice", price=Decimal("2500"))
    session.add(product)
    await session.flush()
    return shop, product


@pytest.mark.asyncio()
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio()
async def test_protected_route_requires_token(client: AsyncClient, session: AsyncSession) -> None:
    shop, _ = await _create_shop(session)

    missing = await client.get(f"/shops/{shop.id}/orders")
    forged = await client.get(
        f"/shops/{shop.id}/orders",
        headers={"Authorization": "Bearer " + jwt.encode({"sub": "owner-1"}, "wrong-secret-0123456789abcdef0123")},
    )

    assert missing.status_code == 401
    assert missing.json() == {"error": "Unauthorized"}
    assert forged.status_code == 401


@pytest.mark.asyncio()
async def test_invalid_body_returns_400(client: AsyncClient) -> None:
    response = await client.post("/orders", json={"shop_id": 1, "customer_name": "Bola"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"][0]["loc"] == ["body", "items"]


@pytest.mark.asyncio()
async def test_place_order_returns_whatsapp_link(client: AsyncClient, session: AsyncSession) -> None:
    shop, product = await _create_shop(session)

    response = await client.post(
        "/orders",
        json={
            "shop_id": shop.id,
            "customer_name": "Bola",
            "customer_email": "bola@example.com",
            "items": [{"product_id": product.id, "quantity": 2}],
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["order"]["total_amount"] == 5000
    assert body["order"]["status"] == "pending"
    assert body["order"]["allowed_next_statuses"] == ["confirmed", "cancelled"]
    assert body["whatsapp_link"].startswith("https://api.whatsapp.com/send?phone=%2B2348031234567&text=")


@pytest.mark.asyncio()
async def test_owner_lists_orders_and_stranger_is_forbidden(client: AsyncClient, session: AsyncSession) -> None:
    shop, product = await _create_shop(session)
    created = await client.post(
        "/orders",
        json={"shop_id": shop.id, "customer_name": "Bola", "items": [{"product_id": product.id, "quantity": 1}]},
    )
    order_id = created.json()["order"]["id"]

    listing = await client.get(f"/shops/{shop.id}/orders", headers=_auth("owner-1"))
    assert listing.status_code == 200
    assert [order["id"] for order in listing.json()] == [order_id]

    denied = await client.patch(
        f"/orders/{order_id}/status",
        json={"status": "confirmed"},
        headers=_auth("stranger"),
    )
    assert denied.status_code == 403
    assert denied.json() == {"error": "Only the shop owner can update this order"}

    confirmed = await client.patch(
        f"/orders/{order_id}/status",
        json={"status": "confirmed", "note": "On it"},
        headers=_auth("owner-1"),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["order"]["status"] == "confirmed"


@pytest.mark.asyncio()
async def test_validate_unknown_coupon(client: AsyncClient, session: AsyncSession) -> None:
    shop, _ = await _create_shop(session)

    response = await client.post("/coupons/validate", json={"shop_id": shop.id, "code": "nope", "order_total": 5000})

    assert response.status_code == 200
    assert response.json() == {"valid": False, "discount": 0, "error": "Invalid coupon code"}


@pytest.mark.asyncio()
async def test_storefront_lookups(client: AsyncClient, session: AsyncSession) -> None:
    shop, product = await _create_shop(session)
    created = await client.post(
        "/orders",
        json={"shop_id": shop.id, "customer_name": "Bola", "items": [{"product_id": product.id, "quantity": 1}]},
    )
    public_id = created.json()["order"]["public_id"]

    by_slug = await client.get("/shops/by-slug/Kemi-Kitchen")
    assert by_slug.status_code == 200
    assert by_slug.json()["id"] == shop.id
    assert by_slug.json()["whatsapp_link"].startswith("https://api.whatsapp.com/send?phone=%2B2348031234567")
    assert (await client.get("/shops/by-slug/unknown")).status_code == 404

    tracked = await client.get(f"/orders/public/{public_id}")
    assert tracked.status_code == 200
    assert tracked.json()["order"]["items"][0]["product_name"] == "Jollof Rice"
    assert (await client.get("/orders/public/missing")).json() == {"error": "Order not found"}


class StubResend:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send_email(self, *, to: list[str], subject: str, html: str) -> str | None:
        self.sent.extend(to)
        return "email-1"


@pytest.mark.asyncio()
async def test_paystack_webhook_confirms_order(
    client: AsyncClient,
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(get_settings(), "paystack_secret_key", "sk_test_api")
    shop, product = await _create_shop(session)
    order = await OrderService(session).create_order(shop, customer_name="Bola", lines=[OrderLine(product.id, 1)])
    body = orjson.dumps(
        {
            "event": "charge.success",
            "data": {"reference": "ORDER_REF_API", "amount": 250000, "metadata": {"order_id": order.id}},
        }
    )

    rejected = await client.post("/paystack/webhook", content=body, headers={"x-paystack-signature": "bad"})
    accepted = await client.post(
        "/paystack/webhook",
        content=body,
        headers={"x-paystack-signature": hmac_sha512_hex("sk_test_api", body)},
    )

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert accepted.json() == {"received": True}
    tracked = await client.get(f"/orders/public/{order.public_id}")
    assert tracked.json()["order"]["status"] == "confirmed"


@pytest.mark.asyncio()
async def test_logistics_webhook_updates_delivery(client: AsyncClient, session: AsyncSession) -> None:
    shop, product = await _create_shop(session)
    order = await OrderService(session).create_order(shop, customer_name="Bola", lines=[OrderLine(product.id, 1)])
    address = {"name": "Kemi", "phone": "+2348031234567", "line1": "1 Broad St", "city": "Lagos", "state": "Lagos"}
    delivery = await DeliveryService(session).book_delivery(
        shop,
        order,
        provider=DeliveryProvider.MANUAL,
        pickup_address=address,
        delivery_address=address,
    )

    unmatched = await client.post("/logistics/webhook", json={"event": "shipment.delivered", "data": {}})
    matched = await client.post(
        "/logistics/webhook",
        json={"event": "shipment.delivered", "data": {"metadata": {"order_id": order.id}}},
    )

    assert unmatched.status_code == 200
    assert unmatched.json() == {"success": False, "message": "Delivery order not found"}
    assert matched.status_code == 200
    assert matched.json() == {"success": True, "message": "Webhook processed"}
    assert delivery.status.value == "delivered"


@pytest.mark.asyncio()
async def test_notify_order_sends_once_and_checks_status(
    client: AsyncClient,
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    stub = StubResend()
    monkeypatch.setattr(OrderNotificationService, "_get_client", lambda self: stub)
    shop, product = await _create_shop(session)
    order = await OrderService(session).create_order(
        shop,
        customer_name="Bola",
        customer_email="bola@example.com",
        lines=[OrderLine(product.id, 1)],
    )

    first = await client.post(f"/orders/{order.id}/notify", json={"eventType": "order_placed"})
    repeat = await client.post(f"/orders/{order.id}/notify", json={"eventType": "order_placed"})
    mismatched = await client.post(
        f"/orders/{order.id}/notify",
        json={"eventType": "status_update", "statusUpdate": "delivered"},
    )

    assert first.status_code == 200
    assert first.json() == {"success": True, "already_sent": False, "sent_to": 2}
    assert repeat.json() == {"success": True, "already_sent": True, "sent_to": 0}
    assert mismatched.status_code == 400
    assert mismatched.json() == {"error": "Status update does not match the order status"}
    assert stub.sent == ["bola@example.com", "kemi@example.com"]

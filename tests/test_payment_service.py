from __future__ import annotations

from decimal import Decimal
from typing import Any

import orjson
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.enums import BillingCycle, OrderStatus, PaymentStatus
from steersolo.core.errors import ServiceUnavailable, Unauthorized, ValidationFailed
from steersolo.core.security import hmac_sha512_hex
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Order, Product, Profile, Shop, SubscriptionPlan
from steersolo.services.order_service import OrderLine, OrderService
from steersolo.services.payment_service import PAYSTACK_EXTRA_KEY, PaymentService
from steersolo.services.paystack_client import PaystackBank, PaystackError, PaystackTransaction, PaystackVerification
from steersolo.services.subscription_service import SubscriptionService

SECRET = "sk_test_steersolo"


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


class StubPaystack:
    def __init__(self, *, status: str = "success", metadata: dict[str, Any] | None = None) -> None:
        self.status = status
        self.metadata = metadata or {}
        self.initialized: list[dict[str, Any]] = []
        self.verified: list[str] = []
        self.subaccounts: list[dict[str, Any]] = []

    async def initialize_transaction(self, payload: dict[str, Any]) -> PaystackTransaction:
        self.initialized.append(payload)
        reference = payload.get("reference") or "sub_ref_1"
        return PaystackTransaction(
            reference=reference,
            authorization_url=f"https://checkout.paystack.com/{reference}",
            access_code="access-1",
            data={},
        )

    async def verify_transaction(self, reference: str) -> PaystackVerification:
        self.verified.append(reference)
        return PaystackVerification(
            reference=reference,
            status=self.status,
            amount_kobo=500000,
            customer_email="owner@example.com",
            metadata=self.metadata,
            data={},
        )

    async def resolve_account(self, account_number: str, bank_code: str) -> dict[str, Any]:
        if account_number == "0000000000":
            raise PaystackError("Could not resolve account name", status_code=422)
        return {"account_name": "KEMI ADEYEMI", "account_number": account_number}

    async def create_subaccount(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.subaccounts.append(payload)
        return {"subaccount_code": "ACCT_kemi123"}

    async def list_banks(self, country: str = "nigeria") -> list[PaystackBank]:
        return [PaystackBank(name="Zenith Bank", code="057"), PaystackBank(name="Access Bank", code="044")]


async def _create_owner(session: AsyncSession) -> tuple[Profile, SubscriptionPlan]:
    plan = SubscriptionPlan(name="Pro", slug="pro", price_monthly=Decimal("5000"), price_yearly=Decimal("50000"))
    owner = Profile(auth_user_id="owner-1", email="owner@example.com")
    session.add_all([plan, owner])
    await session.flush()
    return owner, plan


async def _create_order(session: AsyncSession, owner: Profile) -> tuple[Shop, Order]:
    shop = Shop(owner_id=owner.id, shop_name="Kemi Kitchen", shop_slug="kemi-kitchen")
    session.add(shop)
    await session.flush()
    product = Product(shop_id=shop.id, name="Jollof Rice", price=Decimal("2500"))
    session.add(product)
    await session.flush()
    order = await OrderService(session).create_order(
        shop,
        customer_name="Bola",
        customer_email="bola@example.com",
        lines=[OrderLine(product.id, 2)],
    )
    return shop, order


def _service(session: AsyncSession, monkeypatch: pytest.MonkeyPatch, stub: StubPaystack) -> PaymentService:
    service = PaymentService(session)
    monkeypatch.setattr(service._settings, "paystack_secret_key", SECRET)
    service._get_client = lambda: stub  # type: ignore[assignment]
    return service


@pytest.mark.asyncio()
async def test_initialize_subscription_uses_plan_price(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, _ = await _create_owner(session)
    stub = StubPaystack()
    service = _service(session, monkeypatch, stub)

    result = await service.initialize_subscription(owner, plan_slug="pro", billing_cycle=BillingCycle.YEARLY)

    assert result.reference == "sub_ref_1"
    payload = stub.initialized[0]
    assert payload["amount"] == 5000000
    assert payload["callback_url"] == "https://steersolo.com/dashboard"
    assert payload["metadata"]["billing_cycle"] == "yearly"
    assert payload["metadata"]["subscription_days"] == 365
    assert payload["metadata"]["user_id"] == owner.id


@pytest.mark.asyncio()
async def test_initialize_subscription_requires_client(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, _ = await _create_owner(session)
    service = PaymentService(session)
    monkeypatch.setattr(service._settings, "paystack_secret_key", None)

    with pytest.raises(ServiceUnavailable):
        await service.initialize_subscription(owner)


@pytest.mark.asyncio()
async def test_verify_subscription_extends_once(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, plan = await _create_owner(session)
    stub = StubPaystack(metadata={"plan_id": plan.id, "billing_cycle": "monthly", "subscription_days": 30})
    service = _service(session, monkeypatch, stub)

    first = await service.verify_subscription(owner, "sub_ref_1")
    assert first.already_processed is False
    assert first.plan_id == plan.id
    assert owner.is_subscribed is True
    assert owner.subscription_plan_id == plan.id

    second = await service.verify_subscription(owner, "sub_ref_1")
    assert second.already_processed is True
    assert stub.verified == ["sub_ref_1"]
    history = await SubscriptionService(session).list_history(owner)
    assert len(history) == 1
    assert history[0].amount == Decimal("5000")


@pytest.mark.asyncio()
async def test_verify_subscription_rejects_failed_charge(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, _ = await _create_owner(session)
    service = _service(session, monkeypatch, StubPaystack(status="failed"))

    with pytest.raises(ValidationFailed, match="Payment verification failed"):
        await service.verify_subscription(owner, "sub_ref_2")
    assert owner.is_subscribed is False


@pytest.mark.asyncio()
async def test_webhook_rejects_bad_signature(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(session, monkeypatch, StubPaystack())
    body = orjson.dumps({"event": "charge.success", "data": {"reference": "x"}})

    with pytest.raises(Unauthorized):
        await service.handle_webhook(body, "deadbeef")
    with pytest.raises(Unauthorized):
        await service.handle_webhook(body, None)


@pytest.mark.asyncio()
async def test_webhook_confirms_order_payment(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, _ = await _create_owner(session)
    _, order = await _create_order(session, owner)
    service = _service(session, monkeypatch, StubPaystack())
    body = orjson.dumps(
        {
            "event": "charge.success",
            "data": {"reference": "ORDER_REF_1", "amount": 500000, "metadata": {"order_id": order.id}},
        }
    )

    result = await service.handle_webhook(body, hmac_sha512_hex(SECRET, body))

    assert result == {"received": True}
    assert order.payment_status is PaymentStatus.PAID
    assert order.payment_reference == "ORDER_REF_1"
    assert order.status is OrderStatus.CONFIRMED


@pytest.mark.asyncio()
async def test_webhook_activates_subscription_once(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, _ = await _create_owner(session)
    service = _service(session, monkeypatch, StubPaystack())
    body = orjson.dumps(
        {
            "event": "charge.success",
            "data": {"reference": "SUB_REF_9", "amount": 500000, "metadata": {"user_id": owner.id}},
        }
    )
    signature = hmac_sha512_hex(SECRET, body)

    await service.handle_webhook(body, signature)
    expiry = owner.subscription_expires_at
    await service.handle_webhook(body, signature)

    assert owner.is_subscribed is True
    assert owner.subscription_expires_at == expiry
    assert len(await SubscriptionService(session).list_history(owner)) == 1


@pytest.mark.asyncio()
async def test_webhook_ignores_other_events(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(session, monkeypatch, StubPaystack())
    body = orjson.dumps({"event": "transfer.success", "data": {"reference": "T1"}})

    assert await service.handle_webhook(body, hmac_sha512_hex(SECRET, body)) == {"received": True}


@pytest.mark.asyncio()
async def test_initialize_order_payment_splits_with_subaccount(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    owner, _ = await _create_owner(session)
    shop, order = await _create_order(session, owner)
    shop.paystack_subaccount_code = "ACCT_kemi123"
    stub = StubPaystack()
    service = _service(session, monkeypatch, stub)

    result = await service.initialize_order_payment(
        order_id=order.id,
        shop_id=shop.id,
        amount="5000",
        customer_email="bola@example.com",
    )

    payload = stub.initialized[0]
    assert result.reference.startswith(f"ORDER_{order.id}_")
    assert payload["amount"] == 500000
    assert payload["subaccount"] == "ACCT_kemi123"
    assert payload["bearer"] == "subaccount"
    assert payload["metadata"]["payment_mode"] == "split"
    assert order.extra_attrs[PAYSTACK_EXTRA_KEY]["reference"] == result.reference

    with pytest.raises(ValidationFailed, match="Missing required fields"):
        await service.initialize_order_payment(order_id=order.id, shop_id=shop.id, amount=None, customer_email=None)


@pytest.mark.asyncio()
async def test_create_subaccount_stores_code(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    owner, _ = await _create_owner(session)
    shop, _ = await _create_order(session, owner)
    stub = StubPaystack()
    service = _service(session, monkeypatch, stub)

    result = await service.create_subaccount(
        owner,
        shop_id=shop.id,
        business_name="Kemi Kitchen",
        bank_code="057",
        account_number="0123456789",
    )

    assert result.subaccount_code == "ACCT_kemi123"
    assert result.account_name == "KEMI ADEYEMI"
    assert shop.paystack_subaccount_code == "ACCT_kemi123"
    assert stub.subaccounts[0]["percentage_charge"] == 3.0

    with pytest.raises(ValidationFailed, match="Could not verify account number"):
        await service.create_subaccount(
            owner,
            shop_id=shop.id,
            business_name="Kemi Kitchen",
            bank_code="057",
            account_number="0000000000",
        )


@pytest.mark.asyncio()
async def test_list_banks_sorted(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(session, monkeypatch, StubPaystack())

    banks = await service.list_banks()

    assert [bank.name for bank in banks] == ["Access Bank", "Zenith Bank"]

from __future__ import annotations

import itertools
from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.enums import BillingCycle, SubscriptionState
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Badge, Profile, SubscriptionPlan
from steersolo.services.subscription_service import SubscriptionService, calculate_status, plan_features

_ids = itertools.count(1)


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


async def _create_plan(session: AsyncSession, slug: str, **values) -> SubscriptionPlan:
    plan = SubscriptionPlan(
        name=slug.title(),
        slug=slug,
        price_monthly=Decimal("5000"),
        price_yearly=Decimal("50000"),
        **values,
    )
    session.add(plan)
    await session.flush()
    return plan


async def _create_profile(session: AsyncSession, **values) -> Profile:
    profile = Profile(auth_user_id=f"user-{next(_ids)}", email="owner@example.com", **values)
    session.add(profile)
    await session.flush()
    return profile


def test_calculate_status() -> None:
    now = utcnow()
    paid = Profile(is_subscribed=True, subscription_expires_at=now + timedelta(days=10, hours=1))
    trial = Profile(is_subscribed=False, subscription_expires_at=now + timedelta(days=3))
    lapsed = Profile(is_subscribed=True, subscription_expires_at=now - timedelta(days=1))

    assert calculate_status(paid, now=now).status is SubscriptionState.ACTIVE
    assert calculate_status(paid, now=now).days_remaining == 11
    assert calculate_status(trial, now=now).status is SubscriptionState.TRIAL
    assert calculate_status(trial, now=now).days_remaining == 3
    assert calculate_status(lapsed, now=now).status is SubscriptionState.EXPIRED
    assert calculate_status(lapsed, 4, now=now).status is SubscriptionState.FREE
    assert calculate_status(lapsed, 6, now=now).status is SubscriptionState.EXPIRED
    assert calculate_status(None).status is SubscriptionState.EXPIRED


def test_shop_features_follow_status() -> None:
    now = utcnow()
    lapsed = Profile(is_subscribed=False, subscription_expires_at=None)

    assert calculate_status(lapsed, 2, now=now).can_access_shop_features is True
    assert calculate_status(lapsed, now=now).can_access_shop_features is False


def test_plan_features_accepts_encoded_list() -> None:
    assert plan_features(SubscriptionPlan(features=["AI tools", "Priority support"])) == ["AI tools", "Priority support"]
    assert plan_features(SubscriptionPlan(features='["Unlimited products"]')) == ["Unlimited products"]
    assert plan_features(SubscriptionPlan(features="Free delivery")) == ["Free delivery"]
    assert plan_features(SubscriptionPlan(features=None)) == []


@pytest.mark.asyncio()
async def test_extend_subscription_from_now_when_lapsed(session: AsyncSession) -> None:
    plan = await _create_plan(session, "pro")
    profile = await _create_profile(session, subscription_expires_at=utcnow() - timedelta(days=5))
    service = SubscriptionService(session)

    before = utcnow()
    result = await service.extend_subscription(
        profile,
        days=30,
        event_type="payment",
        plan=plan,
        billing_cycle=BillingCycle.MONTHLY,
        reference="ref-1",
    )

    assert before + timedelta(days=30) <= result.new_expiry_at <= utcnow() + timedelta(days=30)
    assert profile.is_subscribed is True
    assert profile.subscription_plan_id == plan.id
    assert profile.subscription_type is BillingCycle.MONTHLY
    assert result.history.plan_name == "Pro"
    assert await service.has_reference("ref-1") is True
    assert await service.has_reference("ref-2") is False


@pytest.mark.asyncio()
async def test_extend_subscription_stacks_on_remaining_time(session: AsyncSession) -> None:
    expiry = utcnow() + timedelta(days=10)
    profile = await _create_profile(session, is_subscribed=True, subscription_expires_at=expiry)
    service = SubscriptionService(session)

    result = await service.extend_subscription(profile, days=30, event_type="ambassador_reward")

    assert result.new_expiry_at == expiry + timedelta(days=30)
    assert ensure_utc(result.previous_expiry_at) == expiry
    history = await service.list_history(profile)
    assert [entry.event_type for entry in history] == ["ambassador_reward"]


@pytest.mark.asyncio()
async def test_marketing_access(session: AsyncSession) -> None:
    business = await _create_plan(session, "business")
    pro = await _create_plan(session, "pro")
    now = utcnow()
    service = SubscriptionService(session)

    trial = await _create_profile(session, subscription_expires_at=now + timedelta(days=4, hours=1))
    access = await service.marketing_access(trial)
    assert access.can_access is True
    assert access.is_trial_active is True
    assert access.trial_days_remaining == 5

    business_owner = await _create_profile(
        session,
        is_subscribed=True,
        subscription_expires_at=now + timedelta(days=20),
        subscription_plan_id=business.id,
    )
    access = await service.marketing_access(business_owner)
    assert access.can_access is True
    assert access.is_business_user is True
    assert access.reason == "Full access - Business Plan"

    pro_owner = await _create_profile(
        session,
        is_subscribed=True,
        subscription_expires_at=now + timedelta(days=20),
        subscription_plan_id=pro.id,
    )
    access = await service.marketing_access(pro_owner)
    assert access.can_access is False
    assert access.reason == "Upgrade to Business plan to access marketing tools"

    lapsed = await _create_profile(session, subscription_expires_at=now - timedelta(days=1))
    access = await service.marketing_access(lapsed)
    assert access.can_access is False
    assert access.reason == "Subscribe to Business plan to access marketing tools"

    assert (await service.marketing_access(None)).reason == "Profile not found"


@pytest.mark.asyncio()
async def test_award_badges_once(session: AsyncSession) -> None:
    session.add_all(
        [
            Badge(name="First Sale", requirement_type="subscription_payments", requirement_value=1),
            Badge(name="Connector", requirement_type="referrals", requirement_value=5),
        ]
    )
    await session.flush()
    profile = await _create_profile(session)
    service = SubscriptionService(session)

    awarded = await service.award_badges(profile, {"subscription_payments": 1, "referrals": 2})
    assert [badge.name for badge in awarded] == ["First Sale"]

    again = await service.award_badges(profile, {"subscription_payments": 3, "referrals": 2})
    assert again == []
    assert len(await service.list_user_badges(profile)) == 1

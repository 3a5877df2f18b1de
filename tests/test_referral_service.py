from __future__ import annotations

import itertools
import re
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.enums import AmbassadorTierName, ReferralStatus
from steersolo.core.errors import Conflict, ValidationFailed
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Profile, Referral, Shop
from steersolo.infrastructure.db.repositories import ReferralRepository, ShopRepository
from steersolo.services import referral_service
from steersolo.services.ambassador_service import AmbassadorService
from steersolo.services.referral_service import ReferralService

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


async def _create_profile(session: AsyncSession, **values) -> Profile:
    profile = Profile(auth_user_id=f"user-{next(_ids)}", email="user@example.com", **values)
    session.add(profile)
    await session.flush()
    return profile


async def _add_rewarded_referrals(session: AsyncSession, referrer: Profile, count: int) -> None:
    for _ in range(count):
        referred = await _create_profile(session)
        session.add(
            Referral(
                referrer_id=referrer.id,
                referred_id=referred.id,
                referral_code="SS-TEST01",
                status=ReferralStatus.REWARDED,
                points_earned=100,
            )
        )
    await session.flush()


@pytest.mark.asyncio()
async def test_referral_code_is_stable(session: AsyncSession) -> None:
    profile = await _create_profile(session)
    service = ReferralService(session)

    code = await service.get_or_create_code(profile)
    again = await service.get_or_create_code(profile)

    assert re.fullmatch(r"SS-[A-Z0-9]{6}", code.code)
    assert again.id == code.id


@pytest.mark.asyncio()
async def test_referral_code_gives_up_after_collisions(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    first = await _create_profile(session)
    second = await _create_profile(session)
    service = ReferralService(session)
    monkeypatch.setattr(referral_service, "generate_referral_code", lambda: "SS-SAME01")
    await service.get_or_create_code(first)

    with pytest.raises(Conflict):
        await service.get_or_create_code(second)


@pytest.mark.asyncio()
async def test_apply_code_rules(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    referred = await _create_profile(session)
    service = ReferralService(session)
    code = await service.get_or_create_code(referrer)

    with pytest.raises(ValidationFailed, match="Invalid referral code"):
        await service.apply_code("SS-NOPE00", referred)
    with pytest.raises(ValidationFailed, match="Cannot use your own referral code"):
        await service.apply_code(code.code, referrer)

    referral = await service.apply_code(f" {code.code.lower()} ", referred)
    assert referral.referrer_id == referrer.id
    assert referral.status is ReferralStatus.PENDING

    with pytest.raises(ValidationFailed, match="You have already been referred"):
        await service.apply_code(code.code, referred)


@pytest.mark.asyncio()
async def test_qualify_referral_rewards_once(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    referred = await _create_profile(session)
    service = ReferralService(session)
    code = await service.get_or_create_code(referrer)
    await service.apply_code(code.code, referred)

    referral = await service.qualify_referral(referred)
    assert referral is not None
    assert referral.status is ReferralStatus.REWARDED
    assert referral.points_earned == 100
    assert referral.rewarded_at is not None

    assert await service.qualify_referral(referred) is None
    stats = await service.stats(referrer)
    assert (stats.total, stats.pending, stats.rewarded, stats.points_earned) == (1, 0, 1, 100)


@pytest.mark.asyncio()
async def test_bronze_tier_grants_subscription_once(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    await _add_rewarded_referrals(session, referrer, 10)
    service = AmbassadorService(session)

    result = await service.check_tiers(referrer)

    assert result.rewarded_count == 10
    assert result.tiers_reached == ["bronze"]
    assert result.rewards_granted == ["Free 30-day subscription"]
    assert referrer.is_subscribed is True
    assert ensure_utc(referrer.subscription_expires_at) > utcnow() + timedelta(days=29)

    again = await service.check_tiers(referrer)
    assert again.tiers_reached == []
    assert again.existing_tiers == ["bronze"]


@pytest.mark.asyncio()
async def test_silver_tier_features_shop(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    shop = Shop(owner_id=referrer.id, shop_name="Chioma Beauty", shop_slug="chioma-beauty")
    session.add(shop)
    await _add_rewarded_referrals(session, referrer, 50)

    result = await AmbassadorService(session).check_tiers(referrer)

    assert result.tiers_reached == ["bronze", "silver"]
    featured = await ShopRepository(session).get_featured(shop.id)
    assert featured is not None
    assert featured.is_active is True
    assert featured.label == "Ambassador"


@pytest.mark.asyncio()
async def test_silver_tier_without_shop_records_tier_only(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    await _add_rewarded_referrals(session, referrer, 50)

    result = await AmbassadorService(session).check_tiers(referrer)

    assert result.tiers_reached == ["bronze", "silver"]
    assert result.rewards_granted == ["Free 30-day subscription"]
    tiers = await ReferralRepository(session).list_tiers(referrer.id)
    assert [tier.tier for tier in tiers] == [AmbassadorTierName.BRONZE, AmbassadorTierName.SILVER]


@pytest.mark.asyncio()
async def test_gold_tier_unlocks_reseller(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    await _add_rewarded_referrals(session, referrer, 100)

    result = await AmbassadorService(session).check_tiers(referrer)

    assert result.tiers_reached == ["bronze", "silver", "gold"]
    assert referrer.is_reseller is True


@pytest.mark.asyncio()
async def test_tier_progress(session: AsyncSession) -> None:
    referrer = await _create_profile(session)
    await _add_rewarded_referrals(session, referrer, 12)

    progress = await AmbassadorService(session).progress(referrer)

    assert progress.current_tier == "bronze"
    assert progress.next_tier == "silver"
    assert progress.referrals_needed == 38

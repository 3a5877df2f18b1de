from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.enums import AmbassadorTierName
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import AmbassadorTier, Profile
from steersolo.infrastructure.db.repositories import ReferralRepository
from steersolo.services.referral_service import ReferralService
from steersolo.services.shop_service import ShopService
from steersolo.services.subscription_service import SubscriptionService

log = get_logger(__name__)

REWARD_DAYS = 30


@dataclass(frozen=True)
class TierRule:
    tier: AmbassadorTierName
    required_referrals: int
    reward: str


TIER_RULES: tuple[TierRule, ...] = (
    TierRule(AmbassadorTierName.BRONZE, 10, "Free 30-day subscription"),
    TierRule(AmbassadorTierName.SILVER, 50, "Shop featured for 30 days"),
    TierRule(AmbassadorTierName.GOLD, 100, "Reseller status unlocked"),
)


@dataclass
class TierCheckResult:
    rewarded_count: int
    tiers_reached: list[str] = field(default_factory=list)
    rewards_granted: list[str] = field(default_factory=list)
    existing_tiers: list[str] = field(default_factory=list)


@dataclass
class TierProgress:
    rewarded_count: int
    current_tier: str | None
    next_tier: str | None
    referrals_needed: int


class AmbassadorService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ReferralRepository(session)
        self._referrals = ReferralService(session)
        self._subscriptions = SubscriptionService(session)
        self._shops = ShopService(session)

    async def check_tiers(self, profile: Profile) -> TierCheckResult:
        rewarded = await self._referrals.rewarded_count(profile)
        existing = {entry.tier for entry in await self._repo.list_tiers(profile.id)}
        result = TierCheckResult(
            rewarded_count=rewarded,
            existing_tiers=[tier.value for tier in AmbassadorTierName if tier in existing],
        )

        for rule in TIER_RULES:
            if rewarded < rule.required_referrals or rule.tier in existing:
                continue
            result.tiers_reached.append(rule.tier.value)
            reward = await self._grant(profile, rule)
            if reward:
                result.rewards_granted.append(reward)
            await self._repo.add_tier(
                AmbassadorTier(
                    user_id=profile.id,
                    tier=rule.tier,
                    reward_claimed=True,
                    claimed_at=utcnow(),
                )
            )
            log.info("ambassador_tier_reached", profile_id=profile.id, tier=rule.tier.value)
        return result

    async def progress(self, profile: Profile) -> TierProgress:
        rewarded = await self._referrals.rewarded_count(profile)
        current: str | None = None
        for rule in TIER_RULES:
            if rewarded >= rule.required_referrals:
                current = rule.tier.value
                continue
            return TierProgress(rewarded, current, rule.tier.value, rule.required_referrals - rewarded)
        return TierProgress(rewarded, current, None, 0)

    async def _grant(self, profile: Profile, rule: TierRule) -> str | None:
        if rule.tier == AmbassadorTierName.BRONZE:
            await self._subscriptions.extend_subscription(
                profile,
                days=REWARD_DAYS,
                event_type="ambassador_reward",
                plan_name="Ambassador Bronze Reward",
                notes="Free 30-day subscription for reaching 10 referrals",
            )
            return rule.reward
        if rule.tier == AmbassadorTierName.SILVER:
            shop = await self._shops.shop_for_owner(profile)
            if shop is None:
                return None
            await self._shops.feature_shop(
                shop,
                expires_at=utcnow() + timedelta(days=REWARD_DAYS),
                label="Ambassador",
                tagline="Top referrer - Ambassador reward",
            )
            return rule.reward
        profile.is_reseller = True
        await self._session.flush()
        return rule.reward

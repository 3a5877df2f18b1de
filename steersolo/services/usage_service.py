from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import MeteredFeature, SubscriptionState
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import MarketingAIUsage, Profile, SubscriptionPlan
from steersolo.infrastructure.db.repositories import ProductRepository, UsageRepository
from steersolo.services.subscription_service import (
    BUSINESS_PLAN_SLUG,
    DEFAULT_PLAN_SLUG,
    SubscriptionService,
)

log = get_logger(__name__)

UNLIMITED = -1

# Monthly allowances used when a plan does not carry its own feature_limits.
DEFAULT_FEATURE_LIMITS: dict[str, int] = {
    MeteredFeature.PRODUCT_DESCRIPTION: 20,
    MeteredFeature.STROKE_MY_SHOP: 1,
    MeteredFeature.KNOW_THIS_SHOP: UNLIMITED,
    MeteredFeature.POSTER_GENERATION: 5,
}
PLAN_GATED_FEATURES = frozenset({MeteredFeature.PRODUCT_DESCRIPTION, MeteredFeature.POSTER_GENERATION})


@dataclass
class FeatureUsageResult:
    can_use: bool
    blocked_by_plan: bool
    current_usage: int
    max_usage: int
    is_business: bool
    plan_slug: str


@dataclass
class ProductLimitResult:
    can_create: bool
    current_count: int
    max_allowed: int
    plan_slug: str


def usage_period(now: datetime | None = None) -> str:
    now = now or utcnow()
    return now.strftime("%Y-%m")


class FeatureUsageService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = UsageRepository(session)
        self._products = ProductRepository(session)
        self._subscriptions = SubscriptionService(session)
        self._settings = get_settings()

    async def check_feature_usage(self, profile: Profile, feature: str) -> FeatureUsageResult:
        plan = await self._subscriptions.plan_for(profile)
        plan_slug = plan.slug if plan is not None else DEFAULT_PLAN_SLUG
        is_business = plan_slug == BUSINESS_PLAN_SLUG
        usage = await self._repo.get_usage(profile.id, feature, usage_period())
        current = usage.usage_count if usage is not None else 0

        if is_business:
            return FeatureUsageResult(True, False, current, UNLIMITED, True, plan_slug)

        ai_enabled = plan.ai_features_enabled if plan is not None else False
        if feature in PLAN_GATED_FEATURES and not ai_enabled:
            return FeatureUsageResult(False, True, current, 0, False, plan_slug)

        max_usage = self._limit_for(plan, feature)
        can_use = max_usage == UNLIMITED or current < max_usage
        return FeatureUsageResult(can_use, False, current, max_usage, False, plan_slug)

    async def increment_usage(self, profile: Profile, feature: str) -> int:
        usage = await self._repo.increment_usage(profile.id, feature, usage_period())
        log.info("feature_usage_incremented", profile_id=profile.id, feature=feature, count=usage.usage_count)
        return usage.usage_count

    async def check_product_limit(self, profile: Profile) -> ProductLimitResult:
        plan = await self._subscriptions.plan_for(profile)
        plan_slug = plan.slug if plan is not None else DEFAULT_PLAN_SLUG
        current = await self._products.count_for_owner(profile.id)
        status = self._subscriptions.status_for(profile)

        if status.status in (SubscriptionState.ACTIVE, SubscriptionState.TRIAL):
            max_allowed = plan.max_products if plan is not None and plan.max_products is not None else UNLIMITED
        else:
            max_allowed = self._settings.free_plan_max_products
            plan_slug = "free"

        can_create = max_allowed == UNLIMITED or current < max_allowed
        return ProductLimitResult(can_create, current, max_allowed, plan_slug)

    async def log_ai_usage(
        self,
        profile: Profile,
        feature_type: str,
        *,
        prompt: str | None,
        result: str | None,
        shop_id: int | None = None,
    ) -> MarketingAIUsage:
        entry = MarketingAIUsage(
            user_id=profile.id,
            shop_id=shop_id,
            feature_type=feature_type,
            prompt=prompt,
            result=result,
        )
        return await self._repo.log_ai_usage(entry)

    @staticmethod
    def _limit_for(plan: SubscriptionPlan | None, feature: str) -> int:
        limits = plan.feature_limits if plan is not None and isinstance(plan.feature_limits, dict) else {}
        if feature in limits:
            try:
                return int(limits[feature])
            except (TypeError, ValueError):
                return 0
        return DEFAULT_FEATURE_LIMITS.get(feature, 0)

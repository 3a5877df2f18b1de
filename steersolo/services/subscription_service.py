from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

import orjson
from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import BillingCycle, SubscriptionState
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Badge, Profile, SubscriptionHistory, SubscriptionPlan, UserBadge
from steersolo.infrastructure.db.repositories import SubscriptionRepository

log = get_logger(__name__)

DEFAULT_PLAN_SLUG = "basic"
BUSINESS_PLAN_SLUG = "business"
SHOP_FEATURE_STATES = frozenset({SubscriptionState.ACTIVE, SubscriptionState.TRIAL, SubscriptionState.FREE})


@dataclass
class SubscriptionStatus:
    status: SubscriptionState
    days_remaining: int

    @property
    def can_access_shop_features(self) -> bool:
        return self.status in SHOP_FEATURE_STATES


@dataclass
class MarketingAccess:
    can_access: bool
    is_trial_active: bool
    trial_days_remaining: int
    is_business_user: bool
    reason: str


@dataclass
class ExtensionResult:
    previous_expiry_at: datetime | None
    new_expiry_at: datetime
    history: SubscriptionHistory


def days_until(expires_at: datetime | None, now: datetime) -> int:
    if expires_at is None:
        return 0
    seconds = (ensure_utc(expires_at) - now).total_seconds()
    return math.ceil(seconds / 86400)


def calculate_status(
    profile: Profile | None,
    product_count: int | None = None,
    *,
    free_product_limit: int = 5,
    now: datetime | None = None,
) -> SubscriptionStatus:
    if profile is None:
        return SubscriptionStatus(SubscriptionState.EXPIRED, 0)
    now = now or utcnow()
    days = days_until(profile.subscription_expires_at, now)

    if profile.is_subscribed and days > 0:
        return SubscriptionStatus(SubscriptionState.ACTIVE, days)
    if not profile.is_subscribed and days > 0:
        return SubscriptionStatus(SubscriptionState.TRIAL, days)
    # Lapsed owners with a small catalogue fall back to the free tier.
    if product_count is not None and product_count <= free_product_limit:
        return SubscriptionStatus(SubscriptionState.FREE, 0)
    return SubscriptionStatus(SubscriptionState.EXPIRED, 0)


def plan_features(plan: SubscriptionPlan) -> list[str]:
    features: Any = plan.features
    if isinstance(features, str):
        try:
            features = orjson.loads(features)
        except orjson.JSONDecodeError:
            return [features] if features else []
    if not isinstance(features, list):
        return []
    return [str(item) for item in features]


class SubscriptionService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = SubscriptionRepository(session)
        self._settings = get_settings()

    async def list_plans(self) -> list[SubscriptionPlan]:
        return await self._repo.list_active_plans()

    async def get_plan(self, plan_id: int) -> SubscriptionPlan | None:
        return await self._repo.get_plan(plan_id)

    async def get_plan_by_slug(self, slug: str) -> SubscriptionPlan | None:
        return await self._repo.get_plan_by_slug(slug)

    async def plan_for(self, profile: Profile) -> SubscriptionPlan | None:
        if profile.subscription_plan_id is None:
            return None
        return await self._repo.get_plan(profile.subscription_plan_id)

    async def plan_slug_for(self, profile: Profile) -> str:
        plan = await self.plan_for(profile)
        return plan.slug if plan is not None else DEFAULT_PLAN_SLUG

    def status_for(self, profile: Profile, product_count: int | None = None) -> SubscriptionStatus:
        return calculate_status(
            profile,
            product_count,
            free_product_limit=self._settings.free_plan_max_products,
        )

    async def extend_subscription(
        self,
        profile: Profile,
        *,
        days: int,
        event_type: str,
        plan: SubscriptionPlan | None = None,
        plan_name: str | None = None,
        billing_cycle: BillingCycle | None = None,
        amount: Decimal | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> ExtensionResult:
        now = utcnow()
        previous = ensure_utc(profile.subscription_expires_at) if profile.subscription_expires_at else None
        start = previous if previous is not None and previous > now else now
        new_expiry = start + timedelta(days=days)

        profile.subscription_expires_at = new_expiry
        profile.is_subscribed = True
        if plan is not None:
            profile.subscription_plan_id = plan.id
        if billing_cycle is not None:
            profile.subscription_type = billing_cycle

        history = SubscriptionHistory(
            user_id=profile.id,
            event_type=event_type,
            plan_id=plan.id if plan is not None else None,
            plan_name=plan_name or (plan.name if plan is not None else None),
            amount=amount,
            reference=reference,
            previous_expiry_at=previous,
            new_expiry_at=new_expiry,
            notes=notes,
        )
        await self._repo.add_history(history)
        log.info(
            "subscription_extended",
            profile_id=profile.id,
            event_type=event_type,
            days=days,
            new_expiry_at=new_expiry.isoformat(),
        )
        return ExtensionResult(previous_expiry_at=previous, new_expiry_at=new_expiry, history=history)

    async def has_reference(self, reference: str) -> bool:
        return await self._repo.get_history_by_reference(reference) is not None

    async def list_history(self, profile: Profile) -> list[SubscriptionHistory]:
        return await self._repo.list_history(profile.id)

    async def marketing_access(self, profile: Profile | None) -> MarketingAccess:
        if profile is None:
            return MarketingAccess(False, False, 0, False, "Profile not found")

        now = utcnow()
        expires_at = ensure_utc(profile.subscription_expires_at) if profile.subscription_expires_at else None
        active = expires_at is not None and expires_at > now
        is_paid = profile.is_subscribed and active
        in_trial = not profile.is_subscribed and active
        trial_days = days_until(expires_at, now) if in_trial else 0
        is_business = await self.plan_slug_for(profile) == BUSINESS_PLAN_SLUG

        if is_business and (is_paid or in_trial):
            return MarketingAccess(True, in_trial, trial_days, True, "Full access - Business Plan")
        if in_trial and trial_days > 0:
            return MarketingAccess(True, True, trial_days, False, f"Trial access - {trial_days} days remaining")
        if is_paid:
            return MarketingAccess(False, False, 0, False, "Upgrade to Business plan to access marketing tools")
        return MarketingAccess(False, False, 0, False, "Subscribe to Business plan to access marketing tools")

    async def list_badges(self) -> list[Badge]:
        return await self._repo.list_badges()

    async def list_user_badges(self, profile: Profile) -> list[UserBadge]:
        return await self._repo.list_user_badges(profile.id)

    async def award_badges(self, profile: Profile, metrics: dict[str, int]) -> list[Badge]:
        """Grant every badge whose requirement is met by ``metrics`` and not yet held."""

        held = {entry.badge_id for entry in await self._repo.list_user_badges(profile.id)}
        awarded: list[Badge] = []
        for badge in await self._repo.list_badges():
            if badge.id in held:
                continue
            value = metrics.get(badge.requirement_type)
            if value is None or value < badge.requirement_value:
                continue
            await self._repo.add_user_badge(UserBadge(user_id=profile.id, badge_id=badge.id, earned_at=utcnow()))
            awarded.append(badge)
        if awarded:
            log.info("badges_awarded", profile_id=profile.id, badges=[badge.name for badge in awarded])
        return awarded

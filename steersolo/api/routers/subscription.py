from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.core.enums import MeteredFeature
from steersolo.core.errors import NotFound
from steersolo.infrastructure.db.repositories import ProductRepository
from steersolo.services.subscription_service import SubscriptionService, plan_features
from steersolo.services.usage_service import FeatureUsageService

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("/plans")
async def list_plans(session: SessionDependency) -> list[dict[str, Any]]:
    plans = await SubscriptionService(session).list_plans()
    return [
        {
            "id": plan.id,
            "name": plan.name,
            "slug": plan.slug,
            "description": plan.description,
            "price_monthly": float(plan.price_monthly),
            "price_yearly": float(plan.price_yearly) if plan.price_yearly is not None else None,
            "features": plan_features(plan),
            "max_products": plan.max_products,
            "ai_features_enabled": plan.ai_features_enabled,
            "priority_support": plan.priority_support,
        }
        for plan in plans
    ]


@router.get("/status")
async def subscription_status(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    service = SubscriptionService(session)
    product_count = await ProductRepository(session).count_for_owner(profile.id)
    status = service.status_for(profile, product_count)
    return {
        "status": status.status.value,
        "days_remaining": status.days_remaining,
        "can_access_shop_features": status.can_access_shop_features,
        "subscription_expires_at": profile.subscription_expires_at,
        "plan_slug": await service.plan_slug_for(profile),
        "product_count": product_count,
    }


@router.get("/marketing-access")
async def marketing_access(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    return asdict(await SubscriptionService(session).marketing_access(profile))


@router.get("/history")
async def subscription_history(profile: CurrentProfile, session: SessionDependency) -> list[dict[str, Any]]:
    history = await SubscriptionService(session).list_history(profile)
    return [
        {
            "event_type": entry.event_type,
            "plan_name": entry.plan_name,
            "amount": float(entry.amount) if entry.amount is not None else None,
            "reference": entry.reference,
            "previous_expiry_at": entry.previous_expiry_at,
            "new_expiry_at": entry.new_expiry_at,
            "created_at": entry.created_at,
        }
        for entry in history
    ]


@router.get("/badges")
async def user_badges(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    service = SubscriptionService(session)
    badges = await service.list_badges()
    earned = {entry.badge_id: entry.earned_at for entry in await service.list_user_badges(profile)}
    return {
        "badges": [
            {
                "id": badge.id,
                "name": badge.name,
                "description": badge.description,
                "icon": badge.icon,
                "earned": badge.id in earned,
                "earned_at": earned.get(badge.id),
            }
            for badge in badges
        ]
    }


@router.get("/usage/{feature}")
async def feature_usage(feature: str, profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    try:
        metered = MeteredFeature(feature)
    except ValueError as exc:
        raise NotFound("Unknown feature") from exc
    return asdict(await FeatureUsageService(session).check_feature_usage(profile, metered))


@router.get("/product-limit")
async def product_limit(profile: CurrentProfile, session: SessionDependency) -> dict[str, Any]:
    return asdict(await FeatureUsageService(session).check_product_limit(profile))

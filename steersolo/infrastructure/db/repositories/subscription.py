from __future__ import annotations

from sqlalchemy import select

from steersolo.infrastructure.db.models import Badge, SubscriptionHistory, SubscriptionPlan, UserBadge

from .base import BaseRepository


class SubscriptionRepository(BaseRepository):
    async def list_active_plans(self) -> list[SubscriptionPlan]:
        result = await self.session.execute(
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.display_order.asc(), SubscriptionPlan.id.asc())
        )
        return list(result.scalars().all())

    async def get_plan(self, plan_id: int) -> SubscriptionPlan | None:
        return await self.session.get(SubscriptionPlan, plan_id)

    async def get_plan_by_slug(self, slug: str) -> SubscriptionPlan | None:
        result = await self.session.execute(
            select(SubscriptionPlan).where(SubscriptionPlan.slug == slug)
        )
        return result.scalar_one_or_none()

    async def add_history(self, entry: SubscriptionHistory) -> SubscriptionHistory:
        await self.add(entry)
        return entry

    async def get_history_by_reference(self, reference: str) -> SubscriptionHistory | None:
        result = await self.session.execute(
            select(SubscriptionHistory).where(SubscriptionHistory.reference == reference)
        )
        return result.scalar_one_or_none()

    async def list_history(self, user_id: int) -> list[SubscriptionHistory]:
        result = await self.session.execute(
            select(SubscriptionHistory)
            .where(SubscriptionHistory.user_id == user_id)
            .order_by(SubscriptionHistory.created_at.desc(), SubscriptionHistory.id.desc())
        )
        return list(result.scalars().all())

    async def list_badges(self) -> list[Badge]:
        result = await self.session.execute(
            select(Badge).order_by(Badge.display_order.asc(), Badge.id.asc())
        )
        return list(result.scalars().all())

    async def list_user_badges(self, user_id: int) -> list[UserBadge]:
        result = await self.session.execute(
            select(UserBadge).where(UserBadge.user_id == user_id).order_by(UserBadge.earned_at.desc())
        )
        return list(result.scalars().all())

    async def add_user_badge(self, user_badge: UserBadge) -> UserBadge:
        await self.add(user_badge)
        return user_badge

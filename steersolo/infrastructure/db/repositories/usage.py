from __future__ import annotations

from sqlalchemy import delete, select

from steersolo.core.enums import RateLimitKind
from steersolo.infrastructure.db.models import AuthRateLimit, FeatureUsage, MarketingAIUsage

from .base import BaseRepository


class UsageRepository(BaseRepository):
    async def get_usage(self, user_id: int, feature_name: str, period: str) -> FeatureUsage | None:
        result = await self.session.execute(
            select(FeatureUsage).where(
                FeatureUsage.user_id == user_id,
                FeatureUsage.feature_name == feature_name,
                FeatureUsage.period == period,
            )
        )
        return result.scalar_one_or_none()

    async def increment_usage(self, user_id: int, feature_name: str, period: str) -> FeatureUsage:
        usage = await self.get_usage(user_id, feature_name, period)
        if usage is None:
            usage = FeatureUsage(user_id=user_id, feature_name=feature_name, period=period, usage_count=1)
            await self.add(usage)
            return usage
        usage.usage_count += 1
        await self.session.flush()
        return usage

    async def log_ai_usage(self, entry: MarketingAIUsage) -> MarketingAIUsage:
        await self.add(entry)
        return entry


class RateLimitRepository(BaseRepository):
    async def get(self, identifier: str, kind: RateLimitKind) -> AuthRateLimit | None:
        result = await self.session.execute(
            select(AuthRateLimit).where(
                AuthRateLimit.identifier == identifier,
                AuthRateLimit.attempt_type == kind,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, entry: AuthRateLimit) -> AuthRateLimit:
        await self.add(entry)
        return entry

    async def clear(self, identifier: str, kinds: list[RateLimitKind]) -> int:
        result = await self.session.execute(
            delete(AuthRateLimit).where(
                AuthRateLimit.identifier == identifier,
                AuthRateLimit.attempt_type.in_(kinds),
            )
        )
        return int(result.rowcount or 0)

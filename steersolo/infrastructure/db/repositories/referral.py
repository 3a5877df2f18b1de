from __future__ import annotations

from sqlalchemy import func, select

from steersolo.core.enums import ReferralStatus
from steersolo.infrastructure.db.models import AmbassadorTier, Referral, ReferralCode

from .base import BaseRepository


class ReferralRepository(BaseRepository):
    async def get_code_for_user(self, user_id: int) -> ReferralCode | None:
        result = await self.session.execute(
            select(ReferralCode).where(ReferralCode.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_code(self, code: str, *, active_only: bool = True) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.code == code)
        if active_only:
            stmt = stmt.where(ReferralCode.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(ReferralCode).where(ReferralCode.code == code)
        )
        return int(result.scalar_one()) > 0

    async def create_code(self, code: ReferralCode) -> ReferralCode:
        await self.add(code)
        return code

    async def get_by_referred(self, referred_id: int) -> Referral | None:
        result = await self.session.execute(
            select(Referral).where(Referral.referred_id == referred_id)
        )
        return result.scalar_one_or_none()

    async def create_referral(self, referral: Referral) -> Referral:
        await self.add(referral)
        return referral

    async def list_for_referrer(self, referrer_id: int) -> list[Referral]:
        result = await self.session.execute(
            select(Referral)
            .where(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(self, *, limit: int = 200) -> list[Referral]:
        result = await self.session.execute(
            select(Referral).order_by(Referral.created_at.desc(), Referral.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_referrer(self, referrer_id: int, *, status: ReferralStatus | None = None) -> int:
        stmt = select(func.count()).select_from(Referral).where(Referral.referrer_id == referrer_id)
        if status is not None:
            stmt = stmt.where(Referral.status == status)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_tiers(self, user_id: int) -> list[AmbassadorTier]:
        result = await self.session.execute(
            select(AmbassadorTier).where(AmbassadorTier.user_id == user_id).order_by(AmbassadorTier.id.asc())
        )
        return list(result.scalars().all())

    async def add_tier(self, tier: AmbassadorTier) -> AmbassadorTier:
        await self.add(tier)
        return tier

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import ReferralStatus
from steersolo.core.errors import Conflict, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Profile, Referral, ReferralCode
from steersolo.infrastructure.db.repositories import ReferralRepository

log = get_logger(__name__)

CODE_PREFIX = "SS-"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 5


@dataclass
class ReferralStats:
    total: int
    pending: int
    rewarded: int
    points_earned: int


def generate_referral_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class ReferralService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ReferralRepository(session)
        self._settings = get_settings()

    async def get_or_create_code(self, profile: Profile) -> ReferralCode:
        existing = await self._repo.get_code_for_user(profile.id)
        if existing is not None:
            return existing
        for _ in range(MAX_CODE_ATTEMPTS):
            candidate = generate_referral_code()
            if await self._repo.code_exists(candidate):
                continue
            code = await self._repo.create_code(ReferralCode(user_id=profile.id, code=candidate, is_active=True))
            log.info("referral_code_created", profile_id=profile.id, code=candidate)
            return code
        raise Conflict("Could not generate a unique referral code")

    async def validate_code(self, code: str | None) -> ReferralCode | None:
        normalised = (code or "").strip().upper()
        if not normalised:
            return None
        return await self._repo.get_code(normalised, active_only=True)

    async def apply_code(self, code: str | None, referred: Profile) -> Referral:
        referral_code = await self.validate_code(code)
        if referral_code is None:
            raise ValidationFailed("Invalid referral code")
        if referral_code.user_id == referred.id:
            raise ValidationFailed("Cannot use your own referral code")
        if await self._repo.get_by_referred(referred.id) is not None:
            raise ValidationFailed("You have already been referred")

        referral = await self._repo.create_referral(
            Referral(
                referrer_id=referral_code.user_id,
                referred_id=referred.id,
                referral_code=referral_code.code,
                status=ReferralStatus.PENDING,
                points_earned=0,
            )
        )
        log.info("referral_applied", referrer_id=referral.referrer_id, referred_id=referred.id)
        return referral

    async def qualify_referral(self, referred: Profile) -> Referral | None:
        referral = await self._repo.get_by_referred(referred.id)
        if referral is None or referral.status != ReferralStatus.PENDING:
            return None
        now = utcnow()
        referral.status = ReferralStatus.REWARDED
        referral.points_earned = self._settings.referral_reward_points
        referral.qualified_at = now
        referral.rewarded_at = now
        await self._session.flush()
        log.info(
            "referral_rewarded",
            referrer_id=referral.referrer_id,
            referred_id=referred.id,
            points=referral.points_earned,
        )
        return referral

    async def list_referrals(self, profile: Profile) -> list[Referral]:
        return await self._repo.list_for_referrer(profile.id)

    async def stats(self, profile: Profile) -> ReferralStats:
        referrals = await self._repo.list_for_referrer(profile.id)
        return ReferralStats(
            total=len(referrals),
            pending=sum(1 for item in referrals if item.status == ReferralStatus.PENDING),
            rewarded=sum(1 for item in referrals if item.status == ReferralStatus.REWARDED),
            points_earned=sum(item.points_earned or 0 for item in referrals),
        )

    async def list_all(self, *, limit: int = 200) -> list[Referral]:
        return await self._repo.list_all(limit=limit)

    async def rewarded_count(self, profile: Profile) -> int:
        return await self._repo.count_for_referrer(profile.id, status=ReferralStatus.REWARDED)

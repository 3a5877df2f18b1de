from __future__ import annotations

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import UserRole
from steersolo.core.errors import NotFound
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Profile
from steersolo.infrastructure.db.repositories import ProfileRepository

log = get_logger(__name__)


class ProfileService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ProfileRepository(session)
        self._settings = get_settings()

    async def get(self, profile_id: int) -> Profile | None:
        return await self._repo.get_by_id(profile_id)

    async def get_by_auth_user_id(self, auth_user_id: str) -> Profile | None:
        return await self._repo.get_by_auth_user_id(auth_user_id)

    async def require(self, profile_id: int) -> Profile:
        profile = await self._repo.get_by_id(profile_id)
        if profile is None:
            raise NotFound("Profile not found")
        return profile

    async def get_or_create(
        self,
        auth_user_id: str,
        *,
        email: str | None = None,
        full_name: str | None = None,
        role: UserRole = UserRole.SHOP_OWNER,
    ) -> Profile:
        profile = await self._repo.get_by_auth_user_id(auth_user_id)
        if profile is not None:
            if email and not profile.email:
                profile.email = email
            if full_name and not profile.full_name:
                profile.full_name = full_name
            return profile

        profile = Profile(
            auth_user_id=auth_user_id,
            email=email,
            full_name=full_name,
            role=role,
            is_subscribed=False,
        )
        if role == UserRole.SHOP_OWNER:
            profile.subscription_expires_at = utcnow() + timedelta(days=self._settings.trial_days)
        await self._repo.create(profile)
        log.info("profile_created", profile_id=profile.id, role=role.value)
        return profile

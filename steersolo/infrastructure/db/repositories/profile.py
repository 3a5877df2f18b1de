from __future__ import annotations

from sqlalchemy import select

from steersolo.infrastructure.db.models import Profile

from .base import BaseRepository


class ProfileRepository(BaseRepository):
    async def get_by_id(self, profile_id: int) -> Profile | None:
        return await self.session.get(Profile, profile_id)

    async def get_by_auth_user_id(self, auth_user_id: str) -> Profile | None:
        result = await self.session.execute(
            select(Profile).where(Profile.auth_user_id == auth_user_id)
        )
        return result.scalar_one_or_none()

    async def create(self, profile: Profile) -> Profile:
        await self.add(profile)
        return profile

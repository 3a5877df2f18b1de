from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.config import get_settings
from steersolo.core.errors import ServiceError
from steersolo.core.security import resolve_claims
from steersolo.infrastructure.db.models import Profile
from steersolo.infrastructure.db.session import session_factory
from steersolo.services.profile_service import ProfileService


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; business rule failures keep their recorded side effects."""

    async with session_factory() as session:
        try:
            yield session
        except ServiceError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()


SessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


def bearer_token(authorization: Annotated[str | None, Header()] = None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_profile(
    session: SessionDependency,
    token: Annotated[str | None, Depends(bearer_token)],
) -> Profile:
    settings = get_settings()
    claims = resolve_claims(
        token,
        secret=settings.auth_jwt_secret,
        algorithms=settings.auth_jwt_algorithms,
        audience=settings.auth_jwt_audience,
    )
    metadata = claims.get("user_metadata") if isinstance(claims.get("user_metadata"), dict) else {}
    return await ProfileService(session).get_or_create(
        str(claims["sub"]),
        email=claims.get("email"),
        full_name=metadata.get("full_name"),
    )


async def get_optional_profile(
    session: SessionDependency,
    token: Annotated[str | None, Depends(bearer_token)],
) -> Profile | None:
    if token is None:
        return None
    return await get_current_profile(session, token)


CurrentProfile = Annotated[Profile, Depends(get_current_profile)]
OptionalProfile = Annotated[Profile | None, Depends(get_optional_profile)]

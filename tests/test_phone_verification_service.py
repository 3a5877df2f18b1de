from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from steersolo.core.clock import utcnow
from steersolo.core.enums import RateLimitKind
from steersolo.core.errors import NotFound, RateLimited, ServiceUnavailable, ValidationFailed
from steersolo.infrastructure.db.base import Base
from steersolo.infrastructure.db.models import Profile
from steersolo.infrastructure.db.repositories import RateLimitRepository
from steersolo.services.phone_verification_service import PhoneVerificationService, normalise_phone
from steersolo.services.termii_client import TermiiError, TermiiMessage

LIVE_KEY = "TL-live-key-0123456789"


@pytest_asyncio.fixture()
async def session() -> AsyncSession:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


async def _create_profile(session: AsyncSession) -> Profile:
    profile = Profile(auth_user_id="owner-1", email="owner@example.com")
    session.add(profile)
    await session.flush()
    return profile


class StubTermii:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_sms(self, to: str, message: str) -> TermiiMessage:
        if self.fail:
            raise TermiiError("Insufficient balance", status_code=400)
        self.sent.append((to, message))
        return TermiiMessage(message_id="msg-1", balance=100.0, data={})


def test_normalise_phone() -> None:
    assert normalise_phone("0803 123 4567") == "+2348031234567"
    assert normalise_phone("+2348031234567") == "+2348031234567"
    for bad in ("", None, "12345", "+44 7700 900123", "080312345678"):
        with pytest.raises(ValidationFailed):
            normalise_phone(bad)


@pytest.mark.asyncio()
async def test_dev_mode_returns_code(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", None)

    result = await service.send_otp(profile, "08031234567")

    assert service.dev_mode is True
    assert result.dev_otp is not None and len(result.dev_otp) == 6
    assert result.expires_in == 300
    assert profile.phone == "+2348031234567"
    assert profile.phone_verification_code != result.dev_otp

    verified = await service.verify_otp(profile, result.dev_otp)
    assert verified.phone_verified is True
    assert verified.phone_verification_code is None
    assert await RateLimitRepository(session).get("+2348031234567", RateLimitKind.PHONE_OTP) is None


@pytest.mark.asyncio()
async def test_live_mode_sends_sms(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", LIVE_KEY)
    stub = StubTermii()
    service._get_client = lambda: stub  # type: ignore[assignment]

    result = await service.send_otp(profile, "08031234567")

    assert result.dev_otp is None
    assert stub.sent[0][0] == "+2348031234567"
    assert "expires in 5 minutes" in stub.sent[0][1]


@pytest.mark.asyncio()
async def test_sms_failure_is_unavailable(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", LIVE_KEY)
    service._get_client = lambda: StubTermii(fail=True)  # type: ignore[assignment]

    with pytest.raises(ServiceUnavailable):
        await service.send_otp(profile, "08031234567")


@pytest.mark.asyncio()
async def test_send_requires_profile(session: AsyncSession) -> None:
    with pytest.raises(NotFound):
        await PhoneVerificationService(session).send_otp(None, "08031234567")


@pytest.mark.asyncio()
async def test_send_rate_limit_locks_phone(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", None)

    for _ in range(5):
        await service.send_otp(profile, "08031234567")
    with pytest.raises(RateLimited, match="Too many OTP requests"):
        await service.send_otp(profile, "08031234567")

    entry = await RateLimitRepository(session).get("+2348031234567", RateLimitKind.PHONE_OTP)
    assert entry is not None and entry.locked_until is not None
    with pytest.raises(RateLimited) as exc_info:
        await service.send_otp(profile, "08031234567")
    assert "locked_until" in exc_info.value.payload


@pytest.mark.asyncio()
async def test_wrong_codes_lock_after_three_attempts(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", None)
    result = await service.send_otp(profile, "08031234567")
    wrong = "000000" if result.dev_otp != "000000" else "111111"

    for _ in range(2):
        with pytest.raises(ValidationFailed, match="Invalid verification code"):
            await service.verify_otp(profile, wrong)
    with pytest.raises(RateLimited, match="Too many failed attempts"):
        await service.verify_otp(profile, wrong)

    assert profile.phone_verified is False
    assert profile.phone_verification_code is None


@pytest.mark.asyncio()
async def test_verify_rejects_bad_format_and_expired_code(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", None)

    with pytest.raises(ValidationFailed, match="6-digit"):
        await service.verify_otp(profile, "12ab")
    with pytest.raises(ValidationFailed, match="No verification code found"):
        await service.verify_otp(profile, "123456")

    result = await service.send_otp(profile, "08031234567")
    profile.phone_verification_expires = utcnow() - timedelta(seconds=1)
    with pytest.raises(ValidationFailed, match="expired"):
        await service.verify_otp(profile, result.dev_otp)
    assert profile.phone_verification_code is None


@pytest.mark.asyncio()
async def test_new_number_clears_verified_flag(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    profile = await _create_profile(session)
    service = PhoneVerificationService(session)
    monkeypatch.setattr(service._settings, "termii_api_key", None)
    result = await service.send_otp(profile, "08031234567")
    await service.verify_otp(profile, result.dev_otp)

    await service.send_otp(profile, "08031234567")
    assert profile.phone_verified is True

    await service.send_otp(profile, "08021234567")
    assert profile.phone == "+2348021234567"
    assert profile.phone_verified is False

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import RateLimitKind
from steersolo.core.errors import NotFound, RateLimited, ServiceUnavailable, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.core.security import hash_otp, otp_matches
from steersolo.infrastructure.db.models import AuthRateLimit, Profile
from steersolo.infrastructure.db.repositories import RateLimitRepository
from steersolo.services.termii_client import TermiiClient, TermiiError

log = get_logger(__name__)

NIGERIAN_PHONE = re.compile(r"^\+234\d{10}$")
OTP_PATTERN = re.compile(r"^\d{6}$")
# Keys this short are placeholders; codes are then returned to the caller instead of texted.
MIN_LIVE_KEY_LENGTH = 11


@dataclass
class OtpSendResult:
    message: str
    expires_in: int
    dev_otp: str | None = None


def normalise_phone(phone: str | None) -> str:
    cleaned = re.sub(r"\s+", "", phone or "")
    if cleaned.startswith("0"):
        cleaned = "+234" + cleaned[1:]
    if not NIGERIAN_PHONE.match(cleaned):
        raise ValidationFailed("Invalid Nigerian phone number format. Please use format: 08012345678")
    return cleaned


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class PhoneVerificationService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._rate_limits = RateLimitRepository(session)
        self._settings = get_settings()

    @property
    def dev_mode(self) -> bool:
        key = self._settings.termii_api_key or ""
        return len(key) < MIN_LIVE_KEY_LENGTH

    async def send_otp(self, profile: Profile | None, phone: str | None) -> OtpSendResult:
        clean_phone = normalise_phone(phone)
        if profile is None:
            raise NotFound("User not found. Please log in again.")

        now = utcnow()
        entry = await self._rate_limits.get(clean_phone, RateLimitKind.PHONE_OTP)
        self._ensure_not_locked(entry, now)
        if entry is not None and self._within_window(entry, now):
            if entry.attempt_count >= self._settings.otp_max_send_attempts:
                entry.locked_until = now + timedelta(minutes=self._settings.otp_lock_minutes)
                await self._session.flush()
                log.warning("otp_send_locked", phone=clean_phone)
                raise RateLimited(
                    f"Too many OTP requests. Please try again in {self._settings.otp_lock_minutes} minutes."
                )

        otp = generate_otp()
        if profile.phone != clean_phone:
            profile.phone_verified = False
        profile.phone = clean_phone
        profile.phone_verification_code = hash_otp(otp, self._settings.otp_secret)
        profile.phone_verification_expires = now + timedelta(seconds=self._settings.otp_ttl_seconds)
        await self._record_attempt(entry, clean_phone, RateLimitKind.PHONE_OTP, now)

        minutes = self._settings.otp_ttl_seconds // 60
        if self.dev_mode:
            log.info("otp_dev_mode", phone=clean_phone, otp=otp)
            return OtpSendResult(
                message="Verification code sent to your phone",
                expires_in=self._settings.otp_ttl_seconds,
                dev_otp=otp,
            )

        message = (
            f"Your SteerSolo verification code is: {otp}. "
            f"This code expires in {minutes} minutes. Do not share this code with anyone."
        )
        try:
            await self._get_client().send_sms(clean_phone, message)
        except TermiiError as exc:
            log.error("otp_sms_failed", phone=clean_phone, status_code=exc.status_code, error=str(exc))
            raise ServiceUnavailable("SMS service unavailable. Please try again later.") from exc
        log.info("otp_sent", phone=clean_phone, profile_id=profile.id)
        return OtpSendResult(
            message="Verification code sent to your phone",
            expires_in=self._settings.otp_ttl_seconds,
        )

    async def verify_otp(self, profile: Profile | None, otp: str | None) -> Profile:
        code = (otp or "").strip()
        if not OTP_PATTERN.match(code):
            raise ValidationFailed("Invalid OTP format. Please enter a 6-digit code.")
        if profile is None:
            raise NotFound("User not found. Please log in again.")
        if not profile.phone_verification_code or not profile.phone:
            raise ValidationFailed("No verification code found. Please request a new one.")

        now = utcnow()
        entry = await self._rate_limits.get(profile.phone, RateLimitKind.PHONE_VERIFY)
        self._ensure_not_locked(entry, now)

        expires = profile.phone_verification_expires
        if expires is None or ensure_utc(expires) < now:
            self._clear_code(profile)
            await self._session.flush()
            raise ValidationFailed("Verification code has expired. Please request a new one.")

        if not otp_matches(code, self._settings.otp_secret, profile.phone_verification_code):
            attempts = await self._record_attempt(entry, profile.phone, RateLimitKind.PHONE_VERIFY, now)
            if attempts.attempt_count >= self._settings.otp_max_verify_attempts:
                self._clear_code(profile)
                attempts.locked_until = now + timedelta(minutes=self._settings.otp_lock_minutes)
                await self._session.flush()
                log.warning("otp_verify_locked", profile_id=profile.id)
                raise RateLimited("Too many failed attempts. Please request a new code.")
            raise ValidationFailed("Invalid verification code. Please check and try again.")

        profile.phone_verified = True
        self._clear_code(profile)
        await self._rate_limits.clear(profile.phone, [RateLimitKind.PHONE_OTP, RateLimitKind.PHONE_VERIFY])
        await self._session.flush()
        log.info("phone_verified", profile_id=profile.id)
        return profile

    def _ensure_not_locked(self, entry: AuthRateLimit | None, now: datetime) -> None:
        if entry is None or entry.locked_until is None:
            return
        locked_until = ensure_utc(entry.locked_until)
        if locked_until > now:
            raise RateLimited(
                f"Too many attempts. Try again after {locked_until.strftime('%H:%M:%S')} UTC",
                payload={"locked_until": locked_until.isoformat()},
            )

    def _within_window(self, entry: AuthRateLimit, now: datetime) -> bool:
        window_start = now - timedelta(minutes=self._settings.otp_rate_window_minutes)
        return ensure_utc(entry.first_attempt_at) > window_start

    async def _record_attempt(
        self,
        entry: AuthRateLimit | None,
        identifier: str,
        kind: RateLimitKind,
        now: datetime,
    ) -> AuthRateLimit:
        if entry is None:
            return await self._rate_limits.create(
                AuthRateLimit(
                    identifier=identifier,
                    attempt_type=kind,
                    attempt_count=1,
                    first_attempt_at=now,
                    last_attempt_at=now,
                )
            )
        if entry.locked_until is not None or not self._within_window(entry, now):
            entry.attempt_count = 1
            entry.first_attempt_at = now
            entry.locked_until = None
        else:
            entry.attempt_count += 1
        entry.last_attempt_at = now
        await self._session.flush()
        return entry

    @staticmethod
    def _clear_code(profile: Profile) -> None:
        profile.phone_verification_code = None
        profile.phone_verification_expires = None

    def _get_client(self) -> TermiiClient:
        return TermiiClient(
            api_key=self._settings.termii_api_key or "",
            sender_id=self._settings.termii_sender_id,
            base_url=self._settings.termii_base_url,
        )

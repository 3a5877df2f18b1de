from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.core.enums import AmbassadorTierName, ReferralStatus
from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class ReferralCode(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "referral_codes"

    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(length=16), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)


class Referral(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "referrals"

    referrer_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    referred_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    referral_code: Mapped[str] = mapped_column(String(length=16), nullable=False)
    status: Mapped[ReferralStatus] = mapped_column(
        Enum(
            ReferralStatus,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=ReferralStatus.PENDING,
    )
    points_earned: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    qualified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rewarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class AmbassadorTier(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "ambassador_tiers"
    __table_args__ = (UniqueConstraint("user_id", "tier", name="uq_ambassador_tiers_user_tier"),)

    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    tier: Mapped[AmbassadorTierName] = mapped_column(
        Enum(
            AmbassadorTierName,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
    )
    reward_claimed: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

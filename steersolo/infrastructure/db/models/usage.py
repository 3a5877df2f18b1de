from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.core.enums import RateLimitKind
from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class FeatureUsage(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "feature_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "feature_name", "period", name="uq_feature_usage_user_feature_period"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    feature_name: Mapped[str] = mapped_column(String(length=64), nullable=False)
    period: Mapped[str] = mapped_column(String(length=7), nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)


class MarketingAIUsage(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "marketing_ai_usage"

    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_id: Mapped[int | None] = mapped_column(ForeignKey("shops.id", ondelete="SET NULL"))
    feature_type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    prompt: Mapped[str | None] = mapped_column(Text())
    result: Mapped[str | None] = mapped_column(Text())


class AuthRateLimit(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "auth_rate_limits"
    __table_args__ = (
        UniqueConstraint("identifier", "attempt_type", name="uq_auth_rate_limits_identifier_type"),
    )

    identifier: Mapped[str] = mapped_column(String(length=255), nullable=False)
    attempt_type: Mapped[RateLimitKind] = mapped_column(
        Enum(
            RateLimitKind,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
    )
    attempt_count: Mapped[int] = mapped_column(Integer(), nullable=False, default=1)
    first_attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

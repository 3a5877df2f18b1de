from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class SubscriptionPlan(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "subscription_plans"

    name: Mapped[str] = mapped_column(String(length=64), nullable=False)
    slug: Mapped[str] = mapped_column(String(length=32), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text())
    price_monthly: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_yearly: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    # Older rows store the list as a JSON encoded string.
    features: Mapped[list | None] = mapped_column(JSON())
    feature_limits: Mapped[dict | None] = mapped_column(JSON())
    max_products: Mapped[int | None] = mapped_column(Integer())
    ai_features_enabled: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    priority_support: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    paystack_plan_monthly: Mapped[str | None] = mapped_column(String(length=64))
    paystack_plan_yearly: Mapped[str | None] = mapped_column(String(length=64))


class SubscriptionHistory(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "subscription_history"

    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(length=32), nullable=False)
    plan_id: Mapped[int | None] = mapped_column(ForeignKey("subscription_plans.id", ondelete="SET NULL"))
    plan_name: Mapped[str | None] = mapped_column(String(length=128))
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    reference: Mapped[str | None] = mapped_column(String(length=128), unique=True)
    previous_expiry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    new_expiry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(String(length=512))


class Badge(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "badges"

    name: Mapped[str] = mapped_column(String(length=64), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(length=255))
    icon: Mapped[str | None] = mapped_column(String(length=32))
    requirement_type: Mapped[str] = mapped_column(String(length=32), nullable=False)
    requirement_value: Mapped[int] = mapped_column(Integer(), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)


class UserBadge(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),)

    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    badge_id: Mapped[int] = mapped_column(ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

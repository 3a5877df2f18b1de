from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.core.enums import BillingCycle, UserRole
from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class Profile(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "profiles"

    auth_user_id: Mapped[str] = mapped_column(String(length=64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(length=255))
    full_name: Mapped[str | None] = mapped_column(String(length=255))
    phone: Mapped[str | None] = mapped_column(String(length=20))
    phone_verified: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    phone_verification_code: Mapped[str | None] = mapped_column(String(length=128))
    phone_verification_expires: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=UserRole.SHOP_OWNER,
    )
    is_subscribed: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    subscription_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    subscription_type: Mapped[BillingCycle | None] = mapped_column(
        Enum(
            BillingCycle,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
    )
    subscription_plan_id: Mapped[int | None] = mapped_column(ForeignKey("subscription_plans.id", ondelete="SET NULL"))
    is_reseller: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)

    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@", 1)[0]
        return self.auth_user_id

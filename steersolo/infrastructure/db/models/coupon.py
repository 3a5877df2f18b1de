from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.core.enums import DiscountType
from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class ShopCoupon(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "shop_coupons"
    __table_args__ = (UniqueConstraint("shop_id", "code", name="uq_shop_coupons_shop_code"),)

    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(length=64), nullable=False)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(
            DiscountType,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_order_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    max_uses: Mapped[int | None] = mapped_column(Integer())
    used_count: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    valid_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)

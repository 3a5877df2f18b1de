from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class Shop(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "shops"

    owner_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    shop_slug: Mapped[str] = mapped_column(String(length=255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text())
    logo_url: Mapped[str | None] = mapped_column(String(length=1024))
    banner_url: Mapped[str | None] = mapped_column(String(length=1024))
    whatsapp_number: Mapped[str | None] = mapped_column(String(length=20))
    payment_method: Mapped[str | None] = mapped_column(String(length=32))
    paystack_subaccount_code: Mapped[str | None] = mapped_column(String(length=64))
    settlement_bank_code: Mapped[str | None] = mapped_column(String(length=16))
    settlement_account_number: Mapped[str | None] = mapped_column(String(length=16))
    average_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=Decimal("0"))
    total_reviews: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)


class FeaturedShop(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "featured_shops"

    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, unique=True)
    label: Mapped[str | None] = mapped_column(String(length=64))
    tagline: Mapped[str | None] = mapped_column(String(length=255))
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class ShopAddress(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "shop_addresses"

    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    label: Mapped[str | None] = mapped_column(String(length=64))
    contact_name: Mapped[str | None] = mapped_column(String(length=255))
    contact_phone: Mapped[str | None] = mapped_column(String(length=20))
    line1: Mapped[str] = mapped_column(String(length=255), nullable=False)
    city: Mapped[str] = mapped_column(String(length=128), nullable=False)
    state: Mapped[str] = mapped_column(String(length=128), nullable=False)
    country: Mapped[str] = mapped_column(String(length=8), nullable=False, default="NG")
    is_default: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    meta: Mapped[dict | None] = mapped_column(JSON())

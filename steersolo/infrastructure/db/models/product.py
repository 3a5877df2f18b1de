from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class Product(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "products"

    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text())
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(length=1024))
    category: Mapped[str | None] = mapped_column(String(length=128))
    stock_quantity: Mapped[int | None] = mapped_column(Integer())
    is_available: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)


class Review(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "reviews"

    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"))
    order_id: Mapped[int | None] = mapped_column(ForeignKey("orders.id", ondelete="SET NULL"))
    customer_name: Mapped[str | None] = mapped_column(String(length=255))
    rating: Mapped[int] = mapped_column(Integer(), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text())

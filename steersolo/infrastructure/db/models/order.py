from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from steersolo.core.enums import OrderStatus, PaymentStatus
from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class Order(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    public_id: Mapped[str] = mapped_column(String(length=36), unique=True, nullable=False)
    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id"), nullable=False, index=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    customer_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(length=255))
    customer_phone: Mapped[str | None] = mapped_column(String(length=20))
    delivery_address: Mapped[str | None] = mapped_column(String(length=512))

    status: Mapped[OrderStatus] = mapped_column(
        Enum(
            OrderStatus,
            native_enum=False,
            length=32,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    subtotal_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(length=3), nullable=False, default="NGN")
    coupon_code: Mapped[str | None] = mapped_column(String(length=64))
    payment_reference: Mapped[str | None] = mapped_column(String(length=128))

    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    processing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    out_for_delivery_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    notes: Mapped[str | None] = mapped_column(Text())
    extra_attrs: Mapped[dict | None] = mapped_column(JSON())

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
    )

    @property
    def short_id(self) -> str:
        return self.public_id[:8].upper()


class OrderItem(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"))
    product_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer(), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class OrderTimeline(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "order_timelines"

    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(length=32), default="status", nullable=False)
    status: Mapped[str | None] = mapped_column(String(length=32))
    note: Mapped[str | None] = mapped_column(String(length=512))
    actor: Mapped[str | None] = mapped_column(String(length=64))
    meta: Mapped[dict | None] = mapped_column(JSON())

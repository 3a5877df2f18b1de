from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from steersolo.core.enums import DeliveryProvider, DeliveryStatus
from steersolo.infrastructure.db.base import Base, IntPKMixin, TimestampMixin


class DeliveryOrder(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "delivery_orders"

    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    provider: Mapped[DeliveryProvider] = mapped_column(
        Enum(
            DeliveryProvider,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
    )
    provider_shipment_id: Mapped[str | None] = mapped_column(String(length=128), index=True)
    provider_tracking_code: Mapped[str | None] = mapped_column(String(length=128))
    provider_rate_id: Mapped[str | None] = mapped_column(String(length=128))
    pickup_address: Mapped[dict | None] = mapped_column(JSON())
    delivery_address: Mapped[dict | None] = mapped_column(JSON())
    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(8, 2))
    dimensions: Mapped[dict | None] = mapped_column(JSON())
    delivery_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(length=3), nullable=False, default="NGN")
    status: Mapped[DeliveryStatus] = mapped_column(
        Enum(
            DeliveryStatus,
            native_enum=False,
            length=32,
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=DeliveryStatus.PENDING,
    )
    estimated_delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text())
    meta: Mapped[dict | None] = mapped_column(JSON())

    events: Mapped[list["DeliveryTrackingEvent"]] = relationship(
        "DeliveryTrackingEvent",
        back_populates="delivery",
        cascade="all, delete-orphan",
    )


class DeliveryTrackingEvent(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "delivery_tracking_events"

    delivery_order_id: Mapped[int] = mapped_column(
        ForeignKey("delivery_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(length=32), nullable=False)
    description: Mapped[str | None] = mapped_column(String(length=512))
    location: Mapped[str | None] = mapped_column(String(length=255))
    provider_event_id: Mapped[str | None] = mapped_column(String(length=128))
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    raw_payload: Mapped[dict | None] = mapped_column(JSON())

    delivery: Mapped[DeliveryOrder] = relationship("DeliveryOrder", back_populates="events")

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import DeliveryProvider, DeliveryStatus, OrderStatus
from steersolo.core.errors import NotFound, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import DeliveryOrder, DeliveryTrackingEvent, Order, Shop
from steersolo.infrastructure.db.repositories import DeliveryRepository, OrderRepository
from steersolo.services.money import as_decimal
from steersolo.services.order_service import OrderService
from steersolo.services.terminal_client import ShippingRate, TerminalClient, TerminalError, parse_timestamp

log = get_logger(__name__)

SAME_CITY_BASE_PRICE = Decimal("1500")
INTERCITY_BASE_PRICE = Decimal("3000")
MOCK_CARRIERS: tuple[tuple[str, str, str, Decimal, int], ...] = (
    ("gig", "GIG Logistics", "https://terminal.africa/carriers/gig.png", Decimal("1"), 2),
    ("dhl", "DHL Express", "https://terminal.africa/carriers/dhl.png", Decimal("1.5"), 1),
    ("kobo", "Kobo360", "https://terminal.africa/carriers/kobo.png", Decimal("0.8"), 3),
)

PROVIDER_STATUS_MAP: dict[str, DeliveryStatus] = {
    "pending": DeliveryStatus.PENDING,
    "confirmed": DeliveryStatus.CONFIRMED,
    "picked-up": DeliveryStatus.PICKED_UP,
    "picked_up": DeliveryStatus.PICKED_UP,
    "in-transit": DeliveryStatus.IN_TRANSIT,
    "in_transit": DeliveryStatus.IN_TRANSIT,
    "out-for-delivery": DeliveryStatus.OUT_FOR_DELIVERY,
    "out_for_delivery": DeliveryStatus.OUT_FOR_DELIVERY,
    "delivered": DeliveryStatus.DELIVERED,
    "cancelled": DeliveryStatus.CANCELLED,
    "failed": DeliveryStatus.FAILED,
}

ORDER_STATUS_FOR_DELIVERY: dict[DeliveryStatus, OrderStatus] = {
    DeliveryStatus.OUT_FOR_DELIVERY: OrderStatus.OUT_FOR_DELIVERY,
    DeliveryStatus.DELIVERED: OrderStatus.DELIVERED,
}

STATUS_TIMESTAMPS: dict[DeliveryStatus, str] = {
    DeliveryStatus.PICKED_UP: "picked_up_at",
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.CANCELLED: "cancelled_at",
}


@dataclass(frozen=True)
class DeliveryStatusStyle:
    label: str
    color: str
    icon: str


DELIVERY_STATUS_STYLES: dict[DeliveryStatus, DeliveryStatusStyle] = {
    DeliveryStatus.PENDING: DeliveryStatusStyle("Pending", "yellow", "Clock"),
    DeliveryStatus.CONFIRMED: DeliveryStatusStyle("Confirmed", "blue", "Package"),
    DeliveryStatus.PICKED_UP: DeliveryStatusStyle("Picked Up", "indigo", "Truck"),
    DeliveryStatus.IN_TRANSIT: DeliveryStatusStyle("In Transit", "purple", "Truck"),
    DeliveryStatus.OUT_FOR_DELIVERY: DeliveryStatusStyle("Out for Delivery", "orange", "MapPin"),
    DeliveryStatus.DELIVERED: DeliveryStatusStyle("Delivered", "green", "CheckCircle"),
    DeliveryStatus.CANCELLED: DeliveryStatusStyle("Cancelled", "red", "Clock"),
    DeliveryStatus.FAILED: DeliveryStatusStyle("Failed", "red", "Clock"),
}


@dataclass
class RateQuote:
    rates: list[ShippingRate]
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class TrackingResult:
    delivery: DeliveryOrder
    events: list[DeliveryTrackingEvent]


def map_provider_status(raw: str | None) -> DeliveryStatus | None:
    if not raw:
        return None
    key = str(raw).strip().lower()
    if key.startswith("shipment."):
        key = key[len("shipment."):]
    return PROVIDER_STATUS_MAP.get(key)


def style_for_status(status: DeliveryStatus | str | None) -> DeliveryStatusStyle:
    try:
        return DELIVERY_STATUS_STYLES[DeliveryStatus(status)]
    except ValueError:
        return DELIVERY_STATUS_STYLES[DeliveryStatus.PENDING]


def mock_rates(pickup: dict[str, Any], delivery: dict[str, Any], *, now: datetime | None = None) -> list[ShippingRate]:
    same_city = (pickup.get("city") or "").strip().lower() == (delivery.get("city") or "").strip().lower()
    base = SAME_CITY_BASE_PRICE if same_city else INTERCITY_BASE_PRICE
    stamp = int((now or utcnow()).timestamp() * 1000)
    return [
        ShippingRate(
            carrier=name,
            carrier_logo=logo,
            price=base * factor,
            currency="NGN",
            estimated_days=days,
            rate_id=f"mock_{key}_{stamp}",
        )
        for key, name, logo, factor, days in MOCK_CARRIERS
    ]


class DeliveryService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = DeliveryRepository(session)
        self._orders = OrderRepository(session)
        self._order_service = OrderService(session)
        self._settings = get_settings()

    async def require_delivery(self, delivery_id: int) -> DeliveryOrder:
        delivery = await self._repo.get_by_id(delivery_id)
        if delivery is None:
            raise NotFound("Delivery order not found")
        return delivery

    async def list_for_shop(self, shop: Shop) -> list[DeliveryOrder]:
        return await self._repo.list_for_shop(shop.id)

    async def get_rates(self, pickup: dict[str, Any], delivery: dict[str, Any], *, weight_kg: float = 1) -> RateQuote:
        if not self._settings.terminal_api_key:
            return RateQuote(rates=mock_rates(pickup, delivery))
        client = self._get_client()
        try:
            pickup_id = await client.create_address(pickup, residential=False)
            delivery_id = await client.create_address(delivery, residential=True)
            parcel_id = await client.create_parcel(weight_kg)
            rates = await client.get_rates(
                pickup_address_id=pickup_id,
                delivery_address_id=delivery_id,
                parcel_id=parcel_id,
            )
        except TerminalError as exc:
            log.warning("delivery_rates_failed", status_code=exc.status_code, error=str(exc))
            return RateQuote(rates=[], error=str(exc))
        return RateQuote(rates=rates)

    async def book_delivery(
        self,
        shop: Shop,
        order: Order,
        *,
        provider: DeliveryProvider,
        pickup_address: dict[str, Any],
        delivery_address: dict[str, Any],
        delivery_fee: Decimal | float | int | str | None = None,
        rate_id: str | None = None,
        weight_kg: float | None = None,
        dimensions: dict[str, Any] | None = None,
    ) -> DeliveryOrder:
        if order.shop_id != shop.id:
            raise NotFound("Order not found")
        provider = DeliveryProvider(provider)

        shipment = None
        if provider == DeliveryProvider.TERMINAL and rate_id and self._settings.terminal_api_key:
            try:
                shipment = await self._get_client().create_shipment(
                    rate_id,
                    {"order_id": order.id, "shop_id": shop.id},
                )
            except TerminalError as exc:
                log.warning("delivery_shipment_failed", order_id=order.id, error=str(exc))
                raise ValidationFailed(str(exc) or "Failed to book delivery") from exc

        shipment_id = shipment.shipment_id if shipment is not None else None
        if provider == DeliveryProvider.MANUAL or shipment_id:
            status = DeliveryStatus.CONFIRMED
        else:
            status = DeliveryStatus.PENDING

        delivery = await self._repo.create(
            DeliveryOrder(
                order_id=order.id,
                shop_id=shop.id,
                provider=provider,
                provider_shipment_id=shipment_id,
                provider_tracking_code=shipment.tracking_number if shipment is not None else None,
                provider_rate_id=rate_id,
                pickup_address=pickup_address,
                delivery_address=delivery_address,
                weight_kg=as_decimal(weight_kg) if weight_kg else None,
                dimensions=dimensions,
                delivery_fee=as_decimal(delivery_fee) if delivery_fee is not None else None,
                currency="NGN",
                status=status,
                estimated_delivery_date=shipment.estimated_delivery_date if shipment is not None else None,
            )
        )
        description = (
            "Delivery booked manually" if provider == DeliveryProvider.MANUAL else f"Delivery booked with {provider.value}"
        )
        await self._add_event(delivery, DeliveryStatus.CONFIRMED.value, description=description)

        if order.status == OrderStatus.CONFIRMED:
            await self._order_service.transition(order, OrderStatus.PROCESSING, actor="logistics", note=description)
        log.info(
            "delivery_booked",
            delivery_id=delivery.id,
            order_id=order.id,
            provider=provider.value,
            status=status.value,
        )
        return delivery

    async def update_status(
        self,
        delivery: DeliveryOrder,
        status: DeliveryStatus,
        *,
        description: str | None = None,
        location: str | None = None,
        provider_event_id: str | None = None,
        raw_payload: dict[str, Any] | None = None,
    ) -> DeliveryTrackingEvent:
        status = DeliveryStatus(status)
        self._apply_status(delivery, status)
        await self._session.flush()
        return await self._add_event(
            delivery,
            status.value,
            description=description or f"Status updated to {status.value}",
            location=location,
            provider_event_id=provider_event_id,
            raw_payload=raw_payload,
        )

    async def track(self, delivery: DeliveryOrder) -> TrackingResult:
        if (
            delivery.provider == DeliveryProvider.TERMINAL
            and delivery.provider_shipment_id
            and self._settings.terminal_api_key
        ):
            try:
                snapshot = await self._get_client().get_tracking(delivery.provider_shipment_id)
            except TerminalError as exc:
                log.warning("delivery_tracking_failed", delivery_id=delivery.id, error=str(exc))
            else:
                known = await self._repo.provider_event_ids(delivery.id)
                for event in snapshot.events:
                    event_id = str(event.get("id") or "") or None
                    if event_id is not None and event_id in known:
                        continue
                    await self._add_event(
                        delivery,
                        str(event.get("status") or delivery.status.value),
                        description=event.get("description"),
                        location=event.get("location"),
                        provider_event_id=event_id,
                        event_time=parse_timestamp(event.get("timestamp") or event.get("created_at")),
                        raw_payload=event,
                    )
                latest = map_provider_status(snapshot.status)
                if latest is not None and latest != delivery.status:
                    self._apply_status(delivery, latest)
                    await self._session.flush()
        events = await self._repo.list_events(delivery.id)
        return TrackingResult(delivery=delivery, events=events)

    async def handle_webhook(self, body: dict[str, Any]) -> dict[str, Any]:
        event_name = str(body.get("event") or "")
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        log.info("delivery_webhook_received", webhook_event=event_name)

        delivery = await self._locate_delivery(data)
        if delivery is None:
            log.warning("delivery_webhook_unmatched", webhook_event=event_name)
            return {"success": False, "message": "Delivery order not found"}

        status = map_provider_status(data.get("status") or event_name)
        if status is None:
            return {"success": True, "message": "Webhook received"}

        self._apply_status(delivery, status)
        if not delivery.provider_tracking_code and data.get("tracking_number"):
            delivery.provider_tracking_code = str(data["tracking_number"])
        await self._session.flush()
        await self._add_event(
            delivery,
            status.value,
            description=data.get("description") or f"Status updated to {status.value}",
            location=data.get("location"),
            provider_event_id=str(data["event_id"]) if data.get("event_id") else None,
            raw_payload=body,
        )

        order_status = ORDER_STATUS_FOR_DELIVERY.get(status)
        if order_status is not None:
            order = await self._orders.get_by_id(delivery.order_id)
            if order is not None:
                await self._order_service.transition(
                    order,
                    order_status,
                    actor="logistics",
                    note=f"Delivery {status.value.replace('_', ' ')}",
                    enforce=False,
                )
        return {"success": True, "message": "Webhook processed"}

    async def _locate_delivery(self, data: dict[str, Any]) -> DeliveryOrder | None:
        shipment_id = data.get("shipment_id")
        if shipment_id:
            delivery = await self._repo.get_by_shipment_id(str(shipment_id))
            if delivery is not None:
                return delivery
        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        order_id = metadata.get("order_id")
        try:
            order_key = int(order_id) if order_id is not None else None
        except (TypeError, ValueError):
            order_key = None
        if order_key is None:
            return None
        return await self._repo.get_latest_for_order(order_key)

    @staticmethod
    def _apply_status(delivery: DeliveryOrder, status: DeliveryStatus) -> None:
        delivery.status = status
        column = STATUS_TIMESTAMPS.get(status)
        if column and getattr(delivery, column) is None:
            setattr(delivery, column, utcnow())

    async def _add_event(
        self,
        delivery: DeliveryOrder,
        status: str,
        *,
        description: str | None = None,
        location: str | None = None,
        provider_event_id: str | None = None,
        event_time: datetime | None = None,
        raw_payload: dict[str, Any] | None = None,
    ) -> DeliveryTrackingEvent:
        return await self._repo.add_event(
            DeliveryTrackingEvent(
                delivery_order_id=delivery.id,
                status=status,
                description=description,
                location=location,
                provider_event_id=provider_event_id,
                event_time=event_time or utcnow(),
                raw_payload=raw_payload,
            )
        )

    def _get_client(self) -> TerminalClient:
        return TerminalClient(
            api_key=self._settings.terminal_api_key or "",
            base_url=self._settings.terminal_base_url,
        )

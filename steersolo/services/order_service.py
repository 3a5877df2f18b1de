from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.enums import OrderStatus, PaymentStatus
from steersolo.core.errors import NotFound, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Order, OrderItem, Profile, Shop
from steersolo.infrastructure.db.repositories import OrderRepository, ProductRepository
from steersolo.services.coupon_service import CouponService
from steersolo.services.order_timeline_service import OrderTimelineService

log = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.AWAITING_APPROVAL: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PAID_AWAITING_DELIVERY: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED),
    OrderStatus.OUT_FOR_DELIVERY: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    OrderStatus.DELIVERED: (OrderStatus.COMPLETED,),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

STATUS_TIMESTAMPS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PAID_AWAITING_DELIVERY: "confirmed_at",
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


@dataclass
class OrderLine:
    product_id: int
    quantity: int


def allowed_next_statuses(status: OrderStatus | str) -> tuple[OrderStatus, ...]:
    try:
        return ALLOWED_TRANSITIONS[OrderStatus(status)]
    except ValueError:
        return ()


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    try:
        return OrderStatus(target) in allowed_next_statuses(current)
    except ValueError:
        return False


class OrderService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._orders = OrderRepository(session)
        self._products = ProductRepository(session)
        self._coupons = CouponService(session)
        self._timeline = OrderTimelineService(session)

    async def require_public_order(self, public_id: str) -> Order:
        order = await self._orders.get_by_public_id(public_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    async def require_order(self, order_id: int) -> Order:
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    async def list_orders(self, shop: Shop, *, limit: int = 50) -> list[Order]:
        return await self._orders.list_for_shop(shop.id, limit=limit)

    async def create_order(
        self,
        shop: Shop,
        *,
        customer_name: str,
        lines: list[OrderLine],
        customer_email: str | None = None,
        customer_phone: str | None = None,
        delivery_address: str | None = None,
        coupon_code: str | None = None,
        pay_on_delivery: bool = False,
        customer: Profile | None = None,
        notes: str | None = None,
    ) -> Order:
        if not (customer_name or "").strip():
            raise ValidationFailed("Customer name is required")
        if not lines:
            raise ValidationFailed("Order must contain at least one item")
        if any(line.quantity < 1 for line in lines):
            raise ValidationFailed("Quantity must be at least 1")

        products = await self._products.get_many(shop.id, [line.product_id for line in lines])
        items: list[OrderItem] = []
        subtotal = Decimal("0")
        for line in lines:
            product = products.get(line.product_id)
            if product is None or not product.is_available:
                raise ValidationFailed(f"Product {line.product_id} is not available")
            if product.stock_quantity is not None and product.stock_quantity < line.quantity:
                raise ValidationFailed(f"Only {product.stock_quantity} of {product.name} left in stock")
            items.append(
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    price=product.price,
                )
            )
            subtotal += product.price * line.quantity

        discount = Decimal("0")
        applied_coupon = None
        if coupon_code:
            check = await self._coupons.validate_coupon(shop.id, coupon_code, subtotal)
            if not check.valid:
                raise ValidationFailed(check.error or "Invalid coupon code")
            discount = check.discount
            applied_coupon = check.coupon

        order = Order(
            public_id=str(uuid4()),
            shop_id=shop.id,
            customer_id=customer.id if customer is not None else None,
            customer_name=customer_name.strip(),
            customer_email=customer_email,
            customer_phone=customer_phone,
            delivery_address=delivery_address,
            status=OrderStatus.AWAITING_APPROVAL if pay_on_delivery else OrderStatus.PENDING,
            payment_status=PaymentStatus.ON_DELIVERY if pay_on_delivery else PaymentStatus.PENDING,
            subtotal_amount=subtotal,
            discount_amount=discount,
            total_amount=subtotal - discount,
            currency="NGN",
            coupon_code=applied_coupon.code if applied_coupon is not None else None,
            notes=notes,
            items=items,
        )
        await self._orders.create(order)

        for line in lines:
            product = products[line.product_id]
            if product.stock_quantity is not None:
                product.stock_quantity -= line.quantity
        if applied_coupon is not None:
            await self._coupons.increment_usage(applied_coupon)

        await self._timeline.add_event(order, status=order.status.value, note="Order placed", actor="customer")
        log.info(
            "order_created",
            order_id=order.id,
            shop_id=shop.id,
            total=str(order.total_amount),
            pay_on_delivery=pay_on_delivery,
        )
        return order

    async def transition(
        self,
        order: Order,
        target: OrderStatus,
        *,
        actor: str | None = None,
        note: str | None = None,
        enforce: bool = True,
    ) -> Order:
        target = OrderStatus(target)
        if order.status == target:
            return order
        if enforce and not can_transition(order.status, target):
            raise ValidationFailed(
                f"Cannot change order from {order.status.value} to {target.value}",
                payload={"allowed": [status.value for status in allowed_next_statuses(order.status)]},
            )
        previous = order.status
        order.status = target
        column = STATUS_TIMESTAMPS.get(target)
        if column:
            setattr(order, column, utcnow())
        await self._session.flush()
        await self._timeline.add_event(order, status=target.value, note=note, actor=actor)
        log.info("order_status_changed", order_id=order.id, previous=previous.value, status=target.value)
        return order

    async def confirm_payment(self, order: Order, reference: str, *, actor: str = "paystack") -> Order:
        if order.payment_status == PaymentStatus.PAID and order.payment_reference == reference:
            return order
        order.payment_status = PaymentStatus.PAID
        order.payment_reference = reference
        if order.status in (OrderStatus.PENDING, OrderStatus.AWAITING_APPROVAL):
            await self.transition(order, OrderStatus.CONFIRMED, actor=actor, note="Payment confirmed")
        else:
            await self._session.flush()
        log.info("order_payment_confirmed", order_id=order.id, reference=reference)
        return order

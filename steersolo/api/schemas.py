from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from steersolo.core.enums import (
    BillingCycle,
    DeliveryProvider,
    DeliveryStatus,
    DiscountType,
    OrderStatus,
    PaymentStatus,
)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class InitializeSubscriptionRequest(BaseModel):
    plan_slug: str = Field(alias="planSlug")
    billing_cycle: BillingCycle = Field(BillingCycle.MONTHLY, alias="billingCycle")
    callback_url: str | None = Field(None, alias="callbackUrl")

    model_config = ConfigDict(populate_by_name=True)


class VerifyPaymentRequest(BaseModel):
    reference: str


class InitializeOrderPaymentRequest(BaseModel):
    order_id: int | None = None
    shop_id: int | None = None
    amount: float | None = None
    customer_email: str | None = None
    callback_url: str | None = None


class SubaccountRequest(BaseModel):
    shop_id: int | None = None
    business_name: str | None = None
    bank_code: str | None = None
    account_number: str | None = None


class SendOtpRequest(BaseModel):
    phone: str | None = None


class VerifyOtpRequest(BaseModel):
    otp: str | None = None


class ApplyReferralRequest(BaseModel):
    code: str


class CouponCreateRequest(BaseModel):
    code: str
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: float | None = None
    min_order_amount: float | None = None
    max_uses: int | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None


class CouponToggleRequest(BaseModel):
    is_active: bool


class CouponValidateRequest(BaseModel):
    shop_id: int
    code: str
    order_total: float


class CouponOut(ORMModel):
    id: int
    shop_id: int
    code: str
    discount_type: DiscountType
    discount_value: float
    min_order_amount: float
    max_uses: int | None
    used_count: int
    valid_from: datetime | None
    valid_until: datetime | None
    is_active: bool
    created_at: datetime


class OrderLineIn(BaseModel):
    product_id: int
    quantity: int = 1


class OrderCreateRequest(BaseModel):
    shop_id: int
    customer_name: str
    customer_email: str | None = None
    customer_phone: str | None = None
    delivery_address: str | None = None
    items: list[OrderLineIn]
    coupon_code: str | None = None
    pay_on_delivery: bool = False
    notes: str | None = None


class OrderStatusRequest(BaseModel):
    status: OrderStatus
    note: str | None = None


class OrderNotifyRequest(BaseModel):
    event_type: str = Field(alias="eventType")
    status_update: str | None = Field(None, alias="statusUpdate")

    model_config = ConfigDict(populate_by_name=True)


class OrderItemOut(ORMModel):
    product_id: int | None
    product_name: str
    quantity: int
    price: float


class OrderOut(ORMModel):
    id: int
    public_id: str
    shop_id: int
    customer_name: str
    customer_email: str | None
    customer_phone: str | None
    delivery_address: str | None
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal_amount: float
    discount_amount: float
    total_amount: float
    currency: str
    coupon_code: str | None
    items: list[OrderItemOut]
    created_at: datetime


class RatesRequest(BaseModel):
    pickup_address: dict[str, Any]
    delivery_address: dict[str, Any]
    weight_kg: float = 1


class BookDeliveryRequest(BaseModel):
    order_id: int
    shop_id: int
    provider: DeliveryProvider = DeliveryProvider.MANUAL
    rate_id: str | None = None
    pickup_address: dict[str, Any]
    delivery_address: dict[str, Any]
    delivery_fee: float | None = None
    weight_kg: float | None = None
    dimensions: dict[str, Any] | None = None


class DeliveryStatusRequest(BaseModel):
    status: DeliveryStatus
    description: str | None = None
    location: str | None = None


class DeliveryEventOut(ORMModel):
    id: int
    status: str
    description: str | None
    location: str | None
    event_time: datetime


class DeliveryOut(ORMModel):
    id: int
    order_id: int
    shop_id: int
    provider: DeliveryProvider
    provider_shipment_id: str | None
    provider_tracking_code: str | None
    status: DeliveryStatus
    delivery_fee: float | None
    currency: str
    estimated_delivery_date: datetime | None
    picked_up_at: datetime | None
    delivered_at: datetime | None
    cancelled_at: datetime | None


class ProductDescriptionRequest(BaseModel):
    product_name: str | None = None
    category: str | None = None
    price: float | None = None


class ShopRequest(BaseModel):
    shop_id: int | None = Field(None, alias="shopId")

    model_config = ConfigDict(populate_by_name=True)


class PosterTransformRequest(BaseModel):
    shop_id: int
    template: dict[str, Any] | None = None


class ShopCreateRequest(BaseModel):
    shop_name: str
    description: str | None = None
    whatsapp_number: str | None = None
    payment_method: str | None = None
    logo_url: str | None = None
    banner_url: str | None = None


class ShopOut(ORMModel):
    id: int
    owner_id: int
    shop_name: str
    shop_slug: str
    description: str | None
    logo_url: str | None
    banner_url: str | None
    whatsapp_number: str | None
    average_rating: float
    total_reviews: int
    is_active: bool


class ProductCreateRequest(BaseModel):
    name: str
    price: float
    description: str | None = None
    image_url: str | None = None
    category: str | None = None
    stock_quantity: int | None = None


class ProductAvailabilityRequest(BaseModel):
    is_available: bool


class ProductOut(ORMModel):
    id: int
    shop_id: int
    name: str
    description: str | None
    price: float
    image_url: str | None
    category: str | None
    stock_quantity: int | None
    is_available: bool


class AddressRequest(BaseModel):
    line1: str
    city: str
    state: str
    contact_name: str | None = None
    contact_phone: str | None = None
    label: str | None = None
    is_default: bool = False


class AddressOut(ORMModel):
    id: int
    label: str | None
    contact_name: str | None
    contact_phone: str | None
    line1: str
    city: str
    state: str
    country: str
    is_default: bool


class ReviewRequest(BaseModel):
    rating: int
    comment: str | None = None
    customer_name: str | None = None
    product_id: int | None = None
    order_id: int | None = None

from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    SHOP_OWNER = "shop_owner"
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(StrEnum):
    AWAITING_APPROVAL = "awaiting_approval"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID_AWAITING_DELIVERY = "paid_awaiting_delivery"
    PROCESSING = "processing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    ON_DELIVERY = "on_delivery"


class DiscountType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ReferralStatus(StrEnum):
    PENDING = "pending"
    QUALIFIED = "qualified"
    REWARDED = "rewarded"


class AmbassadorTierName(StrEnum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class BillingCycle(StrEnum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionState(StrEnum):
    ACTIVE = "active"
    TRIAL = "trial"
    FREE = "free"
    EXPIRED = "expired"


class DeliveryProvider(StrEnum):
    TERMINAL = "terminal"
    SENDBOX = "sendbox"
    MANUAL = "manual"


class DeliveryStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RateLimitKind(StrEnum):
    PHONE_OTP = "phone_otp"
    PHONE_VERIFY = "phone_verify"


class MeteredFeature(StrEnum):
    PRODUCT_DESCRIPTION = "product_description"
    STROKE_MY_SHOP = "stroke_my_shop"
    KNOW_THIS_SHOP = "know_this_shop"
    POSTER_GENERATION = "poster_generation"


class NotificationEvent(StrEnum):
    ORDER_PLACED = "order_placed"
    STATUS_UPDATE = "status_update"

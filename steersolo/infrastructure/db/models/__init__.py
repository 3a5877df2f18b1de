from .coupon import ShopCoupon
from .delivery import DeliveryOrder, DeliveryTrackingEvent
from .order import Order, OrderItem, OrderTimeline
from .product import Product, Review
from .profile import Profile
from .referral import AmbassadorTier, Referral, ReferralCode
from .shop import FeaturedShop, Shop, ShopAddress
from .subscription import Badge, SubscriptionHistory, SubscriptionPlan, UserBadge
from .usage import AuthRateLimit, FeatureUsage, MarketingAIUsage

__all__ = [
    "AmbassadorTier",
    "AuthRateLimit",
    "Badge",
    "DeliveryOrder",
    "DeliveryTrackingEvent",
    "FeatureUsage",
    "FeaturedShop",
    "MarketingAIUsage",
    "Order",
    "OrderItem",
    "OrderTimeline",
    "Product",
    "Profile",
    "Referral",
    "ReferralCode",
    "Review",
    "Shop",
    "ShopAddress",
    "ShopCoupon",
    "SubscriptionHistory",
    "SubscriptionPlan",
    "UserBadge",
]

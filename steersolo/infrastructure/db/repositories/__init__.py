from .base import BaseRepository
from .coupon import CouponRepository
from .delivery import DeliveryRepository
from .order import OrderRepository
from .order_timeline import OrderTimelineRepository
from .product import ProductRepository
from .profile import ProfileRepository
from .referral import ReferralRepository
from .shop import ShopRepository
from .subscription import SubscriptionRepository
from .usage import RateLimitRepository, UsageRepository

__all__ = [
    "BaseRepository",
    "CouponRepository",
    "DeliveryRepository",
    "OrderRepository",
    "OrderTimelineRepository",
    "ProductRepository",
    "ProfileRepository",
    "RateLimitRepository",
    "ReferralRepository",
    "ShopRepository",
    "SubscriptionRepository",
    "UsageRepository",
]

from .ai_service import AIService
from .ambassador_service import AmbassadorService
from .coupon_service import CouponService
from .delivery_service import DeliveryService
from .order_notification_service import OrderNotificationService
from .order_service import OrderService
from .order_timeline_service import OrderTimelineService
from .payment_service import PaymentService
from .phone_verification_service import PhoneVerificationService
from .poster_service import PosterService
from .product_service import ProductService
from .profile_service import ProfileService
from .referral_service import ReferralService
from .shop_service import ShopService
from .subscription_service import SubscriptionService
from .usage_service import FeatureUsageService

__all__ = [
    "AIService",
    "AmbassadorService",
    "CouponService",
    "DeliveryService",
    "FeatureUsageService",
    "OrderNotificationService",
    "OrderService",
    "OrderTimelineService",
    "PaymentService",
    "PhoneVerificationService",
    "PosterService",
    "ProductService",
    "ProfileService",
    "ReferralService",
    "ShopService",
    "SubscriptionService",
]

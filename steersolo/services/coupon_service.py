from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.enums import DiscountType
from steersolo.core.errors import Conflict, NotFound, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Shop, ShopCoupon
from steersolo.infrastructure.db.repositories import CouponRepository
from steersolo.services.money import as_decimal, format_naira, round_naira

log = get_logger(__name__)


@dataclass
class CouponCheck:
    valid: bool
    discount: Decimal
    error: str | None = None
    coupon: ShopCoupon | None = None


def normalise_code(code: str | None) -> str:
    return (code or "").strip().upper()


def calculate_discount(coupon: ShopCoupon, order_total: Decimal) -> Decimal:
    value = as_decimal(coupon.discount_value)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = round_naira(order_total * value / Decimal("100"))
    else:
        discount = value
    return max(Decimal("0"), min(discount, order_total))


class CouponService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = CouponRepository(session)

    async def create_coupon(
        self,
        shop: Shop,
        *,
        code: str,
        discount_value: Decimal | int | float | str | None,
        discount_type: DiscountType = DiscountType.PERCENTAGE,
        min_order_amount: Decimal | int | float | str | None = None,
        max_uses: int | None = None,
        valid_from: datetime | None = None,
        valid_until: datetime | None = None,
    ) -> ShopCoupon:
        normalised = normalise_code(code)
        if not normalised or discount_value in (None, ""):
            raise ValidationFailed("Code and discount value are required")
        try:
            value = Decimal(str(discount_value))
            minimum = Decimal(str(min_order_amount)) if min_order_amount not in (None, "") else Decimal("0")
        except (InvalidOperation, ValueError) as exc:
            raise ValidationFailed("Discount value must be a number") from exc
        if value <= 0:
            raise ValidationFailed("Discount value must be greater than zero")
        if discount_type == DiscountType.PERCENTAGE and value > 100:
            raise ValidationFailed("Percentage discount cannot exceed 100")
        if minimum < 0:
            raise ValidationFailed("Minimum order amount cannot be negative")
        if max_uses is not None and max_uses < 1:
            raise ValidationFailed("Maximum uses must be at least 1")
        if valid_from and valid_until and ensure_utc(valid_until) <= ensure_utc(valid_from):
            raise ValidationFailed("Coupon must end after it starts")
        if await self._repo.get_by_code(shop.id, normalised) is not None:
            raise Conflict(f"Coupon {normalised} already exists")

        coupon = ShopCoupon(
            shop_id=shop.id,
            code=normalised,
            discount_type=discount_type,
            discount_value=value,
            min_order_amount=minimum,
            max_uses=max_uses,
            used_count=0,
            valid_from=valid_from or utcnow(),
            valid_until=valid_until,
            is_active=True,
        )
        await self._repo.create_coupon(coupon)
        log.info("coupon_created", shop_id=shop.id, code=normalised)
        return coupon

    async def list_coupons(self, shop: Shop) -> list[ShopCoupon]:
        return await self._repo.list_for_shop(shop.id)

    async def toggle_coupon(self, shop: Shop, coupon_id: int, is_active: bool) -> ShopCoupon:
        coupon = await self._require(shop, coupon_id)
        coupon.is_active = is_active
        await self._session.flush()
        return coupon

    async def delete_coupon(self, shop: Shop, coupon_id: int) -> None:
        coupon = await self._require(shop, coupon_id)
        await self._repo.delete_coupon(coupon)
        log.info("coupon_deleted", shop_id=shop.id, code=coupon.code)

    async def validate_coupon(
        self,
        shop_id: int,
        code: str,
        order_total: Decimal | int | float | str,
        *,
        now: datetime | None = None,
    ) -> CouponCheck:
        total = as_decimal(order_total)
        coupon = await self._repo.get_by_code(shop_id, normalise_code(code), active_only=True)
        if coupon is None:
            return CouponCheck(False, Decimal("0"), "Invalid coupon code")
        now = now or utcnow()
        if coupon.valid_from and ensure_utc(coupon.valid_from) > now:
            return CouponCheck(False, Decimal("0"), "Coupon not yet active")
        if coupon.valid_until and ensure_utc(coupon.valid_until) < now:
            return CouponCheck(False, Decimal("0"), "Coupon expired")
        if coupon.max_uses and coupon.used_count >= coupon.max_uses:
            return CouponCheck(False, Decimal("0"), "Coupon fully redeemed")
        minimum = as_decimal(coupon.min_order_amount)
        if minimum and total < minimum:
            return CouponCheck(False, Decimal("0"), f"Minimum order {format_naira(minimum)}")
        return CouponCheck(True, calculate_discount(coupon, total), coupon=coupon)

    async def increment_usage(self, coupon: ShopCoupon) -> ShopCoupon:
        coupon.used_count = (coupon.used_count or 0) + 1
        await self._session.flush()
        return coupon

    async def _require(self, shop: Shop, coupon_id: int) -> ShopCoupon:
        coupon = await self._repo.get_by_id(coupon_id)
        if coupon is None or coupon.shop_id != shop.id:
            raise NotFound("Coupon not found")
        return coupon

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, NoReturn

import orjson
from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import ensure_utc, utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import MeteredFeature, OrderStatus
from steersolo.core.errors import (
    Forbidden,
    PaymentRequired,
    RateLimited,
    ServiceUnavailable,
    UpstreamError,
    ValidationFailed,
)
from steersolo.core.logging import get_logger
from steersolo.infrastructure.db.models import Profile, Shop
from steersolo.infrastructure.db.repositories import OrderRepository, ProductRepository
from steersolo.services.ai_gateway_client import AIGatewayClient, AIGatewayError, AIStream
from steersolo.services.shop_service import ShopService
from steersolo.services.usage_service import FeatureUsageService

log = get_logger(__name__)

PRODUCT_INFO_TOOL: dict[str, Any] = {
    "name": "generate_product_info",
    "description": "Generate a product description and price suggestion for a Nigerian SME product listing.",
    "parameters": {
        "type": "object",
        "properties": {
            "description": {
                "type": "string",
                "description": (
                    "A compelling 2-3 sentence product description. Professional, warm, and trust-building. "
                    "Mention quality and value."
                ),
            },
            "price_min": {
                "type": "number",
                "description": "Suggested minimum price in Naira for this product in the Nigerian market",
            },
            "price_max": {
                "type": "number",
                "description": "Suggested maximum price in Naira for this product in the Nigerian market",
            },
        },
        "required": ["description", "price_min", "price_max"],
        "additionalProperties": False,
    },
}

SHOP_SUMMARY_PROMPT = """You are a helpful assistant that creates brief, friendly shop summaries for customers.
Be concise (2-3 sentences max). Highlight positive aspects. Use warm, inviting language.
If the shop is new or has few reviews, be encouraging.
Include specific numbers when relevant (e.g., "50+ happy customers")."""

ROAST_PROMPT = """You are "Stroke My Shop AI", a hilariously blunt Nigerian friend who roasts entrepreneurs about their shop weaknesses. You mix Pidgin English with regular English naturally. You're like a supportive but savage friend who tells it like it is.

Your personality traits:
- You use Nigerian expressions like "Na wa o!", "Chai!", "Abeg", "Omo", "Wetin be this?", "E pain me", "No vex but..."
- You're direct but not mean-spirited
- You give ACTIONABLE advice after each roast
- You're encouraging at the end

RESPONSE FORMAT:
For each issue you find, use this structure:
🔥 [ROAST]: Your savage but funny observation
💡 [WHY IT MATTERS]: Brief explanation of the impact
✅ [FIX AM]: Specific, actionable advice

End with an encouraging message in pidgin.

THINGS TO ANALYZE:
1. Product count - Too few? Too many without descriptions?
2. Product descriptions - Empty? Too short? Not compelling?
3. Product images - Missing? Low quality mentioned?
4. Pricing - Inconsistent? No prices visible?
5. Shop description - Missing or weak?
6. Shop logo/banner - Missing branding?
7. Reviews - None? Low ratings?
8. WhatsApp number - Missing contact info?

Keep your response to 3-5 issues maximum. Be specific to their actual data."""

SHORT_DESCRIPTION_CHARS = 20


@dataclass
class ProductCopy:
    description: str
    price_min: float | None
    price_max: float | None


def _number(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class AIService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._settings = get_settings()
        self._usage = FeatureUsageService(session)
        self._shops = ShopService(session)
        self._products = ProductRepository(session)
        self._orders = OrderRepository(session)

    async def generate_product_description(
        self,
        profile: Profile,
        *,
        product_name: str | None,
        category: str | None = None,
        price: Decimal | float | str | None = None,
    ) -> ProductCopy:
        product_name = (product_name or "").strip()
        if not product_name:
            raise ValidationFailed("Product name is required")

        usage = await self._usage.check_feature_usage(profile, MeteredFeature.PRODUCT_DESCRIPTION)
        if usage.blocked_by_plan:
            raise Forbidden(
                "AI features require a Pro or Business plan. Upgrade to unlock.",
                payload={"upgrade_required": True},
            )
        if not usage.can_use:
            raise RateLimited(
                "Monthly AI usage limit reached. Upgrade for more.",
                payload={"limit_reached": True},
            )

        lines = [
            "You are a product copywriter for Nigerian small businesses. "
            "Generate a compelling product description and price suggestion.",
            "",
            f"Product: {product_name}",
        ]
        if category:
            lines.append(f"Category: {category}")
        if price:
            lines.append(f"Current price: ₦{price}")
        lines += ["", "You MUST respond by calling the generate_product_info function with the results."]

        client = self._require_client()
        try:
            result = await client.complete_with_tool(
                model=self._settings.ai_description_model,
                messages=[{"role": "user", "content": "\n".join(lines)}],
                tool=PRODUCT_INFO_TOOL,
            )
        except AIGatewayError as exc:
            self._raise_upstream(
                exc,
                rate_limited="AI service rate limited. Try again in a moment.",
                out_of_credits="AI credits exhausted. Contact support.",
            )

        description = str(result.get("description") or "")
        await self._usage.increment_usage(profile, MeteredFeature.PRODUCT_DESCRIPTION)
        await self._usage.log_ai_usage(
            profile,
            MeteredFeature.PRODUCT_DESCRIPTION,
            prompt=product_name,
            result=description,
        )
        return ProductCopy(
            description=description,
            price_min=_number(result.get("price_min")),
            price_max=_number(result.get("price_max")),
        )

    async def know_this_shop(self, shop_id: int | None) -> dict[str, Any]:
        if not shop_id:
            raise ValidationFailed("Shop ID required")
        shop = await self._shops.require_shop(shop_id)
        intelligence = await self._shop_intelligence(shop)

        ai_summary = None
        if self._settings.ai_gateway_api_key:
            try:
                ai_summary = await self._get_client().complete(
                    model=self._settings.ai_default_model,
                    messages=[
                        {"role": "system", "content": SHOP_SUMMARY_PROMPT},
                        {"role": "user", "content": self._summary_prompt(intelligence)},
                    ],
                )
            except AIGatewayError as exc:
                log.warning("shop_summary_failed", shop_id=shop.id, status_code=exc.status_code, error=str(exc))
        return {**intelligence, "ai_summary": ai_summary}

    async def stroke_my_shop(self, profile: Profile, shop_id: int | None) -> AIStream:
        if not shop_id:
            raise ValidationFailed("Shop ID required")
        shop = await self._shops.require_shop(shop_id)
        if shop.owner_id != profile.id:
            raise Forbidden("You can only stroke your own shop")

        usage = await self._usage.check_feature_usage(profile, MeteredFeature.STROKE_MY_SHOP)
        if not usage.can_use:
            raise Forbidden(
                "Monthly limit reached. Upgrade to Business for unlimited roasts!",
                payload={
                    "limit_reached": True,
                    "current_usage": usage.current_usage,
                    "max_usage": usage.max_usage,
                },
            )

        shop_data = await self._roast_payload(shop)
        user_prompt = (
            "Analyze this shop and roast them (lovingly but savagely):\n\n"
            "SHOP DATA:\n"
            f"{orjson.dumps(shop_data, option=orjson.OPT_INDENT_2, default=str).decode()}\n\n"
            "Remember to be specific about their actual issues. If their shop is actually good, "
            "still find small things to improve but acknowledge they're doing well."
        )
        client = self._require_client()
        try:
            stream = await client.open_stream(
                model=self._settings.ai_default_model,
                messages=[
                    {"role": "system", "content": ROAST_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except AIGatewayError as exc:
            self._raise_upstream(
                exc,
                rate_limited="Rate limit exceeded. Please try again later.",
                out_of_credits="AI credits exhausted. Please contact support.",
            )

        await self._usage.increment_usage(profile, MeteredFeature.STROKE_MY_SHOP)
        log.info("shop_roast_started", shop_id=shop.id, profile_id=profile.id)
        return stream

    async def _shop_intelligence(self, shop: Shop) -> dict[str, Any]:
        now = utcnow()
        created_at = ensure_utc(shop.created_at) if shop.created_at else now
        months_active = math.floor((now - created_at).total_seconds() / (86400 * 30))
        reviews = await self._products.list_recent_reviews(shop.id, limit=5)
        payment_method = (shop.payment_method or "").lower()
        return {
            "shop_name": shop.shop_name,
            "description": shop.description,
            "created_at": created_at.isoformat(),
            "months_active": months_active,
            "total_products": await self._products.count_for_shop(shop.id, available_only=True),
            "completed_orders": await self._orders.count_for_shop(shop.id, status=OrderStatus.DELIVERED),
            "average_rating": float(shop.average_rating or 0),
            "total_reviews": shop.total_reviews or 0,
            "has_logo": bool(shop.logo_url),
            "has_banner": bool(shop.banner_url),
            "has_whatsapp": bool(shop.whatsapp_number),
            "accepts_paystack": "paystack" in payment_method or bool(shop.paystack_subaccount_code),
            "recent_reviews": [
                {
                    "rating": review.rating,
                    "comment": review.comment,
                    "customer_name": review.customer_name,
                    "created_at": ensure_utc(review.created_at).isoformat() if review.created_at else None,
                }
                for review in reviews
            ],
        }

    @staticmethod
    def _summary_prompt(intelligence: dict[str, Any]) -> str:
        return (
            "Create a brief customer-facing summary for this shop:\n"
            f"Shop: {intelligence['shop_name']}\n"
            f"Description: {intelligence['description'] or 'Not provided'}\n"
            f"Active for: {intelligence['months_active']} months\n"
            f"Products: {intelligence['total_products']}\n"
            f"Completed orders: {intelligence['completed_orders']}\n"
            f"Rating: {intelligence['average_rating']}/5 from {intelligence['total_reviews']} reviews\n"
            f"Has WhatsApp: {str(intelligence['has_whatsapp']).lower()}"
        )

    async def _roast_payload(self, shop: Shop) -> dict[str, Any]:
        products = await self._products.list_for_shop(shop.id)
        reviews = await self._products.list_recent_reviews(shop.id, limit=3)
        return {
            "shop_name": shop.shop_name,
            "description": shop.description or "NO DESCRIPTION SET",
            "logo_url": "Has logo" if shop.logo_url else "NO LOGO",
            "banner_url": "Has banner" if shop.banner_url else "NO BANNER",
            "whatsapp_number": shop.whatsapp_number or "NO WHATSAPP NUMBER",
            "average_rating": float(shop.average_rating or 0),
            "total_reviews": shop.total_reviews or 0,
            "product_count": len(products),
            "products_without_description": sum(
                1 for product in products
                if not product.description or len(product.description) < SHORT_DESCRIPTION_CHARS
            ),
            "products_without_images": sum(1 for product in products if not product.image_url),
            "products_out_of_stock": sum(1 for product in products if product.stock_quantity == 0),
            "sample_products": [
                {
                    "name": product.name,
                    "description": (product.description or "")[:100] or "NO DESCRIPTION",
                    "price": float(product.price),
                    "has_image": bool(product.image_url),
                }
                for product in products[:5]
            ],
            "recent_reviews": [{"rating": review.rating, "comment": review.comment} for review in reviews],
        }

    @staticmethod
    def _raise_upstream(exc: AIGatewayError, *, rate_limited: str, out_of_credits: str) -> NoReturn:
        log.error("ai_gateway_failed", status_code=exc.status_code, error=str(exc))
        if exc.status_code == 429:
            raise RateLimited(rate_limited) from exc
        if exc.status_code == 402:
            raise PaymentRequired(out_of_credits) from exc
        raise UpstreamError("AI service error") from exc

    def _require_client(self) -> AIGatewayClient:
        try:
            return self._get_client()
        except ValueError as exc:
            raise ServiceUnavailable("AI service not configured") from exc

    def _get_client(self) -> AIGatewayClient:
        return AIGatewayClient(
            api_key=self._settings.ai_gateway_api_key or "",
            base_url=self._settings.ai_gateway_base_url,
        )

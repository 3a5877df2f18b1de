from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

import orjson
from sqlalchemy.ext.asyncio import AsyncSession

from steersolo.core.clock import utcnow
from steersolo.core.config import get_settings
from steersolo.core.enums import BillingCycle
from steersolo.core.errors import NotFound, ServiceUnavailable, Unauthorized, ValidationFailed
from steersolo.core.logging import get_logger
from steersolo.core.security import verify_hmac_sha512
from steersolo.infrastructure.db.models import Profile
from steersolo.infrastructure.db.repositories import OrderRepository, ProfileRepository
from steersolo.services.money import as_decimal, to_kobo
from steersolo.services.order_service import OrderService
from steersolo.services.paystack_client import PaystackBank, PaystackClient, PaystackError
from steersolo.services.referral_service import ReferralService
from steersolo.services.shop_service import ShopService
from steersolo.services.subscription_service import SubscriptionService

log = get_logger(__name__)

PAYSTACK_EXTRA_KEY = "paystack_payment"
SUBSCRIPTION_DAYS = {BillingCycle.MONTHLY: 30, BillingCycle.YEARLY: 365}
DEFAULT_SUBSCRIPTION_DAYS = 30


@dataclass
class PaymentInitResult:
    authorization_url: str | None
    access_code: str | None
    reference: str


@dataclass
class SubscriptionPaymentResult:
    subscription_expires_at: datetime | None
    plan_id: int | None
    billing_cycle: str
    already_processed: bool = False


@dataclass
class SubaccountResult:
    subaccount_code: str
    account_name: str | None
    bank_code: str
    account_number: str


class PaymentService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._settings = get_settings()
        self._orders = OrderRepository(session)
        self._profiles = ProfileRepository(session)
        self._order_service = OrderService(session)
        self._subscriptions = SubscriptionService(session)
        self._referrals = ReferralService(session)
        self._shops = ShopService(session)

    async def initialize_subscription(
        self,
        profile: Profile,
        *,
        plan_slug: str | None = None,
        billing_cycle: BillingCycle = BillingCycle.MONTHLY,
        callback_url: str | None = None,
    ) -> PaymentInitResult:
        if not profile.email:
            raise ValidationFailed("Profile email is required for payment")

        plan = None
        if plan_slug:
            plan = await self._subscriptions.get_plan_by_slug(plan_slug)
            if plan is None or not plan.is_active:
                raise NotFound("Plan not found")

        billing_cycle = BillingCycle(billing_cycle)
        price = None
        if plan is not None:
            price = plan.price_yearly if billing_cycle == BillingCycle.YEARLY else plan.price_monthly
        amount_kobo = to_kobo(price) if price else self._settings.paystack_default_amount_kobo
        subscription_days = SUBSCRIPTION_DAYS[billing_cycle]

        payload = {
            "email": profile.email,
            "amount": amount_kobo,
            "currency": self._settings.paystack_currency,
            "callback_url": callback_url or f"{self._settings.public_site_url.rstrip('/')}/dashboard",
            "metadata": {
                "user_id": profile.id,
                "plan_id": plan.id if plan is not None else None,
                "plan_slug": plan.slug if plan is not None else None,
                "billing_cycle": billing_cycle.value,
                "subscription_days": subscription_days,
            },
        }
        client = self._require_client()
        try:
            transaction = await client.initialize_transaction(payload)
        except PaystackError as exc:
            log.warning("subscription_payment_init_failed", profile_id=profile.id, error=str(exc))
            raise ValidationFailed(str(exc) or "Payment initialization failed") from exc

        log.info(
            "subscription_payment_initialized",
            profile_id=profile.id,
            reference=transaction.reference,
            amount_kobo=amount_kobo,
        )
        return PaymentInitResult(
            authorization_url=transaction.authorization_url,
            access_code=transaction.access_code,
            reference=transaction.reference,
        )

    async def verify_subscription(self, profile: Profile, reference: str) -> SubscriptionPaymentResult:
        reference = (reference or "").strip()
        if not reference:
            raise ValidationFailed("Payment reference is required")
        if await self._subscriptions.has_reference(reference):
            return SubscriptionPaymentResult(
                subscription_expires_at=profile.subscription_expires_at,
                plan_id=profile.subscription_plan_id,
                billing_cycle=(profile.subscription_type or BillingCycle.MONTHLY).value,
                already_processed=True,
            )

        client = self._require_client()
        try:
            verification = await client.verify_transaction(reference)
        except PaystackError as exc:
            log.warning("subscription_payment_verify_failed", reference=reference, error=str(exc))
            raise ValidationFailed("Payment verification failed") from exc
        if not verification.succeeded:
            log.warning("subscription_payment_not_successful", reference=reference, status=verification.status)
            raise ValidationFailed("Payment verification failed")

        metadata = verification.metadata
        try:
            billing_cycle = BillingCycle(metadata.get("billing_cycle") or BillingCycle.MONTHLY)
        except ValueError:
            billing_cycle = BillingCycle.MONTHLY
        days = _safe_days(metadata.get("subscription_days"))
        plan = None
        if metadata.get("plan_id"):
            plan = await self._subscriptions.get_plan(int(metadata["plan_id"]))

        extension = await self._subscriptions.extend_subscription(
            profile,
            days=days,
            event_type="payment",
            plan=plan,
            billing_cycle=billing_cycle,
            amount=_kobo_to_naira(verification.amount_kobo),
            reference=reference,
        )
        await self._referrals.qualify_referral(profile)
        await self._subscriptions.award_badges(profile, await self._badge_metrics(profile))
        return SubscriptionPaymentResult(
            subscription_expires_at=extension.new_expiry_at,
            plan_id=plan.id if plan is not None else None,
            billing_cycle=billing_cycle.value,
        )

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> dict[str, Any]:
        secret = self._settings.paystack_secret_key or ""
        if not verify_hmac_sha512(secret, raw_body, signature):
            log.warning("paystack_webhook_bad_signature")
            raise Unauthorized("Invalid signature")
        try:
            event = orjson.loads(raw_body)
        except orjson.JSONDecodeError as exc:
            raise ValidationFailed("Invalid webhook payload") from exc
        if not isinstance(event, dict):
            raise ValidationFailed("Invalid webhook payload")

        data = event.get("data") or {}
        reference = str(data.get("reference") or "")
        log.info("paystack_webhook_received", webhook_event=event.get("event"), reference=reference)
        if event.get("event") != "charge.success":
            return {"received": True}

        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        if metadata.get("order_id"):
            await self._confirm_order_payment(metadata, reference)
        elif metadata.get("user_id"):
            await self._activate_subscription(metadata, reference, data.get("amount"))
        else:
            log.warning("paystack_webhook_unmatched", reference=reference)
        return {"received": True}

    async def initialize_order_payment(
        self,
        *,
        order_id: int | None,
        shop_id: int | None,
        amount: Decimal | float | int | str | None,
        customer_email: str | None,
        callback_url: str | None = None,
    ) -> PaymentInitResult:
        if not order_id or not shop_id or not amount or not customer_email:
            raise ValidationFailed("Missing required fields: order_id, shop_id, amount, customer_email")
        shop = await self._shops.require_shop(shop_id)

        reference = f"ORDER_{order_id}_{int(utcnow().timestamp() * 1000)}"
        payment_mode = "split" if shop.paystack_subaccount_code else "direct"
        payload: dict[str, Any] = {
            "email": customer_email,
            "amount": to_kobo(amount),
            "currency": self._settings.paystack_currency,
            "reference": reference,
            "metadata": {
                "order_id": order_id,
                "shop_id": shop.id,
                "payment_mode": payment_mode,
                "custom_fields": [
                    {"display_name": "Order ID", "variable_name": "order_id", "value": order_id},
                    {"display_name": "Shop", "variable_name": "shop_name", "value": shop.shop_name},
                ],
            },
        }
        if callback_url:
            payload["callback_url"] = callback_url
        if shop.paystack_subaccount_code:
            payload["subaccount"] = shop.paystack_subaccount_code
            payload["bearer"] = "subaccount"

        client = self._require_client()
        try:
            transaction = await client.initialize_transaction(payload)
        except PaystackError as exc:
            log.warning("order_payment_init_failed", order_id=order_id, error=str(exc))
            raise ValidationFailed("Failed to initialize payment", payload={"details": str(exc)}) from exc

        order = await self._orders.get_by_id(order_id)
        if order is not None and order.shop_id == shop.id:
            await self._orders.merge_extra_attrs(
                order,
                {
                    PAYSTACK_EXTRA_KEY: {
                        "reference": transaction.reference or reference,
                        "mode": payment_mode,
                        "updated_at": utcnow().isoformat(),
                    }
                },
            )
            await self._session.flush()
        log.info("order_payment_initialized", order_id=order_id, shop_id=shop.id, mode=payment_mode)
        return PaymentInitResult(
            authorization_url=transaction.authorization_url,
            access_code=transaction.access_code,
            reference=transaction.reference or reference,
        )

    async def create_subaccount(
        self,
        owner: Profile,
        *,
        shop_id: int | None,
        business_name: str | None,
        bank_code: str | None,
        account_number: str | None,
    ) -> SubaccountResult:
        if not shop_id or not business_name or not bank_code or not account_number:
            raise ValidationFailed("Missing required fields")
        shop = await self._shops.require_owned_shop(shop_id, owner)
        client = self._require_client()

        try:
            account = await client.resolve_account(account_number, bank_code)
        except PaystackError as exc:
            raise ValidationFailed(
                "Could not verify account number. Please check and try again.",
                payload={"details": str(exc)},
            ) from exc

        try:
            subaccount = await client.create_subaccount(
                {
                    "business_name": business_name,
                    "settlement_bank": bank_code,
                    "account_number": account_number,
                    "percentage_charge": self._settings.paystack_commission_percent,
                    "primary_contact_email": owner.email,
                }
            )
        except PaystackError as exc:
            raise ValidationFailed("Failed to create payment account", payload={"details": str(exc)}) from exc

        code = str(subaccount.get("subaccount_code") or "")
        if not code:
            raise ValidationFailed("Failed to create payment account")
        shop.paystack_subaccount_code = code
        shop.settlement_bank_code = bank_code
        shop.settlement_account_number = account_number
        await self._session.flush()
        log.info("paystack_subaccount_created", shop_id=shop.id, subaccount_code=code)
        return SubaccountResult(
            subaccount_code=code,
            account_name=account.get("account_name"),
            bank_code=bank_code,
            account_number=account_number,
        )

    async def list_banks(self, country: str = "nigeria") -> list[PaystackBank]:
        client = self._require_client()
        try:
            banks = await client.list_banks(country)
        except PaystackError as exc:
            raise ValidationFailed("Failed to fetch banks", payload={"details": str(exc)}) from exc
        return sorted(banks, key=lambda bank: bank.name.lower())

    async def _confirm_order_payment(self, metadata: dict[str, Any], reference: str) -> None:
        order_id = _safe_id(metadata.get("order_id"))
        order = await self._orders.get_by_id(order_id) if order_id is not None else None
        if order is None:
            log.warning("paystack_webhook_order_missing", order_id=metadata.get("order_id"), reference=reference)
            return
        await self._order_service.confirm_payment(order, reference)

    async def _activate_subscription(self, metadata: dict[str, Any], reference: str, amount: Any) -> None:
        if reference and await self._subscriptions.has_reference(reference):
            log.info("paystack_webhook_duplicate", reference=reference)
            return
        profile_id = _safe_id(metadata.get("user_id"))
        profile = await self._profiles.get_by_id(profile_id) if profile_id is not None else None
        if profile is None:
            log.warning("paystack_webhook_profile_missing", user_id=metadata.get("user_id"), reference=reference)
            return
        await self._subscriptions.extend_subscription(
            profile,
            days=DEFAULT_SUBSCRIPTION_DAYS,
            event_type="payment_webhook",
            amount=_kobo_to_naira(_safe_id(amount)),
            reference=reference or None,
        )

    async def _badge_metrics(self, profile: Profile) -> dict[str, int]:
        history = await self._subscriptions.list_history(profile)
        return {
            "referrals": await self._referrals.rewarded_count(profile),
            "subscription_payments": sum(1 for entry in history if entry.event_type.startswith("payment")),
        }

    def _require_client(self) -> PaystackClient:
        try:
            return self._get_client()
        except ValueError as exc:
            raise ServiceUnavailable("Service not configured") from exc

    def _get_client(self) -> PaystackClient:
        return PaystackClient(
            secret_key=self._settings.paystack_secret_key or "",
            base_url=self._settings.paystack_base_url,
        )


def _safe_id(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _safe_days(value: Any) -> int:
    days = _safe_id(value)
    return days if days and days > 0 else DEFAULT_SUBSCRIPTION_DAYS


def _kobo_to_naira(amount_kobo: int | None) -> Decimal | None:
    if amount_kobo is None:
        return None
    return as_decimal(amount_kobo) / 100

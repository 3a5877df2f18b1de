from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Header, Request

from steersolo.api.deps import CurrentProfile, SessionDependency
from steersolo.api.schemas import (
    InitializeOrderPaymentRequest,
    InitializeSubscriptionRequest,
    SubaccountRequest,
    VerifyPaymentRequest,
)
from steersolo.services.payment_service import PaymentService

router = APIRouter(prefix="/paystack", tags=["payments"])


@router.post("/initialize")
async def initialize_subscription(
    payload: InitializeSubscriptionRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    result = await PaymentService(session).initialize_subscription(
        profile,
        plan_slug=payload.plan_slug,
        billing_cycle=payload.billing_cycle,
        callback_url=payload.callback_url,
    )
    return {
        "authorization_url": result.authorization_url,
        "access_code": result.access_code,
        "reference": result.reference,
    }


@router.post("/verify")
async def verify_subscription(
    payload: VerifyPaymentRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    result = await PaymentService(session).verify_subscription(profile, payload.reference)
    return {
        "success": True,
        "already_processed": result.already_processed,
        "subscription_expires_at": result.subscription_expires_at,
        "plan_id": result.plan_id,
        "billing_cycle": result.billing_cycle,
    }


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    session: SessionDependency,
    x_paystack_signature: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    raw_body = await request.body()
    return await PaymentService(session).handle_webhook(raw_body, x_paystack_signature)


@router.post("/initialize-order")
async def initialize_order_payment(
    payload: InitializeOrderPaymentRequest,
    session: SessionDependency,
) -> dict[str, Any]:
    result = await PaymentService(session).initialize_order_payment(
        order_id=payload.order_id,
        shop_id=payload.shop_id,
        amount=payload.amount,
        customer_email=payload.customer_email,
        callback_url=payload.callback_url,
    )
    return {
        "success": True,
        "authorization_url": result.authorization_url,
        "access_code": result.access_code,
        "reference": result.reference,
    }


@router.post("/subaccount")
async def create_subaccount(
    payload: SubaccountRequest,
    profile: CurrentProfile,
    session: SessionDependency,
) -> dict[str, Any]:
    result = await PaymentService(session).create_subaccount(
        profile,
        shop_id=payload.shop_id,
        business_name=payload.business_name,
        bank_code=payload.bank_code,
        account_number=payload.account_number,
    )
    return {
        "success": True,
        "subaccount_code": result.subaccount_code,
        "account_name": result.account_name,
    }


@router.get("/banks")
async def list_banks(session: SessionDependency, country: str = "nigeria") -> dict[str, Any]:
    banks = await PaymentService(session).list_banks(country)
    return {"banks": [{"name": bank.name, "code": bank.code} for bank in banks]}

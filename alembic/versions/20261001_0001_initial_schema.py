"""Initial storefront schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision: str = "20261001_0001"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _enum(*values: str, length: int = 16) -> sa.Enum:
    return sa.Enum(*values, native_enum=False, length=length)


USER_ROLE = _enum("shop_owner", "customer", "admin")
BILLING_CYCLE = _enum("monthly", "yearly")
ORDER_STATUS = _enum(
    "awaiting_approval",
    "pending",
    "confirmed",
    "paid_awaiting_delivery",
    "processing",
    "out_for_delivery",
    "delivered",
    "completed",
    "cancelled",
    length=32,
)
PAYMENT_STATUS = _enum("pending", "paid", "failed", "refunded", "on_delivery")
DISCOUNT_TYPE = _enum("percentage", "fixed")
REFERRAL_STATUS = _enum("pending", "qualified", "rewarded")
AMBASSADOR_TIER = _enum("bronze", "silver", "gold")
RATE_LIMIT_KIND = _enum("phone_otp", "phone_verify")
DELIVERY_PROVIDER = _enum("terminal", "sendbox", "manual")
DELIVERY_STATUS = _enum(
    "pending",
    "confirmed",
    "picked_up",
    "in_transit",
    "out_for_delivery",
    "delivered",
    "cancelled",
    "failed",
    length=32,
)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "subscription_plans",
        *_base_columns(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("slug", sa.String(length=32), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price_monthly", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_yearly", sa.Numeric(12, 2), nullable=True),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("feature_limits", sa.JSON(), nullable=True),
        sa.Column("max_products", sa.Integer(), nullable=True),
        sa.Column("ai_features_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("priority_support", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paystack_plan_monthly", sa.String(length=64), nullable=True),
        sa.Column("paystack_plan_yearly", sa.String(length=64), nullable=True),
    )

    op.create_table(
        "profiles",
        *_base_columns(),
        sa.Column("auth_user_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("phone_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phone_verification_code", sa.String(length=128), nullable=True),
        sa.Column("phone_verification_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("role", USER_ROLE, nullable=False, server_default="shop_owner"),
        sa.Column("is_subscribed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("subscription_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_type", BILLING_CYCLE, nullable=True),
        sa.Column(
            "subscription_plan_id",
            sa.Integer(),
            sa.ForeignKey("subscription_plans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_reseller", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "shops",
        *_base_columns(),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shop_name", sa.String(length=255), nullable=False),
        sa.Column("shop_slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
        sa.Column("banner_url", sa.String(length=1024), nullable=True),
        sa.Column("whatsapp_number", sa.String(length=20), nullable=True),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("paystack_subaccount_code", sa.String(length=64), nullable=True),
        sa.Column("settlement_bank_code", sa.String(length=16), nullable=True),
        sa.Column("settlement_account_number", sa.String(length=16), nullable=True),
        sa.Column("average_rating", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_shops_owner_id", "shops", ["owner_id"])

    op.create_table(
        "featured_shops",
        *_base_columns(),
        sa.Column(
            "shop_id",
            sa.Integer(),
            sa.ForeignKey("shops.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("label", sa.String(length=64), nullable=True),
        sa.Column("tagline", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "shop_addresses",
        *_base_columns(),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("label", sa.String(length=64), nullable=True),
        sa.Column("contact_name", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=20), nullable=True),
        sa.Column("line1", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=128), nullable=False),
        sa.Column("state", sa.String(length=128), nullable=False),
        sa.Column("country", sa.String(length=8), nullable=False, server_default="NG"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("meta", sa.JSON(), nullable=True),
    )
    op.create_index("ix_shop_addresses_shop_id", "shop_addresses", ["shop_id"])

    op.create_table(
        "products",
        *_base_columns(),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("category", sa.String(length=128), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_products_shop_id", "products", ["shop_id"])

    op.create_table(
        "orders",
        *_base_columns(),
        sa.Column("public_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=20), nullable=True),
        sa.Column("delivery_address", sa.String(length=512), nullable=True),
        sa.Column("status", ORDER_STATUS, nullable=False, server_default="pending"),
        sa.Column("payment_status", PAYMENT_STATUS, nullable=False, server_default="pending"),
        sa.Column("subtotal_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="NGN"),
        sa.Column("coupon_code", sa.String(length=64), nullable=True),
        sa.Column("payment_reference", sa.String(length=128), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processing_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("out_for_delivery_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("extra_attrs", sa.JSON(), nullable=True),
    )
    op.create_index("ix_orders_shop_id", "orders", ["shop_id"])

    op.create_table(
        "order_items",
        *_base_columns(),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
    )

    op.create_table(
        "order_timelines",
        *_base_columns(),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False, server_default="status"),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("note", sa.String(length=512), nullable=True),
        sa.Column("actor", sa.String(length=64), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
    )
    op.create_index("ix_order_timelines_order_id", "order_timelines", ["order_id"])

    op.create_table(
        "reviews",
        *_base_columns(),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
    )
    op.create_index("ix_reviews_shop_id", "reviews", ["shop_id"])

    op.create_table(
        "shop_coupons",
        *_base_columns(),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("discount_type", DISCOUNT_TYPE, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_order_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("shop_id", "code", name="uq_shop_coupons_shop_code"),
    )
    op.create_index("ix_shop_coupons_shop_id", "shop_coupons", ["shop_id"])

    op.create_table(
        "referral_codes",
        *_base_columns(),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("code", sa.String(length=16), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "referrals",
        *_base_columns(),
        sa.Column("referrer_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "referred_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("referral_code", sa.String(length=16), nullable=False),
        sa.Column("status", REFERRAL_STATUS, nullable=False, server_default="pending"),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("qualified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rewarded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_referrals_referrer_id", "referrals", ["referrer_id"])

    op.create_table(
        "ambassador_tiers",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tier", AMBASSADOR_TIER, nullable=False),
        sa.Column("reward_claimed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "tier", name="uq_ambassador_tiers_user_tier"),
    )
    op.create_index("ix_ambassador_tiers_user_id", "ambassador_tiers", ["user_id"])

    op.create_table(
        "subscription_history",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column(
            "plan_id",
            sa.Integer(),
            sa.ForeignKey("subscription_plans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("plan_name", sa.String(length=128), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("reference", sa.String(length=128), nullable=True, unique=True),
        sa.Column("previous_expiry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("new_expiry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.String(length=512), nullable=True),
    )
    op.create_index("ix_subscription_history_user_id", "subscription_history", ["user_id"])

    op.create_table(
        "badges",
        *_base_columns(),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("icon", sa.String(length=32), nullable=True),
        sa.Column("requirement_type", sa.String(length=32), nullable=False),
        sa.Column("requirement_value", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "user_badges",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_id", sa.Integer(), sa.ForeignKey("badges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])

    op.create_table(
        "feature_usage",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("feature_name", sa.String(length=64), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "user_id",
            "feature_name",
            "period",
            name="uq_feature_usage_user_feature_period",
        ),
    )

    op.create_table(
        "marketing_ai_usage",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="SET NULL"), nullable=True),
        sa.Column("feature_type", sa.String(length=64), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("result", sa.Text(), nullable=True),
    )
    op.create_index("ix_marketing_ai_usage_user_id", "marketing_ai_usage", ["user_id"])

    op.create_table(
        "auth_rate_limits",
        *_base_columns(),
        sa.Column("identifier", sa.String(length=255), nullable=False),
        sa.Column("attempt_type", RATE_LIMIT_KIND, nullable=False),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("first_attempt_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("identifier", "attempt_type", name="uq_auth_rate_limits_identifier_type"),
    )

    op.create_table(
        "delivery_orders",
        *_base_columns(),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider", DELIVERY_PROVIDER, nullable=False),
        sa.Column("provider_shipment_id", sa.String(length=128), nullable=True),
        sa.Column("provider_tracking_code", sa.String(length=128), nullable=True),
        sa.Column("provider_rate_id", sa.String(length=128), nullable=True),
        sa.Column("pickup_address", sa.JSON(), nullable=True),
        sa.Column("delivery_address", sa.JSON(), nullable=True),
        sa.Column("weight_kg", sa.Numeric(8, 2), nullable=True),
        sa.Column("dimensions", sa.JSON(), nullable=True),
        sa.Column("delivery_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="NGN"),
        sa.Column("status", DELIVERY_STATUS, nullable=False, server_default="pending"),
        sa.Column("estimated_delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
    )
    op.create_index("ix_delivery_orders_order_id", "delivery_orders", ["order_id"])
    op.create_index("ix_delivery_orders_shop_id", "delivery_orders", ["shop_id"])
    op.create_index("ix_delivery_orders_provider_shipment_id", "delivery_orders", ["provider_shipment_id"])

    op.create_table(
        "delivery_tracking_events",
        *_base_columns(),
        sa.Column(
            "delivery_order_id",
            sa.Integer(),
            sa.ForeignKey("delivery_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("provider_event_id", sa.String(length=128), nullable=True),
        sa.Column("event_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("raw_payload", sa.JSON(), nullable=True),
    )
    op.create_index(
        "ix_delivery_tracking_events_delivery_order_id",
        "delivery_tracking_events",
        ["delivery_order_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_delivery_tracking_events_delivery_order_id", table_name="delivery_tracking_events")
    op.drop_table("delivery_tracking_events")

    op.drop_index("ix_delivery_orders_provider_shipment_id", table_name="delivery_orders")
    op.drop_index("ix_delivery_orders_shop_id", table_name="delivery_orders")
    op.drop_index("ix_delivery_orders_order_id", table_name="delivery_orders")
    op.drop_table("delivery_orders")

    op.drop_table("auth_rate_limits")
    op.drop_index("ix_marketing_ai_usage_user_id", table_name="marketing_ai_usage")
    op.drop_table("marketing_ai_usage")
    op.drop_table("feature_usage")
    op.drop_index("ix_user_badges_user_id", table_name="user_badges")
    op.drop_table("user_badges")
    op.drop_table("badges")
    op.drop_index("ix_subscription_history_user_id", table_name="subscription_history")
    op.drop_table("subscription_history")

    op.drop_index("ix_ambassador_tiers_user_id", table_name="ambassador_tiers")
    op.drop_table("ambassador_tiers")
    op.drop_index("ix_referrals_referrer_id", table_name="referrals")
    op.drop_table("referrals")
    op.drop_table("referral_codes")

    op.drop_index("ix_shop_coupons_shop_id", table_name="shop_coupons")
    op.drop_table("shop_coupons")
    op.drop_index("ix_reviews_shop_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_order_timelines_order_id", table_name="order_timelines")
    op.drop_table("order_timelines")
    op.drop_table("order_items")
    op.drop_index("ix_orders_shop_id", table_name="orders")
    op.drop_table("orders")

    op.drop_index("ix_products_shop_id", table_name="products")
    op.drop_table("products")
    op.drop_index("ix_shop_addresses_shop_id", table_name="shop_addresses")
    op.drop_table("shop_addresses")
    op.drop_table("featured_shops")
    op.drop_index("ix_shops_owner_id", table_name="shops")
    op.drop_table("shops")
    op.drop_table("profiles")
    op.drop_table("subscription_plans")

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field("SteerSolo API", alias="APP_NAME")
    public_site_url: str = Field("https://steersolo.com", alias="PUBLIC_SITE_URL")

    db_url: str | None = Field(
        None,
        alias="DB_URL",
        description="Full async SQLAlchemy URL; overrides the DB_* parts when set.",
    )
    db_host: str = Field("mariadb", alias="DB_HOST")
    db_port: int = Field(3306, alias="DB_PORT")
    db_user: str = Field("steersolo", alias="DB_USER")
    db_password: str = Field("steersolo", alias="DB_PASSWORD")
    db_name: str = Field("steersolo", alias="DB_NAME")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    http_host: str = Field("0.0.0.0", alias="HTTP_HOST")
    http_port: int = Field(8000, alias="HTTP_PORT")

    auth_jwt_secret: str = Field(
        "change-me",
        alias="AUTH_JWT_SECRET",
        description="Secret used to verify bearer tokens issued by the auth provider.",
    )
    auth_jwt_algorithms: List[str] = Field(default_factory=lambda: ["HS256"], alias="AUTH_JWT_ALGORITHMS")
    auth_jwt_audience: List[str] = Field(
        default_factory=list,
        alias="AUTH_JWT_AUDIENCE",
        description="Accepted token audiences (empty disables the audience check).",
    )
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    trial_days: int = Field(7, alias="TRIAL_DAYS", description="Length of the free trial granted to new shop owners.")
    free_plan_max_products: int = Field(
        5,
        alias="FREE_PLAN_MAX_PRODUCTS",
        description="Products an owner without an active subscription may list.",
    )
    referral_reward_points: int = Field(
        100,
        alias="REFERRAL_REWARD_POINTS",
        description="Points credited to a referrer once the referred user pays.",
    )

    paystack_secret_key: str | None = Field(None, alias="PAYSTACK_SECRET_KEY")
    paystack_base_url: str = Field("https://api.paystack.co", alias="PAYSTACK_BASE_URL")
    paystack_currency: str = Field("NGN", alias="PAYSTACK_CURRENCY")
    paystack_default_amount_kobo: int = Field(
        100000,
        alias="PAYSTACK_DEFAULT_AMOUNT_KOBO",
        description="Subscription charge used when a plan has no price for the billing cycle.",
    )
    paystack_commission_percent: float = Field(
        3.0,
        alias="PAYSTACK_COMMISSION_PERCENT",
        description="Platform share of split payments routed through shop subaccounts.",
    )

    termii_api_key: str | None = Field(None, alias="TERMII_API_KEY")
    termii_base_url: str = Field("https://api.ng.termii.com/api", alias="TERMII_BASE_URL")
    termii_sender_id: str = Field("SteerSolo", alias="TERMII_SENDER_ID")

    otp_secret: str = Field("steersolo-otp-secret", alias="OTP_SECRET")
    otp_ttl_seconds: int = Field(300, alias="OTP_TTL_SECONDS")
    otp_max_send_attempts: int = Field(
        5,
        alias="OTP_MAX_SEND_ATTEMPTS",
        description="Codes that may be requested per phone within the rate window.",
    )
    otp_max_verify_attempts: int = Field(3, alias="OTP_MAX_VERIFY_ATTEMPTS")
    otp_rate_window_minutes: int = Field(60, alias="OTP_RATE_WINDOW_MINUTES")
    otp_lock_minutes: int = Field(15, alias="OTP_LOCK_MINUTES")

    ai_gateway_api_key: str | None = Field(None, alias="AI_GATEWAY_API_KEY")
    ai_gateway_base_url: str = Field("https://ai.gateway.lovable.dev/v1", alias="AI_GATEWAY_BASE_URL")
    ai_default_model: str = Field("google/gemini-2.5-flash", alias="AI_DEFAULT_MODEL")
    ai_description_model: str = Field("google/gemini-2.5-flash-lite", alias="AI_DESCRIPTION_MODEL")

    terminal_api_key: str | None = Field(None, alias="TERMINAL_API_KEY")
    terminal_base_url: str = Field("https://api.terminal.africa/v1", alias="TERMINAL_BASE_URL")

    resend_api_key: str | None = Field(None, alias="RESEND_API_KEY")
    email_sender: str = Field("SteerSolo <noreply@steersolo.com>", alias="EMAIL_SENDER")

    @field_validator("auth_jwt_algorithms", "auth_jwt_audience", "cors_allow_origins", mode="before")
    @classmethod
    def split_csv(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, list):
            return value
        if not value:
            return []
        return [item.strip() for item in str(value).split(",") if item.strip()]

    @property
    def db_async_url(self) -> str:
        if self.db_url:
            return self.db_url
        return (
            f"mysql+asyncmy://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def db_sync_url(self) -> str:
        if self.db_url:
            return self.db_url.replace("+asyncmy", "+pymysql").replace("+aiosqlite", "")
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

"""Settings for the SMS verification-code service."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"

    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    service_name: str = _env_field("smscode", "SERVICE_NAME")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")

    # Delivery backend: "aliyun", "tencent", "noop" (alias "mock")
    sms_provider: str = "noop"
    sms_http_timeout_seconds: float = 10.0

    # Code life-cycle
    sms_code_ttl_seconds: int = 300
    sms_resend_interval_seconds: int = 60

    # Aliyun Dysmsapi (HMAC-SHA1 query signing)
    sms_aliyun_access_key_id: Optional[str] = None
    sms_aliyun_access_key_secret: Optional[str] = None
    sms_aliyun_sign_name: Optional[str] = None
    sms_aliyun_template_code: Optional[str] = None
    sms_aliyun_region_id: str = "cn-hangzhou"

    # Tencent Cloud SMS (TC3-HMAC-SHA256)
    sms_tencent_secret_id: Optional[str] = None
    sms_tencent_secret_key: Optional[str] = None
    sms_tencent_sdk_app_id: Optional[str] = None
    sms_tencent_sign_name: Optional[str] = None
    sms_tencent_template_id: Optional[str] = None
    sms_tencent_region: str = "ap-guangzhou"

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("sms_provider", mode="before")
    def _normalise_provider(cls, value):  # type: ignore[override]
        if value in (None, ""):
            return "noop"
        return str(value).strip().lower()

    @field_validator("obs_log_level", mode="before")
    def _normalise_level(cls, value):  # type: ignore[override]
        return str(value or "INFO").upper()

    def is_prod(self) -> bool:
        return self.environment.lower() in ("prod", "production", "live")

    def is_dev(self) -> bool:
        return self.environment.lower() in ("dev", "development")


settings = Settings()

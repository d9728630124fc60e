"""Application configuration using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RWD_",
        extra="ignore",
    )

    environment: Literal["local", "test", "staging", "production"] = Field(
        default="local",
        validation_alias="rwd_env",
    )
    service_name: str = Field(default="daily-rewards-core")
    database_url: str = Field(default="sqlite:///./data/rewards.db")
    sql_echo: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    claim_cooldown_hours: float = Field(default=20.0, gt=0)
    delivery_max_attempts: int = Field(default=3, ge=1)
    reconcile_max_attempts: int = Field(default=2, ge=1)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    stuck_threshold_hours: float = Field(default=3.0, gt=0)
    health_window_hours: float = Field(default=24.0, gt=0)
    health_degraded_stuck_count: int = Field(default=10)
    health_critical_stuck_count: int = Field(default=50)
    default_server_id: str = Field(default="main")

    delivery_queue_size: int = Field(default=1000, ge=1)
    delivery_workers: int = Field(default=1, ge=1)
    delivery_inline: bool = Field(default=False)
    delivery_channel_url: str | None = Field(default=None)
    delivery_channel_token: str | None = Field(default=None)
    delivery_channel_timeout: float = Field(default=10.0, gt=0)

    cron_api_key: str | None = Field(default=None)
    alert_webhook_url: str | None = Field(default=None)
    alert_topic_arn: str | None = Field(default=None)

    vip_plan_tiers: Dict[str, str] = Field(
        default_factory=lambda: {
            "0b81cf06-ed81-49ce-8680-8f9d9edc932e": "vip-basic",
            "3994ff53-f110-4c8f-a492-ad988528006f": "vip-plus",
        }
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator(
        "delivery_channel_url",
        "delivery_channel_token",
        "cron_api_key",
        "alert_webhook_url",
        "alert_topic_arn",
        mode="before",
    )
    @classmethod
    def empty_string_to_none(cls, value: str | None) -> str | None:
        if value == "":
            return None
        return value


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings instance."""

    return AppSettings()

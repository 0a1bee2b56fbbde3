import json
import logging
from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

logger = logging.getLogger(__name__)

_DEV_ENVS = {"local", "test"}


@dataclass(frozen=True)
class RecordStoreConfig:
    base_url: str
    api_key: str
    timeout_seconds: float = 10.0
    verify_tls: bool = True

    @property
    def rest_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/rest/v1"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = Field(default="local", alias="ENV")

    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # ─────────────────────────────────────────────
    # Hosted record store (REST)
    # ─────────────────────────────────────────────
    record_store_url: str = Field(alias="RECORD_STORE_URL")
    record_store_api_key: str = Field(alias="RECORD_STORE_API_KEY")
    record_store_timeout_seconds: float = Field(default=10.0, alias="RECORD_STORE_TIMEOUT_SECONDS")
    record_store_verify_tls: bool = Field(default=True, alias="RECORD_STORE_VERIFY_TLS")

    # ─────────────────────────────────────────────
    # Landing pages / app links
    # ─────────────────────────────────────────────
    site_url: str = Field(default="https://shizlist.co", alias="SITE_URL")
    app_deep_link_scheme: str = Field(default="co.shizlist.app", alias="APP_DEEP_LINK_SCHEME")
    app_store_url: str = Field(
        default="https://apps.apple.com/app/shizlist/id123456789",
        alias="APP_STORE_URL",
    )
    play_store_url: str = Field(
        default="https://play.google.com/store/apps/details?id=co.shizlist.app",
        alias="PLAY_STORE_URL",
    )

    @field_validator("record_store_url", "site_url", mode="before")
    @classmethod
    def normalize_base_url(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        return value.strip().rstrip("/")

    @field_validator("app_deep_link_scheme", mode="before")
    @classmethod
    def normalize_scheme(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        cleaned = value.strip()
        if cleaned.endswith("://"):
            cleaned = cleaned[: -len("://")]
        return cleaned

    @model_validator(mode="after")
    def validate_record_store_settings(self) -> "Settings":
        if not self.record_store_url:
            raise ValueError("RECORD_STORE_URL must not be empty")
        if self.record_store_timeout_seconds <= 0:
            raise ValueError("RECORD_STORE_TIMEOUT_SECONDS must be greater than zero")
        if not self.record_store_verify_tls:
            if self.env not in _DEV_ENVS:
                raise ValueError("RECORD_STORE_VERIFY_TLS=false is only allowed when ENV is local or test")
            logger.warning("TLS verification for the record store is disabled (ENV=%s)", self.env)
        return self

    def record_store_config(self) -> RecordStoreConfig:
        return RecordStoreConfig(
            base_url=self.record_store_url,
            api_key=self.record_store_api_key,
            timeout_seconds=self.record_store_timeout_seconds,
            verify_tls=self.record_store_verify_tls,
        )

    def cors_origin_list(self) -> list[str]:
        raw = (self.cors_origins or "").strip()
        if not raw:
            return []

        values: list[str]
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                values = [str(v) for v in parsed if isinstance(v, str)]
            else:
                values = [raw]
        else:
            values = raw.split(",")

        normalized: list[str] = []
        seen: set[str] = set()
        for value in values:
            cleaned = value.strip().strip("\"'")
            if not cleaned:
                continue
            # CORS origins are scheme + host (+ optional port) with no path slash.
            if cleaned != "*" and cleaned.endswith("/"):
                cleaned = cleaned.rstrip("/")
            if cleaned in seen:
                continue
            seen.add(cleaned)
            normalized.append(cleaned)

        return normalized

settings = Settings()

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    log_level: str = "INFO"
    base_url: str = "http://localhost:8000"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./tripspend.db"
    database_echo: bool = False
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    base_currency: str = "BRL"
    default_timezone: str = "America/Sao_Paulo"

    fx_api_url: str = "https://api.frankfurter.app"
    fx_api_timeout_s: float = 10.0
    fx_sync_currencies: list[str] = ["USD", "EUR", "GBP"]
    fx_default_rates: dict[str, Decimal] = {
        "USD": Decimal("5.50"),
        "EUR": Decimal("6.00"),
        "GBP": Decimal("7.00"),
    }

    storage_backend: Literal["local", "s3"] = "local"
    local_storage_path: Path = Path(".local_storage")

    s3_endpoint_url: str | None = None
    s3_region: str | None = None
    s3_bucket: str = "travel-expenses"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_presigned_url_exp_s: int = 7 * 24 * 60 * 60

    max_upload_bytes: int = 10 * 1024 * 1024

    init_tenant_name: str | None = None
    init_admin_email: str | None = None
    init_admin_password: str | None = None

    access_token_exp_minutes: int = 60 * 24


settings = Settings()

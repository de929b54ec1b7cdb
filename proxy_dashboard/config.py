"""Proxy dashboard configuration loaded from environment variables."""

from __future__ import annotations

import json
from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field, AliasChoices


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # Upstream proxy
    proxy_url: str = Field(default="http://localhost:8081", alias="PROXY_URL")
    proxy_api_key: str = Field(default="", alias="PROXY_API_KEY")
    metrics_endpoint: str = Field(default="metrics", alias="METRICS_ENDPOINT")
    info_endpoint: str = Field(default="info", alias="INFO_ENDPOINT")
    jsonrpc_version: str = Field(default="1.0.0", alias="JSONRPC_VERSION")
    request_timeout_seconds: float = Field(default=10.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Sampling
    poll_interval_seconds: float = Field(
        default=5.0,
        validation_alias=AliasChoices("POLL_INTERVAL_SECONDS", "POLL_INTERVAL"),
    )
    window_capacity: int = Field(default=60, alias="WINDOW_CAPACITY")
    counter_reset_policy: Literal["rebaseline", "clamp"] = Field(
        default="rebaseline", alias="COUNTER_RESET_POLICY"
    )
    rate_clock: Literal["nominal", "measured"] = Field(default="nominal", alias="RATE_CLOCK")

    # Reports
    ipfs_gateway_url: str = Field(
        default="https://cloudflare-ipfs.com/ipfs/", alias="IPFS_GATEWAY_URL"
    )

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    cors_origins: str = Field(default='["http://localhost:3000"]', alias="CORS_ORIGINS")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    rate_limit: str = Field(default="100/minute", alias="RATE_LIMIT")

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"production", "prod"}

    @property
    def cors_origins_list(self) -> list[str]:
        raw = (self.cors_origins or "").strip()
        if not raw:
            return []

        # Supports JSON list format and comma-separated format.
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [str(origin).strip() for origin in parsed if str(origin).strip()]
            except json.JSONDecodeError:
                pass

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


settings = Settings()

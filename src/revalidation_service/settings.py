"""Application settings."""
from __future__ import annotations

import warnings
from functools import lru_cache
from typing import Literal, cast

from pydantic import AnyHttpUrl, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_SECRETS = frozenset({
    "",
    "secret",
    "changeme",
    "test",
    "dev-revalidation-secret",
})

_ALL_PAGE_KINDS = "home,post,category,sitemap,path"


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Core configuration for the Revalidation Service."""

    model_config = SettingsConfigDict(
        env_file=(".env", "env.example"),
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    env: Literal["development", "staging", "production"] = "development"
    app_name: str = "revalidation-service"
    host: str = "0.0.0.0"
    port: int = 8010

    # Shared secret expected in ?secret= on /invalidate
    revalidation_secret: SecretStr = SecretStr("dev-revalidation-secret")

    # Page regeneration endpoint of the hosting platform
    regeneration_url: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "http://localhost:3000/api/regenerate")
    )
    regeneration_secret: SecretStr | None = None
    regeneration_attempt_timeout_seconds: float = 8.0
    regeneration_retry_backoff_str: str = Field(default="0.5,1.5", alias="REGENERATION_RETRY_BACKOFF")
    regeneration_max_concurrency: int = 4
    batch_timeout_seconds: float = 30.0
    deployed_page_kinds_str: str = Field(default=_ALL_PAGE_KINDS, alias="DEPLOYED_PAGE_KINDS")

    # Hygraph content graph, used to look up a post's categories
    hygraph_endpoint: AnyHttpUrl | None = None
    hygraph_token: SecretStr | None = None
    content_graph_timeout_seconds: float = 3.0

    # Audit log / webhook de-duplication
    debounce_window_seconds: float = 10.0
    audit_retention_seconds: float = 600.0
    audit_max_entries: int = 1000

    # Background worker
    worker_interval_seconds: float = 60.0

    otel_exporter_endpoint: AnyHttpUrl | None = None

    # Use a string field to avoid JSON parsing by pydantic-settings
    cors_allowed_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ALLOWED_ORIGINS",
    )

    @property
    def cors_allowed_origins(self) -> list[str]:
        return _split_csv(self.cors_allowed_origins_str)

    @property
    def regeneration_retry_backoff_seconds(self) -> tuple[float, ...]:
        return tuple(float(item) for item in _split_csv(self.regeneration_retry_backoff_str))

    @property
    def deployed_page_kinds(self) -> frozenset[str]:
        return frozenset(_split_csv(self.deployed_page_kinds_str))

    @model_validator(mode="after")
    def _warn_insecure_secret(self) -> "Settings":
        """Emit a loud warning when the revalidation secret is a known insecure default."""
        if self.revalidation_secret.get_secret_value() in _INSECURE_SECRETS:
            warnings.warn(
                "SECURITY WARNING: revalidation_secret is empty or a known insecure default. "
                "Set REVALIDATION_SECRET env variable to a strong, random value before "
                "deploying to staging/production.",
                stacklevel=1,
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()

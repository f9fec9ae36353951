from __future__ import annotations

import re

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


class Settings(BaseSettings):
    SHOPIFY_STORE_DOMAIN: str
    SHOPIFY_STOREFRONT_ACCESS_TOKEN: str
    SHOPIFY_STOREFRONT_API_VERSION: str = "2026-01"
    SHOPIFY_REQUEST_TIMEOUT_SECONDS: float = 20.0

    STOREFRONT_DEFAULT_LANGUAGE: str = "EN"
    STOREFRONT_DEFAULT_COUNTRY: str = "US"
    STOREFRONT_RECOMMENDED_PRODUCTS_COUNT: int = 12

    SESSION_SECRET: str
    SESSION_COOKIE_NAME: str = "session"
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30

    @field_validator("SHOPIFY_STORE_DOMAIN")
    @classmethod
    def validate_store_domain(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not _SHOP_DOMAIN_RE.fullmatch(normalized):
            raise ValueError("SHOPIFY_STORE_DOMAIN must be a valid *.myshopify.com domain")
        return normalized

    @field_validator("STOREFRONT_DEFAULT_LANGUAGE", "STOREFRONT_DEFAULT_COUNTRY")
    @classmethod
    def validate_locale_code(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not re.fullmatch(r"[A-Z]{2}", normalized):
            raise ValueError("Storefront language and country must be two-letter codes")
        return normalized

    @field_validator("SESSION_SECRET")
    @classmethod
    def validate_session_secret(cls, value: str) -> str:
        if len(value) < 16:
            raise ValueError("SESSION_SECRET must be at least 16 characters")
        return value

    @property
    def storefront_graphql_url(self) -> str:
        return f"https://{self.SHOPIFY_STORE_DOMAIN}/api/{self.SHOPIFY_STOREFRONT_API_VERSION}/graphql.json"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()

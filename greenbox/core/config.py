"""Storefront checkout configuration"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Greenbox Storefront Services"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8002

    # Storefront services (shipping rates, discount codes, order placement)
    storefront_services_url: str = "http://localhost:8002"
    request_timeout: float = 30.0

    # Pricing
    currency: str = "USD"
    tax_rate: Decimal = Decimal("0.03")
    tax_jurisdiction: str = "Default"
    free_shipping_threshold: Optional[Decimal] = None

    # Cart
    min_item_quantity: int = 1
    max_item_quantity: int = 10
    cart_merge_policy: Literal["append", "merge"] = "append"

    class Config:
        env_file = "config/.env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def free_shipping_enabled(self) -> bool:
        """Check if a free shipping threshold is configured"""
        return self.free_shipping_threshold is not None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

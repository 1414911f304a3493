"""
Configuration module for loading environment variables.
All renewal, cache and vendor credentials are read from the process environment.
"""
import os
from typing import List


SUPPORTED_PROVIDERS = ("azure", "ec2")


def _split_list(raw: str) -> List[str]:
    """Split a comma separated env value into a list of non-empty, lower-cased items."""
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class Config:
    """Application configuration loaded from environment variables."""

    # Providers whose product info is cached and renewed
    PROVIDERS: List[str] = _split_list(os.getenv("PRODUCTINFO_PROVIDERS", "azure,ec2"))

    # Renewal Configuration
    RENEWAL_INTERVAL_SECONDS: int = int(os.getenv("RENEWAL_INTERVAL_SECONDS", "86400"))  # 24 hours
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "172800"))  # 2 renewal cycles
    CACHE_NAMESPACE: str = os.getenv("CACHE_NAMESPACE", "banzaicloud.com/recommender").strip("/")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Azure Configuration
    AZURE_SUBSCRIPTION_ID: str = os.getenv("AZURE_SUBSCRIPTION_ID", "")
    AZURE_TENANT_ID: str = os.getenv("AZURE_TENANT_ID", "")
    AZURE_CLIENT_ID: str = os.getenv("AZURE_CLIENT_ID", "")
    AZURE_CLIENT_SECRET: str = os.getenv("AZURE_CLIENT_SECRET", "")
    AZURE_RATE_CARD_OFFER: str = os.getenv("AZURE_RATE_CARD_OFFER", "MS-AZR-0003p")

    # AWS Configuration
    AWS_PRICING_REGION: str = os.getenv("AWS_PRICING_REGION", "us-east-1")

    # Seconds a region's on-the-fly prices are reused on cache misses
    CURRENT_PRICES_TTL_SECONDS: int = int(os.getenv("CURRENT_PRICES_TTL_SECONDS", "300"))

    # Timeout applied to every vendor API call
    VENDOR_TIMEOUT_SECONDS: float = float(os.getenv("VENDOR_TIMEOUT_SECONDS", "60"))

    @classmethod
    def validate(cls) -> None:
        """
        Validates that required configuration values are set.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        if not cls.PROVIDERS:
            raise ValueError("PRODUCTINFO_PROVIDERS must name at least one provider")
        unknown = [p for p in cls.PROVIDERS if p not in SUPPORTED_PROVIDERS]
        if unknown:
            raise ValueError(
                f"Unsupported provider(s) {', '.join(unknown)}; "
                f"choose from {', '.join(SUPPORTED_PROVIDERS)}"
            )

        if cls.RENEWAL_INTERVAL_SECONDS <= 0:
            raise ValueError("RENEWAL_INTERVAL_SECONDS must be positive")
        # Entries must outlive a failed cycle so stale prices stay servable
        if cls.CACHE_TTL_SECONDS < cls.RENEWAL_INTERVAL_SECONDS:
            raise ValueError("CACHE_TTL_SECONDS must not be shorter than RENEWAL_INTERVAL_SECONDS")

        if "azure" in cls.PROVIDERS:
            for name in ("AZURE_SUBSCRIPTION_ID", "AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"):
                if not getattr(cls, name):
                    raise ValueError(f"{name} is required when the azure provider is enabled")


config = Config()

"""
Application configuration using Pydantic Settings.

Infrastructure switching (record store, auth, payment gateway) is controlled
by environment variables.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # "dev" accepts dev-user-* tokens and skips the usage gate
    EXECUTION_MODE: Literal["live", "dev"] = "live"

    # ===========================================
    # Record Store
    # ===========================================
    # "sqlite": SQLAlchemy-backed key/value table
    # "memory": process-local dictionary (tests, demos)
    RECORD_STORE: Literal["sqlite", "memory"] = "sqlite"
    DATABASE_URL: str = "sqlite+aiosqlite:///./marketplace.db"

    # ===========================================
    # Auth
    # ===========================================
    AUTH_PROVIDER: Literal["mock", "local"] = "mock"
    LOCAL_JWT_SECRET: str = ""
    LOCAL_JWT_ISSUER: str = "marketplace-local"
    LOCAL_JWT_EXPIRE_MINUTES: int = 60 * 24

    # ===========================================
    # Payments
    # ===========================================
    # "ledger": escrow/release bookkeeping kept in the record store
    # "http": external payment service reached over HTTPS
    PAYMENT_PROVIDER: Literal["ledger", "http"] = "ledger"
    PAYMENT_API_BASE: str = ""
    PAYMENT_API_KEY: str = ""
    PAYMENT_TIMEOUT_SECONDS: float = 10.0

    # ===========================================
    # Subscription limits (milestones created per calendar month)
    # ===========================================
    MILESTONE_LIMIT_FREE: int = 10
    MILESTONE_LIMIT_PRO: int = 100
    # None means unlimited
    MILESTONE_LIMIT_ENTERPRISE: Optional[int] = None

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @property
    def is_dev_mode(self) -> bool:
        """Check if dev-mode shortcuts are enabled."""
        return self.EXECUTION_MODE == "dev"

    def milestone_limit_for(self, tier: str) -> Optional[int]:
        """Monthly milestone quota for a subscription tier (unknown tiers fall back to free)."""
        limits = {
            "free": self.MILESTONE_LIMIT_FREE,
            "pro": self.MILESTONE_LIMIT_PRO,
            "enterprise": self.MILESTONE_LIMIT_ENTERPRISE,
        }
        return limits.get(tier, self.MILESTONE_LIMIT_FREE)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()

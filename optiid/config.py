"""
Configuration management for the OptiId registry service.

Loads and validates environment variables for the application.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    # Service Configuration
    APP_NAME: str = "OptiId Registry Service"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8020

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./optiid.db"
    DATABASE_POOL_TIMEOUT: int = 30
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Capability Signing
    SIGNER_PRIVATE_KEY: Optional[str] = None
    SIGNER_PUBLIC_KEY: Optional[str] = None
    SIGNING_ALGORITHM: str = "ES256"
    SIGNING_DOMAIN_NAME: str = "OptiPermissionedRegistry"
    SIGNING_DOMAIN_VERSION: str = "1.0.0"
    SIGNING_CHAIN_ID: int = 10
    REGISTRY_ADDRESS: str = "0x0000000000000000000000000000000000000000"
    AUTHORIZATION_TTL_SECONDS: int = 3600

    # Registry
    ADMIN_ADDRESS: str = "0x0000000000000000000000000000000000000001"
    ADMIN_API_KEY: str = "change-me-admin-key"
    MAX_DOMAINS_PER_USER: int = 5
    REGISTRATION_FEE: int = 100_000_000_000_000  # 0.0001 ether in wei
    SIGNED_REGISTRATION_REQUIRES_FEE: bool = False
    DOMAIN_SUFFIX: str = "opti.id"

    # Allocation
    ALLOCATION_MAX_ATTEMPTS: int = 10
    PROBE_MAX_RETRIES: int = 2
    ALLOCATE_RATE_LIMIT_REQUESTS: int = 20
    ALLOCATE_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # CORS Configuration (comma-separated string)
    CORS_ORIGINS: str = "http://localhost:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()

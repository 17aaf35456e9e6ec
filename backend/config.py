"""
Configuration management for the Storefront Fulfillment API.

Loads settings from .env via pydantic-settings.

Security notes:
    - validate_production_settings() enforces strict CORS and a JWT secret in production
    - Proof uploads are size-capped by MAX_PROOF_BYTES
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/storefront.db"
    sql_echo: bool = False

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── Auth (JWT) ──────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "storefront-api"
    jwt_access_ttl_minutes: int = 60

    # ── Payment proofs ──────────────────────────────────────────────
    proof_storage_dir: str = "data/proofs"
    proof_url_prefix: str = "/proofs"
    max_proof_bytes: int = 5 * 1024 * 1024  # 5 MB
    blocking_io_workers: int = 4

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to verify access tokens for every order and payment endpoint."
                )
            if self.sql_echo:
                raise ValueError("SQL_ECHO must be false in production.")
            logger.info("Production settings validated")
        else:
            warnings = []
            if not self.jwt_secret:
                warnings.append("JWT_SECRET is empty (authenticated endpoints will return 500)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(w)


# Global settings instance
settings = Settings()

"""Application configuration using Pydantic BaseSettings."""

import logging
import os
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("homegame.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application Metadata
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    # Comma-separated list of allowed origins, or "*" for all origins
    CORS_ORIGINS: str = ""

    # Settlement
    SETTLEMENT_EPSILON: float = 0.01
    DEFAULT_WRITE_OFF_THRESHOLD: float = 1.0

    # Chip distribution search
    MIN_CHIPS_PER_PLAYER: int = 15
    MAX_CHIPS_PER_PLAYER: int = 35
    PREFERRED_TOTAL_CHIPS: int = 25
    MIN_SMALL_BLIND_RATIO: float = 0.4
    CHIP_VALUE_TOLERANCE: float = 0.001
    SOLVER_CACHE_SIZE: int = 128

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        """Normalize LOG_LEVEL and fall back to INFO for unknown names."""
        level = str(v or "INFO").upper()
        if level not in logging.getLevelNamesMapping():
            logger.warning("Unknown LOG_LEVEL %r, using INFO", v)
            return "INFO"
        return level

    @field_validator("MIN_SMALL_BLIND_RATIO")
    @classmethod
    def validate_small_blind_ratio(cls, v):
        if not 0 <= v <= 1:
            raise ValueError("MIN_SMALL_BLIND_RATIO must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def validate_chip_bounds(self):
        """Chip count bounds must describe a non-empty range containing the preferred count."""
        if self.MIN_CHIPS_PER_PLAYER < 2:
            raise ValueError("MIN_CHIPS_PER_PLAYER must be at least 2")
        if self.MIN_CHIPS_PER_PLAYER > self.MAX_CHIPS_PER_PLAYER:
            raise ValueError(
                "MIN_CHIPS_PER_PLAYER must not exceed MAX_CHIPS_PER_PLAYER"
            )
        if not (
            self.MIN_CHIPS_PER_PLAYER
            <= self.PREFERRED_TOTAL_CHIPS
            <= self.MAX_CHIPS_PER_PLAYER
        ):
            logger.warning(
                "PREFERRED_TOTAL_CHIPS=%d lies outside %d..%d; "
                "best-solution selection will fall back to the closest stack",
                self.PREFERRED_TOTAL_CHIPS,
                self.MIN_CHIPS_PER_PLAYER,
                self.MAX_CHIPS_PER_PLAYER,
            )
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Return list of allowed CORS origins.

        If CORS_ORIGINS is empty, allows the local development frontends
        but returns empty in production.

        Set CORS_ORIGINS environment variable to a comma-separated list
        of allowed origins, or "*" for all origins.
        """
        if self.CORS_ORIGINS:
            if self.CORS_ORIGINS == "*":
                return ["*"]
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

        is_production = os.getenv("HOMEGAME_ENVIRONMENT") == "production"
        if is_production:
            logger.warning(
                "CORS_ORIGINS not configured in production. "
                "Set CORS_ORIGINS environment variable."
            )
            return []

        # Development defaults
        return [
            "http://localhost:3000",
            "http://localhost:8081",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8081",
        ]


# Global settings instance
settings = Settings()

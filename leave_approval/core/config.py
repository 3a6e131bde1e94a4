"""
Configuration management for the leave approval service
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


APPROVAL_LEVEL_MANAGER = "MANAGER"
APPROVAL_LEVEL_ADMIN = "ADMIN"
APPROVAL_LEVEL_KINDS = (APPROVAL_LEVEL_MANAGER, APPROVAL_LEVEL_ADMIN)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="SQLAlchemy database URL")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key used to verify bearer tokens")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    # Approval chain policy: ordered levels, each MANAGER or ADMIN
    APPROVAL_CHAIN: str = Field(
        default="MANAGER,ADMIN",
        description="Comma-separated approval levels in order (MANAGER = manager of the previous position, ADMIN = admin approver)",
    )

    # Day counting: calendar days unless Sundays are treated as weekly off
    LEAVE_EXCLUDE_SUNDAYS: bool = Field(
        default=False,
        description="If True, Sundays inside a leave range are not counted and half-day leave on a Sunday is rejected",
    )

    # Balance defaults for a lazily created (user, year) ledger row
    DEFAULT_SICK_LEAVE: float = Field(default=12.0, ge=0)
    DEFAULT_CASUAL_LEAVE: float = Field(default=12.0, ge=0)
    DEFAULT_EARNED_LEAVE: float = Field(default=15.0, ge=0)
    DEFAULT_COMP_OFF: float = Field(default=2.0, ge=0)
    DEFAULT_PATERNITY_MATERNITY: float = Field(default=0.0, ge=0)
    DEFAULT_BIRTHDAY_LEAVE: float = Field(default=1.0, ge=0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("APPROVAL_CHAIN")
    @classmethod
    def validate_approval_chain(cls, v: str) -> str:
        """Validate APPROVAL_CHAIN: non-empty, only known level kinds"""
        levels = [level.strip().upper() for level in v.split(",") if level.strip()]
        if not levels:
            raise ValueError("APPROVAL_CHAIN must contain at least one level")
        unknown = [level for level in levels if level not in APPROVAL_LEVEL_KINDS]
        if unknown:
            raise ValueError(f"APPROVAL_CHAIN levels must be one of {list(APPROVAL_LEVEL_KINDS)}, got {unknown}")
        return ",".join(levels)

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def get_approval_chain_levels(self) -> List[str]:
        """Ordered approval level kinds, e.g. ['MANAGER', 'ADMIN']"""
        return [level for level in self.APPROVAL_CHAIN.split(",") if level]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()

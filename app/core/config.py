"""
Configuration management for the leave rules engine
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="PostgreSQL database URL")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token signing")

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

    # Leave policy. Read once into LeavePolicy; engine code never touches these directly.
    LEAVE_VACATION_DAYS_PER_PERIOD: int = Field(default=12, description="Vacation business days per semi-annual period")
    LEAVE_WEEKEND_LEAVES_PER_PERIOD: int = Field(default=2, description="Thursday/Sunday leaves per semi-annual period")
    LEAVE_MAX_CONSECUTIVE_DAYS: int = Field(default=5, description="Hard ceiling on business days per request")
    LEAVE_EXTENDED_THRESHOLD_DAYS: int = Field(
        default=3,
        description="Requests longer than this many business days need management approval"
    )
    LEAVE_MATERNITY_MAX_DAYS: int = Field(default=90, description="Maternity grant (60 basic pay + 30 remote)")
    LEAVE_TEAM_CAPACITY_RATIO: float = Field(
        default=0.49,
        description="Maximum fraction of a team on approved leave on any day"
    )
    LEAVE_WORKING_WEEKDAYS: str = Field(
        default="6,0,1,2,3",
        description="Working weekdays as Python weekday numbers (Mon=0 .. Sun=6); default Sunday-Thursday"
    )
    LEAVE_WEEKEND_WORKING_WEEKDAYS: str = Field(
        default="3,6",
        description="Edge days of the working week tracked as weekend leave; default Thursday and Sunday"
    )
    LEAVE_SICK_ANNUAL_DAYS: int = Field(default=10, description="Sick leave business days per calendar year")
    LEAVE_OTHER_ANNUAL_DAYS: int = Field(default=5, description="'Other' leave business days per calendar year")

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

    @field_validator("LEAVE_TEAM_CAPACITY_RATIO")
    @classmethod
    def validate_capacity_ratio(cls, v: float) -> float:
        """Capacity ratio must be a fraction"""
        if not 0 < v <= 1:
            raise ValueError("LEAVE_TEAM_CAPACITY_RATIO must be in (0, 1]")
        return v

    @field_validator("LEAVE_WORKING_WEEKDAYS", "LEAVE_WEEKEND_WORKING_WEEKDAYS")
    @classmethod
    def validate_weekdays(cls, v: str) -> str:
        """Weekday lists are comma-separated integers 0..6"""
        try:
            days = [int(part) for part in v.split(",") if part.strip()]
        except ValueError:
            raise ValueError("weekday lists must be comma-separated integers")
        if not days or any(d < 0 or d > 6 for d in days):
            raise ValueError("weekday numbers must be between 0 (Monday) and 6 (Sunday)")
        return v

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

    def get_weekday_set(self, value: str) -> frozenset:
        """Parse one of the weekday list settings"""
        return frozenset(int(part) for part in value.split(",") if part.strip())


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()

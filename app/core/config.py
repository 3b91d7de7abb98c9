from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "OTP Authentication Service"
    API_V1_PREFIX: str = "/api/v1"

    DATABASE_URL: str = Field(default="sqlite:///./otp_auth.db")
    REDIS_URL: Optional[str] = Field(default=None)
    REDIS_SOCKET_TIMEOUT: float = Field(default=2.0, gt=0)

    JWT_SECRET_KEY: SecretStr
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30, ge=1)

    OTP_LENGTH: int = Field(default=6, ge=4, le=10)
    OTP_TTL_SECONDS: int = Field(default=120, ge=1)
    OTP_RATE_LIMIT_MAX: int = Field(default=3, ge=1)
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=600, ge=1)

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE_PATH: Optional[str] = Field(default=None)
    ENVIRONMENT: str = Field(default="development")

    @field_validator("REDIS_URL", "LOG_FILE_PATH", mode="before")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def access_token_ttl_seconds(self) -> int:
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60


load_dotenv(ENV_FILE)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()

# runmate/core/config.py
"""
Centralized configuration.

All environment variables are read here (plus .env via python-dotenv),
so the rest of the app never touches os.environ directly.
"""

from __future__ import annotations

from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./runmate.db")
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=20)
    DB_POOL_TIMEOUT: int = Field(default=60)
    DB_POOL_RECYCLE: int = Field(default=1800)

    # JWT
    JWT_SECRET: Optional[str] = Field(default=None)
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30 * 24 * 60)  # 30 days

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")  # json | text

    # CORS, comma-separated
    CORS_ORIGINS: str = Field(default="http://localhost:3000,http://127.0.0.1:3000")

    # Background job: run events -> completed once their date has passed
    AUTO_COMPLETE_ENABLED: bool = Field(default=False)
    AUTO_COMPLETE_INTERVAL_MINUTES: int = Field(default=60, ge=1)
    AUTO_COMPLETE_GRACE_HOURS: int = Field(default=6, ge=0)

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from decimal import Decimal
from pydantic import field_validator

class Settings(BaseSettings):
    # Ledger store settings
    STORE_BACKEND: str = 'memory'  # memory | sql
    DATABASE_URL: str = 'sqlite:///./ledger.db'

    # Redis settings (Celery broker for change notifications)
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Change notifier
    NOTIFIER_BACKEND: str = 'null'  # null | log | celery

    # Money
    CURRENCY: str = 'TRY'
    MONEY_QUANTUM: Decimal = Decimal('1')  # Minor unit used for rounding (TRY amounts round to whole units)

    # Credit policy
    CREDIT_WARNING_RATIO: Decimal = Decimal('0.9')
    CREDIT_CRITICAL_RATIO: Decimal = Decimal('0.1')
    DEFAULT_PAYMENT_TERMS: int = 30

    # Audit
    DEFAULT_ACTOR: str = 'System'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("STORE_BACKEND", "NOTIFIER_BACKEND", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'").strip()
        return v

    @field_validator("MONEY_QUANTUM")
    @classmethod
    def validate_quantum(cls, v):
        if v <= 0:
            raise ValueError("MONEY_QUANTUM must be positive")
        return v

settings = Settings()

import os
from functools import lru_cache

from pydantic import BaseModel, Field


class Settings(BaseModel):
    COINGECKO_API_BASE: str = "https://api.coingecko.com/api/v3"
    COINBOARD_VS_CURRENCY: str = "usd"
    COINBOARD_HTTP_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    COINBOARD_FETCH_STAGGER_SEC: float = Field(default=1.0, ge=0)
    COINBOARD_FETCH_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    COINBOARD_SLOT_COUNT: int = Field(default=10, ge=1)
    COINBOARD_FAVORITES_PATH: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            name: os.getenv(name)
            for name in cls.model_fields
        }
        # unset or blank variables fall back to field defaults
        values = {k: v.strip() for k, v in raw.items() if v is not None and v.strip()}
        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(True, alias="LOG_JSON")

    # poker settlement historically skipped the consolidation pass
    expense_consolidate: bool = Field(True, alias="EXPENSE_CONSOLIDATE")
    poker_consolidate: bool = Field(False, alias="POKER_CONSOLIDATE")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

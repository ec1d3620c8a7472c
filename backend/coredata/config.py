import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    storage_backend: Literal["memory", "json", "database"] = Field("json", alias="COREDATA_STORAGE_BACKEND")
    data_dir: Path = Field(Path("data"), alias="COREDATA_DATA_DIR")
    default_profile: Optional[str] = Field(None, alias="COREDATA_PROFILE")
    database_url: Optional[str] = Field(None, alias="COREDATA_DATABASE_URL")
    database_pool_size: int = Field(5, alias="COREDATA_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(5, alias="COREDATA_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="COREDATA_DATABASE_ECHO")
    max_active_goals: int = Field(3, ge=1, alias="COREDATA_MAX_ACTIVE_GOALS")
    event_log_limit: int = Field(1000, ge=1, alias="COREDATA_EVENT_LOG_LIMIT")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid core data configuration: {exc}") from exc

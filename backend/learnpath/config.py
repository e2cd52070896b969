import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    generation_model: str = Field("gpt-4o-mini", alias="LEARNPATH_MODEL")
    generation_max_attempts: int = Field(3, ge=1, alias="LEARNPATH_GENERATION_MAX_ATTEMPTS")
    generation_retry_delay_ms: int = Field(1000, ge=0, alias="LEARNPATH_GENERATION_RETRY_DELAY_MS")
    generation_retry_backoff: float = Field(2.0, ge=1.0, alias="LEARNPATH_GENERATION_RETRY_BACKOFF")
    cache_version: str = Field("1.0.0", alias="LEARNPATH_CACHE_VERSION")
    cache_expiry_hours: float = Field(24, gt=0, alias="LEARNPATH_CACHE_EXPIRY_HOURS")
    cache_capacity_bytes: int = Field(5 * 1024 * 1024, gt=0, alias="LEARNPATH_CACHE_CAPACITY_BYTES")
    cache_namespace: str = Field("learnpath:", alias="LEARNPATH_CACHE_NAMESPACE")
    cache_backend: Literal["memory", "database"] = Field("memory", alias="LEARNPATH_CACHE_BACKEND")
    database_url: Optional[str] = Field(None, alias="LEARNPATH_DATABASE_URL")
    database_echo: bool = Field(False, alias="LEARNPATH_DATABASE_ECHO")
    quiz_exact_counts: bool = Field(False, alias="LEARNPATH_QUIZ_EXACT_COUNTS")
    quiz_multiple_choice_count: int = Field(3, ge=0, alias="LEARNPATH_QUIZ_MULTIPLE_CHOICE_COUNT")
    quiz_open_ended_count: int = Field(2, ge=0, alias="LEARNPATH_QUIZ_OPEN_ENDED_COUNT")
    quiz_strict_options: bool = Field(True, alias="LEARNPATH_QUIZ_STRICT_OPTIONS")
    roadmap_total_weeks: int = Field(12, ge=1, alias="LEARNPATH_ROADMAP_TOTAL_WEEKS")
    youtube_api_key: Optional[str] = Field(None, alias="LEARNPATH_YOUTUBE_API_KEY")
    udemy_client_id: Optional[str] = Field(None, alias="LEARNPATH_UDEMY_CLIENT_ID")
    udemy_client_secret: Optional[str] = Field(None, alias="LEARNPATH_UDEMY_CLIENT_SECRET")
    edx_client_id: Optional[str] = Field(None, alias="LEARNPATH_EDX_CLIENT_ID")
    edx_client_secret: Optional[str] = Field(None, alias="LEARNPATH_EDX_CLIENT_SECRET")
    lookup_timeout_ms: int = Field(8000, ge=100, alias="LEARNPATH_LOOKUP_TIMEOUT_MS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True

    @property
    def cache_expiry_ms(self) -> int:
        return int(self.cache_expiry_hours * 60 * 60 * 1000)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[call-arg]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid learnpath configuration: {exc}") from exc

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ANTHROPIC_API_KEY", "CLAUDE_API_KEY")
    )
    openai_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("OPENAI_API_KEY", "OPENAI_API_KEY_ENV_VAR")
    )
    anthropic_model: str = Field(default="claude-3-5-sonnet-latest", alias="SEO_FIX_ANTHROPIC_MODEL")
    openai_model: str = Field(default="gpt-4o-mini", alias="SEO_FIX_OPENAI_MODEL")
    database_path: str = Field(default="data/seo_autofix.db", alias="SEO_FIX_DATABASE_PATH")
    fixed_cooldown_days: int = Field(default=7, alias="SEO_FIX_COOLDOWN_DAYS")
    scan_limit: int = Field(default=10, alias="SEO_FIX_SCAN_LIMIT")
    fetch_page_size: int = Field(default=50, alias="SEO_FIX_FETCH_PAGE_SIZE")
    reanalysis_delay_seconds: float = Field(default=10.0, alias="SEO_FIX_REANALYSIS_DELAY")
    http_timeout_seconds: float = Field(default=30.0, alias="SEO_FIX_HTTP_TIMEOUT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

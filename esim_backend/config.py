from functools import lru_cache
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Plan finder settings, read from the environment and .env."""

    environment: str = Field(default="development", alias="NODE_ENV")

    # LLM Configuration
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    llm_model: str = Field(default="gpt-3.5-turbo", alias="LLM_MODEL")
    llm_temperature: float = Field(default=1.0, alias="LLM_TEMPERATURE")
    llm_timeout: int = Field(default=60, alias="LLM_TIMEOUT")

    # Retrieval Configuration
    embedding_model: str = Field(default="text-embedding-3-large", alias="EMBEDDING_MODEL")
    retrieval_k: int = Field(default=4, alias="RETRIEVAL_K")
    enable_retrieval: bool = Field(
        default=True,
        alias="ENABLE_RETRIEVAL",
        description="Enrich the extraction prompt with documents from the semantic index"
    )

    # Supabase Configuration
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_anon_key: str | None = Field(default=None, alias="SUPABASE_ANON_KEY")
    supabase_timeout: float = Field(default=5.0, alias="SUPABASE_TIMEOUT")

    # Catalog layout
    countries_table: str = Field(default="countries", alias="COUNTRIES_TABLE")
    plans_table: str = Field(default="besim", alias="PLANS_TABLE")
    documents_table: str = Field(default="documents", alias="DOCUMENTS_TABLE")
    match_documents_function: str = Field(default="match_documents", alias="MATCH_DOCUMENTS_FUNCTION")
    plan_price_column: str = Field(
        default="idr_price",
        alias="PLAN_PRICE_COLUMN",
        description="Currency-specific price column of the plans table (e.g. idr_price, usd_price)"
    )
    match_display_limit: int = Field(
        default=3,
        alias="MATCH_DISPLAY_LIMIT",
        ge=1,
        le=10,
        description="Maximum number of plans returned for exact and close matches"
    )

    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        alias="ALLOWED_ORIGINS"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, v):
        """ALLOWED_ORIGINS is a comma-separated list; empty means any origin."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v or ["*"]

    @property
    def supabase_enabled(self) -> bool:
        """URL and anon key both set."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def openai_enabled(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()

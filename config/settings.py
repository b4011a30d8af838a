"""
Settings Configuration
Pydantic-based configuration for sources, ranking, LLM, quota and pipeline
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class SourceSettings(BaseSettings):
    """News source fetching"""
    request_timeout: float = Field(default=10.0, description="Per-request HTTP timeout (seconds)")
    retention_days: int = Field(default=7, description="Items older than this are dropped at fetch time")
    max_items_per_feed: int = Field(default=50, description="Maximum items read from one feed")
    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        description="User-Agent sent to feeds and article pages",
    )

    class Config:
        env_prefix = "SOURCES_"


class AggregatorSettings(BaseSettings):
    """Fan-out aggregation"""
    source_timeout_sec: float = Field(default=15.0, description="Upper bound for a single source")
    deduplicate: bool = Field(default=False, description="Drop cross-source duplicates by canonical key")

    class Config:
        env_prefix = "AGGREGATOR_"


class RankingSettings(BaseSettings):
    """Relevance ranking"""
    candidate_limit: int = Field(default=5, description="Ranked candidates handed to the generator")
    require_topical_match: bool = Field(
        default=True, description="Drop articles without keyword, topic or category signal"
    )
    strategy: str = Field(default="category_aware", description="category_aware, keyword or llm_assisted")

    class Config:
        env_prefix = "RANKING_"


class LLMSettings(BaseSettings):
    """Generative text service"""
    provider: str = Field(default="openai", description="LLM provider (OpenAI-compatible endpoints)")
    model_name: Optional[str] = Field(default=None, description="Model name; provider default when empty")
    api_key: Optional[str] = Field(default=None, description="API key")
    base_url: Optional[str] = Field(default=None, description="Custom OpenAI-compatible endpoint")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    max_tokens: int = Field(default=1000, description="Maximum generated tokens")
    timeout: float = Field(default=60.0, description="Client timeout (seconds)")

    class Config:
        env_prefix = "LLM_"


class QuotaSettings(BaseSettings):
    """Generation quota"""
    free_generations: int = Field(default=10, description="Starting balance for unknown users")
    ledger_path: Optional[str] = Field(default=None, description="JSON ledger file; in-memory when empty")
    history_path: Optional[str] = Field(default=None, description="JSON-lines generation history; in-memory when empty")

    class Config:
        env_prefix = "QUOTA_"


class PipelineSettings(BaseSettings):
    """End-to-end request handling"""
    request_timeout_sec: float = Field(default=180.0, description="Overall budget for one request")
    generation_timeout_sec: float = Field(default=90.0, description="Budget for one generator call")
    content_max_chars: int = Field(default=3000, description="Page text sent to the generator for URL requests")

    class Config:
        env_prefix = "PIPELINE_"


class Settings(BaseSettings):
    """Top-level settings aggregating every section"""

    sources: SourceSettings = Field(default_factory=SourceSettings)
    aggregator: AggregatorSettings = Field(default_factory=AggregatorSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings after applying an optional .env file"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            sources=SourceSettings(),
            aggregator=AggregatorSettings(),
            ranking=RankingSettings(),
            llm=LLMSettings(),
            quota=QuotaSettings(),
            pipeline=PipelineSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Global settings singleton"""
    return Settings.load_from_env_file()


def get_source_settings() -> SourceSettings:
    return get_settings().sources


def get_aggregator_settings() -> AggregatorSettings:
    return get_settings().aggregator


def get_ranking_settings() -> RankingSettings:
    return get_settings().ranking


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_quota_settings() -> QuotaSettings:
    return get_settings().quota


def get_pipeline_settings() -> PipelineSettings:
    return get_settings().pipeline

"""
Configuration Management Module
"""
from .settings import (
    AggregatorSettings,
    LLMSettings,
    PipelineSettings,
    QuotaSettings,
    RankingSettings,
    Settings,
    SourceSettings,
    get_aggregator_settings,
    get_llm_settings,
    get_pipeline_settings,
    get_quota_settings,
    get_ranking_settings,
    get_settings,
    get_source_settings,
)

__all__ = [
    "AggregatorSettings",
    "LLMSettings",
    "PipelineSettings",
    "QuotaSettings",
    "RankingSettings",
    "Settings",
    "SourceSettings",
    "get_aggregator_settings",
    "get_llm_settings",
    "get_pipeline_settings",
    "get_quota_settings",
    "get_ranking_settings",
    "get_settings",
    "get_source_settings",
]

"""Multi-source news aggregation."""

from .content_policy import DEFAULT_BLOCKLIST, ContentPolicy
from .news_aggregator import AggregationResult, NewsAggregator, canonical_key, dedup_articles

__all__ = [
    "AggregationResult",
    "ContentPolicy",
    "DEFAULT_BLOCKLIST",
    "NewsAggregator",
    "canonical_key",
    "dedup_articles",
]

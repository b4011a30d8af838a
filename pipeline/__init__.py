"""Ranking, validation and profile construction."""

from .categories import (
    DEFAULT_CATEGORIES,
    DEFAULT_REGISTRY,
    GENERAL_CATEGORY,
    Category,
    CategoryRegistry,
)
from .hashtags import DEFAULT_HASHTAG, suggest_hashtags, to_hashtag
from .profile import (
    LLMChannelProfiler,
    ProfileSource,
    heuristic_profile,
    is_channel_reference,
    keyword_profile_for_channel,
)
from .scoring import (
    CategoryAwareStrategy,
    KeywordOverlapStrategy,
    LLMAssistedStrategy,
    Ranker,
    ScoringContext,
    ScoringStrategy,
    build_strategy,
    select_diverse,
)
from .validation import DEFAULT_REFUSAL_PHRASES, OutputValidator, PhraseRefusalDetector, RefusalPredicate

__all__ = [
    "Category",
    "CategoryAwareStrategy",
    "CategoryRegistry",
    "DEFAULT_CATEGORIES",
    "DEFAULT_HASHTAG",
    "DEFAULT_REFUSAL_PHRASES",
    "DEFAULT_REGISTRY",
    "GENERAL_CATEGORY",
    "KeywordOverlapStrategy",
    "LLMAssistedStrategy",
    "LLMChannelProfiler",
    "OutputValidator",
    "PhraseRefusalDetector",
    "ProfileSource",
    "Ranker",
    "RefusalPredicate",
    "ScoringContext",
    "ScoringStrategy",
    "build_strategy",
    "heuristic_profile",
    "is_channel_reference",
    "keyword_profile_for_channel",
    "select_diverse",
    "suggest_hashtags",
    "to_hashtag",
]

"""Core contracts and shared types."""

from .contracts import (
    Article,
    FailureReason,
    GenerationRecord,
    GenerationRequest,
    GenerationResult,
    Profile,
    QuotaBalance,
    ScoredArticle,
    SourceError,
)

__all__ = [
    "Article",
    "FailureReason",
    "GenerationRecord",
    "GenerationRequest",
    "GenerationResult",
    "Profile",
    "QuotaBalance",
    "ScoredArticle",
    "SourceError",
]

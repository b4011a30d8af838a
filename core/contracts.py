"""Canonical data contracts for the content generation pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe_terms(values: Any) -> List[str]:
    output: List[str] = []
    seen = set()
    for raw in list(values or []):
        token = str(raw or "").strip()
        key = token.lower()
        if not token or key in seen:
            continue
        seen.add(key)
        output.append(token)
    return output


class Article(BaseModel):
    """News item as produced by a source; immutable once fetched."""

    model_config = ConfigDict(frozen=True)

    title: str
    summary: str = ""
    url: str
    source: str
    published_at: datetime = Field(default_factory=_utcnow)
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    content: str = ""

    @field_validator("published_at", mode="after")
    @classmethod
    def _aware_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def text(self) -> str:
        """Title and summary, the text every filter and scorer looks at."""
        return f"{self.title} {self.summary}".strip()


class ScoredArticle(BaseModel):
    """Article with a relevance score computed against one profile."""

    model_config = ConfigDict(frozen=True)

    article: Article
    score: float
    category: str
    signals: Dict[str, float] = Field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.article.url

    @property
    def source(self) -> str:
        return self.article.source


class Profile(BaseModel):
    """Target audience description used to score articles."""

    model_config = ConfigDict(frozen=True)

    main_topic: str
    subtopics: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    content_angle: str = ""
    category: Optional[str] = None

    @field_validator("main_topic", "content_angle", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("subtopics", "keywords", mode="before")
    @classmethod
    def _clean_terms(cls, value: Any) -> List[str]:
        return _dedupe_terms(value)

    @field_validator("category", mode="before")
    @classmethod
    def _optional_category(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None

    @classmethod
    def from_keywords(cls, keywords: str) -> "Profile":
        """Keyword-only profile for the "topic instead of channel" request shape."""
        text = " ".join(str(keywords or "").split())
        return cls(main_topic=text, keywords=text.split())


class FailureReason(str, Enum):
    """Why a generation request did not produce a post."""

    NO_CANDIDATES = "no_candidates"
    CANDIDATES_EXHAUSTED = "candidates_exhausted"
    GENERATOR_MISCONFIGURED = "generator_misconfigured"
    QUOTA_EXHAUSTED = "quota_exhausted"
    LEDGER_ERROR = "ledger_error"
    CONTENT_UNAVAILABLE = "content_unavailable"
    INVALID_REQUEST = "invalid_request"
    TIMED_OUT = "timed_out"


class GenerationRequest(BaseModel):
    """One pipeline run: who asked, for what profile, over which candidates."""

    user_id: str
    profile: Profile
    topic: str = ""
    candidates: List[ScoredArticle] = Field(default_factory=list)

    @field_validator("user_id", mode="before")
    @classmethod
    def _non_empty_user(cls, value: Any) -> str:
        text = str(value if value is not None else "").strip()
        if not text:
            raise ValueError("user_id is required")
        return text


class GenerationResult(BaseModel):
    """Terminal value of a pipeline run: Success{text, article} or Failure{reason}."""

    ok: bool
    text: str = ""
    article: Optional[Article] = None
    reason: Optional[FailureReason] = None
    message: str = ""
    attempts: int = 0
    hashtags: List[str] = Field(default_factory=list)

    @classmethod
    def success(
        cls,
        text: str,
        article: Article,
        *,
        attempts: int = 1,
        hashtags: Optional[List[str]] = None,
    ) -> "GenerationResult":
        return cls(ok=True, text=text, article=article, attempts=attempts, hashtags=list(hashtags or []))

    @classmethod
    def failure(cls, reason: FailureReason, message: str = "", *, attempts: int = 0) -> "GenerationResult":
        return cls(ok=False, reason=reason, message=message, attempts=attempts)

    def raise_for_failure(self) -> None:
        """Raise the matching ``ContentBotError`` for a failure; no-op on success."""
        if self.ok:
            return
        from utils import exceptions as errors

        message = self.message or (self.reason.value if self.reason else "generation failed")
        if self.reason == FailureReason.NO_CANDIDATES:
            raise errors.NoCandidatesError(message)
        if self.reason == FailureReason.CANDIDATES_EXHAUSTED:
            raise errors.CandidatesExhaustedError(message, attempts=self.attempts)
        if self.reason == FailureReason.GENERATOR_MISCONFIGURED:
            raise errors.GeneratorConfigError(message)
        if self.reason == FailureReason.QUOTA_EXHAUSTED:
            raise errors.QuotaExhaustedError(message)
        if self.reason == FailureReason.LEDGER_ERROR:
            raise errors.LedgerError(message)
        if self.reason == FailureReason.CONTENT_UNAVAILABLE:
            raise errors.ContentFetchError(message)
        raise errors.ContentBotError(message, {"reason": self.reason.value if self.reason else None})


class GenerationRecord(BaseModel):
    """History entry appended after a committed generation."""

    user_id: str
    topic: str
    created_at: datetime = Field(default_factory=_utcnow)


class QuotaBalance(BaseModel):
    """Per-user remaining generations and lifetime usage."""

    user_id: str
    available: int = 0
    total_used: int = 0


class SourceError(BaseModel):
    """Soft failure of a single source during aggregation."""

    source: str
    message: str
    timed_out: bool = False

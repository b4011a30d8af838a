from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core import Article, FailureReason, GenerationRequest, GenerationResult, Profile
from pipeline.hashtags import DEFAULT_HASHTAG, suggest_hashtags, to_hashtag
from utils.exceptions import (
    CandidatesExhaustedError,
    ContentBotError,
    NoCandidatesError,
    QuotaExhaustedError,
)


def test_article_timestamps_are_utc() -> None:
    naive = Article(title="t", url="https://e.com/1", source="S", published_at=datetime(2026, 1, 1, 12))
    shifted = Article(
        title="t",
        url="https://e.com/2",
        source="S",
        published_at=datetime(2026, 1, 1, 15, tzinfo=timezone(timedelta(hours=3))),
    )

    assert naive.published_at == datetime(2026, 1, 1, 12, tzinfo=timezone.utc)
    assert shifted.published_at.utcoffset() == timedelta(0)
    assert shifted.published_at.hour == 12


def test_article_is_immutable() -> None:
    article = Article(title="t", url="https://e.com/1", source="S")
    with pytest.raises(ValidationError):
        article.title = "changed"


def test_profile_from_keywords_normalizes_terms() -> None:
    profile = Profile.from_keywords("  robot   Robot automation ")
    assert profile.main_topic == "robot Robot automation"
    assert profile.keywords == ["robot", "automation"]
    assert profile.category is None


def test_request_requires_user() -> None:
    with pytest.raises(ValidationError):
        GenerationRequest(user_id="  ", profile=Profile.from_keywords("robot"))


def test_raise_for_failure() -> None:
    GenerationResult.success("post", Article(title="t", url="https://e.com", source="S")).raise_for_failure()

    with pytest.raises(NoCandidatesError):
        GenerationResult.failure(FailureReason.NO_CANDIDATES).raise_for_failure()
    with pytest.raises(CandidatesExhaustedError) as exc_info:
        GenerationResult.failure(FailureReason.CANDIDATES_EXHAUSTED, "all refused", attempts=3).raise_for_failure()
    assert exc_info.value.attempts == 3
    with pytest.raises(QuotaExhaustedError):
        GenerationResult.failure(FailureReason.QUOTA_EXHAUSTED).raise_for_failure()
    with pytest.raises(ContentBotError) as exc_info:
        GenerationResult.failure(FailureReason.TIMED_OUT, "slow").raise_for_failure()
    assert exc_info.value.details == {"reason": "timed_out"}


def test_hashtags() -> None:
    assert to_hashtag("Machine learning") == "#MachineLearning"
    assert to_hashtag("robots") == "#robots"
    assert to_hashtag(" -- ") == ""

    article = Article(
        title="t",
        url="https://e.com",
        source="S",
        tags=["Robots", "robots", "machine learning", "!!", "drones", "space"],
    )
    assert suggest_hashtags(article) == ["#Robots", "#MachineLearning", "#drones"]
    assert suggest_hashtags(Article(title="t", url="https://e.com", source="S")) == [DEFAULT_HASHTAG]

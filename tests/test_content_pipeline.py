from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from aggregator import ContentPolicy, NewsAggregator
from core import Article, FailureReason, Profile
from orchestrator import ContentPipeline
from pipeline import ProfileSource, Ranker
from sources.base import NewsSource
from sources.web import WebPage
from storage import GenerationHistory, InMemoryQuotaLedger
from utils.exceptions import ContentFetchError, ProfileError, SourceFetchError


def _recent(hours: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=hours)


class _StaticSource(NewsSource):
    def __init__(self, name: str, articles: List[Article]) -> None:
        self._name = name
        self._articles = articles
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch_articles(self) -> List[Article]:
        self.calls += 1
        return list(self._articles)


class _BrokenSource(NewsSource):
    @property
    def name(self) -> str:
        return "Broken"

    async def fetch_articles(self) -> List[Article]:
        raise SourceFetchError("timeout talking to feed", source="Broken")


class _FakeGenerator:
    def __init__(self, replies: List[str] = None, delay: float = 0.0) -> None:
        self.replies = list(replies or [])
        self.delay = delay
        self.profiles: List[Profile] = []
        self.articles: List[Article] = []
        self.content_calls: List[tuple] = []

    def _next(self) -> str:
        return self.replies.pop(0) if self.replies else "⚡️ Generated post"

    async def generate(self, profile: Profile, article: Article) -> str:
        self.profiles.append(profile)
        self.articles.append(article)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._next()

    async def generate_from_content(self, title: str, body: str) -> str:
        self.content_calls.append((title, body))
        return self._next()


class _CountingLedger(InMemoryQuotaLedger):
    def __init__(self, free_generations: int = 10) -> None:
        super().__init__(free_generations=free_generations)
        self.debits = 0

    def debit(self, user_id: str) -> bool:
        self.debits += 1
        return super().debit(user_id)


def _robotics_sources():
    alpha = _StaticSource(
        "Alpha",
        [
            Article(title="Local bakery wins regional prize", url="https://alpha.example.com/1", source="Alpha", published_at=_recent(2)),
            Article(title="New robot brings automation to warehouses", url="https://alpha.example.com/2", source="Alpha", published_at=_recent(3)),
            Article(title="City council approves budget", url="https://alpha.example.com/3", source="Alpha", published_at=_recent(1)),
            Article(title="Weather turns cold this weekend", url="https://alpha.example.com/4", source="Alpha", published_at=_recent(4)),
            Article(title="Museum opens new wing", url="https://alpha.example.com/5", source="Alpha", published_at=_recent(5)),
        ],
    )
    gamma = _StaticSource(
        "Gamma",
        [
            Article(title="Theatre season announced", url="https://gamma.example.com/1", source="Gamma", published_at=_recent(2)),
            Article(title="Factory automation with a robot arm cuts costs", url="https://gamma.example.com/2", source="Gamma", published_at=_recent(5)),
            Article(title="Farmers market returns", url="https://gamma.example.com/3", source="Gamma", published_at=_recent(1)),
        ],
    )
    return [alpha, _BrokenSource(), gamma]


def _pipeline(
    generator: _FakeGenerator,
    ledger: _CountingLedger,
    *,
    sources=None,
    history: GenerationHistory = None,
    profile_source: ProfileSource = None,
    fetch_page=None,
    request_timeout: float = None,
) -> ContentPipeline:
    aggregator = NewsAggregator(
        sources if sources is not None else _robotics_sources(),
        policy=ContentPolicy(),
        source_timeout_sec=5,
        deduplicate=False,
    )
    return ContentPipeline(
        aggregator,
        Ranker(),
        generator,
        ledger,
        history=history,
        profile_source=profile_source,
        fetch_page=fetch_page,
        candidate_limit=5,
        request_timeout=request_timeout,
        generation_timeout=5,
    )


@pytest.mark.asyncio
async def test_robotics_scenario_charges_once_and_returns_first_match() -> None:
    ledger = _CountingLedger()
    history = GenerationHistory()
    generator = _FakeGenerator()
    pipeline = _pipeline(generator, ledger, history=history)
    profile = Profile(main_topic="robotics", keywords=["robot", "automation"])

    result = await pipeline.generate_for_profile("u1", profile, topic="robotics")

    assert result.ok
    assert result.article.url == "https://alpha.example.com/2"
    assert result.hashtags == ["#news"]
    assert ledger.debits == 1
    assert ledger.get_balance("u1") == 9
    assert [r.topic for r in history.list_for_user("u1")] == ["robotics"]


@pytest.mark.asyncio
async def test_generate_by_keywords_uses_keyword_profile() -> None:
    generator = _FakeGenerator()
    pipeline = _pipeline(generator, _CountingLedger())

    result = await pipeline.generate_by_keywords("u1", "  robot   automation ")

    assert result.ok
    assert generator.profiles[0].keywords == ["robot", "automation"]
    assert pipeline.history.list_for_user("u1")[0].topic == "robot automation"


@pytest.mark.asyncio
async def test_quota_is_checked_before_any_work() -> None:
    sources = _robotics_sources()
    generator = _FakeGenerator()
    ledger = _CountingLedger(free_generations=0)
    pipeline = _pipeline(generator, ledger, sources=sources)

    result = await pipeline.generate_by_keywords("u1", "robot")

    assert result.reason == FailureReason.QUOTA_EXHAUSTED
    assert sources[0].calls == 0
    assert generator.articles == []
    assert ledger.debits == 0


@pytest.mark.asyncio
async def test_blank_keywords_are_invalid() -> None:
    result = await _pipeline(_FakeGenerator(), _CountingLedger()).generate_by_keywords("u1", "   ")

    assert result.reason == FailureReason.INVALID_REQUEST


@pytest.mark.asyncio
async def test_blank_user_is_invalid() -> None:
    result = await _pipeline(_FakeGenerator(), _CountingLedger()).generate_by_keywords(" ", "robot")

    assert result.reason == FailureReason.INVALID_REQUEST


@pytest.mark.asyncio
async def test_nothing_relevant_returns_no_candidates() -> None:
    ledger = _CountingLedger()
    result = await _pipeline(_FakeGenerator(), ledger).generate_by_keywords("u1", "submarine")

    assert result.reason == FailureReason.NO_CANDIDATES
    assert ledger.debits == 0


@pytest.mark.asyncio
async def test_all_sources_failing_returns_no_candidates() -> None:
    ledger = _CountingLedger()
    pipeline = _pipeline(_FakeGenerator(), ledger, sources=[_BrokenSource(), _BrokenSource()])

    result = await pipeline.generate_by_keywords("u1", "robot")

    assert result.reason == FailureReason.NO_CANDIDATES
    assert ledger.get_balance("u1") == 10


@pytest.mark.asyncio
async def test_all_candidates_refused_leaves_balance_untouched() -> None:
    ledger = _CountingLedger()
    generator = _FakeGenerator(replies=["I cannot discuss this"] * 10)
    pipeline = _pipeline(generator, ledger)

    result = await pipeline.generate_by_keywords("u1", "robot automation")

    assert result.reason == FailureReason.CANDIDATES_EXHAUSTED
    assert result.attempts == len(generator.articles) == 2
    assert ledger.debits == 0
    assert ledger.get_balance("u1") == 10


@pytest.mark.asyncio
async def test_request_timeout_returns_timed_out_without_debit() -> None:
    ledger = _CountingLedger()
    pipeline = _pipeline(_FakeGenerator(delay=1.0), ledger, request_timeout=0.1)

    result = await pipeline.generate_by_keywords("u1", "robot")

    assert result.reason == FailureReason.TIMED_OUT
    assert ledger.debits == 0


@pytest.mark.asyncio
async def test_quota_monotonicity_over_mixed_requests() -> None:
    ledger = _CountingLedger(free_generations=3)
    generator = _FakeGenerator(replies=["ok 1", "I cannot discuss this", "I cannot discuss this", "ok 2", "ok 3", "ok 4"])
    pipeline = _pipeline(generator, ledger)

    outcomes = []
    for _ in range(5):
        before = ledger.get_balance("u1")
        result = await pipeline.generate_by_keywords("u1", "robot automation")
        after = ledger.get_balance("u1")
        outcomes.append(result.ok)
        assert after >= 0
        assert before - after == (1 if result.ok else 0)

    assert outcomes.count(True) == 3
    assert ledger.get_balance("u1") == 0


@pytest.mark.asyncio
async def test_concurrent_requests_cannot_both_spend_last_unit() -> None:
    ledger = _CountingLedger(free_generations=1)
    pipeline = _pipeline(_FakeGenerator(delay=0.05), ledger)

    results = await asyncio.gather(
        pipeline.generate_by_keywords("u1", "robot"),
        pipeline.generate_by_keywords("u1", "robot"),
    )

    assert sum(1 for r in results if r.ok) == 1
    assert ledger.get_balance("u1") == 0
    assert ledger.get_quota("u1").total_used == 1


@pytest.mark.asyncio
async def test_url_request_generates_from_page_content() -> None:
    ledger = _CountingLedger()
    generator = _FakeGenerator()
    history = GenerationHistory()

    async def fetch_page(url: str) -> WebPage:
        return WebPage(url=url, title="Edge Playbook", text="Step 1: canary.", image_url="https://img.example.com/a.png")

    pipeline = _pipeline(generator, ledger, history=history, fetch_page=fetch_page)
    url = "https://blog.example.com/posts/edge-deployment-playbook-for-large-fleets"

    result = await pipeline.generate_by_url_or_channel("u1", url)

    assert result.ok
    assert generator.content_calls == [("Edge Playbook", "Step 1: canary.")]
    assert result.article.image_url == "https://img.example.com/a.png"
    assert result.article.source == "blog.example.com"
    assert ledger.debits == 1
    assert history.list_for_user("u1")[0].topic.startswith("link: https://blog.example.com/")


@pytest.mark.asyncio
async def test_url_request_page_failure_is_content_unavailable() -> None:
    ledger = _CountingLedger()

    async def fetch_page(url: str) -> WebPage:
        raise ContentFetchError("404", url=url)

    pipeline = _pipeline(_FakeGenerator(), ledger, fetch_page=fetch_page)

    result = await pipeline.generate_by_url_or_channel("u1", "https://example.com/missing")

    assert result.reason == FailureReason.CONTENT_UNAVAILABLE
    assert ledger.debits == 0


@pytest.mark.asyncio
async def test_url_request_refused_output_is_exhausted() -> None:
    ledger = _CountingLedger()

    async def fetch_page(url: str) -> WebPage:
        return WebPage(url=url, title="Page", text="Body")

    pipeline = _pipeline(_FakeGenerator(replies=["I can't create this"]), ledger, fetch_page=fetch_page)

    result = await pipeline.generate_by_url_or_channel("u1", "https://example.com/page")

    assert result.reason == FailureReason.CANDIDATES_EXHAUSTED
    assert ledger.debits == 0


class _FixedProfileSource(ProfileSource):
    def __init__(self, profile: Profile = None, error: Exception = None) -> None:
        self.profile = profile
        self.error = error
        self.identifiers: List[str] = []

    async def build_profile(self, identifier: str) -> Profile:
        self.identifiers.append(identifier)
        if self.error is not None:
            raise self.error
        return self.profile


@pytest.mark.asyncio
async def test_channel_request_uses_channel_profile() -> None:
    generator = _FakeGenerator()
    profile = Profile(main_topic="robotics", keywords=["robot"], content_angle="industry insider")
    source = _FixedProfileSource(profile=profile)
    pipeline = _pipeline(generator, _CountingLedger(), profile_source=source)

    result = await pipeline.generate_by_url_or_channel("u1", "https://t.me/robotics_daily")

    assert result.ok
    assert source.identifiers == ["https://t.me/robotics_daily"]
    assert generator.profiles[0].content_angle == "industry insider"
    assert pipeline.history.list_for_user("u1")[0].topic == "@robotics_daily"


@pytest.mark.asyncio
async def test_channel_profile_failure_degrades_to_keyword_profile() -> None:
    generator = _FakeGenerator()
    source = _FixedProfileSource(error=ProfileError("channel is private"))
    sources = [
        _StaticSource(
            "Alpha",
            [Article(title="Robotics daily digest: robot dogs", url="https://alpha.example.com/r", source="Alpha")],
        )
    ]
    pipeline = _pipeline(generator, _CountingLedger(), sources=sources, profile_source=source)

    result = await pipeline.generate_by_url_or_channel("u1", "@robotics_daily")

    assert result.ok
    assert generator.profiles[0].keywords == ["robotics", "daily"]


@pytest.mark.asyncio
async def test_unrecognised_reference_is_invalid() -> None:
    result = await _pipeline(_FakeGenerator(), _CountingLedger()).generate_by_url_or_channel("u1", "hello there")

    assert result.reason == FailureReason.INVALID_REQUEST

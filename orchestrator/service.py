"""Content pipeline service: the caller-facing request shapes."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence
from urllib.parse import urlparse

from pydantic import ValidationError

from aggregator import NewsAggregator
from core import Article, FailureReason, GenerationRequest, GenerationResult, Profile, ScoredArticle
from intelligence.generator import PostGenerator
from pipeline.categories import GENERAL_CATEGORY
from pipeline.hashtags import suggest_hashtags
from pipeline.profile import ProfileSource, is_channel_reference, keyword_profile_for_channel
from pipeline.scoring import Ranker
from pipeline.validation import OutputValidator
from sources.channel import parse_channel_reference
from sources.web import WebPage, fetch_web_content
from storage.history import GenerationHistory, link_topic
from storage.quota_ledger import QuotaLedger
from utils.exceptions import ContentBotError, ContentFetchError, QuotaExhaustedError

from .state_machine import GenerationRun


logger = logging.getLogger(__name__)

PageFetcher = Callable[[str], Awaitable[WebPage]]


class ContentPipeline:
    """
    Entry point for generation requests

    Checks the quota before any work, builds a ``GenerationRun`` and bounds
    it by the request timeout. Always returns a ``GenerationResult``.
    """

    def __init__(
        self,
        aggregator: NewsAggregator,
        ranker: Ranker,
        generator: PostGenerator,
        ledger: QuotaLedger,
        *,
        validator: Optional[OutputValidator] = None,
        history: Optional[GenerationHistory] = None,
        profile_source: Optional[ProfileSource] = None,
        fetch_page: Optional[PageFetcher] = None,
        candidate_limit: int = 5,
        request_timeout: Optional[float] = None,
        generation_timeout: Optional[float] = None,
        content_max_chars: int = 3000,
    ):
        self.aggregator = aggregator
        self.ranker = ranker
        self.generator = generator
        self.ledger = ledger
        self.validator = validator or OutputValidator()
        self.history = history if history is not None else GenerationHistory()
        self.profile_source = profile_source
        self.fetch_page = fetch_page or self._default_fetch_page
        self.candidate_limit = max(1, int(candidate_limit))
        self.request_timeout = request_timeout
        self.generation_timeout = generation_timeout
        self.content_max_chars = content_max_chars

    async def _default_fetch_page(self, url: str) -> WebPage:
        return await fetch_web_content(url, max_chars=self.content_max_chars)

    def check_quota(self, user_id: str) -> None:
        """
        Raises:
            QuotaExhaustedError: the user has no generations left
        """
        if self.ledger.get_balance(user_id) <= 0:
            raise QuotaExhaustedError(f"User {user_id} has no generations left", user_id=user_id)

    def _precheck(self, user_id: str) -> Optional[GenerationResult]:
        if not str(user_id or "").strip():
            return GenerationResult.failure(FailureReason.INVALID_REQUEST, "user_id is required")
        try:
            self.check_quota(user_id)
        except QuotaExhaustedError as exc:
            logger.info("Rejected request from %s: %s", user_id, exc.message)
            return GenerationResult.failure(FailureReason.QUOTA_EXHAUSTED, exc.message)
        return None

    async def _execute(self, run: GenerationRun) -> GenerationResult:
        try:
            if self.request_timeout:
                result = await asyncio.wait_for(run.run(), timeout=self.request_timeout)
            else:
                result = await run.run()
        except asyncio.TimeoutError:
            logger.warning(
                "Request for %s timed out in state %s after %.0fs",
                run.request.user_id,
                run.state.value,
                self.request_timeout,
            )
            return GenerationResult.failure(
                FailureReason.TIMED_OUT,
                f"request timed out after {self.request_timeout:.0f}s",
                attempts=run.attempts,
            )

        if result.ok and result.article is not None:
            result = result.model_copy(update={"hashtags": suggest_hashtags(result.article)})
        return result

    async def _aggregate(self) -> List[Article]:
        outcome = await self.aggregator.fetch_all()
        return outcome.articles

    async def _rank(self, articles: Sequence[Article], profile: Profile) -> List[ScoredArticle]:
        return await self.ranker.arank(articles, profile, self.candidate_limit)

    async def generate_for_profile(self, user_id: str, profile: Profile, topic: str) -> GenerationResult:
        """Full aggregate -> rank -> generate -> charge run for one profile."""
        rejected = self._precheck(user_id)
        if rejected is not None:
            return rejected

        request = GenerationRequest(user_id=user_id, profile=profile, topic=topic)
        run = GenerationRun(
            request,
            aggregate=self._aggregate,
            rank=self._rank,
            generate=self.generator.generate,
            ledger=self.ledger,
            validator=self.validator,
            history=self.history,
            generation_timeout=self.generation_timeout,
        )
        return await self._execute(run)

    async def generate_by_keywords(self, user_id: str, keywords: str) -> GenerationResult:
        text = " ".join(str(keywords or "").split())
        if not text:
            return GenerationResult.failure(FailureReason.INVALID_REQUEST, "keywords are required")
        return await self.generate_for_profile(user_id, Profile.from_keywords(text), topic=text)

    async def generate_by_url_or_channel(self, user_id: str, reference: str) -> GenerationResult:
        value = str(reference or "").strip()
        if is_channel_reference(value):
            return await self._generate_for_channel(user_id, value)
        if "://" in value:
            return await self._generate_from_url(user_id, value)
        return GenerationResult.failure(
            FailureReason.INVALID_REQUEST, f"not a link or channel reference: {value!r}"
        )

    async def _generate_for_channel(self, user_id: str, reference: str) -> GenerationResult:
        rejected = self._precheck(user_id)
        if rejected is not None:
            return rejected

        username = parse_channel_reference(reference)
        profile = None
        if self.profile_source is not None:
            try:
                profile = await self.profile_source.build_profile(reference)
            except ContentBotError as exc:
                logger.warning("Channel analysis for @%s failed, using keyword profile: %s", username, exc)
        if profile is None:
            profile = keyword_profile_for_channel(reference)

        return await self.generate_for_profile(user_id, profile, topic=f"@{username}")

    async def _generate_from_url(self, user_id: str, url: str) -> GenerationResult:
        rejected = self._precheck(user_id)
        if rejected is not None:
            return rejected

        try:
            page = await self.fetch_page(url)
        except ContentFetchError as exc:
            logger.warning("Page %s unavailable: %s", url, exc.message)
            return GenerationResult.failure(FailureReason.CONTENT_UNAVAILABLE, exc.message)

        try:
            article = Article(
                title=page.title,
                summary=page.text[:300],
                url=page.url,
                source=urlparse(page.url).hostname or "web",
                image_url=page.image_url,
                content=page.text,
            )
            request = GenerationRequest(
                user_id=user_id,
                profile=Profile.from_keywords(page.title),
                topic=link_topic(url),
                candidates=[ScoredArticle(article=article, score=1.0, category=GENERAL_CATEGORY)],
            )
        except ValidationError as exc:
            return GenerationResult.failure(FailureReason.INVALID_REQUEST, str(exc))

        async def generate(profile: Profile, item: Article) -> str:
            return await self.generator.generate_from_content(item.title, item.content)

        run = GenerationRun.from_candidates(
            request,
            generate=generate,
            ledger=self.ledger,
            validator=self.validator,
            history=self.history,
            generation_timeout=self.generation_timeout,
        )
        return await self._execute(run)


def build_content_pipeline(settings=None, *, llm=None, ledger: Optional[QuotaLedger] = None) -> ContentPipeline:
    """Wire the default collaborators from settings."""
    from config import get_settings
    from intelligence.llm import get_llm
    from pipeline.categories import DEFAULT_REGISTRY
    from pipeline.profile import LLMChannelProfiler
    from pipeline.scoring import build_strategy
    from sources.catalog import build_default_sources
    from storage.quota_ledger import get_quota_ledger

    settings = settings or get_settings()
    llm = llm or get_llm()

    aggregator = NewsAggregator(
        build_default_sources(),
        source_timeout_sec=settings.aggregator.source_timeout_sec,
        deduplicate=settings.aggregator.deduplicate,
    )
    ranker = Ranker(
        build_strategy(settings.ranking.strategy, llm),
        DEFAULT_REGISTRY,
        require_topical_match=settings.ranking.require_topical_match,
        retention_days=settings.sources.retention_days,
    )
    ledger = ledger or get_quota_ledger(settings.quota.ledger_path, settings.quota.free_generations)

    return ContentPipeline(
        aggregator,
        ranker,
        PostGenerator(llm),
        ledger,
        history=GenerationHistory(settings.quota.history_path),
        profile_source=LLMChannelProfiler(llm, registry=DEFAULT_REGISTRY),
        candidate_limit=settings.ranking.candidate_limit,
        request_timeout=settings.pipeline.request_timeout_sec,
        generation_timeout=settings.pipeline.generation_timeout_sec,
        content_max_chars=settings.pipeline.content_max_chars,
    )

"""
Relevance ranking
Pluggable scoring strategies, stable ordering and the per-source diversity pass
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
import json
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from core import Article, Profile, ScoredArticle
from intelligence.llm import BaseLLM, extract_json_object
from utils.exceptions import ConfigurationError, LLMError

from .categories import DEFAULT_REGISTRY, GENERAL_CATEGORY, CategoryRegistry


logger = logging.getLogger(__name__)

KEYWORD_WEIGHT = 0.5
CATEGORY_MATCH_BONUS = 0.12
PREFERRED_SOURCE_BONUS = 0.03
MAIN_TOPIC_BONUS = 0.05
SUBTOPIC_BONUS = 0.025
TOPIC_CAP = 0.10
QUALITY_CAP = 0.10
INDICATOR_BONUS = 0.01
INDICATOR_CAP = 0.04

# (max age in hours, bonus); beyond the retention window the bonus is zero
FRESHNESS_BANDS: Tuple[Tuple[float, float], ...] = (
    (6.0, 0.15),
    (12.0, 0.10),
    (24.0, 0.06),
    (72.0, 0.03),
)
FRESHNESS_TAIL_BONUS = 0.01

QUALITY_INDICATORS: Tuple[str, ...] = (
    "expert",
    "data",
    "first time",
    "study",
    "research",
    "report",
    "record",
    "announced",
    "launch",
    "exclusive",
)

TOPICAL_SIGNALS = ("keyword", "category", "topic", "llm")


@dataclass(frozen=True)
class ScoringContext:
    """Request-local inputs shared by every article scored against one profile."""

    profile: Profile
    profile_category: str
    registry: CategoryRegistry
    now: datetime
    retention_hours: float
    hints: Mapping[str, float] = field(default_factory=dict)


def keyword_signal(text: str, keywords: Sequence[str]) -> float:
    if not keywords:
        return 0.0
    lowered = text.lower()
    hits = sum(1 for keyword in keywords if keyword.lower() in lowered)
    return KEYWORD_WEIGHT * hits / len(keywords)


def topic_signal(text: str, profile: Profile) -> float:
    lowered = text.lower()
    score = 0.0
    if profile.main_topic and profile.main_topic.lower() in lowered:
        score += MAIN_TOPIC_BONUS
    score += SUBTOPIC_BONUS * sum(1 for subtopic in profile.subtopics if subtopic.lower() in lowered)
    return min(score, TOPIC_CAP)


def freshness_signal(published_at: datetime, now: datetime, retention_hours: float) -> float:
    age_hours = (now - published_at).total_seconds() / 3600.0
    # clock skew between feeds: future timestamps count as brand new
    age_hours = max(age_hours, 0.0)
    for max_age, bonus in FRESHNESS_BANDS:
        if age_hours < max_age:
            return bonus
    if age_hours < retention_hours:
        return FRESHNESS_TAIL_BONUS
    return 0.0


def quality_signal(article: Article) -> float:
    score = 0.0
    if 20 <= len(article.title) <= 120:
        score += 0.03
    if 80 <= len(article.summary) <= 600:
        score += 0.03
    lowered = article.text.lower()
    indicators = sum(INDICATOR_BONUS for word in QUALITY_INDICATORS if word in lowered)
    score += min(indicators, INDICATOR_CAP)
    return min(score, QUALITY_CAP)


class ScoringStrategy(ABC):
    """
    Computes named, additive signals for one article

    ``prepare`` runs once per ranking call and may return an enriched
    context (e.g. with remote relevance hints); it must not keep
    request state on the strategy instance.
    """

    name = "base"

    async def prepare(self, articles: Sequence[Article], context: ScoringContext) -> ScoringContext:
        return context

    @abstractmethod
    def signals(self, article: Article, category: str, context: ScoringContext) -> Dict[str, float]:
        pass


class KeywordOverlapStrategy(ScoringStrategy):
    """Keyword overlap and main topic only."""

    name = "keyword"

    def signals(self, article: Article, category: str, context: ScoringContext) -> Dict[str, float]:
        return {
            "keyword": keyword_signal(article.text, context.profile.keywords),
            "topic": topic_signal(article.text, context.profile),
        }


class CategoryAwareStrategy(ScoringStrategy):
    """Keyword overlap, category/topic match, freshness and heuristic quality."""

    name = "category_aware"

    def signals(self, article: Article, category: str, context: ScoringContext) -> Dict[str, float]:
        category_score = 0.0
        source_score = 0.0
        if context.profile_category != GENERAL_CATEGORY:
            if category == context.profile_category:
                category_score = CATEGORY_MATCH_BONUS
            preferred = context.registry.get(context.profile_category)
            if preferred is not None and article.source in preferred.sources:
                source_score = PREFERRED_SOURCE_BONUS

        return {
            "keyword": keyword_signal(article.text, context.profile.keywords),
            "category": category_score,
            "source": source_score,
            "topic": topic_signal(article.text, context.profile),
            "freshness": freshness_signal(article.published_at, context.now, context.retention_hours),
            "quality": quality_signal(article),
        }


class LLMAssistedStrategy(ScoringStrategy):
    """
    Blend an LLM relevance rating with a local strategy

    The LLM rates the ``max_articles`` best candidates by local score once
    per ranking call; articles it does not rate keep their local score.
    Any LLM or parse failure leaves the context without hints and scoring
    falls back entirely to the local strategy.
    """

    name = "llm_assisted"

    def __init__(
        self,
        llm: BaseLLM,
        fallback: Optional[ScoringStrategy] = None,
        *,
        llm_weight: float = 0.5,
        max_articles: int = 30,
    ):
        self.llm = llm
        self.fallback = fallback or CategoryAwareStrategy()
        self.llm_weight = min(max(llm_weight, 0.0), 1.0)
        self.max_articles = max_articles

    def _shortlist(self, articles: Sequence[Article], context: ScoringContext) -> List[Article]:
        """Top ``max_articles`` by local score; ties keep fetch order."""
        local_scores = [
            sum(self.fallback.signals(article, context.registry.detect_category(article.text), context).values())
            for article in articles
        ]
        order = sorted(range(len(articles)), key=lambda i: local_scores[i], reverse=True)
        return [articles[i] for i in order[: self.max_articles]]

    def _build_prompt(self, articles: Sequence[Article], profile: Profile) -> str:
        items = [
            {"url": article.url, "title": article.title, "summary": article.summary[:300]}
            for article in articles
        ]
        return (
            "Rate how relevant each news item is for a channel with this profile.\n"
            f"Main topic: {profile.main_topic}\n"
            f"Subtopics: {', '.join(profile.subtopics)}\n"
            f"Keywords: {', '.join(profile.keywords)}\n"
            f"Content angle: {profile.content_angle}\n\n"
            f"News items (JSON): {json.dumps(items, ensure_ascii=False)}\n\n"
            'Reply with JSON only: {"selected_news": [{"url": "...", "relevance": 0.0}]} '
            "where relevance is between 0 and 1."
        )

    async def prepare(self, articles: Sequence[Article], context: ScoringContext) -> ScoringContext:
        context = await self.fallback.prepare(articles, context)
        if not articles:
            return context

        shortlist = self._shortlist(articles, context)
        shown = {article.url for article in shortlist}
        try:
            reply = await self.llm.achat(
                self._build_prompt(shortlist, context.profile),
                system_prompt="You select news for social media channels. Answer with JSON only.",
                temperature=0.2,
            )
            payload = extract_json_object(reply)
        except (LLMError, ValueError) as exc:
            logger.warning("LLM ranking unavailable, using %s scoring: %s", self.fallback.name, exc)
            return context

        hints: Dict[str, float] = {}
        for item in payload.get("selected_news") or []:
            if not isinstance(item, dict) or str(item.get("url") or "") not in shown:
                continue
            try:
                relevance = float(item.get("relevance", 0.0))
            except (TypeError, ValueError):
                continue
            hints[str(item["url"])] = min(max(relevance, 0.0), 1.0)

        if not hints:
            logger.warning("LLM ranking returned no usable ratings, using %s scoring", self.fallback.name)
            return context
        return replace(context, hints=hints)

    def signals(self, article: Article, category: str, context: ScoringContext) -> Dict[str, float]:
        local = self.fallback.signals(article, category, context)
        # articles the LLM did not rate keep their full local score
        if article.url not in context.hints:
            return local
        relevance = context.hints[article.url]
        blended = {key: value * (1.0 - self.llm_weight) for key, value in local.items()}
        blended["llm"] = relevance * self.llm_weight
        return blended


def select_diverse(scored: Sequence[ScoredArticle], limit: int) -> List[ScoredArticle]:
    """
    At most one article per source first, then backfill by score

    ``scored`` must already be sorted best-first. Articles sharing a URL
    are never selected twice.
    """
    if limit <= 0:
        return []

    selected: List[ScoredArticle] = []
    seen_sources = set()
    seen_urls = set()
    for item in scored:
        if len(selected) >= limit:
            return selected
        if item.source in seen_sources or item.url in seen_urls:
            continue
        selected.append(item)
        seen_sources.add(item.source)
        seen_urls.add(item.url)

    for item in scored:
        if len(selected) >= limit:
            break
        if item.url in seen_urls:
            continue
        selected.append(item)
        seen_urls.add(item.url)
    return selected


class Ranker:
    """
    Scores articles against a profile and picks the candidate list

    Deterministic for fixed inputs and a fixed ``now``; equal scores keep
    source-fetch order.
    """

    def __init__(
        self,
        strategy: Optional[ScoringStrategy] = None,
        registry: Optional[CategoryRegistry] = None,
        *,
        require_topical_match: bool = True,
        retention_days: int = 7,
    ):
        self.strategy = strategy or CategoryAwareStrategy()
        self.registry = registry or DEFAULT_REGISTRY
        self.require_topical_match = require_topical_match
        self.retention_hours = float(retention_days) * 24.0

    def build_context(self, profile: Profile, now: Optional[datetime] = None) -> ScoringContext:
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return ScoringContext(
            profile=profile,
            profile_category=self.registry.profile_category(profile),
            registry=self.registry,
            now=current,
            retention_hours=self.retention_hours,
        )

    def score_all(self, articles: Sequence[Article], context: ScoringContext) -> List[ScoredArticle]:
        """Score every article, best first; non-topical articles are dropped when required."""
        scored: List[ScoredArticle] = []
        for article in articles:
            category = self.registry.detect_category(article.text)
            signals = self.strategy.signals(article, category, context)
            if self.require_topical_match and not any(signals.get(key, 0.0) > 0 for key in TOPICAL_SIGNALS):
                continue
            total = round(min(sum(signals.values()), 1.0), 6)
            scored.append(ScoredArticle(article=article, score=total, category=category, signals=signals))

        # sorted() is stable, so ties keep fetch order
        return sorted(scored, key=lambda item: item.score, reverse=True)

    def rank(
        self,
        articles: Sequence[Article],
        profile: Profile,
        limit: int,
        *,
        now: Optional[datetime] = None,
    ) -> List[ScoredArticle]:
        context = self.build_context(profile, now)
        return self._select(articles, context, limit)

    async def arank(
        self,
        articles: Sequence[Article],
        profile: Profile,
        limit: int,
        *,
        now: Optional[datetime] = None,
    ) -> List[ScoredArticle]:
        """Same as ``rank`` but lets the strategy prepare asynchronously first."""
        context = await self.strategy.prepare(articles, self.build_context(profile, now))
        return self._select(articles, context, limit)

    def rank_by_keywords(
        self,
        articles: Sequence[Article],
        keywords: str,
        limit: int,
        *,
        now: Optional[datetime] = None,
    ) -> List[ScoredArticle]:
        """Free-text keyword variant; identical to ``rank`` with a keyword-only profile."""
        return self.rank(articles, Profile.from_keywords(keywords), limit, now=now)

    def _select(self, articles: Sequence[Article], context: ScoringContext, limit: int) -> List[ScoredArticle]:
        scored = self.score_all(articles, context)
        selected = select_diverse(scored, limit)
        logger.info(
            "Ranked %d articles with %s: %d qualifying, %d selected (category=%s)",
            len(articles),
            self.strategy.name,
            len(scored),
            len(selected),
            context.profile_category,
        )
        return selected


def build_strategy(name: str, llm: Optional[BaseLLM] = None) -> ScoringStrategy:
    """Strategy for a ``RANKING_STRATEGY`` value."""
    key = str(name or "").strip().lower()
    if key == KeywordOverlapStrategy.name:
        return KeywordOverlapStrategy()
    if key == LLMAssistedStrategy.name:
        if llm is None:
            logger.warning("llm_assisted ranking requested without an LLM, using category_aware")
            return CategoryAwareStrategy()
        return LLMAssistedStrategy(llm)
    if key == CategoryAwareStrategy.name:
        return CategoryAwareStrategy()
    raise ConfigurationError(f"Unknown ranking strategy: {name!r}")

"""
News Aggregator
Concurrent fan-out over every configured source
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import re
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from config import get_aggregator_settings
from core import Article, SourceError
from sources.base import NewsSource

from .content_policy import ContentPolicy


logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Merged articles in source order plus the soft failures met on the way."""

    articles: List[Article] = field(default_factory=list)
    errors: List[SourceError] = field(default_factory=list)
    blocked_count: int = 0
    duplicate_count: int = 0

    @property
    def failed_sources(self) -> List[str]:
        return [error.source for error in self.errors]


def canonical_key(article: Article) -> str:
    """host+path of the URL (no www, no trailing slash), else the normalized title."""
    try:
        parsed = urlparse(str(article.url or "").strip())
    except ValueError:
        parsed = None
    if parsed is not None and parsed.netloc:
        host = parsed.netloc.lower()
        if host.startswith("www."):
            host = host[4:]
        path = re.sub(r"/{2,}", "/", parsed.path or "")
        if path != "/" and path.endswith("/"):
            path = path[:-1]
        return f"{host}{path}"
    return " ".join(re.findall(r"\w+", article.title.lower()))


def dedup_articles(articles: Sequence[Article]) -> List[Article]:
    """Keep the first article per canonical key."""
    unique: List[Article] = []
    seen = set()
    for article in articles:
        key = canonical_key(article)
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)
    return unique


class NewsAggregator:
    """
    News aggregator

    Fans out to every source at once and waits for all of them. A failing or
    slow source contributes nothing and is reported as a ``SourceError``; the
    batch itself never fails.
    """

    def __init__(
        self,
        sources: Sequence[NewsSource],
        *,
        policy: Optional[ContentPolicy] = None,
        source_timeout_sec: Optional[float] = None,
        deduplicate: Optional[bool] = None,
    ):
        settings = get_aggregator_settings()
        self.sources = list(sources)
        self.policy = policy or ContentPolicy()
        timeout = settings.source_timeout_sec if source_timeout_sec is None else source_timeout_sec
        self.source_timeout_sec = max(0.01, float(timeout))
        self.deduplicate = settings.deduplicate if deduplicate is None else bool(deduplicate)

    async def _run_source_task(self, source: NewsSource) -> List[Article]:
        return await asyncio.wait_for(source.fetch_articles(), timeout=self.source_timeout_sec)

    async def fetch_all(self) -> AggregationResult:
        """
        Fetch every source concurrently and merge the results

        Returns:
            AggregationResult; empty (not an error) when every source fails
        """
        result = AggregationResult()
        if not self.sources:
            logger.warning("No sources configured")
            return result

        outcomes = await asyncio.gather(
            *(self._run_source_task(source) for source in self.sources),
            return_exceptions=True,
        )

        merged: List[Article] = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, asyncio.TimeoutError):
                logger.warning("%s source skipped: timed out after %.1fs", source.name, self.source_timeout_sec)
                result.errors.append(SourceError(source=source.name, message="timed out", timed_out=True))
                continue
            if isinstance(outcome, BaseException):
                message = str(outcome) or outcome.__class__.__name__
                logger.warning("%s source skipped: %s", source.name, message)
                result.errors.append(SourceError(source=source.name, message=message))
                continue
            merged.extend(outcome)

        allowed = self.policy.apply(merged)
        result.blocked_count = len(merged) - len(allowed)

        if self.deduplicate:
            unique = dedup_articles(allowed)
            result.duplicate_count = len(allowed) - len(unique)
            allowed = unique

        result.articles = allowed
        logger.info(
            "Collected %d articles from %d/%d sources (blocked %d, duplicates %d)",
            len(result.articles),
            len(self.sources) - len(result.errors),
            len(self.sources),
            result.blocked_count,
            result.duplicate_count,
        )
        return result

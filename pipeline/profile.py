"""
Profile construction
Keywords become a keyword-only profile; channels are analysed by the LLM
with a local heuristic when the LLM is unavailable
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
import logging
import re
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from core import Profile
from intelligence.llm import BaseLLM, extract_json_object
from sources.channel import ChannelSnapshot, fetch_channel_snapshot, parse_channel_reference
from utils.exceptions import ContentFetchError, LLMError, ProfileError

from .categories import DEFAULT_REGISTRY, GENERAL_CATEGORY, CategoryRegistry


logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[str], Awaitable[ChannelSnapshot]]

DEFAULT_SUBTOPICS = ["current trends", "practical tips", "expert opinions"]
DEFAULT_CONTENT_ANGLE = "practical takeaways that are useful for the audience"

_WORD = re.compile(r"[a-z][a-z0-9+#-]{4,}")
_STOPWORDS = frozenset(
    {
        "about", "after", "again", "their", "there", "these", "those", "which", "while",
        "would", "could", "should", "where", "other", "every", "being", "today", "first",
        "people", "thanks", "please", "https", "channel", "subscribe",
    }
)


def _as_terms(value) -> List[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    if isinstance(value, list):
        return [str(item) for item in value]
    return []


def is_channel_reference(reference: str) -> bool:
    return parse_channel_reference(reference) is not None


class ProfileSource(ABC):
    """Builds a Profile for a channel identifier."""

    @abstractmethod
    async def build_profile(self, identifier: str) -> Profile:
        """
        Raises:
            ProfileError: the channel could not be analysed
        """
        pass


def heuristic_profile(snapshot: ChannelSnapshot, registry: CategoryRegistry = DEFAULT_REGISTRY) -> Profile:
    """Keyword-count analysis of the channel's own text."""
    text = " ".join([snapshot.title, snapshot.description, *snapshot.posts])
    lowered = text.lower()
    category_name = registry.detect_category(lowered)
    category = registry.get(category_name)

    if category is not None:
        main_topic = category.name
        subtopics = list(category.subtopics[:4]) or list(DEFAULT_SUBTOPICS)
        keywords = [keyword.strip() for keyword in category.keywords if keyword.lower() in lowered][:10]
    else:
        main_topic = snapshot.title or snapshot.username
        subtopics = list(DEFAULT_SUBTOPICS)
        keywords = []

    if not keywords:
        counts = Counter(word for word in _WORD.findall(lowered) if word not in _STOPWORDS)
        keywords = [word for word, _ in counts.most_common(8)]

    return Profile(
        main_topic=main_topic,
        subtopics=subtopics,
        keywords=keywords,
        content_angle=DEFAULT_CONTENT_ANGLE,
        category=category_name if category_name != GENERAL_CATEGORY else None,
    )


class LLMChannelProfiler(ProfileSource):
    """
    Channel analysis from recent public posts

    Args:
        llm: analysis model; the heuristic is used when None
        fetch_snapshot: coroutine returning the channel's preview
        max_posts: posts included in the analysis prompt
    """

    def __init__(
        self,
        llm: Optional[BaseLLM] = None,
        *,
        registry: Optional[CategoryRegistry] = None,
        fetch_snapshot: Optional[SnapshotFetcher] = None,
        max_posts: int = 15,
    ):
        self.llm = llm
        self.registry = registry or DEFAULT_REGISTRY
        self.fetch_snapshot = fetch_snapshot or fetch_channel_snapshot
        self.max_posts = max_posts

    async def build_profile(self, identifier: str) -> Profile:
        username = parse_channel_reference(identifier)
        if username is None:
            raise ProfileError(f"Not a channel reference: {identifier!r}")

        try:
            snapshot = await self.fetch_snapshot(username)
        except ContentFetchError as exc:
            raise ProfileError(f"Channel @{username} is unavailable: {exc.message}") from exc

        if not snapshot.posts:
            logger.info("@%s has no readable posts, using heuristic profile", username)
            return heuristic_profile(snapshot, self.registry)
        if self.llm is None:
            return heuristic_profile(snapshot, self.registry)

        try:
            profile = await self._analyze_with_llm(snapshot)
        except (LLMError, ValueError, ValidationError) as exc:
            logger.warning("LLM analysis of @%s failed, using heuristic profile: %s", username, exc)
            return heuristic_profile(snapshot, self.registry)

        logger.info("Analysed @%s: topic=%s, %d keywords", username, profile.main_topic, len(profile.keywords))
        return profile

    async def _analyze_with_llm(self, snapshot: ChannelSnapshot) -> Profile:
        posts = [post for post in snapshot.posts[: self.max_posts] if len(post) > 10]
        joined = "\n---\n".join(post[:500] for post in posts)
        prompt = (
            f"Channel title: {snapshot.title}\n"
            f"Channel description: {snapshot.description}\n\n"
            f"Recent posts:\n{joined}\n\n"
            "Describe the channel's audience. Reply with JSON only:\n"
            '{"main_topic": "...", "subtopics": ["..."], "keywords": ["..."], '
            '"content_angle": "...", "category": "..."}\n'
            f"category must be one of: {', '.join(self.registry.names)}, or empty."
        )
        reply = await self.llm.achat(
            prompt,
            system_prompt="You analyse social media channels. Answer with JSON only.",
            temperature=0.3,
        )
        payload = extract_json_object(reply)
        if not str(payload.get("main_topic") or "").strip():
            raise ValueError("analysis has no main_topic")

        category = self.registry.get(payload.get("category"))
        return Profile(
            main_topic=payload.get("main_topic"),
            subtopics=_as_terms(payload.get("subtopics")),
            keywords=_as_terms(payload.get("keywords")),
            content_angle=payload.get("content_angle") or DEFAULT_CONTENT_ANGLE,
            category=category.name if category is not None else None,
        )


def keyword_profile_for_channel(identifier: str) -> Profile:
    """Degraded profile built from the channel name alone."""
    username = parse_channel_reference(identifier) or str(identifier or "").lstrip("@")
    words: List[str] = [part for part in re.split(r"[_\W]+", username) if part]
    return Profile.from_keywords(" ".join(words) or username)

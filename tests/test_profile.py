from __future__ import annotations

from typing import List

import pytest

from intelligence.llm import BaseLLM, LLMResponse, Message
from pipeline import DEFAULT_REGISTRY
from pipeline.profile import (
    DEFAULT_CONTENT_ANGLE,
    LLMChannelProfiler,
    heuristic_profile,
    is_channel_reference,
    keyword_profile_for_channel,
)
from sources.channel import ChannelSnapshot
from utils.exceptions import ContentFetchError, LLMError, ProfileError


SNAPSHOT = ChannelSnapshot(
    username="robotics_daily",
    title="Robotics Daily",
    description="Every new robot, drone and gadget worth knowing about",
    posts=[
        "This warehouse robot sorts parcels twice as fast as last year's model",
        "A delivery drone crossed the bay carrying medicine for the first time",
    ],
)


class _FakeLLM(BaseLLM):
    def __init__(self, reply: object) -> None:
        super().__init__(model="fake")
        self.reply = reply
        self.calls = 0

    @property
    def provider(self) -> str:
        return "fake"

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        self.calls += 1
        if isinstance(self.reply, BaseException):
            raise self.reply
        return LLMResponse(content=self.reply, model=self.model)


def _fetcher(snapshot: ChannelSnapshot = SNAPSHOT, error: Exception = None):
    async def fetch(username: str) -> ChannelSnapshot:
        if error is not None:
            raise error
        return snapshot

    return fetch


def test_heuristic_profile_detects_category() -> None:
    profile = heuristic_profile(SNAPSHOT, DEFAULT_REGISTRY)

    assert profile.category == "Gadgets & Hardware"
    assert profile.main_topic == "Gadgets & Hardware"
    assert "robot" in profile.keywords
    assert "drone" in profile.keywords
    assert profile.content_angle == DEFAULT_CONTENT_ANGLE


def test_heuristic_profile_without_category_uses_frequent_words() -> None:
    snapshot = ChannelSnapshot(
        username="garden_notes",
        title="Garden notes",
        posts=["Tomatoes love warm weather", "Tomatoes need watering", "Basil grows beside tomatoes"],
    )
    profile = heuristic_profile(snapshot, DEFAULT_REGISTRY)

    assert profile.category is None
    assert profile.main_topic == "Garden notes"
    assert profile.keywords[0] == "tomatoes"


@pytest.mark.asyncio
async def test_llm_profile_from_json() -> None:
    llm = _FakeLLM(
        '```json\n{"main_topic": "Consumer robotics", "subtopics": ["drones", "home robots"], '
        '"keywords": "robot, drone, Robot", "content_angle": "hands-on reviews", '
        '"category": "gadgets & hardware"}\n```'
    )
    profiler = LLMChannelProfiler(llm, fetch_snapshot=_fetcher())

    profile = await profiler.build_profile("@robotics_daily")

    assert profile.main_topic == "Consumer robotics"
    assert profile.keywords == ["robot", "drone"]
    assert profile.subtopics == ["drones", "home robots"]
    assert profile.category == "Gadgets & Hardware"
    assert llm.calls == 1


@pytest.mark.parametrize("reply", ["not json", '{"subtopics": []}', LLMError("503")])
@pytest.mark.asyncio
async def test_llm_failure_falls_back_to_heuristic(reply) -> None:
    profiler = LLMChannelProfiler(_FakeLLM(reply), fetch_snapshot=_fetcher())

    profile = await profiler.build_profile("https://t.me/robotics_daily")

    assert profile == heuristic_profile(SNAPSHOT, DEFAULT_REGISTRY)


@pytest.mark.asyncio
async def test_channel_without_posts_skips_llm() -> None:
    llm = _FakeLLM('{"main_topic": "x"}')
    empty = ChannelSnapshot(username="robotics_daily", title="Robot news")
    profiler = LLMChannelProfiler(llm, fetch_snapshot=_fetcher(empty))

    profile = await profiler.build_profile("@robotics_daily")

    assert llm.calls == 0
    assert profile.category == "Gadgets & Hardware"


@pytest.mark.asyncio
async def test_unavailable_channel_raises_profile_error() -> None:
    profiler = LLMChannelProfiler(fetch_snapshot=_fetcher(error=ContentFetchError("404")))
    with pytest.raises(ProfileError):
        await profiler.build_profile("@robotics_daily")


@pytest.mark.asyncio
async def test_non_channel_reference_raises_profile_error() -> None:
    profiler = LLMChannelProfiler(fetch_snapshot=_fetcher())
    with pytest.raises(ProfileError):
        await profiler.build_profile("https://example.com/article")


def test_keyword_profile_for_channel() -> None:
    profile = keyword_profile_for_channel("@robotics_daily")
    assert profile.keywords == ["robotics", "daily"]
    assert profile.main_topic == "robotics daily"
    assert is_channel_reference("t.me/robotics_daily")
    assert not is_channel_reference("robotics")

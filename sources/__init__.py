"""News source collaborators."""

from .base import NewsSource
from .catalog import DEFAULT_FEEDS, build_default_sources
from .channel import ChannelSnapshot, fetch_channel_snapshot, parse_channel_page, parse_channel_reference
from .rss import RSSSource, parse_feed
from .web import WebPage, fetch_web_content, parse_page

__all__ = [
    "ChannelSnapshot",
    "DEFAULT_FEEDS",
    "NewsSource",
    "RSSSource",
    "WebPage",
    "build_default_sources",
    "fetch_channel_snapshot",
    "fetch_web_content",
    "parse_channel_page",
    "parse_channel_reference",
    "parse_feed",
    "parse_page",
]

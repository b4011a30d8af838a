"""Default feed catalogue."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .rss import RSSSource


# (name, url, language)
DEFAULT_FEEDS: Tuple[Tuple[str, str, str], ...] = (
    ("TechCrunch", "https://techcrunch.com/feed/", "en"),
    ("The Verge", "https://www.theverge.com/rss/index.xml", "en"),
    ("Ars Technica", "https://feeds.arstechnica.com/arstechnica/index", "en"),
    ("Wired", "https://www.wired.com/feed/rss", "en"),
    ("Engadget", "https://www.engadget.com/rss.xml", "en"),
    ("Hacker News", "https://hnrss.org/frontpage", "en"),
    ("BBC Business", "https://feeds.bbci.co.uk/news/business/rss.xml", "en"),
    ("CNBC", "https://www.cnbc.com/id/100003114/device/rss/rss.html", "en"),
    ("ScienceDaily", "https://www.sciencedaily.com/rss/all.xml", "en"),
    ("Phys.org", "https://phys.org/rss-feed/", "en"),
    ("NASA", "https://www.nasa.gov/news-release/feed/", "en"),
    ("ESPN", "https://www.espn.com/espn/rss/news", "en"),
)


def build_default_sources(feeds: Sequence[Tuple[str, str, str]] = DEFAULT_FEEDS) -> List[RSSSource]:
    return [RSSSource(name, url, language=language) for name, url, language in feeds]

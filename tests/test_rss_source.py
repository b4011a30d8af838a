from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from sources import rss
from sources.rss import RSSSource, parse_feed
from utils.exceptions import SourceFetchError


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

FEED = """<?xml version="1.0"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <item>
      <title>Warehouse &lt;b&gt;robots&lt;/b&gt; go mainstream</title>
      <link>https://example.com/robots</link>
      <description><![CDATA[<p>Automation <b>spreads</b> fast.</p><img src="https://img.example.com/inline.jpg">]]></description>
      <pubDate>Tue, 10 Mar 2026 09:30:00 +0000</pubDate>
      <category>Robotics</category>
      <media:content url="https://img.example.com/media.jpg" medium="image"/>
    </item>
    <item>
      <title>Inline image only</title>
      <link>https://example.com/inline</link>
      <description><![CDATA[<div><img class="x" src="https://img.example.com/inline.jpg"></div>]]></description>
      <pubDate>2026-03-10T08:00:00Z</pubDate>
    </item>
    <item>
      <title>Enclosure beats thumbnail</title>
      <link>https://example.com/enclosure</link>
      <description>text</description>
      <pubDate>not a date</pubDate>
      <media:thumbnail url="https://img.example.com/thumb.jpg"/>
      <enclosure url="https://img.example.com/enclosure.jpg" type="image/jpeg"/>
    </item>
    <item>
      <title>Too old</title>
      <link>https://example.com/old</link>
      <pubDate>Mon, 01 Jan 2024 00:00:00 +0000</pubDate>
    </item>
    <item>
      <title></title>
      <link>https://example.com/untitled</link>
    </item>
    <item>
      <title>No link</title>
    </item>
  </channel>
</rss>
"""


def test_parse_feed_extracts_fields_and_drops_stale_items() -> None:
    articles = parse_feed(FEED, source_name="Example", retention=timedelta(days=7), now=NOW)

    assert [a.url for a in articles] == [
        "https://example.com/robots",
        "https://example.com/inline",
        "https://example.com/enclosure",
    ]
    first = articles[0]
    assert first.title == "Warehouse robots go mainstream"
    assert first.summary == "Automation spreads fast."
    assert first.source == "Example"
    assert first.tags == ["Robotics"]
    assert first.published_at == datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


def test_parse_feed_image_priority() -> None:
    articles = parse_feed(FEED, source_name="Example", retention=timedelta(days=7), now=NOW)
    images = {a.url: a.image_url for a in articles}

    assert images["https://example.com/robots"] == "https://img.example.com/media.jpg"
    assert images["https://example.com/inline"] == "https://img.example.com/inline.jpg"
    assert images["https://example.com/enclosure"] == "https://img.example.com/enclosure.jpg"


def test_unparseable_date_becomes_fetch_time() -> None:
    articles = parse_feed(FEED, source_name="Example", retention=timedelta(days=7), now=NOW)
    enclosure = [a for a in articles if a.url.endswith("/enclosure")][0]

    assert enclosure.published_at == NOW


def test_parse_feed_respects_max_items() -> None:
    articles = parse_feed(FEED, source_name="Example", retention=timedelta(days=7), max_items=1, now=NOW)

    assert len(articles) == 1


@pytest.mark.asyncio
async def test_rss_source_fetches_through_http_helper(monkeypatch) -> None:
    seen = {}

    async def _fake_get_text(url: str, *, headers=None, timeout: float = 10.0) -> str:
        seen["url"] = url
        seen["headers"] = headers
        return FEED

    monkeypatch.setattr(rss, "_http_get_text", _fake_get_text)

    source = RSSSource("Example", "https://example.com/feed.xml", retention_days=100000)
    articles = await source.fetch_articles()

    assert seen["url"] == "https://example.com/feed.xml"
    assert "User-Agent" in seen["headers"]
    assert source.name == "Example"
    assert len(articles) == 4


@pytest.mark.asyncio
async def test_rss_source_wraps_http_errors(monkeypatch) -> None:
    async def _fake_get_text(url: str, *, headers=None, timeout: float = 10.0) -> str:
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(rss, "_http_get_text", _fake_get_text)

    with pytest.raises(SourceFetchError) as exc_info:
        await RSSSource("Example", "https://example.com/feed.xml").fetch_articles()
    assert exc_info.value.source == "Example"


@pytest.mark.asyncio
async def test_rss_source_wraps_parse_errors(monkeypatch) -> None:
    async def _fake_get_text(url: str, *, headers=None, timeout: float = 10.0) -> str:
        return "<rss><channel><item>"

    monkeypatch.setattr(rss, "_http_get_text", _fake_get_text)

    with pytest.raises(SourceFetchError):
        await RSSSource("Example", "https://example.com/feed.xml").fetch_articles()

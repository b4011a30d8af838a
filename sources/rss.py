"""RSS feed source collaborator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
import html as html_lib
import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import get_source_settings
from core import Article
from utils.exceptions import SourceFetchError

from .base import NewsSource


logger = logging.getLogger(__name__)

_DATE_FORMATS = (
    "%a, %d %b %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M:%S %Z",
    "%d %b %Y %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%d.%m.%Y %H:%M",
    "%Y-%m-%d",
    "%d.%m.%Y",
)

_IMG_SRC = re.compile(r"<img[^>]+src=\"([^\">]+)\"", flags=re.IGNORECASE)
_DATA_SRC = re.compile(r"data-src=\"([^\">]+)\"", flags=re.IGNORECASE)
_AMP_IMG_SRC = re.compile(r"<amp-img[^>]+src=\"([^\">]+)\"", flags=re.IGNORECASE)


def _strip_html(value: str) -> str:
    text = str(value or "")
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<script[^>]*>.*?</script>", " ", text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<style[^>]*>.*?</style>", " ", text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html_lib.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def _parse_datetime(value: str) -> Optional[datetime]:
    text = str(value or "").strip()
    if not text:
        return None

    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except ValueError:
        pass

    try:
        dt = parsedate_to_datetime(text)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _DATE_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    return None


def _local_name(tag: str) -> str:
    return str(tag or "").rsplit("}", 1)[-1].lower()


def _rss_text(node: ET.Element, tag: str) -> str:
    child = node.find(tag)
    return str((child.text if child is not None else "") or "").strip()


def _extract_image(entry: ET.Element, description_html: str) -> Optional[str]:
    """Pick an image URL: media:content, image enclosure, media:thumbnail, then inline HTML."""
    media_content = None
    thumbnail = None
    enclosure = None
    for child in list(entry):
        name = _local_name(child.tag)
        url = str(child.get("url") or "").strip()
        if not url:
            continue
        if name == "content" and media_content is None:
            medium = str(child.get("medium") or "").lower()
            mime = str(child.get("type") or "").lower()
            if medium == "image" or "image" in mime:
                media_content = url
        elif name == "enclosure" and enclosure is None:
            if "image" in str(child.get("type") or "").lower():
                enclosure = url
        elif name == "thumbnail" and thumbnail is None:
            thumbnail = url

    for candidate in (media_content, enclosure, thumbnail):
        if candidate:
            return candidate

    for pattern in (_IMG_SRC, _DATA_SRC, _AMP_IMG_SRC):
        match = pattern.search(description_html or "")
        if match:
            return match.group(1)
    return None


@retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
async def _http_get_text(url: str, *, headers: Optional[dict] = None, timeout: float = 10.0) -> str:
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
        response = await client.get(url, headers=headers)
        response.raise_for_status()
        return str(response.text or "")


def parse_feed(
    xml_text: str,
    *,
    source_name: str,
    retention: timedelta,
    max_items: int = 50,
    now: Optional[datetime] = None,
) -> List[Article]:
    """Turn an RSS 2.0 document into articles, dropping items past retention."""
    root = ET.fromstring(xml_text)
    now = now or datetime.now(timezone.utc)

    articles: List[Article] = []
    entries = root.findall(".//item")
    for entry in entries[: max(1, int(max_items))]:
        link = _rss_text(entry, "link")
        title = _strip_html(_rss_text(entry, "title"))
        if not title or not link:
            continue

        raw_date = _rss_text(entry, "pubDate")
        published = _parse_datetime(raw_date)
        if published is None:
            if raw_date:
                logger.debug("Unparseable date %r in %s, using fetch time", raw_date, source_name)
            published = now
        if now - published > retention:
            continue

        description_html = _rss_text(entry, "description")
        category = _rss_text(entry, "category")
        articles.append(
            Article(
                title=title,
                summary=_strip_html(description_html),
                url=link,
                source=source_name,
                published_at=published,
                image_url=_extract_image(entry, description_html),
                tags=[category] if category else [],
            )
        )
    return articles


class RSSSource(NewsSource):
    """RSS 2.0 feed as a news source"""

    def __init__(
        self,
        name: str,
        url: str,
        *,
        language: str = "en",
        retention_days: Optional[int] = None,
        max_items: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_source_settings()
        self._name = name
        self.url = url
        self.language = language
        self.retention = timedelta(days=retention_days or settings.retention_days)
        self.max_items = max_items or settings.max_items_per_feed
        self.timeout = timeout or settings.request_timeout
        self.user_agent = settings.user_agent

    @property
    def name(self) -> str:
        return self._name

    async def fetch_articles(self) -> List[Article]:
        logger.debug("Fetching RSS feed %s (%s)", self.name, self.url)
        try:
            xml_text = await _http_get_text(
                self.url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"RSS request failed: {exc}", source=self.name, url=self.url) from exc

        try:
            articles = parse_feed(
                xml_text,
                source_name=self.name,
                retention=self.retention,
                max_items=self.max_items,
            )
        except ET.ParseError as exc:
            raise SourceFetchError(f"RSS parse failed: {exc}", source=self.name, url=self.url) from exc

        logger.info("Loaded %d articles from %s", len(articles), self.name)
        return articles

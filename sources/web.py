"""Linked web page fetching for the "link instead of topic" request shape."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from config import get_source_settings
from utils.exceptions import ContentFetchError

from .rss import _http_get_text


logger = logging.getLogger(__name__)

DEFAULT_PAGE_TITLE = "News from the web"


@dataclass
class WebPage:
    """Title, readable text and lead image extracted from one page."""

    url: str
    title: str
    text: str
    image_url: Optional[str] = None


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    value = str(tag.get("content") or "").strip()
    return value or None


def extract_main_image(soup: BeautifulSoup) -> Optional[str]:
    """og:image, then twitter:image, then itemprop=image, then the first image inside <article>."""
    for attrs in ({"property": "og:image"}, {"name": "twitter:image"}, {"itemprop": "image"}):
        found = _meta_content(soup, **attrs)
        if found:
            return found
    article = soup.find("article")
    if article is not None:
        img = article.find("img", src=True)
        if img is not None:
            return str(img["src"]).strip() or None
    return None


def extract_text(soup: BeautifulSoup) -> str:
    for tag in soup(["script", "style", "noscript", "nav", "footer", "header"]):
        tag.decompose()
    container = soup.find("article") or soup.body or soup
    paragraphs = [p.get_text(" ", strip=True) for p in container.find_all("p")]
    paragraphs = [text for text in paragraphs if text]
    if paragraphs:
        return "\n\n".join(paragraphs)
    return " ".join(container.get_text(" ", strip=True).split())


def truncate_text(text: str, max_chars: int) -> str:
    value = str(text or "").strip()
    if max_chars <= 0 or len(value) <= max_chars:
        return value
    return value[:max_chars].rstrip() + "..."


def parse_page(url: str, html: str, *, max_chars: int = 3000) -> WebPage:
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    image_url = extract_main_image(soup)
    text = truncate_text(extract_text(soup), max_chars)
    return WebPage(url=url, title=title or DEFAULT_PAGE_TITLE, text=text, image_url=image_url)


async def fetch_web_content(url: str, *, max_chars: int = 3000, timeout: float = 30.0) -> WebPage:
    """
    Download a page and extract what the generator needs

    Raises:
        ContentFetchError: the page could not be downloaded
    """
    settings = get_source_settings()
    try:
        html = await _http_get_text(url, headers={"User-Agent": settings.user_agent}, timeout=timeout)
    except httpx.HTTPError as exc:
        raise ContentFetchError(f"Could not fetch page: {exc}", url=url) from exc

    page = parse_page(url, html, max_chars=max_chars)
    logger.info("Fetched page %s (%d chars, image=%s)", url, len(page.text), bool(page.image_url))
    return page

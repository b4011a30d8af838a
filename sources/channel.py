"""Public channel preview fetching, input for channel profile analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from config import get_source_settings
from utils.exceptions import ContentFetchError

from .rss import _http_get_text


logger = logging.getLogger(__name__)

CHANNEL_HOSTS = ("t.me", "telegram.me")
PREVIEW_URL = "https://t.me/s/{username}"

_USERNAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]{3,31}$")


@dataclass
class ChannelSnapshot:
    username: str
    title: str = ""
    description: str = ""
    posts: List[str] = field(default_factory=list)


def parse_channel_reference(reference: str) -> Optional[str]:
    """
    Channel username for ``@name`` or ``https://t.me/name`` references

    Returns None for anything else, including plain article links.
    """
    text = str(reference or "").strip()
    if text.startswith("@"):
        name = text[1:]
        return name if _USERNAME.match(name) else None

    candidate = text if "://" in text else f"https://{text}"
    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    if host not in CHANNEL_HOSTS:
        return None

    parts = [part for part in parsed.path.split("/") if part]
    if parts and parts[0] == "s":
        parts = parts[1:]
    if not parts or not _USERNAME.match(parts[0]):
        return None
    return parts[0]


def parse_channel_page(username: str, html: str, *, limit: int = 30) -> ChannelSnapshot:
    soup = BeautifulSoup(html, "html.parser")

    title_node = soup.select_one(".tgme_channel_info_header_title") or soup.title
    description_node = soup.select_one(".tgme_channel_info_description")

    posts: List[str] = []
    for node in soup.select(".tgme_widget_message_text"):
        text = node.get_text(" ", strip=True)
        if text:
            posts.append(text)

    # preview pages list oldest first
    posts = list(reversed(posts))[: max(0, limit)]
    return ChannelSnapshot(
        username=username,
        title=title_node.get_text(strip=True) if title_node else "",
        description=description_node.get_text(" ", strip=True) if description_node else "",
        posts=posts,
    )


async def fetch_channel_snapshot(username: str, *, limit: int = 30, timeout: Optional[float] = None) -> ChannelSnapshot:
    """
    Read a channel's public preview page

    Raises:
        ContentFetchError: the preview could not be downloaded
    """
    settings = get_source_settings()
    url = PREVIEW_URL.format(username=username)
    try:
        html = await _http_get_text(
            url,
            headers={"User-Agent": settings.user_agent},
            timeout=timeout or settings.request_timeout,
        )
    except httpx.HTTPError as exc:
        raise ContentFetchError(f"Could not fetch channel @{username}: {exc}", url=url) from exc

    snapshot = parse_channel_page(username, html, limit=limit)
    logger.info("Fetched @%s preview: %d posts", username, len(snapshot.posts))
    return snapshot

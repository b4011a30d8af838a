"""Hashtag suggestions attached to a successful result."""

import re
from typing import List

from core import Article


DEFAULT_HASHTAG = "#news"

_NON_WORD = re.compile(r"[^\w]+", flags=re.UNICODE)


def to_hashtag(tag: str) -> str:
    """``"Machine learning"`` -> ``"#MachineLearning"``; empty when nothing usable remains."""
    words = [word for word in _NON_WORD.split(str(tag or "")) if word]
    if not words:
        return ""
    if len(words) == 1:
        return f"#{words[0]}"
    return "#" + "".join(word[:1].upper() + word[1:] for word in words)


def suggest_hashtags(article: Article, limit: int = 3) -> List[str]:
    hashtags: List[str] = []
    seen = set()
    for tag in article.tags:
        hashtag = to_hashtag(tag)
        if not hashtag or hashtag.lower() in seen:
            continue
        seen.add(hashtag.lower())
        hashtags.append(hashtag)
        if len(hashtags) >= limit:
            break
    return hashtags or [DEFAULT_HASHTAG]

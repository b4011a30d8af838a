"""Hard content-policy exclusion applied to every fetched article."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from core import Article


DEFAULT_BLOCKLIST: Tuple[str, ...] = (
    "warfare",
    "war crime",
    "civil war",
    "military",
    "combat",
    "weapon",
    "airstrike",
    "missile",
    "shelling",
    "artillery",
    "frontline",
    "front line",
    "counteroffensive",
    "troops",
    "casualties",
    "killed",
    "wounded",
    "explosion",
    "bombing",
    "drone strike",
    "ammunition",
    "mobilization",
    "conscription",
    "prisoners of war",
    "mercenar",
    "landmine",
    "tank brigade",
    "ministry of defense",
    "ministry of defence",
)


@dataclass(frozen=True)
class ContentPolicy:
    """Case-insensitive substring blocklist over title and summary."""

    terms: Tuple[str, ...] = DEFAULT_BLOCKLIST
    _lowered: Tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lowered = tuple(str(term).strip().lower() for term in self.terms if str(term).strip())
        object.__setattr__(self, "_lowered", lowered)

    @classmethod
    def from_terms(cls, terms: Iterable[str]) -> "ContentPolicy":
        return cls(terms=tuple(terms))

    def blocked_term(self, article: Article) -> str:
        """Return the first matching blocked term, or an empty string."""
        text = article.text.lower()
        for term in self._lowered:
            if term in text:
                return term
        return ""

    def is_blocked(self, article: Article) -> bool:
        return bool(self.blocked_term(article))

    def apply(self, articles: Iterable[Article]) -> List[Article]:
        return [article for article in articles if not self.is_blocked(article)]

"""Keyword-to-category registry, loaded once and read-only afterwards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from core import Profile


GENERAL_CATEGORY = "General"


@dataclass(frozen=True)
class Category:
    name: str
    keywords: Tuple[str, ...]
    subtopics: Tuple[str, ...] = ()
    sources: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CategoryRegistry:
    """
    Ordered, immutable set of categories

    Order matters: ties are resolved in favour of the earlier category so
    detection is deterministic.
    """

    categories: Tuple[Category, ...]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(category.name for category in self.categories)

    def get(self, name: Optional[str]) -> Optional[Category]:
        key = str(name or "").strip().lower()
        for category in self.categories:
            if category.name.lower() == key:
                return category
        return None

    def detect_category(self, text: str) -> str:
        """Category with the most keyword hits in ``text``; General when nothing matches."""
        # padded so space-delimited keywords match at the edges
        lowered = " " + str(text or "").lower() + " "
        best = GENERAL_CATEGORY
        best_hits = 0
        for category in self.categories:
            hits = sum(1 for keyword in category.keywords if keyword.lower() in lowered)
            if hits > best_hits:
                best_hits = hits
                best = category.name
        return best

    def profile_category(self, profile: Profile) -> str:
        """Declared category if known, otherwise derived from topic, subtopics and keywords."""
        declared = self.get(profile.category)
        if declared is not None:
            return declared.name

        text = " " + " ".join([profile.main_topic, *profile.subtopics, *profile.keywords]).lower() + " "
        best = GENERAL_CATEGORY
        best_score = 0
        for category in self.categories:
            score = 0
            if category.name.lower() in text:
                score += 10
            score += 2 * sum(1 for keyword in category.keywords if keyword.lower() in text)
            score += 3 * sum(1 for subtopic in category.subtopics if subtopic.lower() in text)
            if score > best_score:
                best_score = score
                best = category.name
        return best

    def as_dict(self) -> Dict[str, Category]:
        return {category.name: category for category in self.categories}

    @classmethod
    def from_categories(cls, categories: Iterable[Category]) -> "CategoryRegistry":
        return cls(categories=tuple(categories))


DEFAULT_CATEGORIES: Tuple[Category, ...] = (
    Category(
        name="Tech & IT",
        keywords=(
            "programming", "software", "developer", "algorithm", "artificial intelligence",
            " ai ", "machine learning", "neural network", "llm", "cybersecurity", "hacker",
            "malware", "database", "cloud", "ios", "android", "frontend", "backend",
            "javascript", "typescript", "python", "devops", "docker", "kubernetes",
            "blockchain", "crypto", "web3", "open source", "startup tech", "game engine",
        ),
        subtopics=(
            "web development", "mobile development", "artificial intelligence", "cybersecurity",
            "cloud computing", "devops", "blockchain", "game development", "data science",
            "internet of things",
        ),
        sources=("TechCrunch", "The Verge", "Ars Technica", "Wired", "Hacker News"),
    ),
    Category(
        name="Business & Startups",
        keywords=(
            "startup", "business", "entrepreneur", "investment", "investor", "venture",
            "funding", "finance", "economy", "market", "stocks", "shares", "trading",
            "marketing", "advertising", "seo", "management", "leadership", "hiring",
            "sales", "revenue", "customers", "crm", "monetization", "freelance",
            "remote work", "career", "ipo", "acquisition",
        ),
        subtopics=(
            "startups and investment", "finance and trading", "marketing and advertising",
            "management", "sales and customers", "careers and work",
        ),
        sources=("BBC Business", "CNBC", "TechCrunch"),
    ),
    Category(
        name="Science & Education",
        keywords=(
            "science", "research", "discovery", "scientist", "laboratory", "education",
            "university", "student", "course", "mathematics", "physics", "chemistry",
            "biology", "medicine", "innovation", "invention", "patent", "space",
            "astronomy", "nasa", "telescope", "psychology", "sociology", "climate",
        ),
        subtopics=(
            "scientific discoveries", "education technology", "medicine and health",
            "space and astronomy", "psychology and society",
        ),
        sources=("ScienceDaily", "Phys.org", "NASA"),
    ),
    Category(
        name="Gadgets & Hardware",
        keywords=(
            "smartphone", "phone", "iphone", "samsung", "xiaomi", "laptop", "computer",
            "processor", "cpu", "gpu", "graphics card", "memory", "tablet", "smartwatch",
            "fitness tracker", "gadget", "device", "console", "playstation", "xbox",
            "nintendo", "electric vehicle", "tesla", "self-driving", "smart home", "iot",
            "robot", "drone",
        ),
        subtopics=(
            "smartphones and tablets", "laptops and computers", "game consoles",
            "cars and transport", "smart home and gadgets",
        ),
        sources=("The Verge", "Engadget", "Ars Technica"),
    ),
    Category(
        name="Sports",
        keywords=(
            "football", "soccer", "hockey", "basketball", "tennis", "boxing", "mma",
            "formula 1", "olympic", "championship", "league", "tournament", "match",
            "coach", "transfer",
        ),
        subtopics=("football", "hockey", "basketball", "tennis", "combat sports", "motorsport"),
        sources=("ESPN",),
    ),
)

DEFAULT_REGISTRY = CategoryRegistry(categories=DEFAULT_CATEGORIES)

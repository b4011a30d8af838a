"""Generation history, kept for analytics only."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError

from core import GenerationRecord


logger = logging.getLogger(__name__)

LINK_TOPIC_PREFIX = "link: "
LINK_TOPIC_MAX_CHARS = 50


def link_topic(url: str, max_chars: int = LINK_TOPIC_MAX_CHARS) -> str:
    """History topic recorded for a URL request."""
    value = str(url or "").strip()
    if len(value) > max_chars:
        value = value[:max_chars] + "..."
    return LINK_TOPIC_PREFIX + value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class GenerationHistory:
    """
    Thread-safe append-only list of committed generations

    With ``path`` set, every record is appended to a JSON-lines file and
    existing lines are loaded on construction.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = Path(path) if path else None
        self._records: List[GenerationRecord] = []
        self._lock = Lock()
        if self.path is not None:
            self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    self._records.append(GenerationRecord.model_validate_json(line))
                except ValidationError as exc:
                    logger.warning("Skipping bad history line %s:%d: %s", self.path, line_no, exc)
        logger.info("Loaded %d history records from %s", len(self._records), self.path)

    def record(self, user_id: str, topic: str, created_at: Optional[datetime] = None) -> GenerationRecord:
        entry = GenerationRecord(
            user_id=user_id,
            topic=str(topic or "").strip(),
            created_at=created_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._records.append(entry)
            if self.path is not None:
                try:
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                    with open(self.path, "a", encoding="utf-8") as f:
                        f.write(entry.model_dump_json() + "\n")
                except OSError as exc:
                    logger.error("Could not append history to %s: %s", self.path, exc)
        return entry

    def list_for_user(self, user_id: str, limit: Optional[int] = None) -> List[GenerationRecord]:
        """Newest first."""
        with self._lock:
            items = [item for item in self._records if item.user_id == user_id]
        items.reverse()
        return items[:limit] if limit else items

    def top_topics(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Tuple[str, int]]:
        """Most frequent topics in ``[since, until)``; ties keep first-seen order. Naive bounds are UTC."""
        since, until = _as_utc(since), _as_utc(until)
        with self._lock:
            items = list(self._records)

        counts: Counter = Counter()
        for item in items:
            if since is not None and item.created_at < since:
                continue
            if until is not None and item.created_at >= until:
                continue
            if item.topic:
                counts[item.topic] += 1
        return counts.most_common(limit)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

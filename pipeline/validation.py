"""Generated-output validation: empty output and refusal detection."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Iterable, Optional, Tuple

from utils.exceptions import EmptyOutputError, RefusalDetected, ValidationRejected


logger = logging.getLogger(__name__)

# Returns the matched refusal marker, or None when the text is acceptable.
RefusalPredicate = Callable[[str], Optional[str]]

DEFAULT_REFUSAL_PHRASES: Tuple[str, ...] = (
    "i cannot discuss this",
    "i can't discuss this",
    "i won't create this",
    "i will not create this",
    "i cannot create",
    "i can't create",
    "i cannot help with",
    "i can't help with",
    "i'm unable to",
    "i am unable to",
    "i cannot fulfill",
    "i can't fulfill",
    "as an ai language model",
    "i'm sorry, but i can",
    "i must decline",
    "cannot comply with this request",
    "against my guidelines",
    "let's talk about something else",
)


@dataclass(frozen=True)
class PhraseRefusalDetector:
    """Case-insensitive substring match against a fixed phrase list."""

    phrases: Tuple[str, ...] = DEFAULT_REFUSAL_PHRASES

    def __post_init__(self) -> None:
        cleaned = tuple(str(p).strip().lower() for p in self.phrases if p and str(p).strip())
        object.__setattr__(self, "phrases", cleaned)

    @classmethod
    def from_phrases(cls, phrases: Iterable[str]) -> "PhraseRefusalDetector":
        return cls(phrases=tuple(phrases))

    def __call__(self, text: str) -> Optional[str]:
        lowered = str(text or "").lower()
        for phrase in self.phrases:
            if phrase in lowered:
                return phrase
        return None


class OutputValidator:
    """
    Accepts or rejects generator output

    The refusal predicate is injected so a classifier can replace the
    phrase list without touching the state machine.
    """

    def __init__(self, refusal_predicate: Optional[RefusalPredicate] = None):
        self.refusal_predicate = refusal_predicate or PhraseRefusalDetector()

    def validate(self, text: Optional[str]) -> str:
        """
        Return the stripped text when acceptable

        Raises:
            EmptyOutputError: output is empty or whitespace only
            RefusalDetected: output matches the refusal predicate
        """
        value = str(text or "").strip()
        if not value:
            raise EmptyOutputError("Generator returned empty output")

        phrase = self.refusal_predicate(value)
        if phrase:
            raise RefusalDetected(f"Generator refused: matched {phrase!r}", phrase=phrase)
        return value

    def is_acceptable(self, text: Optional[str]) -> bool:
        try:
            self.validate(text)
        except ValidationRejected:
            return False
        return True

"""
Struggle detection over recent chat turns.

A cheap heuristic: a student message counts as a failed attempt when it
contains a confusion phrase, is a short question or objection, or repeats
the previous message almost word for word.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from socratic_memory.models import ChatMessage

logger = logging.getLogger(__name__)

CONFUSION_PHRASES = (
    # Spanish
    "no entiendo",
    "no comprendo",
    "estoy confundido",
    "estoy confundida",
    "me confunde",
    "no sé",
    "no se",
    "sigo sin entender",
    "todavía no entiendo",
    "todavia no entiendo",
    "otra vez",
    "de nuevo",
    "repite",
    "explícame de nuevo",
    "explicame de nuevo",
    "qué significa",
    "que significa",
    "qué quiere decir",
    "que quiere decir",
    "no me queda claro",
    "sigo perdido",
    "sigo perdida",
    "ayuda",
    "socorro",
    # English
    "i don't understand",
    "i dont understand",
    "i'm confused",
    "im confused",
    "i don't get it",
    "i dont get it",
    "still don't understand",
    "what does that mean",
    "explain again",
    "help",
    # Filler
    "???",
    "??",
    "ehh",
    "emmm",
)

NEGATION_MARKERS = frozenset({"no", "pero", "not", "but", "nope"})

SHORT_MESSAGE_CHARS = 20
REPEAT_SIMILARITY = 0.5
MIN_CONTENT_WORD_CHARS = 4

_PUNCTUATION = re.compile(r"[¿?¡!.,;:()\"']")
_TOKEN = re.compile(r"\w+")


@dataclass
class StruggleAnalysis:
    is_struggling: bool = False
    failed_attempts: int = 0
    concepts: List[str] = field(default_factory=list)


def content_words(text: str) -> Set[str]:
    """Lower-cased words longer than three characters, punctuation removed."""
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    return {word for word in cleaned.split() if len(word) >= MIN_CONTENT_WORD_CHARS}


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


class StruggleAnalyzer:
    """
    Detects repeated confusion in the student's recent messages.

    Args:
        threshold: Failed attempts needed to flag the student as struggling
        window: Number of most recent user messages examined
        phrases: Confusion lexicon (lower case)
    """

    def __init__(
        self,
        threshold: int = 2,
        window: int = 10,
        phrases: Iterable[str] = CONFUSION_PHRASES,
    ):
        self.threshold = threshold
        self.window = window
        self.phrases = tuple(phrases)

    def has_confusion_phrase(self, text: str) -> bool:
        lowered = text.lower()
        for phrase in self.phrases:
            if phrase.isalpha() or " " in phrase or "'" in phrase:
                # Whole-word match for words and phrases
                if re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", lowered):
                    return True
            elif phrase in lowered:
                return True
        return False

    @staticmethod
    def is_short_doubt(text: str) -> bool:
        stripped = text.strip()
        if len(stripped) >= SHORT_MESSAGE_CHARS:
            return False
        if "?" in stripped:
            return True
        return any(token in NEGATION_MARKERS for token in _TOKEN.findall(stripped.lower()))

    @staticmethod
    def is_repeat(current: str, previous: Optional[str]) -> bool:
        if previous is None:
            return False
        return jaccard(content_words(current), content_words(previous)) > REPEAT_SIMILARITY

    def analyze_texts(self, texts: Sequence[str]) -> StruggleAnalysis:
        """Analyze user message texts, oldest first."""
        recent = list(texts)[-self.window:]
        if len(recent) < 2:
            return StruggleAnalysis()

        failed_attempts = 0
        concepts: List[str] = []
        previous: Optional[str] = None

        for text in recent:
            repeated = self.is_repeat(text, previous)
            if repeated:
                for word in sorted(content_words(text) & content_words(previous)):
                    if word not in concepts:
                        concepts.append(word)

            if self.has_confusion_phrase(text) or self.is_short_doubt(text) or repeated:
                failed_attempts += 1
            previous = text

        analysis = StruggleAnalysis(
            is_struggling=failed_attempts >= self.threshold,
            failed_attempts=failed_attempts,
            concepts=concepts,
        )
        logger.debug(
            f"Struggle analysis: {failed_attempts} failed attempts over {len(recent)} messages"
        )
        return analysis

    def analyze(self, messages: Sequence[ChatMessage]) -> StruggleAnalysis:
        """Analyze a session history (any roles, ascending order)."""
        return self.analyze_texts([m.content for m in messages if m.role == "user"])

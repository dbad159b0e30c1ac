"""Stop-words and topic affinity groups used for term extraction.

The tables are loaded from JSON so they can be tuned without touching the grouping
or planning code.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from chatrecall.config import DEFAULT_VOCABULARY_PATH

_STRIP_CHARS = ".,!?()[]{}:;\"'`"
_TOKEN_RE = re.compile(r"[\w][\w.+#-]*")


@dataclass(frozen=True)
class Vocabulary:
    """Stop-word list and groups of mutually related topic terms."""

    stop_words: frozenset[str] = frozenset()
    topic_groups: tuple[frozenset[str], ...] = field(default_factory=tuple)

    def is_stop_word(self, word: str) -> bool:
        return word.lower() in self.stop_words

    def significant_terms(self, text: str) -> list[str]:
        """Lower-cased, punctuation-stripped words longer than 3 characters."""
        terms = []
        for word in text.lower().split():
            word = word.strip(_STRIP_CHARS)
            if len(word) > 3 and word not in self.stop_words:
                terms.append(word)
        return terms

    def keywords(self, text: str) -> list[str]:
        """Ordered, de-duplicated non-stop-words of a question."""
        seen: list[str] = []
        for token in _TOKEN_RE.findall(text.lower()):
            token = token.strip(_STRIP_CHARS)
            if len(token) < 2 or token in self.stop_words or token in seen:
                continue
            seen.append(token)
        return seen

    def same_topic(self, first: str, second: str) -> bool:
        """True when both terms fall into one topic affinity group."""
        for group in self.topic_groups:
            if any(t in first for t in group) and any(t in second for t in group):
                return True
        return False

    def terms_related(self, first: str, second: str) -> bool:
        if first == second:
            return True
        if len(first) > 3 and len(second) > 3 and (first in second or second in first):
            return True
        return self.same_topic(first, second)

    def share_terms(self, first: list[str], second: list[str]) -> bool:
        return any(self.terms_related(a, b) for a in first for b in second)


def load_vocabulary(path: str | Path | None = None) -> Vocabulary:
    """Load a vocabulary table from JSON.

    Expected shape::

        {"stop_words": [...], "topic_groups": {"name": [...], ...}}

    ``topic_groups`` may also be a plain list of lists.
    """
    path = Path(path) if path else DEFAULT_VOCABULARY_PATH
    with open(path, "r", encoding="utf-8") as handle:
        raw = json.load(handle)

    groups = raw.get("topic_groups", {})
    if isinstance(groups, dict):
        groups = list(groups.values())

    return Vocabulary(
        stop_words=frozenset(word.lower() for word in raw.get("stop_words", [])),
        topic_groups=tuple(frozenset(term.lower() for term in group) for group in groups if group),
    )

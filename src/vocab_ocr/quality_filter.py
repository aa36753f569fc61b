"""Final acceptance gate for word candidates.

A candidate reaches the output only if it has a valid word pattern, enough
confidence for its length and commonness, and is not on the blacklist of
tokens OCR engines commonly hallucinate.
"""

import logging
import string

from .config_loader import QualityFilterConfig
from .validator import is_common_english_word, is_valid_word_pattern

logger = logging.getLogger(__name__)

BLACKLIST_WORDS = frozenset(
    # roman numeral fragments
    {"il", "ii", "iii", "iv", "vi", "vii", "viii", "ix", "xi"}
    # doubled letters
    | {letter * 2 for letter in string.ascii_lowercase}
    # repeated noise
    | {"lol", "lll", "ooo", "uuu"}
)


class QualityFilter:
    """Confidence- and blacklist-based acceptance of word candidates.

    Args:
        config: Quality filter thresholds.

    Example:
        >>> quality_filter = QualityFilter(QualityFilterConfig())
        >>> quality_filter.passes("an", 75)
        True
        >>> quality_filter.passes("an", 65)
        False
    """

    def __init__(self, config: QualityFilterConfig):
        self.config = config

    def passes(self, word: str, confidence: float) -> bool:
        """Check if a word is accepted.

        Args:
            word: Candidate word (any case)
            confidence: Candidate confidence (0-100)

        Returns:
            True if the word passes every acceptance rule
        """
        if not word:
            return False

        word = word.strip()
        lowered = word.lower()

        if lowered in BLACKLIST_WORDS:
            logger.debug(f"Rejected blacklisted word '{word}' (confidence={confidence:.1f})")
            return False

        if not is_valid_word_pattern(word):
            return False

        if confidence < self.config.min_confidence:
            return False

        if (
            len(word) <= self.config.short_word_max_length
            and confidence < self.config.short_word_min_confidence
        ):
            return False

        if (
            not is_common_english_word(word)
            and confidence < self.config.uncommon_word_min_confidence
        ):
            return False

        return True

    def is_blacklisted(self, word: str) -> bool:
        """Check if a word is on the blacklist (case-insensitive)."""
        return word.strip().lower() in BLACKLIST_WORDS

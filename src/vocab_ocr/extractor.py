"""Vocabulary word extraction from a recognition result.

Vocabulary sheets put the headword at the left of each line, followed by
pronunciation, part of speech and a translation. The extractor therefore
takes at most one word per line: the leftmost token that looks like an
English word and is not inside brackets, quotes or right after CJK text.

Example:
    >>> extractor = WordExtractor(QualityFilterConfig())
    >>> candidates = extractor.extract(best_result)
    >>> print([c.word for c in candidates])
    ['apple', 'banana']
"""

import functools
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .common.types import BBox
from .config_loader import QualityFilterConfig
from .quality_filter import QualityFilter
from .types import (
    EngineLine,
    EngineWord,
    ExtractionSource,
    RecognitionResult,
    WordCandidate,
)
from .validator import is_plausible_english_word, is_valid_word_pattern

logger = logging.getLogger(__name__)

# Hiragana, katakana, Hangul jamo, Hangul syllables and CJK ideographs
_CJK_CHARS = "\u3040-\u30ff\u3131-\u318e\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7a3"
_CJK_RE = re.compile(f"[{_CJK_CHARS}]")
_CJK_BEFORE_RE = re.compile(f"[{_CJK_CHARS}]\\s*$")

_OPENING_BRACKETS = "[({<"
_CLOSING_BRACKETS = "])}>"

_ENCLOSED_SPAN_RE = re.compile(
    r"\[[^\]]*\]|\([^)]*\)|\{[^}]*\}|<[^>]*>|\"[^\"]*\"|\u201c[^\u201d]*\u201d"
)
_DIGITS_RE = re.compile(r"\d+")
_NON_WORD_RE = re.compile(r"[^\w\s'-]")
_TOKEN_RE = re.compile(r"^[a-zA-Z'-]+$")
_LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass
class LineData:
    """A recognized line with whatever structure the engine supplied."""

    text: str
    bbox: Optional[BBox] = None
    words: List[EngineWord] = field(default_factory=list)


def is_enclosed(before: str) -> bool:
    """Check whether text following ``before`` sits inside brackets or quotes.

    Args:
        before: Line text preceding the token

    Returns:
        True if an opening bracket or quote is still unclosed
    """
    opened = sum(before.count(c) for c in _OPENING_BRACKETS)
    closed = sum(before.count(c) for c in _CLOSING_BRACKETS)
    if opened > closed:
        return True
    if before.count('"') % 2 == 1:
        return True
    return before.count("\u201c") > before.count("\u201d")


def locate_word(word: str, line_text: str, cursor: int = 0) -> int:
    """Find ``word`` in ``line_text`` at or after ``cursor`` (-1 if absent)."""
    return line_text.find(word, cursor)


def is_valid_word_start(word: str, line_text: str, position: int = -1) -> bool:
    """Check whether a token can be the headword of its line.

    Args:
        word: Candidate token
        line_text: Full line text
        position: Index of the token in ``line_text`` (-1 if not found)

    Returns:
        True if the token passes the pattern test and is neither enclosed
        in brackets/quotes nor directly preceded by CJK text
    """
    if not is_valid_word_pattern(word):
        return False
    if position < 0:
        return True

    before = line_text[:position]
    if is_enclosed(before):
        return False
    if _CJK_BEFORE_RE.search(before):
        return False
    return True


def clean_line_text(line_text: str) -> str:
    """Strip enclosed spans, CJK text, digits and punctuation from a line."""
    cleaned = _ENCLOSED_SPAN_RE.sub(" ", line_text)
    cleaned = _CJK_RE.sub(" ", cleaned)
    cleaned = _DIGITS_RE.sub(" ", cleaned)
    cleaned = _NON_WORD_RE.sub(" ", cleaned)
    return " ".join(cleaned.split())


def _candidate_sort_key(a: WordCandidate, b: WordCandidate) -> float:
    if a.bbox is not None and b.bbox is not None:
        return a.bbox.y0 - b.bbox.y0
    return b.confidence - a.confidence


def sort_candidates(candidates: List[WordCandidate]) -> List[WordCandidate]:
    """Order candidates top to bottom.

    Pairs where both candidates have a bbox compare by y0; any other pair
    compares by descending confidence.
    """
    return sorted(candidates, key=functools.cmp_to_key(_candidate_sort_key))


def remove_duplicate_words(candidates: List[WordCandidate]) -> List[WordCandidate]:
    """Keep one candidate per lowercase word, preferring higher confidence.

    On equal confidence the first occurrence is kept. Output order follows
    the first occurrence of each word.
    """
    unique = {}
    for candidate in candidates:
        key = candidate.word.lower()
        existing = unique.get(key)
        if existing is None or candidate.confidence > existing.confidence:
            unique[key] = candidate
    return list(unique.values())


class WordExtractor:
    """Turn the selected recognition result into vocabulary candidates.

    Args:
        config: Quality filter thresholds (token confidence floor,
            text-parse confidence, plausibility and acceptance thresholds).

    Attributes:
        quality_filter: Final acceptance gate.
    """

    def __init__(self, config: QualityFilterConfig):
        self.config = config
        self.quality_filter = QualityFilter(config)

    def is_plausible(self, word: str, confidence: float) -> bool:
        """Plausibility check with the configured low-confidence thresholds."""
        return is_plausible_english_word(
            word,
            confidence,
            low_confidence=self.config.low_confidence,
            low_confidence_floor=self.config.low_confidence_floor,
        )

    def extract_lines(self, result: RecognitionResult) -> List[LineData]:
        """Collect lines from the first source that has non-blank lines.

        Sources in order: engine lines, paragraph lines, raw text split on
        newlines.

        Args:
            result: Selected recognition result

        Returns:
            Non-blank lines in reading order
        """
        lines = self._from_engine_lines(result.lines)
        if lines:
            return lines

        paragraph_lines = [line for p in result.paragraphs for line in p.lines]
        lines = self._from_engine_lines(paragraph_lines)
        if lines:
            return lines

        return [
            LineData(text=text.strip())
            for text in _LINE_BREAK_RE.split(result.text or "")
            if text.strip()
        ]

    @staticmethod
    def _from_engine_lines(engine_lines: List[EngineLine]) -> List[LineData]:
        return [
            LineData(text=line.text, bbox=line.bbox, words=list(line.words))
            for line in engine_lines
            if line.text and line.text.strip()
        ]

    def extract_first_word_from_line(
        self, line: LineData
    ) -> Optional[Tuple[str, float, Optional[BBox], ExtractionSource]]:
        """Find the headword of a line.

        When the engine supplied word boxes, tokens are visited left to right
        by bbox x0. If no boxed token qualifies, or there are no boxes, the
        line text itself is parsed.

        Args:
            line: Line to inspect

        Returns:
            ``(word, confidence, bbox, source)`` or None
        """
        boxed = [w for w in line.words if w.bbox is not None]
        if not boxed:
            return self.parse_first_word_from_text(line)

        boxed.sort(key=lambda w: w.bbox.x0)
        cursor = 0
        for engine_word in boxed:
            token = (engine_word.text or "").strip()
            if not token:
                continue

            position = locate_word(token, line.text, cursor)
            if position >= 0:
                cursor = position + len(token)

            if engine_word.confidence < self.config.token_min_confidence:
                continue
            if is_valid_word_start(token, line.text, position):
                return token, engine_word.confidence, engine_word.bbox, ExtractionSource.LINE_BASED

        return self.parse_first_word_from_text(line)

    def parse_first_word_from_text(
        self, line: LineData
    ) -> Optional[Tuple[str, float, Optional[BBox], ExtractionSource]]:
        """Parse the headword from the line text.

        The token keeps the confidence of an engine word in the line that
        matches it once punctuation is stripped, otherwise the configured
        text-parse confidence. Its bbox is the line bbox.

        Args:
            line: Line to parse

        Returns:
            ``(word, confidence, bbox, source)`` or None
        """
        for token in clean_line_text(line.text).split():
            if len(token) < 2 or not _TOKEN_RE.match(token):
                continue
            if not is_valid_word_pattern(token):
                continue
            return token, self._match_confidence(token, line.words), line.bbox, ExtractionSource.FALLBACK
        return None

    def _match_confidence(self, token: str, words: List[EngineWord]) -> float:
        lowered = token.lower()
        for word in words:
            if clean_line_text(word.text or "").lower() == lowered:
                return word.confidence
        return self.config.text_parse_confidence

    def fallback_extraction(self, result: RecognitionResult) -> List[WordCandidate]:
        """Scan the flat word list when no line produced a headword.

        Args:
            result: Selected recognition result

        Returns:
            Every plausible, acceptable token tagged as ``flat_list``
        """
        candidates = []
        for engine_word in result.words:
            token = (engine_word.text or "").strip()
            confidence = engine_word.confidence
            if not token or confidence < self.config.token_min_confidence:
                continue
            if not self.is_plausible(token, confidence):
                continue
            if not self.quality_filter.passes(token, confidence):
                continue
            candidates.append(
                WordCandidate(
                    word=token.lower(),
                    confidence=confidence,
                    bbox=engine_word.bbox,
                    source=ExtractionSource.FLAT_LIST,
                )
            )
        return candidates

    def extract(self, result: RecognitionResult) -> List[WordCandidate]:
        """Extract accepted, deduplicated, top-to-bottom word candidates.

        Args:
            result: Selected recognition result

        Returns:
            Final candidate list
        """
        candidates: List[WordCandidate] = []

        for line in self.extract_lines(result):
            found = self.extract_first_word_from_line(line)
            if found is None:
                continue
            word, confidence, bbox, source = found
            if not self.is_plausible(word, confidence):
                logger.debug(f"Implausible headword '{word}' ({confidence:.1f}) in line '{line.text}'")
                continue
            candidates.append(
                WordCandidate(
                    word=word.lower(),
                    confidence=confidence,
                    bbox=bbox,
                    line=line.text,
                    source=source,
                )
            )

        if not candidates:
            candidates = self.fallback_extraction(result)
            logger.debug(f"Line pass found no words, flat list scan found {len(candidates)}")

        accepted = [c for c in candidates if self.quality_filter.passes(c.word, c.confidence)]
        unique = remove_duplicate_words(accepted)
        logger.info(
            f"Extracted {len(unique)} words "
            f"({len(candidates)} candidates, {len(accepted)} accepted)"
        )
        return sort_candidates(unique)

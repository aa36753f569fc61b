"""English word pattern validation and plausibility heuristics.

This module decides whether a recognized token looks like an English
vocabulary word. It is a noise filter for OCR output, not a spellchecker:

    - is_valid_word_pattern: strict character/shape test
    - is_common_english_word: high-frequency list or generic word shape
    - is_implausible_letter_pattern: letter combinations OCR noise produces
    - is_plausible_english_word: combined heuristic with confidence
"""

import re

NO_VOWEL_EXCEPTIONS = frozenset(
    {"by", "cry", "dry", "fly", "fry", "my", "pry", "shy", "sky", "sly", "spy", "try", "why"}
)

# Two-letter words allowed despite starting with j/q/x/z
RARE_LETTER_EXCEPTIONS = frozenset({"jo", "qi", "xi", "xu", "za", "zo"})

COMMON_WORDS = frozenset(
    {
        # function words
        "a", "an", "and", "are", "as", "at", "be", "been", "by", "for", "from",
        "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
        "to", "was", "will", "with", "you", "your", "have", "had", "his", "her",
        "she", "we", "they", "them", "this", "can", "do", "not", "but", "or",
        # nouns
        "time", "year", "way", "day", "man", "thing", "woman", "life", "child",
        "world", "school", "state", "family", "student", "group", "country",
        "problem", "hand", "part", "place", "case", "week", "company", "system",
        "program", "question", "work", "government", "number", "night", "point",
        "home", "water", "room", "mother", "area", "money", "story", "fact",
        "month", "lot", "right", "study", "book", "eye", "job", "word", "business",
        # verbs and adjectives
        "see", "get", "make", "go", "know", "take", "say", "come", "could",
        "want", "look", "use", "find", "give", "tell", "ask", "seem",
        "feel", "try", "leave", "call", "good", "new", "first", "last", "long",
        "great", "little", "own", "other", "old", "big", "high", "different",
        "small", "large", "next", "early", "young", "important", "few", "public",
        "bad", "same", "able",
    }
)

_WORD_CHARS_RE = re.compile(r"^[a-zA-Z'-]+$")
_EDGE_OR_DOUBLED_PUNCT_RE = re.compile(r"^['-]|['-]$|--|''")
_TRIPLE_REPEAT_RE = re.compile(r"(.)\1{2,}")
_VOWEL_RE = re.compile(r"[aeiou]", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")
_CONSONANTS_ONLY_RE = re.compile(r"^[bcdfghjklmnpqrstvwxyz]+$", re.IGNORECASE)
_VOWELS_ONLY_RE = re.compile(r"^[aeiou]+$", re.IGNORECASE)
_Q_OR_X_WITHOUT_U_RE = re.compile(r"^[qx][^u]", re.IGNORECASE)
_XYZ_RUN_RE = re.compile(r"[xyz]{2,}", re.IGNORECASE)
_RARE_INITIAL_RE = re.compile(r"^[jqxz]", re.IGNORECASE)


def has_vowel(word: str) -> bool:
    """Check if word contains at least one of a/e/i/o/u (any case)."""
    return bool(_VOWEL_RE.search(word))


def is_valid_word_pattern(word: str) -> bool:
    """Check whether a token has the shape of an English word.

    A token is valid iff it contains only ASCII letters, apostrophes and
    hyphens; is 2-20 characters long; does not start or end with an
    apostrophe/hyphen; contains no doubled hyphen or apostrophe; repeats no
    character 3+ times in a row; and contains a vowel unless it is one of the
    no-vowel exceptions (sky, try, ...).

    Args:
        word: Candidate token (surrounding whitespace is ignored)

    Returns:
        True if the token passes every pattern rule, False otherwise

    Example:
        >>> is_valid_word_pattern("sky")
        True
        >>> is_valid_word_pattern("xyz")
        False
        >>> is_valid_word_pattern("try-")
        False
    """
    if not word or not isinstance(word, str):
        return False

    trimmed = word.strip()

    if len(trimmed) < 2 or len(trimmed) > 20:
        return False
    if not _WORD_CHARS_RE.match(trimmed):
        return False
    if _EDGE_OR_DOUBLED_PUNCT_RE.search(trimmed):
        return False
    if _TRIPLE_REPEAT_RE.search(trimmed):
        return False

    if not has_vowel(trimmed) and trimmed.lower() not in NO_VOWEL_EXCEPTIONS:
        return False

    return True


def is_common_english_word(word: str) -> bool:
    """Check whether a word is common or at least has a common word shape.

    True for members of the high-frequency list, for no-vowel exceptions,
    and for any word with a vowel and a length of 2-15 characters.

    Args:
        word: Word to check

    Returns:
        True if the word counts as common
    """
    if not word:
        return False

    lowered = word.lower()
    if lowered in COMMON_WORDS:
        return True

    if not has_vowel(word):
        return lowered in NO_VOWEL_EXCEPTIONS

    return 2 <= len(word) <= 15


def is_implausible_letter_pattern(word: str) -> bool:
    """Check for letter combinations that OCR noise produces.

    Flags consonant-only words of 3+ letters (except sky, try, ...),
    vowel-only words of 3+ letters, q/x not followed by u, runs of two or
    more x/y/z, and two-letter words starting with j/q/x/z other than
    jo, qi, xi, xu, za, zo.

    Args:
        word: Word to check

    Returns:
        True if the word looks like noise
    """
    lowered = word.lower()

    if len(word) >= 3 and _CONSONANTS_ONLY_RE.match(word):
        if lowered not in NO_VOWEL_EXCEPTIONS:
            return True

    if len(word) >= 3 and _VOWELS_ONLY_RE.match(word):
        return True

    if lowered in RARE_LETTER_EXCEPTIONS:
        return False

    if _Q_OR_X_WITHOUT_U_RE.match(word) or _XYZ_RUN_RE.search(word):
        return True

    if len(word) <= 2 and _RARE_INITIAL_RE.match(word):
        return True

    return False


def is_plausible_english_word(
    word: str,
    confidence: float,
    low_confidence: float = 60.0,
    low_confidence_floor: float = 50.0,
) -> bool:
    """Check whether a recognized token is a plausible vocabulary word.

    Combines the shape rules with the letter-pattern heuristics. Tokens
    recognized with low confidence must additionally be common words.

    Args:
        word: Recognized token
        confidence: Engine confidence for the token (0-100)
        low_confidence: Below this, the word must be common
        low_confidence_floor: Absolute minimum confidence for common words

    Returns:
        True if the token is plausible

    Example:
        >>> is_plausible_english_word("apple", 95)
        True
        >>> is_plausible_english_word("qwrt", 95)
        False
    """
    if not word or not isinstance(word, str):
        return False

    trimmed = word.strip()

    if len(trimmed) < 2 or len(trimmed) > 30:
        return False
    if _DIGIT_RE.search(trimmed):
        return False
    if not _WORD_CHARS_RE.match(trimmed):
        return False
    if _EDGE_OR_DOUBLED_PUNCT_RE.search(trimmed):
        return False
    if _TRIPLE_REPEAT_RE.search(trimmed):
        return False
    if is_implausible_letter_pattern(trimmed):
        return False

    if confidence < low_confidence:
        return is_common_english_word(trimmed) and confidence >= low_confidence_floor

    return True

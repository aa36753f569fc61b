"""Unit tests for the word quality filter."""

import pytest

from vocab_ocr.config_loader import QualityFilterConfig
from vocab_ocr.quality_filter import BLACKLIST_WORDS, QualityFilter


@pytest.fixture
def quality_filter():
    """Provide QualityFilter with default thresholds."""
    return QualityFilter(QualityFilterConfig())


class TestBlacklist:
    """Test the fixed blacklist."""

    def test_contains_roman_numerals(self):
        """Test roman numeral fragments are blacklisted."""
        for token in ("ii", "iii", "iv", "vi", "ix"):
            assert token in BLACKLIST_WORDS

    def test_contains_doubled_letters(self):
        """Test every doubled letter aa..zz is blacklisted."""
        assert "aa" in BLACKLIST_WORDS
        assert "zz" in BLACKLIST_WORDS
        assert len({w for w in BLACKLIST_WORDS if len(w) == 2 and w[0] == w[1]}) == 26

    def test_is_blacklisted_case_insensitive(self, quality_filter):
        """Test blacklist lookup ignores case and whitespace."""
        assert quality_filter.is_blacklisted("LOL") is True
        assert quality_filter.is_blacklisted(" ooo ") is True
        assert quality_filter.is_blacklisted("apple") is False

    @pytest.mark.parametrize("token", ["ii", "iv", "lol", "Aa"])
    def test_blacklisted_rejected_at_high_confidence(self, quality_filter, token):
        """Test blacklisted words are rejected regardless of confidence."""
        assert quality_filter.passes(token, 99) is False


class TestConfidenceRules:
    """Test confidence thresholds."""

    def test_short_word_low_confidence_rejected(self, quality_filter):
        """Test a length-2 word at confidence 65 is rejected."""
        assert quality_filter.passes("an", 65) is False

    def test_short_word_high_confidence_accepted(self, quality_filter):
        """Test a length-2 word at confidence 75 is accepted."""
        assert quality_filter.passes("an", 75) is True

    def test_minimum_confidence(self, quality_filter):
        """Test the global confidence floor of 40."""
        assert quality_filter.passes("apple", 39.9) is False
        assert quality_filter.passes("apple", 40) is True

    def test_uncommon_word_needs_higher_confidence(self, quality_filter):
        """Test words outside the common set need confidence 65."""
        assert quality_filter.passes("internationalized", 60) is False
        assert quality_filter.passes("internationalized", 65) is True

    def test_custom_thresholds(self):
        """Test thresholds come from configuration."""
        strict = QualityFilter(QualityFilterConfig(min_confidence=80))
        assert strict.passes("apple", 75) is False
        assert strict.passes("apple", 85) is True


class TestPatternRules:
    """Test pattern rejection inside the filter."""

    @pytest.mark.parametrize("token", ["", "rhythm", "word1", "-apple", "aaah"])
    def test_invalid_pattern_rejected(self, quality_filter, token):
        """Test tokens failing the pattern test are rejected."""
        assert quality_filter.passes(token, 99) is False

    def test_no_vowel_exception_accepted(self, quality_filter):
        """Test no-vowel exceptions pass at normal confidence."""
        assert quality_filter.passes("sky", 80) is True

"""Unit tests for multi-strategy recognition and result selection."""

import asyncio

import numpy as np
import pytest

from vocab_ocr.common.types import ImageBuffer
from vocab_ocr.config_loader import OCRModuleConfig, ScoringConfig
from vocab_ocr.exceptions import PipelineExhaustionError
from vocab_ocr.orchestrator import RecognitionOrchestrator, evaluate_recognition_quality
from vocab_ocr.progress import ProgressReporter
from vocab_ocr.types import EngineOutput, EngineWord, RecognitionResult


@pytest.fixture
def image():
    """Provide a small white RGBA image."""
    return ImageBuffer.from_array(np.full((40, 120, 3), 255, dtype=np.uint8))


def excellent_output():
    """Engine mapping scoring above the excellent early-exit threshold."""
    words = ["apple", "banana", "cherry", "grape", "lemon"]
    return {
        "text": "\n".join(words),
        "confidence": 95,
        "words": [{"text": w, "confidence": 95} for w in words],
    }


def good_output():
    """Engine mapping that is good but not excellent (confidence 75)."""
    words = ["apple", "banana", "cherry", "grape", "lemon"]
    return {
        "text": "\n".join(words),
        "confidence": 75,
        "words": [{"text": w, "confidence": 75} for w in words],
    }


def weak_output():
    """Engine mapping well below every early-exit threshold."""
    return {"text": "xq", "confidence": 30, "words": [{"text": "xq", "confidence": 30}]}


# ═══════════════════════════════════════════════════════════════════════════
# QUALITY SCORE
# ═══════════════════════════════════════════════════════════════════════════


class TestEvaluateRecognitionQuality:
    """Test the recognition quality score."""

    def test_score_components(self):
        """Test every component of the quality score."""
        output = EngineOutput(
            text="cat dog sun",
            confidence=80,
            words=[EngineWord(text=w, confidence=90) for w in ("cat", "dog", "sun")],
        )
        # 32 + 12 + 5.5 + 15 + 9
        assert evaluate_recognition_quality(output, ScoringConfig()) == pytest.approx(73.5)

    def test_invalid_words_lower_ratio(self):
        """Test invalid words reduce the valid-word component."""
        output = EngineOutput(
            text="",
            confidence=0,
            words=[EngineWord(text="cat", confidence=0), EngineWord(text="x1", confidence=0)],
        )
        # 8 (word count) + 7.5 (half valid)
        assert evaluate_recognition_quality(output, ScoringConfig()) == pytest.approx(15.5)

    def test_empty_output(self):
        """Test an empty output scores zero."""
        assert evaluate_recognition_quality(EngineOutput(), ScoringConfig()) == 0.0

    def test_clamped_to_100(self):
        """Test the score never exceeds 100."""
        output = EngineOutput(
            text="x" * 100,
            confidence=100,
            words=[EngineWord(text="apple", confidence=100)] * 10,
        )
        scoring = ScoringConfig(confidence_weight=1.0)
        assert evaluate_recognition_quality(output, scoring) == 100.0


# ═══════════════════════════════════════════════════════════════════════════
# STRATEGY LOOP
# ═══════════════════════════════════════════════════════════════════════════


class TestRun:
    """Test the strategy loop."""

    def test_strategies_from_config(self, fake_engine):
        """Test the five default strategies are built in order."""
        orchestrator = RecognitionOrchestrator(fake_engine(lambda *a: weak_output()), OCRModuleConfig())
        assert [s.name for s in orchestrator.strategies] == [
            "single_word_high_quality",
            "text_line_optimized",
            "text_block_dense",
            "sparse_text_auto",
            "mixed_content",
        ]

    def test_excellent_result_exits_immediately(self, fake_engine, image):
        """Test strategy two is never invoked after an excellent first result."""
        engine = fake_engine(lambda *a: excellent_output())
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        results = asyncio.run(orchestrator.run(image))

        assert len(results) == 1
        assert len(engine.calls) == 1
        assert results[0].quality_score > 90

    def test_good_result_exits_after_three_attempts(self, fake_engine, image):
        """Test a good result stops the loop once three attempts were made."""
        engine = fake_engine(lambda *a: good_output())
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        results = asyncio.run(orchestrator.run(image))

        assert len(results) == 3
        assert len(engine.calls) == 3

    def test_weak_results_try_every_strategy(self, fake_engine, image):
        """Test the loop runs all strategies when no result is good enough."""
        engine = fake_engine(lambda *a: weak_output())
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        results = asyncio.run(orchestrator.run(image))

        assert len(results) == 5
        assert [r.strategy for r in results] == [s.name for s in orchestrator.strategies]

    def test_failure_recorded_and_loop_continues(self, fake_engine, make_sequence_handler, image):
        """Test an engine failure becomes an error entry with zero scores."""
        engine = fake_engine(
            make_sequence_handler([RuntimeError("tesseract crashed"), excellent_output()])
        )
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        results = asyncio.run(orchestrator.run(image))

        assert len(results) == 2
        assert results[0].is_error()
        assert "tesseract crashed" in results[0].error
        assert results[0].quality_score == 0.0
        assert results[0].confidence == 0.0
        assert not results[1].is_error()

    def test_malformed_output_is_failure(self, fake_engine, image):
        """Test output that is neither a mapping nor EngineOutput fails the attempt."""
        engine = fake_engine(lambda *a: 42)
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        results = asyncio.run(orchestrator.run(image))

        assert len(results) == 5
        assert all(r.is_error() for r in results)

    def test_strategy_options(self, fake_engine, image):
        """Test each call layers strategy options over the baseline."""
        engine = fake_engine(lambda *a: weak_output())
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        asyncio.run(orchestrator.run(image))

        psm = [call["options"]["tessedit_pageseg_mode"] for call in engine.calls]
        assert psm == ["8", "7", "6", "3", "11"]
        second = engine.calls[1]["options"]
        assert second["preserve_interword_spaces"] == "1"
        assert second["tessedit_ocr_engine_mode"] == "1"
        assert "'" in second["tessedit_char_whitelist"]

    def test_debug_steps(self, fake_engine, image):
        """Test debug mode records a step log including the early exit."""
        engine = fake_engine(lambda *a: excellent_output())
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        results = asyncio.run(orchestrator.run(image, debug=True))

        steps = results[0].processing_steps
        assert steps[0].startswith("Strategy: single_word_high_quality")
        assert steps[-1].startswith("Early exit")

    def test_no_steps_without_debug(self, fake_engine, image):
        """Test the step log stays empty outside debug mode."""
        engine = fake_engine(lambda *a: weak_output())
        results = asyncio.run(RecognitionOrchestrator(engine, OCRModuleConfig()).run(image))
        assert all(r.processing_steps == [] for r in results)

    def test_progress_in_strategy_phase(self, fake_engine, image):
        """Test progress stays within 20-90 percent and never decreases."""
        events = []
        engine = fake_engine(lambda *a: weak_output())
        orchestrator = RecognitionOrchestrator(engine, OCRModuleConfig())

        asyncio.run(orchestrator.run(image, ProgressReporter(events.append)))

        percents = [e.percent for e in events]
        assert percents
        assert all(20 <= p <= 90 for p in percents)
        assert percents == sorted(percents)


# ═══════════════════════════════════════════════════════════════════════════
# SELECTION
# ═══════════════════════════════════════════════════════════════════════════


class TestSelectBestResult:
    """Test best-result selection."""

    @pytest.fixture
    def orchestrator(self, fake_engine):
        return RecognitionOrchestrator(fake_engine(lambda *a: weak_output()), OCRModuleConfig())

    def test_combined_score(self, orchestrator):
        """Test 0.6 * quality + 0.4 * confidence decides, first wins ties."""
        results = [
            RecognitionResult(strategy="a", quality_score=50, confidence=50),
            RecognitionResult(strategy="b", quality_score=60, confidence=40),
            RecognitionResult(strategy="c", quality_score=40, confidence=70),
        ]
        assert orchestrator.select_best_result(results).strategy == "b"

    def test_errors_ignored(self, orchestrator):
        """Test error entries are never selected when a valid result exists."""
        results = [
            RecognitionResult(strategy="failed", error="boom", quality_score=99, confidence=99),
            RecognitionResult(strategy="ok", quality_score=10, confidence=10),
        ]
        assert orchestrator.select_best_result(results).strategy == "ok"

    def test_all_errors_returns_first_copy(self, orchestrator):
        """Test all-error results yield a zero-quality copy of the first."""
        first = RecognitionResult(strategy="a", error="boom", quality_score=5)
        results = [first, RecognitionResult(strategy="b", error="bang")]

        best = orchestrator.select_best_result(results)

        assert best.strategy == "a"
        assert best.quality_score == 0.0
        assert best is not first
        assert first.quality_score == 5

    def test_empty_raises(self, orchestrator):
        """Test selecting from no results raises PipelineExhaustionError."""
        with pytest.raises(PipelineExhaustionError):
            orchestrator.select_best_result([])

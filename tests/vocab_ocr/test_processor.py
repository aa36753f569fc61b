"""Integration tests for VocabularyOCRProcessor.

Tests the complete pipeline with a scripted recognition engine:
    - Decode failures
    - Orientation correction
    - Early exit and strategy failures
    - Word extraction end-to-end
    - Progress reporting and debug diagnostics
"""

import asyncio
import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from vocab_ocr.config_loader import (
    Config,
    OCRModuleConfig,
    OutputConfig,
    PipelineConfig,
    PreprocessConfig,
)
from vocab_ocr.processor import VocabularyOCRProcessor
from vocab_ocr.types import ExtractionResult, ProgressStatus

# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def apple_output(make_word, make_line):
    """Engine mapping for a single 'APPLE (fruit)' line."""
    words = [
        make_word("APPLE", 92, (10, 10, 60, 30)),
        make_word("(fruit)", 88, (70, 10, 130, 30)),
    ]
    return {
        "text": "APPLE (fruit)",
        "confidence": 91,
        "words": words,
        "lines": [make_line("APPLE (fruit)", words, (10, 10, 130, 30))],
    }


@pytest.fixture
def excellent_output(make_word, make_line):
    """Engine mapping scoring above the excellent early-exit threshold."""
    entries = [("apple", 10), ("banana", 40), ("cherry", 70), ("grape", 100), ("lemon", 130)]
    lines = [make_line(w, [make_word(w, 95, (10, y, 80, y + 20))], (10, y, 80, y + 20)) for w, y in entries]
    return {
        "text": "\n".join(w for w, _ in entries),
        "confidence": 95,
        "words": [make_word(w, 95, (10, y, 80, y + 20)) for w, y in entries],
        "lines": lines,
    }


def is_probe(options):
    """Rotation probes carry only engine mode, segmentation and whitelist."""
    return "tessedit_do_invert" not in options


# ═══════════════════════════════════════════════════════════════════════════
# TEST INITIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


class TestInitialization:
    """Test processor construction."""

    def test_config_from_file(self, tmp_path, fake_engine):
        """Test configuration is loaded from a YAML path."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("pipeline:\n  fail_on_empty: true\n")

        processor = VocabularyOCRProcessor(config_path=config_file, engine=fake_engine(lambda *a: {}))

        assert processor.config.ocr.pipeline.fail_on_empty is True

    def test_default_config(self, fake_engine):
        """Test the bundled configuration is used by default."""
        processor = VocabularyOCRProcessor(engine=fake_engine(lambda *a: {}))
        assert len(processor.orchestrator.strategies) == 5

    def test_processing_stats(self, fake_engine, no_rotation_config):
        """Test processing stats describe the active configuration."""
        processor = VocabularyOCRProcessor(engine=fake_engine(lambda *a: {}), config=no_rotation_config)

        stats = processor.get_processing_stats()

        assert stats["engine"] == "tesseract"
        assert stats["strategies"][0] == "single_word_high_quality"
        assert stats["preprocessing"]["auto_rotate"] is False
        assert stats["rotation_angles"] == [0, 90, 180, 270]
        assert stats["fail_on_empty"] is False


# ═══════════════════════════════════════════════════════════════════════════
# TEST SUCCESSFUL EXTRACTION
# ═══════════════════════════════════════════════════════════════════════════


class TestSuccessfulExtraction:
    """Test end-to-end extraction."""

    def test_apple_with_gloss(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test 'APPLE (fruit)' yields exactly [apple] with its confidence."""
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: apple_output), config=no_rotation_config
        )

        result = processor.process(white_image)

        assert result.success is True
        assert result.error is None
        assert [w.word for w in result.words] == ["apple"]
        assert result.words[0].confidence == 92
        assert result.text == "APPLE (fruit)"
        assert result.confidence == 91
        assert result.processing_time_ms > 0
        assert result.debug_info is None

    def test_async_entry_point(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test extract_text can be awaited directly."""
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: apple_output), config=no_rotation_config
        )

        result = asyncio.run(processor.extract_text(white_image))

        assert result.success is True

    def test_early_exit_skips_remaining_strategies(
        self, fake_engine, no_rotation_config, white_image, excellent_output
    ):
        """Test strategy two is never invoked after an excellent first result."""
        engine = fake_engine(lambda *a: excellent_output)
        processor = VocabularyOCRProcessor(engine=engine, config=no_rotation_config)

        result = processor.process(white_image)

        assert len(engine.calls) == 1
        assert [w.word for w in result.words] == ["apple", "banana", "cherry", "grape", "lemon"]

    def test_empty_result_is_success(self, fake_engine, no_rotation_config, white_image):
        """Test no recognized words is still a successful, empty result."""
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: {"text": "", "confidence": 0}), config=no_rotation_config
        )

        result = processor.process(white_image)

        assert result.success is True
        assert result.words == []

    def test_encoded_bytes_input(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test encoded PNG bytes are accepted."""
        ok, encoded = cv2.imencode(".png", white_image)
        assert ok
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: apple_output), config=no_rotation_config
        )

        result = processor.process(encoded.tobytes())

        assert result.success is True

    def test_preprocessed_image_reaches_engine(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test the engine receives the resized, binarized image."""
        engine = fake_engine(lambda *a: apple_output)
        processor = VocabularyOCRProcessor(engine=engine, config=no_rotation_config)

        processor.process(white_image)

        image = engine.calls[0]["image"]
        assert image.shape == (120, 400, 4)
        assert engine.calls[0]["language"] == "eng"


# ═══════════════════════════════════════════════════════════════════════════
# TEST ROTATION
# ═══════════════════════════════════════════════════════════════════════════


class TestRotation:
    """Test orientation correction inside the pipeline."""

    def _handler(self, probe_confidences, strategy_output):
        probes = iter(probe_confidences)

        def handler(image, language, options):
            if is_probe(options):
                return {"text": "", "confidence": next(probes), "words": []}
            return strategy_output

        return handler

    def test_upright_kept(self, fake_engine, white_image, apple_output):
        """Test angle scores {0: 50, 90: 10, 180: 5, 270: 0} keep 0 degrees."""
        engine = fake_engine(self._handler([50, 10, 5, 0], apple_output))
        processor = VocabularyOCRProcessor(engine=engine, config=Config())

        result = processor.process(white_image, debug=True)

        assert result.debug_info.rotation_angle == 0
        strategy_calls = [c for c in engine.calls if not is_probe(c["options"])]
        assert strategy_calls[0]["image"].shape == (120, 400, 4)

    def test_sideways_rotated(self, fake_engine, white_image, apple_output):
        """Test the best probe at 90 degrees rotates the working image."""
        engine = fake_engine(self._handler([5, 80, 10, 0], apple_output))
        processor = VocabularyOCRProcessor(engine=engine, config=Config())

        result = processor.process(white_image, debug=True)

        assert result.debug_info.rotation_angle == 90
        strategy_calls = [c for c in engine.calls if not is_probe(c["options"])]
        assert strategy_calls[0]["image"].shape == (400, 120, 4)

    def test_probe_failures_do_not_abort(self, fake_engine, white_image, apple_output):
        """Test failing probes fall back to 0 degrees and the run succeeds."""

        def handler(image, language, options):
            if is_probe(options):
                return RuntimeError("probe failed")
            return apple_output

        processor = VocabularyOCRProcessor(engine=fake_engine(handler), config=Config())

        result = processor.process(white_image, debug=True)

        assert result.success is True
        assert result.debug_info.rotation_angle == 0


# ═══════════════════════════════════════════════════════════════════════════
# TEST FAILURES
# ═══════════════════════════════════════════════════════════════════════════


class TestFailures:
    """Test failure reporting."""

    def test_all_strategies_fail(self, fake_engine, no_rotation_config, white_image):
        """Test every strategy failing is reported as OCR-E201."""
        engine = fake_engine(lambda *a: RuntimeError("tesseract crashed"))
        processor = VocabularyOCRProcessor(engine=engine, config=no_rotation_config)

        result = processor.process(white_image)

        assert result.success is False
        assert result.error_code == "OCR-E201"
        assert "tesseract crashed" in result.error
        assert result.words == []
        assert len(engine.calls) == 5

    def test_undecodable_bytes(self, fake_engine, no_rotation_config):
        """Test garbage input is reported as OCR-E001 before any recognition."""
        engine = fake_engine(lambda *a: {})
        processor = VocabularyOCRProcessor(engine=engine, config=no_rotation_config)

        result = processor.process(b"definitely not an image")

        assert result.success is False
        assert result.error_code == "OCR-E001"
        assert engine.calls == []

    def test_missing_file(self, fake_engine, no_rotation_config, tmp_path):
        """Test a missing image path is a decode failure."""
        processor = VocabularyOCRProcessor(engine=fake_engine(lambda *a: {}), config=no_rotation_config)

        result = processor.process(tmp_path / "missing.png")

        assert result.success is False
        assert result.error_code == "OCR-E001"

    def test_fail_on_empty(self, fake_engine, white_image):
        """Test empty word lists fail when fail_on_empty is set."""
        config = Config(
            ocr=OCRModuleConfig(
                preprocessing=PreprocessConfig(auto_rotate=False),
                pipeline=PipelineConfig(fail_on_empty=True),
            )
        )
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: {"text": "", "confidence": 0}), config=config
        )

        result = processor.process(white_image)

        assert result.success is False
        assert result.error_code == "OCR-E201"

    def test_success_xor_error(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test results are either successful or carry an error, never both."""
        good = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: apple_output), config=no_rotation_config
        ).process(white_image)
        bad = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: RuntimeError("x")), config=no_rotation_config
        ).process(white_image)

        for result in (good, bad):
            assert result.success != (result.error is not None)

    def test_failure_to_dict(self, fake_engine, no_rotation_config):
        """Test failure results serialize with error and code."""
        processor = VocabularyOCRProcessor(engine=fake_engine(lambda *a: {}), config=no_rotation_config)

        data = processor.process(b"").to_dict()

        assert data["success"] is False
        assert data["error_code"] == "OCR-E001"
        json.dumps(data)


# ═══════════════════════════════════════════════════════════════════════════
# TEST PROGRESS AND DEBUG
# ═══════════════════════════════════════════════════════════════════════════


class TestProgressAndDebug:
    """Test progress reporting and debug diagnostics."""

    def test_progress_phases(self, fake_engine, white_image, apple_output):
        """Test progress covers every phase in order and ends at 100."""
        events = []

        def handler(image, language, options):
            if is_probe(options):
                return {"text": "", "confidence": 0, "words": []}
            return apple_output

        processor = VocabularyOCRProcessor(engine=fake_engine(handler), config=Config())
        processor.process(white_image, on_progress=events.append)

        percents = [e.percent for e in events]
        assert percents == sorted(percents)
        assert events[0].status == ProgressStatus.ROTATION_DETECTION
        assert events[-1].status == ProgressStatus.DONE
        assert events[-1].percent == 100
        statuses = {e.status for e in events}
        assert ProgressStatus.PREPROCESSING in statuses
        assert ProgressStatus.RECOGNIZING in statuses
        assert ProgressStatus.POSTPROCESSING in statuses

    def test_raising_callback_is_swallowed(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test progress callback exceptions never abort the run."""

        def callback(event):
            raise ValueError("listener bug")

        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: apple_output), config=no_rotation_config
        )

        result = processor.process(white_image, on_progress=callback)

        assert result.success is True
        assert [w.word for w in result.words] == ["apple"]

    def test_debug_info(self, fake_engine, no_rotation_config, white_image, apple_output):
        """Test debug mode reports every strategy and the processing steps."""
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: apple_output), config=no_rotation_config
        )

        result = processor.process(white_image, debug=True)

        info = result.debug_info
        assert len(info.all_results) == 5
        assert info.selected_strategy == "single_word_high_quality"
        assert info.raw_text == "APPLE (fruit)"
        assert info.processing_steps[0].startswith("Decoded image")
        assert any(step.startswith("Binarize") for step in info.processing_steps)
        json.dumps(result.to_dict())

    def test_debug_info_on_failure(self, fake_engine, no_rotation_config, white_image):
        """Test diagnostics are still attached to failed runs."""
        processor = VocabularyOCRProcessor(
            engine=fake_engine(lambda *a: RuntimeError("x")), config=no_rotation_config
        )

        result = processor.process(white_image, debug=True)

        assert result.success is False
        assert len(result.debug_info.all_results) == 5

    def test_debug_image_dump(self, fake_engine, white_image, apple_output, tmp_path):
        """Test the preprocessed image is written to the debug directory."""
        config = Config(
            ocr=OCRModuleConfig(
                preprocessing=PreprocessConfig(auto_rotate=False),
                output=OutputConfig(debug_dir=str(tmp_path / "debug")),
            )
        )
        processor = VocabularyOCRProcessor(engine=fake_engine(lambda *a: apple_output), config=config)

        processor.process(white_image, debug=True)

        dumps = list(Path(tmp_path / "debug").glob("preprocessed_*.png"))
        assert len(dumps) == 1

    def test_no_dump_without_debug(self, fake_engine, white_image, apple_output, tmp_path):
        """Test nothing is written outside debug mode."""
        config = Config(
            ocr=OCRModuleConfig(
                preprocessing=PreprocessConfig(auto_rotate=False),
                output=OutputConfig(debug_dir=str(tmp_path / "debug")),
            )
        )
        processor = VocabularyOCRProcessor(engine=fake_engine(lambda *a: apple_output), config=config)

        result = processor.process(white_image)

        assert isinstance(result, ExtractionResult)
        assert not (tmp_path / "debug").exists()

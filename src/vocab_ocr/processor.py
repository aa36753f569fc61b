"""Vocabulary OCR pipeline coordinator.

This module orchestrates the complete extraction workflow for one image:
    1. DECODE: raw input into an RGBA buffer
    2. ROTATION: detect and correct 90-degree rotations
    3. PREPROCESSING: pixel chain to maximize recognizability
    4. RECOGNITION: multiple engine strategies with early exit
    5. SELECTION: best result by quality score and confidence
    6. WORD EXTRACTION: one headword per line, filtered and deduplicated

Example:
    >>> from vocab_ocr import VocabularyOCRProcessor
    >>> processor = VocabularyOCRProcessor()
    >>> result = processor.process("vocab_page.jpg")
    >>> if result.success:
    ...     print([w.word for w in result.words])
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .config_loader import Config, get_default_config, load_config
from .engine import RecognitionEngine, create_engine
from .exceptions import PipelineExhaustionError, VocabOCRError
from .extractor import WordExtractor
from .image_io import ImageSource, decode_image, save_image
from .orchestrator import RecognitionOrchestrator
from .preprocessing import ImagePreprocessor
from .progress import ProgressHandler, ProgressReporter
from .rotation import RotationNormalizer
from .types import DebugInfo, ExtractionResult, ProgressStatus

logger = logging.getLogger(__name__)


class VocabularyOCRProcessor:
    """Main vocabulary extraction class.

    One instance can serve many images; no state is kept between calls
    apart from configuration and the engine.

    Args:
        config_path: Optional path to config YAML file. If None, uses default config.
        engine: Optional recognition engine. If None, one is created from
            the engine configuration.
        config: Optional already-loaded configuration (wins over config_path).

    Attributes:
        config: Full configuration object
        engine: Recognition engine
        rotation: Orientation normalizer
        preprocessor: Pixel preprocessing chain
        orchestrator: Multi-strategy recognition runner
        extractor: Word extractor with quality filter
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        engine: Optional[RecognitionEngine] = None,
        config: Optional[Config] = None,
    ):
        # Load configuration
        if config is not None:
            self.config: Config = config
        elif config_path is None:
            self.config = get_default_config()
        else:
            self.config = load_config(config_path)

        ocr_config = self.config.ocr

        if engine is None:
            engine = create_engine(ocr_config.engine)
            logger.info(f"Initialized with {ocr_config.engine.type} engine")
        self.engine = engine

        self.rotation = RotationNormalizer(
            engine=self.engine,
            config=ocr_config.rotation,
            language=ocr_config.engine.language,
            base_options=ocr_config.engine.base_options,
        )
        self.preprocessor = ImagePreprocessor(config=ocr_config.preprocessing)
        self.orchestrator = RecognitionOrchestrator(engine=self.engine, config=ocr_config)
        self.extractor = WordExtractor(config=ocr_config.quality_filter)

    async def extract_text(
        self,
        image: ImageSource,
        debug: bool = False,
        on_progress: Optional[ProgressHandler] = None,
    ) -> ExtractionResult:
        """Extract vocabulary words from an image.

        Never raises: every failure is reported as ``success=False`` with an
        error message and code.

        Args:
            image: ImageBuffer, numpy array, encoded image bytes or file path
            debug: Collect diagnostics in ``debug_info``
            on_progress: Optional callable receiving ProgressEvent instances

        Returns:
            ExtractionResult
        """
        start_time = time.perf_counter()
        reporter = ProgressReporter(on_progress)
        debug_info = DebugInfo() if debug else None

        try:
            result = await self._run_pipeline(image, reporter, debug_info)
        except VocabOCRError as e:
            logger.error(f"Extraction failed [{e.code}]: {e}")
            result = ExtractionResult(success=False, error=str(e), error_code=e.code)
        except Exception as e:
            logger.exception(f"Unexpected error during extraction: {e}")
            result = ExtractionResult(
                success=False, error=str(e) or type(e).__name__, error_code=VocabOCRError.code
            )

        result.debug_info = debug_info
        result.processing_time_ms = (time.perf_counter() - start_time) * 1000
        return result

    async def _run_pipeline(
        self,
        image: ImageSource,
        reporter: ProgressReporter,
        debug_info: Optional[DebugInfo],
    ) -> ExtractionResult:
        ocr_config = self.config.ocr
        steps = debug_info.processing_steps if debug_info is not None else None
        debug = debug_info is not None

        # ═══════════════════════════════════════════════════════════════
        # STAGE 1: DECODE
        # ═══════════════════════════════════════════════════════════════
        reporter.emit(ProgressStatus.ROTATION_DETECTION, 0.0)
        decoded = await asyncio.to_thread(decode_image, image)
        if steps is not None:
            steps.append(f"Decoded image: {decoded.width}x{decoded.height}")

        # ═══════════════════════════════════════════════════════════════
        # STAGE 2: ROTATION
        # ═══════════════════════════════════════════════════════════════
        if ocr_config.preprocessing.auto_rotate:
            rotation = await self.rotation.normalize(decoded, reporter)
            oriented, angle = rotation.image, rotation.angle
        else:
            oriented, angle = decoded, 0
        if debug_info is not None:
            debug_info.rotation_angle = angle
            steps.append(f"Rotation: {angle}°")

        # ═══════════════════════════════════════════════════════════════
        # STAGE 3: PREPROCESSING
        # ═══════════════════════════════════════════════════════════════
        reporter.emit(ProgressStatus.PREPROCESSING, 10.0)
        prepared = await asyncio.to_thread(self.preprocessor.process, oriented, steps)

        if debug and ocr_config.output.debug_dir:
            debug_path = Path(ocr_config.output.debug_dir) / (
                f"preprocessed_{int(time.time() * 1000)}.png"
            )
            await asyncio.to_thread(save_image, prepared, debug_path)
            steps.append(f"Saved preprocessed image: {debug_path}")

        # ═══════════════════════════════════════════════════════════════
        # STAGE 4: RECOGNITION
        # ═══════════════════════════════════════════════════════════════
        reporter.emit(ProgressStatus.RECOGNIZING, 20.0)
        results = await self.orchestrator.run(prepared, reporter, debug)
        if debug_info is not None:
            debug_info.all_results = results

        # ═══════════════════════════════════════════════════════════════
        # STAGE 5: SELECTION
        # ═══════════════════════════════════════════════════════════════
        best = self.orchestrator.select_best_result(results)
        if debug_info is not None:
            debug_info.selected_strategy = best.strategy
            debug_info.raw_text = best.text
            steps.extend(best.processing_steps)

        if best.is_error():
            raise PipelineExhaustionError(
                f"All {len(results)} recognition strategies failed (first error: {best.error})"
            )

        # ═══════════════════════════════════════════════════════════════
        # STAGE 6: WORD EXTRACTION
        # ═══════════════════════════════════════════════════════════════
        reporter.emit(ProgressStatus.POSTPROCESSING, 90.0)
        words = self.extractor.extract(best)

        if not words and ocr_config.pipeline.fail_on_empty:
            raise PipelineExhaustionError(
                f"No acceptable words found (strategy {best.strategy})"
            )

        reporter.emit(ProgressStatus.DONE, 100.0)
        logger.info(
            f"Extracted {len(words)} words using {best.strategy} "
            f"(confidence={best.confidence:.1f}, quality={best.quality_score:.1f})"
        )

        return ExtractionResult(
            success=True,
            text=best.text,
            words=words,
            confidence=best.confidence,
        )

    def process(
        self,
        image: ImageSource,
        debug: bool = False,
        on_progress: Optional[ProgressHandler] = None,
    ) -> ExtractionResult:
        """Synchronous wrapper around ``extract_text``.

        Must not be called from a running event loop.
        """
        return asyncio.run(self.extract_text(image, debug=debug, on_progress=on_progress))

    def get_processing_stats(self) -> Dict[str, Any]:
        """Report the active pipeline configuration.

        Returns:
            Dictionary with engine, strategy, preprocessing and threshold settings
        """
        ocr_config = self.config.ocr
        return {
            "engine": ocr_config.engine.type,
            "language": ocr_config.engine.language,
            "strategies": [s.name for s in self.orchestrator.strategies],
            "preprocessing": ocr_config.preprocessing.model_dump(),
            "rotation_angles": list(ocr_config.rotation.angles),
            "early_exit": ocr_config.early_exit.model_dump(),
            "quality_filter": ocr_config.quality_filter.model_dump(),
            "fail_on_empty": ocr_config.pipeline.fail_on_empty,
        }

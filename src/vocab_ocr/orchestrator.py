"""Multi-strategy recognition with early exit and best-result selection.

Each strategy runs the engine under a different layout assumption (single
word, single line, dense block, ...). Attempts run strictly one after
another; a failing attempt is recorded and the loop moves on.

Example:
    >>> orchestrator = RecognitionOrchestrator(engine, config.ocr)
    >>> results = await orchestrator.run(image)
    >>> best = orchestrator.select_best_result(results)
    >>> print(best.strategy, best.quality_score)
"""

import dataclasses
import logging
from typing import List, Optional

from .common.types import ImageBuffer
from .config_loader import OCRModuleConfig, ScoringConfig
from .engine import RecognitionEngine, build_engine_options, coerce_engine_output
from .exceptions import EngineInvocationError, PipelineExhaustionError
from .progress import ProgressReporter
from .types import (
    EngineOutput,
    ProgressStatus,
    RecognitionResult,
    RecognitionStrategy,
    clamp_score,
)
from .validator import is_valid_word_pattern

logger = logging.getLogger(__name__)


def evaluate_recognition_quality(output: EngineOutput, scoring: ScoringConfig) -> float:
    """Score a recognition attempt on a 0-100 scale.

    Combines engine confidence, word count, text length, the share of words
    with a valid English shape and the mean word confidence.

    Args:
        output: Engine output of the attempt
        scoring: Score weights

    Returns:
        Quality score clamped to [0, 100]
    """
    words = output.words
    score = output.confidence * scoring.confidence_weight
    score += min(len(words) * scoring.word_count_weight, scoring.word_count_cap)
    score += min(len(output.text.strip()) * scoring.text_length_weight, scoring.text_length_cap)

    if words:
        valid = sum(1 for w in words if is_valid_word_pattern(w.text))
        score += valid / len(words) * scoring.valid_ratio_weight
        avg_confidence = sum(w.confidence for w in words) / len(words)
        score += avg_confidence * scoring.word_confidence_weight

    return clamp_score(score)


class RecognitionOrchestrator:
    """Run the configured recognition strategies against one image.

    Args:
        engine: Recognition engine.
        config: Module configuration (strategies, scoring, early exit,
            selection and engine baseline options are read from it).

    Attributes:
        strategies: Ordered recognition strategies.
    """

    def __init__(self, engine: RecognitionEngine, config: OCRModuleConfig):
        self.engine = engine
        self.config = config
        self.strategies: List[RecognitionStrategy] = [
            RecognitionStrategy(
                name=s.name,
                description=s.description,
                segmentation_mode=s.segmentation_mode,
                options=dict(s.options),
            )
            for s in config.strategies
        ]

    def should_exit_early(self, attempts: int, quality: float, confidence: float) -> bool:
        """Check whether a result is good enough to stop trying strategies.

        Args:
            attempts: Number of attempts made so far (including this one)
            quality: Quality score of the latest result
            confidence: Engine confidence of the latest result

        Returns:
            True if the loop should stop
        """
        thresholds = self.config.early_exit
        if quality > thresholds.excellent_quality and confidence > thresholds.excellent_confidence:
            return True
        return (
            attempts >= thresholds.good_min_attempts
            and quality > thresholds.good_quality
            and confidence > thresholds.good_confidence
        )

    async def run_strategy(
        self,
        image: ImageBuffer,
        strategy: RecognitionStrategy,
        reporter: Optional[ProgressReporter] = None,
        index: int = 0,
        debug: bool = False,
    ) -> RecognitionResult:
        """Run a single strategy.

        Engine failures are recorded on the result instead of raised.

        Args:
            image: Preprocessed image
            strategy: Strategy to run
            reporter: Optional progress reporter
            index: Position of the strategy in the run
            debug: Record a processing-step log

        Returns:
            RecognitionResult (with ``error`` set if the engine failed)
        """
        total = len(self.strategies)
        options = build_engine_options(
            self.config.engine.base_options, strategy.segmentation_mode, strategy.options
        )

        def on_engine_progress(fraction: float, status: str) -> None:
            if reporter is not None:
                reporter.emit(
                    ProgressStatus.RECOGNIZING,
                    reporter.strategy_percent(index, total, fraction),
                    detail=f"{strategy.description}: {status}",
                )

        if reporter is not None:
            reporter.emit(
                ProgressStatus.RECOGNIZING,
                reporter.strategy_percent(index, total),
                detail=strategy.name,
            )

        try:
            raw = await self.engine.recognize(
                image, self.config.engine.language, options, on_engine_progress
            )
            output = coerce_engine_output(raw)
        except Exception as e:
            error = EngineInvocationError(strategy.name, e)
            logger.warning(f"{error}")
            return RecognitionResult(
                strategy=strategy.name,
                description=strategy.description,
                error=str(error),
                processing_steps=(
                    [f"Strategy: {strategy.name} ({strategy.description})", f"Error: {e}"]
                    if debug
                    else []
                ),
            )

        quality = evaluate_recognition_quality(output, self.config.scoring)
        logger.info(
            f"Strategy {strategy.name}: confidence={output.confidence:.1f}, "
            f"quality={quality:.1f}, words={len(output.words)}"
        )

        steps = []
        if debug:
            steps = [
                f"Strategy: {strategy.name} ({strategy.description})",
                f"Confidence: {output.confidence:.1f}%",
                f"Quality Score: {quality:.1f}",
                f"Words Found: {len(output.words)}",
                f"Text Length: {len(output.text)}",
            ]

        return RecognitionResult(
            strategy=strategy.name,
            description=strategy.description,
            text=output.text,
            confidence=output.confidence,
            quality_score=quality,
            words=output.words,
            lines=output.lines,
            paragraphs=output.paragraphs,
            processing_steps=steps,
        )

    async def run(
        self,
        image: ImageBuffer,
        reporter: Optional[ProgressReporter] = None,
        debug: bool = False,
    ) -> List[RecognitionResult]:
        """Run strategies in order until one is good enough or all are tried.

        Args:
            image: Preprocessed image
            reporter: Optional progress reporter
            debug: Record processing-step logs

        Returns:
            One RecognitionResult per attempted strategy, in attempt order
        """
        results: List[RecognitionResult] = []

        for i, strategy in enumerate(self.strategies):
            result = await self.run_strategy(image, strategy, reporter, i, debug)
            results.append(result)

            if result.is_error():
                continue

            if self.should_exit_early(len(results), result.quality_score, result.confidence):
                logger.info(
                    f"Early exit after {strategy.name} "
                    f"(quality={result.quality_score:.1f}, confidence={result.confidence:.1f})"
                )
                if debug:
                    result.processing_steps.append(
                        f"Early exit: quality {result.quality_score:.1f}, "
                        f"confidence {result.confidence:.1f}"
                    )
                break

        return results

    def select_best_result(self, results: List[RecognitionResult]) -> RecognitionResult:
        """Pick the result with the best combined quality and confidence.

        Among non-error results, maximizes
        ``quality_weight * quality_score + confidence_weight * confidence``;
        the earliest result wins ties. If every attempt failed, a copy of the
        first result with a zero quality score is returned.

        Args:
            results: Results in attempt order

        Returns:
            Selected RecognitionResult

        Raises:
            PipelineExhaustionError: If no result was produced at all
        """
        if not results:
            raise PipelineExhaustionError("No recognition strategy was attempted")

        valid = [r for r in results if not r.is_error()]
        if not valid:
            return dataclasses.replace(results[0], quality_score=0.0)

        weights = self.config.selection

        def combined(result: RecognitionResult) -> float:
            return (
                result.quality_score * weights.quality_weight
                + result.confidence * weights.confidence_weight
            )

        best = valid[0]
        for result in valid[1:]:
            if combined(result) > combined(best):
                best = result
        return best

"""Orientation detection and correction.

Vocabulary photos are often taken sideways or upside down. The normalizer
recognizes a low-resolution probe of the image at every candidate rotation,
scores each attempt and applies the best rotation to the full-resolution
image.

Example:
    >>> normalizer = RotationNormalizer(engine, RotationConfig(), "eng")
    >>> result = await normalizer.normalize(image)
    >>> print(result.angle, result.image.shape)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .common.types import ImageBuffer
from .config_loader import RotationConfig
from .engine import RecognitionEngine, coerce_engine_output
from .exceptions import EngineInvocationError
from .image_io import fit_to_range, rotate_image
from .progress import ProgressReporter
from .types import EngineOutput, ProgressStatus
from .validator import is_valid_word_pattern

logger = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"[^\w]", re.ASCII)


@dataclass
class RotationProbe:
    """Score of one candidate rotation.

    Attributes:
        angle: Clockwise rotation in degrees
        score: Orientation score (0 when the probe failed)
        confidence: Engine confidence of the probe
        error: Error message when the probe failed
    """

    angle: int
    score: float
    confidence: float = 0.0
    error: Optional[str] = None


@dataclass
class RotationResult:
    """Outcome of orientation normalization.

    Attributes:
        image: Image rotated by the selected angle
        angle: Selected clockwise rotation in degrees
        probes: Score of every evaluated angle, in evaluation order
    """

    image: ImageBuffer
    angle: int
    probes: List[RotationProbe] = field(default_factory=list)


def calculate_rotation_score(output: EngineOutput, config: RotationConfig) -> float:
    """Score how upright the probe text looks.

    ``confidence_weight * confidence + valid_word_weight * valid_words
    + text_length_weight * min(text_length, text_length_cap)``

    Args:
        output: Engine output for the probe
        config: Rotation configuration with the score weights

    Returns:
        Orientation score (higher is better)
    """
    valid_words = sum(
        1
        for word in output.words
        if is_valid_word_pattern(word.text) and word.confidence > config.min_word_confidence
    )
    text_length = len(_NON_WORD_RE.sub("", output.text or ""))

    return (
        output.confidence * config.confidence_weight
        + valid_words * config.valid_word_weight
        + min(text_length, config.text_length_cap) * config.text_length_weight
    )


def select_best_angle(probes: List[RotationProbe]) -> int:
    """Pick the highest-scoring angle; the first evaluated angle wins ties."""
    if not probes:
        return 0
    best = probes[0]
    for probe in probes[1:]:
        if probe.score > best.score:
            best = probe
    return best.angle


class RotationNormalizer:
    """Detect and correct 90-degree page rotations.

    Args:
        engine: Recognition engine used for the probes.
        config: Rotation configuration.
        language: Engine language code.
        base_options: Engine options shared with the recognition strategies.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        config: RotationConfig,
        language: str = "eng",
        base_options: Optional[Dict[str, str]] = None,
    ):
        self.engine = engine
        self.config = config
        self.language = language
        self.base_options = dict(base_options or {})

    def probe_options(self) -> Dict[str, str]:
        """Engine options for a probe: single word, LSTM only, letters only."""
        return {
            "tessedit_ocr_engine_mode": self.base_options.get("tessedit_ocr_engine_mode", "1"),
            "tessedit_pageseg_mode": str(self.config.segmentation_mode.page_segmentation_mode),
            "tessedit_char_whitelist": self.config.whitelist,
        }

    async def detect_angle(
        self, image: ImageBuffer, reporter: Optional[ProgressReporter] = None
    ) -> List[RotationProbe]:
        """Score every candidate angle on a low-resolution probe.

        Args:
            image: Full-resolution image (not modified)
            reporter: Optional progress reporter

        Returns:
            One RotationProbe per candidate angle, in evaluation order
        """
        probe_image = fit_to_range(image, self.config.probe_max_dimension)
        options = self.probe_options()
        angles = self.config.angles
        probes: List[RotationProbe] = []

        for i, angle in enumerate(angles):
            if reporter is not None:
                reporter.emit(
                    ProgressStatus.ROTATION_DETECTION,
                    10.0 * i / max(len(angles), 1),
                    detail=f"angle {angle}",
                )
            try:
                rotated = rotate_image(probe_image, angle)
                raw = await self.engine.recognize(rotated, self.language, dict(options))
                output = coerce_engine_output(raw)
            except Exception as e:
                error = EngineInvocationError(f"rotation_{angle}", e)
                logger.warning(f"Rotation probe failed: {error}")
                probes.append(RotationProbe(angle=angle, score=0.0, error=str(error)))
                continue

            score = calculate_rotation_score(output, self.config)
            logger.debug(
                f"Rotation probe {angle}°: score={score:.1f}, confidence={output.confidence:.1f}"
            )
            probes.append(RotationProbe(angle=angle, score=score, confidence=output.confidence))

        return probes

    async def normalize(
        self, image: ImageBuffer, reporter: Optional[ProgressReporter] = None
    ) -> RotationResult:
        """Rotate the image into its most readable orientation.

        Args:
            image: Full-resolution image (not modified)
            reporter: Optional progress reporter

        Returns:
            RotationResult with a new image buffer and the applied angle
        """
        probes = await self.detect_angle(image, reporter)
        angle = select_best_angle(probes)

        if reporter is not None:
            reporter.emit(ProgressStatus.ROTATION_DETECTION, 10.0, detail=f"angle {angle}")

        if angle == 0:
            return RotationResult(image=image.copy(), angle=0, probes=probes)

        logger.info(f"Correcting image orientation by {angle}° clockwise")
        return RotationResult(image=rotate_image(image, angle), angle=angle, probes=probes)

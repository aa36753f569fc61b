"""Type definitions for the vocabulary OCR pipeline.

This module defines the core data structures used throughout the pipeline:
engine output, per-strategy recognition results, word candidates, progress
events and the final extraction result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .common.types import BBox


def clamp_score(value: float) -> float:
    """Clamp a confidence or quality score into [0, 100]."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if value != value:  # NaN
        return 0.0
    return min(100.0, max(0.0, value))


class SegmentationMode(str, Enum):
    """Assumed text layout handed to the recognition engine."""

    SINGLE_WORD = "single_word"
    SINGLE_LINE = "single_line"
    DENSE_BLOCK = "dense_block"
    SPARSE_AUTO = "sparse_auto"
    MIXED_SPARSE = "mixed_sparse"

    @property
    def page_segmentation_mode(self) -> int:
        """Tesseract page segmentation mode (PSM) for this layout."""
        return _PSM_BY_MODE[self]


_PSM_BY_MODE = {
    SegmentationMode.SINGLE_WORD: 8,
    SegmentationMode.SINGLE_LINE: 7,
    SegmentationMode.DENSE_BLOCK: 6,
    SegmentationMode.SPARSE_AUTO: 3,
    SegmentationMode.MIXED_SPARSE: 11,
}


class ExtractionSource(str, Enum):
    """Where a word candidate was extracted from."""

    LINE_BASED = "line_based"  # Leftmost boxed word of a recognized line
    FALLBACK = "fallback"  # Parsed from line text when word boxes are absent
    FLAT_LIST = "flat_list"  # Flat word list scan when no line yielded a word


class ProgressStatus(str, Enum):
    """Pipeline phases reported on the progress channel."""

    ROTATION_DETECTION = "rotation_detection"
    PREPROCESSING = "preprocessing"
    RECOGNIZING = "recognizing"
    POSTPROCESSING = "postprocessing"
    DONE = "done"


@dataclass(frozen=True)
class ProgressEvent:
    """One progress report.

    Attributes:
        status: Current pipeline phase
        percent: Overall progress (0-100)
        detail: Optional detail such as the active strategy name
    """

    status: ProgressStatus
    percent: float
    detail: Optional[str] = None


@dataclass(frozen=True)
class RecognitionStrategy:
    """Named engine configuration for one recognition attempt.

    Attributes:
        name: Strategy identifier
        description: Human-readable description
        segmentation_mode: Assumed text layout
        options: Engine option overrides layered over the baseline options
    """

    name: str
    description: str
    segmentation_mode: SegmentationMode
    options: Dict[str, str] = field(default_factory=dict)


@dataclass
class EngineWord:
    """Single word reported by the engine."""

    text: str
    confidence: float
    bbox: Optional[BBox] = None


@dataclass
class EngineLine:
    """Text line reported by the engine."""

    text: str
    bbox: Optional[BBox] = None
    words: List[EngineWord] = field(default_factory=list)


@dataclass
class EngineParagraph:
    """Paragraph reported by the engine."""

    lines: List[EngineLine] = field(default_factory=list)


@dataclass
class EngineOutput:
    """Normalized output of one engine ``recognize`` call.

    Attributes:
        text: Full recognized text
        confidence: Engine confidence (0-100)
        words: Flat word list
        lines: Line structures (may be empty)
        paragraphs: Paragraph structures (may be empty)
    """

    text: str = ""
    confidence: float = 0.0
    words: List[EngineWord] = field(default_factory=list)
    lines: List[EngineLine] = field(default_factory=list)
    paragraphs: List[EngineParagraph] = field(default_factory=list)


@dataclass
class RecognitionResult:
    """Outcome of one recognition strategy.

    Attributes:
        strategy: Strategy name
        description: Strategy description
        text: Raw recognized text
        confidence: Engine confidence (0-100)
        quality_score: Pipeline quality score (0-100)
        words: Flat word list
        lines: Line structures
        paragraphs: Paragraph structures
        error: Error message when the engine call failed
        processing_steps: Step log (populated in debug mode)
    """

    strategy: str
    description: str = ""
    text: str = ""
    confidence: float = 0.0
    quality_score: float = 0.0
    words: List[EngineWord] = field(default_factory=list)
    lines: List[EngineLine] = field(default_factory=list)
    paragraphs: List[EngineParagraph] = field(default_factory=list)
    error: Optional[str] = None
    processing_steps: List[str] = field(default_factory=list)

    def is_error(self) -> bool:
        """Check if this attempt failed.

        Returns:
            True if the engine call raised, False otherwise.
        """
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        """Render a JSON-compatible summary of this attempt."""
        return {
            "strategy": self.strategy,
            "description": self.description,
            "text": self.text,
            "confidence": self.confidence,
            "quality_score": self.quality_score,
            "word_count": len(self.words),
            "line_count": len(self.lines),
            "error": self.error,
            "processing_steps": list(self.processing_steps),
        }


@dataclass
class WordCandidate:
    """Vocabulary word proposed by the pipeline.

    Attributes:
        word: Lowercased word text
        confidence: Confidence (0-100)
        bbox: Location in the preprocessed image, if known
        line: Text of the originating line, if known
        source: Extraction path that produced the candidate
    """

    word: str
    confidence: float
    bbox: Optional[BBox] = None
    line: Optional[str] = None
    source: ExtractionSource = ExtractionSource.LINE_BASED

    def to_dict(self, include_bbox: bool = True) -> Dict[str, Any]:
        """Render a JSON-compatible mapping."""
        result: Dict[str, Any] = {
            "word": self.word,
            "confidence": self.confidence,
            "line": self.line,
            "source": self.source.value,
        }
        if include_bbox:
            result["bbox"] = self.bbox.to_dict() if self.bbox is not None else None
        return result


@dataclass
class DebugInfo:
    """Diagnostics collected when debug mode is on.

    Attributes:
        all_results: Every strategy's recognition result, in attempt order
        selected_strategy: Name of the chosen strategy
        raw_text: Raw text of the chosen result
        processing_steps: Ordered log of pipeline steps
        rotation_angle: Orientation correction applied (degrees clockwise)
    """

    all_results: List[RecognitionResult] = field(default_factory=list)
    selected_strategy: Optional[str] = None
    raw_text: str = ""
    processing_steps: List[str] = field(default_factory=list)
    rotation_angle: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Render a JSON-compatible mapping."""
        return {
            "all_results": [r.to_dict() for r in self.all_results],
            "selected_strategy": self.selected_strategy,
            "raw_text": self.raw_text,
            "processing_steps": list(self.processing_steps),
            "rotation_angle": self.rotation_angle,
        }


@dataclass
class ExtractionResult:
    """Final result of a pipeline run.

    Exactly one of two shapes: ``success=True`` with a (possibly empty) word
    list, or ``success=False`` with an error message.

    Attributes:
        success: Whether extraction produced a usable result
        text: Raw text of the selected recognition result
        words: Accepted word candidates, top to bottom
        confidence: Engine confidence of the selected result (0-100)
        error: Failure description when success is False
        error_code: Error code of the failure (e.g. "OCR-E201")
        debug_info: Diagnostics, only when debug mode is on
        processing_time_ms: Total processing time in milliseconds
    """

    success: bool
    text: str = ""
    words: List[WordCandidate] = field(default_factory=list)
    confidence: float = 0.0
    error: Optional[str] = None
    error_code: Optional[str] = None
    debug_info: Optional[DebugInfo] = None
    processing_time_ms: float = 0.0

    def to_dict(self, include_bboxes: bool = True) -> Dict[str, Any]:
        """Render a JSON-compatible mapping."""
        result: Dict[str, Any] = {
            "success": self.success,
            "text": self.text,
            "words": [w.to_dict(include_bbox=include_bboxes) for w in self.words],
            "confidence": self.confidence,
            "processing_time_ms": self.processing_time_ms,
        }
        if not self.success:
            result["error"] = self.error
            result["error_code"] = self.error_code
        if self.debug_info is not None:
            result["debug_info"] = self.debug_info.to_dict()
        return result

"""Vocabulary OCR: English headword extraction from photographed word lists.

This package turns a photo of a vocabulary sheet into a clean, ordered list
of English words: one headword per line, with recognition noise filtered out.

Core Components:
    - types: Data structures (ExtractionResult, WordCandidate, etc.)
    - config_loader: Configuration loading with Pydantic validation
    - rotation: Orientation detection and correction
    - preprocessing: Pixel-level image preprocessing chain
    - orchestrator: Multi-strategy recognition and best-result selection
    - extractor: Line-based headword extraction
    - quality_filter / validator: Word acceptance rules
    - processor: Main pipeline coordinator

Example:
    >>> from vocab_ocr import VocabularyOCRProcessor
    >>> processor = VocabularyOCRProcessor()
    >>> result = processor.process("vocab_page.jpg")
    >>> if result.success:
    ...     print([w.word for w in result.words])
"""

from .common import BBox, ImageBuffer
from .config_loader import (
    Config,
    EarlyExitConfig,
    EngineConfig,
    OCRModuleConfig,
    OutputConfig,
    PipelineConfig,
    PreprocessConfig,
    QualityFilterConfig,
    RotationConfig,
    ScoringConfig,
    SelectionConfig,
    StrategyConfig,
    get_default_config,
    load_config,
)
from .engine import RecognitionEngine, coerce_engine_output, create_engine
from .exceptions import (
    DecodeError,
    EngineInvocationError,
    PipelineExhaustionError,
    VocabOCRError,
)
from .extractor import WordExtractor
from .orchestrator import RecognitionOrchestrator, evaluate_recognition_quality
from .preprocessing import ImagePreprocessor
from .processor import VocabularyOCRProcessor
from .quality_filter import QualityFilter
from .rotation import RotationNormalizer
from .types import (
    DebugInfo,
    EngineOutput,
    ExtractionResult,
    ExtractionSource,
    ProgressEvent,
    ProgressStatus,
    RecognitionResult,
    RecognitionStrategy,
    SegmentationMode,
    WordCandidate,
)
from .validator import (
    is_common_english_word,
    is_plausible_english_word,
    is_valid_word_pattern,
)

__all__ = [
    # Types
    "ImageBuffer",
    "BBox",
    "SegmentationMode",
    "RecognitionStrategy",
    "EngineOutput",
    "RecognitionResult",
    "WordCandidate",
    "ExtractionSource",
    "ProgressEvent",
    "ProgressStatus",
    "DebugInfo",
    "ExtractionResult",
    # Configuration
    "Config",
    "OCRModuleConfig",
    "EngineConfig",
    "PreprocessConfig",
    "RotationConfig",
    "ScoringConfig",
    "EarlyExitConfig",
    "SelectionConfig",
    "StrategyConfig",
    "QualityFilterConfig",
    "PipelineConfig",
    "OutputConfig",
    "load_config",
    "get_default_config",
    # Errors
    "VocabOCRError",
    "DecodeError",
    "EngineInvocationError",
    "PipelineExhaustionError",
    # Pipeline
    "RecognitionEngine",
    "create_engine",
    "coerce_engine_output",
    "RotationNormalizer",
    "ImagePreprocessor",
    "RecognitionOrchestrator",
    "evaluate_recognition_quality",
    "WordExtractor",
    "QualityFilter",
    "VocabularyOCRProcessor",
    # Validation
    "is_valid_word_pattern",
    "is_common_english_word",
    "is_plausible_english_word",
]

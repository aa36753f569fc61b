"""Configuration loader with Pydantic validation for the vocabulary OCR pipeline.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values. Every scoring weight and
threshold of the pipeline lives here so it can be overridden without touching
the stage logic.
"""

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from .types import SegmentationMode

LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"


class EngineConfig(BaseModel):
    """Recognition engine configuration.

    Attributes:
        type: Engine type (currently only "tesseract" is bundled)
        language: Language code passed to the engine
        tesseract_cmd: Optional path to the tesseract binary
        base_options: Baseline engine options shared by every strategy
    """

    type: str = "tesseract"
    language: str = "eng"
    tesseract_cmd: Optional[str] = None
    base_options: Dict[str, str] = {
        "tessedit_ocr_engine_mode": "1",
        "tessedit_char_whitelist": LETTERS + "'-.",
        "tessedit_do_invert": "0",
        "tessedit_zero_rejection": "0",
        "tessedit_minimal_rej_features": "1",
    }


class PreprocessConfig(BaseModel):
    """Preprocessing configuration.

    Attributes:
        enhance: Apply gamma/contrast/brightness enhancement
        resize: Resize to the [min_dimension, max_dimension] range
        sharpen: Apply unsharp masking
        binarize: Apply adaptive local thresholding
        denoise: Apply Gaussian blur before enhancement
        auto_rotate: Detect and correct page orientation
        equalize: Blend in global histogram equalization as the final step
        max_dimension: Longer edge above this is downscaled to it
        min_dimension: Longer edge below this is upscaled to it
        denoise_radius: Gaussian blur radius for denoising
        gamma: Gamma correction exponent
        contrast: Contrast multiplier around mid-gray
        brightness: Brightness offset added after contrast
        block_size: Adaptive threshold block size (pixels)
        threshold_c: Constant subtracted from the local mean
        sharpen_amount: Unsharp mask strength
        sharpen_radius: Unsharp mask blur radius
        sharpen_threshold: Minimum difference to sharpen a channel
        equalization_blend: Share of the equalized gray in the final blend
    """

    enhance: bool = True
    resize: bool = True
    sharpen: bool = True
    binarize: bool = True
    denoise: bool = True
    auto_rotate: bool = True
    equalize: bool = True

    max_dimension: int = Field(default=2000, gt=0)
    min_dimension: int = Field(default=400, gt=0)
    denoise_radius: float = Field(default=1.0, gt=0.0)
    gamma: float = Field(default=0.8, gt=0.0)
    contrast: float = 1.4
    brightness: float = 10.0
    block_size: int = Field(default=15, ge=1)
    threshold_c: float = 8.0
    sharpen_amount: float = 1.5
    sharpen_radius: float = Field(default=1.5, gt=0.0)
    sharpen_threshold: float = Field(default=0.0, ge=0.0)
    equalization_blend: float = Field(default=0.3, ge=0.0, le=1.0)


class RotationConfig(BaseModel):
    """Orientation detection configuration.

    Attributes:
        angles: Candidate clockwise rotations, evaluated in order
        probe_max_dimension: Longer edge of the low-resolution probe image
        confidence_weight: Weight of engine confidence in the score
        valid_word_weight: Points per valid recognized word
        min_word_confidence: Word confidence a valid word must exceed
        text_length_weight: Points per recognized word character
        text_length_cap: Maximum counted word characters
        segmentation_mode: Segmentation mode used for probes
        whitelist: Character whitelist used for probes
    """

    angles: List[int] = [0, 90, 180, 270]
    probe_max_dimension: int = Field(default=400, gt=0)
    confidence_weight: float = 0.4
    valid_word_weight: float = 15.0
    min_word_confidence: float = 30.0
    text_length_weight: float = 2.0
    text_length_cap: int = 20
    segmentation_mode: SegmentationMode = SegmentationMode.SINGLE_WORD
    whitelist: str = LETTERS


class ScoringConfig(BaseModel):
    """Recognition quality score weights.

    Attributes:
        confidence_weight: Weight of engine confidence
        word_count_weight: Points per returned word
        word_count_cap: Maximum word-count points
        text_length_weight: Points per text character
        text_length_cap: Maximum text-length points
        valid_ratio_weight: Points for a fully valid word list
        word_confidence_weight: Weight of mean word confidence
    """

    confidence_weight: float = 0.4
    word_count_weight: float = 4.0
    word_count_cap: float = 20.0
    text_length_weight: float = 0.5
    text_length_cap: float = 15.0
    valid_ratio_weight: float = 15.0
    word_confidence_weight: float = 0.1


class EarlyExitConfig(BaseModel):
    """Early-exit thresholds for the strategy loop.

    Attributes:
        excellent_quality: Quality score that ends the loop immediately
        excellent_confidence: Confidence required alongside excellent_quality
        good_min_attempts: Attempts needed before a good result ends the loop
        good_quality: Quality score of a good result
        good_confidence: Confidence of a good result
    """

    excellent_quality: float = 90.0
    excellent_confidence: float = 80.0
    good_min_attempts: int = Field(default=3, ge=1)
    good_quality: float = 70.0
    good_confidence: float = 70.0


class SelectionConfig(BaseModel):
    """Best-result selection weights.

    Attributes:
        quality_weight: Weight of the quality score
        confidence_weight: Weight of the engine confidence
    """

    quality_weight: float = 0.6
    confidence_weight: float = 0.4


class StrategyConfig(BaseModel):
    """One recognition strategy.

    Attributes:
        name: Strategy identifier
        description: Human-readable description
        segmentation_mode: Assumed text layout
        options: Engine option overrides layered over the baseline
    """

    name: str
    description: str = ""
    segmentation_mode: SegmentationMode
    options: Dict[str, str] = {}


def _default_strategies() -> List[StrategyConfig]:
    return [
        StrategyConfig(
            name="single_word_high_quality",
            description="High quality single word",
            segmentation_mode=SegmentationMode.SINGLE_WORD,
            options={"preserve_interword_spaces": "0", "tessedit_enable_doc_dict": "1"},
        ),
        StrategyConfig(
            name="text_line_optimized",
            description="Single text line",
            segmentation_mode=SegmentationMode.SINGLE_LINE,
            options={"preserve_interword_spaces": "1", "tessedit_enable_doc_dict": "1"},
        ),
        StrategyConfig(
            name="text_block_dense",
            description="Dense text block",
            segmentation_mode=SegmentationMode.DENSE_BLOCK,
            options={"preserve_interword_spaces": "1", "tessedit_enable_doc_dict": "1"},
        ),
        StrategyConfig(
            name="sparse_text_auto",
            description="Sparse text, automatic segmentation",
            segmentation_mode=SegmentationMode.SPARSE_AUTO,
            options={"preserve_interword_spaces": "1", "tessedit_enable_doc_dict": "0"},
        ),
        StrategyConfig(
            name="mixed_content",
            description="Mixed sparse content",
            segmentation_mode=SegmentationMode.MIXED_SPARSE,
            options={"preserve_interword_spaces": "1"},
        ),
    ]


class QualityFilterConfig(BaseModel):
    """Word acceptance thresholds.

    Attributes:
        min_confidence: Minimum confidence for any accepted word
        short_word_max_length: Words up to this length count as short
        short_word_min_confidence: Minimum confidence for short words
        uncommon_word_min_confidence: Minimum confidence for uncommon words
        token_min_confidence: Minimum engine confidence to consider a token
        text_parse_confidence: Confidence given to words parsed from line text
        low_confidence: Below this, plausibility requires a common word
        low_confidence_floor: Absolute floor for low-confidence common words
    """

    min_confidence: float = 40.0
    short_word_max_length: int = 2
    short_word_min_confidence: float = 70.0
    uncommon_word_min_confidence: float = 65.0
    token_min_confidence: float = 40.0
    text_parse_confidence: float = Field(default=75.0, ge=0.0, le=100.0)
    low_confidence: float = 60.0
    low_confidence_floor: float = 50.0


class PipelineConfig(BaseModel):
    """Pipeline behaviour configuration.

    Attributes:
        fail_on_empty: Report failure when no acceptable words remain
    """

    fail_on_empty: bool = False


class OutputConfig(BaseModel):
    """Output configuration.

    Attributes:
        include_bounding_boxes: Include word bounding boxes in ``to_dict`` output
        debug_dir: Directory for preprocessed-image dumps in debug mode
    """

    include_bounding_boxes: bool = True
    debug_dir: Optional[str] = None


class OCRModuleConfig(BaseModel):
    """Complete vocabulary OCR configuration.

    Attributes:
        engine: Recognition engine configuration
        preprocessing: Image preprocessing configuration
        rotation: Orientation detection configuration
        scoring: Quality score weights
        early_exit: Strategy loop early-exit thresholds
        selection: Best-result selection weights
        strategies: Ordered recognition strategies
        quality_filter: Word acceptance thresholds
        pipeline: Pipeline behaviour
        output: Output formatting configuration
    """

    engine: EngineConfig = EngineConfig()
    preprocessing: PreprocessConfig = PreprocessConfig()
    rotation: RotationConfig = RotationConfig()
    scoring: ScoringConfig = ScoringConfig()
    early_exit: EarlyExitConfig = EarlyExitConfig()
    selection: SelectionConfig = SelectionConfig()
    strategies: List[StrategyConfig] = Field(
        default_factory=_default_strategies, min_length=1
    )
    quality_filter: QualityFilterConfig = QualityFilterConfig()
    pipeline: PipelineConfig = PipelineConfig()
    output: OutputConfig = OutputConfig()


class Config(BaseModel):
    """Root configuration container.

    Attributes:
        ocr: Vocabulary OCR configuration
    """

    ocr: OCRModuleConfig = OCRModuleConfig()


def load_config(config_path: Path) -> Config:
    """Load and validate configuration from YAML file.

    The file may either hold the module settings at top level or nest them
    under an ``ocr`` key.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("src/vocab_ocr/config.yaml"))
        >>> print(config.ocr.quality_filter.min_confidence)
        40.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    if "ocr" in config_dict:
        return Config(**config_dict)

    # Wrap flat YAML structure in 'ocr' key for Config model
    return Config(ocr=OCRModuleConfig(**config_dict))


def get_default_config() -> Config:
    """Get default configuration from bundled config.yaml file.

    Returns:
        Config object loaded from the package's config.yaml

    Example:
        >>> config = get_default_config()
        >>> print(config.ocr.engine.type)
        tesseract
    """
    default_config_path = Path(__file__).parent / "config.yaml"
    if default_config_path.exists():
        return load_config(default_config_path)
    else:
        # Fallback to hardcoded defaults if config file is missing
        return Config()

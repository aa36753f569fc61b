"""Recognition engine contract and output normalization.

The recognition engine is an external collaborator: anything with an async
``recognize(image, language, options, progress_callback=None)`` method. It
may return an ``EngineOutput`` or a plain mapping shaped like

    {text, confidence, words: [{text, confidence, bbox}],
     lines: [{text, bbox, words}], paragraphs: [{lines}]}

and may raise, in which case the caller treats the attempt as failed.

Example:
    >>> engine = create_engine(EngineConfig())
    >>> raw = await engine.recognize(image, "eng", {"tessedit_pageseg_mode": "6"})
    >>> output = coerce_engine_output(raw)
    >>> print(output.text, output.confidence)
"""

import logging
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from .common.types import BBox, ImageBuffer
from .config_loader import EngineConfig
from .types import (
    EngineLine,
    EngineOutput,
    EngineParagraph,
    EngineWord,
    SegmentationMode,
    clamp_score,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


@runtime_checkable
class RecognitionEngine(Protocol):
    """Black-box text recognition capability."""

    async def recognize(
        self,
        image: ImageBuffer,
        language: str,
        options: Dict[str, str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Union[EngineOutput, Mapping[str, Any]]:
        """Recognize text in an image.

        Args:
            image: Image to recognize
            language: Engine language code (e.g. "eng")
            options: Engine options (Tesseract parameter names)
            progress_callback: Optional ``(fraction, status)`` reporter

        Returns:
            Engine output as EngineOutput or an equivalent mapping
        """
        ...


def build_engine_options(
    base_options: Mapping[str, str],
    segmentation_mode: SegmentationMode,
    overrides: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Layer segmentation mode and overrides over the baseline options.

    Args:
        base_options: Options shared by every attempt
        segmentation_mode: Layout assumption for this attempt
        overrides: Attempt-specific options (win over everything else)

    Returns:
        New option mapping
    """
    options = dict(base_options)
    options["tessedit_pageseg_mode"] = str(segmentation_mode.page_segmentation_mode)
    if overrides:
        options.update(overrides)
    return options


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _coerce_word(raw: Any) -> Optional[EngineWord]:
    if isinstance(raw, EngineWord):
        return EngineWord(
            text=raw.text or "",
            confidence=clamp_score(raw.confidence),
            bbox=BBox.from_mapping(raw.bbox),
        )
    text = _field(raw, "text") or _field(raw, "word") or ""
    if not isinstance(text, str):
        return None
    return EngineWord(
        text=text,
        confidence=clamp_score(_field(raw, "confidence", 0.0) or 0.0),
        bbox=BBox.from_mapping(_field(raw, "bbox")),
    )


def _coerce_words(raw_words: Any) -> List[EngineWord]:
    words = []
    for raw in raw_words or []:
        word = _coerce_word(raw)
        if word is not None:
            words.append(word)
    return words


def _coerce_line(raw: Any) -> EngineLine:
    text = _field(raw, "text") or ""
    return EngineLine(
        text=text if isinstance(text, str) else "",
        bbox=BBox.from_mapping(_field(raw, "bbox")),
        words=_coerce_words(_field(raw, "words")),
    )


def coerce_engine_output(raw: Any) -> EngineOutput:
    """Normalize engine output into an EngineOutput.

    Confidences are clamped to [0, 100] and partial bounding boxes are
    dropped, so downstream stages can rely on both invariants.

    Args:
        raw: EngineOutput or mapping returned by ``recognize``

    Returns:
        Normalized EngineOutput

    Raises:
        TypeError: If the output is neither an EngineOutput nor a mapping
    """
    if raw is None or not isinstance(raw, (EngineOutput, Mapping)):
        raise TypeError(f"Unexpected engine output type: {type(raw).__name__}")

    text = _field(raw, "text") or ""
    paragraphs = [
        EngineParagraph(lines=[_coerce_line(line) for line in (_field(p, "lines") or [])])
        for p in (_field(raw, "paragraphs") or [])
    ]

    return EngineOutput(
        text=text if isinstance(text, str) else "",
        confidence=clamp_score(_field(raw, "confidence", 0.0) or 0.0),
        words=_coerce_words(_field(raw, "words")),
        lines=[_coerce_line(line) for line in (_field(raw, "lines") or [])],
        paragraphs=paragraphs,
    )


def create_engine(config: EngineConfig) -> RecognitionEngine:
    """Create the recognition engine named in the configuration.

    Args:
        config: Engine configuration

    Returns:
        Engine instance

    Raises:
        ValueError: If the engine type is unknown
    """
    engine_type = config.type.lower()
    if engine_type == "tesseract":
        from .engine_tesseract import TesseractEngine

        return TesseractEngine(config)

    raise ValueError(f"Unknown engine type '{config.type}'")

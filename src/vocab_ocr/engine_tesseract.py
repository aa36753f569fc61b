"""Tesseract OCR engine adapter for vocabulary extraction.

This module provides the default recognition engine: Tesseract driven
through pytesseract. Engine options use Tesseract parameter names; page
segmentation and engine mode become command-line flags, everything else is
passed as ``-c name=value``.

Example:
    >>> from vocab_ocr.config_loader import EngineConfig
    >>> engine = TesseractEngine(EngineConfig())
    >>> output = await engine.recognize(image, "eng", {"tessedit_pageseg_mode": "7"})
    >>> print(output.text, output.confidence)
    'apple' 91.0
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pytesseract

from .common.types import BBox, ImageBuffer
from .config_loader import EngineConfig
from .engine import ProgressCallback
from .exceptions import EngineInvocationError
from .types import EngineLine, EngineOutput, EngineParagraph, EngineWord, clamp_score

logger = logging.getLogger(__name__)

_FLAG_OPTIONS = {
    "tessedit_pageseg_mode": "--psm",
    "tessedit_ocr_engine_mode": "--oem",
}


def build_tesseract_config(options: Mapping[str, str]) -> str:
    """Translate engine options into a Tesseract config string.

    Args:
        options: Tesseract parameter names to values

    Returns:
        Config string for pytesseract, e.g. ``--oem 1 --psm 6 -c a=b``

    Example:
        >>> build_tesseract_config({"tessedit_pageseg_mode": "8"})
        '--psm 8'
    """
    parts = []
    for name in ("tessedit_ocr_engine_mode", "tessedit_pageseg_mode"):
        if name in options:
            parts.append(f"{_FLAG_OPTIONS[name]} {options[name]}")

    for name, value in options.items():
        if name in _FLAG_OPTIONS:
            continue
        value = str(value)
        if any(c in value for c in " '\""):
            value = '"' + value.replace('"', '\\"') + '"'
        parts.append(f"-c {name}={value}")

    return " ".join(parts)


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return -1.0


def parse_tesseract_data(data: Mapping[str, List[Any]]) -> EngineOutput:
    """Convert ``image_to_data`` DICT output into an EngineOutput.

    Word entries are grouped back into lines by (block, paragraph, line)
    and into paragraphs by (block, paragraph). Entries with empty text or
    negative confidence are structural rows and are skipped.

    Args:
        data: pytesseract ``Output.DICT`` result

    Returns:
        EngineOutput with words, lines and paragraphs in reading order
    """
    n = len(data.get("text", []))
    lines: Dict[Tuple[int, int, int], List[EngineWord]] = {}
    words: List[EngineWord] = []

    for i in range(n):
        text = str(data["text"][i] or "").strip()
        conf = _to_float(data["conf"][i])
        if not text or conf < 0:
            continue

        left, top = int(data["left"][i]), int(data["top"][i])
        bbox = BBox(
            x0=left,
            y0=top,
            x1=left + int(data["width"][i]),
            y1=top + int(data["height"][i]),
        )
        word = EngineWord(text=text, confidence=clamp_score(conf), bbox=bbox)
        words.append(word)

        key = (
            int(data.get("block_num", [0] * n)[i]),
            int(data.get("par_num", [0] * n)[i]),
            int(data.get("line_num", [0] * n)[i]),
        )
        lines.setdefault(key, []).append(word)

    engine_lines: List[EngineLine] = []
    paragraphs: Dict[Tuple[int, int], List[EngineLine]] = {}
    for key in sorted(lines):
        line_words = lines[key]
        line = EngineLine(
            text=" ".join(w.text for w in line_words),
            bbox=BBox.union([w.bbox for w in line_words if w.bbox is not None]),
            words=line_words,
        )
        engine_lines.append(line)
        paragraphs.setdefault(key[:2], []).append(line)

    confidence = float(np.mean([w.confidence for w in words])) if words else 0.0

    return EngineOutput(
        text="\n".join(line.text for line in engine_lines),
        confidence=confidence,
        words=words,
        lines=engine_lines,
        paragraphs=[EngineParagraph(lines=paragraphs[key]) for key in sorted(paragraphs)],
    )


class TesseractEngine:
    """Recognition engine backed by the Tesseract binary.

    Tesseract runs one job at a time per engine instance; concurrent
    ``recognize`` calls on the same instance are serialized.

    Args:
        config: Engine configuration.

    Attributes:
        config: Engine configuration instance.
    """

    def __init__(self, config: EngineConfig):
        """Initialize Tesseract engine adapter.

        Args:
            config: Engine configuration.

        Raises:
            RuntimeError: If the Tesseract binary is not available.
        """
        self.config = config
        self._lock = asyncio.Lock()

        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd

        # Verify Tesseract is available
        try:
            version = pytesseract.get_tesseract_version()
            logger.info(f"Tesseract engine initialized: version {version}")
        except Exception as e:
            logger.error(f"Tesseract not found or not properly configured: {e}")
            raise RuntimeError(
                "Tesseract not available. Please install Tesseract OCR.\n"
                "Windows: choco install tesseract\n"
                "Linux: sudo apt-get install tesseract-ocr\n"
                "MacOS: brew install tesseract"
            ) from e

    async def recognize(
        self,
        image: ImageBuffer,
        language: str,
        options: Dict[str, str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> EngineOutput:
        """Recognize text in an image.

        Args:
            image: RGBA image buffer
            language: Tesseract language code
            options: Tesseract parameters
            progress_callback: Optional ``(fraction, status)`` reporter

        Returns:
            EngineOutput with words, lines and paragraphs

        Raises:
            EngineInvocationError: If Tesseract fails
        """
        async with self._lock:
            if progress_callback is not None:
                progress_callback(0.0, "recognizing text")
            output = await asyncio.to_thread(self._recognize_sync, image, language, options)
            if progress_callback is not None:
                progress_callback(1.0, "done")
            return output

    def _recognize_sync(
        self, image: ImageBuffer, language: str, options: Dict[str, str]
    ) -> EngineOutput:
        tesseract_config = build_tesseract_config(options)
        logger.debug(f"Running Tesseract (lang={language}) with config: {tesseract_config}")

        try:
            data = pytesseract.image_to_data(
                image.rgb(),
                lang=language,
                config=tesseract_config,
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise EngineInvocationError(f"tesseract {tesseract_config}", e) from e

        output = parse_tesseract_data(data)
        logger.debug(
            f"Tesseract extraction finished: words={len(output.words)}, "
            f"lines={len(output.lines)}, confidence={output.confidence:.1f}"
        )
        return output

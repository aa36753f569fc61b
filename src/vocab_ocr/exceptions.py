"""Error taxonomy for the vocabulary OCR pipeline.

Each error carries a stable ``code`` for programmatic checking, following the
``OCR-Exxx`` convention used in rejection reasons:

    - OCR-E001 DecodeError: input image could not be decoded (fatal)
    - OCR-E101 EngineInvocationError: one engine call failed (recovered)
    - OCR-E201 PipelineExhaustionError: no usable recognition result (surfaced)
"""

from typing import Optional


class VocabOCRError(Exception):
    """Base class for all pipeline errors."""

    code = "OCR-E000"


class DecodeError(VocabOCRError):
    """Input image could not be decoded or prepared."""

    code = "OCR-E001"


class EngineInvocationError(VocabOCRError):
    """A single rotation probe or strategy call to the engine failed.

    Args:
        attempt: Name of the attempt (strategy name or ``rotation_<angle>``).
        cause: Underlying exception raised by the engine, if any.
    """

    code = "OCR-E101"

    def __init__(self, attempt: str, cause: Optional[BaseException] = None):
        self.attempt = attempt
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown error"
        super().__init__(f"Recognition attempt '{attempt}' failed ({detail})")


class PipelineExhaustionError(VocabOCRError):
    """Every strategy failed, or no acceptable words were produced."""

    code = "OCR-E201"

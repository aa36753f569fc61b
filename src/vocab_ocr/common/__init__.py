"""
Common types shared across all pipeline stages.

This module provides the pixel buffer and bounding box types used by the
rotation, preprocessing, recognition and extraction stages.
"""

from vocab_ocr.common.types import BBox, ImageBuffer

__all__ = ["ImageBuffer", "BBox"]

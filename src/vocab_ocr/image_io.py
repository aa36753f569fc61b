"""Image decoding and geometric helpers.

Decoding accepts everything a caller is likely to hold: an ImageBuffer, a
numpy array (RGB/RGBA/grayscale), encoded image bytes, or a file path.
Geometric helpers always return a new ImageBuffer.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from .common.types import ImageBuffer
from .exceptions import DecodeError

logger = logging.getLogger(__name__)

ImageSource = Union[ImageBuffer, np.ndarray, bytes, bytearray, str, Path]

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def _decode_bytes(payload: bytes) -> ImageBuffer:
    buffer = np.frombuffer(payload, dtype=np.uint8)
    decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if decoded is None:
        raise DecodeError("Could not decode image data")

    if decoded.dtype != np.uint8:
        # 16-bit PNG/TIFF
        decoded = (decoded / 257).astype(np.uint8)

    if decoded.ndim == 2:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGBA)
    elif decoded.shape[2] == 3:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)
    elif decoded.shape[2] == 4:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)
    else:
        raise DecodeError(f"Unsupported channel count: {decoded.shape[2]}")

    return ImageBuffer(data=rgba)


def decode_image(source: ImageSource) -> ImageBuffer:
    """Decode any supported image source into a new RGBA buffer.

    Args:
        source: ImageBuffer, numpy array (RGB/RGBA/grayscale uint8),
            encoded image bytes, or a path to an image file

    Returns:
        New ImageBuffer owned by the caller

    Raises:
        DecodeError: If the source cannot be read or decoded
    """
    if isinstance(source, ImageBuffer):
        return source.copy()

    if isinstance(source, np.ndarray):
        try:
            return ImageBuffer.from_array(source)
        except ValueError as e:
            raise DecodeError(f"Invalid image array: {e}") from e

    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise DecodeError("Image data is empty")
        return _decode_bytes(bytes(source))

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise DecodeError(f"Could not read image file {path}: {e}") from e
        if not payload:
            raise DecodeError(f"Image file is empty: {path}")
        return _decode_bytes(payload)

    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


def resize_longer_edge(image: ImageBuffer, target: int) -> ImageBuffer:
    """Resize so the longer edge equals ``target``, preserving aspect ratio.

    Args:
        image: Source image
        target: Longer edge length in pixels

    Returns:
        New resized ImageBuffer (a copy when the size is unchanged)
    """
    longer = image.longer_edge
    if target == longer:
        return image.copy()

    new_width = max(1, image.width * target // longer)
    new_height = max(1, image.height * target // longer)
    interpolation = cv2.INTER_AREA if target < longer else cv2.INTER_LINEAR
    resized = cv2.resize(image.data, (new_width, new_height), interpolation=interpolation)
    return ImageBuffer(data=resized)


def fit_to_range(image: ImageBuffer, max_dimension: int, min_dimension: int = 0) -> ImageBuffer:
    """Resize so the longer edge lies within [min_dimension, max_dimension].

    Args:
        image: Source image
        max_dimension: Longer edge above this is downscaled to it
        min_dimension: Longer edge below this is upscaled to it (0 disables)

    Returns:
        New ImageBuffer
    """
    longer = image.longer_edge
    if min_dimension and longer < min_dimension:
        return resize_longer_edge(image, min_dimension)
    if longer > max_dimension:
        return resize_longer_edge(image, max_dimension)
    return image.copy()


def rotate_image(image: ImageBuffer, angle: int) -> ImageBuffer:
    """Rotate clockwise by a multiple of 90 degrees.

    Width and height are swapped for 90 and 270 degrees.

    Args:
        image: Source image
        angle: 0, 90, 180 or 270

    Returns:
        New rotated ImageBuffer

    Raises:
        ValueError: If the angle is not a multiple of 90
    """
    angle = angle % 360
    if angle == 0:
        return image.copy()
    if angle not in _ROTATIONS:
        raise ValueError(f"Rotation angle must be a multiple of 90, got {angle}")
    return ImageBuffer(data=cv2.rotate(image.data, _ROTATIONS[angle]))


def save_image(image: ImageBuffer, path: Path) -> None:
    """Write an image to disk (format chosen by extension).

    Args:
        image: Image to save
        path: Destination file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(path), cv2.cvtColor(image.data, cv2.COLOR_RGBA2BGRA))
    logger.info(f"Saved image to {path}")

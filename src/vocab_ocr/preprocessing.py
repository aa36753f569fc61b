"""Pixel-level preprocessing to maximize recognizability.

The preprocessor applies a fixed, ordered chain of stages, each gated by a
PreprocessConfig flag:

    1. RESIZE: longer edge into [min_dimension, max_dimension]
    2. DENOISE: separable Gaussian blur, borders untouched
    3. ENHANCE: gamma, contrast and brightness lookup table
    4. BINARIZE: adaptive local-mean threshold on the grayscale map
    5. SHARPEN: unsharp mask
    6. EQUALIZE: 70/30 blend with global histogram equalization

All stage functions work on RGB channels only (alpha is carried through) and
return new arrays; the input buffer is never modified.

Example:
    >>> preprocessor = ImagePreprocessor(PreprocessConfig())
    >>> prepared = preprocessor.process(image)
    >>> print(prepared.shape)
"""

import logging
import math
from typing import List, Optional

import cv2
import numpy as np

from .common.types import ImageBuffer
from .config_loader import PreprocessConfig
from .image_io import fit_to_range

logger = logging.getLogger(__name__)

_GRAY_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def grayscale(rgba: np.ndarray) -> np.ndarray:
    """Luma of each pixel, rounded to the nearest integer.

    Args:
        rgba: (H, W, 4) or (H, W, 3) uint8 array

    Returns:
        (H, W) int array with values in [0, 255]
    """
    luma = rgba[:, :, :3].astype(np.float64) @ _GRAY_WEIGHTS
    return _round_half_up(luma).astype(np.int32)


def gaussian_kernel(radius: float) -> np.ndarray:
    """1-D Gaussian kernel of size ``2 * ceil(radius) + 1`` and sigma ``radius / 3``.

    Args:
        radius: Blur radius (> 0)

    Returns:
        Normalized float64 kernel
    """
    if radius <= 0:
        raise ValueError(f"Blur radius must be positive, got {radius}")
    half = int(math.ceil(radius))
    sigma = radius / 3.0
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    kernel = np.exp(-(offsets**2) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(rgba: np.ndarray, radius: float) -> np.ndarray:
    """Separable Gaussian blur of the RGB channels.

    Pixels closer to the border than half the kernel width keep their
    original values.

    Args:
        rgba: (H, W, 4) uint8 array
        radius: Blur radius

    Returns:
        New (H, W, 4) uint8 array
    """
    kernel = gaussian_kernel(radius)
    half = len(kernel) // 2
    height, width = rgba.shape[:2]
    output = rgba.copy()

    if height <= 2 * half or width <= 2 * half:
        return output

    rgb = rgba[:, :, :3].astype(np.float64)
    blurred = cv2.sepFilter2D(rgb, cv2.CV_64F, kernel, kernel, borderType=cv2.BORDER_REFLECT_101)
    output[half : height - half, half : width - half, :3] = _to_uint8(
        blurred[half : height - half, half : width - half]
    )
    return output


def enhancement_lut(gamma: float, contrast: float, brightness: float) -> np.ndarray:
    """Lookup table for gamma, contrast and brightness adjustment.

    ``v' = clamp(((v / 255) ** gamma * 255 - 128) * contrast + 128 + brightness)``

    Args:
        gamma: Gamma exponent
        contrast: Contrast multiplier around 128
        brightness: Brightness offset

    Returns:
        (256,) uint8 lookup table
    """
    values = np.arange(256, dtype=np.float64)
    corrected = np.power(values / 255.0, gamma) * 255.0
    adjusted = (corrected - 128.0) * contrast + 128.0 + brightness
    return _to_uint8(adjusted)


def enhance(rgba: np.ndarray, gamma: float, contrast: float, brightness: float) -> np.ndarray:
    """Apply the enhancement lookup table to the RGB channels."""
    output = rgba.copy()
    output[:, :, :3] = enhancement_lut(gamma, contrast, brightness)[rgba[:, :, :3]]
    return output


def adaptive_threshold(rgba: np.ndarray, block_size: int, c: float) -> np.ndarray:
    """Binarize against the local mean of a centered block.

    The block is clamped at image edges, so border pixels average over fewer
    neighbours. Means are computed from the grayscale map of the input only
    (via an integral image), never from already-binarized pixels.

    Args:
        rgba: (H, W, 4) uint8 array
        block_size: Block edge length in pixels
        c: Constant subtracted from the local mean

    Returns:
        New array whose RGB channels are 0 (ink) or 255 (background)
    """
    gray = grayscale(rgba)
    height, width = gray.shape
    half = block_size // 2

    integral = cv2.integral(gray.astype(np.float64), sdepth=cv2.CV_64F)

    rows = np.arange(height)
    cols = np.arange(width)
    top = np.clip(rows - half, 0, height)
    bottom = np.clip(rows + half + 1, 0, height)
    left = np.clip(cols - half, 0, width)
    right = np.clip(cols + half + 1, 0, width)

    sums = (
        integral[np.ix_(bottom, right)]
        - integral[np.ix_(top, right)]
        - integral[np.ix_(bottom, left)]
        + integral[np.ix_(top, left)]
    )
    counts = np.outer(bottom - top, right - left)
    threshold = sums / counts - c

    binary = np.where(gray < threshold, 0, 255).astype(np.uint8)
    output = rgba.copy()
    output[:, :, :3] = binary[:, :, np.newaxis]
    return output


def unsharp_mask(rgba: np.ndarray, amount: float, radius: float, threshold: float) -> np.ndarray:
    """Sharpen by adding back the difference from a blurred copy.

    Args:
        rgba: (H, W, 4) uint8 array
        amount: Strength of the sharpening
        radius: Blur radius of the mask
        threshold: Channels whose difference does not exceed this are kept

    Returns:
        New (H, W, 4) uint8 array
    """
    blurred = gaussian_blur(rgba, radius)
    original = rgba[:, :, :3].astype(np.float64)
    difference = original - blurred[:, :, :3].astype(np.float64)

    sharpened = np.where(
        np.abs(difference) > threshold,
        original + amount * difference,
        original,
    )
    output = rgba.copy()
    output[:, :, :3] = _to_uint8(sharpened)
    return output


def equalization_lut(gray: np.ndarray) -> np.ndarray:
    """Histogram-equalization lookup table from a grayscale map.

    Args:
        gray: (H, W) int array with values in [0, 255]

    Returns:
        (256,) float64 table mapping gray level to equalized level
    """
    histogram = np.bincount(gray.ravel(), minlength=256)
    cdf = np.cumsum(histogram)
    return _round_half_up(cdf * 255.0 / gray.size)


def blend_equalization(rgba: np.ndarray, blend: float = 0.3) -> np.ndarray:
    """Blend each pixel toward its globally equalized gray level.

    Every RGB channel is scaled by ``target / gray`` with
    ``target = (1 - blend) * gray + blend * lut[gray]``. Pixels with a gray
    level of 0 have no defined ratio and keep their values.

    Args:
        rgba: (H, W, 4) uint8 array
        blend: Share of the equalized level in the target (0-1)

    Returns:
        New (H, W, 4) uint8 array
    """
    gray = grayscale(rgba)
    lut = equalization_lut(gray)
    target = gray * (1.0 - blend) + lut[gray] * blend

    adjustment = np.ones(gray.shape, dtype=np.float64)
    nonzero = gray > 0
    adjustment[nonzero] = target[nonzero] / gray[nonzero]

    output = rgba.copy()
    output[:, :, :3] = _to_uint8(rgba[:, :, :3].astype(np.float64) * adjustment[:, :, np.newaxis])
    return output


class ImagePreprocessor:
    """Ordered pixel-processing chain driven by PreprocessConfig.

    Args:
        config: Preprocessing configuration.

    Attributes:
        config: Preprocessing configuration instance.
    """

    def __init__(self, config: PreprocessConfig):
        self.config = config

    def process(
        self, image: ImageBuffer, steps: Optional[List[str]] = None
    ) -> ImageBuffer:
        """Run every enabled stage in order.

        Args:
            image: Input image (not modified)
            steps: Optional list that receives a log entry per applied stage

        Returns:
            New ImageBuffer with the preprocessed pixels
        """
        cfg = self.config
        applied: List[str] = []

        if cfg.resize:
            resized = fit_to_range(image, cfg.max_dimension, cfg.min_dimension)
            if resized.shape != image.shape:
                applied.append(
                    f"Resize: {image.width}x{image.height} -> {resized.width}x{resized.height}"
                )
            image = resized

        data = image.data

        if cfg.denoise:
            data = gaussian_blur(data, cfg.denoise_radius)
            applied.append(f"Denoise: gaussian blur (radius={cfg.denoise_radius})")

        if cfg.enhance:
            data = enhance(data, cfg.gamma, cfg.contrast, cfg.brightness)
            applied.append(
                f"Enhance: gamma={cfg.gamma}, contrast={cfg.contrast}, "
                f"brightness={cfg.brightness}"
            )

        if cfg.binarize:
            data = adaptive_threshold(data, cfg.block_size, cfg.threshold_c)
            applied.append(f"Binarize: block_size={cfg.block_size}, C={cfg.threshold_c}")

        if cfg.sharpen:
            data = unsharp_mask(data, cfg.sharpen_amount, cfg.sharpen_radius, cfg.sharpen_threshold)
            applied.append(
                f"Sharpen: amount={cfg.sharpen_amount}, radius={cfg.sharpen_radius}, "
                f"threshold={cfg.sharpen_threshold}"
            )

        if cfg.equalize:
            data = blend_equalization(data, cfg.equalization_blend)
            applied.append(f"Equalize: blend={cfg.equalization_blend}")

        if data is image.data:
            data = data.copy()

        logger.info(
            f"Preprocessed {image.width}x{image.height} image with {len(applied)} stages"
        )
        if steps is not None:
            steps.extend(applied)

        return ImageBuffer(data=data)

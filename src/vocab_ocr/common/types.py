"""
Common type definitions for the vocabulary OCR pipeline.

This module provides Pydantic-based type definitions for the two structures
every stage shares: the RGBA pixel buffer and the text bounding box.

These types provide:
- Type validation and conversion
- Consistent interfaces across pipeline stages
- Helper methods for common operations
- Integration with numpy arrays and OpenCV
"""

from typing import Any, Mapping, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator


class ImageBuffer(BaseModel):
    """
    Type-safe wrapper for RGBA image arrays (numpy.ndarray).

    Every pipeline stage consumes one buffer and produces a new one, so a
    buffer is never shared between stages. The pixel layout is always
    (H, W, 4) uint8 in R, G, B, A channel order.

    Attributes:
        data: The underlying numpy array containing image data.

    Example:
        >>> rgba = np.zeros((480, 640, 4), dtype=np.uint8)
        >>> img_buffer = ImageBuffer(data=rgba)
        >>> print(img_buffer.height, img_buffer.width)  # 480, 640
    """

    data: np.ndarray = Field(..., description="RGBA image data as numpy array")

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is a valid RGBA image.

        Args:
            v: Numpy array to validate.

        Returns:
            Validated numpy array.

        Raises:
            ValueError: If array is not an (H, W, 4) uint8 image.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if v.ndim != 3 or v.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA image, got shape {v.shape}")

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        return v

    @classmethod
    def from_array(cls, array: np.ndarray) -> "ImageBuffer":
        """
        Build an RGBA buffer from a grayscale, RGB or RGBA array.

        The input array is copied, so the caller keeps ownership of it.

        Args:
            array: uint8 array of shape (H, W), (H, W, 1), (H, W, 3) or (H, W, 4).

        Returns:
            New ImageBuffer with an opaque alpha channel where none was given.

        Raises:
            ValueError: If the array shape or dtype is not supported.
        """
        if not isinstance(array, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(array)}")
        if array.dtype != np.uint8:
            raise ValueError(f"Expected uint8 dtype for image, got {array.dtype}")

        if array.ndim == 3 and array.shape[2] == 1:
            array = array[:, :, 0]

        if array.ndim == 2:
            rgba = np.empty((*array.shape, 4), dtype=np.uint8)
            rgba[:, :, :3] = array[:, :, np.newaxis]
            rgba[:, :, 3] = 255
            return cls(data=rgba)

        if array.ndim == 3 and array.shape[2] == 3:
            rgba = np.empty((array.shape[0], array.shape[1], 4), dtype=np.uint8)
            rgba[:, :, :3] = array
            rgba[:, :, 3] = 255
            return cls(data=rgba)

        if array.ndim == 3 and array.shape[2] == 4:
            return cls(data=array.copy())

        raise ValueError(f"Unsupported image shape: {array.shape}")

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W, 4)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    @property
    def longer_edge(self) -> int:
        """Get the length of the longer image edge in pixels."""
        return max(self.height, self.width)

    def rgb(self) -> np.ndarray:
        """
        Get a contiguous RGB copy of the pixel data (alpha dropped).

        Returns:
            uint8 array of shape (H, W, 3).
        """
        return np.ascontiguousarray(self.data[:, :, :3])

    def copy(self) -> "ImageBuffer":
        """
        Create a deep copy of the image buffer.

        Returns:
            New ImageBuffer instance with copied data.
        """
        return ImageBuffer(data=self.data.copy())

    def __repr__(self) -> str:
        """String representation of ImageBuffer."""
        return f"ImageBuffer(shape={self.shape}, dtype={self.data.dtype})"


class BBox(BaseModel):
    """
    Text region bounding box in image pixel coordinates.

    A bbox is either fully populated or absent. Use ``BBox.from_mapping``
    to coerce engine output: it returns None instead of a partial box.

    Attributes:
        x0: Left edge.
        y0: Top edge.
        x1: Right edge.
        y1: Bottom edge.

    Example:
        >>> bbox = BBox(x0=0, y0=0, x1=50, y1=20)
        >>> print(bbox.width, bbox.height)  # 50, 20
    """

    x0: int = Field(..., description="Left edge")
    y0: int = Field(..., description="Top edge")
    x1: int = Field(..., description="Right edge")
    y1: int = Field(..., description="Bottom edge")

    model_config = {"frozen": True}

    @field_validator("x0", "y0", "x1", "y1", mode="before")
    @classmethod
    def _convert_to_int(cls, v: Any) -> int:
        """
        Convert coordinate to int, rounding if float.

        Args:
            v: Coordinate value (int or float).

        Returns:
            Integer coordinate.
        """
        if isinstance(v, bool) or not isinstance(v, (int, float, np.integer, np.floating)):
            raise ValueError(f"Coordinate must be numeric, got {type(v)}")
        return int(round(float(v)))

    @classmethod
    def from_mapping(cls, value: Any) -> Optional["BBox"]:
        """
        Coerce an engine bbox into a BBox, or None if it is incomplete.

        Accepts an existing BBox, a mapping with x0/y0/x1/y1 keys, or a
        4-element sequence.

        Args:
            value: Raw bbox value from engine output.

        Returns:
            BBox instance, or None when any coordinate is missing or invalid.
        """
        if value is None:
            return None
        if isinstance(value, BBox):
            return value

        if isinstance(value, Mapping):
            coords = [value.get(key) for key in ("x0", "y0", "x1", "y1")]
        elif isinstance(value, (list, tuple)) and len(value) == 4:
            coords = list(value)
        else:
            return None

        try:
            return cls(x0=coords[0], y0=coords[1], x1=coords[2], y1=coords[3])
        except ValueError:
            return None

    @classmethod
    def union(cls, boxes: "list[BBox]") -> Optional["BBox"]:
        """
        Smallest box enclosing every given box.

        Args:
            boxes: Boxes to enclose.

        Returns:
            Enclosing BBox, or None for an empty list.
        """
        if not boxes:
            return None
        return cls(
            x0=min(b.x0 for b in boxes),
            y0=min(b.y0 for b in boxes),
            x1=max(b.x1 for b in boxes),
            y1=max(b.y1 for b in boxes),
        )

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """
        Convert BBox to tuple.

        Returns:
            Tuple (x0, y0, x1, y1).
        """
        return (self.x0, self.y0, self.x1, self.y1)

    def to_dict(self) -> dict:
        """Convert BBox to a plain {x0, y0, x1, y1} mapping."""
        return {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1}

    @property
    def width(self) -> int:
        """Get bounding box width (x1 - x0)."""
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        """Get bounding box height (y1 - y0)."""
        return self.y1 - self.y0

    def __repr__(self) -> str:
        """String representation of BBox."""
        return f"BBox(x0={self.x0}, y0={self.y0}, x1={self.x1}, y1={self.y1})"

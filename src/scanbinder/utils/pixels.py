"""
Raster buffer used by every image operation.

A PixelBuffer holds an RGBA uint8 array of shape (height, width, 4).
Buffers are treated as values: operations return new buffers instead of
writing into the one they were given.
"""

import logging
from typing import Tuple, Union
import numpy as np

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]


class PixelBuffer:
    """Decoded page raster in RGBA order."""

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray):
        if data.ndim != 3 or data.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {data.shape}")
        self._data = np.ascontiguousarray(data, dtype=np.uint8)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Union[Color, RGBA] = (255, 255, 255)
    ) -> "PixelBuffer":
        """Create a buffer filled with a single color."""
        data = np.empty((max(0, height), max(0, width), 4), dtype=np.uint8)
        data[..., :3] = color[:3]
        data[..., 3] = color[3] if len(color) == 4 else 255
        return cls(data)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Wrap a gray (H, W), RGB (H, W, 3) or RGBA (H, W, 4) array.

        The array is copied.
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            array = np.clip(array, 0, 255).astype(np.uint8)

        h, w = array.shape[:2]
        data = np.empty((h, w, 4), dtype=np.uint8)
        if array.ndim == 2:
            data[..., :3] = array[..., None]
            data[..., 3] = 255
        elif array.ndim == 3 and array.shape[2] == 1:
            data[..., :3] = array
            data[..., 3] = 255
        elif array.ndim == 3 and array.shape[2] == 3:
            data[..., :3] = array
            data[..., 3] = 255
        elif array.ndim == 3 and array.shape[2] == 4:
            data[...] = array
        else:
            raise ValueError(f"Unexpected image shape: {array.shape}")
        return cls(data)

    @classmethod
    def from_pil(cls, image) -> "PixelBuffer":
        """Build a buffer from a PIL image of any mode."""
        return cls(np.array(image.convert("RGBA")))

    def to_pil(self):
        from PIL import Image
        return Image.fromarray(self._data)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def data(self) -> np.ndarray:
        """Underlying RGBA array. Callers must not write into it."""
        return self._data

    @property
    def rgb(self) -> np.ndarray:
        return self._data[..., :3]

    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def get_pixel(self, x: int, y: int) -> RGBA:
        r, g, b, a = self._data[y, x]
        return (int(r), int(g), int(b), int(a))

    def set_pixel(self, x: int, y: int, color: Union[Color, RGBA]) -> "PixelBuffer":
        """Return a copy with one pixel replaced."""
        data = self._data.copy()
        data[y, x, :3] = color[:3]
        data[y, x, 3] = color[3] if len(color) == 4 else 255
        return PixelBuffer(data)

    def luminance(self) -> np.ndarray:
        """Per-pixel average of the three color channels (float32)."""
        return self._data[..., :3].astype(np.float32).mean(axis=2)

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self._data.copy())

    def copy_region(self, x: int, y: int, w: int, h: int) -> "PixelBuffer":
        """
        Copy a sub-rectangle, clamped to the buffer bounds.

        A rectangle that lies fully outside the buffer yields a 0-size buffer.
        """
        x0 = min(max(0, int(x)), self.width)
        y0 = min(max(0, int(y)), self.height)
        x1 = min(max(x0, int(x) + int(w)), self.width)
        y1 = min(max(y0, int(y) + int(h)), self.height)
        return PixelBuffer(self._data[y0:y1, x0:x1].copy())

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self._data.shape == other._data.shape and np.array_equal(self._data, other._data)

    # Equality compares content, so buffers are unhashable
    __hash__ = None

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"

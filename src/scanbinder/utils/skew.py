"""
Skew detection by projection-profile variance.

Ink pixels are projected onto a rotated vertical axis for each candidate
angle. Upright text lines give sharp row bands and therefore the highest
variance of the row histogram.
"""

import logging
import numpy as np

from .pixels import PixelBuffer

logger = logging.getLogger(__name__)


def candidate_angles(max_angle: float = 5.0, step: float = 0.25) -> np.ndarray:
    """Angles from -max_angle to +max_angle inclusive, ascending."""
    n = int(round(max_angle / step))
    return np.arange(-n, n + 1) * step


def binarize_ink(
    buffer: PixelBuffer,
    scale: float = 0.5,
    ink_threshold: int = 128
) -> np.ndarray:
    """
    Downscale the buffer and mark dark pixels.

    Returns:
        Boolean array, True where the channel average is below ink_threshold
    """
    import cv2

    w = int(buffer.width * scale)
    h = int(buffer.height * scale)
    if w < 1 or h < 1:
        return np.zeros((0, 0), dtype=bool)

    small = cv2.resize(np.ascontiguousarray(buffer.rgb), (w, h), interpolation=cv2.INTER_AREA)
    return small.astype(np.float32).mean(axis=2) < ink_threshold


def projection_variance(ys: np.ndarray, xs: np.ndarray, height: int, angle: float) -> float:
    """Variance of the row histogram of ink points projected at angle (degrees)."""
    rad = np.radians(angle)
    rot_y = np.rint(-xs * np.sin(rad) + ys * np.cos(rad)).astype(np.int64)
    rot_y = rot_y[(rot_y >= 0) & (rot_y < height)]
    projections = np.bincount(rot_y, minlength=height).astype(np.float64)
    return float(np.mean(projections ** 2) - np.mean(projections) ** 2)


def detect_skew_angle(
    buffer: PixelBuffer,
    max_angle: float = 5.0,
    step: float = 0.25,
    scale: float = 0.5,
    ink_threshold: int = 128
) -> float:
    """
    Detect the tilt of a text page.

    Args:
        buffer: Page raster
        max_angle: Search range is [-max_angle, +max_angle] degrees
        step: Search granularity in degrees
        scale: Downscale factor applied before the search
        ink_threshold: Channel average below which a pixel is ink

    Returns:
        The correction angle in degrees: the negative of the tilt with the
        highest projection variance. Rotating the page by this angle
        straightens it. 0.0 when the page carries no ink.
    """
    ink = binarize_ink(buffer, scale, ink_threshold)
    ys, xs = np.nonzero(ink)
    if len(xs) == 0:
        logger.debug("No ink found for skew detection")
        return 0.0

    ys = ys.astype(np.float64)
    xs = xs.astype(np.float64)
    height = ink.shape[0]

    best_angle = 0.0
    max_variance = -1.0
    # Ties go to the angle closest to zero
    for angle in sorted(candidate_angles(max_angle, step), key=abs):
        variance = projection_variance(ys, xs, height, angle)
        if variance > max_variance:
            max_variance = variance
            best_angle = float(angle)

    correction = -best_angle + 0.0
    logger.debug(f"Detected skew {best_angle:.2f}°, correction {correction:.2f}°")
    return correction

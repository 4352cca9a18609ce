"""
Paper color estimation.

Samples a sparse grid over the page and takes the median of the bright,
neutral samples. Rotate and inpaint use the result as their fill color.
"""

import logging
from typing import Optional, Tuple
import numpy as np

from .pixels import PixelBuffer

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)


def estimate_background_color(
    buffer: PixelBuffer,
    grid_steps: int = 50,
    brightness_floor: int = 150,
    neutrality: int = 25
) -> Tuple[int, int, int]:
    """
    Estimate the paper color of a page.

    Args:
        buffer: Page raster
        grid_steps: Number of samples along each axis
        brightness_floor: Every channel must exceed this to count as paper
        neutrality: Maximum pairwise channel difference for a paper sample

    Returns:
        (r, g, b) of the median candidate by summed brightness, the average
        of the four corners when no sample qualifies, or white for an empty
        buffer
    """
    if buffer.is_empty():
        return WHITE

    w, h = buffer.width, buffer.height
    step_x = max(1, w // grid_steps)
    step_y = max(1, h // grid_steps)

    xs = np.arange(grid_steps) * step_x
    ys = np.arange(grid_steps) * step_y
    xs = xs[xs < w]
    ys = ys[ys < h]

    samples = buffer.rgb[np.ix_(ys, xs)].reshape(-1, 3).astype(np.int32)
    candidates = _filter_paper_samples(samples, brightness_floor, neutrality)

    if candidates is not None:
        # Stable so that equal brightness keeps grid (row-major) order
        order = np.argsort(candidates.sum(axis=1), kind="stable")
        median = candidates[order[len(order) // 2]]
        color = (int(median[0]), int(median[1]), int(median[2]))
        logger.debug(f"Background from {len(candidates)} samples: {color}")
        return color

    corners = buffer.rgb[[0, 0, h - 1, h - 1], [0, w - 1, 0, w - 1]].astype(np.float64)
    avg = corners.mean(axis=0)
    color = (int(round(avg[0])), int(round(avg[1])), int(round(avg[2])))
    logger.debug(f"No paper samples, using corner average {color}")
    return color


def _filter_paper_samples(
    samples: np.ndarray,
    brightness_floor: int,
    neutrality: int
) -> Optional[np.ndarray]:
    if samples.size == 0:
        return None

    r, g, b = samples[:, 0], samples[:, 1], samples[:, 2]
    bright = (r > brightness_floor) & (g > brightness_floor) & (b > brightness_floor)
    diff = np.maximum(np.maximum(np.abs(r - g), np.abs(g - b)), np.abs(b - r))
    keep = bright & (diff < neutrality)

    if not keep.any():
        return None
    return samples[keep]

"""
Region growing for dark blemishes.

Provides:
- A bounded flood fill over a coarsened pixel grid
- Click mode: grow from an operator-picked seed, reject text-like blobs
- Scan mode: find dark artifacts touching the page border
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
import numpy as np

from .pixels import PixelBuffer

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Region:
    """A connected dark region found by the flood fill."""
    x: int
    y: int
    width: int
    height: int
    points: int
    step: int = 1
    touches_edge: bool = False
    truncated: bool = False

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        # Centroid of the visited lattice points, not of the padded box
        return (
            self.x + (self.width - self.step) / 2,
            self.y + (self.height - self.step) / 2
        )

    @property
    def density(self) -> float:
        """Absorbed points per grid cell of the bounding box."""
        cells = self.area / (self.step * self.step)
        return self.points / cells if cells > 0 else 0.0

    def to_xywh(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


# ============================================================================
# Flood Fill Core
# ============================================================================

def darkness_map(buffer: PixelBuffer) -> np.ndarray:
    """Brightest channel per pixel; a pixel is dark when this is low."""
    return buffer.rgb.max(axis=2)


def grow_region(
    darkness: np.ndarray,
    seed_x: int,
    seed_y: int,
    step: int,
    absorb_below: int,
    max_points: int,
    visited: Optional[np.ndarray] = None,
    edge_margin: Optional[int] = None
) -> Region:
    """
    Flood fill from a seed over a grid of spacing `step`.

    Args:
        darkness: Output of darkness_map()
        seed_x, seed_y: Seed pixel (already known to be dark)
        step: Grid spacing in pixels
        absorb_below: Neighbors darker than this join the region
        max_points: Budget of absorbed points; the fill stops when reached
        visited: Shared visited bitmap of shape (ceil(h/step), ceil(w/step))
        edge_margin: When given, record whether the region comes within this
            many pixels of the image edge

    Returns:
        Region with its bounding box padded by one grid step
    """
    h, w = darkness.shape
    if visited is None:
        visited = np.zeros((-(-h // step), -(-w // step)), dtype=bool)

    min_x = max_x = seed_x
    min_y = max_y = seed_y
    visited[seed_y // step, seed_x // step] = True
    stack = [(seed_x, seed_y)]
    points = 0
    touches_edge = False

    while stack and points < max_points:
        cx, cy = stack.pop()
        points += 1
        if cx < min_x:
            min_x = cx
        elif cx > max_x:
            max_x = cx
        if cy < min_y:
            min_y = cy
        elif cy > max_y:
            max_y = cy

        if edge_margin is not None and not touches_edge:
            if (cx <= edge_margin or cx >= w - edge_margin
                    or cy <= edge_margin or cy >= h - edge_margin):
                touches_edge = True

        for nx, ny in ((cx + step, cy), (cx - step, cy), (cx, cy + step), (cx, cy - step)):
            if 0 <= nx < w and 0 <= ny < h:
                vy, vx = ny // step, nx // step
                if not visited[vy, vx] and darkness[ny, nx] < absorb_below:
                    visited[vy, vx] = True
                    stack.append((nx, ny))

    truncated = bool(stack)
    if truncated:
        logger.debug(f"Region at ({seed_x}, {seed_y}) hit the {max_points} point budget")

    return Region(
        x=min_x,
        y=min_y,
        width=max_x - min_x + step,
        height=max_y - min_y + step,
        points=points,
        step=step,
        touches_edge=touches_edge,
        truncated=truncated
    )


# ============================================================================
# Click Mode
# ============================================================================

def is_text_like(
    region: Region,
    min_size: int = 25,
    text_density: float = 0.25,
    text_area: int = 2500
) -> bool:
    """
    True when a region should not be erased.

    Small regions are rejected outright; sparse regions of modest area are
    taken for text strokes rather than a solid smudge.
    """
    too_small = region.width < min_size and region.height < min_size
    looks_like_text = region.density < text_density and region.area < text_area
    return too_small or looks_like_text


def find_blot(
    buffer: PixelBuffer,
    x: int,
    y: int,
    black_threshold: int = 100,
    tolerance: int = 30,
    step: int = 2,
    max_points: int = 50000,
    min_size: int = 25,
    text_density: float = 0.25,
    text_area: int = 2500
) -> Optional[Region]:
    """
    Grow a blot region from a clicked pixel.

    Returns:
        The region to repair, or None when the seed is not dark, lies outside
        the page, or the region looks like text
    """
    sx, sy = int(x), int(y)
    if not (0 <= sx < buffer.width and 0 <= sy < buffer.height):
        return None

    darkness = darkness_map(buffer)
    if darkness[sy, sx] > black_threshold:
        logger.debug(f"Seed ({sx}, {sy}) is not dark enough")
        return None

    region = grow_region(
        darkness, sx, sy,
        step=step,
        absorb_below=black_threshold + tolerance,
        max_points=max_points
    )

    if is_text_like(region, min_size, text_density, text_area):
        logger.debug(
            f"Rejected region {region.to_xywh()} "
            f"(density {region.density:.2f}, {region.points} points)"
        )
        return None

    return region


# ============================================================================
# Scan Mode
# ============================================================================

def _in_border_zone(x: float, y: float, w: int, h: int, limit_x: int, limit_y: int) -> bool:
    return x < limit_x or x > w - limit_x or y < limit_y or y > h - limit_y


def find_border_artifacts(
    buffer: PixelBuffer,
    black_threshold: int = 110,
    tolerance: int = 15,
    step: int = 5,
    max_points: int = 25000,
    border_fraction: float = 0.20,
    max_region_fraction: float = 0.40
) -> List[Region]:
    """
    Find dark smudges along the page border.

    Every unvisited dark grid point inside the outer border band seeds a
    flood fill. A region is kept when it touches the image edge, its center
    lies in the border band, and it is smaller than max_region_fraction of
    the page in both dimensions.

    Returns:
        Accepted regions in scan order (row-major from the top-left)
    """
    if buffer.is_empty():
        return []

    w, h = buffer.width, buffer.height
    limit_x = int(w * border_fraction)
    limit_y = int(h * border_fraction)
    edge_margin = step * 2

    darkness = darkness_map(buffer)
    visited = np.zeros((-(-h // step), -(-w // step)), dtype=bool)

    grid = darkness[::step, ::step]
    gy, gx = np.mgrid[0:grid.shape[0], 0:grid.shape[1]]
    px, py = gx * step, gy * step
    border = (px < limit_x) | (px > w - limit_x) | (py < limit_y) | (py > h - limit_y)
    seeds = np.argwhere((grid < black_threshold) & border)

    regions = []
    for vy, vx in seeds:
        if visited[vy, vx]:
            continue
        region = grow_region(
            darkness, int(vx) * step, int(vy) * step,
            step=step,
            absorb_below=black_threshold + tolerance,
            max_points=max_points,
            visited=visited,
            edge_margin=edge_margin
        )

        cx, cy = region.center
        if (region.touches_edge
                and _in_border_zone(cx, cy, w, h, limit_x, limit_y)
                and region.width < w * max_region_fraction
                and region.height < h * max_region_fraction):
            regions.append(region)
        else:
            logger.debug(f"Skipped dark region {region.to_xywh()}")

    logger.debug(f"Found {len(regions)} border artifacts")
    return regions

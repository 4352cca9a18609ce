"""
Page repair and transform operations.

Provides:
- Rotation onto a canvas extended with the paper color
- Cropping
- Rectangle inpainting (flat fill plus blurred blend)
- Blot erasing and border cleanup built on region growing
- Deskewing

Every operation returns a new PixelBuffer and leaves its input untouched.
"""

import logging
import math
from typing import List, Optional, Tuple, Union
import numpy as np

from ..config import BinderConfig
from .background import estimate_background_color
from .pixels import PixelBuffer
from .regions import Region, find_blot, find_border_artifacts
from .skew import detect_skew_angle

logger = logging.getLogger(__name__)


# ============================================================================
# Geometry
# ============================================================================

def rotated_canvas_size(width: int, height: int, angle: float) -> Tuple[int, int]:
    """Size of the canvas bounding a width x height rectangle rotated by angle degrees."""
    rad = math.radians(angle)
    sin = abs(math.sin(rad))
    cos = abs(math.cos(rad))
    return (
        int(round(width * cos + height * sin)),
        int(round(width * sin + height * cos))
    )


def rotate(
    buffer: PixelBuffer,
    angle: float,
    background: Optional[Tuple[int, int, int]] = None,
    config: Optional[BinderConfig] = None
) -> PixelBuffer:
    """
    Rotate a page around its center onto an enlarged canvas.

    Args:
        buffer: Page raster
        angle: Degrees, positive turns the page clockwise as displayed
        background: Fill color for the uncovered corners; estimated from the
            page when omitted
        config: Supplies background estimation thresholds

    Returns:
        Rotated buffer sized to bound the rotated page
    """
    import cv2

    if angle % 360 == 0 or buffer.is_empty():
        return buffer.copy()

    if background is None:
        bg = (config or BinderConfig()).background
        background = estimate_background_color(
            buffer, bg.grid_steps, bg.brightness_floor, bg.neutrality
        )

    w, h = buffer.width, buffer.height
    new_w, new_h = rotated_canvas_size(w, h, angle)

    # OpenCV angles are counter-clockwise with y pointing down
    center = ((w - 1) / 2.0, (h - 1) / 2.0)
    rotation_matrix = cv2.getRotationMatrix2D(center, -angle, 1.0)
    rotation_matrix[0, 2] += (new_w - w) / 2.0
    rotation_matrix[1, 2] += (new_h - h) / 2.0

    rotated = cv2.warpAffine(
        buffer.data,
        rotation_matrix,
        (new_w, new_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(int(background[0]), int(background[1]), int(background[2]), 255)
    )

    logger.debug(f"Rotated {w}x{h} by {angle:.2f}° onto {new_w}x{new_h}")
    return PixelBuffer(rotated)


def crop(buffer: PixelBuffer, x: int, y: int, w: int, h: int) -> PixelBuffer:
    """Copy a sub-rectangle; the rectangle is clamped to the page."""
    return buffer.copy_region(x, y, w, h)


# ============================================================================
# Inpainting
# ============================================================================

def _clamp_rect(
    x: float, y: float, w: float, h: float, width: int, height: int
) -> Optional[Tuple[int, int, int, int]]:
    x0 = max(0, int(math.floor(x)))
    y0 = max(0, int(math.floor(y)))
    x1 = min(width, int(math.floor(x + w)))
    y1 = min(height, int(math.floor(y + h)))
    if x1 <= x0 or y1 <= y0:
        return None
    return (x0, y0, x1 - x0, y1 - y0)


def sample_fill_color(
    data: np.ndarray,
    x: int,
    y: int,
    w: int,
    h: int,
    margin: int = 30,
    sample_step: int = 5,
    brightness_floor: int = 140
) -> Tuple[int, int, int]:
    """
    Average the bright pixels on a ring `margin` pixels outside a rectangle.

    Returns:
        Fill color, white when no ring sample is bright enough
    """
    height, width = data.shape[:2]

    along_x = np.arange(-margin, w + margin, sample_step) + x
    along_y = np.arange(-margin, h + margin, sample_step) + y
    xs = np.concatenate([
        along_x, along_x,
        np.full(len(along_y), x - margin), np.full(len(along_y), x + w + margin)
    ])
    ys = np.concatenate([
        np.full(len(along_x), y - margin), np.full(len(along_x), y + h + margin),
        along_y, along_y
    ])

    inside = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
    samples = data[ys[inside], xs[inside], :3].astype(np.float64)
    if len(samples):
        samples = samples[(samples > brightness_floor).all(axis=1)]

    if len(samples) == 0:
        return (255, 255, 255)

    avg = samples.mean(axis=0)
    return (int(round(avg[0])), int(round(avg[1])), int(round(avg[2])))


def _inpaint_in_place(
    data: np.ndarray,
    x: int,
    y: int,
    w: int,
    h: int,
    margin: int,
    sample_step: int,
    brightness_floor: int,
    blur_sigma: float,
    blur_opacity: float
) -> Tuple[int, int, int]:
    import cv2

    height, width = data.shape[:2]
    color = sample_fill_color(data, x, y, w, h, margin, sample_step, brightness_floor)

    # Flat pass, one pixel beyond the rectangle
    fx0, fy0 = max(0, x - 1), max(0, y - 1)
    fx1, fy1 = min(width, x + w + 1), min(height, y + h + 1)
    data[fy0:fy1, fx0:fx1, :3] = color

    # Blurred pass: a softened patch four pixels beyond the rectangle,
    # built on a window padded past the blur radius
    grow = 4
    pad = int(math.ceil(3 * blur_sigma)) + 1
    wx0, wy0 = x - grow - pad, y - grow - pad
    wx1, wy1 = x + w + grow + pad, y + h + grow + pad

    mask = np.zeros((wy1 - wy0, wx1 - wx0), dtype=np.float32)
    mask[pad:pad + h + 2 * grow, pad:pad + w + 2 * grow] = 1.0
    if blur_sigma > 0:
        mask = cv2.GaussianBlur(mask, (0, 0), sigmaX=blur_sigma, sigmaY=blur_sigma)

    cx0, cy0 = max(0, wx0), max(0, wy0)
    cx1, cy1 = min(width, wx1), min(height, wy1)
    alpha = mask[cy0 - wy0:cy1 - wy0, cx0 - wx0:cx1 - wx0, None] * blur_opacity

    window = data[cy0:cy1, cx0:cx1, :3].astype(np.float32)
    blended = window * (1.0 - alpha) + np.array(color, dtype=np.float32) * alpha
    data[cy0:cy1, cx0:cx1, :3] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)

    return color


def inpaint_region(
    buffer: PixelBuffer,
    x: int,
    y: int,
    w: int,
    h: int,
    config: Optional[BinderConfig] = None
) -> PixelBuffer:
    """
    Cover a rectangle with the surrounding paper color.

    The rectangle is flat-filled with the average of the bright pixels on a
    ring around it, then a blurred copy of the same fill is blended on top
    to soften the seam. The rectangle is clamped to the page.

    Args:
        buffer: Page raster
        x, y, w, h: Rectangle to cover
        config: Supplies inpaint parameters

    Returns:
        Repaired copy of the buffer
    """
    cfg = (config or BinderConfig()).inpaint
    rect = _clamp_rect(x, y, w, h, buffer.width, buffer.height)
    if rect is None:
        logger.debug(f"Inpaint rectangle ({x}, {y}, {w}, {h}) is outside the page")
        return buffer.copy()

    data = buffer.data.copy()
    color = _inpaint_in_place(
        data, *rect,
        margin=cfg.margin,
        sample_step=cfg.sample_step,
        brightness_floor=cfg.brightness_floor,
        blur_sigma=cfg.blur_sigma,
        blur_opacity=cfg.blur_opacity
    )
    logger.debug(f"Inpainted {rect} with {color}")
    return PixelBuffer(data)


# ============================================================================
# Region-Based Repairs
# ============================================================================

def erase_blot(
    buffer: PixelBuffer,
    x: int,
    y: int,
    config: Optional[BinderConfig] = None
) -> PixelBuffer:
    """
    Erase the dark blot under a clicked pixel.

    Returns:
        Repaired copy, or an unchanged copy when the click is not on a dark
        blot or the blot looks like text
    """
    config = config or BinderConfig()
    rc = config.region
    region = find_blot(
        buffer, x, y,
        black_threshold=rc.click_black_threshold,
        tolerance=rc.click_tolerance,
        step=rc.click_step,
        max_points=rc.click_max_points,
        min_size=rc.min_size,
        text_density=rc.text_density,
        text_area=rc.text_area
    )
    if region is None:
        return buffer.copy()

    logger.info(f"Erasing blot {region.to_xywh()}")
    return inpaint_region(buffer, *region.to_xywh(), config=config)


def repair_border_artifacts(
    buffer: PixelBuffer,
    config: Optional[BinderConfig] = None,
    return_regions: bool = False
) -> Union[PixelBuffer, Tuple[PixelBuffer, List[Region]]]:
    """
    Remove dark scanner smudges along the page border.

    Args:
        buffer: Page raster
        config: Supplies region growing and inpaint parameters
        return_regions: If True, also return the repaired regions

    Returns:
        Repaired buffer, or tuple of (buffer, regions) if return_regions=True
    """
    config = config or BinderConfig()
    rc = config.region
    ic = config.inpaint

    regions = find_border_artifacts(
        buffer,
        black_threshold=rc.scan_black_threshold,
        tolerance=rc.scan_tolerance,
        step=rc.scan_step,
        max_points=rc.scan_max_points,
        border_fraction=rc.border_fraction,
        max_region_fraction=rc.max_region_fraction
    )

    data = buffer.data.copy()
    for region in regions:
        rect = _clamp_rect(*region.to_xywh(), buffer.width, buffer.height)
        if rect is None:
            continue
        _inpaint_in_place(
            data, *rect,
            margin=ic.margin,
            sample_step=ic.sample_step,
            brightness_floor=ic.brightness_floor,
            blur_sigma=ic.blur_sigma,
            blur_opacity=ic.blur_opacity
        )

    if regions:
        logger.info(f"Repaired {len(regions)} border artifacts")

    repaired = PixelBuffer(data)
    return (repaired, regions) if return_regions else repaired


# ============================================================================
# Deskewing
# ============================================================================

def deskew(
    buffer: PixelBuffer,
    config: Optional[BinderConfig] = None,
    return_angle: bool = False
) -> Union[PixelBuffer, Tuple[PixelBuffer, float]]:
    """
    Straighten a tilted text page.

    Args:
        buffer: Page raster
        config: Supplies skew search and background parameters
        return_angle: If True, also return the applied rotation

    Returns:
        Deskewed buffer, or tuple of (buffer, angle) if return_angle=True
    """
    config = config or BinderConfig()
    sc = config.skew
    angle = detect_skew_angle(
        buffer,
        max_angle=sc.max_angle,
        step=sc.step,
        scale=sc.scale,
        ink_threshold=sc.ink_threshold
    )

    if angle == 0:
        result = buffer.copy()
    else:
        result = rotate(buffer, angle, config=config)
        logger.info(f"Deskewed page by {angle:.2f}°")

    return (result, angle) if return_angle else result

"""
Configuration and constants for the scan binder.

This module provides:
- Global logging configuration
- Tunable thresholds for the image repair algorithms
- Decode/encode parameters
- Document store settings
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("scanbinder")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class BackgroundConfig:
    """Paper color estimation configuration."""
    grid_steps: int = 50
    brightness_floor: int = 150  # All channels must exceed this
    neutrality: int = 25  # Max pairwise channel difference


@dataclass
class SkewConfig:
    """Skew detection configuration."""
    max_angle: float = 5.0
    step: float = 0.25
    scale: float = 0.5  # Downscale factor before projection
    ink_threshold: int = 128


@dataclass
class RegionConfig:
    """Region growing configuration for blot and border removal."""
    # Click mode (operator picks a blot)
    click_black_threshold: int = 100
    click_tolerance: int = 30
    click_step: int = 2
    click_max_points: int = 50000
    min_size: int = 25
    text_density: float = 0.25
    text_area: int = 2500
    # Scan mode (automatic border cleanup)
    scan_black_threshold: int = 110
    scan_tolerance: int = 15
    scan_step: int = 5
    scan_max_points: int = 25000
    border_fraction: float = 0.20
    max_region_fraction: float = 0.40


@dataclass
class InpaintConfig:
    """Rectangle fill configuration."""
    margin: int = 30
    sample_step: int = 5
    brightness_floor: int = 140
    blur_sigma: float = 10.0
    blur_opacity: float = 0.6


@dataclass
class IOConfig:
    """Decode/encode configuration."""
    dpi: int = 80
    jpeg_quality: int = 80
    blank_page_size: Tuple[int, int] = (595, 842)  # A4 in points


@dataclass
class StoreConfig:
    """Document store configuration."""
    max_history: Optional[int] = None  # None = unbounded undo
    workers: int = 2


@dataclass
class BinderConfig:
    """Main configuration."""
    background: BackgroundConfig = field(default_factory=BackgroundConfig)
    skew: SkewConfig = field(default_factory=SkewConfig)
    region: RegionConfig = field(default_factory=RegionConfig)
    inpaint: InpaintConfig = field(default_factory=InpaintConfig)
    io: IOConfig = field(default_factory=IOConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> BinderConfig:
    """Get the default configuration with environment overrides."""
    config = BinderConfig()

    if os.environ.get("SCANBINDER_DEBUG", "").lower() == "true":
        config.debug_mode = True
        logger.setLevel(logging.DEBUG)

    dpi = os.environ.get("SCANBINDER_DPI")
    if dpi:
        config.io.dpi = int(dpi)

    workers = os.environ.get("SCANBINDER_WORKERS")
    if workers:
        config.store.workers = max(1, int(workers))

    max_history = os.environ.get("SCANBINDER_MAX_HISTORY")
    if max_history:
        config.store.max_history = int(max_history)

    return config


# ============================================================================
# Document Naming
# ============================================================================

BINDER_EXTENSION = ".pdf"
NOTE_EXTENSION = ".txt"

# Filenames containing this marker are covers and sort first
COVER_MARKER = "bia"

COVER_SORT_KEY = -20000
TABLE_OF_CONTENTS_SORT_KEY = -10000
UNNUMBERED_SORT_KEY = 999999

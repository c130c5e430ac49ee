"""
Tuning constants and logging setup.

Every threshold the searches use lives here so a run is reproducible from the
source, the preset and the encoder alone.
"""

import logging
import os
import warnings
from dataclasses import dataclass


# ------------------------- Formats -------------------------

JPEG = "image/jpeg"
PNG = "image/png"
WEBP = "image/webp"
PDF = "application/pdf"

RASTER_FORMATS = (JPEG, PNG, WEBP)
OUTPUT_FORMATS = RASTER_FORMATS + (PDF,)

EXTENSIONS = {
    JPEG: "jpg",
    PNG: "png",
    WEBP: "webp",
    PDF: "pdf",
}

# Accepted input suffixes; the source format itself is detected from content.
INPUT_SUFFIXES = (".jpg", ".jpeg", ".png", ".webp", ".pdf")

# Raster format used inside rebuilt documents.
DOCUMENT_IMAGE_FORMAT = JPEG

# A4 at 72 dpi, the page box used when wrapping a single image.
A4_WIDTH_PT = 595
A4_HEIGHT_PT = 842

# Bytes held back from the raster budget for the one-page PDF wrapper.
DOCUMENT_WRAP_RESERVE = 2048

KB = 1024


# ------------------------- Search tuning -------------------------

@dataclass(frozen=True)
class EstimatorTuning:
    test_scale: float
    min_test_side: int
    test_quality: float


@dataclass(frozen=True)
class PlannerTuning:
    safety_factor: float
    min_side: int


@dataclass(frozen=True)
class SearchTuning:
    start: float
    floor: float
    ceiling: float
    step_down: float
    step_down_large: float
    large_overshoot_ratio: float
    step_up: float
    lower_band_ratio: float
    max_iterations: int
    early_exit_ratio: float | None = None


IMAGE_ESTIMATOR = EstimatorTuning(test_scale=0.2, min_test_side=100, test_quality=0.8)
PAGE_ESTIMATOR = EstimatorTuning(test_scale=0.15, min_test_side=80, test_quality=0.75)

IMAGE_PLANNER = PlannerTuning(safety_factor=1.2, min_side=200)
PAGE_PLANNER = PlannerTuning(safety_factor=1.15, min_side=150)

QUALITY_SEARCH = SearchTuning(
    start=0.92,
    floor=0.3,
    ceiling=0.98,
    step_down=0.08,
    step_down_large=0.15,
    large_overshoot_ratio=2.0,
    step_up=0.05,
    lower_band_ratio=0.85,
    max_iterations=25,
    early_exit_ratio=0.5,
)

DOCUMENT_SEARCH = SearchTuning(
    start=0.75,
    floor=0.2,
    ceiling=0.85,
    step_down=0.1,
    step_down_large=0.1,
    large_overshoot_ratio=2.0,
    step_up=0.05,
    lower_band_ratio=0.9,
    max_iterations=10,
)

# Pipeline fallback: shrink margin and the per-side floor of the retry box.
FALLBACK_MARGIN = 0.9
FALLBACK_MIN_SIDE = 100
# The fallback only runs while the result is still above this share of the original.
FALLBACK_ORIGINAL_RATIO = 0.5

# Per-page rendering: scale relative to 72 dpi.
PAGE_RENDER_MIN_SCALE = 2.0
PAGE_RENDER_WIDTH_DIVISOR = 400
DOCUMENT_RENDER_SCALE = 2.0


# ------------------------- Size tiers -------------------------

# (max target KB, max width, max height); smaller budgets get a smaller box.
SIZE_TIERS = (
    (50, 400, 533),
    (100, 600, 800),
    (200, 800, 1067),
    (500, 1000, 1333),
)
LARGEST_TIER = (1200, 1600)


# ------------------------- Logging -------------------------

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_LEVEL_ENV = "TARGET_COMPRESSOR_LOG_LEVEL"


def configure_logging(verbose: bool = False) -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV)
    if verbose:
        level = logging.DEBUG
    elif level_name:
        level = getattr(logging, level_name.upper(), logging.INFO)
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # Reduce noisy library logs/warnings
    warnings.filterwarnings("ignore", message=".*wrong pointing object.*")
    logging.getLogger("pypdf").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)

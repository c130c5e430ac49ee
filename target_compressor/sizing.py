"""Size projection from a test encode, and the dimension plan derived from it."""

import logging
import math

from . import config
from .config import EstimatorTuning, PlannerTuning
from .interfaces import Encoder, RasterSource

logger = logging.getLogger(__name__)


def fit_box(aspect: float, box_w: float, box_h: float) -> tuple[float, float]:
    """Largest width x height with the given aspect that fits the box."""
    width, height = box_w, box_w / aspect
    if height > box_h:
        height = box_h
        width = box_h * aspect
    return width, height


class SizeEstimator:
    """
    Projects the full-size encoded byte count from one small test encode.

    Assumes bytes scale with pixel count at a fixed quality, which encoders
    only roughly do, so the number is a planning hint and nothing more.
    """

    def __init__(self, encoder: Encoder, tuning: EstimatorTuning = config.IMAGE_ESTIMATOR):
        self.encoder = encoder
        self.tuning = tuning

    def test_dimensions(self, width: int, height: int) -> tuple[int, int]:
        t = self.tuning
        return (max(t.min_test_side, math.floor(width * t.test_scale)),
                max(t.min_test_side, math.floor(height * t.test_scale)))

    def estimate(self, source: RasterSource, fmt: str) -> int:
        test_w, test_h = self.test_dimensions(source.width, source.height)
        test_bytes = len(self.encoder.encode(source.scaled(test_w, test_h), fmt, self.tuning.test_quality))
        projected = max(1, int(test_bytes / (self.tuning.test_scale ** 2)))
        logger.debug("Test encode %dx%d = %d bytes; projected full size %d bytes",
                     test_w, test_h, test_bytes, projected)
        return projected


class DimensionPlanner:
    def __init__(self, tuning: PlannerTuning = config.IMAGE_PLANNER):
        self.tuning = tuning

    @staticmethod
    def _clamp(width: float, height: float, aspect: float,
               max_width: int, max_height: int) -> tuple[float, float]:
        if width > max_width:
            width = max_width
            height = max_width / aspect
        if height > max_height:
            height = max_height
            width = max_height * aspect
        return width, height

    def _enforce_floor(self, width: float, height: float, aspect: float, min_side: int,
                       max_width: int, max_height: int) -> tuple[int, int]:
        if width < min_side or height < min_side:
            scale = max(min_side / width, min_side / height)
            width, height = self._clamp(width * scale, height * scale, aspect, max_width, max_height)
        return max(1, round(width)), max(1, round(height))

    def plan(self, original_width: int, original_height: int, projected_full_size_bytes: int,
             target_size_bytes: int, max_width: int, max_height: int) -> tuple[int, int]:
        original_pixels = original_width * original_height
        aspect = original_width / original_height
        target_pixels = math.floor(
            original_pixels * target_size_bytes
            / (max(1, projected_full_size_bytes) * self.tuning.safety_factor)
        )
        target_pixels = max(1, target_pixels)

        height = math.sqrt(target_pixels / aspect)
        width = height * aspect
        width, height = self._clamp(width, height, aspect, max_width, max_height)
        planned = self._enforce_floor(width, height, aspect, self.tuning.min_side, max_width, max_height)
        logger.debug("Planned %dx%d from %dx%d (target pixels %d)",
                     planned[0], planned[1], original_width, original_height, target_pixels)
        return planned

    def shrink(self, width: int, height: int, ratio: float, min_side: int,
               max_width: int, max_height: int) -> tuple[int, int]:
        """Uniformly scale a planned box by ratio, keeping both sides >= min_side."""
        aspect = width / height
        return self._enforce_floor(width * ratio, height * ratio, aspect, min_side, max_width, max_height)

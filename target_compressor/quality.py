"""Encoder quality search at fixed output dimensions."""

import logging
from dataclasses import dataclass

from . import config
from .band_search import Attempt, band_search
from .config import SearchTuning
from .interfaces import Encoder, RasterSource
from .models import EncodeCandidate, EncodedResult
from .progress import ProgressCallback, ProgressReporter, as_reporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchOutcome:
    result: EncodedResult
    # Dimensions and quality of the accepted encode.
    candidate: EncodeCandidate
    target: int
    attempts: int
    reason: str
    interrupted: bool = False

    @property
    def exceeded(self) -> bool:
        return self.result.size_bytes > self.target

    @property
    def size_bytes(self) -> int:
        return self.result.size_bytes


class QualitySearch:
    def __init__(self, encoder: Encoder, tuning: SearchTuning = config.QUALITY_SEARCH):
        self.encoder = encoder
        self.tuning = tuning

    def search(self, surface: RasterSource, fmt: str, target_size_bytes: int,
               progress: ProgressReporter | ProgressCallback | None = None) -> SearchOutcome:
        reporter = as_reporter(progress)
        max_iter = self.tuning.max_iterations

        def measure(quality: float) -> Attempt[bytes]:
            data = self.encoder.encode(surface, fmt, quality)
            return Attempt(quality, len(data), data)

        def on_attempt(n: int, attempt: Attempt[bytes]) -> None:
            reporter.report(100 * n / max_iter)

        logger.info("Searching quality for %dx%d %s under %d bytes",
                    surface.width, surface.height, fmt, target_size_bytes)
        band = band_search(measure, target_size_bytes, self.tuning, on_attempt)
        outcome = SearchOutcome(
            result=EncodedResult(band.attempt.payload, band.attempt.value),
            candidate=EncodeCandidate(surface.width, surface.height, band.attempt.value),
            target=target_size_bytes,
            attempts=band.attempts,
            reason=band.reason,
            interrupted=band.interrupted,
        )
        logger.info("Quality %.2f -> %d bytes after %d encodes (%s)%s",
                    outcome.result.quality, outcome.size_bytes, outcome.attempts, outcome.reason,
                    "; over target" if outcome.exceeded else "")
        reporter.finish()
        return outcome

"""
Single-raster compression: estimate, plan, resize, search, and one fallback shrink.
"""

import logging
import math
from dataclasses import replace

from . import config
from .config import EstimatorTuning, PlannerTuning, SearchTuning
from .errors import EncodeFailure
from .interfaces import DocumentFactory, Encoder, RasterSource
from .models import CompressionOutcome, Preset
from .progress import ProgressCallback, ProgressReporter, as_reporter
from .quality import QualitySearch, SearchOutcome
from .sizing import DimensionPlanner, SizeEstimator, fit_box

logger = logging.getLogger(__name__)


class CompressionPipeline:
    def __init__(self, encoder: Encoder, documents: DocumentFactory | None = None, *,
                 estimator_tuning: EstimatorTuning = config.IMAGE_ESTIMATOR,
                 planner_tuning: PlannerTuning = config.IMAGE_PLANNER,
                 search_tuning: SearchTuning = config.QUALITY_SEARCH):
        self.encoder = encoder
        self.documents = documents
        self.estimator = SizeEstimator(encoder, estimator_tuning)
        self.planner = DimensionPlanner(planner_tuning)
        self.search = QualitySearch(encoder, search_tuning)

    @classmethod
    def for_pages(cls, encoder: Encoder, documents: DocumentFactory | None = None) -> "CompressionPipeline":
        """Pipeline tuned for rendered document pages."""
        return cls(encoder, documents,
                   estimator_tuning=config.PAGE_ESTIMATOR,
                   planner_tuning=config.PAGE_PLANNER)

    # ----- public -----

    def process(self, source: RasterSource, preset: Preset,
                progress: ProgressReporter | ProgressCallback | None = None, *,
                original_size: int | None = None,
                page_box: tuple[float, float] | None = None,
                page_number: int | None = None,
                page_count: int | None = None) -> CompressionOutcome:
        """
        Compress one raster to fit preset.

        original_size overrides the source's own byte count (rendered pages
        report their document's size); page_box is the page size in points
        used when the output is a document.
        """
        preset.validate()
        reporter = as_reporter(progress)
        try:
            reporter.report(10)
            outcome = self._process(source, preset, reporter, original_size, page_box)
        finally:
            reporter.finish()
        if page_number is not None or page_count is not None:
            outcome = _with_page(outcome, page_number, page_count)
        return outcome

    # ----- stages -----

    def _process(self, source: RasterSource, preset: Preset, reporter: ProgressReporter,
                 original_size: int | None, page_box: tuple[float, float] | None) -> CompressionOutcome:
        if original_size is None:
            original_size = source.size_bytes
        original_dims = source.size
        fits = source.source_bytes is not None and source.size_bytes <= preset.target_size_bytes
        box = (preset.max_width, preset.max_height)

        if fits and source.source_format == preset.output_format and (not preset.letterbox or original_dims == box):
            logger.info("Already within budget (%d <= %d bytes); keeping original",
                        source.size_bytes, preset.target_size_bytes)
            return CompressionOutcome(
                output_bytes=source.source_bytes,
                original_size_bytes=original_size,
                new_size_bytes=source.size_bytes,
                original_dimensions=original_dims,
                new_dimensions=original_dims,
                exceeded_target=False,
                already_within_budget=True,
                output_format=preset.output_format,
            )

        raster_target = self._raster_target(preset)
        fmt = preset.raster_format

        if preset.letterbox:
            logger.info("Letterboxing %dx%d into %dx%d", *original_dims, *box)
            surface = source.letterboxed(*box)
            reporter.report(30)
            result = self.search.search(surface, fmt, raster_target, reporter.child(30, 90))
            return self._finish(result, preset, original_size, original_dims,
                                result.attempts, page_box, already_within_budget=False)

        if fits:
            logger.info("Within budget but %s -> %s; converting at %dx%d",
                        source.source_format, preset.output_format, *original_dims)
            result = self.search.search(source, fmt, raster_target, reporter.child(20, 90))
            return self._finish(result, preset, original_size, original_dims,
                                result.attempts, page_box, already_within_budget=None)

        reporter.report(20)
        projected = self.estimator.estimate(source, fmt)
        reporter.report(35)
        planned = self.planner.plan(source.width, source.height, projected, raster_target,
                                    preset.max_width, preset.max_height)
        logger.info("Planned %dx%d from %dx%d (projected %d bytes at full size)",
                    *planned, *original_dims, projected)
        reporter.report(45)
        first = self.search.search(source.scaled(*planned), fmt, raster_target, reporter.child(45, 80))
        chosen = first
        attempts = 1 + first.attempts

        # Rendered pages have no encoded bytes of their own, so any miss may shrink.
        shrink_basis = source.size_bytes if source.source_bytes is not None else None
        if first.exceeded and (shrink_basis is None
                               or first.size_bytes > shrink_basis * config.FALLBACK_ORIGINAL_RATIO):
            ratio = math.sqrt(raster_target / first.size_bytes) * config.FALLBACK_MARGIN
            retry_dims = self.planner.shrink(*planned, ratio, config.FALLBACK_MIN_SIDE,
                                             preset.max_width, preset.max_height)
            if retry_dims != planned:
                logger.info("Still %d bytes over target; retrying at %dx%d",
                            first.size_bytes - raster_target, *retry_dims)
                second = self.search.search(source.scaled(*retry_dims), fmt, raster_target,
                                            reporter.child(80, 92))
                attempts += second.attempts
                if second.size_bytes < first.size_bytes:
                    chosen = second

        return self._finish(chosen, preset, original_size, original_dims,
                            attempts, page_box, already_within_budget=False)

    def _raster_target(self, preset: Preset) -> int:
        if not preset.is_document:
            return preset.target_size_bytes
        # Leave room for the page wrapper around the image.
        return max(1, preset.target_size_bytes - config.DOCUMENT_WRAP_RESERVE)

    def _finish(self, result: SearchOutcome, preset: Preset, original_size: int,
                original_dims: tuple[int, int], attempts: int,
                page_box: tuple[float, float] | None,
                already_within_budget: bool | None) -> CompressionOutcome:
        data = result.result.data
        new_dims = (result.candidate.width, result.candidate.height)
        if preset.is_document:
            data = self.wrap(data, new_dims, page_box)
        # A search cut short by an encode failure is reported as a miss.
        exceeded = len(data) > preset.target_size_bytes or result.interrupted
        if already_within_budget is None:
            already_within_budget = not exceeded
        if exceeded:
            logger.warning("Could not reach target: %d bytes > %d bytes", len(data), preset.target_size_bytes)
        return CompressionOutcome(
            output_bytes=data,
            original_size_bytes=original_size,
            new_size_bytes=len(data),
            original_dimensions=original_dims,
            new_dimensions=new_dims,
            exceeded_target=exceeded,
            already_within_budget=already_within_budget,
            output_format=preset.output_format,
            quality=result.result.quality,
            attempts=attempts,
            interrupted=result.interrupted,
        )

    def wrap(self, image_bytes: bytes, pixel_dims: tuple[int, int],
             page_box: tuple[float, float] | None = None) -> bytes:
        """Place an encoded JPEG on a single page; the page defaults to an A4-bounded box."""
        if self.documents is None:
            raise EncodeFailure("Document output requested but no document container is configured")
        width, height = pixel_dims
        box_w, box_h = page_box or fit_box(width / height, config.A4_WIDTH_PT, config.A4_HEIGHT_PT)
        builder = self.documents.create_document()
        page = builder.add_page(box_w, box_h)
        image = builder.embed_image(image_bytes, config.DOCUMENT_IMAGE_FORMAT)
        page.draw(image, 0, 0, box_w, box_h)
        return builder.serialize()


def _with_page(outcome: CompressionOutcome, page_number: int | None,
               page_count: int | None) -> CompressionOutcome:
    return replace(outcome, page_number=page_number, page_count=page_count)

"""
Multi-page documents: per-page extraction through the raster pipeline, or a
whole-document rebuild at one shared quality.
"""

import logging
from collections.abc import Sequence

from . import config
from .band_search import Attempt, band_search
from .config import SearchTuning
from .errors import CompressionError, InvalidPreset
from .interfaces import DocumentFactory, DocumentHandle, Encoder
from .models import BatchResult, CompressionOutcome, ItemResult, Preset
from .pipeline import CompressionPipeline
from .progress import ProgressCallback, ProgressReporter, as_reporter

logger = logging.getLogger(__name__)

PageSpec = str | int | Sequence[int]


def resolve_pages(pages: PageSpec, page_count: int) -> list[int]:
    """Turn "all", a page number or a list of page numbers into a checked list."""
    if isinstance(pages, str):
        if pages.strip().lower() != "all":
            try:
                return resolve_pages(int(pages), page_count)
            except ValueError:
                raise InvalidPreset(f"Unknown page selection: {pages!r}") from None
        return list(range(1, page_count + 1))
    if isinstance(pages, int):
        pages = [pages]
    selected = list(pages)
    if not selected:
        raise InvalidPreset("No pages selected")
    for n in selected:
        if not 1 <= n <= page_count:
            raise InvalidPreset(f"Page {n} is out of range 1..{page_count}")
    unique = list(dict.fromkeys(selected))
    if len(unique) != len(selected):
        logger.info("Ignoring repeated pages in selection %s", selected)
    return unique


def page_render_scale(preset: Preset) -> float:
    # Render above the output resolution so the planner only ever downsamples.
    return max(config.PAGE_RENDER_MIN_SCALE, preset.max_width / config.PAGE_RENDER_WIDTH_DIVISOR)


class PagedDocumentCompressor:
    def __init__(self, encoder: Encoder, documents: DocumentFactory,
                 search_tuning: SearchTuning = config.DOCUMENT_SEARCH):
        self.encoder = encoder
        self.documents = documents
        self.tuning = search_tuning
        self.pipeline = CompressionPipeline.for_pages(encoder, documents)

    # ----- per-page mode -----

    def compress_pages(self, document: DocumentHandle, pages: PageSpec, preset: Preset,
                       progress: ProgressReporter | ProgressCallback | None = None) -> BatchResult:
        """One outcome per selected page, in selection order; failed pages carry their error."""
        preset.validate()
        selected = resolve_pages(pages, document.page_count)
        reporter = as_reporter(progress)
        batch = BatchResult()
        try:
            reporter.report(10)
            scale = page_render_scale(preset)
            span = 85 / len(selected)
            for idx, page_number in enumerate(selected):
                sub = reporter.child(10 + idx * span, 10 + (idx + 1) * span)
                label = f"page {page_number}"
                logger.info("Processing %s of %d at render scale %.2f", label, document.page_count, scale)
                try:
                    raster = document.render(page_number, scale)
                    outcome = self.pipeline.process(
                        raster, preset, sub,
                        original_size=document.size_bytes,
                        page_box=document.page_size(page_number),
                        page_number=page_number,
                        page_count=document.page_count,
                    )
                except CompressionError as e:
                    logger.error("Failed on %s: %s", label, e)
                    batch.items.append(ItemResult(label, error=e))
                    continue
                batch.items.append(ItemResult(label, outcome))
        finally:
            reporter.finish()
        return batch

    # ----- whole-document mode -----

    def rebuild(self, document: DocumentHandle, quality: float) -> bytes:
        """Re-render every page and embed it as JPEG at one quality."""
        builder = self.documents.create_document()
        for page_number in range(1, document.page_count + 1):
            raster = document.render(page_number, config.DOCUMENT_RENDER_SCALE)
            jpg = self.encoder.encode(raster, config.DOCUMENT_IMAGE_FORMAT, quality)
            width, height = document.page_size(page_number)
            page = builder.add_page(width, height)
            image = builder.embed_image(jpg, config.DOCUMENT_IMAGE_FORMAT)
            page.draw(image, 0, 0, width, height)
        return builder.serialize()

    def compress_document(self, document: DocumentHandle, preset: Preset,
                          progress: ProgressReporter | ProgressCallback | None = None) -> CompressionOutcome:
        """Find one quality at which the rebuilt document fits the budget."""
        preset.validate()
        if not preset.is_document:
            raise InvalidPreset("Whole-document compression needs a document output format")
        reporter = as_reporter(progress)
        target = preset.target_size_bytes
        try:
            reporter.report(10)
            first_w, first_h = document.page_size(1)
            dims = (round(first_w), round(first_h))

            if document.source_bytes is not None and document.size_bytes <= target:
                logger.info("Document already within budget (%d <= %d bytes)", document.size_bytes, target)
                return CompressionOutcome(
                    output_bytes=document.source_bytes,
                    original_size_bytes=document.size_bytes,
                    new_size_bytes=document.size_bytes,
                    original_dimensions=dims,
                    new_dimensions=dims,
                    exceeded_target=False,
                    already_within_budget=True,
                    output_format=preset.output_format,
                    page_count=document.page_count,
                )

            def measure(quality: float) -> Attempt[bytes]:
                logger.info("Rebuilding %d pages at quality %.2f", document.page_count, quality)
                data = self.rebuild(document, quality)
                return Attempt(quality, len(data), data)

            def on_attempt(n: int, attempt: Attempt[bytes]) -> None:
                reporter.report(10 + 85 * n / self.tuning.max_iterations)

            band = band_search(measure, target, self.tuning, on_attempt)
        finally:
            reporter.finish()

        data = band.attempt.payload
        if band.exceeded or band.interrupted:
            logger.warning("Document could not reach target: %d bytes > %d bytes", len(data), target)
        else:
            logger.info("Document at quality %.2f: %d bytes (%s)", band.attempt.value, len(data), band.reason)
        return CompressionOutcome(
            output_bytes=data,
            original_size_bytes=document.size_bytes,
            new_size_bytes=len(data),
            original_dimensions=dims,
            new_dimensions=dims,
            exceeded_target=band.exceeded or band.interrupted,
            already_within_budget=False,
            output_format=preset.output_format,
            quality=band.attempt.value,
            page_count=document.page_count,
            attempts=band.attempts,
            interrupted=band.interrupted,
        )

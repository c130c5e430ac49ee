"""
Entry points that pick a mode from the input and the preset:

- PDF in, PDF out: whole-document rebuild at one quality
- PDF in, image out: per-page extraction
- image in, PDF out: compress to JPEG, then wrap on one page
- image in, image out: single-raster pipeline
"""

import logging
from pathlib import Path
from typing import Callable

from . import config
from .document import PagedDocumentCompressor, PageSpec
from .errors import CompressionError, DecodeFailure, InvalidPreset
from .interfaces import Decoder, DocumentFactory, DocumentHandle, Encoder
from .models import BatchResult, ItemResult, Preset
from .mupdf import MuPdfFactory, document_info, is_pdf, open_document
from .pipeline import CompressionPipeline
from .progress import ProgressCallback, ProgressReporter, as_reporter
from .raster import PilDecoder, PilEncoder

logger = logging.getLogger(__name__)


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def output_name(stem: str, fmt: str, page_number: int | None = None) -> str:
    ext = config.EXTENSIONS[fmt]
    if page_number is not None:
        return f"{stem}_page{page_number}.{ext}"
    return f"{stem}_compressed.{ext}"


class CompressionService:
    def __init__(self, encoder: Encoder | None = None, decoder: Decoder | None = None,
                 documents: DocumentFactory | None = None,
                 opener: Callable[[bytes], DocumentHandle] = open_document):
        self.encoder = encoder or PilEncoder()
        self.decoder = decoder or PilDecoder()
        self.documents = documents or MuPdfFactory()
        self.opener = opener
        self.pipeline = CompressionPipeline(self.encoder, self.documents)
        self.paged = PagedDocumentCompressor(self.encoder, self.documents)

    def compress_bytes(self, data: bytes, preset: Preset, *, pages: PageSpec = "all",
                       name: str | None = None,
                       progress: ProgressReporter | ProgressCallback | None = None) -> BatchResult:
        """
        Compress one input file's bytes.

        Decode and encode failures are recorded on the returned batch rather
        than raised; an invalid preset or page selection raises InvalidPreset.
        """
        preset.validate()
        reporter = as_reporter(progress)
        label = name or "input"
        batch = BatchResult()
        try:
            if is_pdf(data, name):
                batch = self._compress_document(data, preset, pages, label, reporter.child(0, 99))
            else:
                raster = self.decoder.decode(data)
                outcome = self.pipeline.process(raster, preset, reporter.child(0, 99))
                batch.items.append(ItemResult(label, outcome))
        except InvalidPreset:
            raise
        except CompressionError as e:
            logger.error("Compression failed for %s: %s", label, e)
            batch.items.append(ItemResult(label, error=e))
        finally:
            reporter.finish()
        return batch

    def _compress_document(self, data: bytes, preset: Preset, pages: PageSpec, label: str,
                           reporter: ProgressReporter) -> BatchResult:
        document = self.opener(data)
        try:
            logger.info("Opened %s: %d pages, %s", label, document.page_count,
                        format_file_size(document.size_bytes))
            if preset.is_document:
                outcome = self.paged.compress_document(document, preset, reporter)
                return BatchResult([ItemResult(label, outcome)])
            return self.paged.compress_pages(document, pages, preset, reporter)
        finally:
            document.close()

    def compress_path(self, path: str | Path, preset: Preset, output_dir: str | Path | None = None, *,
                      pages: PageSpec = "all",
                      progress: ProgressReporter | ProgressCallback | None = None) -> BatchResult:
        """Compress a file and write each output next to it (or into output_dir)."""
        path = Path(path)
        out_dir = Path(output_dir) if output_dir else path.parent
        try:
            data = path.read_bytes()
        except OSError as e:
            as_reporter(progress).finish()
            failure = DecodeFailure(f"Cannot read {path}: {e}")
            logger.error("%s", failure)
            return BatchResult([ItemResult(path.name, error=failure)])

        batch = self.compress_bytes(data, preset, pages=pages, name=path.name, progress=progress)
        out_dir.mkdir(parents=True, exist_ok=True)
        for item in batch.items:
            if not item.ok:
                continue
            outcome = item.outcome
            per_page = outcome.page_number is not None and not preset.is_document
            item.path = out_dir / output_name(path.stem, outcome.output_format,
                                              outcome.page_number if per_page else None)
            with open(item.path, "wb") as f:
                f.write(outcome.output_bytes)
            logger.info("Wrote %s (%s)", item.path, format_file_size(outcome.new_size_bytes))
        return batch

    def compress_paths(self, paths, preset: Preset, output_dir: str | Path | None = None, *,
                       pages: PageSpec = "all",
                       progress: ProgressReporter | ProgressCallback | None = None) -> dict[Path, BatchResult]:
        """Batch over several files; one file's failure does not stop the others."""
        preset.validate()
        paths = [Path(p) for p in paths]
        reporter = as_reporter(progress)
        results = {}
        try:
            for idx, path in enumerate(paths):
                sub = reporter.child(100 * idx / len(paths), 100 * (idx + 1) / len(paths))
                try:
                    results[path] = self.compress_path(path, preset, output_dir, pages=pages, progress=sub)
                except InvalidPreset as e:
                    # The preset is valid, so this is a page selection this file cannot satisfy.
                    logger.error("Skipping %s: %s", path.name, e)
                    results[path] = BatchResult([ItemResult(path.name, error=e)])
        finally:
            reporter.finish()
        return results

    @staticmethod
    def inspect(data: bytes, name: str | None = None) -> dict:
        """Describe an input for display: size, kind and, for PDFs, pages and encryption."""
        info = {"size_bytes": len(data), "is_pdf": is_pdf(data, name), "pages": 1, "is_encrypted": False}
        if info["is_pdf"]:
            doc_info = document_info(data)
            info["pages"] = doc_info.page_count
            info["is_encrypted"] = doc_info.is_encrypted
        return info


_default: CompressionService | None = None


def default_service() -> CompressionService:
    global _default
    if _default is None:
        _default = CompressionService()
    return _default


def compress_bytes(data: bytes, preset: Preset, **kwargs) -> BatchResult:
    return default_service().compress_bytes(data, preset, **kwargs)


def compress_path(path: str | Path, preset: Preset, output_dir: str | Path | None = None, **kwargs) -> BatchResult:
    return default_service().compress_path(path, preset, output_dir, **kwargs)

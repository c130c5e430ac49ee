"""PyMuPDF-backed document rendering and rebuilding, with pypdf for quick inspection."""

import io
import logging
from dataclasses import dataclass

import fitz  # PyMuPDF
from PIL import Image
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from . import config
from .errors import DecodeFailure, EncodeFailure, InvalidPreset
from .interfaces import DocumentBuilder, DocumentFactory, DocumentHandle, PageCanvas
from .raster import PilRaster

logger = logging.getLogger(__name__)


# ------------------------- Inspection -------------------------

@dataclass(frozen=True)
class DocumentInfo:
    page_count: int
    is_encrypted: bool
    size_bytes: int


def is_pdf(data: bytes, name: str | None = None) -> bool:
    if b"%PDF-" in data[:1024]:
        return True
    return bool(name) and name.lower().endswith(".pdf")


def _info_from_mupdf(data: bytes) -> DocumentInfo:
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return DocumentInfo(doc.page_count, bool(doc.needs_pass), len(data))
    except (RuntimeError, ValueError) as e:
        raise DecodeFailure(f"Cannot read PDF: {e}") from e


def document_info(data: bytes) -> DocumentInfo:
    """Page count and encryption; pypdf first, PyMuPDF when pypdf chokes."""
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            return DocumentInfo(0, True, len(data))
        return DocumentInfo(len(reader.pages), False, len(data))
    except (PyPdfError, ValueError, KeyError, OSError) as e:
        logger.debug("pypdf could not read document (%s); trying PyMuPDF", e)
        return _info_from_mupdf(data)


# ------------------------- Rendering -------------------------

def _pixmap_to_pil(pix: fitz.Pixmap) -> Image.Image:
    # Composite alpha to white ourselves to avoid blacked-out transparency
    if pix.alpha:
        img_rgba = Image.frombytes("RGBA", (pix.width, pix.height), pix.samples)
        bg = Image.new("RGB", (pix.width, pix.height), (255, 255, 255))
        bg.paste(img_rgba, mask=img_rgba.split()[-1])
        return bg
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


class MuPdfDocument(DocumentHandle):
    def __init__(self, data: bytes):
        try:
            self._doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise DecodeFailure(f"Cannot open PDF: {e}") from e
        if self._doc.needs_pass:
            self._doc.close()
            raise DecodeFailure("PDF is password protected. Please decrypt it first.")
        self.source_bytes = data
        self._size = len(data)

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    @property
    def size_bytes(self) -> int:
        return self._size

    def _page(self, page_number: int) -> fitz.Page:
        if not 1 <= page_number <= self._doc.page_count:
            raise InvalidPreset(f"Page {page_number} is out of range 1..{self._doc.page_count}")
        return self._doc.load_page(page_number - 1)

    def page_size(self, page_number: int) -> tuple[float, float]:
        rect = self._page(page_number).rect
        return rect.width, rect.height

    def render(self, page_number: int, scale: float) -> PilRaster:
        page = self._page(page_number)
        try:
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), colorspace=fitz.csRGB, alpha=True)
        except (RuntimeError, ValueError) as e:
            raise DecodeFailure(f"Cannot render page {page_number}: {e}") from e
        logger.debug("Rendered page %d at scale %.2f -> %dx%d", page_number, scale, pix.width, pix.height)
        return PilRaster(_pixmap_to_pil(pix))

    def close(self) -> None:
        self._doc.close()


def open_document(data: bytes) -> MuPdfDocument:
    info = document_info(data)
    if info.is_encrypted:
        raise DecodeFailure("PDF is password protected. Please decrypt it first.")
    return MuPdfDocument(data)


# ------------------------- Rebuilding -------------------------

class EmbeddedImage:
    def __init__(self, data: bytes, fmt: str):
        self.data = data
        self.fmt = fmt
        self.xref = 0


class MuPdfPage(PageCanvas):
    def __init__(self, page: fitz.Page):
        self._page = page

    def draw(self, image: EmbeddedImage, x: float, y: float, width: float, height: float) -> None:
        # PyMuPDF measures from the top; callers place from the bottom.
        page_h = self._page.rect.height
        rect = fitz.Rect(x, page_h - y - height, x + width, page_h - y)
        try:
            if image.xref:
                self._page.insert_image(rect, xref=image.xref)
            else:
                image.xref = self._page.insert_image(rect, stream=image.data)
        except (RuntimeError, ValueError) as e:
            raise EncodeFailure(f"Cannot place image on page: {e}") from e


class MuPdfBuilder(DocumentBuilder):
    def __init__(self):
        self._doc = fitz.open()

    def add_page(self, width: float, height: float) -> MuPdfPage:
        return MuPdfPage(self._doc.new_page(width=width, height=height))

    def embed_image(self, data: bytes, fmt: str) -> EmbeddedImage:
        if fmt not in (config.JPEG, config.PNG):
            raise EncodeFailure(f"Cannot embed {fmt} in a PDF")
        return EmbeddedImage(data, fmt)

    def serialize(self) -> bytes:
        buf = io.BytesIO()
        try:
            self._doc.save(buf, garbage=3, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise EncodeFailure(f"Cannot write PDF: {e}") from e
        finally:
            self._doc.close()
        return buf.getvalue()


class MuPdfFactory(DocumentFactory):
    def create_document(self) -> MuPdfBuilder:
        return MuPdfBuilder()

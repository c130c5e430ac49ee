"""Deterministic stand-ins for the encoder, rasters and documents."""

import fitz
import pytest
from PIL import Image

from target_compressor import config
from target_compressor.errors import DecodeFailure, EncodeFailure
from target_compressor.interfaces import (
    DocumentBuilder, DocumentFactory, DocumentHandle, Encoder, PageCanvas, RasterSource
)

HEADER_BYTES = 500


def fake_size(width: int, height: int, quality: float, fmt: str = config.JPEG, complexity: float = 1.0) -> int:
    """Encoded size as a pure function of pixel count and quality."""
    if fmt == config.PNG:
        bpp = 0.9
    else:
        bpp = 0.05 + 0.6 * quality ** 2
    return HEADER_BYTES + int(width * height * complexity * bpp)


class FakeRaster(RasterSource):
    def __init__(self, width, height, source_bytes=None, source_format=None,
                 complexity=1.0, letterboxed=False):
        self._w = width
        self._h = height
        self.source_bytes = source_bytes
        self.source_format = source_format
        self.complexity = complexity
        self.is_letterboxed = letterboxed

    @property
    def width(self):
        return self._w

    @property
    def height(self):
        return self._h

    def scaled(self, width, height):
        return FakeRaster(width, height, complexity=self.complexity)

    def letterboxed(self, width, height):
        return FakeRaster(width, height, complexity=self.complexity, letterboxed=True)


class FakeEncoder(Encoder):
    def __init__(self, fail_on_call=None):
        self.calls = []
        self.fail_on_call = fail_on_call

    def encode(self, raster, fmt, quality):
        self.calls.append((raster.width, raster.height, fmt, quality, getattr(raster, "is_letterboxed", False)))
        if self.fail_on_call is not None and len(self.calls) >= self.fail_on_call:
            raise EncodeFailure("codec exploded")
        size = fake_size(raster.width, raster.height, quality, fmt, getattr(raster, "complexity", 1.0))
        return b"\xff" * size


class FakeDocument(DocumentHandle):
    def __init__(self, page_count=5, page_size=(595, 842), size_bytes=2_000_000,
                 source_bytes=None, fail_pages=()):
        self._count = page_count
        self._page_size = page_size
        self._size = size_bytes
        self.source_bytes = source_bytes
        self.fail_pages = set(fail_pages)
        self.renders = []
        self.closed = False

    @property
    def page_count(self):
        return self._count

    @property
    def size_bytes(self):
        return len(self.source_bytes) if self.source_bytes is not None else self._size

    def page_size(self, page_number):
        return self._page_size

    def render(self, page_number, scale):
        self.renders.append((page_number, scale))
        if page_number in self.fail_pages:
            raise DecodeFailure(f"page {page_number} is corrupt")
        w, h = self._page_size
        return FakeRaster(int(w * scale), int(h * scale))

    def close(self):
        self.closed = True


class FakePage(PageCanvas):
    def __init__(self, width, height):
        self.width = width
        self.height = height
        self.draws = []

    def draw(self, image, x, y, width, height):
        self.draws.append((image, x, y, width, height))


class FakeBuilder(DocumentBuilder):
    OVERHEAD = 300

    def __init__(self):
        self.pages = []
        self.images = []

    def add_page(self, width, height):
        page = FakePage(width, height)
        self.pages.append(page)
        return page

    def embed_image(self, data, fmt):
        self.images.append((data, fmt))
        return len(self.images) - 1

    def serialize(self):
        drawn = sum(len(self.images[d[0]][0]) for p in self.pages for d in p.draws)
        return b"%PDF" + b"\x00" * (self.OVERHEAD + drawn - 4)


class FakeFactory(DocumentFactory):
    def __init__(self):
        self.builders = []

    def create_document(self):
        builder = FakeBuilder()
        self.builders.append(builder)
        return builder


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def factory():
    return FakeFactory()


# ------------------------- Real sample files -------------------------

def textured(width=320, height=240):
    """RGB image with noise in two channels so encoders have something to chew on."""
    gradient = Image.linear_gradient("L").resize((width, height))
    noise = Image.effect_noise((width, height), 64)
    return Image.merge("RGB", (noise, gradient, noise.transpose(Image.Transpose.FLIP_LEFT_RIGHT)))


def make_pdf(pages=3, width=595, height=842, **save_kwargs) -> bytes:
    doc = fitz.open()
    for n in range(pages):
        page = doc.new_page(width=width, height=height)
        page.draw_rect(fitz.Rect(50, 50, width - 50, height / 2), color=(0, 0, 1), fill=(0.2, 0.6, 0.9))
        page.insert_text((72, height - 100), f"Page {n + 1}", fontsize=36)
    data = doc.tobytes(**save_kwargs)
    doc.close()
    return data

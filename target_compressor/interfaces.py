"""
Capability interfaces the core depends on.

The searches only ever talk to these classes, so the Pillow / PyMuPDF backends
in raster.py and mupdf.py can be swapped for deterministic fakes in tests.
"""

from abc import ABC, abstractmethod


class RasterSource(ABC):
    """A decoded image that can be redrawn at another size."""

    # Encoded bytes and format the raster was decoded from, if any.
    source_bytes: bytes | None = None
    source_format: str | None = None

    @property
    @abstractmethod
    def width(self) -> int: ...

    @property
    @abstractmethod
    def height(self) -> int: ...

    @abstractmethod
    def scaled(self, width: int, height: int) -> "RasterSource":
        """Redraw filling exactly width x height (no bars)."""

    @abstractmethod
    def letterboxed(self, width: int, height: int) -> "RasterSource":
        """Redraw centered inside width x height on a white background."""

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def size_bytes(self) -> int:
        return len(self.source_bytes) if self.source_bytes is not None else 0


class Encoder(ABC):
    @abstractmethod
    def encode(self, raster: RasterSource, fmt: str, quality: float) -> bytes:
        """Encode raster; quality is normalized to [0, 1]."""


class Decoder(ABC):
    @abstractmethod
    def decode(self, data: bytes) -> RasterSource: ...


class DocumentHandle(ABC):
    """Read-only paginated source. Pages are 1-indexed; the caller closes it."""

    source_bytes: bytes | None = None

    @property
    @abstractmethod
    def page_count(self) -> int: ...

    @property
    @abstractmethod
    def size_bytes(self) -> int: ...

    @abstractmethod
    def page_size(self, page_number: int) -> tuple[float, float]:
        """Page box in points."""

    @abstractmethod
    def render(self, page_number: int, scale: float) -> RasterSource:
        """Rasterize a page; scale 1.0 is 72 dpi."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class PageCanvas(ABC):
    @abstractmethod
    def draw(self, image, x: float, y: float, width: float, height: float) -> None:
        """Place an embedded image; PDF user space, origin at the bottom left."""


class DocumentBuilder(ABC):
    @abstractmethod
    def add_page(self, width: float, height: float) -> PageCanvas: ...

    @abstractmethod
    def embed_image(self, data: bytes, fmt: str): ...

    @abstractmethod
    def serialize(self) -> bytes: ...


class DocumentFactory(ABC):
    @abstractmethod
    def create_document(self) -> DocumentBuilder: ...

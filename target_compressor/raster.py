"""Pillow-backed raster decode, redraw and encode."""

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from . import config
from .errors import DecodeFailure, EncodeFailure
from .interfaces import Decoder, Encoder, RasterSource

logger = logging.getLogger(__name__)

# Pillow's format names for the output formats we encode.
_PIL_FORMATS = {
    config.JPEG: "JPEG",
    config.PNG: "PNG",
    config.WEBP: "WEBP",
}


def flatten_to_rgb(img: Image.Image) -> Image.Image:
    """Composite any alpha onto white so JPEG encodes don't show dark artifacts."""
    if img.mode == "P":
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")
    if img.mode in ("RGBA", "LA"):
        rgba = img.convert("RGBA")
        bg = Image.new("RGB", rgba.size, (255, 255, 255))
        bg.paste(rgba, mask=rgba.split()[-1])
        return bg
    if img.mode in ("RGB", "L"):
        return img
    return img.convert("RGB")


def native_quality(quality: float) -> int:
    return max(1, min(100, int(round(quality * 100))))


class PilRaster(RasterSource):
    def __init__(self, image: Image.Image, source_bytes: bytes | None = None,
                 source_format: str | None = None):
        self._image = image
        self.source_bytes = source_bytes
        self.source_format = source_format

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def scaled(self, width: int, height: int) -> "PilRaster":
        width, height = max(1, int(width)), max(1, int(height))
        if (width, height) == self._image.size:
            return PilRaster(self._image)
        return PilRaster(self._image.resize((width, height), Image.Resampling.LANCZOS))

    def letterboxed(self, width: int, height: int) -> "PilRaster":
        width, height = max(1, int(width)), max(1, int(height))
        img_ratio = self.width / self.height
        if img_ratio > width / height:
            draw_w, draw_h = width, max(1, round(width / img_ratio))
        else:
            draw_w, draw_h = max(1, round(height * img_ratio)), height
        canvas = Image.new("RGB", (width, height), (255, 255, 255))
        fitted = flatten_to_rgb(self._image).resize((draw_w, draw_h), Image.Resampling.LANCZOS)
        canvas.paste(fitted, ((width - draw_w) // 2, (height - draw_h) // 2))
        return PilRaster(canvas)


class PilDecoder(Decoder):
    def decode(self, data: bytes) -> PilRaster:
        try:
            img = Image.open(io.BytesIO(data))
            fmt = Image.MIME.get(img.format or "")
            img.load()
            # Honor camera orientation the way browsers do.
            img = ImageOps.exif_transpose(img)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise DecodeFailure(f"Cannot decode image: {e}") from e
        logger.debug("Decoded %s image %dx%d (%d bytes)", fmt, img.width, img.height, len(data))
        return PilRaster(img, source_bytes=data, source_format=fmt)


class PilEncoder(Encoder):
    """
    Encodes PilRaster surfaces.

    JPEG is written optimized and progressive, with 4:4:4 chroma when
    preserving color fidelity and 4:2:0 otherwise. PNG has no quality knob and
    ignores the requested quality.
    """

    def __init__(self, preserve_color_fidelity: bool = False):
        self.preserve_color_fidelity = preserve_color_fidelity

    def _params(self, fmt: str, quality: float) -> dict:
        if fmt == config.JPEG:
            return {
                "format": "JPEG",
                "quality": native_quality(quality),
                "optimize": True,
                "progressive": True,
                "subsampling": 0 if self.preserve_color_fidelity else "4:2:0",
            }
        if fmt == config.WEBP:
            return {"format": "WEBP", "quality": native_quality(quality), "method": 4}
        return {"format": "PNG", "optimize": True}

    def encode(self, raster: RasterSource, fmt: str, quality: float) -> bytes:
        if fmt not in _PIL_FORMATS:
            raise EncodeFailure(f"No raster encoder for {fmt}")
        if not isinstance(raster, PilRaster):
            raise EncodeFailure(f"PilEncoder cannot encode {type(raster).__name__}")
        img = raster.image
        if fmt == config.JPEG:
            img = flatten_to_rgb(img)
        elif fmt == config.WEBP and img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        elif img.mode not in ("RGB", "RGBA", "L", "LA", "P", "1"):
            img = img.convert("RGBA")
        out = io.BytesIO()
        try:
            img.save(out, **self._params(fmt, quality))
        except (OSError, ValueError) as e:
            raise EncodeFailure(f"{_PIL_FORMATS[fmt]} encode failed: {e}") from e
        return out.getvalue()

"""Compress images and PDFs to fit a target file size."""

from .errors import CompressionError, DecodeFailure, EncodeFailure, InvalidPreset
from .models import BatchResult, CompressionOutcome, EncodedResult, ItemResult, Preset
from .presets import exam_preset, size_tier
from .service import CompressionService, compress_bytes, compress_path

__version__ = "1.0.0"

__all__ = [
    "BatchResult",
    "CompressionError",
    "CompressionOutcome",
    "CompressionService",
    "DecodeFailure",
    "EncodeFailure",
    "EncodedResult",
    "InvalidPreset",
    "ItemResult",
    "Preset",
    "compress_bytes",
    "compress_path",
    "exam_preset",
    "size_tier",
]

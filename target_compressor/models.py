"""Value objects passed between the compression stages and returned to callers."""

import math
from dataclasses import dataclass, field
from pathlib import Path

from . import config
from .errors import CompressionError, InvalidPreset


@dataclass(frozen=True)
class Preset:
    """What the caller wants: a byte budget, an output format and a bounding box."""

    target_size_bytes: int
    output_format: str
    max_width: int
    max_height: int
    label: str = "Custom"
    # Output exactly max_width x max_height with the image centered on white.
    letterbox: bool = False

    def validate(self) -> "Preset":
        if not isinstance(self.target_size_bytes, int) or self.target_size_bytes <= 0:
            raise InvalidPreset(f"Target size must be a positive byte count, got {self.target_size_bytes!r}")
        if self.max_width <= 0 or self.max_height <= 0:
            raise InvalidPreset(f"Maximum dimensions must be positive, got {self.max_width}x{self.max_height}")
        if self.output_format not in config.OUTPUT_FORMATS:
            raise InvalidPreset(f"Unsupported output format: {self.output_format}")
        return self

    @property
    def is_document(self) -> bool:
        return self.output_format == config.PDF

    @property
    def raster_format(self) -> str:
        """Format the raster stage encodes to; documents embed JPEG pages."""
        return config.DOCUMENT_IMAGE_FORMAT if self.is_document else self.output_format

    @classmethod
    def for_target(cls, target_kb: float, output_format: str = config.JPEG) -> "Preset":
        """Custom preset whose bounding box follows the size tier for target_kb."""
        from .presets import size_tier

        if not math.isfinite(target_kb) or target_kb <= 0:
            raise InvalidPreset(f"Target size must be a positive number of KB, got {target_kb!r}")
        max_w, max_h = size_tier(target_kb)
        return cls(
            target_size_bytes=int(target_kb * config.KB),
            output_format=output_format,
            max_width=max_w,
            max_height=max_h,
        )


@dataclass(frozen=True)
class EncodeCandidate:
    width: int
    height: int
    quality: float


@dataclass(frozen=True)
class EncodedResult:
    data: bytes
    quality: float

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CompressionOutcome:
    output_bytes: bytes
    original_size_bytes: int
    new_size_bytes: int
    original_dimensions: tuple[int, int]
    new_dimensions: tuple[int, int]
    exceeded_target: bool
    already_within_budget: bool
    output_format: str
    quality: float | None = None
    page_number: int | None = None
    page_count: int | None = None
    attempts: int = 0
    interrupted: bool = False

    @property
    def reduction(self) -> float:
        """Fraction of the original size saved (negative if the output grew)."""
        if self.original_size_bytes <= 0:
            return 0.0
        return 1.0 - self.new_size_bytes / self.original_size_bytes


@dataclass
class ItemResult:
    """One entry of a batch: either an outcome or the error that stopped it."""

    label: str
    outcome: CompressionOutcome | None = None
    error: CompressionError | None = None
    # Where the output was written, when it was written to disk.
    path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.outcome is not None


@dataclass
class BatchResult:
    items: list[ItemResult] = field(default_factory=list)

    @property
    def outcomes(self) -> list[CompressionOutcome]:
        return [item.outcome for item in self.items if item.ok]

    @property
    def failures(self) -> list[ItemResult]:
        return [item for item in self.items if not item.ok]

    @property
    def any_exceeded(self) -> bool:
        return any(o.exceeded_target for o in self.outcomes)

    @property
    def total_size_bytes(self) -> int:
        return sum(o.new_size_bytes for o in self.outcomes)

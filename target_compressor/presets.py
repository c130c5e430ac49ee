"""
Named presets: the size-tier box used for custom targets, and exam upload
profiles (photo / signature) with their exact pixel boxes.
"""

import logging
from dataclasses import dataclass

from . import config
from .models import Preset

logger = logging.getLogger(__name__)


def size_tier(target_kb: float) -> tuple[int, int]:
    """Maximum output box for a target; smaller budgets get smaller boxes."""
    for limit_kb, max_w, max_h in config.SIZE_TIERS:
        if target_kb <= limit_kb:
            return max_w, max_h
    return config.LARGEST_TIER


@dataclass(frozen=True)
class Profile:
    max_kb: int
    width_px: int
    height_px: int
    label: str
    output_format: str = config.JPEG


# Photo 3.5 x 4.5 cm and signature boxes at ~300 dpi unless the exam says otherwise.
EXAM_PRESETS = {
    "upsc": ("UPSC", {
        "photo": Profile(300, 354, 450, "Photo: 300KB max, JPEG, 3.5×4.5cm"),
        "signature": Profile(300, 354, 177, "Signature: 300KB max, JPEG"),
    }),
    "ssc": ("SSC", {
        "photo": Profile(50, 354, 450, "Photo: 50KB max, JPEG, 3.5×4.5cm"),
        "signature": Profile(20, 354, 177, "Signature: 20KB max, JPEG"),
    }),
    "ibps": ("IBPS / Bank PO", {
        "photo": Profile(50, 200, 240, "Photo: 50KB max, JPEG"),
        "signature": Profile(20, 200, 100, "Signature: 20KB max, JPEG"),
    }),
    "neet": ("NEET", {
        "photo": Profile(200, 354, 450, "Photo: 200KB max, JPEG, 3.5×4.5cm"),
        "signature": Profile(300, 354, 177, "Signature: 300KB max, JPEG"),
    }),
    "jee": ("JEE", {
        "photo": Profile(100, 354, 450, "Photo: 100KB max, JPEG"),
        "signature": Profile(100, 354, 177, "Signature: 100KB max, JPEG"),
    }),
    "cuet": ("CUET", {
        "photo": Profile(300, 354, 450, "Photo: 300KB max, JPEG"),
        "signature": Profile(300, 354, 177, "Signature: 300KB max, JPEG"),
    }),
    "custom": ("Custom", {
        "photo": Profile(100, 354, 450, "Custom settings"),
        "signature": Profile(100, 354, 177, "Custom settings"),
    }),
}

DOCUMENT_KINDS = ("photo", "signature", "idproof", "other")


def exam_profile(exam: str, kind: str = "photo") -> Profile:
    entry = EXAM_PRESETS.get(exam)
    if entry is None:
        logger.warning("Preset not found: %s; using custom photo settings", exam)
        return EXAM_PRESETS["custom"][1]["photo"]
    # ID proofs and other uploads follow the photo rules.
    return entry[1]["signature" if kind == "signature" else "photo"]


def exam_preset(exam: str, kind: str = "photo") -> Preset:
    """Letterboxed preset that outputs the exam's exact pixel box."""
    profile = exam_profile(exam, kind)
    return Preset(
        target_size_bytes=profile.max_kb * config.KB,
        output_format=profile.output_format,
        max_width=profile.width_px,
        max_height=profile.height_px,
        label=profile.label,
        letterbox=True,
    )


def exam_options() -> list[tuple[str, str]]:
    return [(key, label) for key, (label, _) in EXAM_PRESETS.items()]

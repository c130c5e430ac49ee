"""
Command-line front-end.

usage:
    target-compressor photo.jpg scan.pdf -t 200 [-f image/jpeg] [--pages all] [-o out/]
    target-compressor photo.jpg --exam ssc --kind signature
"""

import argparse
import logging
import math
import sys

from . import config
from .errors import InvalidPreset
from .models import Preset
from .presets import DOCUMENT_KINDS, EXAM_PRESETS, exam_preset
from .service import CompressionService, format_file_size

logger = logging.getLogger(__name__)

FORMAT_ALIASES = {
    "jpg": config.JPEG,
    "jpeg": config.JPEG,
    "png": config.PNG,
    "webp": config.WEBP,
    "pdf": config.PDF,
}


def parse_format(value: str) -> str:
    fmt = FORMAT_ALIASES.get(value.lower(), value)
    if fmt not in config.OUTPUT_FORMATS:
        raise argparse.ArgumentTypeError(f"unsupported format: {value}")
    return fmt


def parse_target(value: str) -> float:
    try:
        target = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"target must be a number of KB: {value}") from None
    if not math.isfinite(target) or target <= 0:
        raise argparse.ArgumentTypeError(f"target must be a positive number of KB: {value}")
    return target


def parse_pages(value: str):
    if value.lower() == "all":
        return "all"
    try:
        return [int(p) for p in value.split(",") if p.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"pages must be 'all' or comma-separated numbers: {value}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="target-compressor",
        description="Compress images and PDFs to fit a target file size.",
    )
    parser.add_argument("inputs", nargs="+", help="Image or PDF files")
    parser.add_argument("-t", "--target", type=parse_target, default=100.0,
                        help="Target size in KB (default 100)")
    parser.add_argument("-f", "--format", type=parse_format, default=config.JPEG,
                        help="Output format: jpeg, png, webp, pdf or a MIME type (default jpeg)")
    parser.add_argument("--pages", type=parse_pages, default="all",
                        help="PDF pages to extract: 'all' or e.g. 1,3 (default all)")
    parser.add_argument("--exam", choices=sorted(EXAM_PRESETS), help="Use an exam upload preset")
    parser.add_argument("--kind", choices=DOCUMENT_KINDS, default="photo",
                        help="Exam document kind (default photo)")
    parser.add_argument("-o", "--output-dir", help="Output folder (default: next to each input)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every encode attempt")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config.configure_logging(args.verbose)

    service = CompressionService()
    failed = False
    try:
        if args.exam:
            preset = exam_preset(args.exam, args.kind)
        else:
            preset = Preset.for_target(args.target, args.format)
        results = service.compress_paths(args.inputs, preset, args.output_dir, pages=args.pages)
    except InvalidPreset as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for path, batch in results.items():
        for item in batch.items:
            if not item.ok:
                failed = True
                print(f"✗ {path.name} ({item.label}): {item.error}")
                continue
            o = item.outcome
            mark = "⚠" if o.exceeded_target else "✓"
            note = " (already within budget)" if o.already_within_budget else ""
            print(f"{mark} {item.path} {format_file_size(o.original_size_bytes)} -> "
                  f"{format_file_size(o.new_size_bytes)}, {o.new_dimensions[0]}×{o.new_dimensions[1]}{note}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())

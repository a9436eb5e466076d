"""
Batch command line interface for the bead mosaic quantizer.

Usage examples
--------------

Turn every photo in ``photos/`` into a 29x29 board in ``output/``::

    python -m bead_mosaic.cli photos --output-dir output

Use the threshold matcher with a strict level and export region plots::

    python -m bead_mosaic.cli portrait.jpg --strategy threshold --match-level high --debug-regions
"""

from __future__ import annotations

import argparse
import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from bead_mosaic.config import (
    DEFAULT_MATCH_LEVEL,
    DEFAULT_REDUCTION_MODE,
    MATCH_LEVELS,
    REDUCTION_MODES,
    MosaicOptions,
    Strategy,
)
from bead_mosaic.diagnostics import save_region_debug
from bead_mosaic.processor import BeadMosaicProcessor
from bead_mosaic.render import save_bead_sheet

logger = logging.getLogger("bead_mosaic")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}

COUNT_FIELDS = ["image", "mode", "strategy", "color", "count"]


@dataclass
class BatchConfig:
    """Runtime configuration derived from CLI arguments."""

    inputs: Sequence[Path]
    output_dir: Path
    board_size: Tuple[int, int]
    options: MosaicOptions
    bead_size: int
    save_sheet: bool
    debug_regions: bool
    counts_path: Optional[Path]


def _setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_board_size(value: str) -> Tuple[int, int]:
    """``"29x29"`` or ``"29"`` -> (width, height)."""
    parts = value.lower().split("x")
    try:
        width = int(parts[0])
        height = int(parts[1]) if len(parts) > 1 else width
    except (ValueError, IndexError):
        raise argparse.ArgumentTypeError(f"Invalid board size: {value!r}")
    if len(parts) > 2 or width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"Invalid board size: {value!r}")
    return width, height


def _gather_images(sources: Sequence[Path], recursive: bool) -> List[Path]:
    """Collect candidate image files from the provided locations."""
    seen = set()
    images: List[Path] = []

    for source in sources:
        if source.is_dir():
            iterator: Iterable[Path]
            iterator = source.rglob("*") if recursive else source.iterdir()
            for candidate in iterator:
                if not candidate.is_file():
                    continue
                if candidate.suffix.lower() not in IMAGE_EXTENSIONS:
                    continue
                resolved = candidate.resolve()
                if resolved not in seen:
                    seen.add(resolved)
                    images.append(resolved)
        elif source.is_file():
            if source.suffix.lower() not in IMAGE_EXTENSIONS:
                logger.warning("Skipping unsupported file: %s", source)
                continue
            resolved = source.resolve()
            if resolved not in seen:
                seen.add(resolved)
                images.append(resolved)
        else:
            logger.warning("Input path not found: %s", source)

    images.sort()
    return images


def load_board(image_path: Path, board_size: Tuple[int, int]) -> np.ndarray:
    """Decode an image and resample it to the board without smoothing."""
    with Image.open(image_path) as img:
        board = img.convert("RGBA").resize(board_size, Image.NEAREST)
    return np.array(board, dtype=np.uint8)


def _process_single_image(
    image_path: Path,
    cfg: BatchConfig,
    processor: BeadMosaicProcessor,
) -> Optional[List[dict]]:
    """Quantize one image and persist artefacts; returns its count rows."""
    width, height = cfg.board_size
    try:
        board = load_board(image_path, cfg.board_size)
        result = processor.run(board, width, height)

        beads_path = cfg.output_dir / f"{image_path.stem}_beads.png"
        Image.fromarray(result.pixels).save(beads_path)

        if cfg.save_sheet:
            save_bead_sheet(result.pixels, cfg.output_dir / f"{image_path.stem}_sheet.png",
                            bead_size=cfg.bead_size)

        if cfg.debug_regions and processor.last_analysis is not None:
            save_region_debug(
                processor.last_prepared,
                processor.last_analysis,
                cfg.output_dir / f"{image_path.stem}_regions.png",
                title=image_path.name,
            )
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Failed to process %s: %s", image_path.name, exc)
        return None

    logger.info(
        "%s: %d bead colours, %d beads [%s/%s]",
        image_path.name, len(result.color_counts), sum(result.color_counts.values()),
        result.mode, result.strategy,
    )

    return [
        {
            "image": image_path.name,
            "mode": result.mode,
            "strategy": result.strategy,
            "color": name,
            "count": count,
        }
        for name, count in result.color_counts.items()
    ]


def _write_counts_csv(rows: List[dict], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=COUNT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
    logger.info("Colour counts written to %s", path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bead-mosaic",
        description="Convert images into bead mosaic boards.",
    )
    parser.add_argument(
        "inputs",
        nargs="+",
        type=Path,
        help="Image files or directories to process.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Directory for boards and bead sheets (default: ./output).",
    )
    parser.add_argument(
        "--board-size",
        type=_parse_board_size,
        default=(29, 29),
        help="Board size in beads, WIDTHxHEIGHT (default: 29x29).",
    )
    parser.add_argument(
        "--mode",
        choices=sorted(REDUCTION_MODES),
        default=DEFAULT_REDUCTION_MODE,
        help="Colour reduction mode (default: %(default)s).",
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in Strategy],
        default=Strategy.CLUSTERED.value,
        help="Palette strategy: region-weighted clustering or threshold matching.",
    )
    parser.add_argument(
        "--match-level",
        choices=list(MATCH_LEVELS),
        default=DEFAULT_MATCH_LEVEL,
        help="Strictness of the threshold strategy (default: %(default)s).",
    )
    parser.add_argument(
        "--no-preprocess",
        action="store_true",
        help="Skip contrast stretching and posterisation.",
    )
    parser.add_argument(
        "--denoise",
        action="store_true",
        help="Apply a 3x3 median filter before preprocessing.",
    )
    parser.add_argument(
        "--bead-size",
        type=int,
        default=20,
        help="Bead diameter in pixels on the bead sheet (default: 20).",
    )
    parser.add_argument(
        "--skip-sheet",
        action="store_true",
        help="Do not export bead sheet images.",
    )
    parser.add_argument(
        "--debug-regions",
        action="store_true",
        help="Export region analysis plots (clustered strategy only).",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        help="When inputs include directories, walk them recursively.",
    )
    counts = parser.add_mutually_exclusive_group()
    counts.add_argument(
        "--counts-path",
        type=Path,
        help="Write bead counts CSV here (defaults to <output>/color_counts.csv).",
    )
    counts.add_argument(
        "--no-counts",
        action="store_true",
        help="Do not emit the bead counts CSV.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.debug)

    images = _gather_images(args.inputs, recursive=args.recursive)
    if not images:
        logger.error("No matching images found.")
        return 1

    output_dir = args.output_dir.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    counts_path: Optional[Path]
    if args.no_counts:
        counts_path = None
    else:
        counts_path = args.counts_path.resolve() if args.counts_path else output_dir / "color_counts.csv"

    cfg = BatchConfig(
        inputs=images,
        output_dir=output_dir,
        board_size=args.board_size,
        options=MosaicOptions(
            color_reduction=args.mode,
            strategy=args.strategy,
            match_level=args.match_level,
            preprocess=not args.no_preprocess,
            denoise=args.denoise,
        ),
        bead_size=args.bead_size,
        save_sheet=not args.skip_sheet,
        debug_regions=args.debug_regions,
        counts_path=counts_path,
    )

    logger.info("Found %d image(s) to process -> %s", len(images), output_dir)
    logger.debug("Options: %s", cfg.options.to_dict())

    processor = BeadMosaicProcessor(cfg.options)
    rows: List[dict] = []
    failures = 0

    for image_path in images:
        records = _process_single_image(image_path, cfg, processor)
        if records is None:
            failures += 1
            continue
        rows.extend(records)

    if rows and cfg.counts_path:
        _write_counts_csv(rows, cfg.counts_path)

    if failures:
        logger.warning("%d of %d image(s) failed", failures, len(images))
    return 1 if failures == len(images) else 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""
SimpleColoc CLI - transduction colocalization on segmented TIFF stacks.

Each image is a multi-channel TIFF (C, Y, X). Its cells come from a label
stack with the same layout, produced by a separate segmentation step.

Usage:
    simplecoloc IMAGE.tif --labels IMAGE_labels.tif
    simplecoloc IMAGE.tif                       # uses IMAGE_labels.tif
    simplecoloc FOLDER                          # every TIFF in the folder
    simplecoloc IMAGE.tif --target-ch 1 --transduced-ch 2 --all-cells-ch 3
    simplecoloc FOLDER --cell-diameter 5-40 --percentage 80 -v
    simplecoloc FOLDER --recursive --count-only  # cells per image, nested folders
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from simplecoloc import __version__
from simplecoloc.config import (
    CellDiameterRange, ConfigurationError, TransductionParameters,
    DEFAULT_CELL_DIAMETER_TEXT, INTENSITY_PERCENTAGE_THRESHOLD,
    PIXEL_THRESHOLD, SUBSET_THRESHOLD,
)
from simplecoloc.core.io import (
    find_images_in_folder, labels_path_for, load_image, load_labels,
)
from simplecoloc.core.report import ColocalizationReport, format_count_table
from simplecoloc.core.transduction import count_cells, process_image

LOG_FORMAT = "%(asctime)s [%(levelname)-5s] %(message)s"
DATE_FORMAT = "%H:%M:%S"

log = logging.getLogger(__name__)


def setup_logging(verbose=False):
    """Configure logging to the console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="simplecoloc",
        description=(
            "Count target-channel cells containing a transduced cell, "
            "optionally confirmed against an all-cells channel."
        ),
    )
    parser.add_argument("input", help="TIFF file or folder of TIFF files")
    parser.add_argument(
        "--labels", default=None,
        help="Label stack for a single input image (default: <stem>_labels.tif)",
    )
    parser.add_argument(
        "--target-ch", type=int, default=1,
        help="Target (morphology) channel, 1-based (default: 1)",
    )
    parser.add_argument(
        "--transduced-ch", type=int, default=2,
        help="Transduced channel, 1-based (default: 2)",
    )
    parser.add_argument(
        "--all-cells-ch", type=int, default=0,
        help="All-cells channel, 1-based; 0 disables it (default: 0)",
    )
    parser.add_argument(
        "--cell-diameter", default=DEFAULT_CELL_DIAMETER_TEXT,
        help=f"Cell diameter range MIN-MAX in pixels (default: {DEFAULT_CELL_DIAMETER_TEXT})",
    )
    parser.add_argument(
        "--all-cells-diameter", default=DEFAULT_CELL_DIAMETER_TEXT,
        help=f"All-cells diameter range MIN-MAX in pixels (default: {DEFAULT_CELL_DIAMETER_TEXT})",
    )
    parser.add_argument(
        "--percentage", type=float, default=INTENSITY_PERCENTAGE_THRESHOLD,
        help=f"Transduced-cell intensity percentage (default: {INTENSITY_PERCENTAGE_THRESHOLD:g})",
    )
    parser.add_argument(
        "--subset-threshold", type=float, default=SUBSET_THRESHOLD,
        help=f"Fraction of a transduced cell inside a target cell (default: {SUBSET_THRESHOLD})",
    )
    parser.add_argument(
        "--pixel-threshold", type=float, default=PIXEL_THRESHOLD,
        help=f"Overlap fraction for the all-cells channel (default: {PIXEL_THRESHOLD})",
    )
    parser.add_argument(
        "--count-only", action="store_true",
        help="Only count target-channel cells per image (no colocalization)",
    )
    parser.add_argument(
        "--recursive", "-r", action="store_true",
        help="Also process images in nested folders",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parameters_from_args(args) -> TransductionParameters:
    params = TransductionParameters(
        target_channel=args.target_ch,
        transduced_channel=args.transduced_ch,
        all_cells_channel=args.all_cells_ch,
        cell_diameter=CellDiameterRange.parse_from_text(args.cell_diameter),
        all_cells_diameter=CellDiameterRange.parse_from_text(args.all_cells_diameter),
        intensity_percentage=args.percentage,
        subset_threshold=args.subset_threshold,
        pixel_threshold=args.pixel_threshold,
    )
    return params.validate()


def run_one(image_path, labels_path, params):
    """Load one image and its labels and run the analysis."""
    data, metadata = load_image(image_path)
    labels = load_labels(labels_path)
    log.info("%s: shape=%s, labels=%s", metadata['file_name'], data.shape, Path(labels_path).name)
    return process_image(data, labels, params)


def count_one(labels_path, params):
    """Count target-channel cells from a label stack alone."""
    return count_cells(load_labels(labels_path), params)


def main(argv=None):
    """Main entry point for the simplecoloc command."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        params = parameters_from_args(args)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    input_path = Path(args.input)
    if input_path.is_dir():
        if args.labels:
            print("ERROR: --labels only applies to a single image", file=sys.stderr)
            return 2
        images = find_images_in_folder(input_path, recursive=args.recursive)
        jobs = [(p.relative_to(input_path).as_posix(), p, labels_path_for(p)) for p in images]
        if not jobs:
            print(f"No TIFF images found in {input_path}")
            return 1
    else:
        labels = Path(args.labels) if args.labels else labels_path_for(input_path)
        jobs = [(input_path.name, input_path, labels)]

    report = ColocalizationReport(params)
    counts = []
    n_failed = 0
    t0 = time.time()

    for i, (name, image_path, labels_path) in enumerate(jobs, 1):
        print(f"[{i}/{len(jobs)}] {name}")
        try:
            if args.count_only:
                counts.append((name, count_one(labels_path, params)))
            else:
                report.add_result(name, run_one(image_path, labels_path, params))
        except (OSError, ValueError) as e:
            if len(jobs) == 1:
                if isinstance(e, ConfigurationError):
                    print(f"ERROR: {e}", file=sys.stderr)
                    return 2
                raise
            # No partial result for this image; carry on with the next one
            log.error("FAILED %s: %s", name, e)
            n_failed += 1

    print()
    if args.count_only:
        print(format_count_table(counts))
        n_done = len(counts)
    else:
        print(report.format_summary_table())
        n_done = len(report)
    print(f"\nDone in {time.time() - t0:.1f}s: {n_done} processed, {n_failed} failed")
    return 1 if n_failed else 0


if __name__ == "__main__":
    sys.exit(main())

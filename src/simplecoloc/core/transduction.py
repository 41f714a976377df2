"""
transduction.py - Multi-channel transduction analysis

Chains two-channel matches into a three-channel result:

    1. Drop dim cells from the transduced channel (intensity filter).
    2. Target cells (base) vs transduced cells (overlay), majority containment.
    3. Intensity statistics of the matched transduced cells.
    4. Optionally, matched transduced cells (base) vs all cells (overlay),
       loose overlap.

Usage:
    from simplecoloc.core.transduction import analyse_transduction

    result = analyse_transduction(target_cells, transduced_cells, green,
                                  params, all_cells=blue_cells)
    result.transduction_efficiency
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Dict, Any

import numpy as np

from simplecoloc.config import TransductionParameters, check_channel
from simplecoloc.core.colocalizer import BucketedColocalizer
from simplecoloc.core.comparators import PixelCellComparator, SubsetPixelCellComparator
from simplecoloc.core.intensity import (
    CellAnalysis, analyse_cell_intensity, filter_cells_by_intensity,
)
from simplecoloc.core.io import regions_from_labels
from simplecoloc.core.region import Region

logger = logging.getLogger(__name__)


@dataclass
class TransductionResult:
    """
    Outcome of one image's transduction analysis.

    Attributes:
        target_cell_count: Number of cells found in the target channel.
        overlapping_transduced_intensity_analysis: Statistics, in the
            transduced channel, of each transduced cell overlapping a target
            cell (aligned with overlapping_two_channel_cells).
        overlapping_two_channel_cells: Target cells containing a transduced
            cell.
        overlapping_three_channel_cells: Transduced cells from the two-channel
            match that also overlap an all-cells cell; None when the third
            channel is disabled.
    """

    target_cell_count: int
    overlapping_transduced_intensity_analysis: List[CellAnalysis]
    overlapping_two_channel_cells: List[Region]
    overlapping_three_channel_cells: Optional[List[Region]] = None

    @property
    def transduced_cell_count(self) -> int:
        return len(self.overlapping_two_channel_cells)

    @property
    def transduction_efficiency(self) -> float:
        """Percentage of target cells that are transduced."""
        if self.target_cell_count == 0:
            return 0.0
        return 100.0 * self.transduced_cell_count / self.target_cell_count


def analyse_transduction(
    target_cells: Sequence[Region],
    transduced_cells: Sequence[Region],
    transduced_image: np.ndarray,
    parameters: Optional[TransductionParameters] = None,
    all_cells: Optional[Sequence[Region]] = None,
) -> TransductionResult:
    """
    Run the chained colocalization for one image.

    Args:
        target_cells: Cells of the target (morphology) channel
        transduced_cells: Cells of the transduced (signal) channel
        transduced_image: Raw transduced channel, used for filtering and
            intensity statistics
        parameters: Thresholds and cell diameter; defaults if None
        all_cells: Cells of the optional all-cells channel

    Returns:
        TransductionResult
    """
    if parameters is None:
        parameters = TransductionParameters()
    parameters.validate()

    transduced_image = np.asarray(transduced_image)
    height, width = transduced_image.shape[:2]
    bucket_size = parameters.cell_diameter.bucket_size()

    bright_cells = filter_cells_by_intensity(
        transduced_cells, transduced_image, parameters.intensity_percentage,
    )
    logger.info(
        "Target cells: %d, transduced cells: %d (%d after intensity filter)",
        len(target_cells), len(transduced_cells), len(bright_cells),
    )

    # Target layer is the base, transduced layer is overlaid
    target_transduced = BucketedColocalizer(
        bucket_size, width, height,
        SubsetPixelCellComparator(parameters.subset_threshold),
    ).analyse_colocalization(target_cells, bright_cells)

    intensity_analysis = analyse_cell_intensity(
        transduced_image, target_transduced.overlapping_overlaid,
    )

    three_channel = None
    if all_cells is not None:
        all_cells_analysis = BucketedColocalizer(
            bucket_size, width, height,
            PixelCellComparator(parameters.pixel_threshold),
        ).analyse_colocalization(target_transduced.overlapping_overlaid, all_cells)
        three_channel = all_cells_analysis.overlapping_base
        logger.info("Three-channel overlaps: %d", len(three_channel))

    result = TransductionResult(
        target_cell_count=len(target_cells),
        overlapping_transduced_intensity_analysis=intensity_analysis,
        overlapping_two_channel_cells=target_transduced.overlapping_base,
        overlapping_three_channel_cells=three_channel,
    )
    logger.info(
        "Transduced: %d/%d (%.1f%%)",
        result.transduced_cell_count, result.target_cell_count,
        result.transduction_efficiency,
    )
    return result


def process_image(
    image: np.ndarray,
    labels: np.ndarray,
    parameters: Optional[TransductionParameters] = None,
) -> TransductionResult:
    """
    Analyse one multi-channel image using its per-channel label images.

    Args:
        image: Raw stack (C, Y, X)
        labels: Label stack (C, Y, X) from segmentation, same layout as image
        parameters: Channel selection and thresholds (1-based channels)

    Raises:
        ChannelDoesNotExistError: If a selected channel is not in the image
        ValueError: If image and labels do not have the same shape
    """
    if parameters is None:
        parameters = TransductionParameters()

    image = np.asarray(image)
    labels = np.asarray(labels)
    if image.ndim != 3:
        raise ValueError(f"Expected a (C, Y, X) image, got shape {image.shape}")
    if labels.shape != image.shape:
        raise ValueError(
            f"Label stack shape {labels.shape} does not match image shape {image.shape}"
        )
    parameters.validate(n_channels=image.shape[0])

    # Smallest diameter acts as a minimum area (circle) for extracted cells
    min_area = parameters.cell_diameter.min_area()
    target_cells = regions_from_labels(labels[parameters.target_channel - 1], min_area=min_area)
    transduced_cells = regions_from_labels(
        labels[parameters.transduced_channel - 1], min_area=min_area,
    )
    all_cells = None
    if parameters.all_cells_enabled:
        all_cells = regions_from_labels(
            labels[parameters.all_cells_channel - 1],
            min_area=parameters.all_cells_diameter.min_area(),
        )

    return analyse_transduction(
        target_cells,
        transduced_cells,
        image[parameters.transduced_channel - 1],
        parameters,
        all_cells=all_cells,
    )


def count_cells(
    labels: np.ndarray,
    parameters: Optional[TransductionParameters] = None,
) -> int:
    """
    Number of target-channel cells in a label stack, after the size filter.

    Args:
        labels: Label stack (C, Y, X), or a single (Y, X) label image
        parameters: Target channel and cell diameter range

    Raises:
        ChannelDoesNotExistError: If the target channel is not in the stack
    """
    if parameters is None:
        parameters = TransductionParameters()

    labels = np.asarray(labels)
    if labels.ndim == 2:
        labels = labels[np.newaxis]
    if labels.ndim != 3:
        raise ValueError(f"Expected a (C, Y, X) label stack, got shape {labels.shape}")
    check_channel(parameters.target_channel, "target_channel", labels.shape[0])

    cells = regions_from_labels(
        labels[parameters.target_channel - 1],
        min_area=parameters.cell_diameter.min_area(),
    )
    logger.info("Counted %d cells in channel %d", len(cells), parameters.target_channel)
    return len(cells)


def summary_statistics(result: TransductionResult) -> Dict[str, Any]:
    """
    Key numbers for one image.

    Returns:
        Dict with target/transduced counts, efficiency (%), three-channel
        count (None if disabled) and average intensity figures of the
        transduced cells overlapping target cells (0 when there are none).
    """
    records = result.overlapping_transduced_intensity_analysis
    n = len(records)

    def _avg(attr):
        return float(np.mean([getattr(r, attr) for r in records])) if n > 0 else 0.0

    three = result.overlapping_three_channel_cells
    return {
        'target_cells': result.target_cell_count,
        'transduced_cells': result.transduced_cell_count,
        'transduction_efficiency': result.transduction_efficiency,
        'three_channel_cells': len(three) if three is not None else None,
        'average_area': _avg('area'),
        'mean_intensity': _avg('mean'),
        'median_intensity': _avg('median'),
        'min_intensity': _avg('min'),
        'max_intensity': _avg('max'),
        'raw_int_den': _avg('raw_int_den'),
    }

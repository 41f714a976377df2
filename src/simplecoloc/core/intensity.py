"""
intensity.py - Per-cell intensity statistics and intensity filtering

Measures a raw channel image under each cell's mask and filters out dim
cells before matching.

Usage:
    from simplecoloc.core.intensity import analyse_cell_intensity, filter_cells_by_intensity

    bright = filter_cells_by_intensity(cells, green_channel, percentage=90)
    records = analyse_cell_intensity(green_channel, bright)
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Sequence

import numpy as np

from simplecoloc.config import INTENSITY_PERCENTAGE_THRESHOLD, validate_percentage
from simplecoloc.core.region import Region

logger = logging.getLogger(__name__)

# Lazy imports
_pd = None


def _get_pandas():
    """Lazy import pandas."""
    global _pd
    if _pd is None:
        import pandas as pd
        _pd = pd
    return _pd


@dataclass(frozen=True)
class CellAnalysis:
    """
    Intensity statistics of one cell in one channel.

    Intensities are in the units of the source image. `raw_int_den` is the
    sum of the raw pixel values under the mask.
    """

    area: int
    mean: float
    median: float
    min: float
    max: float
    raw_int_den: float

    @classmethod
    def empty(cls) -> 'CellAnalysis':
        return cls(0, 0.0, 0.0, 0.0, 0.0, 0.0)

    def to_dict(self):
        return asdict(self)


def measure_cell(image: np.ndarray, cell: Region) -> CellAnalysis:
    """Statistics of `image` under one cell's mask."""
    values = cell.pixel_values(image)
    if values.size == 0:
        # No data: reported as zeros rather than NaN
        return CellAnalysis.empty()

    values = values.astype(np.float64)
    return CellAnalysis(
        area=int(values.size),
        mean=float(values.mean()),
        median=float(np.median(values)),
        min=float(values.min()),
        max=float(values.max()),
        raw_int_den=float(values.sum()),
    )


def analyse_cell_intensity(
    image: np.ndarray,
    cells: Sequence[Region],
) -> List[CellAnalysis]:
    """
    Measure each cell in `image`.

    Args:
        image: Raw intensity image (Y, X)
        cells: Cells to measure

    Returns:
        One CellAnalysis per cell, in input order.
    """
    image = np.asarray(image)
    records = [measure_cell(image, cell) for cell in cells]
    n_empty = sum(1 for r in records if r.area == 0)
    if n_empty:
        logger.warning("%d of %d cells had no pixels inside the image", n_empty, len(records))
    return records


def count_above_threshold(records: Sequence[CellAnalysis], threshold: float) -> int:
    """Number of records whose mean intensity is strictly above `threshold`."""
    return sum(1 for record in records if record.mean > threshold)


def intensity_cutoff(intensities: Sequence[float], percentage: float) -> float:
    """max - (max - min) * percentage / 100 over the given mean intensities."""
    highest = max(intensities)
    lowest = min(intensities)
    return highest - (highest - lowest) * (percentage / 100.0)


def filter_cells_by_intensity(
    cells: Sequence[Region],
    image: np.ndarray,
    percentage: float = INTENSITY_PERCENTAGE_THRESHOLD,
) -> List[Region]:
    """
    Keep cells whose mean intensity in `image` is above a min-max cutoff.

    The cutoff is `max - (max - min) * percentage / 100`, where max and min
    are taken over the mean intensities of `cells`. A cell sitting exactly on
    the cutoff is dropped. This is a normalised cutoff, not a rank percentile.

    Args:
        cells: Candidate cells
        image: Raw channel image the cells were segmented from
        percentage: 0-100; higher keeps more cells

    Returns:
        The retained cells, in input order.
    """
    percentage = validate_percentage(percentage)
    if not cells:
        return []

    image = np.asarray(image)
    intensities = [cell.mean_intensity(image) for cell in cells]
    cutoff = intensity_cutoff(intensities, percentage)
    kept = [cell for cell, value in zip(cells, intensities) if value > cutoff]

    logger.debug(
        "Intensity filter (%.0f%%): cutoff %.2f, kept %d/%d cells",
        percentage, cutoff, len(kept), len(cells),
    )
    return kept


def records_to_dataframe(records: Sequence[CellAnalysis]):
    """Convert records to a DataFrame, one row per cell."""
    pd = _get_pandas()
    columns = ['area', 'mean', 'median', 'min', 'max', 'raw_int_den']
    return pd.DataFrame([r.to_dict() for r in records], columns=columns)

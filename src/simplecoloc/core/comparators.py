"""
comparators.py - Decide whether two cells colocalize

Two variants share one interface:

- PixelCellComparator: overlap measured against the BASE cell's area.
  A low threshold (0.01) means "any meaningful overlap".
- SubsetPixelCellComparator: overlap measured against the OVERLAY cell's
  area. A threshold of 0.5 means "most of the overlay cell lies inside the
  base cell".

Overlap is the number of overlay pixels, in global coordinates, that are
also pixels of the base cell.
"""

from abc import ABC, abstractmethod

import numpy as np

from simplecoloc.config import (
    ConfigurationError, PIXEL_THRESHOLD, SUBSET_THRESHOLD, validate_threshold,
)
from simplecoloc.core.region import Region


def overlap_pixel_count(base: Region, overlay: Region) -> int:
    """Number of overlay pixels that fall inside the base cell."""
    x0 = max(base.x, overlay.x)
    y0 = max(base.y, overlay.y)
    x1 = min(base.x_end, overlay.x_end)
    y1 = min(base.y_end, overlay.y_end)
    if x1 <= x0 or y1 <= y0:
        return 0

    base_crop = base.mask[y0 - base.y:y1 - base.y, x0 - base.x:x1 - base.x]
    overlay_crop = overlay.mask[y0 - overlay.y:y1 - overlay.y,
                                x0 - overlay.x:x1 - overlay.x]
    return int(np.count_nonzero(base_crop & overlay_crop))


class CellComparator(ABC):
    """Colocalization test between a base cell and an overlay cell."""

    def __init__(self, threshold: float):
        self.threshold = validate_threshold(threshold)

    @abstractmethod
    def overlap_score(self, base: Region, overlay: Region) -> float:
        """Fraction compared against the threshold, in [0, 1]."""

    def matches(self, base: Region, overlay: Region) -> bool:
        return self.overlap_score(base, overlay) >= self.threshold

    def __repr__(self):
        return f"{type(self).__name__}(threshold={self.threshold})"


class PixelCellComparator(CellComparator):
    """Loose overlap: overlap / area(base) >= threshold."""

    def __init__(self, threshold: float = PIXEL_THRESHOLD):
        super().__init__(threshold)

    def overlap_score(self, base: Region, overlay: Region) -> float:
        if base.area == 0:
            return 0.0
        return overlap_pixel_count(base, overlay) / base.area


class SubsetPixelCellComparator(CellComparator):
    """Majority containment: overlap / area(overlay) >= threshold."""

    def __init__(self, threshold: float = SUBSET_THRESHOLD):
        super().__init__(threshold)

    def overlap_score(self, base: Region, overlay: Region) -> float:
        if overlay.area == 0:
            return 0.0
        return overlap_pixel_count(base, overlay) / overlay.area


COMPARATORS = {
    'pixel': PixelCellComparator,
    'subset': SubsetPixelCellComparator,
}


def make_comparator(kind: str, threshold: float = None) -> CellComparator:
    """
    Build a comparator by name.

    Args:
        kind: 'pixel' (loose overlap) or 'subset' (majority containment)
        threshold: Overlap fraction; defaults to the variant's own default.
    """
    try:
        cls = COMPARATORS[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown comparator: {kind!r}. Choose from {sorted(COMPARATORS)}"
        ) from None
    if threshold is None:
        return cls()
    return cls(threshold)

"""
colocalizer.py - Bucketed spatial matching of cells across two channels

Comparing every base cell with every overlay cell costs |A| x |B| mask
comparisons. Instead the overlay cells are registered in a uniform grid of
buckets (bucket edge = largest expected cell diameter) and each base cell is
only compared with the overlay cells sharing one of its buckets.

Usage:
    from simplecoloc.core.colocalizer import BucketedColocalizer
    from simplecoloc.core.comparators import SubsetPixelCellComparator

    colocalizer = BucketedColocalizer(30, width, height, SubsetPixelCellComparator(0.5))
    analysis = colocalizer.analyse_colocalization(target_cells, transduced_cells)
    analysis.overlapping_base      # target cells with a match
    analysis.overlapping_overlaid  # the transduced cell matched to each of them

Three-channel colocalization is built by chaining: the `overlapping_overlaid`
list of a first analysis is used as the base of a second one.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from simplecoloc.config import ConfigurationError
from simplecoloc.core.comparators import CellComparator
from simplecoloc.core.region import Region

logger = logging.getLogger(__name__)

MATCH_POLICIES = ('first', 'best')


@dataclass
class ColocalizationAnalysis:
    """
    Index-aligned matches: overlapping_base[i] colocalizes with
    overlapping_overlaid[i]. Unmatched cells of either input are absent.
    """

    overlapping_base: List[Region] = field(default_factory=list)
    overlapping_overlaid: List[Region] = field(default_factory=list)

    def __len__(self):
        return len(self.overlapping_base)

    def pairs(self) -> List[Tuple[Region, Region]]:
        return list(zip(self.overlapping_base, self.overlapping_overlaid))


class BucketGrid:
    """
    Uniform grid over the image holding integer cell indices per bucket.

    A cell whose bounding box spans several buckets is registered in each of
    them. Bounding boxes reaching outside the image are clamped to the edge
    buckets.
    """

    def __init__(self, bucket_size: int, width: int, height: int):
        self.bucket_size = bucket_size
        self.n_cols = max(1, math.ceil(width / bucket_size))
        self.n_rows = max(1, math.ceil(height / bucket_size))
        self._buckets: List[List[int]] = [[] for _ in range(self.n_cols * self.n_rows)]

    def _clamp(self, value, upper):
        return min(max(value, 0), upper - 1)

    def bucket_range(self, region: Region) -> Tuple[int, int, int, int]:
        """(col_start, col_end, row_start, row_end), end inclusive."""
        size = self.bucket_size
        last_x = region.x + max(region.width, 1) - 1
        last_y = region.y + max(region.height, 1) - 1
        return (
            self._clamp(region.x // size, self.n_cols),
            self._clamp(last_x // size, self.n_cols),
            self._clamp(region.y // size, self.n_rows),
            self._clamp(last_y // size, self.n_rows),
        )

    def buckets_for(self, region: Region) -> List[Tuple[int, int]]:
        """(col, row) of every bucket the region's bounding box intersects."""
        c0, c1, r0, r1 = self.bucket_range(region)
        return [(c, r) for r in range(r0, r1 + 1) for c in range(c0, c1 + 1)]

    def register(self, index: int, region: Region):
        for col, row in self.buckets_for(region):
            self._buckets[row * self.n_cols + col].append(index)

    def bucket(self, col: int, row: int) -> List[int]:
        return list(self._buckets[row * self.n_cols + col])

    def candidates(self, region: Region) -> List[int]:
        """De-duplicated indices sharing a bucket with `region`, in registration order."""
        found = set()
        for col, row in self.buckets_for(region):
            found.update(self._buckets[row * self.n_cols + col])
        # Indices are registered in ascending order
        return sorted(found)


class BucketedColocalizer:
    """
    Match base cells against overlay cells using a comparator.

    Args:
        bucket_size: Bucket edge length in pixels; use the largest expected
            cell diameter.
        width, height: Image size in pixels.
        comparator: Decides whether a (base, overlay) pair colocalizes.
        policy: 'first' takes the first matching candidate in registration
            order; 'best' takes the matching candidate with the highest
            overlap score (earliest wins ties).
        exclusive: If True, an overlay cell can be matched to at most one
            base cell. By default overlay cells may be shared.
    """

    def __init__(
        self,
        bucket_size: int,
        width: int,
        height: int,
        comparator: CellComparator,
        policy: str = 'first',
        exclusive: bool = False,
    ):
        if (isinstance(bucket_size, bool)
                or not isinstance(bucket_size, numbers.Integral)
                or bucket_size <= 0):
            raise ConfigurationError(f"bucket_size must be a positive integer, got {bucket_size!r}")
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Image size must be positive, got {width}x{height}")
        if policy not in MATCH_POLICIES:
            raise ConfigurationError(
                f"Unknown match policy: {policy!r}. Choose from {MATCH_POLICIES}"
            )
        self.bucket_size = bucket_size
        self.width = width
        self.height = height
        self.comparator = comparator
        self.policy = policy
        self.exclusive = exclusive

    def build_grid(self, overlay: Sequence[Region]) -> BucketGrid:
        grid = BucketGrid(self.bucket_size, self.width, self.height)
        for index, region in enumerate(overlay):
            grid.register(index, region)
        return grid

    def analyse_colocalization(
        self,
        base: Sequence[Region],
        overlay: Sequence[Region],
    ) -> ColocalizationAnalysis:
        """
        Find, for each base cell, at most one colocalizing overlay cell.

        Returns:
            ColocalizationAnalysis with matched base cells in input order and
            their overlay partners at the same index.
        """
        grid = self.build_grid(overlay)
        claimed = set()
        analysis = ColocalizationAnalysis()
        n_compared = 0

        for base_cell in base:
            candidates = grid.candidates(base_cell)
            if self.exclusive:
                candidates = [i for i in candidates if i not in claimed]
            n_compared += len(candidates)

            match = self._select(base_cell, overlay, candidates)
            if match is None:
                continue
            if self.exclusive:
                claimed.add(match)
            analysis.overlapping_base.append(base_cell)
            analysis.overlapping_overlaid.append(overlay[match])

        logger.debug(
            "%s: %d/%d base cells matched against %d overlay cells "
            "(%d comparisons, grid %dx%d)",
            self.comparator, len(analysis), len(base), len(overlay),
            n_compared, grid.n_cols, grid.n_rows,
        )
        return analysis

    def _select(self, base_cell, overlay, candidates):
        if self.policy == 'first':
            for index in candidates:
                if self.comparator.matches(base_cell, overlay[index]):
                    return index
            return None

        best_index = None
        best_score = -1.0
        for index in candidates:
            candidate = overlay[index]
            if not self.comparator.matches(base_cell, candidate):
                continue
            score = self.comparator.overlap_score(base_cell, candidate)
            if score > best_score:
                best_index, best_score = index, score
        return best_index

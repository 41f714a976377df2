"""
region.py - Segmented cell geometry

A Region is a cell's bounding box plus a boolean membership mask local to
that box. It carries no intensity data; intensities are read from whichever
channel image is passed in.

Coordinates follow image convention: x is the column, y is the row, and the
mask has shape (height, width).
"""

import numbers
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


class GeometryInvariantViolation(AssertionError):
    """A region's mask does not match its declared bounding box."""


@dataclass(frozen=True, eq=False)
class Region:
    """
    Immutable segmented cell.

    Args:
        x, y: Global position of the bounding box's top-left corner.
        width, height: Bounding box size in pixels.
        mask: Boolean array of shape (height, width), True where the pixel
            belongs to the cell.
        label: Optional id of the cell in the source label image.
    """

    x: int
    y: int
    width: int
    height: int
    mask: np.ndarray
    label: Optional[int] = None

    def __post_init__(self):
        for name in ('x', 'y', 'width', 'height'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise GeometryInvariantViolation(
                    f"Region {name} must be an integer, got {value!r}"
                )
            object.__setattr__(self, name, int(value))

        mask = np.asarray(self.mask)
        if mask.ndim != 2 or mask.shape != (self.height, self.width):
            raise GeometryInvariantViolation(
                f"Region mask shape {mask.shape} does not match bounding box "
                f"(height={self.height}, width={self.width})"
            )
        # Private read-only copy so the region cannot change under the caller
        mask = mask.astype(bool, copy=True)
        mask.flags.writeable = False
        object.__setattr__(self, 'mask', mask)
        object.__setattr__(self, '_area', int(np.count_nonzero(mask)))

    @classmethod
    def from_mask(cls, x: int, y: int, mask, label: Optional[int] = None) -> 'Region':
        """Build a region whose size is taken from the mask shape."""
        mask = np.asarray(mask, dtype=bool)
        if mask.ndim != 2:
            raise GeometryInvariantViolation(
                f"Region mask must be 2D, got shape {mask.shape}"
            )
        height, width = mask.shape
        return cls(x, y, width, height, mask, label)

    @property
    def area(self) -> int:
        """Number of pixels in the cell."""
        return self._area

    @property
    def x_end(self) -> int:
        return self.x + self.width

    @property
    def y_end(self) -> int:
        return self.y + self.height

    def bounding_box(self) -> Tuple[int, int, int, int]:
        """(x, y, width, height)"""
        return self.x, self.y, self.width, self.height

    def contains(self, x: int, y: int) -> bool:
        """True if the global point (x, y) is one of the cell's pixels."""
        lx = x - self.x
        ly = y - self.y
        if lx < 0 or ly < 0 or lx >= self.width or ly >= self.height:
            return False
        return bool(self.mask[ly, lx])

    def points(self) -> np.ndarray:
        """Global (x, y) coordinates of the cell's pixels, shape (area, 2)."""
        rows, cols = np.nonzero(self.mask)
        return np.column_stack([cols + self.x, rows + self.y])

    def centroid(self) -> Tuple[float, float]:
        """Mean global (x, y) of the cell's pixels; bounding box centre if empty."""
        if self.area == 0:
            return self.x + self.width / 2.0, self.y + self.height / 2.0
        rows, cols = np.nonzero(self.mask)
        return float(cols.mean() + self.x), float(rows.mean() + self.y)

    def pixel_values(self, image: np.ndarray) -> np.ndarray:
        """
        Raw values of `image` under the cell's mask.

        Pixels of the cell lying outside the image are skipped.
        """
        image = np.asarray(image)
        img_h, img_w = image.shape[:2]

        x0 = max(self.x, 0)
        y0 = max(self.y, 0)
        x1 = min(self.x_end, img_w)
        y1 = min(self.y_end, img_h)
        if x1 <= x0 or y1 <= y0:
            return np.empty(0, dtype=image.dtype)

        local = self.mask[y0 - self.y:y1 - self.y, x0 - self.x:x1 - self.x]
        return image[y0:y1, x0:x1][local]

    def mean_intensity(self, image: np.ndarray) -> float:
        """Average raw intensity under the mask, 0.0 if no pixel is available."""
        values = self.pixel_values(image)
        if values.size == 0:
            return 0.0
        return float(np.mean(values, dtype=np.float64))

    def __repr__(self):
        return (f"Region(x={self.x}, y={self.y}, width={self.width}, "
                f"height={self.height}, area={self.area}, label={self.label})")

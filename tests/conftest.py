"""Shared helpers for building synthetic cells and images."""

import numpy as np
import pytest
from skimage.draw import disk

from simplecoloc.core.region import Region


def square(x, y, size, label=None):
    """Fully filled size x size cell with its top-left corner at (x, y)."""
    return Region.from_mask(x, y, np.ones((size, size), dtype=bool), label=label)


def round_cell(cx, cy, radius, label=None):
    """Disk-shaped cell centred on (cx, cy)."""
    size = 2 * radius + 1
    mask = np.zeros((size, size), dtype=bool)
    rr, cc = disk((radius, radius), radius + 0.5, shape=mask.shape)
    mask[rr, cc] = True
    return Region.from_mask(cx - radius, cy - radius, mask, label=label)


def paint(image, region, value):
    """Set the region's pixels in `image` to `value` (in place)."""
    ys, xs = region.points()[:, 1], region.points()[:, 0]
    image[ys, xs] = value
    return image


@pytest.fixture
def blank_image():
    return np.zeros((100, 120), dtype=np.uint16)

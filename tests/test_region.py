import numpy as np
import pytest

from simplecoloc.core.region import Region, GeometryInvariantViolation

from conftest import square, round_cell


def test_mask_must_match_bounding_box():
    with pytest.raises(GeometryInvariantViolation):
        Region(0, 0, 5, 4, np.ones((5, 4), dtype=bool))


def test_mask_must_be_2d():
    with pytest.raises(GeometryInvariantViolation):
        Region.from_mask(0, 0, np.ones(5, dtype=bool))


def test_coordinates_must_be_integers():
    mask = np.ones((3, 3), dtype=bool)
    with pytest.raises(GeometryInvariantViolation):
        Region(1.5, 0, 3, 3, mask)
    with pytest.raises(GeometryInvariantViolation):
        Region.from_mask(0, 2.0, mask)
    with pytest.raises(GeometryInvariantViolation):
        Region(True, 0, 3, 3, mask)


def test_numpy_integer_coordinates_are_stored_as_int():
    region = Region(np.int64(4), np.int32(2), 3, 3, np.ones((3, 3), dtype=bool))
    assert type(region.x) is int and type(region.y) is int
    assert region.bounding_box() == (4, 2, 3, 3)


def test_area_and_bounding_box():
    mask = np.array([[1, 0, 1],
                     [0, 1, 0]], dtype=bool)
    region = Region.from_mask(10, 20, mask)
    assert region.area == 3
    assert region.bounding_box() == (10, 20, 3, 2)
    assert (region.width, region.height) == (3, 2)


def test_contains_uses_global_coordinates_and_mask():
    mask = np.array([[1, 0],
                     [1, 1]], dtype=bool)
    region = Region.from_mask(5, 7, mask)
    assert region.contains(5, 7)
    assert not region.contains(6, 7)      # unset mask cell
    assert region.contains(6, 8)
    assert not region.contains(4, 7)      # left of the box
    assert not region.contains(5, 9)      # below the box


def test_region_is_unaffected_by_later_changes_to_source_mask():
    mask = np.ones((3, 3), dtype=bool)
    region = Region.from_mask(0, 0, mask)
    mask[:] = False
    assert region.area == 9
    with pytest.raises(ValueError):
        region.mask[0, 0] = False


def test_regions_are_frozen():
    region = square(0, 0, 2)
    with pytest.raises(AttributeError):
        region.x = 3


def test_mean_intensity_is_translated_by_origin():
    image = np.zeros((10, 10), dtype=np.uint8)
    image[2:4, 3:5] = 50
    image[2, 3] = 90
    region = square(3, 2, 2)
    assert region.mean_intensity(image) == pytest.approx((90 + 50 * 3) / 4)


def test_mean_intensity_ignores_pixels_outside_image():
    image = np.full((5, 5), 8, dtype=np.uint16)
    region = square(3, 3, 4)
    assert region.pixel_values(image).size == 4
    assert region.mean_intensity(image) == 8.0


def test_mean_intensity_of_region_off_image_is_zero():
    image = np.full((5, 5), 8, dtype=np.uint16)
    assert square(20, 20, 3).mean_intensity(image) == 0.0


def test_points_and_centroid():
    region = round_cell(30, 40, 3)
    pts = region.points()
    assert pts.shape == (region.area, 2)
    assert all(region.contains(x, y) for x, y in pts)
    cx, cy = region.centroid()
    assert cx == pytest.approx(30)
    assert cy == pytest.approx(40)

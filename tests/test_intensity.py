import numpy as np
import pytest

from simplecoloc.config import ConfigurationError
from simplecoloc.core.intensity import (
    CellAnalysis, analyse_cell_intensity, count_above_threshold,
    filter_cells_by_intensity, intensity_cutoff, records_to_dataframe,
)
from simplecoloc.core.region import Region

from conftest import square, paint


def test_count_above_threshold():
    records = [
        CellAnalysis(5, 100, 100, 100, 100, 500),
        CellAnalysis(20, 88, 88, 88, 88, 1760),
        CellAnalysis(20, 10, 10, 10, 10, 200),
        CellAnalysis(20, 15, 15, 15, 15, 300),
    ]
    assert count_above_threshold(records, 30.0) == 2


def test_count_above_threshold_is_strict():
    records = [CellAnalysis(1, 30, 30, 30, 30, 30)]
    assert count_above_threshold(records, 30) == 0
    assert count_above_threshold([], 0) == 0


def test_statistics_of_one_cell():
    image = np.zeros((20, 20), dtype=np.uint16)
    image[5:7, 5:7] = [[1, 2], [3, 10]]
    (record,) = analyse_cell_intensity(image, [square(5, 5, 2)])
    assert record.area == 4
    assert record.mean == pytest.approx(4.0)
    assert record.median == pytest.approx(2.5)
    assert record.min == 1
    assert record.max == 10
    assert record.raw_int_den == 16


def test_integrated_density_uses_unrounded_values():
    image = np.zeros((10, 10), dtype=np.float32)
    image[0, 0:3] = [0.4, 0.4, 0.4]
    (record,) = analyse_cell_intensity(image, [square(0, 0, 3)])
    assert record.raw_int_den == pytest.approx(1.2, rel=1e-6)


def test_no_integer_overflow_on_uint8_images():
    image = np.full((20, 20), 255, dtype=np.uint8)
    (record,) = analyse_cell_intensity(image, [square(0, 0, 20)])
    assert record.raw_int_den == 255 * 400


def test_one_record_per_cell_and_zero_area_cell_is_zero():
    image = np.full((10, 10), 7, dtype=np.uint8)
    empty = Region.from_mask(2, 2, np.zeros((3, 3), dtype=bool))
    cells = [square(0, 0, 2), empty, square(4, 4, 2)]
    records = analyse_cell_intensity(image, cells)

    assert len(records) == len(cells)
    assert records[1] == CellAnalysis(0, 0.0, 0.0, 0.0, 0.0, 0.0)
    assert records[0].mean == 7
    assert records[2].raw_int_den == 28


def test_filter_keeps_cells_above_normalised_cutoff(blank_image):
    cells = [square(0, 0, 5), square(10, 0, 5), square(20, 0, 5), square(30, 0, 5)]
    for cell, value in zip(cells, [10, 20, 30, 100]):
        paint(blank_image, cell, value)

    assert intensity_cutoff([10, 20, 30, 100], 90) == pytest.approx(19.0)
    kept = filter_cells_by_intensity(cells, blank_image, percentage=90)
    assert kept == cells[1:]


def test_filter_excludes_cell_exactly_at_cutoff(blank_image):
    cells = [square(0, 0, 5), square(10, 0, 5)]
    paint(blank_image, cells[0], 40)
    paint(blank_image, cells[1], 80)
    # cutoff = 80 - 40 * 0.5 = 60, both sides clear
    assert filter_cells_by_intensity(cells, blank_image, 50) == [cells[1]]
    # cutoff = 80: the brightest cell sits on it
    assert filter_cells_by_intensity(cells, blank_image, 0) == []


def test_filter_with_uniform_intensities_drops_everything(blank_image):
    cells = [square(0, 0, 5), square(10, 0, 5)]
    for cell in cells:
        paint(blank_image, cell, 50)
    assert filter_cells_by_intensity(cells, blank_image) == []


def test_filter_empty_and_invalid_percentage(blank_image):
    assert filter_cells_by_intensity([], blank_image) == []
    with pytest.raises(ConfigurationError):
        filter_cells_by_intensity([square(0, 0, 2)], blank_image, percentage=120)


def test_records_to_dataframe():
    records = [CellAnalysis(4, 2.0, 2.0, 1.0, 3.0, 8.0), CellAnalysis.empty()]
    df = records_to_dataframe(records)
    assert list(df.columns) == ['area', 'mean', 'median', 'min', 'max', 'raw_int_den']
    assert len(df) == 2
    assert df['raw_int_den'].tolist() == [8.0, 0.0]

import numpy as np
import pytest

from simplecoloc.config import ConfigurationError
from simplecoloc.core.colocalizer import BucketGrid, BucketedColocalizer
from simplecoloc.core.comparators import PixelCellComparator, SubsetPixelCellComparator

from conftest import square, round_cell


def naive_first_match(base, overlay, comparator):
    """All-pairs reference: first overlay (in list order) matching each base cell."""
    matched_base, matched_overlay = [], []
    for b in base:
        for o in overlay:
            if comparator.matches(b, o):
                matched_base.append(b)
                matched_overlay.append(o)
                break
    return matched_base, matched_overlay


def scattered_cells(seed, n, width=200, height=150, radius=(3, 9)):
    rng = np.random.default_rng(seed)
    cells = []
    for _ in range(n):
        r = int(rng.integers(*radius))
        cx = int(rng.integers(r, width - r))
        cy = int(rng.integers(r, height - r))
        cells.append(round_cell(cx, cy, r))
    return cells


def test_matches_and_drops_unmatched_in_base_order():
    base = [square(0, 0, 10), square(50, 50, 10), square(100, 0, 10)]
    overlay = [square(102, 2, 5), square(90, 90, 5), square(2, 2, 5)]
    analysis = BucketedColocalizer(
        20, 120, 120, SubsetPixelCellComparator(0.5),
    ).analyse_colocalization(base, overlay)

    assert analysis.overlapping_base == [base[0], base[2]]
    assert analysis.overlapping_overlaid == [overlay[2], overlay[0]]
    assert len(analysis) == 2
    assert analysis.pairs() == [(base[0], overlay[2]), (base[2], overlay[0])]


def test_same_result_as_all_pairs_search():
    base = scattered_cells(1, 80)
    overlay = scattered_cells(2, 120)
    comparator = PixelCellComparator(0.05)

    analysis = BucketedColocalizer(18, 200, 150, comparator).analyse_colocalization(base, overlay)
    expected_base, expected_overlay = naive_first_match(base, overlay, comparator)

    assert len(analysis) > 0
    assert analysis.overlapping_base == expected_base
    assert analysis.overlapping_overlaid == expected_overlay


def test_repeated_runs_are_identical():
    base = scattered_cells(3, 60)
    overlay = scattered_cells(4, 60)
    colocalizer = BucketedColocalizer(18, 200, 150, PixelCellComparator(0.01))
    first = colocalizer.analyse_colocalization(base, overlay)
    second = colocalizer.analyse_colocalization(base, overlay)
    assert first.overlapping_base == second.overlapping_base
    assert first.overlapping_overlaid == second.overlapping_overlaid


def test_cell_spanning_buckets_is_registered_in_each():
    grid = BucketGrid(10, 40, 40)
    spanning = square(6, 2, 8)            # x 6..13 crosses the x=10 boundary
    grid.register(0, spanning)

    assert grid.buckets_for(spanning) == [(0, 0), (1, 0)]
    assert grid.bucket(0, 0) == [0]
    assert grid.bucket(1, 0) == [0]
    assert grid.bucket(2, 0) == []

    # Discoverable from either side
    assert grid.candidates(square(0, 0, 3)) == [0]
    assert grid.candidates(square(15, 5, 3)) == [0]
    assert grid.candidates(square(25, 25, 3)) == []


def test_candidates_are_deduplicated_in_registration_order():
    grid = BucketGrid(10, 40, 40)
    grid.register(0, square(5, 5, 10))     # 4 buckets
    grid.register(1, square(12, 2, 4))
    grid.register(2, square(30, 30, 4))
    assert grid.candidates(square(0, 0, 20)) == [0, 1]


def test_grid_dimensions_round_up():
    grid = BucketGrid(30, 100, 61)
    assert (grid.n_cols, grid.n_rows) == (4, 3)


def test_cells_past_the_image_edge_are_clamped():
    base = [square(95, 95, 10)]
    overlay = [square(98, 98, 10)]
    analysis = BucketedColocalizer(
        10, 100, 100, PixelCellComparator(0.01),
    ).analyse_colocalization(base, overlay)
    assert analysis.overlapping_overlaid == overlay


def test_first_match_takes_earliest_registered_candidate():
    base = [square(0, 0, 10)]
    weak = square(7, 0, 6)      # half inside
    strong = square(1, 1, 6)    # fully inside
    colocalizer = BucketedColocalizer(20, 50, 50, SubsetPixelCellComparator(0.4))

    first = colocalizer.analyse_colocalization(base, [weak, strong])
    assert first.overlapping_overlaid == [weak]


def test_best_policy_takes_highest_overlap():
    base = [square(0, 0, 10)]
    weak = square(7, 0, 6)
    strong = square(1, 1, 6)
    colocalizer = BucketedColocalizer(
        20, 50, 50, SubsetPixelCellComparator(0.4), policy='best',
    )
    assert colocalizer.analyse_colocalization(base, [weak, strong]).overlapping_overlaid == [strong]


def test_overlay_cell_can_be_shared_unless_exclusive():
    base = [square(0, 0, 10), square(8, 0, 10)]
    shared = square(7, 2, 4)    # overlaps both bases
    comparator = PixelCellComparator(0.01)

    shared_result = BucketedColocalizer(20, 50, 50, comparator).analyse_colocalization(base, [shared])
    assert shared_result.overlapping_overlaid == [shared, shared]

    exclusive = BucketedColocalizer(
        20, 50, 50, comparator, exclusive=True,
    ).analyse_colocalization(base, [shared])
    assert exclusive.overlapping_base == [base[0]]


def test_empty_inputs():
    colocalizer = BucketedColocalizer(10, 50, 50, PixelCellComparator())
    assert len(colocalizer.analyse_colocalization([], [square(0, 0, 3)])) == 0
    assert len(colocalizer.analyse_colocalization([square(0, 0, 3)], [])) == 0


@pytest.mark.parametrize("bucket_size", [0, -5, 2.5, True])
def test_bad_bucket_size_is_rejected(bucket_size):
    with pytest.raises(ConfigurationError):
        BucketedColocalizer(bucket_size, 50, 50, PixelCellComparator())


def test_bad_policy_and_image_size_are_rejected():
    with pytest.raises(ConfigurationError):
        BucketedColocalizer(10, 50, 50, PixelCellComparator(), policy='closest')
    with pytest.raises(ConfigurationError):
        BucketedColocalizer(10, 0, 50, PixelCellComparator())


def test_chained_three_channel_match_is_aligned_subset():
    target = scattered_cells(5, 50)
    transduced = scattered_cells(6, 70, radius=(2, 5))
    all_cells = scattered_cells(7, 60)

    two = BucketedColocalizer(
        18, 200, 150, SubsetPixelCellComparator(0.5),
    ).analyse_colocalization(target, transduced)
    three = BucketedColocalizer(
        18, 200, 150, PixelCellComparator(0.01),
    ).analyse_colocalization(two.overlapping_overlaid, all_cells)

    # Every three-channel cell came from the two-channel result, in order
    remaining = iter(two.overlapping_overlaid)
    assert all(any(cell is c for c in remaining) for cell in three.overlapping_base)
    comparator = PixelCellComparator(0.01)
    assert all(comparator.matches(b, o) for b, o in three.pairs())

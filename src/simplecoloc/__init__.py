"""
SimpleColoc - cell colocalization across fluorescence channels

Matches segmented cells between channels with a bucketed spatial search,
measures per-cell intensities, and chains two-channel matches into
three-channel transduction counts.

Usage:
    simplecoloc IMAGE.tif        # Run on one image (labels in IMAGE_labels.tif)
    simplecoloc FOLDER           # Batch over a folder
    simplecoloc --help           # Show help
"""

__version__ = "1.0.0"

from simplecoloc.config import (
    CellDiameterRange,
    ConfigurationError,
    ChannelDoesNotExistError,
    DiameterParseError,
    TransductionParameters,
)
from simplecoloc.core.region import Region, GeometryInvariantViolation
from simplecoloc.core.comparators import (
    CellComparator,
    PixelCellComparator,
    SubsetPixelCellComparator,
    make_comparator,
)
from simplecoloc.core.colocalizer import BucketedColocalizer, ColocalizationAnalysis
from simplecoloc.core.intensity import (
    CellAnalysis,
    analyse_cell_intensity,
    count_above_threshold,
    filter_cells_by_intensity,
)
from simplecoloc.core.transduction import (
    TransductionResult,
    analyse_transduction,
    count_cells,
    process_image,
)

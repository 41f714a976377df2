"""
config.py - Parameters and defaults for SimpleColoc

Holds the tunable defaults used by the colocalization pipeline, the cell
diameter range parser and the parameter bundle handed to the orchestrator.

Usage:
    from simplecoloc.config import TransductionParameters, CellDiameterRange

    params = TransductionParameters(cell_diameter=CellDiameterRange.parse_from_text("5-30"))
    params.validate(n_channels=3)
"""

import math
import numbers
from dataclasses import dataclass, field, asdict
from typing import Dict, Any


# =============================================================================
# DEFAULTS
# =============================================================================

# Transduced-channel cells whose mean intensity falls in the bottom part of the
# min-max range are discarded before matching.
INTENSITY_PERCENTAGE_THRESHOLD = 90.0

# Majority of the transduced cell must lie inside the target cell.
SUBSET_THRESHOLD = 0.5

# Any overlap (>= 1% of the base cell) counts for the all-cells channel.
PIXEL_THRESHOLD = 0.01

DEFAULT_CELL_DIAMETER_TEXT = "0.0-30.0"

PLUGIN_NAME = "SimpleColoc Transduction"


# =============================================================================
# ERRORS
# =============================================================================

class ConfigurationError(ValueError):
    """Invalid parameter detected before processing starts."""


class ChannelDoesNotExistError(ConfigurationError):
    """A selected channel number is outside the image's channel range."""


class DiameterParseError(ConfigurationError):
    """A cell diameter range could not be parsed."""


# =============================================================================
# CELL DIAMETER RANGE
# =============================================================================

@dataclass(frozen=True)
class CellDiameterRange:
    """Smallest and largest expected cell diameter, in pixels."""

    smallest: float
    largest: float

    def __post_init__(self):
        if not (math.isfinite(self.smallest) and math.isfinite(self.largest)):
            raise DiameterParseError("Cell diameters must be finite numbers")
        if self.smallest < 0:
            raise DiameterParseError(
                f"Smallest cell diameter must be >= 0, got {self.smallest}"
            )
        if self.largest <= 0:
            raise DiameterParseError(
                f"Largest cell diameter must be > 0, got {self.largest}"
            )
        if self.smallest > self.largest:
            raise DiameterParseError(
                f"Smallest cell diameter ({self.smallest}) is larger than "
                f"the largest ({self.largest})"
            )

    @classmethod
    def parse_from_text(cls, text: str) -> 'CellDiameterRange':
        """
        Parse a range written as "MIN-MAX", e.g. "0.0-30.0".

        Raises:
            DiameterParseError: If the text is not two non-negative numbers
                separated by a dash, or if MIN > MAX.
        """
        parts = text.strip().split("-")
        if len(parts) != 2:
            raise DiameterParseError(
                f"Cell diameter must be written as MIN-MAX, got {text!r}"
            )
        try:
            smallest = float(parts[0])
            largest = float(parts[1])
        except ValueError:
            raise DiameterParseError(
                f"Cell diameter range contains a non-numeric value: {text!r}"
            ) from None
        return cls(smallest, largest)

    def bucket_size(self) -> int:
        """Bucket edge length for the spatial grid (largest diameter, >= 1)."""
        return max(1, int(math.ceil(self.largest)))

    def min_area(self) -> int:
        """Smallest accepted region area: a disk of the smallest diameter (>= 1)."""
        return max(1, int(math.pi * (self.smallest / 2) ** 2))

    def __str__(self):
        return f"{self.smallest}-{self.largest}"


# =============================================================================
# PARAMETERS
# =============================================================================

def validate_threshold(value, name: str = "threshold") -> float:
    """Check that a comparator threshold is a number in (0, 1]."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or not 0 < value <= 1:
        raise ConfigurationError(f"{name} must be in (0, 1], got {value}")
    return float(value)


def validate_percentage(value) -> float:
    """Check that an intensity percentage is a number in [0, 100]."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"percentage must be a number, got {value!r}")
    if not math.isfinite(value) or not 0 <= value <= 100:
        raise ConfigurationError(f"percentage must be in [0, 100], got {value}")
    return float(value)


@dataclass
class TransductionParameters:
    """
    Parameters for one transduction analysis run.

    Channel numbers are 1-based, matching how microscopists name channels.
    `all_cells_channel = 0` disables the third (all cells) channel.
    """

    target_channel: int = 1
    transduced_channel: int = 2
    all_cells_channel: int = 0
    cell_diameter: CellDiameterRange = field(
        default_factory=lambda: CellDiameterRange.parse_from_text(DEFAULT_CELL_DIAMETER_TEXT)
    )
    all_cells_diameter: CellDiameterRange = field(
        default_factory=lambda: CellDiameterRange.parse_from_text(DEFAULT_CELL_DIAMETER_TEXT)
    )
    intensity_percentage: float = INTENSITY_PERCENTAGE_THRESHOLD
    subset_threshold: float = SUBSET_THRESHOLD
    pixel_threshold: float = PIXEL_THRESHOLD

    @property
    def all_cells_enabled(self) -> bool:
        return self.all_cells_channel > 0

    def validate(self, n_channels: int = None) -> 'TransductionParameters':
        """
        Raise ConfigurationError if any parameter is out of range.

        Args:
            n_channels: Number of channels in the image. When given, channel
                numbers are checked against it.
        """
        validate_threshold(self.subset_threshold, "subset_threshold")
        validate_threshold(self.pixel_threshold, "pixel_threshold")
        validate_percentage(self.intensity_percentage)

        for name in ("target_channel", "transduced_channel"):
            check_channel(getattr(self, name), name, n_channels, allow_zero=False)
        check_channel(self.all_cells_channel, "all_cells_channel", n_channels,
                      allow_zero=True)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary (diameter ranges as text)."""
        data = asdict(self)
        data['cell_diameter'] = str(self.cell_diameter)
        data['all_cells_diameter'] = str(self.all_cells_diameter)
        return data


def check_channel(channel, name, n_channels=None, allow_zero=False):
    """Raise ChannelDoesNotExistError if a 1-based channel is not available."""
    if isinstance(channel, bool) or not isinstance(channel, numbers.Integral):
        raise ConfigurationError(f"{name} must be an integer, got {channel!r}")
    if channel == 0 and allow_zero:
        return
    if channel < 1:
        raise ChannelDoesNotExistError(
            f"{name} selected ({channel}) does not exist. Channels are numbered from 1"
        )
    if n_channels is not None and channel > n_channels:
        raise ChannelDoesNotExistError(
            f"{name} selected ({channel}) does not exist. "
            f"There are {n_channels} channels available"
        )

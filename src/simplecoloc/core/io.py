"""
io.py - Image and label I/O for SimpleColoc

Loads multi-channel TIFF stacks and the label stacks produced by an external
segmentation step, and turns label images into Region lists.

Usage:
    from simplecoloc.core.io import load_image, load_labels, regions_from_labels

    data, metadata = load_image("sample.tif")        # (C, Y, X)
    labels = load_labels("sample_labels.tif")         # (C, Y, X) integer
    target_cells = regions_from_labels(labels[0])

Read errors are not caught here; they reach the caller unchanged.
"""

import logging
import re
from pathlib import Path
from typing import Tuple, Dict, Any, List, Optional, Union

import numpy as np

from simplecoloc.core.region import Region

logger = logging.getLogger(__name__)

# Lazy imports for optional dependencies
_tifffile = None

LABELS_SUFFIX = "_labels"


def _get_tifffile():
    """Lazy import tifffile library."""
    global _tifffile
    if _tifffile is None:
        import tifffile
        _tifffile = tifffile
    return _tifffile


def _to_channels_first(data: np.ndarray) -> np.ndarray:
    """Return data as (C, Y, X)."""
    if data.ndim == 2:
        return data[np.newaxis, :, :]
    if data.ndim == 3:
        if data.shape[0] <= 4:
            return data  # Already (C, Y, X)
        if data.shape[-1] <= 4:
            return np.moveaxis(data, -1, 0)
        return data
    raise ValueError(f"Expected a 2D or 3D image, got shape {data.shape}")


def load_image(file_path: Union[str, Path]) -> Tuple[np.ndarray, Dict[str, Any]]:
    """
    Load a TIFF image as (C, Y, X) with basic metadata.

    Args:
        file_path: Path to a .tif/.tiff file

    Returns:
        Tuple of (image_array, metadata_dict)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not a TIFF or has an unexpected shape
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Image file not found: {file_path}")
    if file_path.suffix.lower() not in ('.tif', '.tiff'):
        raise ValueError(
            f"Unsupported image format: {file_path.suffix}. "
            f"Supported formats: .tif, .tiff"
        )

    tifffile = _get_tifffile()
    with tifffile.TiffFile(file_path) as tif:
        data = tif.asarray()

    data = _to_channels_first(data)
    metadata = {
        'file_path': str(file_path),
        'file_name': file_path.name,
        'shape': data.shape,
        'dtype': str(data.dtype),
        'channels': [f"Channel_{i + 1}" for i in range(data.shape[0])],
    }
    logger.debug("Loaded %s: shape=%s dtype=%s", file_path.name, data.shape, data.dtype)
    return data, metadata


def load_labels(file_path: Union[str, Path]) -> np.ndarray:
    """
    Load a label stack (C, Y, X); 0 is background, each cell has its own id.

    Raises:
        ValueError: If the stack is not integer-valued
    """
    data, _ = load_image(file_path)
    if not np.issubdtype(data.dtype, np.integer):
        raise ValueError(f"Label image must be integer-valued, got {data.dtype}: {file_path}")
    return data


def save_tiff(file_path: Union[str, Path], data: np.ndarray):
    """Write an array to TIFF, creating parent folders."""
    tifffile = _get_tifffile()
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    tifffile.imwrite(str(file_path), data)


def regions_from_labels(labels: np.ndarray, min_area: int = 1) -> List[Region]:
    """
    Convert a 2D label image into Regions, ordered by label id.

    Args:
        labels: Integer label image (Y, X), 0 = background
        min_area: Labels with fewer pixels are skipped

    Returns:
        List of Region, one per kept label
    """
    from skimage.measure import regionprops

    labels = np.asarray(labels)
    if labels.ndim != 2:
        raise ValueError(f"Label image must be 2D, got shape {labels.shape}")

    regions = []
    for prop in regionprops(labels):
        if prop.area < min_area:
            continue
        min_row, min_col, _, _ = prop.bbox
        regions.append(Region.from_mask(min_col, min_row, prop.image, label=int(prop.label)))
    return regions


def regions_to_labels(regions: List[Region], shape: Tuple[int, int]) -> np.ndarray:
    """
    Paint regions into a label image (1-based, in list order).

    Later regions overwrite earlier ones where they overlap; pixels outside
    `shape` are dropped.
    """
    height, width = shape
    labels = np.zeros((height, width), dtype=np.int32)
    for new_id, region in enumerate(regions, 1):
        x0, y0 = max(region.x, 0), max(region.y, 0)
        x1, y1 = min(region.x_end, width), min(region.y_end, height)
        if x1 <= x0 or y1 <= y0:
            continue
        local = region.mask[y0 - region.y:y1 - region.y, x0 - region.x:x1 - region.x]
        labels[y0:y1, x0:x1][local] = new_id
    return labels


# =============================================================================
# FOLDER LOADING
# =============================================================================

def labels_path_for(image_path: Union[str, Path]) -> Path:
    """Conventional label stack path: <stem>_labels.tif next to the image."""
    image_path = Path(image_path)
    return image_path.with_name(f"{image_path.stem}{LABELS_SUFFIX}.tif")


def find_images_in_folder(
    folder_path: Union[str, Path],
    extensions: Optional[List[str]] = None,
    recursive: bool = False,
) -> List[Path]:
    """
    Find image files in a folder, naturally sorted, skipping label stacks.

    Args:
        folder_path: Folder to search
        extensions: Extensions to include (default: ['.tif', '.tiff'])
        recursive: Also search nested folders

    Returns:
        List of Path objects
    """
    folder = Path(folder_path)
    if not folder.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder}")

    if extensions is None:
        extensions = ['.tif', '.tiff']
    extensions = [ext.lower() if ext.startswith('.') else f'.{ext.lower()}' for ext in extensions]

    candidates = folder.rglob('*') if recursive else folder.iterdir()
    files = [
        p for p in candidates
        if p.is_file()
        and p.suffix.lower() in extensions
        and not p.stem.endswith(LABELS_SUFFIX)
    ]

    # Natural sort so S2 comes before S10, nested folders by their own names
    def natural_key(path):
        name = path.relative_to(folder).with_suffix('').as_posix()
        return [int(c) if c.isdigit() else c.lower() for c in re.split(r'(\d+)', name)]

    return sorted(files, key=natural_key)

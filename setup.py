"""
SimpleColoc - Cell colocalization across fluorescence channels.

Counts target-channel cells that contain a transduced cell, measures the
transduced cells' intensities, and optionally confirms them against an
all-cells channel. Cells come from label images produced by a separate
segmentation step.

INSTALL:
--------
    pip install -e .
    pip install -e .[test]     # with test tools

USAGE:
------
    simplecoloc IMAGE.tif --labels IMAGE_labels.tif
    simplecoloc FOLDER
"""

from setuptools import setup, find_packages

setup(
    name="simplecoloc",
    version="1.0.0",
    description="Bucketed cell colocalization and transduction counts for fluorescence images",
    long_description=__doc__,
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20",
        "scikit-image>=0.19",
        "pandas>=1.3",
        "tifffile>=2022.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "simplecoloc = simplecoloc.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Image Processing",
    ],
)

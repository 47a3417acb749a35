"""
Pytest fixtures for tadseg tests.

Synthetic micrographs: yellow blobs on a blue background. Each blob is a
solid yellow disk with a one-pixel half-tone rim, the way a real organism
outline is anti-aliased, so the watershed ridge falls on the rim.
"""

import sys
from pathlib import Path

import numpy as np
import pytest
from scipy import ndimage

sys.path.insert(0, str(Path(__file__).parent.parent))

BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)
RIM = (192, 192, 64)

IMAGE_SHAPE = (60, 100)
CORE_RADIUS_SQ = 49  # 149 px core; core + rim = 189 px

CROSS = ndimage.generate_binary_structure(2, 1)


def disk_mask(shape, center, radius_sq=CORE_RADIUS_SQ):
    """Boolean disk ``(y - cy)^2 + (x - cx)^2 <= radius_sq``."""
    y_indices, x_indices = np.ogrid[:shape[0], :shape[1]]
    cy, cx = center
    return (y_indices - cy) ** 2 + (x_indices - cx) ** 2 <= radius_sq


def ellipse_mask(shape, center, semi_axes):
    """Boolean axis-aligned ellipse; semi_axes is (rows, cols)."""
    y_indices, x_indices = np.ogrid[:shape[0], :shape[1]]
    cy, cx = center
    ay, ax = semi_axes
    return ((y_indices - cy) / ay) ** 2 + ((x_indices - cx) / ax) ** 2 <= 1.0


def paint(cores, shape=IMAGE_SHAPE):
    """
    Render yellow cores with a half-tone rim on blue.

    Args:
        cores: Boolean mask of all blob cores
        shape: (rows, cols)

    Returns:
        uint8 (rows, cols, 3) image
    """
    image = np.empty(shape + (3,), dtype=np.uint8)
    image[:] = BLUE
    rim = ndimage.binary_dilation(cores, structure=CROSS) & ~cores
    image[rim] = RIM
    image[cores] = YELLOW
    return image


def blob_footprint(cores):
    """Core plus rim: the pixels a perfect segmentation assigns to the blobs."""
    return ndimage.binary_dilation(cores, structure=CROSS)


@pytest.fixture
def two_blob_cores():
    """Two disks 40 px apart in a 60x100 frame."""
    return disk_mask(IMAGE_SHAPE, (30, 30)) | disk_mask(IMAGE_SHAPE, (30, 70))


@pytest.fixture
def two_blob_image(two_blob_cores):
    """
    Two well separated blobs of about 190 px each.

    Returns:
        np.ndarray: 60x100x3 uint8 array
    """
    return paint(two_blob_cores)


@pytest.fixture
def touching_pair_image():
    """Two blobs whose rims meet in a one-pixel waist (centers 16 px apart)."""
    cores = disk_mask(IMAGE_SHAPE, (30, 42)) | disk_mask(IMAGE_SHAPE, (30, 58))
    return paint(cores)


@pytest.fixture
def merged_blob_image():
    """A single convex ellipse, about as large as the touching pair."""
    return paint(ellipse_mask(IMAGE_SHAPE, (30, 50), (7, 16)))


@pytest.fixture
def corner_blob_image():
    """One blob centered on pixel (0, 0) and one interior blob."""
    cores = disk_mask(IMAGE_SHAPE, (0, 0)) | disk_mask(IMAGE_SHAPE, (30, 70))
    return paint(cores)


@pytest.fixture
def uniform_image():
    """Solid blue frame with no contrast."""
    image = np.empty(IMAGE_SHAPE + (3,), dtype=np.uint8)
    image[:] = BLUE
    return image


@pytest.fixture
def sample_mask():
    """
    Binary mask with one 20x20 square and a 3x3 speck.

    Returns:
        np.ndarray: 50x50 boolean array
    """
    mask = np.zeros((50, 50), dtype=bool)
    mask[10:30, 10:30] = True
    mask[40:43, 40:43] = True
    return mask


@pytest.fixture
def empty_mask():
    """
    Empty binary mask for testing edge cases.

    Returns:
        np.ndarray: 50x50 boolean array of all False
    """
    return np.zeros((50, 50), dtype=bool)


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory, removed by pytest after the test."""
    return tmp_path

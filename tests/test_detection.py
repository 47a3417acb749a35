"""
Tests for Otsu binarization, marker generation and the watershed stage.

Tests tadseg/detection/threshold.py, markers.py and watershed.py.
"""

import pytest
import numpy as np
from scipy import ndimage

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tadseg.detection.threshold import (
    binarize,
    compute_otsu_threshold,
    intensity_histogram,
)
from tadseg.detection.markers import (
    MarkerSet,
    background_markers,
    foreground_markers,
    generate_markers,
)
from tadseg.detection.watershed import (
    gradient_magnitude,
    impose_minima,
    watershed_segment,
)
from tadseg.preprocessing import (
    correct_illumination,
    enhance_channel_contrast,
    normalize_image,
)
from tadseg.utils.mask_cleanup import refine_mask

from conftest import blob_footprint


def corrected_image(image):
    """Run the preprocessing stages with default parameters."""
    return correct_illumination(enhance_channel_contrast(normalize_image(image)), radius=12)


# =============================================================================
# THRESHOLD
# =============================================================================

class TestOtsuThreshold:
    """Tests for compute_otsu_threshold and binarize."""

    def test_bimodal_image_split(self):
        image = np.zeros((10, 10))
        image[:, 5:] = 1.0
        result = binarize(image)
        assert 0.0 < result.threshold < 1.0
        assert not result.degenerate
        np.testing.assert_array_equal(result.mask, image == 1.0)

    def test_same_histogram_same_threshold(self):
        """Thresholding twice on the same histogram yields the same cut."""
        image = np.random.default_rng(3).random((40, 40)) ** 2
        hist = intensity_histogram(image, 256)
        first = compute_otsu_threshold(hist=hist)
        second = compute_otsu_threshold(hist=hist)
        assert first == second
        assert compute_otsu_threshold(image) == first

    def test_rethreshold_of_mask_reproduces_mask(self):
        image = np.random.default_rng(4).random((30, 30))
        mask = binarize(image).mask
        again = binarize(mask.astype(float)).mask
        np.testing.assert_array_equal(mask, again)

    def test_constant_image_is_degenerate(self, caplog):
        image = np.full((20, 20), 0.3)
        with caplog.at_level("WARNING"):
            result = binarize(image)
        assert result.degenerate
        assert result.threshold == pytest.approx(0.3)
        assert not result.mask.any()
        assert "Constant intensity" in caplog.text

    def test_single_populated_bin(self):
        counts = np.zeros(8, dtype=int)
        counts[3] = 100
        centers = np.linspace(0.0, 1.0, 8)
        assert compute_otsu_threshold(hist=(counts, centers)) == pytest.approx(centers[3])

    def test_constant_image_threshold_is_value(self):
        assert compute_otsu_threshold(np.full((5, 5), 0.25)) == pytest.approx(0.25)

    def test_requires_input(self):
        with pytest.raises(ValueError):
            compute_otsu_threshold()

    def test_blob_image_threshold_keeps_rim(self, two_blob_image, two_blob_cores):
        """The half-tone rim is foreground, the blue background is not."""
        result = binarize(corrected_image(two_blob_image))
        np.testing.assert_array_equal(result.mask, blob_footprint(two_blob_cores))


# =============================================================================
# MARKERS
# =============================================================================

class TestMarkers:
    """Tests for foreground/background marker generation."""

    @pytest.fixture
    def refined_two_blobs(self, two_blob_image):
        return refine_mask(binarize(corrected_image(two_blob_image)).mask)

    def test_one_foreground_marker_per_blob(self, refined_two_blobs):
        markers = generate_markers(refined_two_blobs)
        _, count = ndimage.label(markers.foreground, structure=np.ones((3, 3)))
        assert count == 2

    def test_foreground_inside_mask(self, refined_two_blobs):
        markers = generate_markers(refined_two_blobs)
        assert not (markers.foreground & ~refined_two_blobs).any()

    def test_background_outside_mask(self, refined_two_blobs):
        markers = generate_markers(refined_two_blobs)
        assert markers.background.any()
        assert not (markers.background & refined_two_blobs).any()

    def test_markers_disjoint(self, refined_two_blobs):
        markers = generate_markers(refined_two_blobs)
        assert not (markers.foreground & markers.background).any()
        np.testing.assert_array_equal(markers.combined, markers.foreground | markers.background)

    def test_markers_disjoint_on_noise(self):
        """Disjointness holds for arbitrary masks, not only clean blobs."""
        rng = np.random.default_rng(7)
        for density in (0.2, 0.5, 0.8):
            mask = rng.random((48, 64)) < density
            markers = generate_markers(mask, min_area_foreground=1, min_area_background=1)
            assert not (markers.foreground & markers.background).any()

    def test_thin_object_gets_no_marker(self):
        mask = np.zeros((40, 60), dtype=bool)
        mask[18:21, 5:55] = True
        assert not foreground_markers(mask, erode_radius=5, min_area=25).any()

    def test_skeleton_spurs_removed(self):
        mask = np.zeros((50, 50), dtype=bool)
        mask[20:30, 20:30] = True
        pruned = background_markers(mask, dilate_radius=3, min_area=10_000)
        assert not pruned.any()

    def test_full_mask_has_no_background(self):
        mask = np.ones((20, 20), dtype=bool)
        assert not background_markers(mask).any()

    def test_empty_markers(self):
        markers = MarkerSet(
            foreground=np.zeros((3, 3), dtype=bool),
            background=np.zeros((3, 3), dtype=bool),
        )
        assert markers.is_empty


# =============================================================================
# WATERSHED
# =============================================================================

class TestGradientAndMinima:
    """Tests for gradient_magnitude and impose_minima."""

    def test_gradient_peaks_on_edges(self):
        image = np.zeros((20, 20))
        image[:, 10:] = 1.0
        gradient = gradient_magnitude(image)
        assert gradient.max() == pytest.approx(1.0)
        assert gradient[10, 2] == 0.0
        assert gradient[10, 9] > 0.5

    def test_markers_become_strict_minima(self):
        image = np.random.default_rng(5).random((15, 15))
        markers = np.zeros_like(image, dtype=bool)
        markers[7, 7] = True
        imposed = impose_minima(image, markers)
        assert imposed[markers].max() < imposed[~markers].min()

    def test_order_preserved_on_monotone_ramp(self):
        ramp = np.tile(np.linspace(0.0, 1.0, 10), (5, 1))
        markers = np.zeros_like(ramp, dtype=bool)
        markers[:, 0] = True
        imposed = impose_minima(ramp, markers)
        h = 0.001
        np.testing.assert_allclose(imposed[:, 1:], ramp[:, 1:] + h)

    def test_spurious_minimum_filled(self):
        image = np.full((5, 11), 0.5)
        image[2, 5] = 0.1
        markers = np.zeros_like(image, dtype=bool)
        markers[:, 0] = True
        imposed = impose_minima(image, markers)
        assert imposed[2, 5] == pytest.approx(imposed[0, 5])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            impose_minima(np.zeros((4, 4)), np.zeros((3, 3), dtype=bool))


class TestWatershedSegment:
    """Tests for watershed_segment."""

    @pytest.fixture
    def two_blob_stages(self, two_blob_image):
        corrected = corrected_image(two_blob_image)
        markers = generate_markers(refine_mask(binarize(corrected).mask))
        return corrected, markers

    def test_two_basins(self, two_blob_stages):
        corrected, markers = two_blob_stages
        basins = watershed_segment(corrected, markers.combined)
        assert basins.dtype == np.int32
        assert len(np.unique(basins[basins > 0])) == 2

    def test_background_basin_cleared(self, two_blob_stages):
        corrected, markers = two_blob_stages
        basins = watershed_segment(corrected, markers.combined)
        assert not basins[markers.background].any()
        assert not basins[0, :].any() and not basins[-1, :].any()
        assert not basins[:, 0].any() and not basins[:, -1].any()

    def test_basins_contain_foreground_markers(self, two_blob_stages):
        corrected, markers = two_blob_stages
        basins = watershed_segment(corrected, markers.combined)
        assert np.all(basins[markers.foreground] > 0)

    def test_ridge_separates_basins(self, two_blob_stages):
        """No two different basins are 8-neighbours."""
        corrected, markers = two_blob_stages
        basins = watershed_segment(corrected, markers.combined)
        for label in np.unique(basins[basins > 0]):
            grown = ndimage.binary_dilation(basins == label, structure=np.ones((3, 3)))
            others = basins[grown]
            assert set(np.unique(others)) <= {0, label}

    def test_no_markers_returns_empty(self, two_blob_stages):
        corrected, _ = two_blob_stages
        basins = watershed_segment(corrected, np.zeros(corrected.shape, dtype=bool))
        assert basins.shape == corrected.shape
        assert not basins.any()

    def test_four_connected_flooding(self, two_blob_stages):
        corrected, markers = two_blob_stages
        basins = watershed_segment(corrected, markers.combined, connectivity=1)
        assert len(np.unique(basins[basins > 0])) == 2

"""
Tests for label post-processing.

Tests tadseg/processing/labels.py.
"""

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tadseg.processing.labels import (
    dilate_labels,
    finalize_labels,
    relabel_sequential,
    remove_small_labels,
)


class TestRelabelSequential:
    """Tests for relabel_sequential."""

    def test_gaps_removed(self):
        labels = np.array([[0, 5, 5], [9, 0, 2]])
        result = relabel_sequential(labels)
        np.testing.assert_array_equal(result, [[0, 2, 2], [3, 0, 1]])
        assert result.dtype == np.int32

    def test_order_preserved(self):
        labels = np.array([[10, 20, 30]])
        np.testing.assert_array_equal(relabel_sequential(labels), [[1, 2, 3]])

    def test_empty(self):
        result = relabel_sequential(np.zeros((3, 3), dtype=np.int64))
        assert not result.any()

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            relabel_sequential(np.array([[-1, 0]]))

    def test_input_not_modified(self):
        labels = np.array([[0, 7]])
        relabel_sequential(labels)
        np.testing.assert_array_equal(labels, [[0, 7]])


class TestDilateLabels:
    """Tests for dilate_labels."""

    def test_single_pixel_grows_to_cross(self):
        labels = np.zeros((5, 5), dtype=np.int32)
        labels[2, 2] = 1
        result = dilate_labels(labels)
        assert (result == 1).sum() == 5
        assert result[1, 1] == 0

    def test_last_write_wins(self):
        """Higher labels overwrite a ridge pixel claimed by lower labels."""
        labels = np.array([[1, 0, 2]], dtype=np.int32)
        np.testing.assert_array_equal(dilate_labels(labels), [[1, 2, 2]])

    def test_workers_do_not_change_result(self):
        rng = np.random.default_rng(11)
        labels = np.zeros((40, 40), dtype=np.int32)
        for label in range(1, 9):
            y, x = rng.integers(2, 36, size=2)
            labels[y:y + 3, x:x + 3] = label
        np.testing.assert_array_equal(dilate_labels(labels, workers=1), dilate_labels(labels, workers=4))

    def test_image_edge(self):
        labels = np.zeros((4, 4), dtype=np.int32)
        labels[0, 0] = 1
        result = dilate_labels(labels)
        assert (result == 1).sum() == 3

    def test_missing_label_skipped(self):
        labels = np.array([[0, 3, 0]], dtype=np.int32)
        np.testing.assert_array_equal(dilate_labels(labels), [[3, 3, 3]])

    def test_input_not_modified(self):
        labels = np.array([[1, 0, 2]], dtype=np.int32)
        dilate_labels(labels)
        np.testing.assert_array_equal(labels, [[1, 0, 2]])


class TestRemoveSmallLabels:
    """Tests for remove_small_labels."""

    def test_small_removed(self):
        labels = np.array([[1, 1, 1, 0, 2]])
        np.testing.assert_array_equal(remove_small_labels(labels, 2), [[1, 1, 1, 0, 0]])

    def test_equal_area_kept(self):
        labels = np.array([[1, 1, 0, 2, 2]])
        np.testing.assert_array_equal(remove_small_labels(labels, 2), labels)

    def test_empty(self):
        assert not remove_small_labels(np.zeros((2, 2), dtype=np.int32), 5).any()


class TestFinalizeLabels:
    """Tests for finalize_labels."""

    def test_labels_contiguous_after_removal(self):
        labels = np.zeros((30, 30), dtype=np.int32)
        labels[2:10, 2:10] = 4     # 64 px, 96 after growth
        labels[15:17, 15:17] = 7   # 4 px, removed
        labels[20:28, 20:28] = 9   # 64 px
        result = finalize_labels(labels, min_area=50)
        assert set(np.unique(result)) == {0, 1, 2}
        assert (result == 1).sum() == 64 + 4 * 8
        assert (result == 2).sum() == 64 + 4 * 8

    def test_min_area_respected(self):
        labels = np.zeros((20, 20), dtype=np.int32)
        labels[1:4, 1:4] = 1
        labels[8:18, 8:18] = 2
        result = finalize_labels(labels, min_area=50)
        areas = np.bincount(result.ravel())[1:]
        assert len(areas) == 1
        assert areas.min() >= 50

    def test_all_removed(self):
        labels = np.zeros((10, 10), dtype=np.int32)
        labels[4, 4] = 1
        assert not finalize_labels(labels, min_area=50).any()

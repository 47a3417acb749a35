"""
Global binarization with Otsu's method.

Otsu picks the histogram cut that maximizes the between-class variance of
the two pixel populations it creates. The threshold depends only on the
intensity histogram, so identical histograms always give identical cuts.

A constant image has no cut at all. Instead of failing, ``binarize`` returns
an all-background mask; downstream stages then find no organisms.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from skimage.exposure import histogram
from skimage.filters import threshold_otsu

from tadseg.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BINS = 256


@dataclass(frozen=True)
class ThresholdResult:
    """
    Output of the binarization stage.

    Attributes:
        mask: Boolean foreground mask (True where intensity >= threshold)
        threshold: Otsu threshold t*
        degenerate: True when the histogram had a single populated bin
    """
    mask: np.ndarray
    threshold: float
    degenerate: bool = False


def intensity_histogram(image: np.ndarray, nbins: int = DEFAULT_BINS) -> Tuple[np.ndarray, np.ndarray]:
    """
    Histogram of a grayscale image over its own intensity range.

    Returns:
        Tuple of (counts, bin_centers)
    """
    return histogram(np.asarray(image).ravel(), nbins=nbins, source_range='image')


def compute_otsu_threshold(
    image: Optional[np.ndarray] = None,
    nbins: int = DEFAULT_BINS,
    hist: Optional[Tuple[np.ndarray, np.ndarray]] = None,
) -> float:
    """
    Otsu threshold of an image or of a precomputed histogram.

    Args:
        image: Grayscale image (ignored when hist is given)
        nbins: Number of histogram bins
        hist: Optional (counts, bin_centers) tuple

    Returns:
        Threshold value. For a single populated bin, the center of that bin.
    """
    if hist is None:
        if image is None:
            raise ValueError("either image or hist must be provided")
        image = np.asarray(image)
        if image.size == 0:
            raise ValueError("cannot threshold an empty image")
        if image.min() == image.max():
            return float(image.flat[0])
        hist = intensity_histogram(image, nbins)

    counts, bin_centers = hist
    counts = np.asarray(counts)
    if np.count_nonzero(counts) <= 1:
        return float(bin_centers[int(np.argmax(counts))])
    return float(threshold_otsu(hist=(counts, np.asarray(bin_centers))))


def binarize(image: np.ndarray, nbins: int = DEFAULT_BINS) -> ThresholdResult:
    """
    Foreground mask from a global Otsu threshold.

    Args:
        image: Illumination-corrected image in [0, 1]
        nbins: Number of histogram bins

    Returns:
        ThresholdResult; the mask is all False for a constant image
    """
    image = np.asarray(image)
    counts, bin_centers = intensity_histogram(image, nbins)
    if image.min() == image.max() or np.count_nonzero(counts) <= 1:
        logger.warning(
            "Constant intensity image (%.4f): no threshold, returning empty mask",
            float(image.flat[0]),
        )
        return ThresholdResult(
            mask=np.zeros(image.shape, dtype=bool),
            threshold=float(image.flat[0]),
            degenerate=True,
        )

    threshold = compute_otsu_threshold(hist=(counts, bin_centers))
    mask = image >= threshold
    logger.debug(
        "Otsu threshold %.4f (%d bins): %.1f%% foreground",
        threshold, nbins, 100.0 * mask.mean(),
    )
    return ThresholdResult(mask=mask, threshold=threshold)

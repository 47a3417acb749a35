"""
Input normalization and color-contrast enhancement.

The contrast image is a fixed linear combination of the (individually
rescaled) color channels. The default weights average red and green (a
yellow response) and subtract blue, which separates yellowish organisms from
a blue background as far as a linear map can. Other foreground/background
color pairs only need different weights.

Usage:
    from tadseg.preprocessing import normalize_image, enhance_channel_contrast

    rgb = normalize_image(raw_uint8)           # float64 in [0, 1]
    gray = enhance_channel_contrast(rgb)       # single channel in [0, 1]
    gray = enhance_channel_contrast(rgb, weights=(1.0, -1.0, 0.0))  # red vs green
"""

from typing import Sequence

import numpy as np

from tadseg.utils.errors import InvalidInputError
from tadseg.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHANNEL_WEIGHTS = (0.5, 0.5, -1.0)


def rescale_unit(image: np.ndarray) -> np.ndarray:
    """
    Linearly map the observed [min, max] of an array onto [0, 1].

    A constant array maps to all zeros.

    Args:
        image: Numeric array of any shape

    Returns:
        float64 array of the same shape
    """
    img = np.asarray(image, dtype=np.float64)
    if img.size == 0:
        return img.copy()
    img_min, img_max = img.min(), img.max()
    if img_max - img_min > 1e-12:
        return (img - img_min) / (img_max - img_min)
    return np.zeros(img.shape, dtype=np.float64)


def normalize_image(image: np.ndarray) -> np.ndarray:
    """
    Validate a decoded color image and convert it to float64 in [0, 1].

    Unsigned integer images are divided by their dtype maximum (255 for
    uint8). Floating point images must already lie in [0, 1]. A fourth
    (alpha) channel is dropped.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4)

    Returns:
        New float64 array of shape (H, W, 3)

    Raises:
        InvalidInputError: If the array is not a non-empty 3-channel image of
            a supported dtype with finite values in range
    """
    img = np.asarray(image)

    if img.ndim != 3:
        raise InvalidInputError(
            f"image has {img.ndim} dimension(s), shape {img.shape}",
            invariant="array of shape (rows, cols, 3)",
        )
    if img.shape[2] == 4:
        logger.debug("Dropping alpha channel")
        img = img[:, :, :3]
    if img.shape[2] != 3:
        raise InvalidInputError(
            f"image has {img.shape[2]} channel(s)",
            invariant="exactly 3 color channels",
        )
    if img.shape[0] == 0 or img.shape[1] == 0:
        raise InvalidInputError(
            f"image has zero area, shape {img.shape}",
            invariant="at least one row and one column",
        )

    if np.issubdtype(img.dtype, np.unsignedinteger):
        normalized = img.astype(np.float64) / np.iinfo(img.dtype).max
    elif np.issubdtype(img.dtype, np.floating):
        normalized = img.astype(np.float64)
        if not np.all(np.isfinite(normalized)):
            raise InvalidInputError(
                "image contains NaN or infinite values",
                invariant="finite samples",
            )
        if normalized.min() < 0.0 or normalized.max() > 1.0:
            raise InvalidInputError(
                f"floating point samples span [{normalized.min():g}, {normalized.max():g}]",
                invariant="floating point samples in [0, 1]",
            )
    else:
        raise InvalidInputError(
            f"unsupported dtype {img.dtype}",
            invariant="unsigned integer or floating point samples",
        )

    if not np.all(np.isfinite(normalized)):
        raise InvalidInputError(
            "normalized image contains non-finite values",
            invariant="finite samples",
        )

    return normalized


def enhance_channel_contrast(
    image: np.ndarray,
    weights: Sequence[float] = DEFAULT_CHANNEL_WEIGHTS,
) -> np.ndarray:
    """
    Build a single-channel image in which foreground and background separate.

    Each channel is first rescaled to span its own [min, max], then the
    channels are combined with ``weights`` and the result is rescaled to
    [0, 1]. With the default weights this is ``(red + green) / 2 - blue``.

    Args:
        image: Normalized (H, W, 3) image in [0, 1]
        weights: (red, green, blue) weights

    Returns:
        (H, W) float64 image in [0, 1]
    """
    if len(weights) != image.shape[2]:
        raise ValueError(f"expected {image.shape[2]} channel weights, got {len(weights)}")

    channels = [rescale_unit(image[:, :, c]) for c in range(image.shape[2])]
    intensity = np.zeros(image.shape[:2], dtype=np.float64)
    for weight, channel in zip(weights, channels):
        intensity += weight * channel

    return rescale_unit(intensity)

"""
Image loading and overlay rendering.

Usage:
    from tadseg.io.image_io import load_image, save_overlay

    image = load_image('images/1.tiff')
    result = segment(image)
    save_overlay('out/1_overlay.png', image, result.labels)
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image
from skimage.color import gray2rgb, label2rgb

from tadseg.utils.logging import get_logger

logger = get_logger(__name__)

# Single-channel modes are returned as 2D arrays and rejected by validation
GRAYSCALE_MODES = ('1', 'L', 'LA', 'I', 'I;16', 'I;16B', 'I;16L', 'F')

MASK_COLOR = (0.0, 1.0, 0.0)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Decode an image file into a numpy array.

    RGB and RGBA files are returned as-is (uint8); palette, CMYK and other
    color modes are converted to RGB. Grayscale files stay 2D.

    Args:
        path: Image file (TIFF, PNG, JPEG, ...)

    Returns:
        numpy array of shape (H, W, 3), (H, W, 4) or (H, W)

    Raises:
        FileNotFoundError: If the file does not exist
        PIL.UnidentifiedImageError: If the file cannot be decoded
    """
    path = Path(path)
    with Image.open(path) as img:
        if img.mode not in ('RGB', 'RGBA') and img.mode not in GRAYSCALE_MODES:
            logger.debug("Converting %s from mode %s to RGB", path.name, img.mode)
            img = img.convert('RGB')
        image = np.array(img)
    logger.debug("Loaded %s: shape=%s dtype=%s", path.name, image.shape, image.dtype)
    return image


def to_uint8(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to uint8 for saving.

    Booleans map to 0/255, floats in [0, 1] are scaled by 255 and clipped,
    uint8 passes through.
    """
    image = np.asarray(image)
    if image.dtype == np.uint8:
        return image
    if image.dtype == bool:
        return image.astype(np.uint8) * 255
    return (np.clip(image.astype(np.float64), 0.0, 1.0) * 255).round().astype(np.uint8)


def _as_float_rgb(image: np.ndarray) -> np.ndarray:
    """Float [0, 1] copy of an RGB(A) or grayscale image, alpha dropped."""
    image = np.asarray(image)
    if image.ndim == 3 and image.shape[2] == 4:
        image = image[:, :, :3]
    if np.issubdtype(image.dtype, np.unsignedinteger):
        return image.astype(np.float64) / np.iinfo(image.dtype).max
    if image.dtype == bool:
        return image.astype(np.float64)
    return np.clip(image.astype(np.float64), 0.0, 1.0)


def render_labels(labels: np.ndarray) -> np.ndarray:
    """Color each label on a black background; returns uint8 RGB."""
    return to_uint8(label2rgb(np.asarray(labels), bg_label=0, bg_color=(0, 0, 0)))


def render_overlay(
    image: np.ndarray,
    labels: np.ndarray,
    alpha: float = 0.4,
    colors: Optional[Sequence[Tuple[float, float, float]]] = None,
) -> np.ndarray:
    """
    Blend colored labels over the original image.

    Background pixels (label 0) keep their original color.

    Args:
        image: Original image (RGB, RGBA or grayscale; any dtype load_image returns)
        labels: Label map with the same height and width
        alpha: Opacity of the label colors
        colors: Optional color cycle; defaults to the skimage label colors

    Returns:
        uint8 RGB array
    """
    base = _as_float_rgb(image)
    if base.ndim == 2:
        base = gray2rgb(base)
    labels = np.asarray(labels)
    if labels.shape != base.shape[:2]:
        raise ValueError(f"labels shape {labels.shape} does not match image shape {base.shape[:2]}")

    kwargs = {"colors": list(colors)} if colors is not None else {}
    label_colors = label2rgb(labels, bg_label=0, **kwargs)

    overlay = base.copy()
    foreground = labels > 0
    overlay[foreground] = alpha * label_colors[foreground] + (1 - alpha) * base[foreground]
    return to_uint8(overlay)


def render_mask_overlay(
    image: np.ndarray,
    mask: np.ndarray,
    color: Sequence[float] = MASK_COLOR,
    alpha: float = 0.4,
) -> np.ndarray:
    """Blend a binary mask in a single color over an image; returns uint8 RGB."""
    return render_overlay(image, np.asarray(mask, dtype=np.int32), alpha=alpha, colors=[tuple(color)])


def save_image(path: Union[str, Path], image: np.ndarray) -> Path:
    """Write an array as an image file; parent directories are created."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(to_uint8(image)).save(path)
    return path


def save_overlay(
    path: Union[str, Path],
    image: np.ndarray,
    labels: np.ndarray,
    alpha: float = 0.4,
) -> Path:
    """
    Render and save the label overlay of an image.

    Returns:
        Path to the saved file
    """
    path = save_image(path, render_overlay(image, labels, alpha=alpha))
    logger.debug("Saved overlay: %s", path)
    return path

"""
I/O for the segmentation pipeline.

Provides:
- Image loading with PIL
- Label and mask overlays for inspection
"""

from .image_io import (
    load_image,
    to_uint8,
    render_labels,
    render_overlay,
    render_mask_overlay,
    save_image,
    save_overlay,
)

__all__ = [
    'load_image',
    'to_uint8',
    'render_labels',
    'render_overlay',
    'render_mask_overlay',
    'save_image',
    'save_overlay',
]

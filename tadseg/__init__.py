"""
Tadpole segmentation package.

Splits a color micrograph of touching or near-touching tadpoles on a
contrasting background into one labelled region per organism and reports
the region areas in pixels.

Usage:
    from tadseg import segment
    from tadseg.io import load_image, save_overlay
    from tadseg.utils import SegmentationConfig, setup_logging

    image = load_image('images/1.tiff')
    result = segment(image)
    print(result.stats.summary())
"""

# Version
__version__ = "0.1.0"

from tadseg.processing.pipeline import SegmentationResult, segment

__all__ = [
    "segment",
    "SegmentationResult",
    "io",
    "detection",
    "processing",
    "preprocessing",
    "reporting",
    "utils",
    "cli",
]

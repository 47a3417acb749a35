"""
Preprocessing stages: turn a decoded color micrograph into a corrected
single-channel intensity image.

Includes:
- color: input validation, per-channel rescaling, weighted channel contrast
- illumination: top-hat background removal
"""

from .color import (
    DEFAULT_CHANNEL_WEIGHTS,
    rescale_unit,
    normalize_image,
    enhance_channel_contrast,
)

from .illumination import (
    estimate_background,
    correct_illumination,
)

__all__ = [
    # Color
    'DEFAULT_CHANNEL_WEIGHTS',
    'rescale_unit',
    'normalize_image',
    'enhance_channel_contrast',
    # Illumination
    'estimate_background',
    'correct_illumination',
]

"""
Detection stages: binarization, watershed markers and marker-controlled
watershed.

Includes:
- threshold: Otsu binarization
- markers: foreground (eroded organisms) and background (skeleton) markers
- watershed: gradient, minima imposition, flooding, border clearing
"""

from .threshold import (
    DEFAULT_BINS,
    ThresholdResult,
    intensity_histogram,
    compute_otsu_threshold,
    binarize,
)

from .markers import (
    MarkerSet,
    foreground_markers,
    background_markers,
    generate_markers,
)

from .watershed import (
    gradient_magnitude,
    impose_minima,
    watershed_segment,
)

__all__ = [
    # Threshold
    'DEFAULT_BINS',
    'ThresholdResult',
    'intensity_histogram',
    'compute_otsu_threshold',
    'binarize',
    # Markers
    'MarkerSet',
    'foreground_markers',
    'background_markers',
    'generate_markers',
    # Watershed
    'gradient_magnitude',
    'impose_minima',
    'watershed_segment',
]

"""
Pipeline orchestration and label post-processing.

Provides:
- segment(): the full pipeline from color image to labels and statistics
- Label post-processing: renumbering, per-label dilation, size filtering
- Stage observers for inspecting intermediate images
"""

from .labels import (
    relabel_sequential,
    dilate_labels,
    remove_small_labels,
    finalize_labels,
)

from .observers import (
    STAGES,
    StageRecorder,
    DebugImageWriter,
)

from .pipeline import (
    SegmentationResult,
    segment,
)

__all__ = [
    # Labels
    'relabel_sequential',
    'dilate_labels',
    'remove_small_labels',
    'finalize_labels',
    # Observers
    'STAGES',
    'StageRecorder',
    'DebugImageWriter',
    # Pipeline
    'SegmentationResult',
    'segment',
]

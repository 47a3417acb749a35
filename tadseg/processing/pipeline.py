"""
Segmentation pipeline: color micrograph in, labelled organisms and area
statistics out.

Stages, in order:
1. Input validation and normalization to float [0, 1]
2. Channel contrast (yellow minus blue by default)
3. Illumination correction (white top-hat)
4. Otsu binarization
5. Mask refinement (gap closing, small-component removal, hole filling)
6. Foreground and background markers
7. Marker-controlled watershed
8. Label post-processing (renumbering, boundary recovery, size filter)
9. Area statistics

Usage:
    from tadseg.processing.pipeline import segment
    from tadseg.utils.config import SegmentationConfig

    result = segment(image)
    result.labels          # int32 label map, 0 = background
    result.stats.summary() # count, min/mean/max area

    result = segment(image, SegmentationConfig(top_hat_radius=24))
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

import numpy as np

from tadseg.detection.markers import MarkerSet, generate_markers
from tadseg.detection.threshold import binarize
from tadseg.detection.watershed import watershed_segment
from tadseg.preprocessing.color import enhance_channel_contrast, normalize_image
from tadseg.preprocessing.illumination import correct_illumination
from tadseg.processing.labels import finalize_labels
from tadseg.processing.observers import (
    STAGE_BACKGROUND_MARKERS,
    STAGE_BINARY,
    STAGE_CONTRAST,
    STAGE_CORRECTED,
    STAGE_FOREGROUND_MARKERS,
    STAGE_INPUT,
    STAGE_LABELS,
    STAGE_REFINED,
    STAGE_WATERSHED,
)
from tadseg.reporting.stats import RegionStats, compute_region_stats
from tadseg.utils.config import SegmentationConfig
from tadseg.utils.logging import ProcessingTimer, get_logger
from tadseg.utils.mask_cleanup import refine_mask

logger = get_logger(__name__)

Observer = Callable[[str, np.ndarray], None]


@dataclass
class SegmentationResult:
    """
    Output of one pipeline run.

    Attributes:
        labels: int32 label map; positive labels are exactly 1..K
        stats: Per-region areas and aggregates
        threshold: Otsu threshold applied to the corrected image
        config: Configuration used
        markers: Foreground and background markers fed to the watershed
        degenerate: True when the corrected image was constant
        duration: Wall time of the run in seconds
    """

    labels: np.ndarray
    stats: RegionStats
    threshold: float
    config: SegmentationConfig
    markers: Optional[MarkerSet] = None
    degenerate: bool = False
    duration: Optional[float] = None

    @property
    def count(self) -> int:
        return self.stats.count

    def to_dict(self) -> Dict[str, Any]:
        """Statistics and run parameters, JSON serializable (no arrays)."""
        return {
            "stats": self.stats.to_dict(),
            "threshold": self.threshold,
            "degenerate": self.degenerate,
            "duration": self.duration,
            "config": self.config.to_dict(),
        }


def _resolve_config(
    config: Optional[Union[SegmentationConfig, Mapping[str, Any]]],
) -> SegmentationConfig:
    if config is None:
        return SegmentationConfig()
    if isinstance(config, SegmentationConfig):
        return config
    return SegmentationConfig.from_dict(dict(config))


def _notify(observers, stage: str, array: np.ndarray) -> None:
    for observer in observers:
        try:
            observer(stage, array)
        except Exception as e:
            logger.warning("Observer %r failed at stage '%s': %s", observer, stage, e)


def segment(
    image: np.ndarray,
    config: Optional[Union[SegmentationConfig, Mapping[str, Any]]] = None,
    observers: Optional[Iterable[Observer]] = None,
) -> SegmentationResult:
    """
    Segment organisms in a color micrograph.

    Args:
        image: (H, W, 3) RGB array, unsigned integer or float in [0, 1].
            A 4th alpha channel is ignored. The array is not modified.
        config: SegmentationConfig or dict of overrides (default: defaults)
        observers: Callables ``(stage, array)`` invoked after each stage

    Returns:
        SegmentationResult with the label map and area statistics

    Raises:
        InvalidInputError: If the image violates the input contract
        ConfigValidationError: If a config dict holds invalid values
    """
    config = _resolve_config(config)
    observers = list(observers or [])

    rgb = normalize_image(image)
    height, width = rgb.shape[:2]
    _notify(observers, STAGE_INPUT, rgb)

    with ProcessingTimer(logger, f"segmentation ({width}x{height})", level=logging.DEBUG) as timer:
        contrast = enhance_channel_contrast(rgb, config.channel_weights)
        _notify(observers, STAGE_CONTRAST, contrast)

        corrected = correct_illumination(contrast, config.top_hat_radius)
        _notify(observers, STAGE_CORRECTED, corrected)

        thresholded = binarize(corrected, config.otsu_bins)
        _notify(observers, STAGE_BINARY, thresholded.mask)

        refined = refine_mask(
            thresholded.mask,
            close_gap_radius=config.close_gap_radius,
            min_area=config.min_area_binary,
        )
        _notify(observers, STAGE_REFINED, refined)

        markers = generate_markers(
            refined,
            erode_radius=config.foreground_erode_radius,
            min_area_foreground=config.min_area_foreground,
            dilate_radius=config.background_dilate_radius,
            min_area_background=config.min_area_background_skeleton,
        )
        _notify(observers, STAGE_FOREGROUND_MARKERS, markers.foreground)
        _notify(observers, STAGE_BACKGROUND_MARKERS, markers.background)

        basins = watershed_segment(
            corrected,
            markers.combined,
            connectivity=config.watershed_connectivity,
        )
        _notify(observers, STAGE_WATERSHED, basins)

        labels = finalize_labels(
            basins,
            min_area=config.min_area_final,
            workers=config.label_dilation_workers,
        )
        _notify(observers, STAGE_LABELS, labels)

        stats = compute_region_stats(labels)

    logger.info(
        "Segmented %dx%d image: %d region(s) in %.2fs",
        width, height, stats.count, timer.duration,
    )

    return SegmentationResult(
        labels=labels,
        stats=stats,
        threshold=thresholded.threshold,
        config=config,
        markers=markers,
        degenerate=thresholded.degenerate,
        duration=timer.duration,
    )

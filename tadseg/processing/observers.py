"""
Stage observers: side channels that see every intermediate image.

An observer is any callable ``(stage, array) -> None``. The pipeline calls it
after each stage with the stage output; observers never change the result.

Usage:
    from tadseg.processing.observers import DebugImageWriter, StageRecorder

    recorder = StageRecorder()
    writer = DebugImageWriter('debug/1', prefix='1_')
    result = segment(image, observers=[recorder, writer])

    recorder['refined']  # copy of the refined mask
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from tadseg.detection.threshold import intensity_histogram
from tadseg.io.image_io import render_labels, render_mask_overlay, save_image
from tadseg.utils.logging import get_logger

logger = get_logger(__name__)

# Stage names, in pipeline order
STAGE_INPUT = "input"
STAGE_CONTRAST = "contrast"
STAGE_CORRECTED = "corrected"
STAGE_BINARY = "binary"
STAGE_REFINED = "refined"
STAGE_FOREGROUND_MARKERS = "foreground_markers"
STAGE_BACKGROUND_MARKERS = "background_markers"
STAGE_WATERSHED = "watershed"
STAGE_LABELS = "labels"

STAGES = (
    STAGE_INPUT,
    STAGE_CONTRAST,
    STAGE_CORRECTED,
    STAGE_BINARY,
    STAGE_REFINED,
    STAGE_FOREGROUND_MARKERS,
    STAGE_BACKGROUND_MARKERS,
    STAGE_WATERSHED,
    STAGE_LABELS,
)


class StageRecorder:
    """
    Keep a copy of each stage output in memory.

    Args:
        stages: Stage names to record (default: all)
    """

    def __init__(self, stages: Optional[Iterable[str]] = None):
        self.stages = set(stages) if stages is not None else None
        self.images: Dict[str, np.ndarray] = {}

    def __call__(self, stage: str, array: np.ndarray) -> None:
        if self.stages is None or stage in self.stages:
            self.images[stage] = np.array(array, copy=True)

    def __getitem__(self, stage: str) -> np.ndarray:
        return self.images[stage]

    def __contains__(self, stage: str) -> bool:
        return stage in self.images

    @property
    def names(self) -> List[str]:
        """Recorded stage names in the order they arrived."""
        return list(self.images)


class DebugImageWriter:
    """
    Write every stage output as a PNG into a directory.

    Masks are drawn in green over the corrected grayscale image, label maps
    in one color per label. For the corrected image a log-scale intensity
    histogram is saved as well: most pixels sit in the dark background peak,
    the organisms form a smaller hill to the right.

    Args:
        output_dir: Directory for the images (created if missing)
        prefix: File name prefix, e.g. the image stem
        histogram_bins: Bins of the intensity histogram
    """

    def __init__(
        self,
        output_dir: Union[str, Path],
        prefix: str = "",
        histogram_bins: int = 256,
    ):
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.histogram_bins = histogram_bins
        self.written: List[Path] = []
        self._gray: Optional[np.ndarray] = None

    def _path(self, name: str) -> Path:
        index = STAGES.index(name) if name in STAGES else len(STAGES)
        return self.output_dir / f"{self.prefix}{index:02d}_{name}.png"

    def __call__(self, stage: str, array: np.ndarray) -> None:
        array = np.asarray(array)
        if stage == STAGE_CORRECTED:
            self._gray = array
            self.written.append(self.save_histogram(array))

        if array.dtype == bool and self._gray is not None and self._gray.shape == array.shape:
            image = render_mask_overlay(self._gray, array)
        elif np.issubdtype(array.dtype, np.integer) and array.ndim == 2:
            image = render_labels(array)
        else:
            image = array

        path = save_image(self._path(stage), image)
        self.written.append(path)
        logger.debug("Debug image: %s", path)

    def save_histogram(self, image: np.ndarray) -> Path:
        """Plot the intensity histogram of ``image`` with a log-scale count axis."""
        counts, centers = intensity_histogram(image, self.histogram_bins)
        width = (centers[1] - centers[0]) if len(centers) > 1 else 1.0 / self.histogram_bins

        fig, ax = plt.subplots(figsize=(8, 5))
        ax.bar(centers, counts, width=width, color='steelblue', edgecolor='none')
        ax.set_yscale('log')
        ax.set_xlabel('Intensity')
        ax.set_ylabel('Pixels (log scale)')
        ax.set_title('Corrected intensity histogram')
        ax.grid(True, alpha=0.3)

        path = self.output_dir / f"{self.prefix}histogram.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        plt.tight_layout()
        plt.savefig(path, dpi=100, facecolor='white')
        plt.close(fig)
        return path

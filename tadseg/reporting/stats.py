"""
Area statistics for segmentation results.

Provides per-region pixel areas with min/mean/max aggregates, a printable
table, and pooled summaries across several images.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np


@dataclass(frozen=True)
class RegionStats:
    """
    Container for per-region area statistics.

    Attributes:
        areas: Mapping label -> pixel count, in ascending label order
        count: Number of regions K
        min_area: Smallest area (None when K = 0)
        mean_area: Arithmetic mean area (None when K = 0)
        max_area: Largest area (None when K = 0)
    """

    areas: Dict[int, int] = field(default_factory=dict)
    count: int = 0
    min_area: Optional[int] = None
    mean_area: Optional[float] = None
    max_area: Optional[int] = None

    def summary(self) -> Dict[str, Any]:
        """Aggregates only: count, min, mean and max area."""
        return {
            "count": self.count,
            "min_area": self.min_area,
            "mean_area": self.mean_area,
            "max_area": self.max_area,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert statistics to dictionary for JSON serialization."""
        result = self.summary()
        result["areas"] = {str(label): area for label, area in self.areas.items()}
        result["distribution"] = _compute_distribution_stats(list(self.areas.values()))
        return result


def compute_region_stats(labels: np.ndarray) -> RegionStats:
    """
    Count pixels per positive label and aggregate the areas.

    Args:
        labels: Non-negative integer label map (0 = background)

    Returns:
        RegionStats; aggregates are None when there are no regions

    Example:
        >>> labels = np.array([[0, 1, 1], [2, 2, 2]])
        >>> compute_region_stats(labels).summary()
        {'count': 2, 'min_area': 2, 'mean_area': 2.5, 'max_area': 3}
    """
    labels = np.asarray(labels)
    if labels.size == 0 or not labels.any():
        return RegionStats()

    counts = np.bincount(labels.ravel())
    present = np.flatnonzero(counts)
    present = present[present > 0]
    areas = {int(label): int(counts[label]) for label in present}

    values = np.array(list(areas.values()))
    return RegionStats(
        areas=areas,
        count=len(areas),
        min_area=int(values.min()),
        mean_area=float(values.mean()),
        max_area=int(values.max()),
    )


def format_stats_table(
    stats: RegionStats,
    pixel_size_um: Optional[float] = None,
    title: Optional[str] = None,
) -> str:
    """
    Render region areas and aggregates as a plain-text table.

    Args:
        stats: Statistics to render
        pixel_size_um: Pixel edge length in microns; adds an um^2 column
        title: Optional heading (e.g. the image file name)

    Returns:
        Multi-line string
    """
    scale = pixel_size_um ** 2 if pixel_size_um else None

    def row(name: str, value: Optional[float]) -> str:
        if value is None:
            return f"{name:>8}  {'-':>10}" + (f"  {'-':>12}" if scale else "")
        line = f"{name:>8}  {value:>10.1f}" if isinstance(value, float) else f"{name:>8}  {value:>10}"
        if scale:
            line += f"  {value * scale:>12.2f}"
        return line

    header = f"{'region':>8}  {'area_px':>10}" + (f"  {'area_um2':>12}" if scale else "")
    lines: List[str] = []
    if title:
        lines.append(title)
    lines.append(header)
    lines.append("-" * len(header))
    for label, area in stats.areas.items():
        lines.append(row(str(label), area))
    if stats.areas:
        lines.append("-" * len(header))
    lines.append(row("min", stats.min_area))
    lines.append(row("mean", stats.mean_area))
    lines.append(row("max", stats.max_area))
    lines.append(f"{'count':>8}  {stats.count:>10}")
    return "\n".join(lines)


def compute_batch_summary(image_stats: Mapping[str, RegionStats]) -> Dict[str, Any]:
    """
    Pool region statistics across several images.

    Args:
        image_stats: Mapping image name -> RegionStats

    Returns:
        Dict with per-image counts, total region count and the pooled area
        distribution (empty when no image has regions)
    """
    if not image_stats:
        return {}

    pooled = [area for stats in image_stats.values() for area in stats.areas.values()]
    return {
        "n_images": len(image_stats),
        "region_counts": {name: stats.count for name, stats in image_stats.items()},
        "total_regions": len(pooled),
        "pooled_area": _compute_distribution_stats(pooled),
    }


def _compute_distribution_stats(values: List[float]) -> Dict[str, float]:
    """
    Compute standard distribution statistics for a list of values.

    Args:
        values: List of numeric values

    Returns:
        Dict with mean, std, min, max, median, q25, q75
    """
    if not values:
        return {}

    arr = np.array(values)
    return {
        "mean": float(np.mean(arr)),
        "std": float(np.std(arr)),
        "min": float(np.min(arr)),
        "max": float(np.max(arr)),
        "median": float(np.median(arr)),
        "q25": float(np.percentile(arr, 25)),
        "q75": float(np.percentile(arr, 75)),
        "count": len(values),
    }

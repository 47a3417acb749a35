"""
Reporting: per-region area statistics and summary tables.
"""

from .stats import (
    RegionStats,
    compute_region_stats,
    format_stats_table,
    compute_batch_summary,
)

__all__ = [
    'RegionStats',
    'compute_region_stats',
    'format_stats_table',
    'compute_batch_summary',
]

"""
Utility modules for the segmentation pipeline.

Provides:
- Configuration management and validation
- Logging utilities
- Exceptions
- Binary mask cleanup (also the mask refinement stage)
"""

from .config import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    SegmentationConfig,
    validate_config,
    load_config,
    save_config,
    get_config_summary,
)

from .errors import (
    SegmentationError,
    InvalidInputError,
)

from .logging import (
    get_logger,
    setup_logging,
    log_parameters,
    ProcessingTimer,
)

from .mask_cleanup import (
    remove_small_components,
    fill_holes,
    dilate_mask,
    erode_mask,
    refine_mask,
)

__all__ = [
    # Config
    'DEFAULT_CONFIG',
    'ConfigValidationError',
    'SegmentationConfig',
    'validate_config',
    'load_config',
    'save_config',
    'get_config_summary',
    # Errors
    'SegmentationError',
    'InvalidInputError',
    # Logging
    'get_logger',
    'setup_logging',
    'log_parameters',
    'ProcessingTimer',
    # Mask cleanup
    'remove_small_components',
    'fill_holes',
    'dilate_mask',
    'erode_mask',
    'refine_mask',
]

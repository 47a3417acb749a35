"""
Configuration for the tadpole segmentation pipeline.

Defaults were tuned on 320x240 micrographs of yellowish tadpoles on a blue
background. For larger images the radii scale linearly with the image size and
the areas quadratically (double the size: double the radii, quadruple the
areas); ``SegmentationConfig.scaled`` does exactly that.

Usage:
    from tadseg.utils.config import SegmentationConfig, load_config, save_config

    # Defaults
    config = SegmentationConfig()

    # JSON file merged over defaults (snake_case or camelCase keys)
    config = load_config('/path/to/params.json')

    # Override a few values
    config = config.replace(min_area_final=80)

    save_config('/path/to/run/params.json', config)
"""

import copy
import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    # Illumination correction: disk radius, about half the organism width
    "top_hat_radius": 12,
    # Mask refinement
    "close_gap_radius": 1,
    "min_area_binary": 25,
    # Foreground markers
    "foreground_erode_radius": 5,
    "min_area_foreground": 25,
    # Background markers
    "background_dilate_radius": 3,
    "min_area_background_skeleton": 25,
    # Label post-processing
    "min_area_final": 50,
    # Weights for (red, green, blue): yellow foreground minus blue background
    "channel_weights": [0.5, 0.5, -1.0],
    # Histogram bins for Otsu's method
    "otsu_bins": 256,
    # 1 = 4-neighbourhood, 2 = 8-neighbourhood flooding
    "watershed_connectivity": 2,
    # Threads for per-label dilation
    "label_dilation_workers": 1,
}

# Names used by the original parameter sheet
CAMEL_CASE_ALIASES: Dict[str, str] = {
    "topHatRadius": "top_hat_radius",
    "closeGapRadius": "close_gap_radius",
    "minAreaBinary": "min_area_binary",
    "foregroundErodeRadius": "foreground_erode_radius",
    "minAreaForeground": "min_area_foreground",
    "backgroundDilateRadius": "background_dilate_radius",
    "minAreaBackgroundSkeleton": "min_area_background_skeleton",
    "minAreaFinal": "min_area_final",
    "channelWeights": "channel_weights",
    "otsuBins": "otsu_bins",
    "watershedConnectivity": "watershed_connectivity",
    "labelDilationWorkers": "label_dilation_workers",
}

RADIUS_KEYS = (
    "top_hat_radius",
    "close_gap_radius",
    "foreground_erode_radius",
    "background_dilate_radius",
)

AREA_KEYS = (
    "min_area_binary",
    "min_area_foreground",
    "min_area_background_skeleton",
    "min_area_final",
)

# Validation constraints for each scalar key
_VALIDATION_RULES: Dict[str, Dict[str, Any]] = {
    "top_hat_radius": {"min": 1, "max": 1000, "type": int},
    "close_gap_radius": {"min": 0, "max": 100, "type": int},
    "min_area_binary": {"min": 0, "max": 10_000_000, "type": int},
    "foreground_erode_radius": {"min": 0, "max": 100, "type": int},
    "min_area_foreground": {"min": 0, "max": 10_000_000, "type": int},
    "background_dilate_radius": {"min": 0, "max": 100, "type": int},
    "min_area_background_skeleton": {"min": 0, "max": 10_000_000, "type": int},
    "min_area_final": {"min": 0, "max": 10_000_000, "type": int},
    "otsu_bins": {"min": 2, "max": 65536, "type": int},
    "watershed_connectivity": {"min": 1, "max": 2, "type": int},
    "label_dilation_workers": {"min": 1, "max": 64, "type": int},
}


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def normalize_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map camelCase aliases to their snake_case names.

    Raises:
        ConfigValidationError: If a key and its alias are both present
    """
    normalized: Dict[str, Any] = {}
    for key, value in config.items():
        name = CAMEL_CASE_ALIASES.get(key, key)
        if name in normalized:
            raise ConfigValidationError(f"{key}: duplicate of '{name}'")
        normalized[name] = value
    return normalized


def _validate_range(
    value: Any,
    key: str,
    min_val: Union[int, float],
    max_val: Union[int, float],
    expected_type: type,
) -> List[str]:
    """
    Validate a single value is within expected range and type.

    Returns:
        List of error messages (empty if valid)
    """
    if isinstance(value, bool) or not isinstance(value, expected_type):
        return [f"{key}: expected {expected_type.__name__}, got {type(value).__name__}"]
    if value < min_val or value > max_val:
        return [f"{key}: value {value} out of range [{min_val}, {max_val}]"]
    return []


def _validate_channel_weights(weights: Any, key: str = "channel_weights") -> List[str]:
    """Validate a [red, green, blue] weight triple."""
    if not isinstance(weights, (list, tuple)):
        return [f"{key}: expected list, got {type(weights).__name__}"]
    if len(weights) != 3:
        return [f"{key}: expected 3 values [R, G, B], got {len(weights)}"]
    errors = []
    for i, val in enumerate(weights):
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            errors.append(f"{key}[{i}]: expected numeric type, got {type(val).__name__}")
    if not errors and all(val == 0 for val in weights):
        errors.append(f"{key}: at least one weight must be non-zero")
    return errors


def validate_config(
    config: Optional[Dict[str, Any]] = None,
    raise_on_error: bool = False,
) -> Dict[str, Union[bool, List[str]]]:
    """
    Validate a configuration dictionary against expected types and ranges.

    Args:
        config: Config dict (snake_case or camelCase keys). If None, validates
            DEFAULT_CONFIG.
        raise_on_error: If True, raises ConfigValidationError when any
            check fails. If False (default), returns all errors.

    Returns:
        Dict with validation results:
            - 'valid': bool, True if all validations passed
            - 'errors': List of error message strings
            - 'warnings': List of warning message strings

    Raises:
        ConfigValidationError: If raise_on_error=True and validation fails

    Example:
        >>> result = validate_config({"top_hat_radius": 0})
        >>> result['errors']
        ['top_hat_radius: value 0 out of range [1, 1000]']
    """
    errors: List[str] = []
    warnings: List[str] = []

    if config is None:
        config = DEFAULT_CONFIG

    try:
        config = normalize_keys(config)
    except ConfigValidationError as e:
        errors.append(str(e))
        config = {}

    for key in config:
        if key not in DEFAULT_CONFIG:
            errors.append(f"{key}: unknown configuration key")

    for key, rule in _VALIDATION_RULES.items():
        if key in config:
            errors.extend(_validate_range(
                config[key], key, rule["min"], rule["max"], rule["type"]
            ))

    if "channel_weights" in config:
        errors.extend(_validate_channel_weights(config["channel_weights"]))

    if config.get("foreground_erode_radius") == 0:
        warnings.append(
            "foreground_erode_radius is 0: touching organisms share one "
            "foreground marker and will not be separated"
        )

    result = {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }

    if raise_on_error and errors:
        raise ConfigValidationError(f"Configuration validation failed: {'; '.join(errors)}")

    return result


@dataclass(frozen=True)
class SegmentationConfig:
    """
    Parameters of the segmentation pipeline.

    Attributes:
        top_hat_radius: Disk radius of the top-hat filter (illumination correction)
        close_gap_radius: Disk radius used to close gaps in the binary mask
        min_area_binary: Components of the binary mask smaller than this are dropped
        foreground_erode_radius: Disk radius shrinking organisms into foreground markers
        min_area_foreground: Foreground markers smaller than this are dropped
        background_dilate_radius: Disk radius growing the mask before skeletonizing the background
        min_area_background_skeleton: Background skeleton fragments smaller than this are dropped
        min_area_final: Final regions smaller than this are dropped
        channel_weights: (red, green, blue) weights of the contrast image
        otsu_bins: Histogram bins for Otsu's threshold
        watershed_connectivity: Flooding neighbourhood (1 = 4-connected, 2 = 8-connected)
        label_dilation_workers: Threads used for per-label dilation
    """
    top_hat_radius: int = DEFAULT_CONFIG["top_hat_radius"]
    close_gap_radius: int = DEFAULT_CONFIG["close_gap_radius"]
    min_area_binary: int = DEFAULT_CONFIG["min_area_binary"]
    foreground_erode_radius: int = DEFAULT_CONFIG["foreground_erode_radius"]
    min_area_foreground: int = DEFAULT_CONFIG["min_area_foreground"]
    background_dilate_radius: int = DEFAULT_CONFIG["background_dilate_radius"]
    min_area_background_skeleton: int = DEFAULT_CONFIG["min_area_background_skeleton"]
    min_area_final: int = DEFAULT_CONFIG["min_area_final"]
    channel_weights: Tuple[float, float, float] = field(
        default=tuple(DEFAULT_CONFIG["channel_weights"])
    )
    otsu_bins: int = DEFAULT_CONFIG["otsu_bins"]
    watershed_connectivity: int = DEFAULT_CONFIG["watershed_connectivity"]
    label_dilation_workers: int = DEFAULT_CONFIG["label_dilation_workers"]

    def __post_init__(self):
        validate_config(self.to_dict(), raise_on_error=True)
        object.__setattr__(self, "channel_weights", tuple(float(w) for w in self.channel_weights))

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SegmentationConfig":
        """Build a config from a (possibly partial) dict; missing keys use defaults."""
        validate_config(config, raise_on_error=True)
        return cls(**normalize_keys(config))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with snake_case keys, JSON serializable."""
        result = dataclasses.asdict(self)
        result["channel_weights"] = list(self.channel_weights)
        return result

    def replace(self, **overrides: Any) -> "SegmentationConfig":
        """Copy with some fields changed (camelCase aliases accepted)."""
        merged = self.to_dict()
        merged.update(normalize_keys(overrides))
        return SegmentationConfig.from_dict(merged)

    def scaled(self, factor: float) -> "SegmentationConfig":
        """
        Adapt radii and areas to an image ``factor`` times larger per side.

        Radii scale with ``factor``, areas with ``factor ** 2``.
        """
        if factor <= 0:
            raise ConfigValidationError(f"scale factor must be positive, got {factor}")
        overrides: Dict[str, Any] = {}
        for key in RADIUS_KEYS:
            minimum = _VALIDATION_RULES[key]["min"]
            overrides[key] = max(minimum, int(round(getattr(self, key) * factor)))
        for key in AREA_KEYS:
            overrides[key] = int(round(getattr(self, key) * factor ** 2))
        return self.replace(**overrides)


def load_config(config_path: Optional[Union[str, Path]] = None, **overrides: Any) -> SegmentationConfig:
    """
    Load configuration from a JSON file, merged over DEFAULT_CONFIG.

    Args:
        config_path: JSON file with any subset of the configuration keys.
            If None, only defaults and overrides are used.
        **overrides: Values applied after the file (e.g. from CLI flags)

    Returns:
        Validated SegmentationConfig

    Raises:
        ConfigValidationError: If the file is not a JSON object or values are invalid
        FileNotFoundError: If config_path does not exist
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is not None:
        config_path = Path(config_path)
        with open(config_path, 'r') as f:
            try:
                file_config = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigValidationError(f"{config_path}: invalid JSON ({e})") from e
        if not isinstance(file_config, dict):
            raise ConfigValidationError(
                f"{config_path}: expected a JSON object, got {type(file_config).__name__}"
            )
        config.update(normalize_keys(file_config))

    config.update(normalize_keys({k: v for k, v in overrides.items() if v is not None}))
    return SegmentationConfig.from_dict(config)


def save_config(config_path: Union[str, Path], config: SegmentationConfig) -> Path:
    """
    Save configuration as JSON.

    Args:
        config_path: Destination file; parent directories are created
        config: Configuration to save

    Returns:
        Path to the saved file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    return config_path


def get_config_summary(config: Optional[SegmentationConfig] = None) -> str:
    """
    Human-readable summary of a configuration, grouped by pipeline stage.

    Args:
        config: Configuration to describe (default: SegmentationConfig())

    Returns:
        Multi-line string
    """
    config = config or SegmentationConfig()
    weights = ", ".join(f"{w:g}" for w in config.channel_weights)
    lines = [
        "=" * 40,
        "Segmentation Configuration",
        "=" * 40,
        "",
        "Contrast:",
        f"  channel_weights: [{weights}] (R, G, B)",
        f"  top_hat_radius: {config.top_hat_radius} px",
        f"  otsu_bins: {config.otsu_bins}",
        "",
        "Mask refinement:",
        f"  close_gap_radius: {config.close_gap_radius} px",
        f"  min_area_binary: {config.min_area_binary} px^2",
        "",
        "Markers:",
        f"  foreground_erode_radius: {config.foreground_erode_radius} px",
        f"  min_area_foreground: {config.min_area_foreground} px^2",
        f"  background_dilate_radius: {config.background_dilate_radius} px",
        f"  min_area_background_skeleton: {config.min_area_background_skeleton} px^2",
        "",
        "Watershed and labels:",
        f"  watershed_connectivity: {config.watershed_connectivity}",
        f"  min_area_final: {config.min_area_final} px^2",
        f"  label_dilation_workers: {config.label_dilation_workers}",
    ]
    return "\n".join(lines)

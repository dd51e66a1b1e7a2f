"""Analysis configuration defaults, merging and validation."""
from __future__ import annotations
import json
import math
from pathlib import Path

DEFAULT_SILENCE_CONFIG = {
    "enabled": False,
    "lufs_threshold": -70.0,
    "percentage_threshold": 99.0,
}

DEFAULT_UNDERRUN_CONFIG = {
    "enabled": False,
    "min_samples": 16,
}

DEFAULT_ANALYSIS_CONFIG = {
    "silence": DEFAULT_SILENCE_CONFIG,
    "underrun": DEFAULT_UNDERRUN_CONFIG,
}


def _merge_config(base: dict, overrides: dict | None) -> dict:
    if not overrides:
        return {
            k: (_merge_config(v, None) if isinstance(v, dict) else v)
            for k, v in base.items()
        }
    merged = _merge_config(base, None)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge_config(base[key], value)
        else:
            merged[key] = value
    return merged


def validate_analysis_config(cfg: dict) -> dict:
    """Check thresholds and coerce them to their numeric types."""
    unknown = set(cfg) - set(DEFAULT_ANALYSIS_CONFIG)
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(sorted(unknown))}")
    for section in DEFAULT_ANALYSIS_CONFIG:
        if not isinstance(cfg.get(section), dict):
            raise ValueError(f"Configuration section '{section}' must be an object.")
        unknown_keys = set(cfg[section]) - set(DEFAULT_ANALYSIS_CONFIG[section])
        if unknown_keys:
            raise ValueError(
                f"Unknown key(s) in configuration section '{section}': "
                f"{', '.join(sorted(unknown_keys))}"
            )

    silence = cfg["silence"]
    lufs = float(silence["lufs_threshold"])
    if not math.isfinite(lufs):
        raise ValueError("silence.lufs_threshold must be a finite number.")
    percentage = float(silence["percentage_threshold"])
    if not 0.0 <= percentage <= 100.0:
        raise ValueError("silence.percentage_threshold must be within [0, 100].")
    silence["enabled"] = bool(silence["enabled"])
    silence["lufs_threshold"] = lufs
    silence["percentage_threshold"] = percentage

    underrun = cfg["underrun"]
    min_samples = underrun["min_samples"]
    if isinstance(min_samples, bool) or int(min_samples) != min_samples:
        raise ValueError("underrun.min_samples must be an integer.")
    if int(min_samples) < 1:
        raise ValueError("underrun.min_samples must be at least 1.")
    underrun["enabled"] = bool(underrun["enabled"])
    underrun["min_samples"] = int(min_samples)
    return cfg


def build_analysis_config(overrides: dict | None = None) -> dict:
    """Return validated analysis configuration with defaults applied."""
    return validate_analysis_config(_merge_config(DEFAULT_ANALYSIS_CONFIG, overrides))


def load_config_file(path: str | Path) -> dict:
    """Load configuration overrides from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a JSON object: {path}")
    return data

"""
Configuration module for the year-in-review system.

Single source of truth for:
- Layout geometry (angular sector, donut ratio, chart size)
- Label placement and color override settings
- Logging level

All values can be overridden via environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import os
from typing import Optional

from .schema import LayoutMode


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        result = float(value)
    except ValueError:
        return default
    return result if math.isfinite(result) else default


def _get_env_positive_float(name: str, default: float) -> float:
    value = _get_env_float(name, default)
    return value if value > 0 else default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_positive_int(name: str, default: int) -> int:
    value = _get_env_int(name, default)
    return value if value > 0 else default


def _get_env_mode(name: str, default: LayoutMode) -> LayoutMode:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return LayoutMode(value.strip().lower())
    except ValueError:
        return default


def _get_env_log_level(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip().upper()
    # getLevelName maps registered names to their numeric level
    if value and isinstance(logging.getLevelName(value), int):
        return value
    return default


@dataclass
class Config:
    """
    Runtime configuration for the year-in-review system.

    All fields default from environment variables but can be overridden
    programmatically by constructing Config(...) manually if needed.
    """

    layout_mode: LayoutMode = LayoutMode.RADIAL

    # Chart size in pixels; the donut height is height / donut_ratio
    width: int = 1200
    height: int = 900
    donut_ratio: float = 1.7

    # Angular sector, in degrees clockwise from 12 o'clock
    angle_offset_deg: float = 250.0
    angle_extent_deg: float = 220.0

    # Minimum spacing between two label anchors of different categories
    label_gap_days: int = 7

    # "Name=#hex;Other=#hex", see palette.parse_overrides
    color_overrides: Optional[str] = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """
        Construct a Config object by reading environment variables.

        Environment variables (all optional):
        - YIR_LAYOUT_MODE       (radial/linear)
        - YIR_WIDTH, YIR_HEIGHT (int, pixels)
        - YIR_DONUT_RATIO       (float)
        - YIR_ANGLE_OFFSET_DEG  (float)
        - YIR_ANGLE_EXTENT_DEG  (float)
        - YIR_LABEL_GAP_DAYS    (int)
        - YIR_COLOR_OVERRIDES   (e.g. "Coordination=#3B48B2")
        - YIR_LOG_LEVEL         (DEBUG/INFO/WARNING/...)

        Unparseable values, non-positive sizes and ratios, and unknown
        log levels fall back to the defaults.
        """
        return cls(
            layout_mode=_get_env_mode("YIR_LAYOUT_MODE", LayoutMode.RADIAL),
            width=_get_env_positive_int("YIR_WIDTH", 1200),
            height=_get_env_positive_int("YIR_HEIGHT", 900),
            donut_ratio=_get_env_positive_float("YIR_DONUT_RATIO", 1.7),
            angle_offset_deg=_get_env_float("YIR_ANGLE_OFFSET_DEG", 250.0),
            angle_extent_deg=_get_env_float("YIR_ANGLE_EXTENT_DEG", 220.0),
            label_gap_days=_get_env_int("YIR_LABEL_GAP_DAYS", 7),
            color_overrides=os.getenv("YIR_COLOR_OVERRIDES") or None,
            log_level=_get_env_log_level("YIR_LOG_LEVEL", "INFO"),
        )


# Convenience singleton-style accessor if you want a shared config
_DEFAULT_CONFIG: Optional[Config] = None


def get_config(force_reload: bool = False) -> Config:
    """
    Return a process-wide Config instance.

    Use `force_reload=True` if environment variables changed at runtime
    and you want to refresh.
    """
    global _DEFAULT_CONFIG
    if _DEFAULT_CONFIG is None or force_reload:
        _DEFAULT_CONFIG = Config.from_env()
    return _DEFAULT_CONFIG

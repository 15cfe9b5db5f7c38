"""Runtime configuration for the scanner.

Every tunable lives on :class:`ScanConfig`. Values can be overridden from the
environment with ``FIELDSCAN_<NAME>`` variables, e.g. ``FIELDSCAN_MIN_SUPPORT=4``.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "FIELDSCAN_"


def env_flag(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def env_int(key: str, default: int, min_val: int, max_val: int) -> int:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid integer {key}={raw!r}")
        return default
    return max(min_val, min(max_val, value))


def env_float(key: str, default: float, min_val: float, max_val: float) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid number {key}={raw!r}")
        return default
    return max(min_val, min(max_val, value))


@dataclass
class ScanConfig:
    # frame gate
    sharpness_threshold: float = 100.0

    # aggregation
    history_cap: int = 20
    min_support: int = 3

    # capture resolutions
    coarse_width: int = 320
    fine_width: int = 640

    # fine-pass crop
    crop_target_height: int = 700
    crop_max_width: int = 2000
    preprocess: str = "none"
    use_whitelist: bool = False

    # scheduling, seconds
    blur_delay: float = 0.05
    scanning_delay: float = 0.2
    detecting_delay: float = 0.5
    card_found_delay: float = 1.0
    card_scanning_delay: float = 0.3
    busy_delay: float = 0.1

    # engine
    ocr_timeout: float = 10.0
    lang: str = "eng"
    oem: int = 1
    tesseract_cmd: Optional[str] = None
    tessdata_dir: Optional[str] = None

    # (min, max) clamp for numeric environment overrides
    _BOUNDS = {
        "sharpness_threshold": (0.0, 1e6),
        "history_cap": (1, 1000),
        "min_support": (1, 1000),
        "coarse_width": (64, 4096),
        "fine_width": (64, 8192),
        "crop_target_height": (16, 4096),
        "crop_max_width": (64, 16384),
        "blur_delay": (0.0, 60.0),
        "scanning_delay": (0.0, 60.0),
        "detecting_delay": (0.0, 60.0),
        "card_found_delay": (0.0, 60.0),
        "card_scanning_delay": (0.0, 60.0),
        "busy_delay": (0.0, 60.0),
        "ocr_timeout": (0.0, 600.0),
        "oem": (0, 3),
    }

    @classmethod
    def from_env(cls, **overrides) -> "ScanConfig":
        """Build a config from defaults, then environment, then ``overrides``"""
        cfg = cls()
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            current = getattr(cfg, f.name)
            if isinstance(current, bool):
                setattr(cfg, f.name, env_flag(key, current))
            elif f.name in cls._BOUNDS:
                lo, hi = cls._BOUNDS[f.name]
                if isinstance(current, int):
                    setattr(cfg, f.name, env_int(key, current, int(lo), int(hi)))
                else:
                    setattr(cfg, f.name, env_float(key, current, lo, hi))
            else:
                raw = os.getenv(key)
                if raw is not None and raw.strip():
                    setattr(cfg, f.name, raw.strip())
        for name, value in overrides.items():
            if not hasattr(cfg, name):
                raise ValueError(f"Unknown config option: {name}")
            setattr(cfg, name, value)
        return cfg

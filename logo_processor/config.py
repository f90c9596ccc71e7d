"""Environment-driven settings for logo analysis and variant generation."""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

_OUTPUT_FORMATS = {"png", "jpeg", "webp"}


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning("Invalid integer for %s='%s'; defaulting to %s", name, value, default)
        return default
    if parsed < minimum:
        logger.warning("%s must be >= %s, got %s; defaulting to %s", name, minimum, parsed, default)
        return default
    return parsed


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        logger.warning("Invalid number for %s='%s'; defaulting to %s", name, value, default)
        return default
    if not 0 < parsed <= 1:
        logger.warning("%s must be in (0, 1], got %s; defaulting to %s", name, parsed, default)
        return default
    return parsed


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def resolve_output_format(value: Optional[str], default: str = "png") -> str:
    """Normalise an output format name; ``jpg`` is accepted as ``jpeg``."""
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized == "jpg":
        normalized = "jpeg"
    if normalized in _OUTPUT_FORMATS:
        return normalized
    logger.warning("Unknown output format '%s'; defaulting to %s", value, default)
    return default


MAX_WORKERS = _env_int("LOGO_MAX_WORKERS", 2)
DEFAULT_OUTPUT_FORMAT = resolve_output_format(os.environ.get("LOGO_OUTPUT_FORMAT"))
DEFAULT_OUTPUT_QUALITY = min(_env_int("LOGO_OUTPUT_QUALITY", 90), 100)
COLOR_SAMPLE_SIZE = _env_int("LOGO_COLOR_SAMPLE_SIZE", 50)
COLOR_QUANT_STEP = min(_env_int("LOGO_COLOR_QUANT_STEP", 16), 256)
MAX_DOMINANT_COLORS = _env_int("LOGO_MAX_DOMINANT_COLORS", 5)
PREVIEW_SCALE = _env_float("LOGO_PREVIEW_SCALE", 0.5)
STRICT_PRESETS = _env_bool("LOGO_STRICT_PRESETS")

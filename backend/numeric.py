"""Guards that keep NaN and infinities out of the economic formulas."""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)


def is_valid_number(value: object) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def safe_number(value: object, default: float, label: Optional[str] = None) -> float:
    """Return ``value`` as a float, or ``default`` when it is missing or not finite."""
    if is_valid_number(value):
        return float(value)
    if label:
        logger.debug("Substituting %s for invalid %s=%r", default, label, value)
    return default


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def js_round(value: float) -> int:
    """Round half up, so 2.5 -> 3 (Python's round() would give 2)."""
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int) -> float:
    factor = 10 ** digits
    return js_round(value * factor) / factor

# File: utils/math_utils.py
"""Math and calculation utilities for memberawards.

Functions:
    - round_half_up: Integer rounding with halves rounded up
    - clamp: Bound a value to a range
    - calculate_percentage: Progress percentage as an integer in [0, 100]
    - calculate_segment_percentage: Progress between two thresholds
"""

from __future__ import annotations

import math

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

PERCENT_MAX = 100
PERCENT_MIN = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    Python's round() uses banker's rounding (round(0.5) == 0). Progress
    percentages are shown with halves rounded up, so 12.5 -> 13.

    Examples:
        round_half_up(12.5) → 13
        round_half_up(99.9) → 100
        round_half_up(33.33) → 33
    """
    return math.floor(value + 0.5)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(150, 0, 100) → 100
        clamp(-10, 0, 100) → 0
        clamp(50, 0, 100) → 50
    """
    return max(min_val, min(value, max_val))


def calculate_percentage(current: float, target: float) -> int:
    """Calculate progress percentage as an integer in [0, 100].

    A zero (or negative) target is trivially satisfied and yields 100.

    Args:
        current: Current progress value
        target: Target value

    Returns:
        clamp(round_half_up(100 * current / target), 0, 100)

    Examples:
        calculate_percentage(5, 10) → 50
        calculate_percentage(999, 1000) → 100
        calculate_percentage(25, 10) → 100
        calculate_percentage(3, 0) → 100
    """
    if target <= 0:
        return PERCENT_MAX
    return int(clamp(round_half_up(current * 100 / target), PERCENT_MIN, PERCENT_MAX))


def calculate_segment_percentage(
    current: float,
    lower: float,
    upper: float,
) -> int:
    """Calculate progress from a lower threshold toward an upper threshold.

    Used for "progress toward the next milestone" where the previous completed
    milestone's threshold is the starting line.

    Examples:
        calculate_segment_percentage(7, 5, 10) → 40
        calculate_segment_percentage(3, 5, 10) → 0
    """
    return calculate_percentage(max(0.0, current - lower), upper - lower)

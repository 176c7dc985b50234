# File: utils/__init__.py
"""Pure Python utilities for memberawards.

Submodules:
    - dt_utils: Timestamp helpers and membership-duration arithmetic
    - math_utils: Percentage rounding and clamping

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]

"""Engine modules for memberawards.

Contains the pure computation engines:
- progress_engine: Counter selection, percentage and milestone detection
- eligibility_engine: Award decision (AlreadyAwarded / NotEligible / Eligible)
"""

# Use relative imports within package to avoid mypy module resolution issues
from .eligibility_engine import EligibilityEngine, decide_eligibility
from .progress_engine import ProgressEngine, evaluate_progress

__all__ = [
    "EligibilityEngine",
    "ProgressEngine",
    "decide_eligibility",
    "evaluate_progress",
]

"""Manager modules for memberawards.

Managers orchestrate workflows and coordinate between engines and storage.
"""

from .award_manager import AwardManager

__all__ = [
    "AwardManager",
]

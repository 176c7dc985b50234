# File: __init__.py
"""Achievement and badge progress evaluation for member organizations.

Pure engines compute a member's progress toward configured achievements and
badges and decide whether an award is due. The AwardManager wires the engines
to a rule catalog and an award ledger.

Key Features:
- Progress percentage and milestone detection per criteria type.
- At-most-once awarding with milestone payouts.
- Validated rule catalog with the stock badges and achievements.
"""

from __future__ import annotations

from .catalog import RuleCatalog, RuleNotFoundError, default_catalog
from .data_builders import (
    InvalidRuleDefinition,
    MemberAwardsError,
    build_rule,
    build_snapshot,
    validate_rule_data,
)
from .engines import (
    EligibilityEngine,
    ProgressEngine,
    decide_eligibility,
    evaluate_progress,
)
from .managers import AwardManager
from .store import AwardAlreadyExistsError, InMemoryAwardStore
from .type_defs import (
    AlreadyAwarded,
    AwardRecord,
    Eligible,
    MemberActivitySnapshot,
    Milestone,
    NotEligible,
    ProgressResult,
    RuleDefinition,
)

__all__ = [
    "AlreadyAwarded",
    "AwardAlreadyExistsError",
    "AwardManager",
    "AwardRecord",
    "EligibilityEngine",
    "Eligible",
    "InMemoryAwardStore",
    "InvalidRuleDefinition",
    "MemberActivitySnapshot",
    "MemberAwardsError",
    "Milestone",
    "NotEligible",
    "ProgressEngine",
    "ProgressResult",
    "RuleCatalog",
    "RuleDefinition",
    "RuleNotFoundError",
    "build_rule",
    "build_snapshot",
    "decide_eligibility",
    "default_catalog",
    "evaluate_progress",
    "validate_rule_data",
]

"""Type definitions for memberawards.

ARCHITECTURE DECISION: HYBRID APPROACH (frozen dataclass + TypedDict)

1. **Frozen dataclasses for evaluator values** (rules, snapshots, awards,
   results). These are the immutable inputs and outputs of the engines; two
   calls with equal inputs produce equal results, and nothing downstream can
   mutate a rule or an award after it was built.

2. **TypedDict for STORAGE payloads** (camelCase documents exactly as the
   document database holds them). The builders in data_builders.py convert
   between the two representations.

Rule conditions are a tagged variant: one dataclass per criteria type with
only the qualifiers that criteria type understands. Counter selection in the
progress engine dispatches on the variant class.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime shape checks for storage
payloads live in data_builders.RULE_SCHEMA (voluptuous).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, NotRequired, TypedDict

from . import const

# =============================================================================
# RULE CONDITIONS (tagged variant per criteria type)
# =============================================================================


@dataclass(frozen=True, slots=True)
class PointsThresholdConditions:
    """Points rules take no qualifiers."""


@dataclass(frozen=True, slots=True)
class EventAttendanceConditions:
    """Qualifiers for event attendance rules.

    Attributes:
        event_type: "Social", "Training", "any" or None. Anything other than
            Social/Training counts all attended events.
    """

    event_type: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectCompletionConditions:
    """Qualifiers for project completion rules.

    Attributes:
        role: "lead" counts led projects only; "member", "any" or None count
            every completed project.
    """

    role: str | None = None


@dataclass(frozen=True, slots=True)
class CustomConditions:
    """Sub-predicates for custom rules, combined with logical AND.

    Attributes:
        membership_duration: Minimum membership length in months
        role_held: Role the member must currently hold
        tier_reached: Tier the member must currently be in
    """

    membership_duration: float | None = None
    role_held: str | None = None
    tier_reached: str | None = None

    def present_keys(self) -> tuple[str, ...]:
        """Return the storage keys of the sub-conditions that are set, in evaluation order."""
        keys: list[str] = []
        if self.membership_duration is not None:
            keys.append(const.CONDITION_MEMBERSHIP_DURATION)
        if self.role_held is not None:
            keys.append(const.CONDITION_ROLE_HELD)
        if self.tier_reached is not None:
            keys.append(const.CONDITION_TIER_REACHED)
        return tuple(keys)


RuleConditions = (
    PointsThresholdConditions
    | EventAttendanceConditions
    | ProjectCompletionConditions
    | CustomConditions
)

# Criteria type -> conditions class, used by builders and validation
CONDITIONS_BY_CRITERIA_TYPE: dict[str, type] = {
    const.CRITERIA_TYPE_POINTS_THRESHOLD: PointsThresholdConditions,
    const.CRITERIA_TYPE_EVENT_ATTENDANCE: EventAttendanceConditions,
    const.CRITERIA_TYPE_PROJECT_COMPLETION: ProjectCompletionConditions,
    const.CRITERIA_TYPE_CUSTOM: CustomConditions,
}


# =============================================================================
# RULE DEFINITION
# =============================================================================


@dataclass(frozen=True, slots=True)
class Milestone:
    """A sub-goal within a rule with its own threshold and partial reward."""

    level: str
    threshold: float
    point_value: float = 0
    reward: str | None = None


@dataclass(frozen=True, slots=True)
class RuleDefinition:
    """A configured achievement or badge.

    Only the criteria fields (criteria_type, threshold, conditions, milestones,
    is_active) influence evaluation. The remaining fields are catalog
    metadata carried for the admin and display layers.
    """

    id: str
    criteria_type: str
    threshold: float
    conditions: RuleConditions = field(default_factory=PointsThresholdConditions)
    milestones: tuple[Milestone, ...] = ()
    is_active: bool = True
    name: str = ""
    description: str = ""
    icon: str = ""
    kind: str = const.RULE_KIND_BADGE
    category: str = const.DEFAULT_RULE_CATEGORY
    tier: str = const.DEFAULT_RULE_TIER
    rarity: str = const.DEFAULT_RULE_RARITY
    point_value: float = 0

    @property
    def milestone_levels(self) -> tuple[str, ...]:
        """Milestone levels in authored (ascending threshold) order."""
        return tuple(milestone.level for milestone in self.milestones)


# =============================================================================
# MEMBER ACTIVITY SNAPSHOT
# =============================================================================


@dataclass(frozen=True, slots=True)
class MemberActivitySnapshot:
    """Activity counters for one member at evaluation time.

    Produced by the event/project/points services; the engines only read it.
    """

    member_id: str
    points: float = 0
    events_attended: int = 0
    social_events_attended: int = 0
    training_events_attended: int = 0
    projects_completed: int = 0
    projects_led: int = 0
    membership_duration: float = 0
    role: str | None = None
    tier: str | None = None


# =============================================================================
# AWARD RECORD
# =============================================================================


@dataclass(frozen=True, slots=True)
class AwardRecord:
    """A granted award. Written once per (rule_id, member_id), never mutated.

    metadata holds the criteria in force when the award was granted, so later
    edits to the rule never change what the record says. It is a read-only
    copy of the mapping passed in.
    """

    rule_id: str
    member_id: str
    awarded_at: datetime
    reason: str
    completed_milestone_levels: tuple[str, ...] = ()
    awarded_by: str = const.DEFAULT_AWARDED_BY
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze a private copy of metadata."""
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


# =============================================================================
# EVALUATION RESULTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class ProgressResult:
    """Output of ProgressEngine.evaluate_progress (ephemeral, never persisted).

    Attributes:
        percentage: Display progress, integer in [0, 100]
        current_value: Counter value compared against the target
        target_value: Target the counter must reach
        completed_milestones: Levels reached, in milestone order
        criteria_met: Exact criteria predicate. Rounding can show 100 percent
            for 999/1000, and a custom rule can show 100 percent for its first
            sub-condition while a later one fails, so eligibility reads this
            flag instead of the percentage.
    """

    percentage: int
    current_value: float
    target_value: float
    completed_milestones: tuple[str, ...] = ()
    criteria_met: bool = False


@dataclass(frozen=True, slots=True)
class MilestoneTrack:
    """Per-milestone view of a rule's progress for display.

    Attributes:
        statuses: (level, status) pairs in milestone order
        next_milestone: First milestone not yet completed, or None
        segment_percentage: Progress between the previous completed threshold
            and the next milestone threshold (100 when all are completed)
        status: Overall not_started / in_progress / completed
    """

    statuses: tuple[tuple[str, str], ...]
    next_milestone: Milestone | None
    segment_percentage: int
    status: str


# =============================================================================
# ELIGIBILITY DECISIONS (tagged union)
# =============================================================================


@dataclass(frozen=True, slots=True)
class AlreadyAwarded:
    """An award exists for (rule, member); nothing to grant."""

    rule_id: str
    member_id: str
    award: AwardRecord
    progress: ProgressResult | None = None
    new_milestones: tuple[Milestone, ...] = ()


@dataclass(frozen=True, slots=True)
class NotEligible:
    """The rule is inactive or its criteria are not met."""

    rule_id: str
    member_id: str
    reason: str
    progress: ProgressResult | None = None
    new_milestones: tuple[Milestone, ...] = ()


@dataclass(frozen=True, slots=True)
class Eligible:
    """The award should be granted now; the caller builds and persists it."""

    rule_id: str
    member_id: str
    progress: ProgressResult
    new_milestones: tuple[Milestone, ...] = ()


Decision = AlreadyAwarded | NotEligible | Eligible


# =============================================================================
# MANAGER RESULTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class MilestonePayout:
    """A newly completed milestone whose points/reward the caller delivers."""

    rule_id: str
    member_id: str
    level: str
    point_value: float
    reward: str | None = None


@dataclass(slots=True)
class AwardCheckResult:
    """Outcome of AwardManager.check_member for one member."""

    member_id: str
    new_awards: list[AwardRecord] = field(default_factory=list)
    milestone_payouts: list[MilestonePayout] = field(default_factory=list)
    decisions: dict[str, Decision] = field(default_factory=dict)
    points_to_credit: float = 0


@dataclass(frozen=True, slots=True)
class RuleProgress:
    """Progress of one rule for one member, as shown by progress trackers."""

    rule: RuleDefinition
    progress: ProgressResult
    is_earned: bool
    nearly_earned: bool = False


# =============================================================================
# STORAGE PAYLOADS (camelCase documents)
# =============================================================================


class MilestoneData(TypedDict):
    """Stored milestone."""

    level: str
    threshold: float
    pointValue: float
    reward: NotRequired[str | None]


class CriteriaData(TypedDict):
    """Stored criteria block of a rule."""

    type: str
    threshold: float
    conditions: dict[str, Any]


class RuleData(TypedDict, total=False):
    """Stored rule document."""

    id: str
    name: str
    description: str
    icon: str
    kind: str
    category: str
    tier: str
    rarity: str
    pointValue: float
    criteria: CriteriaData
    milestones: list[MilestoneData]
    isActive: bool


class SnapshotData(TypedDict, total=False):
    """Counter document produced by the activity services."""

    points: float
    eventsAttended: int
    socialEventsAttended: int
    trainingEventsAttended: int
    projectsCompleted: int
    projectsLed: int
    membershipDuration: float
    role: str | None
    tier: str | None


class AwardData(TypedDict):
    """Stored award document."""

    ruleId: str
    memberId: str
    awardedAt: str
    reason: str
    awardedBy: str
    completedMilestoneLevels: list[str]
    metadata: dict[str, Any]


class AwardSettings(TypedDict):
    """Validated AwardManager settings."""

    nearly_earned_percent: int
    closest_limit: int
    award_reason_template: str
    awarded_by: str

"""Progress Engine - Pure logic for achievement and badge progress.

This engine provides stateless, pure Python functions for:
- Counter selection per criteria type (points, events, projects, custom)
- Progress percentage (integer 0..100, halves rounded up)
- Milestone completion detection in authored order
- Milestone track display data (statuses, next milestone, segment progress)

ARCHITECTURE: This is a pure logic engine with NO storage dependencies.
All functions are static/class methods that operate on passed-in values.
Calling evaluate_progress() twice with equal inputs yields equal results.

Criteria Types:
- points_threshold: total points
- event_attendance: Social/Training counter, generic count otherwise
- project_completion: led projects for role "lead", completed projects otherwise
- custom: AND of membershipDuration / roleHeld / tierReached sub-conditions
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from .. import const
from ..type_defs import (
    CustomConditions,
    EventAttendanceConditions,
    MilestoneTrack,
    ProgressResult,
    ProjectCompletionConditions,
)
from ..utils.math_utils import calculate_percentage, calculate_segment_percentage

if TYPE_CHECKING:
    from ..type_defs import MemberActivitySnapshot, Milestone, RuleDefinition


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Handler signature: (rule, snapshot) -> (current_value, target_value, criteria_met)
CounterHandler = Callable[
    ["RuleDefinition", "MemberActivitySnapshot"], tuple[float, float, bool]
]


# =============================================================================
# PROGRESS ENGINE
# =============================================================================


class ProgressEngine:
    """Pure logic engine for rule progress.

    All methods are static - no instance state. Inactive rules are filtered
    out by EligibilityEngine before this engine is called; evaluating one
    here is still total and simply computes its progress.
    """

    # =========================================================================
    # COUNTER HANDLER REGISTRY
    # =========================================================================

    _COUNTER_HANDLERS: dict[str, CounterHandler] = {}

    @classmethod
    def _register_handlers(cls) -> None:
        """Populate _COUNTER_HANDLERS once."""
        if cls._COUNTER_HANDLERS:
            return

        cls._COUNTER_HANDLERS = {
            const.CRITERIA_TYPE_POINTS_THRESHOLD: cls._points_counter,
            const.CRITERIA_TYPE_EVENT_ATTENDANCE: cls._event_counter,
            const.CRITERIA_TYPE_PROJECT_COMPLETION: cls._project_counter,
            const.CRITERIA_TYPE_CUSTOM: cls._custom_counter,
        }

    # =========================================================================
    # MAIN EVALUATION
    # =========================================================================

    @classmethod
    def evaluate_progress(
        cls,
        rule: RuleDefinition,
        snapshot: MemberActivitySnapshot,
    ) -> ProgressResult:
        """Evaluate a member's progress toward one rule.

        Pure function - no side effects, no storage access.

        Args:
            rule: Validated rule definition
            snapshot: Member's activity counters at evaluation time

        Returns:
            ProgressResult with the clamped percentage, the compared pair,
            the completed milestone levels and the exact criteria flag
        """
        cls._register_handlers()

        handler = cls._COUNTER_HANDLERS.get(rule.criteria_type)
        if handler is None:
            # Validated catalogs never get here
            const.LOGGER.warning(
                "Unknown criteria type: %s for rule %s", rule.criteria_type, rule.id
            )
            return ProgressResult(
                percentage=const.PERCENT_MIN,
                current_value=0,
                target_value=rule.threshold,
            )

        if isinstance(rule.conditions, CustomConditions) and not (
            rule.conditions.present_keys()
        ):
            # Nothing to compare: never satisfied
            return ProgressResult(
                percentage=const.PERCENT_MIN,
                current_value=0,
                target_value=rule.threshold,
            )

        current_value, target_value, criteria_met = handler(rule, snapshot)

        return ProgressResult(
            percentage=calculate_percentage(current_value, target_value),
            current_value=current_value,
            target_value=target_value,
            completed_milestones=cls.detect_completed_milestones(
                rule.milestones, current_value
            ),
            criteria_met=criteria_met,
        )

    @staticmethod
    def detect_completed_milestones(
        milestones: tuple[Milestone, ...],
        current_value: float,
    ) -> tuple[str, ...]:
        """Return the levels whose threshold current_value reaches, in authored order."""
        return tuple(
            milestone.level
            for milestone in milestones
            if current_value >= milestone.threshold
        )

    # =========================================================================
    # COUNTER HANDLERS
    # =========================================================================

    @staticmethod
    def _points_counter(
        rule: RuleDefinition,
        snapshot: MemberActivitySnapshot,
    ) -> tuple[float, float, bool]:
        """Total points against the threshold."""
        current = snapshot.points
        return current, rule.threshold, current >= rule.threshold

    @staticmethod
    def _event_counter(
        rule: RuleDefinition,
        snapshot: MemberActivitySnapshot,
    ) -> tuple[float, float, bool]:
        """Attended events, narrowed to Social or Training when requested."""
        event_type = None
        if isinstance(rule.conditions, EventAttendanceConditions):
            event_type = rule.conditions.event_type

        if event_type == const.EVENT_TYPE_SOCIAL:
            current: float = snapshot.social_events_attended
        elif event_type == const.EVENT_TYPE_TRAINING:
            current = snapshot.training_events_attended
        else:
            # "any", absent or an unrecognised event type
            current = snapshot.events_attended

        return current, rule.threshold, current >= rule.threshold

    @staticmethod
    def _project_counter(
        rule: RuleDefinition,
        snapshot: MemberActivitySnapshot,
    ) -> tuple[float, float, bool]:
        """Completed projects, or led projects only for role "lead"."""
        role = None
        if isinstance(rule.conditions, ProjectCompletionConditions):
            role = rule.conditions.role

        if role == const.PROJECT_ROLE_LEAD:
            current: float = snapshot.projects_led
        else:
            current = snapshot.projects_completed

        return current, rule.threshold, current >= rule.threshold

    @staticmethod
    def _custom_counter(
        rule: RuleDefinition,
        snapshot: MemberActivitySnapshot,
    ) -> tuple[float, float, bool]:
        """AND of the present custom sub-conditions.

        The displayed pair comes from the first present sub-condition:
        membershipDuration reports (duration, required months); roleHeld and
        tierReached report a 1/0 match against a target of 1.
        """
        conditions = rule.conditions
        if not isinstance(conditions, CustomConditions):
            return 0, rule.threshold, False

        pairs: list[tuple[float, float, bool]] = []

        if conditions.membership_duration is not None:
            required = conditions.membership_duration
            duration = snapshot.membership_duration
            pairs.append((duration, required, duration >= required))

        if conditions.role_held is not None:
            matched = snapshot.role == conditions.role_held
            pairs.append((1 if matched else 0, 1, matched))

        if conditions.tier_reached is not None:
            matched = snapshot.tier == conditions.tier_reached
            pairs.append((1 if matched else 0, 1, matched))

        if not pairs:
            return 0, rule.threshold, False

        current, target, _met = pairs[0]
        return current, target, all(met for _cur, _tgt, met in pairs)

    # =========================================================================
    # MILESTONE TRACK (display)
    # =========================================================================

    @classmethod
    def evaluate_milestone_track(
        cls,
        rule: RuleDefinition,
        progress: ProgressResult,
    ) -> MilestoneTrack:
        """Build the per-milestone display view for an evaluated rule.

        Statuses: completed milestones are "completed", the first milestone
        after them is "in_progress" and the rest are "locked".

        Overall status:
        - completed: every milestone reached (criteria met for rules without
          milestones)
        - in_progress: some progress or at least one milestone reached
        - not_started: nothing yet

        Args:
            rule: Rule that was evaluated
            progress: Result of evaluate_progress() for that rule

        Returns:
            MilestoneTrack
        """
        completed = set(progress.completed_milestones)
        statuses: list[tuple[str, str]] = []
        next_milestone: Milestone | None = None
        lower_threshold = 0.0

        for milestone in rule.milestones:
            if milestone.level in completed:
                statuses.append((milestone.level, const.MILESTONE_STATUS_COMPLETED))
                lower_threshold = milestone.threshold
            elif next_milestone is None:
                next_milestone = milestone
                statuses.append((milestone.level, const.MILESTONE_STATUS_IN_PROGRESS))
            else:
                statuses.append((milestone.level, const.MILESTONE_STATUS_LOCKED))

        if next_milestone is None:
            segment = const.PERCENT_MAX if rule.milestones else progress.percentage
        else:
            segment = calculate_segment_percentage(
                progress.current_value, lower_threshold, next_milestone.threshold
            )

        if rule.milestones:
            all_done = next_milestone is None
        else:
            all_done = progress.criteria_met

        if all_done:
            status = const.PROGRESS_STATUS_COMPLETED
        elif completed or progress.percentage > 0:
            status = const.PROGRESS_STATUS_IN_PROGRESS
        else:
            status = const.PROGRESS_STATUS_NOT_STARTED

        return MilestoneTrack(
            statuses=tuple(statuses),
            next_milestone=next_milestone,
            segment_percentage=segment,
            status=status,
        )


def evaluate_progress(
    rule: RuleDefinition,
    snapshot: MemberActivitySnapshot,
) -> ProgressResult:
    """Module-level shortcut for ProgressEngine.evaluate_progress()."""
    return ProgressEngine.evaluate_progress(rule, snapshot)

"""Unit tests for EligibilityEngine - pure Python logic tests.

Test Categories:
- Decision shapes (Eligible / NotEligible / AlreadyAwarded)
- Award idempotency and active-only awarding
- Threshold exactness per criteria type
- Edit isolation (awards survive rule edits)
- Newly completed milestone detection
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from memberawards import const
from memberawards.catalog import RuleCatalog
from memberawards.data_builders import build_rule
from memberawards.engines.eligibility_engine import (
    EligibilityEngine,
    decide_eligibility,
)
from memberawards.type_defs import (
    AlreadyAwarded,
    AwardRecord,
    CustomConditions,
    Eligible,
    EventAttendanceConditions,
    MemberActivitySnapshot,
    Milestone,
    NotEligible,
    PointsThresholdConditions,
    ProjectCompletionConditions,
    RuleDefinition,
)

# =============================================================================
# TEST FIXTURES
# =============================================================================

MEMBER_ID = "member-1"

MILESTONES = (
    Milestone(level="Bronze", threshold=5, point_value=100),
    Milestone(level="Silver", threshold=10, point_value=150),
    Milestone(level="Gold", threshold=25, point_value=250),
)


def make_points_rule(
    *,
    threshold: float = 1000,
    is_active: bool = True,
    rule_id: str = "b4",
) -> RuleDefinition:
    """Points rule like the stock Point Master badge."""
    return RuleDefinition(
        id=rule_id,
        criteria_type=const.CRITERIA_TYPE_POINTS_THRESHOLD,
        threshold=threshold,
        conditions=PointsThresholdConditions(),
        is_active=is_active,
        name="Point Master",
    )


def make_events_rule(*, is_active: bool = True) -> RuleDefinition:
    """Event rule with Bronze/Silver/Gold milestones."""
    return RuleDefinition(
        id="event-enthusiast",
        criteria_type=const.CRITERIA_TYPE_EVENT_ATTENDANCE,
        threshold=25,
        conditions=EventAttendanceConditions(),
        milestones=MILESTONES,
        is_active=is_active,
        name="Event Enthusiast",
    )


def make_snapshot(**counters: float | int | str) -> MemberActivitySnapshot:
    """Snapshot for MEMBER_ID; unspecified counters are zero."""
    return MemberActivitySnapshot(member_id=MEMBER_ID, **counters)  # type: ignore[arg-type]


def make_award(rule_id: str = "b4", levels: tuple[str, ...] = ()) -> AwardRecord:
    """Existing award for MEMBER_ID."""
    return AwardRecord(
        rule_id=rule_id,
        member_id=MEMBER_ID,
        awarded_at=datetime(2025, 1, 10, 9, 30, tzinfo=UTC),
        reason="Automatically earned by meeting criteria: points_threshold >= 1000",
        completed_milestone_levels=levels,
    )


# =============================================================================
# Test: concrete scenarios
# =============================================================================


class TestScenarios:
    """Concrete decision scenarios."""

    def test_social_events_eligible(self) -> None:
        """Ten social events for a ten-event Social rule is Eligible."""
        rule = RuleDefinition(
            id="b2",
            criteria_type=const.CRITERIA_TYPE_EVENT_ATTENDANCE,
            threshold=10,
            conditions=EventAttendanceConditions(event_type=const.EVENT_TYPE_SOCIAL),
        )

        decision = decide_eligibility(rule, make_snapshot(social_events_attended=10))

        assert isinstance(decision, Eligible)
        assert decision.progress.percentage == 100
        assert decision.rule_id == "b2"
        assert decision.member_id == MEMBER_ID

    def test_points_just_below_threshold(self) -> None:
        """999 of 1000 points shows 100 percent but is NotEligible."""
        decision = decide_eligibility(make_points_rule(), make_snapshot(points=999))

        assert isinstance(decision, NotEligible)
        assert decision.reason == const.REASON_CRITERIA_NOT_MET
        assert decision.progress is not None
        assert decision.progress.percentage == 100

    def test_custom_without_sub_conditions(self) -> None:
        """A custom rule with no sub-conditions is never eligible."""
        rule = RuleDefinition(
            id="custom-1",
            criteria_type=const.CRITERIA_TYPE_CUSTOM,
            threshold=1,
            conditions=CustomConditions(),
        )

        decision = decide_eligibility(
            rule, make_snapshot(points=10_000, membership_duration=120)
        )

        assert isinstance(decision, NotEligible)
        assert decision.progress is not None
        assert decision.progress.percentage == 0


# =============================================================================
# Test: idempotency and active-only
# =============================================================================


class TestAwardGuards:
    """Tests for the award-once and active-only guards."""

    @pytest.mark.parametrize("points", [0, 500, 1000, 50_000])
    def test_existing_award_always_already_awarded(self, points: int) -> None:
        """An existing award wins over any progress."""
        award = make_award()

        decision = decide_eligibility(
            make_points_rule(), make_snapshot(points=points), award
        )

        assert isinstance(decision, AlreadyAwarded)
        assert decision.award is award

    @pytest.mark.parametrize("points", [0, 999, 1000, 50_000])
    def test_inactive_rule_never_eligible(self, points: int) -> None:
        """Inactive rules are not evaluated and never Eligible."""
        decision = decide_eligibility(
            make_points_rule(is_active=False), make_snapshot(points=points)
        )

        assert isinstance(decision, NotEligible)
        assert decision.reason == const.REASON_RULE_INACTIVE
        assert decision.progress is None
        assert decision.new_milestones == ()

    def test_inactive_rule_with_award_is_already_awarded(self) -> None:
        """Deactivating a rule does not hide the award."""
        decision = decide_eligibility(
            make_points_rule(is_active=False), make_snapshot(points=2000), make_award()
        )

        assert isinstance(decision, AlreadyAwarded)
        assert decision.progress is None


# =============================================================================
# Test: threshold exactness
# =============================================================================


class TestThresholdExactness:
    """Counter equal to threshold is 100 percent and Eligible."""

    @pytest.mark.parametrize(
        ("rule", "snapshot"),
        [
            (make_points_rule(threshold=250), make_snapshot(points=250)),
            (
                RuleDefinition(
                    id="r-training",
                    criteria_type=const.CRITERIA_TYPE_EVENT_ATTENDANCE,
                    threshold=3,
                    conditions=EventAttendanceConditions(
                        event_type=const.EVENT_TYPE_TRAINING
                    ),
                ),
                make_snapshot(training_events_attended=3, events_attended=3),
            ),
            (
                RuleDefinition(
                    id="r-lead",
                    criteria_type=const.CRITERIA_TYPE_PROJECT_COMPLETION,
                    threshold=2,
                    conditions=ProjectCompletionConditions(
                        role=const.PROJECT_ROLE_LEAD
                    ),
                ),
                make_snapshot(projects_led=2, projects_completed=5),
            ),
            (
                RuleDefinition(
                    id="r-veteran",
                    criteria_type=const.CRITERIA_TYPE_CUSTOM,
                    threshold=1,
                    conditions=CustomConditions(membership_duration=24),
                ),
                make_snapshot(membership_duration=24),
            ),
        ],
    )
    def test_exact_threshold_is_eligible(
        self, rule: RuleDefinition, snapshot: MemberActivitySnapshot
    ) -> None:
        """Exactly reaching the target grants the award."""
        decision = decide_eligibility(rule, snapshot)

        assert isinstance(decision, Eligible)
        assert decision.progress.percentage == 100


# =============================================================================
# Test: edit isolation
# =============================================================================


class TestEditIsolation:
    """Awards granted under an old rule version stay valid."""

    def test_award_survives_rule_edit(self) -> None:
        """Raising the threshold after awarding keeps AlreadyAwarded."""
        catalog = RuleCatalog([make_points_rule(threshold=1000)])
        award = make_award()
        before = AwardRecord(
            rule_id=award.rule_id,
            member_id=award.member_id,
            awarded_at=award.awarded_at,
            reason=award.reason,
        )

        rule_v2 = catalog.update(
            "b4", {const.DATA_RULE_CRITERIA: {const.DATA_RULE_THRESHOLD: 5000}}
        )
        decision = decide_eligibility(rule_v2, make_snapshot(points=1200), award)

        assert rule_v2.threshold == 5000
        assert isinstance(decision, AlreadyAwarded)
        assert decision.award == before

    def test_changed_criteria_type_still_already_awarded(self) -> None:
        """Changing the criteria entirely does not revoke the award."""
        rule_v2 = build_rule(
            {
                const.DATA_RULE_CRITERIA: {
                    const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_EVENT_ATTENDANCE,
                    const.DATA_RULE_THRESHOLD: 50,
                    const.DATA_RULE_CONDITIONS: {
                        const.CONDITION_EVENT_TYPE: const.EVENT_TYPE_SOCIAL
                    },
                }
            },
            existing=make_points_rule(),
        )

        decision = decide_eligibility(rule_v2, make_snapshot(), make_award())

        assert isinstance(decision, AlreadyAwarded)


# =============================================================================
# Test: newly completed milestones
# =============================================================================


class TestNewMilestones:
    """Tests for the milestone delta."""

    def test_first_check_reports_reached_milestones(self) -> None:
        """Without prior levels every reached milestone is new."""
        decision = decide_eligibility(
            make_events_rule(), make_snapshot(events_attended=12)
        )

        assert isinstance(decision, NotEligible)
        assert [m.level for m in decision.new_milestones] == ["Bronze", "Silver"]

    def test_recorded_levels_not_reported_again(self) -> None:
        """Only levels missing from the recorded ones are new."""
        decision = decide_eligibility(
            make_events_rule(),
            make_snapshot(events_attended=12),
            prior_milestones=("Bronze",),
        )

        assert [m.level for m in decision.new_milestones] == ["Silver"]

    def test_repeated_calls_after_recording(self) -> None:
        """Once recorded, a level is never new again."""
        rule = make_events_rule()
        snapshot = make_snapshot(events_attended=30)
        recorded: list[str] = []

        first = decide_eligibility(rule, snapshot, prior_milestones=recorded)
        recorded.extend(m.level for m in first.new_milestones)
        second = decide_eligibility(rule, snapshot, prior_milestones=recorded)

        assert [m.level for m in first.new_milestones] == ["Bronze", "Silver", "Gold"]
        assert second.new_milestones == ()

    def test_order_preserved(self) -> None:
        """New levels follow milestone order, not the recorded order."""
        decision = decide_eligibility(
            make_events_rule(),
            make_snapshot(events_attended=30),
            prior_milestones=("Silver",),
        )

        assert [m.level for m in decision.new_milestones] == ["Bronze", "Gold"]

    def test_milestones_reported_with_existing_award(self) -> None:
        """Milestone payouts continue after the top-level award."""
        decision = decide_eligibility(
            make_events_rule(),
            make_snapshot(events_attended=30),
            make_award(rule_id="event-enthusiast", levels=("Bronze", "Silver")),
            prior_milestones=("Bronze", "Silver"),
        )

        assert isinstance(decision, AlreadyAwarded)
        assert [m.level for m in decision.new_milestones] == ["Gold"]

    def test_eligible_carries_milestones(self) -> None:
        """Eligible decisions carry the milestone payout values."""
        decision = EligibilityEngine.decide_eligibility(
            make_events_rule(), make_snapshot(events_attended=25)
        )

        assert isinstance(decision, Eligible)
        assert sum(m.point_value for m in decision.new_milestones) == 500

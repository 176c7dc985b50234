"""Eligibility Engine - Pure award decision logic.

Decides, for one member and one rule, whether the award should be granted
now, and which milestones were newly completed since the last recorded check.

Decision precedence:
1. An existing award      -> AlreadyAwarded (awarding is at most once)
2. An inactive rule       -> NotEligible(rule_inactive), nothing evaluated
3. Criteria met exactly   -> Eligible
4. Otherwise              -> NotEligible(criteria_not_met)

The engine has no revoke operation. Awards granted under an earlier version of
a rule stay valid whatever the rule says today.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .. import const
from ..type_defs import AlreadyAwarded, Eligible, NotEligible
from .progress_engine import ProgressEngine

if TYPE_CHECKING:
    from ..type_defs import (
        AwardRecord,
        Decision,
        MemberActivitySnapshot,
        Milestone,
        ProgressResult,
        RuleDefinition,
    )


class EligibilityEngine:
    """Stateless award decider. All methods are static."""

    @staticmethod
    def newly_completed_milestones(
        rule: RuleDefinition,
        progress: ProgressResult,
        prior_levels: Iterable[str] = (),
    ) -> tuple[Milestone, ...]:
        """Return milestones completed now but not yet recorded.

        Order follows the rule's milestone order. A level already present in
        prior_levels is never reported again.
        """
        recorded = set(prior_levels)
        completed = set(progress.completed_milestones)
        return tuple(
            milestone
            for milestone in rule.milestones
            if milestone.level in completed and milestone.level not in recorded
        )

    @classmethod
    def decide_eligibility(
        cls,
        rule: RuleDefinition,
        snapshot: MemberActivitySnapshot,
        existing_award: AwardRecord | None = None,
        prior_milestones: Iterable[str] = (),
    ) -> Decision:
        """Decide whether rule should be awarded to the snapshot's member.

        Args:
            rule: Current rule definition
            snapshot: Member's activity counters at decision time
            existing_award: The member's award for this rule, if any
            prior_milestones: Milestone levels already recorded for the member

        Returns:
            AlreadyAwarded, NotEligible or Eligible. Milestone deltas are
            reported on every shape whenever the rule is active, since
            milestones pay out independently of the top-level award.
        """
        member_id = snapshot.member_id

        progress: ProgressResult | None = None
        new_milestones: tuple[Milestone, ...] = ()
        if rule.is_active:
            progress = ProgressEngine.evaluate_progress(rule, snapshot)
            new_milestones = cls.newly_completed_milestones(
                rule, progress, prior_milestones
            )

        if existing_award is not None:
            return AlreadyAwarded(
                rule_id=rule.id,
                member_id=member_id,
                award=existing_award,
                progress=progress,
                new_milestones=new_milestones,
            )

        if progress is None:
            return NotEligible(
                rule_id=rule.id,
                member_id=member_id,
                reason=const.REASON_RULE_INACTIVE,
            )

        if progress.criteria_met:
            const.LOGGER.debug(
                "Rule %s eligible for member %s (%s/%s)",
                rule.id,
                member_id,
                progress.current_value,
                progress.target_value,
            )
            return Eligible(
                rule_id=rule.id,
                member_id=member_id,
                progress=progress,
                new_milestones=new_milestones,
            )

        return NotEligible(
            rule_id=rule.id,
            member_id=member_id,
            reason=const.REASON_CRITERIA_NOT_MET,
            progress=progress,
            new_milestones=new_milestones,
        )


def decide_eligibility(
    rule: RuleDefinition,
    snapshot: MemberActivitySnapshot,
    existing_award: AwardRecord | None = None,
    prior_milestones: Iterable[str] = (),
) -> Decision:
    """Module-level shortcut for EligibilityEngine.decide_eligibility()."""
    return EligibilityEngine.decide_eligibility(
        rule, snapshot, existing_award, prior_milestones
    )

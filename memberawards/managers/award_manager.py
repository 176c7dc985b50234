"""Award Manager - Orchestrates award checks for members.

This manager is the stateful counterpart of the pure engines:
- Reads snapshots, existing awards and recorded milestones from storage
- Runs EligibilityEngine over the catalog
- Persists new awards and newly completed milestone levels
- Reports points to credit and rewards to deliver (the caller pays them out)

Also provides read-only views for progress trackers:
- dry_run(): decisions without any writes
- progress_overview(): progress of every active rule
- closest_to_earning(): unearned rules ordered by progress
- milestone_track(): per-milestone display data for one rule
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import build_award_record, build_settings
from ..engines import EligibilityEngine, ProgressEngine
from ..store import AwardAlreadyExistsError, MilestoneProgressStore
from ..type_defs import AwardCheckResult, Eligible, MilestonePayout, RuleProgress

if TYPE_CHECKING:
    from datetime import datetime

    from ..catalog import RuleCatalog
    from ..store import AwardLedger, SnapshotProvider
    from ..type_defs import (
        Decision,
        MemberActivitySnapshot,
        MilestoneTrack,
        RuleDefinition,
    )


class AwardManager:
    """Manages automatic awarding of achievements and badges.

    Responsibilities:
    - Decide and persist awards for a member (check_member)
    - Record milestone levels and report their payouts
    - Serve progress views without side effects
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        ledger: AwardLedger,
        *,
        milestones: MilestoneProgressStore | None = None,
        snapshots: SnapshotProvider | None = None,
        settings: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the AwardManager.

        Args:
            catalog: Rule catalog to evaluate
            ledger: Award lookup and persist operations
            milestones: Milestone progress store. Defaults to the ledger when
                it also implements MilestoneProgressStore.
            snapshots: Optional snapshot provider used when a call passes
                no snapshot
            settings: Raw settings, validated by SETTINGS_SCHEMA

        Raises:
            ValueError: If no milestone store is given and the ledger is not
                one.
            vol.Invalid: If settings are invalid.
        """
        self.catalog = catalog
        self.ledger = ledger
        if milestones is None:
            if not isinstance(ledger, MilestoneProgressStore):
                raise ValueError(
                    "No milestone store given and the ledger does not record "
                    "milestone levels"
                )
            milestones = ledger
        self.milestones: MilestoneProgressStore = milestones
        self.snapshots = snapshots
        self.settings = build_settings(settings)

    # =========================================================================
    # Award checks
    # =========================================================================

    def check_member(
        self,
        member_id: str,
        snapshot: MemberActivitySnapshot | None = None,
        *,
        now: datetime | None = None,
    ) -> AwardCheckResult:
        """Evaluate every rule for a member and persist the outcome.

        Eligible rules are written to the ledger. A concurrent writer that
        recorded the same award first is logged and skipped. Newly completed
        milestones are recorded and returned as payouts whatever the top-level
        decision. Only levels this call actually recorded are paid; a
        concurrent check that recorded them first keeps the payout.

        Args:
            member_id: Member to check
            snapshot: Counters to use; fetched from the provider when None
            now: Award timestamp override

        Returns:
            AwardCheckResult with new awards, payouts and points to credit
        """
        snapshot = self._resolve_snapshot(member_id, snapshot)
        result = AwardCheckResult(member_id=member_id)

        for rule in self.catalog:
            decision = self._decide(rule, snapshot)
            result.decisions[rule.id] = decision

            if isinstance(decision, Eligible):
                award = build_award_record(
                    rule,
                    decision,
                    awarded_at=now,
                    awarded_by=self.settings[const.CONF_AWARDED_BY],
                    reason_template=self.settings[const.CONF_AWARD_REASON_TEMPLATE],
                )
                try:
                    self.ledger.add_award(award)
                except AwardAlreadyExistsError:
                    const.LOGGER.warning(
                        "Award for rule %s already recorded for member %s, skipping",
                        rule.id,
                        member_id,
                    )
                else:
                    result.new_awards.append(award)
                    result.points_to_credit += rule.point_value
                    const.LOGGER.info(
                        "Member %s earned %s '%s'", member_id, rule.kind, rule.name
                    )

            if decision.new_milestones:
                self._record_milestones(rule, decision, result)

        const.LOGGER.debug(
            "Award check for member %s: %d new awards, %d milestone payouts",
            member_id,
            len(result.new_awards),
            len(result.milestone_payouts),
        )
        return result

    def dry_run(
        self,
        member_id: str,
        snapshot: MemberActivitySnapshot | None = None,
    ) -> dict[str, Decision]:
        """Return the decision for every rule without writing anything."""
        snapshot = self._resolve_snapshot(member_id, snapshot)
        return {rule.id: self._decide(rule, snapshot) for rule in self.catalog}

    # =========================================================================
    # Progress views
    # =========================================================================

    def progress_overview(
        self,
        member_id: str,
        snapshot: MemberActivitySnapshot | None = None,
        *,
        kind: str | None = None,
        category: str | None = None,
    ) -> list[RuleProgress]:
        """Return progress for every active rule, ordered by tier then name."""
        snapshot = self._resolve_snapshot(member_id, snapshot)
        threshold = self.settings[const.CONF_NEARLY_EARNED_PERCENT]

        overview: list[RuleProgress] = []
        for rule in self.catalog.filter(kind=kind, category=category, active_only=True):
            progress = ProgressEngine.evaluate_progress(rule, snapshot)
            is_earned = self.ledger.get_award(member_id, rule.id) is not None
            overview.append(
                RuleProgress(
                    rule=rule,
                    progress=progress,
                    is_earned=is_earned,
                    nearly_earned=not is_earned and progress.percentage >= threshold,
                )
            )
        return overview

    def closest_to_earning(
        self,
        member_id: str,
        snapshot: MemberActivitySnapshot | None = None,
        *,
        limit: int | None = None,
    ) -> list[RuleProgress]:
        """Return unearned rules with some progress, highest percentage first.

        Args:
            member_id: Member to inspect
            snapshot: Counters to use; fetched from the provider when None
            limit: Maximum entries (defaults to the closest_limit setting)
        """
        candidates = [
            item
            for item in self.progress_overview(member_id, snapshot)
            if not item.is_earned and item.progress.percentage > 0
        ]
        candidates.sort(key=lambda item: item.progress.percentage, reverse=True)
        if limit is None:
            limit = self.settings[const.CONF_CLOSEST_LIMIT]
        return candidates[:limit]

    def milestone_track(
        self,
        member_id: str,
        rule_id: str,
        snapshot: MemberActivitySnapshot | None = None,
    ) -> MilestoneTrack:
        """Return milestone display data for one rule.

        Raises:
            RuleNotFoundError: If rule_id is not in the catalog.
        """
        rule = self.catalog.get(rule_id)
        snapshot = self._resolve_snapshot(member_id, snapshot)
        progress = ProgressEngine.evaluate_progress(rule, snapshot)
        return ProgressEngine.evaluate_milestone_track(rule, progress)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _decide(
        self, rule: RuleDefinition, snapshot: MemberActivitySnapshot
    ) -> Decision:
        """Gather stored state for (rule, member) and run the decider."""
        existing = self.ledger.get_award(snapshot.member_id, rule.id)
        prior = self.milestones.completed_levels(snapshot.member_id, rule.id)
        return EligibilityEngine.decide_eligibility(rule, snapshot, existing, prior)

    def _record_milestones(
        self, rule: RuleDefinition, decision: Decision, result: AwardCheckResult
    ) -> None:
        """Record new milestone levels and pay out the ones actually added."""
        member_id = result.member_id
        added = self.milestones.record_levels(
            member_id,
            rule.id,
            [milestone.level for milestone in decision.new_milestones],
        )
        if not added:
            const.LOGGER.debug(
                "Milestones of rule %s already recorded for member %s, skipping",
                rule.id,
                member_id,
            )
            return

        for milestone in decision.new_milestones:
            if milestone.level not in added:
                continue
            result.milestone_payouts.append(
                MilestonePayout(
                    rule_id=rule.id,
                    member_id=member_id,
                    level=milestone.level,
                    point_value=milestone.point_value,
                    reward=milestone.reward,
                )
            )
            result.points_to_credit += milestone.point_value
        const.LOGGER.info(
            "Member %s completed milestones %s of rule %s",
            member_id,
            list(added),
            rule.id,
        )

    def _resolve_snapshot(
        self,
        member_id: str,
        snapshot: MemberActivitySnapshot | None,
    ) -> MemberActivitySnapshot:
        """Use the given snapshot or fetch one from the provider.

        Raises:
            ValueError: If no snapshot is given and there is no provider, or
                the snapshot belongs to another member.
        """
        if snapshot is None:
            if self.snapshots is None:
                raise ValueError(
                    f"No snapshot given for member '{member_id}' and no provider"
                )
            snapshot = self.snapshots.get_snapshot(member_id)
        if snapshot.member_id != member_id:
            raise ValueError(
                f"Snapshot for member '{snapshot.member_id}' passed for '{member_id}'"
            )
        return snapshot

"""Storage boundary for memberawards.

The engines never read or write storage. The AwardManager talks to the
application's storage layer through the protocols below:

- AwardLedger: existing-award lookup and the write-new-award operation
- MilestoneProgressStore: milestone levels already paid out per member/rule
- SnapshotProvider: activity counters for a member

InMemoryAwardStore implements both ledger protocols for tests and single
process use. Its award write is a conditional insert under a lock, so two
concurrent writers for the same (rule, member) pair cannot both succeed.
"""

from __future__ import annotations

from collections.abc import Iterable
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from . import const
from .data_builders import MemberAwardsError, award_from_data, award_to_data

if TYPE_CHECKING:
    from .type_defs import AwardData, AwardRecord, MemberActivitySnapshot


class AwardAlreadyExistsError(MemberAwardsError):
    """Raised when an award for (rule_id, member_id) is already recorded."""

    def __init__(self, rule_id: str, member_id: str) -> None:
        """Initialize AwardAlreadyExistsError."""
        self.rule_id = rule_id
        self.member_id = member_id
        super().__init__(
            f"Award for rule '{rule_id}' already exists for member '{member_id}'"
        )


# ==============================================================================
# PROTOCOLS
# ==============================================================================


@runtime_checkable
class AwardLedger(Protocol):
    """Granted awards, unique per (rule_id, member_id)."""

    def get_award(self, member_id: str, rule_id: str) -> AwardRecord | None:
        """Return the member's award for the rule, if any."""

    def awards_for_member(self, member_id: str) -> list[AwardRecord]:
        """Return every award of a member."""

    def add_award(self, award: AwardRecord) -> None:
        """Persist a new award.

        Raises:
            AwardAlreadyExistsError: If the pair is already awarded.
        """


@runtime_checkable
class MilestoneProgressStore(Protocol):
    """Milestone levels already recorded (paid out) per member and rule."""

    def completed_levels(self, member_id: str, rule_id: str) -> tuple[str, ...]:
        """Return recorded levels in the order they were recorded."""

    def record_levels(
        self, member_id: str, rule_id: str, levels: Iterable[str]
    ) -> tuple[str, ...]:
        """Append newly completed levels and return the ones actually added.

        Levels already recorded are ignored. The check and the append are one
        atomic step, so of two concurrent callers only one gets a level back.
        """


@runtime_checkable
class SnapshotProvider(Protocol):
    """Source of member activity counters."""

    def get_snapshot(self, member_id: str) -> MemberActivitySnapshot:
        """Return the member's counters at call time."""


# ==============================================================================
# IN-MEMORY STORE
# ==============================================================================


class InMemoryAwardStore:
    """Thread-safe in-memory AwardLedger and MilestoneProgressStore."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._lock = threading.Lock()
        # member_id -> rule_id -> award
        self._awards: dict[str, dict[str, AwardRecord]] = {}
        # member_id -> rule_id -> recorded levels
        self._milestones: dict[str, dict[str, list[str]]] = {}

    # -------------------------------------------------------------------------
    # AwardLedger
    # -------------------------------------------------------------------------

    def get_award(self, member_id: str, rule_id: str) -> AwardRecord | None:
        """Return the member's award for the rule, if any."""
        with self._lock:
            return self._awards.get(member_id, {}).get(rule_id)

    def awards_for_member(self, member_id: str) -> list[AwardRecord]:
        """Return every award of a member, oldest first."""
        with self._lock:
            awards = list(self._awards.get(member_id, {}).values())
        return sorted(awards, key=lambda award: award.awarded_at)

    def add_award(self, award: AwardRecord) -> None:
        """Insert an award if the (rule, member) pair has none.

        Raises:
            AwardAlreadyExistsError: If the pair is already awarded.
        """
        with self._lock:
            member_awards = self._awards.setdefault(award.member_id, {})
            if award.rule_id in member_awards:
                raise AwardAlreadyExistsError(award.rule_id, award.member_id)
            member_awards[award.rule_id] = award
        const.LOGGER.debug(
            "Stored award for rule %s, member %s", award.rule_id, award.member_id
        )

    # -------------------------------------------------------------------------
    # MilestoneProgressStore
    # -------------------------------------------------------------------------

    def completed_levels(self, member_id: str, rule_id: str) -> tuple[str, ...]:
        """Return recorded levels in the order they were recorded."""
        with self._lock:
            return tuple(self._milestones.get(member_id, {}).get(rule_id, ()))

    def record_levels(
        self, member_id: str, rule_id: str, levels: Iterable[str]
    ) -> tuple[str, ...]:
        """Append newly completed levels and return the ones actually added."""
        added: list[str] = []
        with self._lock:
            recorded = self._milestones.setdefault(member_id, {}).setdefault(
                rule_id, []
            )
            for level in levels:
                if level not in recorded:
                    recorded.append(level)
                    added.append(level)
        return tuple(added)

    # -------------------------------------------------------------------------
    # Storage documents
    # -------------------------------------------------------------------------

    def to_data(self) -> list[AwardData]:
        """Return every award as a storage document."""
        with self._lock:
            awards = [
                award
                for member_awards in self._awards.values()
                for award in member_awards.values()
            ]
        return [award_to_data(award) for award in awards]

    def load_data(self, documents: Iterable[dict[str, object]]) -> int:
        """Load stored award documents, skipping duplicates.

        Returns:
            Number of awards loaded
        """
        loaded = 0
        for document in documents:
            award = award_from_data(document)
            try:
                self.add_award(award)
            except AwardAlreadyExistsError:
                const.LOGGER.warning(
                    "Duplicate stored award for rule %s, member %s ignored",
                    award.rule_id,
                    award.member_id,
                )
                continue
            self.record_levels(
                award.member_id, award.rule_id, award.completed_milestone_levels
            )
            loaded += 1
        return loaded

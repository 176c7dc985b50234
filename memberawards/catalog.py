"""Rule catalog for memberawards.

Holds the configured achievements and badges. Every rule is validated when it
enters the catalog (build, add or update), so the engines only ever see valid
rules.

Editing a rule replaces the catalog entry. Awards granted under the previous
definition live in the award ledger and are never touched by the catalog.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
import dataclasses
from typing import TYPE_CHECKING, Any

from . import const
from .data_builders import (
    InvalidRuleDefinition,
    MemberAwardsError,
    build_rule,
    rule_to_data,
    validate_rule,
)
from .type_defs import RuleDefinition

if TYPE_CHECKING:
    from .type_defs import RuleData


class RuleNotFoundError(MemberAwardsError):
    """Raised when a rule id is not in the catalog."""

    def __init__(self, rule_id: str) -> None:
        """Initialize RuleNotFoundError."""
        self.rule_id = rule_id
        super().__init__(f"Rule '{rule_id}' not found")


def _tier_rank(tier: str) -> int:
    """Catalog ordering rank of a tier label; unknown tiers sort last."""
    return const.TIER_ORDER.get(tier.strip().title(), len(const.TIER_ORDER) + 1)


class RuleCatalog:
    """Validated, id-keyed set of rule definitions."""

    def __init__(self, rules: Iterable[RuleDefinition] = ()) -> None:
        """Initialize the catalog.

        Raises:
            InvalidRuleDefinition: If a rule is invalid or an id repeats.
        """
        self._rules: dict[str, RuleDefinition] = {}
        for rule in rules:
            self._insert(rule)

    @classmethod
    def from_data(
        cls,
        documents: Iterable[Mapping[str, Any]],
        *,
        strict: bool = True,
    ) -> RuleCatalog:
        """Build a catalog from stored rule documents.

        Args:
            documents: Rule documents (camelCase storage format)
            strict: Raise on the first invalid document. When False, invalid
                documents are logged and skipped.

        Raises:
            InvalidRuleDefinition: In strict mode, for the first invalid rule
        """
        catalog = cls()
        for document in documents:
            try:
                catalog._insert(build_rule(document))
            except InvalidRuleDefinition as err:
                if strict:
                    raise
                const.LOGGER.error(
                    "Skipping invalid rule '%s': %s (%s)",
                    err.rule_id,
                    err.field,
                    err.translation_key,
                )
        const.LOGGER.debug("Loaded rule catalog with %d rules", len(catalog))
        return catalog

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        """Return the number of rules."""
        return len(self._rules)

    def __iter__(self) -> Iterator[RuleDefinition]:
        """Iterate rules in insertion order."""
        return iter(self._rules.values())

    def __contains__(self, rule_id: object) -> bool:
        """Return True if rule_id is in the catalog."""
        return rule_id in self._rules

    def get(self, rule_id: str) -> RuleDefinition:
        """Return a rule by id.

        Raises:
            RuleNotFoundError: If the id is unknown.
        """
        try:
            return self._rules[rule_id]
        except KeyError:
            raise RuleNotFoundError(rule_id) from None

    def find(self, rule_id: str) -> RuleDefinition | None:
        """Return a rule by id, or None."""
        return self._rules.get(rule_id)

    def active_rules(self) -> list[RuleDefinition]:
        """Return the rules that take part in awarding."""
        return [rule for rule in self._rules.values() if rule.is_active]

    def filter(
        self,
        *,
        category: str | None = None,
        tier: str | None = None,
        kind: str | None = None,
        active_only: bool = False,
    ) -> list[RuleDefinition]:
        """Return matching rules ordered by tier, then name.

        Category and tier comparisons ignore case.
        """
        matches = [
            rule
            for rule in self._rules.values()
            if (category is None or rule.category.lower() == category.lower())
            and (tier is None or rule.tier.lower() == tier.lower())
            and (kind is None or rule.kind == kind)
            and (not active_only or rule.is_active)
        ]
        return sorted(matches, key=lambda rule: (_tier_rank(rule.tier), rule.name))

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add(self, rule: RuleDefinition | Mapping[str, Any]) -> RuleDefinition:
        """Add a new rule (a RuleDefinition or a stored rule document).

        Raises:
            InvalidRuleDefinition: If the rule is invalid or the id exists.
        """
        if not isinstance(rule, RuleDefinition):
            rule = build_rule(rule)
        self._insert(rule)
        const.LOGGER.info("Added rule '%s' (%s)", rule.id, rule.name)
        return rule

    def update(self, rule_id: str, changes: Mapping[str, Any]) -> RuleDefinition:
        """Apply a partial update to an existing rule and replace the entry.

        Existing awards for the rule are unaffected.

        Raises:
            RuleNotFoundError: If the id is unknown.
            InvalidRuleDefinition: If the updated rule is invalid.
        """
        updated = build_rule(changes, existing=self.get(rule_id))
        self._rules[rule_id] = updated
        const.LOGGER.info("Updated rule '%s'", rule_id)
        return updated

    def replace(self, rule: RuleDefinition) -> RuleDefinition:
        """Replace an existing rule with a new definition of the same id.

        Raises:
            RuleNotFoundError: If the id is unknown.
            InvalidRuleDefinition: If the new definition is invalid.
        """
        self.get(rule.id)
        validate_rule(rule)
        self._rules[rule.id] = rule
        const.LOGGER.info("Replaced rule '%s'", rule.id)
        return rule

    def deactivate(self, rule_id: str) -> RuleDefinition:
        """Soft delete: keep the rule but exclude it from awarding.

        Raises:
            RuleNotFoundError: If the id is unknown.
        """
        rule = dataclasses.replace(self.get(rule_id), is_active=False)
        self._rules[rule_id] = rule
        const.LOGGER.info("Deactivated rule '%s'", rule_id)
        return rule

    def to_data(self) -> list[RuleData]:
        """Return all rules as storage documents."""
        return [rule_to_data(rule) for rule in self._rules.values()]

    def _insert(self, rule: RuleDefinition) -> None:
        validate_rule(rule)
        if rule.id in self._rules:
            raise InvalidRuleDefinition(
                rule_id=rule.id,
                field=const.DATA_RULE_ID,
                translation_key=const.TRANS_KEY_DUPLICATE_RULE_ID,
            )
        self._rules[rule.id] = rule


# ==============================================================================
# DEFAULT CATALOG
# ==============================================================================

DEFAULT_RULES: list[dict[str, Any]] = [
    # --- Badges ---
    {
        const.DATA_RULE_ID: "b1",
        const.DATA_RULE_NAME: "First Steps",
        const.DATA_RULE_DESCRIPTION: "Attended your first event",
        const.DATA_RULE_ICON: "🎯",
        const.DATA_RULE_KIND: const.RULE_KIND_BADGE,
        const.DATA_RULE_CATEGORY: "milestone",
        const.DATA_RULE_TIER: const.TIER_BRONZE,
        const.DATA_RULE_RARITY: "common",
        const.DATA_RULE_POINT_VALUE: 50,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_EVENT_ATTENDANCE,
            const.DATA_RULE_THRESHOLD: 1,
            const.DATA_RULE_CONDITIONS: {
                const.CONDITION_EVENT_TYPE: const.CONDITION_VALUE_ANY
            },
        },
    },
    {
        const.DATA_RULE_ID: "b2",
        const.DATA_RULE_NAME: "Social Butterfly",
        const.DATA_RULE_DESCRIPTION: "Attended 10 social events",
        const.DATA_RULE_ICON: "🦋",
        const.DATA_RULE_KIND: const.RULE_KIND_BADGE,
        const.DATA_RULE_CATEGORY: "achievement",
        const.DATA_RULE_TIER: const.TIER_SILVER,
        const.DATA_RULE_RARITY: "rare",
        const.DATA_RULE_POINT_VALUE: 200,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_EVENT_ATTENDANCE,
            const.DATA_RULE_THRESHOLD: 10,
            const.DATA_RULE_CONDITIONS: {
                const.CONDITION_EVENT_TYPE: const.EVENT_TYPE_SOCIAL
            },
        },
    },
    {
        const.DATA_RULE_ID: "b3",
        const.DATA_RULE_NAME: "Project Leader",
        const.DATA_RULE_DESCRIPTION: "Led a successful project",
        const.DATA_RULE_ICON: "🚀",
        const.DATA_RULE_KIND: const.RULE_KIND_BADGE,
        const.DATA_RULE_CATEGORY: "leadership",
        const.DATA_RULE_TIER: const.TIER_GOLD,
        const.DATA_RULE_RARITY: "epic",
        const.DATA_RULE_POINT_VALUE: 500,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_PROJECT_COMPLETION,
            const.DATA_RULE_THRESHOLD: 1,
            const.DATA_RULE_CONDITIONS: {
                const.CONDITION_ROLE: const.PROJECT_ROLE_LEAD
            },
        },
    },
    {
        const.DATA_RULE_ID: "b4",
        const.DATA_RULE_NAME: "Point Master",
        const.DATA_RULE_DESCRIPTION: "Reached 1000 points",
        const.DATA_RULE_ICON: "⭐",
        const.DATA_RULE_KIND: const.RULE_KIND_BADGE,
        const.DATA_RULE_CATEGORY: "achievement",
        const.DATA_RULE_TIER: const.TIER_GOLD,
        const.DATA_RULE_RARITY: "epic",
        const.DATA_RULE_POINT_VALUE: 100,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_POINTS_THRESHOLD,
            const.DATA_RULE_THRESHOLD: 1000,
            const.DATA_RULE_CONDITIONS: {},
        },
    },
    # --- Achievements ---
    {
        const.DATA_RULE_ID: "first-event",
        const.DATA_RULE_NAME: "First Steps",
        const.DATA_RULE_DESCRIPTION: "Attend your first event",
        const.DATA_RULE_ICON: "🎯",
        const.DATA_RULE_KIND: const.RULE_KIND_ACHIEVEMENT,
        const.DATA_RULE_CATEGORY: "Event",
        const.DATA_RULE_TIER: const.TIER_BRONZE,
        const.DATA_RULE_POINT_VALUE: 0,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_EVENT_ATTENDANCE,
            const.DATA_RULE_THRESHOLD: 1,
        },
        const.DATA_RULE_MILESTONES: [
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_BRONZE,
                const.DATA_MILESTONE_THRESHOLD: 1,
                const.DATA_MILESTONE_POINT_VALUE: 50,
            },
        ],
    },
    {
        const.DATA_RULE_ID: "event-enthusiast",
        const.DATA_RULE_NAME: "Event Enthusiast",
        const.DATA_RULE_DESCRIPTION: "Attend multiple events",
        const.DATA_RULE_ICON: "🎉",
        const.DATA_RULE_KIND: const.RULE_KIND_ACHIEVEMENT,
        const.DATA_RULE_CATEGORY: "Event",
        const.DATA_RULE_TIER: const.TIER_GOLD,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_EVENT_ATTENDANCE,
            const.DATA_RULE_THRESHOLD: 25,
        },
        const.DATA_RULE_MILESTONES: [
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_BRONZE,
                const.DATA_MILESTONE_THRESHOLD: 5,
                const.DATA_MILESTONE_POINT_VALUE: 100,
            },
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_SILVER,
                const.DATA_MILESTONE_THRESHOLD: 10,
                const.DATA_MILESTONE_POINT_VALUE: 150,
            },
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_GOLD,
                const.DATA_MILESTONE_THRESHOLD: 25,
                const.DATA_MILESTONE_POINT_VALUE: 250,
            },
        ],
    },
    {
        const.DATA_RULE_ID: "project-leader",
        const.DATA_RULE_NAME: "Project Leader",
        const.DATA_RULE_DESCRIPTION: "Lead multiple projects",
        const.DATA_RULE_ICON: "🚀",
        const.DATA_RULE_KIND: const.RULE_KIND_ACHIEVEMENT,
        const.DATA_RULE_CATEGORY: "Project",
        const.DATA_RULE_TIER: const.TIER_PLATINUM,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_PROJECT_COMPLETION,
            const.DATA_RULE_THRESHOLD: 10,
            const.DATA_RULE_CONDITIONS: {
                const.CONDITION_ROLE: const.PROJECT_ROLE_LEAD
            },
        },
        const.DATA_RULE_MILESTONES: [
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_BRONZE,
                const.DATA_MILESTONE_THRESHOLD: 1,
                const.DATA_MILESTONE_POINT_VALUE: 200,
            },
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_SILVER,
                const.DATA_MILESTONE_THRESHOLD: 3,
                const.DATA_MILESTONE_POINT_VALUE: 300,
            },
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_GOLD,
                const.DATA_MILESTONE_THRESHOLD: 5,
                const.DATA_MILESTONE_POINT_VALUE: 400,
            },
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_PLATINUM,
                const.DATA_MILESTONE_THRESHOLD: 10,
                const.DATA_MILESTONE_POINT_VALUE: 500,
            },
        ],
    },
    {
        const.DATA_RULE_ID: "points-milestone-500",
        const.DATA_RULE_NAME: "Rising Star",
        const.DATA_RULE_DESCRIPTION: "Reach 500 points",
        const.DATA_RULE_ICON: "✨",
        const.DATA_RULE_KIND: const.RULE_KIND_ACHIEVEMENT,
        const.DATA_RULE_CATEGORY: "Milestone",
        const.DATA_RULE_TIER: const.TIER_SILVER,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_POINTS_THRESHOLD,
            const.DATA_RULE_THRESHOLD: 500,
        },
        const.DATA_RULE_MILESTONES: [
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_SILVER,
                const.DATA_MILESTONE_THRESHOLD: 500,
                const.DATA_MILESTONE_POINT_VALUE: 0,
                const.DATA_MILESTONE_REWARD: "Rising Star Badge",
            },
        ],
    },
    {
        const.DATA_RULE_ID: "points-milestone-1000",
        const.DATA_RULE_NAME: "Shining Bright",
        const.DATA_RULE_DESCRIPTION: "Reach 1000 points",
        const.DATA_RULE_ICON: "✨",
        const.DATA_RULE_KIND: const.RULE_KIND_ACHIEVEMENT,
        const.DATA_RULE_CATEGORY: "Milestone",
        const.DATA_RULE_TIER: const.TIER_GOLD,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_POINTS_THRESHOLD,
            const.DATA_RULE_THRESHOLD: 1000,
        },
        const.DATA_RULE_MILESTONES: [
            {
                const.DATA_MILESTONE_LEVEL: const.TIER_GOLD,
                const.DATA_MILESTONE_THRESHOLD: 1000,
                const.DATA_MILESTONE_POINT_VALUE: 0,
                const.DATA_MILESTONE_REWARD: "Shining Star Badge",
            },
        ],
    },
]


def default_catalog() -> RuleCatalog:
    """Return a fresh catalog seeded with the stock badges and achievements."""
    return RuleCatalog.from_data(DEFAULT_RULES)

"""Rule, snapshot and award builders.

This module is the SINGLE SOURCE OF TRUTH for:
- Rule document shape checks (voluptuous RULE_SCHEMA)
- Rule business validation (threshold, conditions, milestone ordering)
- Building immutable RuleDefinition / MemberActivitySnapshot / AwardRecord
  values from storage documents, and converting them back

### Validation Functions
`validate_rule_data()` takes a storage document and returns a dict of
errors ({field: translation_key}); an empty dict means the rule is valid.
`validate_rule()` performs the same business checks on an already built
RuleDefinition and raises InvalidRuleDefinition.

### Build Functions
`build_rule()` handles both create (existing=None) and update
(existing=RuleDefinition) and raises InvalidRuleDefinition on the first
problem, so an invalid rule never reaches the engines.

Consumers:
- catalog.py (rule catalog build/update)
- managers/award_manager.py (award records, settings)
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
import math
from typing import TYPE_CHECKING, Any

import voluptuous as vol

from . import const
from .type_defs import (
    CONDITIONS_BY_CRITERIA_TYPE,
    AwardRecord,
    CustomConditions,
    EventAttendanceConditions,
    MemberActivitySnapshot,
    Milestone,
    PointsThresholdConditions,
    ProjectCompletionConditions,
    RuleDefinition,
)
from .utils.dt_utils import dt_months_between, dt_now_utc, dt_parse

if TYPE_CHECKING:
    from .type_defs import (
        AwardData,
        AwardSettings,
        Eligible,
        MilestoneData,
        RuleConditions,
        RuleData,
        SnapshotData,
    )

# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class MemberAwardsError(Exception):
    """Base class for memberawards errors."""


class InvalidRuleDefinition(MemberAwardsError):
    """A rule definition failed validation at catalog build/update time.

    Attributes:
        rule_id: Id of the offending rule (may be empty when the id itself is bad)
        field: Storage key of the field that failed
        translation_key: The TRANS_KEY_* constant describing the problem
        placeholders: Optional values for the admin UI message

    Example:
        raise InvalidRuleDefinition(
            rule_id="b4",
            field=const.DATA_RULE_THRESHOLD,
            translation_key=const.TRANS_KEY_INVALID_THRESHOLD,
            placeholders={"value": "0"},
        )
    """

    def __init__(
        self,
        rule_id: str,
        field: str,
        translation_key: str,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize InvalidRuleDefinition."""
        self.rule_id = rule_id
        self.field = field
        self.translation_key = translation_key
        self.placeholders = placeholders or {}
        super().__init__(
            f"Invalid rule definition '{rule_id}': {field} ({translation_key})"
        )


# ==============================================================================
# SCHEMAS
# ==============================================================================

MILESTONE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_MILESTONE_LEVEL): vol.All(str, vol.Length(min=1)),
        vol.Required(const.DATA_MILESTONE_THRESHOLD): vol.Coerce(float),
        vol.Optional(const.DATA_MILESTONE_POINT_VALUE, default=0): vol.Coerce(float),
        vol.Optional(const.DATA_MILESTONE_REWARD, default=None): vol.Any(None, str),
    },
    extra=vol.REMOVE_EXTRA,
)

CRITERIA_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RULE_CRITERIA_TYPE): str,
        vol.Required(const.DATA_RULE_THRESHOLD): vol.Coerce(float),
        vol.Optional(const.DATA_RULE_CONDITIONS, default=dict): vol.Any(None, dict),
    },
    extra=vol.REMOVE_EXTRA,
)

RULE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RULE_ID): vol.All(vol.Coerce(str), vol.Length(min=1)),
        vol.Optional(const.DATA_RULE_NAME, default=""): str,
        vol.Optional(const.DATA_RULE_DESCRIPTION, default=""): str,
        vol.Optional(const.DATA_RULE_ICON, default=""): str,
        vol.Optional(const.DATA_RULE_KIND, default=const.RULE_KIND_BADGE): vol.In(
            const.RULE_KINDS
        ),
        vol.Optional(
            const.DATA_RULE_CATEGORY, default=const.DEFAULT_RULE_CATEGORY
        ): str,
        vol.Optional(const.DATA_RULE_TIER, default=const.DEFAULT_RULE_TIER): str,
        vol.Optional(const.DATA_RULE_RARITY, default=const.DEFAULT_RULE_RARITY): str,
        vol.Optional(const.DATA_RULE_POINT_VALUE, default=0): vol.Coerce(float),
        vol.Required(const.DATA_RULE_CRITERIA): CRITERIA_SCHEMA,
        vol.Optional(const.DATA_RULE_MILESTONES, default=list): vol.Any(
            None, [MILESTONE_SCHEMA]
        ),
        vol.Optional(const.DATA_RULE_IS_ACTIVE, default=True): bool,
    },
    extra=vol.REMOVE_EXTRA,
)

SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_NEARLY_EARNED_PERCENT,
            default=const.DEFAULT_NEARLY_EARNED_PERCENT,
        ): vol.All(vol.Coerce(int), vol.Range(min=0, max=100)),
        vol.Optional(
            const.CONF_CLOSEST_LIMIT, default=const.DEFAULT_CLOSEST_LIMIT
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(
            const.CONF_AWARD_REASON_TEMPLATE,
            default=const.DEFAULT_AWARD_REASON_TEMPLATE,
        ): str,
        vol.Optional(
            const.CONF_AWARDED_BY, default=const.DEFAULT_AWARDED_BY
        ): vol.All(str, vol.Length(min=1)),
    }
)


# ==============================================================================
# SETTINGS
# ==============================================================================


def build_settings(raw: Mapping[str, Any] | None = None) -> AwardSettings:
    """Validate AwardManager settings and apply defaults.

    Raises:
        vol.Invalid: If a setting has the wrong type or is out of range.
    """
    return SETTINGS_SCHEMA(dict(raw or {}))  # type: ignore[no-any-return]


# ==============================================================================
# RULES
# ==============================================================================


def _is_blank(value: Any) -> bool:
    """Condition values that count as "not set" in stored documents."""
    return value is None or (isinstance(value, str) and not value.strip())


def _build_conditions(criteria_type: str, raw: Mapping[str, Any]) -> RuleConditions:
    """Map a stored conditions dict onto the criteria type's variant."""
    if criteria_type == const.CRITERIA_TYPE_EVENT_ATTENDANCE:
        event_type = raw.get(const.CONDITION_EVENT_TYPE)
        return EventAttendanceConditions(
            event_type=None if _is_blank(event_type) else str(event_type)
        )

    if criteria_type == const.CRITERIA_TYPE_PROJECT_COMPLETION:
        role = raw.get(const.CONDITION_ROLE)
        return ProjectCompletionConditions(role=None if _is_blank(role) else str(role))

    if criteria_type == const.CRITERIA_TYPE_CUSTOM:
        duration = raw.get(const.CONDITION_MEMBERSHIP_DURATION)
        role_held = raw.get(const.CONDITION_ROLE_HELD)
        tier_reached = raw.get(const.CONDITION_TIER_REACHED)
        return CustomConditions(
            membership_duration=None if _is_blank(duration) else float(duration),
            role_held=None if _is_blank(role_held) else str(role_held),
            tier_reached=None if _is_blank(tier_reached) else str(tier_reached),
        )

    return PointsThresholdConditions()


def _conditions_to_data(conditions: RuleConditions) -> dict[str, Any]:
    """Inverse of _build_conditions; unset qualifiers are omitted."""
    data: dict[str, Any] = {}
    if isinstance(conditions, EventAttendanceConditions):
        if conditions.event_type is not None:
            data[const.CONDITION_EVENT_TYPE] = conditions.event_type
    elif isinstance(conditions, ProjectCompletionConditions):
        if conditions.role is not None:
            data[const.CONDITION_ROLE] = conditions.role
    elif isinstance(conditions, CustomConditions):
        if conditions.membership_duration is not None:
            data[const.CONDITION_MEMBERSHIP_DURATION] = conditions.membership_duration
        if conditions.role_held is not None:
            data[const.CONDITION_ROLE_HELD] = conditions.role_held
        if conditions.tier_reached is not None:
            data[const.CONDITION_TIER_REACHED] = conditions.tier_reached
    return data


def _collect_rule_errors(rule: RuleDefinition) -> dict[str, str]:
    """Business rules shared by validate_rule_data() and validate_rule().

    Validation Rules:
        1. Criteria type is one of the supported types
        2. Conditions variant matches the criteria type
        3. Threshold is finite and > 0
        4. Custom membership duration is finite and not negative
        5. Milestone levels are unique
        6. Milestone thresholds strictly increase
    """
    errors: dict[str, str] = {}

    # === 1. Known criteria type ===
    expected_conditions = CONDITIONS_BY_CRITERIA_TYPE.get(rule.criteria_type)
    if expected_conditions is None:
        errors[const.DATA_RULE_CRITERIA_TYPE] = const.TRANS_KEY_INVALID_CRITERIA_TYPE
        return errors

    # === 2. Conditions variant ===
    if not isinstance(rule.conditions, expected_conditions):
        errors[const.DATA_RULE_CONDITIONS] = const.TRANS_KEY_INVALID_CONDITION
        return errors

    # === 3. Positive threshold ===
    if not (math.isfinite(rule.threshold) and rule.threshold > 0):
        errors[const.DATA_RULE_THRESHOLD] = const.TRANS_KEY_INVALID_THRESHOLD
        return errors

    # === 4. Membership duration ===
    if (
        isinstance(rule.conditions, CustomConditions)
        and rule.conditions.membership_duration is not None
        and not (
            math.isfinite(rule.conditions.membership_duration)
            and rule.conditions.membership_duration >= 0
        )
    ):
        errors[const.DATA_RULE_CONDITIONS] = const.TRANS_KEY_INVALID_CONDITION
        return errors

    # === 5 & 6. Milestones ===
    seen_levels: set[str] = set()
    previous_threshold: float | None = None
    for milestone in rule.milestones:
        if milestone.level in seen_levels:
            errors[const.DATA_RULE_MILESTONES] = (
                const.TRANS_KEY_DUPLICATE_MILESTONE_LEVEL
            )
            return errors
        seen_levels.add(milestone.level)

        if not (math.isfinite(milestone.threshold) and milestone.threshold >= 0):
            errors[const.DATA_RULE_MILESTONES] = (
                const.TRANS_KEY_INVALID_MILESTONE_THRESHOLD
            )
            return errors

        if previous_threshold is not None and milestone.threshold <= previous_threshold:
            errors[const.DATA_RULE_MILESTONES] = (
                const.TRANS_KEY_MILESTONES_NOT_INCREASING
            )
            return errors
        previous_threshold = milestone.threshold

    return errors


def _rule_from_valid_data(data: Mapping[str, Any]) -> RuleDefinition:
    """Build a RuleDefinition from a document that already passed RULE_SCHEMA."""
    criteria = data[const.DATA_RULE_CRITERIA]
    criteria_type = criteria[const.DATA_RULE_CRITERIA_TYPE]
    raw_milestones = data.get(const.DATA_RULE_MILESTONES) or []

    return RuleDefinition(
        id=data[const.DATA_RULE_ID],
        criteria_type=criteria_type,
        threshold=criteria[const.DATA_RULE_THRESHOLD],
        conditions=_build_conditions(
            criteria_type, criteria.get(const.DATA_RULE_CONDITIONS) or {}
        ),
        milestones=tuple(
            Milestone(
                level=item[const.DATA_MILESTONE_LEVEL],
                threshold=item[const.DATA_MILESTONE_THRESHOLD],
                point_value=item[const.DATA_MILESTONE_POINT_VALUE],
                reward=item.get(const.DATA_MILESTONE_REWARD),
            )
            for item in raw_milestones
        ),
        is_active=data[const.DATA_RULE_IS_ACTIVE],
        name=data[const.DATA_RULE_NAME],
        description=data[const.DATA_RULE_DESCRIPTION],
        icon=data[const.DATA_RULE_ICON],
        kind=data[const.DATA_RULE_KIND],
        category=data[const.DATA_RULE_CATEGORY],
        tier=data[const.DATA_RULE_TIER],
        rarity=data[const.DATA_RULE_RARITY],
        point_value=data[const.DATA_RULE_POINT_VALUE],
    )


def _check_rule_data(
    data: Mapping[str, Any],
) -> tuple[RuleDefinition | None, dict[str, str]]:
    """Run schema and business validation, returning (rule, errors)."""
    try:
        normalized = RULE_SCHEMA(dict(data))
    except vol.Invalid as err:
        path = [str(part) for part in getattr(err, "path", [])]
        field = ".".join(path) or const.DATA_RULE_ID
        return None, {field: const.TRANS_KEY_INVALID_RULE_SCHEMA}

    criteria = normalized[const.DATA_RULE_CRITERIA]
    criteria_type = criteria[const.DATA_RULE_CRITERIA_TYPE]
    allowed_keys = const.CRITERIA_CONDITION_KEYS.get(criteria_type)
    if allowed_keys is None:
        return None, {
            const.DATA_RULE_CRITERIA_TYPE: const.TRANS_KEY_INVALID_CRITERIA_TYPE
        }

    conditions = criteria.get(const.DATA_RULE_CONDITIONS) or {}
    for key, value in conditions.items():
        if key not in allowed_keys and not _is_blank(value):
            return None, {const.DATA_RULE_CONDITIONS: const.TRANS_KEY_INVALID_CONDITION}

    if const.CONDITION_MEMBERSHIP_DURATION in conditions and not _is_blank(
        conditions[const.CONDITION_MEMBERSHIP_DURATION]
    ):
        try:
            float(conditions[const.CONDITION_MEMBERSHIP_DURATION])
        except (TypeError, ValueError):
            return None, {const.DATA_RULE_CONDITIONS: const.TRANS_KEY_INVALID_CONDITION}

    rule = _rule_from_valid_data(normalized)
    errors = _collect_rule_errors(rule)
    return (None, errors) if errors else (rule, errors)


def validate_rule_data(data: Mapping[str, Any]) -> dict[str, str]:
    """Validate a stored rule document.

    Args:
        data: Rule document with camelCase storage keys

    Returns:
        Dict of errors: {field: translation_key}. Empty dict means valid.
    """
    _rule, errors = _check_rule_data(data)
    return errors


def validate_rule(rule: RuleDefinition) -> None:
    """Validate an already built RuleDefinition.

    Raises:
        InvalidRuleDefinition: On the first business rule violation.
    """
    if not rule.id:
        raise InvalidRuleDefinition(
            rule_id=rule.id,
            field=const.DATA_RULE_ID,
            translation_key=const.TRANS_KEY_INVALID_RULE_ID,
        )
    errors = _collect_rule_errors(rule)
    if errors:
        field, translation_key = next(iter(errors.items()))
        raise InvalidRuleDefinition(
            rule_id=rule.id,
            field=field,
            translation_key=translation_key,
            placeholders={"threshold": str(rule.threshold)},
        )


def build_rule(
    user_input: Mapping[str, Any],
    existing: RuleDefinition | None = None,
) -> RuleDefinition:
    """Build a rule for create or update operations.

    One function handles both create (existing=None) and update
    (existing=RuleDefinition). On update, fields missing from user_input keep
    their existing values; a partial criteria block is merged key by key.
    Changing the criteria type without new conditions clears the old ones.

    Args:
        user_input: Rule document (may be partial on update)
        existing: None for create, the current rule for update

    Returns:
        Validated, immutable RuleDefinition

    Raises:
        InvalidRuleDefinition: If the resulting rule fails validation

    Examples:
        # CREATE mode
        rule = build_rule({"id": "b4", "criteria": {"type": "points_threshold",
                                                     "threshold": 1000}})

        # UPDATE mode - only the threshold changes
        rule = build_rule({"criteria": {"threshold": 1500}}, existing=rule)
    """
    if existing is None:
        data: dict[str, Any] = dict(user_input)
    else:
        data = dict(rule_to_data(existing))
        for key, value in user_input.items():
            if key == const.DATA_RULE_CRITERIA and isinstance(value, Mapping):
                merged = dict(data[const.DATA_RULE_CRITERIA])
                type_changed = value.get(
                    const.DATA_RULE_CRITERIA_TYPE, existing.criteria_type
                ) != existing.criteria_type
                if type_changed and const.DATA_RULE_CONDITIONS not in value:
                    # Qualifiers belong to the old criteria type
                    merged[const.DATA_RULE_CONDITIONS] = {}
                merged.update(value)
                data[key] = merged
            else:
                data[key] = value
        # Rule ids are immutable
        data[const.DATA_RULE_ID] = existing.id

    rule, errors = _check_rule_data(data)
    if rule is None:
        field, translation_key = next(iter(errors.items()))
        raise InvalidRuleDefinition(
            rule_id=str(data.get(const.DATA_RULE_ID, "")),
            field=field,
            translation_key=translation_key,
        )
    return rule


def rule_to_data(rule: RuleDefinition) -> RuleData:
    """Convert a RuleDefinition to its storage document."""
    milestones: list[MilestoneData] = [
        {
            const.DATA_MILESTONE_LEVEL: milestone.level,  # type: ignore[misc]
            const.DATA_MILESTONE_THRESHOLD: milestone.threshold,
            const.DATA_MILESTONE_POINT_VALUE: milestone.point_value,
            const.DATA_MILESTONE_REWARD: milestone.reward,
        }
        for milestone in rule.milestones
    ]
    return {
        const.DATA_RULE_ID: rule.id,  # type: ignore[misc]
        const.DATA_RULE_NAME: rule.name,
        const.DATA_RULE_DESCRIPTION: rule.description,
        const.DATA_RULE_ICON: rule.icon,
        const.DATA_RULE_KIND: rule.kind,
        const.DATA_RULE_CATEGORY: rule.category,
        const.DATA_RULE_TIER: rule.tier,
        const.DATA_RULE_RARITY: rule.rarity,
        const.DATA_RULE_POINT_VALUE: rule.point_value,
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: rule.criteria_type,
            const.DATA_RULE_THRESHOLD: rule.threshold,
            const.DATA_RULE_CONDITIONS: _conditions_to_data(rule.conditions),
        },
        const.DATA_RULE_MILESTONES: milestones,
        const.DATA_RULE_IS_ACTIVE: rule.is_active,
    }


# ==============================================================================
# SNAPSHOTS
# ==============================================================================

_SNAPSHOT_COUNTER_FIELDS: dict[str, str] = {
    const.DATA_SNAPSHOT_EVENTS_ATTENDED: "events_attended",
    const.DATA_SNAPSHOT_SOCIAL_EVENTS_ATTENDED: "social_events_attended",
    const.DATA_SNAPSHOT_TRAINING_EVENTS_ATTENDED: "training_events_attended",
    const.DATA_SNAPSHOT_PROJECTS_COMPLETED: "projects_completed",
    const.DATA_SNAPSHOT_PROJECTS_LED: "projects_led",
}


def _non_negative(key: str, value: Any, member_id: str) -> float:
    """Coerce a counter to a non-negative number."""
    number = float(value or 0)
    if number < 0:
        const.LOGGER.warning(
            "Negative counter %s=%s for member %s, using 0", key, value, member_id
        )
        return 0.0
    return number


def build_snapshot(
    member_id: str,
    data: SnapshotData | Mapping[str, Any],
    *,
    join_date: str | datetime | None = None,
    now: datetime | None = None,
) -> MemberActivitySnapshot:
    """Build an activity snapshot from a counter document.

    When the document has no membershipDuration but the member's join date is
    known, the duration is derived as whole calendar months since joining.

    Args:
        member_id: Member the counters belong to
        data: Counter document with camelCase keys (missing counters are 0)
        join_date: Optional join date (ISO string or datetime)
        now: Optional "current time" for deterministic duration math

    Returns:
        Immutable MemberActivitySnapshot
    """
    counters = {
        attr: int(_non_negative(key, data.get(key), member_id))
        for key, attr in _SNAPSHOT_COUNTER_FIELDS.items()
    }

    if data.get(const.DATA_SNAPSHOT_MEMBERSHIP_DURATION) is not None:
        duration = _non_negative(
            const.DATA_SNAPSHOT_MEMBERSHIP_DURATION,
            data[const.DATA_SNAPSHOT_MEMBERSHIP_DURATION],
            member_id,
        )
    else:
        joined = dt_parse(join_date)
        duration = float(dt_months_between(joined, now)) if joined else 0.0

    role = data.get(const.DATA_SNAPSHOT_ROLE)
    tier = data.get(const.DATA_SNAPSHOT_TIER)

    return MemberActivitySnapshot(
        member_id=member_id,
        points=_non_negative(
            const.DATA_SNAPSHOT_POINTS, data.get(const.DATA_SNAPSHOT_POINTS), member_id
        ),
        membership_duration=duration,
        role=None if _is_blank(role) else str(role),
        tier=None if _is_blank(tier) else str(tier),
        **counters,
    )


# ==============================================================================
# AWARDS
# ==============================================================================


def build_award_reason(
    rule: RuleDefinition,
    template: str = const.DEFAULT_AWARD_REASON_TEMPLATE,
) -> str:
    """Render the human-readable reason stored with an automatic award."""
    threshold = rule.threshold
    threshold_text = str(int(threshold)) if threshold == int(threshold) else str(threshold)
    return template.format(
        criteria_type=rule.criteria_type,
        threshold=threshold_text,
        name=rule.name,
    )


def build_award_record(
    rule: RuleDefinition,
    decision: Eligible,
    *,
    awarded_at: datetime | None = None,
    awarded_by: str = const.DEFAULT_AWARDED_BY,
    reason_template: str = const.DEFAULT_AWARD_REASON_TEMPLATE,
) -> AwardRecord:
    """Build the award record for a positive eligibility decision.

    The criteria in force are copied into metadata so the record stays
    self-describing after the rule is edited.
    """
    return AwardRecord(
        rule_id=decision.rule_id,
        member_id=decision.member_id,
        awarded_at=awarded_at or dt_now_utc(),
        reason=build_award_reason(rule, reason_template),
        completed_milestone_levels=decision.progress.completed_milestones,
        awarded_by=awarded_by,
        metadata={
            const.DATA_AWARD_METADATA_CRITERIA_TYPE: rule.criteria_type,
            const.DATA_AWARD_METADATA_THRESHOLD: rule.threshold,
            const.DATA_AWARD_METADATA_PERCENTAGE: decision.progress.percentage,
        },
    )


def award_to_data(award: AwardRecord) -> AwardData:
    """Convert an AwardRecord to its storage document."""
    return {
        const.DATA_AWARD_RULE_ID: award.rule_id,  # type: ignore[misc]
        const.DATA_AWARD_MEMBER_ID: award.member_id,
        const.DATA_AWARD_AWARDED_AT: award.awarded_at.isoformat(),
        const.DATA_AWARD_REASON: award.reason,
        const.DATA_AWARD_AWARDED_BY: award.awarded_by,
        const.DATA_AWARD_COMPLETED_MILESTONE_LEVELS: list(
            award.completed_milestone_levels
        ),
        const.DATA_AWARD_METADATA: dict(award.metadata),
    }


def award_from_data(data: Mapping[str, Any]) -> AwardRecord:
    """Build an AwardRecord from its storage document.

    Raises:
        KeyError: If ruleId or memberId is missing.
    """
    awarded_at = dt_parse(data.get(const.DATA_AWARD_AWARDED_AT)) or dt_now_utc()
    return AwardRecord(
        rule_id=str(data[const.DATA_AWARD_RULE_ID]),
        member_id=str(data[const.DATA_AWARD_MEMBER_ID]),
        awarded_at=awarded_at,
        reason=str(data.get(const.DATA_AWARD_REASON) or ""),
        completed_milestone_levels=tuple(
            data.get(const.DATA_AWARD_COMPLETED_MILESTONE_LEVELS) or ()
        ),
        awarded_by=str(data.get(const.DATA_AWARD_AWARDED_BY) or const.DEFAULT_AWARDED_BY),
        metadata=dict(data.get(const.DATA_AWARD_METADATA) or {}),
    )

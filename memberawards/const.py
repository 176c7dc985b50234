# File: const.py
"""Constants for the memberawards package.

This file centralizes storage keys, criteria types, condition keys, defaults
and labels so the engines, builders and managers stay consistent with the
document format used by the surrounding membership application.
"""

import logging

# ------------------------------------------------------------------------------------------------
# Logger
# ------------------------------------------------------------------------------------------------
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Rule Kinds
# ------------------------------------------------------------------------------------------------
RULE_KIND_ACHIEVEMENT = "achievement"
RULE_KIND_BADGE = "badge"

RULE_KINDS = (RULE_KIND_BADGE, RULE_KIND_ACHIEVEMENT)

# ------------------------------------------------------------------------------------------------
# Criteria Types
# ------------------------------------------------------------------------------------------------
CRITERIA_TYPE_CUSTOM = "custom"
CRITERIA_TYPE_EVENT_ATTENDANCE = "event_attendance"
CRITERIA_TYPE_POINTS_THRESHOLD = "points_threshold"
CRITERIA_TYPE_PROJECT_COMPLETION = "project_completion"

# ------------------------------------------------------------------------------------------------
# Condition Keys (storage format, camelCase)
# ------------------------------------------------------------------------------------------------
CONDITION_EVENT_TYPE = "eventType"
CONDITION_MEMBERSHIP_DURATION = "membershipDuration"
CONDITION_ROLE = "role"
CONDITION_ROLE_HELD = "roleHeld"
CONDITION_TIER_REACHED = "tierReached"

# Which condition keys each criteria type accepts
CRITERIA_CONDITION_KEYS: dict[str, tuple[str, ...]] = {
    CRITERIA_TYPE_POINTS_THRESHOLD: (),
    CRITERIA_TYPE_EVENT_ATTENDANCE: (CONDITION_EVENT_TYPE,),
    CRITERIA_TYPE_PROJECT_COMPLETION: (CONDITION_ROLE,),
    CRITERIA_TYPE_CUSTOM: (
        CONDITION_MEMBERSHIP_DURATION,
        CONDITION_ROLE_HELD,
        CONDITION_TIER_REACHED,
    ),
}

# Condition values
CONDITION_VALUE_ANY = "any"
EVENT_TYPE_SOCIAL = "Social"
EVENT_TYPE_TRAINING = "Training"
PROJECT_ROLE_LEAD = "lead"
PROJECT_ROLE_MEMBER = "member"

# ------------------------------------------------------------------------------------------------
# Rule Data Keys (storage format)
# ------------------------------------------------------------------------------------------------
DATA_RULE_CATEGORY = "category"
DATA_RULE_CONDITIONS = "conditions"
DATA_RULE_CRITERIA = "criteria"
DATA_RULE_CRITERIA_TYPE = "type"
DATA_RULE_DESCRIPTION = "description"
DATA_RULE_ICON = "icon"
DATA_RULE_ID = "id"
DATA_RULE_IS_ACTIVE = "isActive"
DATA_RULE_KIND = "kind"
DATA_RULE_MILESTONES = "milestones"
DATA_RULE_NAME = "name"
DATA_RULE_POINT_VALUE = "pointValue"
DATA_RULE_RARITY = "rarity"
DATA_RULE_THRESHOLD = "threshold"
DATA_RULE_TIER = "tier"

DATA_MILESTONE_LEVEL = "level"
DATA_MILESTONE_POINT_VALUE = "pointValue"
DATA_MILESTONE_REWARD = "reward"
DATA_MILESTONE_THRESHOLD = "threshold"

# ------------------------------------------------------------------------------------------------
# Snapshot Data Keys (storage format)
# ------------------------------------------------------------------------------------------------
DATA_SNAPSHOT_EVENTS_ATTENDED = "eventsAttended"
DATA_SNAPSHOT_MEMBERSHIP_DURATION = "membershipDuration"
DATA_SNAPSHOT_POINTS = "points"
DATA_SNAPSHOT_PROJECTS_COMPLETED = "projectsCompleted"
DATA_SNAPSHOT_PROJECTS_LED = "projectsLed"
DATA_SNAPSHOT_ROLE = "role"
DATA_SNAPSHOT_SOCIAL_EVENTS_ATTENDED = "socialEventsAttended"
DATA_SNAPSHOT_TIER = "tier"
DATA_SNAPSHOT_TRAINING_EVENTS_ATTENDED = "trainingEventsAttended"

# ------------------------------------------------------------------------------------------------
# Award Data Keys (storage format)
# ------------------------------------------------------------------------------------------------
DATA_AWARD_AWARDED_AT = "awardedAt"
DATA_AWARD_AWARDED_BY = "awardedBy"
DATA_AWARD_COMPLETED_MILESTONE_LEVELS = "completedMilestoneLevels"
DATA_AWARD_MEMBER_ID = "memberId"
DATA_AWARD_METADATA = "metadata"
DATA_AWARD_REASON = "reason"
DATA_AWARD_RULE_ID = "ruleId"

# Metadata recorded with an award (criteria in force when it was granted)
DATA_AWARD_METADATA_CRITERIA_TYPE = "criteriaType"
DATA_AWARD_METADATA_PERCENTAGE = "percentage"
DATA_AWARD_METADATA_THRESHOLD = "threshold"

# ------------------------------------------------------------------------------------------------
# Settings Keys
# ------------------------------------------------------------------------------------------------
CONF_AWARD_REASON_TEMPLATE = "award_reason_template"
CONF_AWARDED_BY = "awarded_by"
CONF_CLOSEST_LIMIT = "closest_limit"
CONF_NEARLY_EARNED_PERCENT = "nearly_earned_percent"

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_AWARD_REASON_TEMPLATE = (
    "Automatically earned by meeting criteria: {criteria_type} >= {threshold}"
)
DEFAULT_AWARDED_BY = "system"
DEFAULT_CLOSEST_LIMIT = 6
DEFAULT_NEARLY_EARNED_PERCENT = 80
DEFAULT_RULE_CATEGORY = "achievement"
DEFAULT_RULE_RARITY = "common"
DEFAULT_RULE_TIER = "Bronze"

PERCENT_MAX = 100
PERCENT_MIN = 0

# ------------------------------------------------------------------------------------------------
# Tiers (catalog ordering)
# ------------------------------------------------------------------------------------------------
TIER_BRONZE = "Bronze"
TIER_GOLD = "Gold"
TIER_LEGENDARY = "Legendary"
TIER_PLATINUM = "Platinum"
TIER_SILVER = "Silver"

TIER_ORDER: dict[str, int] = {
    TIER_BRONZE: 1,
    TIER_SILVER: 2,
    TIER_GOLD: 3,
    TIER_PLATINUM: 4,
    TIER_LEGENDARY: 5,
}

# ------------------------------------------------------------------------------------------------
# Milestone / Progress Status
# ------------------------------------------------------------------------------------------------
MILESTONE_STATUS_COMPLETED = "completed"
MILESTONE_STATUS_IN_PROGRESS = "in_progress"
MILESTONE_STATUS_LOCKED = "locked"

PROGRESS_STATUS_COMPLETED = "completed"
PROGRESS_STATUS_IN_PROGRESS = "in_progress"
PROGRESS_STATUS_NOT_STARTED = "not_started"

# ------------------------------------------------------------------------------------------------
# Not-eligible reasons
# ------------------------------------------------------------------------------------------------
REASON_CRITERIA_NOT_MET = "criteria_not_met"
REASON_RULE_INACTIVE = "rule_inactive"

# ------------------------------------------------------------------------------------------------
# Validation translation keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_DUPLICATE_MILESTONE_LEVEL = "duplicate_milestone_level"
TRANS_KEY_DUPLICATE_RULE_ID = "duplicate_rule_id"
TRANS_KEY_INVALID_CONDITION = "invalid_condition"
TRANS_KEY_INVALID_CRITERIA_TYPE = "invalid_criteria_type"
TRANS_KEY_INVALID_MILESTONE_THRESHOLD = "invalid_milestone_threshold"
TRANS_KEY_INVALID_RULE_ID = "invalid_rule_id"
TRANS_KEY_INVALID_RULE_SCHEMA = "invalid_rule_schema"
TRANS_KEY_INVALID_THRESHOLD = "invalid_threshold"
TRANS_KEY_MILESTONES_NOT_INCREASING = "milestones_not_increasing"

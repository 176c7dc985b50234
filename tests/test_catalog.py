"""Tests for RuleCatalog and the stock catalog.

Test Categories:
- Default catalog contents
- Strict and lenient loading
- Lookup, add, update, replace, deactivate
- Filtering and ordering
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from memberawards import const
from memberawards.catalog import (
    DEFAULT_RULES,
    RuleCatalog,
    RuleNotFoundError,
    default_catalog,
)
from memberawards.data_builders import InvalidRuleDefinition
from memberawards.type_defs import RuleDefinition


def make_rule_data(rule_id: str, threshold: Any = 100) -> dict[str, Any]:
    """Minimal points rule document."""
    return {
        const.DATA_RULE_ID: rule_id,
        const.DATA_RULE_NAME: f"Rule {rule_id}",
        const.DATA_RULE_CRITERIA: {
            const.DATA_RULE_CRITERIA_TYPE: const.CRITERIA_TYPE_POINTS_THRESHOLD,
            const.DATA_RULE_THRESHOLD: threshold,
        },
    }


# =============================================================================
# Test: default catalog
# =============================================================================


class TestDefaultCatalog:
    """Tests for the stock badges and achievements."""

    def test_contents(self, stock_catalog: RuleCatalog) -> None:
        """Every stock rule loads and is active."""
        assert len(stock_catalog) == len(DEFAULT_RULES) == 9
        assert [rule.id for rule in stock_catalog.active_rules()] == [
            "b1",
            "b2",
            "b3",
            "b4",
            "first-event",
            "event-enthusiast",
            "project-leader",
            "points-milestone-500",
            "points-milestone-1000",
        ]

    def test_fresh_instance(self) -> None:
        """Each call returns an independent catalog."""
        first = default_catalog()
        first.deactivate("b1")

        assert default_catalog().get("b1").is_active is True

    def test_milestones_loaded(self, stock_catalog: RuleCatalog) -> None:
        """Achievement milestones keep their authored order and payouts."""
        rule = stock_catalog.get("event-enthusiast")

        assert rule.milestone_levels == ("Bronze", "Silver", "Gold")
        assert [m.point_value for m in rule.milestones] == [100, 150, 250]


# =============================================================================
# Test: loading
# =============================================================================


class TestLoading:
    """Tests for building catalogs from documents."""

    def test_strict_rejects_invalid(self) -> None:
        """Strict loading raises on the first invalid rule."""
        with pytest.raises(InvalidRuleDefinition) as exc_info:
            RuleCatalog.from_data([make_rule_data("ok"), make_rule_data("bad", 0)])

        assert exc_info.value.rule_id == "bad"

    def test_strict_rejects_duplicate_ids(self) -> None:
        """Rule ids are unique within a catalog."""
        with pytest.raises(InvalidRuleDefinition) as exc_info:
            RuleCatalog.from_data([make_rule_data("r1"), make_rule_data("r1")])

        assert exc_info.value.translation_key == const.TRANS_KEY_DUPLICATE_RULE_ID

    def test_lenient_skips_invalid(self, caplog: pytest.LogCaptureFixture) -> None:
        """Lenient loading logs and skips invalid rules."""
        with caplog.at_level(logging.ERROR):
            catalog = RuleCatalog.from_data(
                [make_rule_data("ok"), make_rule_data("bad", -10)], strict=False
            )

        assert "ok" in catalog
        assert "bad" not in catalog
        assert "Skipping invalid rule 'bad'" in caplog.text

    def test_documents_round_trip(self, stock_catalog: RuleCatalog) -> None:
        """to_data output rebuilds an equal catalog."""
        rebuilt = RuleCatalog.from_data(stock_catalog.to_data())

        assert list(rebuilt) == list(stock_catalog)


# =============================================================================
# Test: lookup and mutation
# =============================================================================


class TestMutation:
    """Tests for catalog edits."""

    def test_get_unknown(self, stock_catalog: RuleCatalog) -> None:
        """Unknown ids raise RuleNotFoundError."""
        with pytest.raises(RuleNotFoundError) as exc_info:
            stock_catalog.get("missing")

        assert exc_info.value.rule_id == "missing"
        assert stock_catalog.find("missing") is None

    def test_add_document(self) -> None:
        """Documents are validated and added."""
        catalog = RuleCatalog()

        rule = catalog.add(make_rule_data("r1", 250))

        assert catalog.get("r1") is rule
        assert rule.threshold == 250

    def test_add_duplicate(self, stock_catalog: RuleCatalog) -> None:
        """Adding an existing id fails."""
        with pytest.raises(InvalidRuleDefinition):
            stock_catalog.add(make_rule_data("b1"))

    def test_update(self, stock_catalog: RuleCatalog) -> None:
        """Partial updates replace the entry."""
        updated = stock_catalog.update(
            "b4", {const.DATA_RULE_CRITERIA: {const.DATA_RULE_THRESHOLD: 1500}}
        )

        assert stock_catalog.get("b4") is updated
        assert updated.threshold == 1500
        assert updated.name == "Point Master"

    def test_update_unknown(self, stock_catalog: RuleCatalog) -> None:
        """Updating an unknown id raises RuleNotFoundError."""
        with pytest.raises(RuleNotFoundError):
            stock_catalog.update("missing", {const.DATA_RULE_NAME: "x"})

    def test_replace_invalid_keeps_old(self, stock_catalog: RuleCatalog) -> None:
        """An invalid replacement leaves the catalog untouched."""
        original = stock_catalog.get("b4")
        broken = RuleDefinition(
            id="b4",
            criteria_type=const.CRITERIA_TYPE_POINTS_THRESHOLD,
            threshold=-1,
        )

        with pytest.raises(InvalidRuleDefinition):
            stock_catalog.replace(broken)

        assert stock_catalog.get("b4") is original

    def test_deactivate(self, stock_catalog: RuleCatalog) -> None:
        """Deactivated rules stay in the catalog but leave awarding."""
        rule = stock_catalog.deactivate("b2")

        assert rule.is_active is False
        assert "b2" in stock_catalog
        assert "b2" not in [r.id for r in stock_catalog.active_rules()]


# =============================================================================
# Test: filtering
# =============================================================================


class TestFilter:
    """Tests for filters and ordering."""

    def test_badges_by_tier_then_name(self, stock_catalog: RuleCatalog) -> None:
        """Badges sort Bronze, Silver, Gold; ties by name."""
        badges = stock_catalog.filter(kind=const.RULE_KIND_BADGE)

        assert [rule.id for rule in badges] == ["b1", "b2", "b4", "b3"]

    def test_category_ignores_case(self, stock_catalog: RuleCatalog) -> None:
        """Category filter is case-insensitive."""
        rules = stock_catalog.filter(category="event")

        assert [rule.id for rule in rules] == ["first-event", "event-enthusiast"]

    def test_tier(self, stock_catalog: RuleCatalog) -> None:
        """Tier filter returns the tier's rules by name."""
        rules = stock_catalog.filter(tier="gold")

        assert [rule.name for rule in rules] == [
            "Event Enthusiast",
            "Point Master",
            "Project Leader",
            "Shining Bright",
        ]

    def test_active_only(self, stock_catalog: RuleCatalog) -> None:
        """active_only drops deactivated rules."""
        stock_catalog.deactivate("b1")

        rules = stock_catalog.filter(tier=const.TIER_BRONZE, active_only=True)

        assert [rule.id for rule in rules] == ["first-event"]

"""Tests for utils.math_utils percentage helpers."""

from __future__ import annotations

import pytest

from memberawards.utils.math_utils import (
    calculate_percentage,
    calculate_segment_percentage,
    clamp,
    round_half_up,
)


class TestRoundHalfUp:
    """Tests for round_half_up."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.5, 1), (1.5, 2), (2.5, 3), (12.5, 13), (33.33, 33), (99.9, 100), (0.0, 0)],
    )
    def test_values(self, value: float, expected: int) -> None:
        """Halves always round up, unlike round()."""
        assert round_half_up(value) == expected


class TestCalculatePercentage:
    """Tests for calculate_percentage."""

    @pytest.mark.parametrize(
        ("current", "target", "expected"),
        [
            (0, 10, 0),
            (5, 10, 50),
            (1, 3, 33),
            (2, 3, 67),
            (999, 1000, 100),
            (994, 1000, 99),
            (25, 10, 100),
            (-5, 10, 0),
            (3, 0, 100),
            (0, 0, 100),
        ],
    )
    def test_values(self, current: float, target: float, expected: int) -> None:
        """Percentages are rounded half up and clamped to 0..100."""
        assert calculate_percentage(current, target) == expected

    def test_returns_int(self) -> None:
        """The result is an int, never a float."""
        assert isinstance(calculate_percentage(1, 3), int)


class TestSegmentPercentage:
    """Tests for calculate_segment_percentage."""

    @pytest.mark.parametrize(
        ("current", "lower", "upper", "expected"),
        [(7, 5, 10, 40), (3, 5, 10, 0), (10, 5, 10, 100), (0, 0, 5, 0)],
    )
    def test_values(
        self, current: float, lower: float, upper: float, expected: int
    ) -> None:
        """Progress is measured from the lower threshold."""
        assert calculate_segment_percentage(current, lower, upper) == expected


def test_clamp() -> None:
    """clamp bounds values on both sides."""
    assert clamp(150, 0, 100) == 100
    assert clamp(-10, 0, 100) == 0
    assert clamp(50, 0, 100) == 50

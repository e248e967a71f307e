"""
Unit tests for display helpers
"""
import pytest

from engine.formatting import format_krw, format_pct, format_signed_pct, round_krw


class TestRoundKrw:

    @pytest.mark.parametrize("value,expected", [
        (0.4, 0),
        (0.5, 1),
        (2.5, 3),
        (-0.5, 0),
        (1_234_567.49, 1_234_567),
    ])
    def test_half_up(self, value, expected):
        assert round_krw(value) == expected


class TestFormatKrw:

    @pytest.mark.parametrize("value,expected", [
        (1_234_500_000_000, "1.2조 원"),
        (-2_500_000_000_000, "-2.5조 원"),
        (999_900_000_000, "9,999억 원"),
        (12_500_000_000, "125억 원"),
        (340_000_000, "3.4억 원"),
        (5_000_000, "500만 원"),
        (9_999, "9,999원"),
        (-1_500_000_000, "-15억 원"),
    ])
    def test_units(self, value, expected):
        assert format_krw(value) == expected


class TestFormatPct:

    def test_fraction(self):
        assert format_pct(0.125, 1) == "12.5%"

    def test_non_finite(self):
        assert format_pct(float("inf")) == "N/A"
        assert format_pct(float("nan")) == "N/A"

    @pytest.mark.parametrize("value,expected", [
        (0.10, "+10%"),
        (-0.035, "-3.5%"),
        (-0.125, "-12.5%"),
        (0.0, "0%"),
    ])
    def test_signed(self, value, expected):
        assert format_signed_pct(value) == expected

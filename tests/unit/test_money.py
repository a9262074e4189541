"""Tests for gm_common.money — integer price utilities."""

import pytest

from src.gm_common.money import amount_to_display, validate_price


class TestValidatePrice:
    def test_zero_and_positive_allowed(self) -> None:
        for p in [0, 1, 1500, 10**9]:
            validate_price(p)

    def test_negative_raises(self) -> None:
        with pytest.raises(ValueError, match=">= 0"):
            validate_price(-1)


class TestAmountToDisplay:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (0, "0 ₽"),
            (999, "999 ₽"),
            (1500, "1 500 ₽"),
            (1234567, "1 234 567 ₽"),
            (-1200, "-1 200 ₽"),
        ],
    )
    def test_groups_thousands(self, amount: int, expected: str) -> None:
        assert amount_to_display(amount) == expected

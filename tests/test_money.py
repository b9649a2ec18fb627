"""Tests for fixed-point money helpers."""

from decimal import Decimal

import pytest

from housemate.utils.money import (
    per_person_share,
    quantize_cents,
    sum_shares,
    to_decimal,
)


class TestPerPersonShare:

    def test_even_split(self):
        assert per_person_share(Decimal("60.00"), 2) == Decimal("30.00")

    def test_three_way_split_rounds_down_to_cent(self):
        share = per_person_share(Decimal("100.00"), 3)
        assert share == Decimal("33.33")
        assert Decimal("100.00") - share * 3 == Decimal("0.01")

    def test_half_cent_rounds_up(self):
        # 0.05 / 2 = 0.025 -> half-up gives 0.03 (half-even would give 0.02)
        assert per_person_share(Decimal("0.05"), 2) == Decimal("0.03")
        # 0.125 -> 0.13 (half-even: 0.12)
        assert per_person_share(Decimal("0.25"), 2) == Decimal("0.13")

    def test_zero_payers_is_zero_not_division_error(self):
        assert per_person_share(Decimal("50.00"), 0) == Decimal("0.00")

    @pytest.mark.parametrize("payers", [1, 2, 3, 4, 6, 7, 9, 12])
    @pytest.mark.parametrize("amount", ["100.00", "0.01", "19.99", "1234.57"])
    def test_share_is_within_half_a_cent_of_exact_quotient(self, amount, payers):
        amount = Decimal(amount)
        share = per_person_share(amount, payers)
        assert abs(share - amount / payers) <= Decimal("0.005")
        assert abs(share * payers - amount) <= Decimal("0.005") * payers

    @pytest.mark.parametrize("payers", [1, 2, 3])
    def test_small_groups_stay_within_one_cent_of_amount(self, payers):
        for amount in ["100.00", "10.00", "0.10", "59.99"]:
            amount = Decimal(amount)
            assert abs(per_person_share(amount, payers) * payers - amount) <= Decimal("0.01")

    def test_share_is_exact_decimal(self):
        assert isinstance(per_person_share(10, 3), Decimal)


class TestSumShares:

    def test_sums_exactly_then_rounds_once(self):
        shares = [Decimal("0.004")] * 3
        # rounding each share first would give 0.00
        assert sum_shares(shares) == Decimal("0.01")

    def test_empty_sum(self):
        assert sum_shares([]) == Decimal("0.00")


def test_to_decimal_avoids_binary_float_drift():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("12.50") == Decimal("12.50")


def test_to_decimal_rejects_garbage():
    with pytest.raises(ValueError):
        to_decimal("twelve")
    with pytest.raises(ValueError):
        to_decimal(True)

    assert quantize_cents(Decimal("2.344")) == Decimal("2.34")

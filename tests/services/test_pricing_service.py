"""Tests for the selection pricing calculator."""

from __future__ import annotations

from decimal import Decimal

import pytest

from photostudio.core.exceptions import InvalidInput
from photostudio.services.pricing_service import (
    DiscountTier,
    PricingConfig,
    advance_payment_amount,
    calculate_breakdown,
)


def _config(**overrides) -> PricingConfig:
    values = {
        "package_photo_count": 10,
        "package_price": "300.00",
        "extra_photo_price": "30.00",
        "discount_tiers": [
            {"extra_count_above": 10, "rate": "0.10"},
            {"extra_count_above": 5, "rate": "0.05"},
        ],
    }
    values.update(overrides)
    return PricingConfig.build(**values)


def test_selection_within_package_is_free() -> None:
    breakdown = calculate_breakdown(10, _config())

    assert breakdown.is_free_tier is True
    assert breakdown.extra_count == 0
    assert breakdown.total_due == Decimal("0.00")
    assert breakdown.included_count == 10


def test_small_extra_count_has_no_discount() -> None:
    breakdown = calculate_breakdown(15, _config())

    assert breakdown.extra_count == 5
    assert breakdown.discount_rate == Decimal("0")
    assert breakdown.total_due == Decimal("150.00")


def test_five_percent_tier_applies_above_five_extra() -> None:
    breakdown = calculate_breakdown(16, _config())

    assert breakdown.extra_count == 6
    assert breakdown.extra_gross_amount == Decimal("180.00")
    assert breakdown.discount_rate == Decimal("0.05")
    assert breakdown.discount_amount == Decimal("9.00")
    assert breakdown.total_due == Decimal("171.00")


def test_only_the_highest_tier_applies() -> None:
    breakdown = calculate_breakdown(21, _config())

    assert breakdown.extra_count == 11
    assert breakdown.discount_rate == Decimal("0.10")
    assert breakdown.discount_amount == Decimal("33.00")
    assert breakdown.total_due == Decimal("297.00")
    descriptions = [line for line, _ in breakdown.lines]
    assert descriptions[-1] == "Volume discount 10%"


def test_totals_never_decrease_as_more_photos_are_selected() -> None:
    config = _config()
    totals = [calculate_breakdown(count, config).total_due for count in range(0, 60)]

    assert totals == sorted(totals)


def test_amounts_are_rounded_half_up_to_cents() -> None:
    config = _config(
        extra_photo_price="0.10",
        discount_tiers=[{"extra_count_above": 0, "rate": "0.05"}],
    )
    breakdown = calculate_breakdown(11, config)

    assert breakdown.discount_amount == Decimal("0.01")
    assert breakdown.total_due == Decimal("0.09")
    assert breakdown.total_due.as_tuple().exponent == -2


def test_float_prices_are_read_without_binary_noise() -> None:
    config = _config(extra_photo_price=30.1, discount_tiers=[])

    assert calculate_breakdown(13, config).total_due == Decimal("90.30")


def test_breakdown_serializes_money_as_strings() -> None:
    payload = calculate_breakdown(16, _config()).to_dict()

    assert payload["total_due"] == "171.00"
    assert payload["discount_rate"] == "0.05"
    assert payload["items"][1] == {"description": "6 extra photo(s)", "amount": "180.00"}


def test_tiers_are_ordered_by_boundary() -> None:
    config = _config(
        discount_tiers=[
            DiscountTier(extra_count_above=5, rate=Decimal("0.05")),
            DiscountTier(extra_count_above=10, rate=Decimal("0.10")),
        ]
    )

    assert [tier.extra_count_above for tier in config.discount_tiers] == [10, 5]
    assert config.discount_rate_for(11) == Decimal("0.10")


@pytest.mark.parametrize("count", [-1, "abc", 2.5, True, None])
def test_invalid_selected_count_is_rejected(count) -> None:
    with pytest.raises(InvalidInput):
        calculate_breakdown(count, _config())


@pytest.mark.parametrize(
    "overrides",
    [
        {"package_photo_count": 0},
        {"extra_photo_price": "-1"},
        {"package_price": "NaN"},
        {"discount_tiers": [{"extra_count_above": 5, "rate": "1.5"}]},
        {"discount_tiers": [{"rate": "0.05"}]},
        {"advance_payment_percentage": "120"},
    ],
)
def test_invalid_configuration_is_rejected(overrides) -> None:
    with pytest.raises(InvalidInput):
        _config(**overrides)


def test_advance_payment_is_a_share_of_the_package() -> None:
    assert advance_payment_amount(_config()) == Decimal("150.00")
    assert advance_payment_amount(
        _config(package_price="199.99", advance_payment_percentage="30")
    ) == Decimal("60.00")

"""Pricing engine for photo selections and booking deposits.

The calculator is a pure function of the selected-photo count and a
:class:`PricingConfig`. The package price is settled at booking time, so a
selection within the package is free and only extra photos are billed,
with at most one progressive discount tier applied to them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

from photostudio.core.exceptions import InvalidInput

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
_HUNDRED = Decimal("100")


def _to_money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP):.2f}"


def _as_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number")
    if isinstance(value, float):
        # floats go through repr so 30.1 becomes Decimal("30.1")
        value = repr(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a number") from exc
    if not result.is_finite():
        raise InvalidInput(f"{name} must be finite")
    if result < 0:
        raise InvalidInput(f"{name} must not be negative")
    return result


def _as_count(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be an integer")
    if isinstance(value, int):
        count = value
    else:
        number = _as_decimal(value, name)
        if number != number.to_integral_value():
            raise InvalidInput(f"{name} must be an integer")
        count = int(number)
    if count < 0:
        raise InvalidInput(f"{name} must not be negative")
    return count


@dataclass(frozen=True, slots=True)
class DiscountTier:
    """Discount applied when the extra-photo count exceeds a boundary."""

    extra_count_above: int
    rate: Decimal

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DiscountTier":
        try:
            boundary = data["extra_count_above"]
            rate = data["rate"]
        except KeyError as exc:
            raise InvalidInput(f"Discount tier is missing {exc.args[0]}") from exc
        return cls(
            extra_count_above=_as_count(boundary, "extra_count_above"),
            rate=_as_decimal(rate, "rate"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"extra_count_above": self.extra_count_above, "rate": str(self.rate)}


@dataclass(frozen=True, slots=True)
class PricingConfig:
    """Studio pricing parameters, validated and normalized on creation."""

    package_photo_count: int
    package_price: Decimal
    extra_photo_price: Decimal
    discount_tiers: tuple[DiscountTier, ...] = ()
    advance_payment_percentage: Decimal = Decimal("50")

    def __post_init__(self) -> None:
        count = _as_count(self.package_photo_count, "package_photo_count")
        if count < 1:
            raise InvalidInput("package_photo_count must be at least 1")
        percentage = _as_decimal(
            self.advance_payment_percentage, "advance_payment_percentage"
        )
        if percentage > _HUNDRED:
            raise InvalidInput("advance_payment_percentage must not exceed 100")
        tiers = tuple(
            tier if isinstance(tier, DiscountTier) else DiscountTier.from_mapping(tier)
            for tier in self.discount_tiers
        )
        for tier in tiers:
            if tier.rate < 0 or tier.rate > 1:
                raise InvalidInput("discount rate must be a fraction between 0 and 1")
        object.__setattr__(self, "package_photo_count", count)
        object.__setattr__(
            self, "package_price", _as_decimal(self.package_price, "package_price")
        )
        object.__setattr__(
            self,
            "extra_photo_price",
            _as_decimal(self.extra_photo_price, "extra_photo_price"),
        )
        object.__setattr__(self, "advance_payment_percentage", percentage)
        object.__setattr__(
            self,
            "discount_tiers",
            tuple(sorted(tiers, key=lambda t: t.extra_count_above, reverse=True)),
        )

    @classmethod
    def build(
        cls,
        *,
        package_photo_count: Any,
        package_price: Any,
        extra_photo_price: Any,
        discount_tiers: Iterable[DiscountTier | Mapping[str, Any]] = (),
        advance_payment_percentage: Any = Decimal("50"),
    ) -> "PricingConfig":
        """Create a config from loosely typed input such as JSON columns."""

        return cls(
            package_photo_count=package_photo_count,
            package_price=package_price,
            extra_photo_price=extra_photo_price,
            discount_tiers=tuple(discount_tiers),  # type: ignore[arg-type]
            advance_payment_percentage=advance_payment_percentage,
        )

    def discount_rate_for(self, extra_count: int) -> Decimal:
        """Return the single tier rate that applies to ``extra_count``."""

        for tier in self.discount_tiers:
            if extra_count > tier.extra_count_above:
                return tier.rate
        return Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_photo_count": self.package_photo_count,
            "package_price": _to_str(self.package_price),
            "extra_photo_price": _to_str(self.extra_photo_price),
            "advance_payment_percentage": str(self.advance_payment_percentage),
            "discount_tiers": [tier.to_dict() for tier in self.discount_tiers],
        }


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """Priced result of a selection."""

    selected_count: int
    included_count: int
    extra_count: int
    extra_gross_amount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    extra_net_amount: Decimal
    total_due: Decimal
    is_free_tier: bool
    lines: tuple[tuple[str, Decimal], ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        """Serialize the breakdown to plain types for responses."""

        return {
            "selected_count": self.selected_count,
            "included_count": self.included_count,
            "extra_count": self.extra_count,
            "extra_gross_amount": _to_str(self.extra_gross_amount),
            "discount_rate": str(self.discount_rate),
            "discount_amount": _to_str(self.discount_amount),
            "extra_net_amount": _to_str(self.extra_net_amount),
            "total_due": _to_str(self.total_due),
            "is_free_tier": self.is_free_tier,
            "items": [
                {"description": description, "amount": _to_str(amount)}
                for description, amount in self.lines
            ],
        }


def calculate_breakdown(selected_count: Any, config: PricingConfig) -> PriceBreakdown:
    """Price a selection of ``selected_count`` photos."""

    count = _as_count(selected_count, "selected_count")

    if count <= config.package_photo_count:
        return PriceBreakdown(
            selected_count=count,
            included_count=count,
            extra_count=0,
            extra_gross_amount=ZERO,
            discount_rate=Decimal("0"),
            discount_amount=ZERO,
            extra_net_amount=ZERO,
            total_due=ZERO,
            is_free_tier=True,
            lines=((f"{count} photo(s) included in package", ZERO),),
        )

    extra_count = count - config.package_photo_count
    gross = _to_money(extra_count * config.extra_photo_price)
    rate = config.discount_rate_for(extra_count)
    discount = _to_money(gross * rate)
    net = gross - discount

    lines: list[tuple[str, Decimal]] = [
        (f"{config.package_photo_count} photo(s) included in package", ZERO),
        (f"{extra_count} extra photo(s)", gross),
    ]
    if discount:
        lines.append((f"Volume discount {(rate * _HUNDRED).normalize():f}%", -discount))

    return PriceBreakdown(
        selected_count=count,
        included_count=config.package_photo_count,
        extra_count=extra_count,
        extra_gross_amount=gross,
        discount_rate=rate,
        discount_amount=discount,
        extra_net_amount=net,
        total_due=_to_money(net),
        is_free_tier=False,
        lines=tuple(lines),
    )


def advance_payment_amount(config: PricingConfig) -> Decimal:
    """Deposit charged at booking: a percentage of the package price."""

    return _to_money(
        config.package_price * config.advance_payment_percentage / _HUNDRED
    )


__all__ = [
    "DiscountTier",
    "MONEY_PLACES",
    "PriceBreakdown",
    "PricingConfig",
    "advance_payment_amount",
    "calculate_breakdown",
]

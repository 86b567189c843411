# backend/planner/engine/pricing.py
"""
Money / discount primitive, line items and the totals calculator.

All arithmetic is Decimal in currency units. The only rounding is the
clamp at zero: a line or a document never goes negative.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Union

from .errors import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """None -> 0; floats go through str() so 0.1 stays 0.1."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} is not a number: {value!r}")


class DiscountKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Discount:
    value: Decimal = ZERO
    kind: DiscountKind = DiscountKind.PERCENTAGE

    def __post_init__(self) -> None:
        value = to_decimal(self.value, "discount")
        if value < 0:
            raise ValidationError("discount must be non-negative", value=str(value))
        try:
            kind = DiscountKind(self.kind)
        except ValueError:
            raise ValidationError(f"unknown discount type: {self.kind!r}")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "kind", kind)

    @classmethod
    def of(cls, value: Any = None, kind: Any = None) -> "Discount":
        return cls(value=to_decimal(value, "discount"), kind=kind or DiscountKind.PERCENTAGE)

    @property
    def is_zero(self) -> bool:
        return self.value == 0


NO_DISCOUNT = Discount()


def apply_discount(base: Any, discount: Optional[Discount] = None) -> Decimal:
    """
    percentage: base - base*value/100
    fixed:      base - value
    Result is clamped at zero. Missing or zero discount returns base untouched.
    """
    amount = to_decimal(base, "base")
    if discount is None or discount.is_zero:
        return amount
    if discount.kind is DiscountKind.PERCENTAGE:
        result = amount - (amount * discount.value) / HUNDRED
    else:
        result = amount - discount.value
    return max(ZERO, result)


# ---------------------------------------------------------------------
# Line items (tagged variant: catalog | custom)
# ---------------------------------------------------------------------
class LineSource(str, Enum):
    CATALOG = "catalog"
    CUSTOM = "custom"


class CatalogKind(str, Enum):
    SERVICE = "service"
    PACKAGE = "package"
    TERM = "term"


@dataclass(frozen=True)
class CatalogLine:
    kind: CatalogKind
    ref_id: int
    unit_price: Decimal
    discount: Discount = NO_DISCOUNT
    label_en: Optional[str] = None
    label_ar: Optional[str] = None
    source: LineSource = field(default=LineSource.CATALOG, init=False)

    def __post_init__(self) -> None:
        price = to_decimal(self.unit_price, "unit_price")
        if price < 0:
            raise ValidationError("unit price must be non-negative", ref_id=self.ref_id)
        object.__setattr__(self, "unit_price", price)


@dataclass(frozen=True)
class CustomLine:
    unit_price: Decimal
    discount: Discount = NO_DISCOUNT
    label_en: Optional[str] = None
    label_ar: Optional[str] = None
    key: Optional[str] = None  # caller-side id of the ad-hoc entry
    source: LineSource = field(default=LineSource.CUSTOM, init=False)

    def __post_init__(self) -> None:
        price = to_decimal(self.unit_price, "unit_price")
        if price < 0:
            raise ValidationError("unit price must be non-negative", key=self.key)
        object.__setattr__(self, "unit_price", price)


LineItem = Union[CatalogLine, CustomLine]


def line_amount(line: LineItem) -> Decimal:
    if isinstance(line, (CatalogLine, CustomLine)):
        return apply_discount(line.unit_price, line.discount)
    raise TypeError(f"unsupported line item: {type(line).__name__}")


# ---------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    total: Decimal


@dataclass(frozen=True)
class PricedTotals:
    subtotal: Decimal
    total: Decimal
    computed_total: Decimal
    overridden_total: Optional[Decimal]
    is_total_overridden: bool


def compute_totals(
    lines: Iterable[LineItem],
    custom_lines: Iterable[LineItem] = (),
    document_discount: Optional[Discount] = None,
) -> Totals:
    subtotal = ZERO
    for line in list(lines) + list(custom_lines):
        subtotal += line_amount(line)
    subtotal = max(ZERO, subtotal)
    return Totals(subtotal=subtotal, total=apply_discount(subtotal, document_discount))


def reconcile_override(totals: Totals, overridden_total: Any = None) -> PricedTotals:
    """A manual total replaces only ``total``; ``subtotal`` always stays computed."""
    if overridden_total is None:
        return PricedTotals(
            subtotal=totals.subtotal,
            total=totals.total,
            computed_total=totals.total,
            overridden_total=None,
            is_total_overridden=False,
        )
    override = to_decimal(overridden_total, "overridden_total")
    if override < 0:
        raise ValidationError("overridden_total must be non-negative")
    return PricedTotals(
        subtotal=totals.subtotal,
        total=override,
        computed_total=totals.total,
        overridden_total=override,
        is_total_overridden=True,
    )


def price_document(
    lines: Sequence[LineItem],
    custom_lines: Sequence[LineItem] = (),
    document_discount: Optional[Discount] = None,
    overridden_total: Any = None,
) -> PricedTotals:
    return reconcile_override(compute_totals(lines, custom_lines, document_discount), overridden_total)

# backend/tests/test_pricing.py
from decimal import Decimal

import pytest

from planner.engine.errors import ValidationError
from planner.engine.pricing import (
    CatalogKind,
    CatalogLine,
    CustomLine,
    Discount,
    DiscountKind,
    apply_discount,
    compute_totals,
    price_document,
    reconcile_override,
)

D = Decimal


def pct(v):
    return Discount(D(v), DiscountKind.PERCENTAGE)


def fixed(v):
    return Discount(D(v), DiscountKind.FIXED)


# -----------------------------
# apply_discount
# -----------------------------
def test_percentage_discount():
    assert apply_discount(D("100"), pct("30")) == D("70")


def test_fixed_discount_clamps_at_zero():
    assert apply_discount(D("50"), fixed("80")) == D("0")


def test_percentage_over_hundred_clamps_at_zero():
    assert apply_discount(D("100"), pct("150")) == D("0")


@pytest.mark.parametrize("discount", [None, pct("0"), fixed("0")])
def test_missing_or_zero_discount_is_identity(discount):
    assert apply_discount(D("123.45"), discount) == D("123.45")


def test_negative_discount_rejected():
    with pytest.raises(ValidationError):
        Discount(D("-1"), DiscountKind.FIXED)


def test_unknown_discount_type_rejected():
    with pytest.raises(ValidationError):
        Discount.of("5", "bogus")


def test_discount_of_defaults_to_zero_percentage():
    d = Discount.of(None, None)
    assert d.value == 0 and d.kind is DiscountKind.PERCENTAGE


# -----------------------------
# compute_totals / override
# -----------------------------
def _lines():
    return [
        CatalogLine(kind=CatalogKind.SERVICE, ref_id=1, unit_price=D("200"), discount=pct("10")),
        CatalogLine(kind=CatalogKind.PACKAGE, ref_id=2, unit_price=D("100")),
    ]


def test_totals_sum_discounted_lines_then_document_discount():
    totals = compute_totals(_lines(), [CustomLine(unit_price=D("50"))], fixed("20"))
    assert totals.subtotal == D("330")
    assert totals.total == D("310")


def test_totals_of_nothing_are_zero():
    totals = compute_totals([], [])
    assert totals.subtotal == 0 and totals.total == 0


def test_adding_a_line_never_lowers_subtotal():
    before = compute_totals(_lines())
    after = compute_totals(_lines() + [CustomLine(unit_price=D("0.01"))])
    assert after.subtotal >= before.subtotal


def test_totals_are_idempotent():
    assert compute_totals(_lines(), [], pct("5")) == compute_totals(_lines(), [], pct("5"))


@pytest.mark.parametrize("doc_discount", [pct("10"), fixed("30")], ids=["doc-pct", "doc-fixed"])
@pytest.mark.parametrize(
    "line_discount, steps",
    [
        (pct, ["0", "10", "50", "99.99", "100", "150"]),
        (fixed, ["0", "50", "199.99", "200", "500"]),
    ],
    ids=["line-pct", "line-fixed"],
)
def test_raising_a_line_discount_never_raises_total(doc_discount, line_discount, steps):
    totals = [
        compute_totals(
            _lines(),
            [CustomLine(unit_price=D("200"), discount=line_discount(step)), CustomLine(unit_price=D("15"))],
            doc_discount,
        )
        for step in steps
    ]
    for before, after in zip(totals, totals[1:]):
        assert after.subtotal <= before.subtotal
        assert after.total <= before.total
    # past the clamp the line contributes nothing more
    assert totals[-1] == totals[-2]


def test_override_replaces_total_only():
    priced = reconcile_override(compute_totals(_lines()), D("99"))
    assert priced.subtotal == D("280")
    assert priced.total == D("99")
    assert priced.computed_total == D("280")
    assert priced.is_total_overridden is True


def test_no_override_keeps_computed_total():
    priced = price_document(_lines(), [], pct("50"))
    assert priced.total == D("140")
    assert priced.overridden_total is None
    assert priced.is_total_overridden is False


def test_zero_override_is_still_an_override():
    priced = price_document(_lines(), [], None, D("0"))
    assert priced.total == 0 and priced.is_total_overridden is True


def test_negative_override_rejected():
    with pytest.raises(ValidationError):
        reconcile_override(compute_totals(_lines()), D("-5"))


def test_negative_unit_price_rejected():
    with pytest.raises(ValidationError):
        CustomLine(unit_price=D("-1"))

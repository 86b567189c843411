# backend/tests/test_terms.py
import pytest

from fakes import FakeCatalog, term
from planner.engine.errors import (
    DuplicateOrderError,
    InvalidCustomTermError,
    InvalidReferenceError,
    NoMatchingTermsError,
)
from planner.engine.terms import OrderChange, TermComposer, TermEntry


def _catalog():
    return FakeCatalog(term(1), term(2), term(3, deleted=True))


def _custom(order, key="Scope", key_ar="النطاق", **kw):
    return TermEntry(order=order, is_custom=True, custom_key=key, custom_key_ar=key_ar, **kw)


def _stored():
    """Three persisted entries a(0) b(1) c(2)."""
    return [
        TermEntry(id=11, order=0, term_id=1),
        TermEntry(id=12, order=1, term_id=2),
        _custom(2, id=13),
    ]


# -----------------------------
# replace_all
# -----------------------------
def test_replace_all_returns_entries_sorted_by_order():
    out = TermComposer(_catalog()).replace_all([_custom(5), TermEntry(order=1, term_id=1)])
    assert [e.order for e in out] == [1, 5]


def test_replace_all_rejects_duplicate_orders():
    with pytest.raises(DuplicateOrderError) as exc:
        TermComposer(_catalog()).replace_all([TermEntry(order=0, term_id=1), _custom(0)])
    assert exc.value.orders == [0]


def test_replace_all_rejects_deleted_catalog_term():
    with pytest.raises(InvalidReferenceError) as exc:
        TermComposer(_catalog()).replace_all([TermEntry(order=0, term_id=3)])
    assert exc.value.id == 3


def test_custom_entry_needs_both_keys():
    with pytest.raises(InvalidCustomTermError):
        TermComposer(_catalog()).replace_all([_custom(0, key_ar="  ")])


def test_catalog_entry_needs_term_id():
    with pytest.raises(InvalidCustomTermError):
        TermComposer(_catalog()).replace_all([TermEntry(order=0)])


def test_failed_replace_keeps_previous_entries():
    composer = TermComposer(_catalog(), _stored())
    with pytest.raises(DuplicateOrderError):
        composer.replace_all([_custom(0), _custom(0)])
    assert [e.id for e in composer.entries] == [11, 12, 13]


# -----------------------------
# append / remove
# -----------------------------
def test_append_ignores_caller_order():
    composer = TermComposer(_catalog(), _stored())
    placed = composer.append(_custom(99))
    assert placed.order == 3
    assert len(composer.entries) == 4


def test_append_validates_entry():
    with pytest.raises(InvalidReferenceError):
        TermComposer(_catalog()).append(TermEntry(order=0, term_id=404))


def test_remove_renumbers_remaining_entries():
    composer = TermComposer(_catalog(), _stored())
    removed = composer.remove(12)
    assert removed.id == 12
    assert [(e.id, e.order) for e in composer.sorted_entries()] == [(11, 0), (13, 1)]


@pytest.mark.parametrize("gone", [11, 12, 13])
def test_remove_then_append_keeps_orders_unique(gone):
    composer = TermComposer(_catalog(), _stored())
    composer.remove(gone)
    placed = composer.append(TermEntry(order=0, term_id=1))
    orders = [e.order for e in composer.sorted_entries()]
    assert placed.order == 2
    assert orders == [0, 1, 2]


def test_remove_unknown_id():
    with pytest.raises(NoMatchingTermsError):
        TermComposer(_catalog(), _stored()).remove(404)


# -----------------------------
# reorder
# -----------------------------
def test_reorder_moves_entries():
    composer = TermComposer(_catalog(), _stored())
    out = composer.reorder([OrderChange(id=13, order=0), OrderChange(id=11, order=2)])
    assert [e.id for e in out] == [13, 12, 11]


def test_reorder_accepts_mappings_and_skips_unknown_ids():
    composer = TermComposer(_catalog(), _stored())
    out = composer.reorder([{"id": 12, "order": 5}, {"id": 999, "order": 0}])
    assert [(e.id, e.order) for e in out] == [(11, 0), (13, 2), (12, 5)]


def test_reorder_ties_keep_previous_relative_order():
    composer = TermComposer(_catalog(), _stored())
    out = composer.reorder([OrderChange(id=13, order=1)])
    # 12 and 13 now share order 1; 12 was first before
    assert [e.id for e in out] == [11, 12, 13]


def test_reorder_without_any_match():
    with pytest.raises(NoMatchingTermsError):
        TermComposer(_catalog(), _stored()).reorder([OrderChange(id=1, order=0)])

# backend/planner/engine/terms.py
"""
Ordered contract-term composition.

A contract's terms are a list of entries, each either a reference to the
shared ContractTerm catalog or a custom bilingual key/value pair. ``order``
values are unique within a contract; storage order does not matter, the
list is always rendered sorted by ``order``.

Reorder ties: ``reorder`` does not check uniqueness of the new values.
Entries that end up sharing an order keep their previous relative position
(Python's sort is stable and runs over the list sorted by the old order).

``remove`` closes the gap it leaves; ``append`` places at ``len(entries)``.
"""
import logging
from collections import Counter
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import (
    DuplicateOrderError,
    InvalidCustomTermError,
    InvalidReferenceError,
    NoMatchingTermsError,
    ValidationError,
)
from .pricing import CatalogKind
from .stores import CatalogStore, unique_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TermEntry:
    order: int
    is_custom: bool = False
    term_id: Optional[int] = None
    custom_key: Optional[str] = None
    custom_key_ar: Optional[str] = None
    custom_value: Optional[str] = None
    custom_value_ar: Optional[str] = None
    id: Optional[int] = None  # persisted id; None until saved


@dataclass(frozen=True)
class OrderChange:
    id: int
    order: int


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def check_shape(entry: TermEntry) -> None:
    """Exactly one of (catalog reference) / (custom bilingual key) holds."""
    if entry.order is None or entry.order < 0:
        raise ValidationError("term order must be a non-negative integer", order=entry.order)
    if entry.is_custom:
        if entry.term_id is not None:
            raise InvalidCustomTermError("custom term must not reference a catalog term", term_id=entry.term_id)
        if _blank(entry.custom_key) or _blank(entry.custom_key_ar):
            raise InvalidCustomTermError("custom term needs both custom_key and custom_key_ar")
    else:
        if entry.term_id is None:
            raise InvalidCustomTermError("catalog term entry needs a term_id (or set is_custom)")


class TermComposer:
    def __init__(self, catalog: CatalogStore, entries: Iterable[TermEntry] = ()):
        self.catalog = catalog
        self.entries: List[TermEntry] = list(entries)

    # ---------- validation ----------
    def validate_entries(self, entries: Sequence[TermEntry]) -> None:
        for e in entries:
            check_shape(e)

        ref_ids = unique_ids(e.term_id for e in entries if not e.is_custom)
        if ref_ids:
            live = {rec.id for rec in self.catalog.find_many(CatalogKind.TERM, ref_ids) if not rec.deleted}
            for term_id in ref_ids:
                if term_id not in live:
                    raise InvalidReferenceError(CatalogKind.TERM.value, term_id)

    # ---------- operations ----------
    def sorted_entries(self) -> List[TermEntry]:
        return sorted(self.entries, key=lambda e: e.order)

    def replace_all(self, entries: Sequence[TermEntry]) -> List[TermEntry]:
        entries = list(entries)
        self.validate_entries(entries)
        dupes = [order for order, n in Counter(e.order for e in entries).items() if n > 1]
        if dupes:
            raise DuplicateOrderError(dupes)
        self.entries = entries
        return self.sorted_entries()

    def append(self, entry: TermEntry) -> TermEntry:
        self.validate_entries([replace(entry, order=0)])
        placed = replace(entry, order=len(self.entries))
        self.entries.append(placed)
        return placed

    def reorder(self, changes: Sequence[Any]) -> List[TermEntry]:
        """
        ``changes`` are OrderChange-like ({id, order}); ids that are not
        current entries are skipped. At least one must match.
        """
        wanted: Dict[int, int] = {}
        for ch in changes:
            ch_id = ch["id"] if isinstance(ch, Mapping) else ch.id
            ch_order = ch["order"] if isinstance(ch, Mapping) else ch.order
            if ch_order is None or ch_order < 0:
                raise ValidationError("term order must be a non-negative integer", order=ch_order)
            wanted[ch_id] = ch_order

        current = self.sorted_entries()
        matched = [e.id for e in current if e.id is not None and e.id in wanted]
        if not matched:
            raise NoMatchingTermsError(list(wanted))

        self.entries = sorted(
            (replace(e, order=wanted[e.id]) if e.id in wanted else e for e in current),
            key=lambda e: e.order,
        )
        logger.debug("reordered %d of %d term entries", len(matched), len(current))
        return list(self.entries)

    def remove(self, entry_id: int) -> TermEntry:
        """Drops one entry and renumbers the rest 0..n-1, so ``append`` stays collision-free."""
        for idx, e in enumerate(self.entries):
            if e.id == entry_id:
                removed = self.entries.pop(idx)
                break
        else:
            raise NoMatchingTermsError([entry_id])
        self.entries = [replace(e, order=i) for i, e in enumerate(self.sorted_entries())]
        return removed

# backend/planner/engine/stores.py
"""
Store contracts consumed by the engine.

NO import-time I/O - the SQLAlchemy implementations live in
``planner.documents.stores`` and tests can hand in dict-backed fakes.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from .pricing import CatalogKind, Discount, NO_DISCOUNT


@dataclass(frozen=True)
class CatalogRecord:
    kind: CatalogKind
    id: int
    price: Optional[Decimal] = None
    discount: Discount = NO_DISCOUNT
    is_global: bool = True
    client_id: Optional[int] = None
    deleted: bool = False
    label_en: Optional[str] = None
    label_ar: Optional[str] = None

    def usable_by(self, client_id: Optional[int]) -> bool:
        return self.is_global or (client_id is not None and self.client_id == client_id)


@dataclass(frozen=True)
class ScopedRecord:
    id: int
    client_id: Optional[int]
    deleted: bool = False


@runtime_checkable
class CatalogStore(Protocol):
    def find_by_id(self, kind: CatalogKind, id: int) -> Optional[CatalogRecord]:
        """Single item; None when missing or soft-deleted."""
        ...

    def find_many(self, kind: CatalogKind, ids: Sequence[int]) -> List[CatalogRecord]:
        """Non-deleted items whose id is in ``ids`` (any order)."""
        ...


@runtime_checkable
class ScopedEntityStore(Protocol):
    def find_many(self, kind: str, ids: Sequence[int]) -> List[ScopedRecord]:
        """Non-deleted entities of ``kind`` whose id is in ``ids``."""
        ...


def unique_ids(ids: Iterable[int]) -> List[int]:
    seen = set()
    out: List[int] = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out

# backend/tests/fakes.py
"""Dict-backed stores standing in for the SQLAlchemy ones in engine tests."""
from decimal import Decimal

from planner.engine.pricing import CatalogKind, Discount
from planner.engine.stores import CatalogRecord, ScopedRecord


class FakeCatalog:
    def __init__(self, *records: CatalogRecord):
        self.records = {(r.kind, r.id): r for r in records}
        self.calls = 0

    def find_by_id(self, kind, id):
        rec = self.records.get((CatalogKind(kind), id))
        return None if rec is None or rec.deleted else rec

    def find_many(self, kind, ids):
        self.calls += 1
        found = (self.records.get((CatalogKind(kind), i)) for i in ids)
        return [r for r in found if r is not None and not r.deleted]


class FakeScoped:
    def __init__(self, **owners_by_kind):
        # kind -> {id: client_id}
        self.owners_by_kind = owners_by_kind

    def find_many(self, kind, ids):
        owners = self.owners_by_kind.get(getattr(kind, "value", kind), {})
        return [ScopedRecord(id=i, client_id=owners[i]) for i in ids if i in owners]


def service(id, price, discount=None, client_id=None, deleted=False):
    return CatalogRecord(
        kind=CatalogKind.SERVICE,
        id=id,
        price=Decimal(price),
        discount=discount or Discount(),
        is_global=client_id is None,
        client_id=client_id,
        deleted=deleted,
        label_en=f"service {id}",
    )


def package(id, price, client_id=None):
    return CatalogRecord(
        kind=CatalogKind.PACKAGE,
        id=id,
        price=Decimal(price),
        is_global=client_id is None,
        client_id=client_id,
        label_en=f"package {id}",
    )


def term(id, deleted=False):
    return CatalogRecord(kind=CatalogKind.TERM, id=id, deleted=deleted, label_en=f"term {id}")

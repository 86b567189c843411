# backend/planner/documents/stores.py
"""SQLAlchemy implementations of the engine's store and audit contracts."""
import logging
from typing import Callable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..engine.audit import AuditEvent
from ..engine.errors import StorageError, ValidationError
from ..engine.pricing import CatalogKind, Discount
from ..engine.scope import ScopedKind
from ..engine.stores import CatalogRecord, ScopedRecord
from ..models import (
    AuditLog,
    Branch,
    CampaignPlan,
    Competitor,
    ContractTerm,
    Package,
    Quotation,
    Segment,
    Service,
)

logger = logging.getLogger(__name__)

CATALOG_MODELS = {
    CatalogKind.SERVICE: Service,
    CatalogKind.PACKAGE: Package,
    CatalogKind.TERM: ContractTerm,
}

SCOPED_MODELS = {
    ScopedKind.SEGMENTS: Segment,
    ScopedKind.COMPETITORS: Competitor,
    ScopedKind.BRANCHES: Branch,
    ScopedKind.QUOTATIONS: Quotation,
    ScopedKind.CAMPAIGN_PLANS: CampaignPlan,
}


def _catalog_record(kind: CatalogKind, row) -> CatalogRecord:
    if kind is CatalogKind.TERM:
        return CatalogRecord(
            kind=kind, id=row.id, deleted=row.deleted, label_en=row.key, label_ar=row.key_ar,
        )
    return CatalogRecord(
        kind=kind,
        id=row.id,
        price=row.price,
        discount=Discount.of(row.discount, row.discount_type),
        is_global=bool(row.is_global),
        client_id=row.client_id,
        deleted=row.deleted,
        label_en=row.name_en,
        label_ar=row.name_ar,
    )


class SqlCatalogStore:
    def __init__(self, db: Session):
        self.db = db

    def _model(self, kind: CatalogKind):
        try:
            return CATALOG_MODELS[CatalogKind(kind)]
        except (KeyError, ValueError):
            raise ValidationError(f"unknown catalog kind: {kind!r}")

    def find_by_id(self, kind: CatalogKind, id: int) -> Optional[CatalogRecord]:
        model = self._model(kind)
        try:
            row = self.db.get(model, id)
        except SQLAlchemyError as e:
            raise StorageError(f"catalog read failed: {e}") from e
        if row is None or row.deleted:
            return None
        return _catalog_record(CatalogKind(kind), row)

    def find_many(self, kind: CatalogKind, ids: Sequence[int]) -> List[CatalogRecord]:
        if not ids:
            return []
        model = self._model(kind)
        stmt = select(model).where(model.id.in_(list(ids)), model.deleted.is_(False))
        try:
            rows = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"catalog read failed: {e}") from e
        return [_catalog_record(CatalogKind(kind), r) for r in rows]


class SqlScopedStore:
    def __init__(self, db: Session):
        self.db = db

    def find_many(self, kind: ScopedKind, ids: Sequence[int]) -> List[ScopedRecord]:
        if not ids:
            return []
        try:
            model = SCOPED_MODELS[ScopedKind(kind)]
        except (KeyError, ValueError):
            raise ValidationError(f"unknown scoped kind: {kind!r}")
        stmt = select(model.id, model.client_id).where(model.id.in_(list(ids)), model.deleted.is_(False))
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StorageError(f"scoped read failed: {e}") from e
        return [ScopedRecord(id=r.id, client_id=r.client_id) for r in rows]


class SqlAuditSink:
    """
    Writes AuditLog rows on the request session, after the business commit.
    A failed write is rolled back and logged; it never reaches the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(self, event: AuditEvent) -> None:
        try:
            self.db.add(
                AuditLog(
                    user_id=event.user_id,
                    action=event.action,
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    changes=event.changes,
                    ip_address=event.ip_address,
                    user_agent=event.user_agent,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to write audit log for %s#%s", event.entity_type, event.entity_id)


def number_taken(db: Session, column) -> Callable[[str], bool]:
    def exists(number: str) -> bool:
        try:
            return db.execute(select(column).where(column == number).limit(1)).first() is not None
        except SQLAlchemyError as e:
            raise StorageError(f"document number lookup failed: {e}") from e
    return exists


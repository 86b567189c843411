# backend/planner/documents/base.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..engine.audit import AuditSink
from ..engine.scope import ScopeValidator
from ..engine.stores import CatalogStore, ScopedEntityStore
from .common import Actor, commit, list_documents, load_document, record_audit, snapshot
from .stores import SqlAuditSink, SqlCatalogStore, SqlScopedStore

logger = logging.getLogger(__name__)


class DocumentService:
    """
    Request-scoped assembler for one priced-document type.

    Stores default to the SQLAlchemy ones bound to ``db``; tests may pass
    fakes. Nothing is written until every validation stage has passed, and
    the whole change goes out in one commit.
    """

    model = None
    label = "Document"

    def __init__(
        self,
        db: Session,
        catalog: Optional[CatalogStore] = None,
        scoped: Optional[ScopedEntityStore] = None,
        audit: Optional[AuditSink] = None,
    ):
        self.db = db
        self.catalog = catalog or SqlCatalogStore(db)
        self.scope = ScopeValidator(scoped or SqlScopedStore(db))
        self.audit = audit or SqlAuditSink(db)

    def get(self, doc_id: int):
        return load_document(self.db, self.model, doc_id, self.label)

    def list(self, filters: List[Any], page: int = 1, size: int = 20) -> Tuple[List[Any], int]:
        return list_documents(self.db, self.model, filters, page, size)

    def delete(self, doc_id: int, actor: Actor) -> None:
        doc = self.get(doc_id)
        doc.deleted = True
        commit(self.db)
        logger.info("%s %s soft-deleted by user %s", self.label, doc_id, actor.user_id)
        record_audit(self.audit, actor, "delete", self.label, doc_id)

    def _save(self, doc, actor: Actor, action: str, changes: Optional[Dict[str, Any]] = None):
        self.db.add(doc)
        commit(self.db)
        self.db.refresh(doc)
        logger.info("%s %s: %s by user %s", self.label, action, doc.id, actor.user_id)
        record_audit(
            self.audit, actor, action, self.label, doc.id,
            changes if changes is not None else snapshot(doc),
        )
        return doc

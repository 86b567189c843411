# backend/planner/documents/common.py
"""
Glue shared by the three priced-document assemblers: client checks,
line snapshots, repricing on create/update, paging, commit and audit.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..engine.audit import AuditEvent, AuditSink
from ..engine.errors import (
    DocumentNotFoundError,
    InvalidClientError,
    InvalidTransitionError,
    StorageError,
    ValidationError,
)
from ..engine.line_items import (
    CustomLineSpec,
    NormalizedLines,
    build_custom_lines,
    normalize_lines,
    resolve_catalog_lines,
)
from ..engine.pricing import (
    CatalogKind,
    CatalogLine,
    CustomLine,
    Discount,
    LineItem,
    LineSource,
    PricedTotals,
    line_amount,
    price_document,
)
from ..engine.stores import CatalogStore
from ..models import Client

logger = logging.getLogger(__name__)

# (kind, ids field, price-override field) on PricingIn
CATALOG_FIELDS = (
    (CatalogKind.SERVICE, "services", "services_pricing"),
    (CatalogKind.PACKAGE, "packages", "packages_pricing"),
)


@dataclass(frozen=True)
class Actor:
    """Who is acting, for created_by and the audit trail."""
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# ---------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------
def ensure_client(db: Session, client_id: Optional[int]) -> Client:
    if client_id is None:
        raise InvalidClientError(client_id)
    client = db.get(Client, client_id)
    if client is None or client.deleted:
        raise InvalidClientError(client_id)
    return client


def ensure_catalog_scope(db: Session, is_global: bool, client_id: Optional[int]) -> None:
    """A global item has no owner; a client-specific one needs a live client."""
    if is_global and client_id is not None:
        raise ValidationError("Global item cannot have client_id")
    if not is_global:
        if client_id is None:
            raise ValidationError("Client-specific item must have client_id")
        ensure_client(db, client_id)


def apply_catalog_changes(db: Session, item, changes: Dict[str, Any]) -> None:
    """Partial update of a catalog item; the owner rule is re-checked on the result."""
    is_global = changes.get("is_global", item.is_global)
    if "client_id" in changes:
        client_id = changes["client_id"]
    else:
        client_id = None if is_global else item.client_id
    ensure_catalog_scope(db, is_global, client_id)
    for field, value in changes.items():
        setattr(item, field, value)
    item.client_id = client_id


def load_document(db: Session, model, doc_id: int, label: str):
    doc = db.get(model, doc_id)
    if doc is None or doc.deleted:
        raise DocumentNotFoundError(label, doc_id)
    return doc


def list_documents(db: Session, model, filters: List[Any], page: int, size: int) -> Tuple[List[Any], int]:
    base = select(model).where(model.deleted.is_(False), *filters)
    total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()
    rows = (
        db.execute(base.order_by(model.created_at.desc(), model.id.desc()).offset((page - 1) * size).limit(size))
        .scalars()
        .all()
    )
    return rows, total


def page_meta(total: int, page: int, size: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "size": size,
        "pages": max(1, (total + size - 1) // size),
    }


# ---------------------------------------------------------------------
# Line snapshots (JSON columns)
# ---------------------------------------------------------------------
def serialize_line(line: LineItem) -> Dict[str, Any]:
    data = {
        "source": line.source.value,
        "name_en": line.label_en,
        "name_ar": line.label_ar,
        "unit_price": str(line.unit_price),
        "discount_value": str(line.discount.value),
        "discount_type": line.discount.kind.value,
        "amount": str(line_amount(line)),
    }
    if isinstance(line, CatalogLine):
        data.update(kind=line.kind.value, ref_id=line.ref_id)
    elif isinstance(line, CustomLine):
        data.update(key=line.key)
    else:
        raise TypeError(f"unsupported line item: {type(line).__name__}")
    return data


def deserialize_line(data: Dict[str, Any]) -> LineItem:
    discount = Discount.of(data.get("discount_value"), data.get("discount_type"))
    source = LineSource(data.get("source", LineSource.CUSTOM.value))
    if source is LineSource.CATALOG:
        return CatalogLine(
            kind=CatalogKind(data["kind"]),
            ref_id=int(data["ref_id"]),
            unit_price=Decimal(data["unit_price"]),
            discount=discount,
            label_en=data.get("name_en"),
            label_ar=data.get("name_ar"),
        )
    return CustomLine(
        unit_price=Decimal(data["unit_price"]),
        discount=discount,
        label_en=data.get("name_en"),
        label_ar=data.get("name_ar"),
        key=data.get("key"),
    )


def custom_specs(items) -> List[CustomLineSpec]:
    return [
        CustomLineSpec(
            price=item.price,
            label_en=item.name_en,
            label_ar=item.name_ar,
            discount=Discount.of(item.discount, item.discount_type),
            key=item.id,
        )
        for item in (items or [])
    ]


# ---------------------------------------------------------------------
# Pricing pipeline
# ---------------------------------------------------------------------
def price_payload(
    catalog: CatalogStore,
    client_id: Optional[int],
    payload,
    fields: Set[str],
    doc=None,
    client_changed: bool = False,
) -> Tuple[NormalizedLines, Discount, PricedTotals]:
    """
    Normalizes lines and computes totals for a create (``doc`` is None) or
    an update. On update, every pricing input the caller did not send is
    taken from the stored document; stored catalog lines are reused as-is
    unless their kind was touched or the client changed.
    """
    if doc is None:
        normalized = normalize_lines(
            catalog,
            client_id,
            refs={kind: getattr(payload, ids_f) or [] for kind, ids_f, _ in CATALOG_FIELDS},
            price_overrides={kind: getattr(payload, prices_f) or {} for kind, _, prices_f in CATALOG_FIELDS},
            custom_lines=custom_specs(payload.custom_services),
        )
        discount = Discount.of(payload.discount_value, payload.discount_type)
        priced = price_document(normalized.lines, normalized.custom_lines, discount, payload.overridden_total)
        return normalized, discount, priced

    stored = [deserialize_line(d) for d in (doc.lines or [])]
    normalized = NormalizedLines()
    for kind, ids_f, prices_f in CATALOG_FIELDS:
        kept = [ln for ln in stored if isinstance(ln, CatalogLine) and ln.kind is kind]
        if ids_f in fields or prices_f in fields or client_changed:
            if ids_f in fields:
                ids = getattr(payload, ids_f) or []
                prices = getattr(payload, prices_f) or {}
            else:
                ids = [ln.ref_id for ln in kept]
                sent = getattr(payload, prices_f) if prices_f in fields else {}
                if prices_f in fields and sent is None:
                    prices = {}  # explicit null: back to catalog prices
                else:
                    # a partial map only touches the ids it names
                    prices = {ln.ref_id: ln.unit_price for ln in kept}
                    prices.update(sent)
            normalized.lines.extend(resolve_catalog_lines(catalog, client_id, kind, ids, prices or {}))
        else:
            normalized.lines.extend(kept)

    if "custom_services" in fields:
        normalized.custom_lines = build_custom_lines(custom_specs(payload.custom_services))
    else:
        normalized.custom_lines = [deserialize_line(d) for d in (doc.custom_lines or [])]

    discount = Discount.of(
        payload.discount_value if "discount_value" in fields else doc.discount_value,
        payload.discount_type if "discount_type" in fields else doc.discount_type,
    )
    override = payload.overridden_total if "overridden_total" in fields else doc.overridden_total
    priced = price_document(normalized.lines, normalized.custom_lines, discount, override)
    return normalized, discount, priced


def apply_pricing(doc, normalized: NormalizedLines, discount: Discount, priced: PricedTotals) -> None:
    doc.lines = [serialize_line(ln) for ln in normalized.lines]
    doc.custom_lines = [serialize_line(ln) for ln in normalized.custom_lines]
    doc.discount_value = discount.value
    doc.discount_type = discount.kind.value
    doc.subtotal = priced.subtotal
    doc.total = priced.total
    doc.overridden_total = priced.overridden_total
    doc.is_total_overridden = priced.is_total_overridden


# ---------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------
def transition(doc, label: str, target: str, allowed_from) -> None:
    if doc.status not in allowed_from:
        raise InvalidTransitionError(label, doc.status, target)
    doc.status = target


def ensure_dates(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end <= start:
        raise ValidationError("end_date must be after start_date")


# ---------------------------------------------------------------------
# Persistence & audit
# ---------------------------------------------------------------------
def commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("commit failed: %s", e)
        raise StorageError(f"write failed: {e.__class__.__name__}") from e


def jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [jsonable(v) for v in value]
    return value


def snapshot(doc, exclude=("created_at", "updated_at")) -> Dict[str, Any]:
    return {
        attr.key: jsonable(getattr(doc, attr.key))
        for attr in doc.__mapper__.column_attrs
        if attr.key not in exclude
    }


def record_audit(sink: AuditSink, actor: Actor, action: str, entity_type: str, entity_id, changes=None) -> None:
    sink.record(
        AuditEvent(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=actor.user_id,
            changes=jsonable(changes) if changes is not None else None,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
    )


def reprice_stored(doc, overridden_total=None) -> PricedTotals:
    """Totals of the stored lines with a new manual total (or none)."""
    lines = [deserialize_line(d) for d in (doc.lines or [])]
    custom = [deserialize_line(d) for d in (doc.custom_lines or [])]
    discount = Discount.of(doc.discount_value, doc.discount_type)
    return price_document(lines, custom, discount, overridden_total)


def flush(db: Session) -> None:
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("flush failed: %s", e)
        raise StorageError(f"write failed: {e.__class__.__name__}") from e


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

# backend/planner/engine/line_items.py
"""
Line-item normalizer: catalog references + ad-hoc entries -> priced lines.

Read-only against the catalog store. Any bad reference aborts the whole
call; nothing is half-applied.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import CrossTenantError, InvalidReferenceError, ValidationError
from .pricing import CatalogKind, CatalogLine, CustomLine, Discount, LineItem, to_decimal
from .stores import CatalogStore, unique_ids

logger = logging.getLogger(__name__)

PRICED_KINDS = (CatalogKind.SERVICE, CatalogKind.PACKAGE)


@dataclass(frozen=True)
class CustomLineSpec:
    """Ad-hoc entry as sent by the caller (bilingual label + price + discount)."""
    price: Decimal
    label_en: Optional[str] = None
    label_ar: Optional[str] = None
    discount: Optional[Discount] = None
    key: Optional[str] = None


@dataclass
class NormalizedLines:
    lines: List[CatalogLine] = field(default_factory=list)
    custom_lines: List[CustomLine] = field(default_factory=list)

    def all(self) -> List[LineItem]:
        return [*self.lines, *self.custom_lines]

    def of_kind(self, kind: CatalogKind) -> List[CatalogLine]:
        return [ln for ln in self.lines if ln.kind is kind]


def build_custom_lines(specs: Iterable[CustomLineSpec]) -> List[CustomLine]:
    return [
        CustomLine(
            unit_price=to_decimal(s.price, "price"),
            discount=s.discount or Discount(),
            label_en=s.label_en,
            label_ar=s.label_ar,
            key=s.key,
        )
        for s in specs
    ]


def resolve_catalog_lines(
    store: CatalogStore,
    client_id: Optional[int],
    kind: CatalogKind,
    ids: Sequence[int],
    price_overrides: Optional[Mapping[int, Any]] = None,
) -> List[CatalogLine]:
    if kind not in PRICED_KINDS:
        raise ValidationError(f"{kind.value} items carry no price")
    if not ids:
        return []

    overrides = dict(price_overrides or {})
    found: Dict[int, Any] = {rec.id: rec for rec in store.find_many(kind, unique_ids(ids))}

    for ref_id in ids:
        rec = found.get(ref_id)
        if rec is None or rec.deleted:
            raise InvalidReferenceError(kind.value, ref_id)

    foreign = unique_ids(i for i in ids if not found[i].usable_by(client_id))
    if foreign:
        raise CrossTenantError(kind.value, foreign)

    lines: List[CatalogLine] = []
    for ref_id in ids:
        rec = found[ref_id]
        unit_price = overrides[ref_id] if overrides.get(ref_id) is not None else rec.price
        lines.append(
            CatalogLine(
                kind=kind,
                ref_id=ref_id,
                unit_price=to_decimal(unit_price, "price"),
                discount=rec.discount,
                label_en=rec.label_en,
                label_ar=rec.label_ar,
            )
        )
    return lines


def normalize_lines(
    store: CatalogStore,
    client_id: Optional[int],
    refs: Mapping[CatalogKind, Sequence[int]],
    price_overrides: Optional[Mapping[CatalogKind, Mapping[int, Any]]] = None,
    custom_lines: Iterable[CustomLineSpec] = (),
) -> NormalizedLines:
    """
    ``refs`` maps a catalog kind to its ordered ids (duplicates give one line
    each). ``price_overrides`` maps kind -> {id: price}; an override wins over
    the catalog's canonical price. Output keeps kind order (services, then
    packages) and input order within a kind.
    """
    overrides = price_overrides or {}
    out = NormalizedLines(custom_lines=build_custom_lines(custom_lines))
    for kind in PRICED_KINDS:
        ids = list(refs.get(kind) or [])
        out.lines.extend(resolve_catalog_lines(store, client_id, kind, ids, overrides.get(kind)))
    logger.debug(
        "normalized %d catalog and %d custom lines for client %s",
        len(out.lines), len(out.custom_lines), client_id,
    )
    return out

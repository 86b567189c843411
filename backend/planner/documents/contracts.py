# backend/planner/documents/contracts.py
import logging
from dataclasses import asdict
from datetime import date
from typing import Iterable, List, Optional, Sequence

from ..core.config import settings
from ..engine.errors import CrossTenantError, InvalidReferenceError
from ..engine.numbering import CONTRACT_PREFIX, document_number
from ..engine.pricing import CatalogKind
from ..engine.scope import ScopedKind
from ..engine.terms import OrderChange, TermComposer, TermEntry
from ..models import Contract, ContractTermItem, Quotation
from .base import DocumentService
from .common import (
    Actor,
    apply_pricing,
    ensure_client,
    ensure_dates,
    jsonable,
    price_payload,
    reprice_stored,
    transition,
)
from .schemas import (
    ContractCreate,
    ContractUpdate,
    ConvertToContractIn,
    RenewIn,
    TermEntryIn,
    TermOrderIn,
)
from .stores import number_taken

logger = logging.getLogger(__name__)

LINK_FIELDS = ("quotation_id", "package_id", "campaign_plan_id")
COPY_FIELDS = ("client_name", "client_name_ar", "contract_body", "contract_body_ar", "note", "start_date", "end_date")


def entry_from_input(item: TermEntryIn) -> TermEntry:
    return TermEntry(
        order=item.order,
        is_custom=item.is_custom,
        term_id=item.term_id,
        custom_key=item.custom_key,
        custom_key_ar=item.custom_key_ar,
        custom_value=item.custom_value,
        custom_value_ar=item.custom_value_ar,
    )


def entries_of(doc: Contract) -> List[TermEntry]:
    return [
        TermEntry(
            id=row.id,
            order=row.order,
            is_custom=row.is_custom,
            term_id=row.term_id,
            custom_key=row.custom_key,
            custom_key_ar=row.custom_key_ar,
            custom_value=row.custom_value,
            custom_value_ar=row.custom_value_ar,
        )
        for row in doc.terms
    ]


def sync_terms(doc: Contract, entries: Iterable[TermEntry]) -> None:
    """Rows are matched by id; unmatched rows are orphaned (deleted), new entries inserted."""
    existing = {row.id: row for row in doc.terms}
    rows = []
    for e in sorted(entries, key=lambda e: e.order):
        row = existing.get(e.id) if e.id is not None else None
        if row is None:
            row = ContractTermItem()
        row.order = e.order
        row.is_custom = e.is_custom
        row.term_id = e.term_id
        row.custom_key = e.custom_key
        row.custom_key_ar = e.custom_key_ar
        row.custom_value = e.custom_value
        row.custom_value_ar = e.custom_value_ar
        rows.append(row)
    doc.terms = rows


class ContractService(DocumentService):
    model = Contract
    label = "Contract"

    # ---------- helpers ----------
    def _next_number(self) -> str:
        return document_number(
            CONTRACT_PREFIX,
            number_taken(self.db, Contract.contract_number),
            attempts=settings.DOCUMENT_NUMBER_ATTEMPTS,
        )

    def _check_links(
        self,
        client_id: Optional[int],
        quotation_id: Optional[int],
        package_id: Optional[int],
        campaign_plan_id: Optional[int],
    ) -> None:
        self.scope.validate_all(
            client_id,
            {
                ScopedKind.QUOTATIONS: [quotation_id] if quotation_id else [],
                ScopedKind.CAMPAIGN_PLANS: [campaign_plan_id] if campaign_plan_id else [],
            },
        )
        if package_id:
            rec = self.catalog.find_by_id(CatalogKind.PACKAGE, package_id)
            if rec is None:
                raise InvalidReferenceError(CatalogKind.PACKAGE.value, package_id)
            if not rec.usable_by(client_id):
                raise CrossTenantError(CatalogKind.PACKAGE.value, [package_id])

    def _composer(self, doc: Optional[Contract] = None) -> TermComposer:
        return TermComposer(self.catalog, entries_of(doc) if doc is not None else ())

    # ---------- create / update ----------
    def create(self, payload: ContractCreate, actor: Actor) -> Contract:
        fields = payload.model_fields_set
        client_id = payload.client_id
        if client_id is not None:
            ensure_client(self.db, client_id)
        self._check_links(client_id, payload.quotation_id, payload.package_id, payload.campaign_plan_id)
        ensure_dates(payload.start_date, payload.end_date)

        normalized, discount, priced = price_payload(self.catalog, client_id, payload, fields)
        entries = self._composer().replace_all([entry_from_input(t) for t in payload.terms or []])

        doc = Contract(
            contract_number=self._next_number(),
            client_id=client_id,
            quotation_id=payload.quotation_id,
            package_id=payload.package_id,
            campaign_plan_id=payload.campaign_plan_id,
            status="draft",
            created_by=actor.user_id,
            deleted=False,
        )
        for f in COPY_FIELDS:
            setattr(doc, f, getattr(payload, f))
        apply_pricing(doc, normalized, discount, priced)
        sync_terms(doc, entries)
        return self._save(doc, actor, "create")

    def update(self, doc_id: int, payload: ContractUpdate, actor: Actor) -> Contract:
        doc = self.get(doc_id)
        fields = payload.model_fields_set

        client_id = doc.client_id
        if "client_id" in fields:
            if payload.client_id is not None:
                ensure_client(self.db, payload.client_id)
            client_id = payload.client_id
        client_changed = client_id != doc.client_id

        links = {f: getattr(payload, f) if f in fields else getattr(doc, f) for f in LINK_FIELDS}
        if client_changed or any(f in fields for f in LINK_FIELDS):
            self._check_links(client_id, links["quotation_id"], links["package_id"], links["campaign_plan_id"])

        ensure_dates(
            payload.start_date if "start_date" in fields else doc.start_date,
            payload.end_date if "end_date" in fields else doc.end_date,
        )

        normalized, discount, priced = price_payload(
            self.catalog, client_id, payload, fields, doc=doc, client_changed=client_changed,
        )
        entries = None
        if "terms" in fields:
            entries = self._composer(doc).replace_all([entry_from_input(t) for t in payload.terms or []])

        # all checks passed; mutate
        doc.client_id = client_id
        for f, value in links.items():
            setattr(doc, f, value)
        for f in COPY_FIELDS:
            if f in fields:
                setattr(doc, f, getattr(payload, f))
        apply_pricing(doc, normalized, discount, priced)
        if entries is not None:
            sync_terms(doc, entries)
        return self._save(doc, actor, "update", changes=jsonable(payload.model_dump(include=fields)))

    def build_from_quotation(self, quotation: Quotation, body: ConvertToContractIn, actor: Actor) -> Contract:
        """Unsaved contract carrying the quotation's client, lines and totals."""
        entries = self._composer().replace_all([entry_from_input(t) for t in body.terms or []])
        doc = Contract(
            contract_number=self._next_number(),
            client_id=quotation.client_id,
            client_name=quotation.client_name,
            quotation_id=quotation.id,
            start_date=body.start_date,
            end_date=body.end_date,
            contract_body=body.contract_body,
            contract_body_ar=body.contract_body_ar,
            note=quotation.note,
            lines=list(quotation.lines or []),
            custom_lines=list(quotation.custom_lines or []),
            discount_value=quotation.discount_value,
            discount_type=quotation.discount_type,
            subtotal=quotation.subtotal,
            total=quotation.total,
            overridden_total=quotation.overridden_total,
            is_total_overridden=quotation.is_total_overridden,
            status="draft",
            created_by=actor.user_id,
            deleted=False,
        )
        sync_terms(doc, entries)
        return doc

    # ---------- terms ----------
    def add_term(self, doc_id: int, item: TermEntryIn, actor: Actor) -> Contract:
        doc = self.get(doc_id)
        composer = self._composer(doc)
        placed = composer.append(entry_from_input(item))
        sync_terms(doc, composer.entries)
        return self._save(doc, actor, "add_term", changes=asdict(placed))

    def reorder_terms(self, doc_id: int, changes: Sequence[TermOrderIn], actor: Actor) -> Contract:
        doc = self.get(doc_id)
        composer = self._composer(doc)
        composer.reorder([OrderChange(id=c.id, order=c.order) for c in changes])
        sync_terms(doc, composer.entries)
        return self._save(
            doc, actor, "reorder_terms", changes={"terms": [{"id": c.id, "order": c.order} for c in changes]},
        )

    def remove_term(self, doc_id: int, item_id: int, actor: Actor) -> Contract:
        doc = self.get(doc_id)
        composer = self._composer(doc)
        composer.remove(item_id)
        sync_terms(doc, composer.entries)
        return self._save(doc, actor, "remove_term", changes={"term_item_id": item_id})

    # ---------- lifecycle ----------
    def sign(self, doc_id: int, signed_date: Optional[date], actor: Actor) -> Contract:
        doc = self.get(doc_id)
        doc.signed_date = signed_date or date.today()
        return self._save(doc, actor, "sign", changes={"signed_date": doc.signed_date})

    def activate(self, doc_id: int, actor: Actor) -> Contract:
        doc = self.get(doc_id)
        transition(doc, self.label, "active", {"draft", "renewed"})
        return self._save(doc, actor, "activate", changes={"status": "active"})

    def complete(self, doc_id: int, actor: Actor) -> Contract:
        doc = self.get(doc_id)
        transition(doc, self.label, "completed", {"active"})
        return self._save(doc, actor, "complete", changes={"status": "completed"})

    def cancel(self, doc_id: int, reason: Optional[str], actor: Actor) -> Contract:
        doc = self.get(doc_id)
        transition(doc, self.label, "cancelled", {"draft", "active", "renewed"})
        doc.note = reason or ""
        return self._save(doc, actor, "cancel", changes={"status": "cancelled", "reason": reason})

    def renew(self, doc_id: int, body: RenewIn, actor: Actor) -> Contract:
        doc = self.get(doc_id)
        ensure_dates(body.new_start_date, body.new_end_date)
        transition(doc, self.label, "renewed", {"active", "completed", "renewed"})
        doc.start_date = body.new_start_date
        doc.end_date = body.new_end_date
        if body.new_value is not None:
            priced = reprice_stored(doc, body.new_value)
            doc.total = priced.total
            doc.overridden_total = priced.overridden_total
            doc.is_total_overridden = priced.is_total_overridden
        return self._save(doc, actor, "renew", changes=jsonable(body.model_dump()))

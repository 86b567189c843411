# backend/planner/documents/quotations.py
import logging

from ..core.config import settings
from ..engine.errors import InvalidTransitionError
from ..engine.numbering import QUOTATION_PREFIX, document_number
from ..models import Contract, Quotation
from .base import DocumentService
from .common import (
    Actor,
    apply_pricing,
    commit,
    ensure_client,
    jsonable,
    price_payload,
    record_audit,
    snapshot,
    transition,
    utcnow,
)
from .contracts import ContractService
from .schemas import ConvertToContractIn, QuotationIn
from .stores import number_taken

logger = logging.getLogger(__name__)

COPY_FIELDS = ("note", "valid_until")


class QuotationService(DocumentService):
    model = Quotation
    label = "Quotation"

    def _next_number(self) -> str:
        return document_number(
            QUOTATION_PREFIX,
            number_taken(self.db, Quotation.quotation_number),
            attempts=settings.DOCUMENT_NUMBER_ATTEMPTS,
        )

    def create(self, payload: QuotationIn, actor: Actor) -> Quotation:
        fields = payload.model_fields_set
        client_id = payload.client_id
        if client_id is not None:
            ensure_client(self.db, client_id)

        normalized, discount, priced = price_payload(self.catalog, client_id, payload, fields)

        doc = Quotation(
            quotation_number=self._next_number(),
            client_id=client_id,
            # a known client wins over the free-text name
            client_name=None if client_id is not None else payload.client_name,
            note=payload.note,
            valid_until=payload.valid_until,
            status="draft",
            created_by=actor.user_id,
            deleted=False,
        )
        apply_pricing(doc, normalized, discount, priced)
        return self._save(doc, actor, "create")

    def update(self, doc_id: int, payload: QuotationIn, actor: Actor) -> Quotation:
        doc = self.get(doc_id)
        fields = payload.model_fields_set

        client_id, client_name = doc.client_id, doc.client_name
        if "client_id" in fields:
            client_id = payload.client_id
            if client_id is not None:
                ensure_client(self.db, client_id)
                client_name = None
            elif "client_name" in fields:
                client_name = payload.client_name
        elif "client_name" in fields:
            # switching to a free-text client drops the link
            client_id, client_name = None, payload.client_name
        client_changed = client_id != doc.client_id

        normalized, discount, priced = price_payload(
            self.catalog, client_id, payload, fields, doc=doc, client_changed=client_changed,
        )

        doc.client_id = client_id
        doc.client_name = client_name
        for f in COPY_FIELDS:
            if f in fields:
                setattr(doc, f, getattr(payload, f))
        apply_pricing(doc, normalized, discount, priced)
        return self._save(doc, actor, "update", changes=jsonable(payload.model_dump(include=fields)))

    # ---------- status ----------
    def send(self, doc_id: int, actor: Actor) -> Quotation:
        doc = self.get(doc_id)
        transition(doc, self.label, "sent", {"draft"})
        doc.sent_at = utcnow()
        return self._save(doc, actor, "send", changes={"status": "sent"})

    def approve(self, doc_id: int, actor: Actor) -> Quotation:
        doc = self.get(doc_id)
        transition(doc, self.label, "approved", {"draft", "sent"})
        doc.approved_at = utcnow()
        return self._save(doc, actor, "approve", changes={"status": "approved"})

    def reject(self, doc_id: int, actor: Actor) -> Quotation:
        doc = self.get(doc_id)
        transition(doc, self.label, "rejected", {"draft", "sent"})
        doc.rejected_at = utcnow()
        return self._save(doc, actor, "reject", changes={"status": "rejected"})

    def convert_to_contract(self, doc_id: int, body: ConvertToContractIn, actor: Actor) -> Contract:
        """
        New draft contract with this quotation's client, lines and totals.
        The quotation is marked approved in the same commit.
        """
        doc = self.get(doc_id)
        if doc.status == "rejected":
            raise InvalidTransitionError(self.label, doc.status, "approved")
        if doc.client_id is not None:
            ensure_client(self.db, doc.client_id)

        contracts = ContractService(self.db, catalog=self.catalog, scoped=self.scope.store, audit=self.audit)
        contract = contracts.build_from_quotation(doc, body, actor)

        doc.status = "approved"
        doc.approved_at = doc.approved_at or utcnow()
        self.db.add(contract)
        commit(self.db)
        self.db.refresh(contract)
        logger.info("Quotation %s converted to contract %s by user %s", doc_id, contract.id, actor.user_id)

        record_audit(
            self.audit, actor, "convert_to_contract", self.label, doc_id,
            {"contract_id": contract.id, "contract_number": contract.contract_number},
        )
        record_audit(self.audit, actor, "create", contracts.label, contract.id, snapshot(contract))
        return contract

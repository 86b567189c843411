# backend/planner/documents/campaigns.py
import logging

from ..engine.numbering import plan_number
from ..engine.scope import ScopedKind
from ..models import CampaignPlan
from .base import DocumentService
from .common import Actor, apply_pricing, ensure_client, flush, jsonable, price_payload
from .schemas import CampaignCreate, CampaignUpdate

logger = logging.getLogger(__name__)

# payload field -> (scoped kind, model column)
SCOPED_FIELDS = {
    "segments": (ScopedKind.SEGMENTS, "segment_ids"),
    "competitors": (ScopedKind.COMPETITORS, "competitor_ids"),
    "branches": (ScopedKind.BRANCHES, "branch_ids"),
}


def _objectives(items):
    return [o.model_dump() for o in (items or [])]


class CampaignService(DocumentService):
    model = CampaignPlan
    label = "CampaignPlan"

    def create(self, payload: CampaignCreate, actor: Actor) -> CampaignPlan:
        fields = payload.model_fields_set
        ensure_client(self.db, payload.client_id)

        refs = {kind: list(getattr(payload, f) or []) for f, (kind, _) in SCOPED_FIELDS.items()}
        self.scope.validate_all(payload.client_id, refs)
        normalized, discount, priced = price_payload(self.catalog, payload.client_id, payload, fields)

        doc = CampaignPlan(
            client_id=payload.client_id,
            description=payload.description,
            objectives=_objectives(payload.objectives),
            budget=payload.budget,
            status="draft",
            created_by=actor.user_id,
            deleted=False,
        )
        for f, (kind, column) in SCOPED_FIELDS.items():
            setattr(doc, column, refs[kind])
        apply_pricing(doc, normalized, discount, priced)

        # plan number comes from the row id
        self.db.add(doc)
        flush(self.db)
        doc.plan_number = plan_number(doc.id)
        return self._save(doc, actor, "create")

    def update(self, doc_id: int, payload: CampaignUpdate, actor: Actor) -> CampaignPlan:
        doc = self.get(doc_id)
        fields = payload.model_fields_set

        client_id = doc.client_id
        if "client_id" in fields:
            # a plan always belongs to a client; null is not a valid target
            ensure_client(self.db, payload.client_id)
            client_id = payload.client_id
        client_changed = client_id != doc.client_id

        refs = {
            kind: list((getattr(payload, f) if f in fields else getattr(doc, column)) or [])
            for f, (kind, column) in SCOPED_FIELDS.items()
        }
        # a new owner must own every kept reference too
        to_check = {kind: refs[kind] for f, (kind, _) in SCOPED_FIELDS.items() if client_changed or f in fields}
        self.scope.validate_all(client_id, to_check)

        normalized, discount, priced = price_payload(
            self.catalog, client_id, payload, fields, doc=doc, client_changed=client_changed,
        )

        doc.client_id = client_id
        for f, (kind, column) in SCOPED_FIELDS.items():
            if f in fields:
                setattr(doc, column, refs[kind])
        if "description" in fields:
            doc.description = payload.description
        if "objectives" in fields:
            doc.objectives = _objectives(payload.objectives)
        if "budget" in fields:
            doc.budget = payload.budget
        apply_pricing(doc, normalized, discount, priced)
        return self._save(doc, actor, "update", changes=jsonable(payload.model_dump(include=fields)))

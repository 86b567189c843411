# backend/planner/engine/scope.py
"""
Scoped reference validator.

A document owned by client C may only point at segments / competitors /
branches (and other client-owned documents) that C owns. One generic check,
parameterized by a per-kind lookup, reports every missing id and every
foreign id in a single error.
"""
import logging
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional, Sequence

from .errors import CrossTenantError, NotFoundError
from .stores import ScopedEntityStore, ScopedRecord, unique_ids

logger = logging.getLogger(__name__)

Lookup = Callable[[Sequence[int]], Iterable[ScopedRecord]]


class ScopedKind(str, Enum):
    SEGMENTS = "segments"
    COMPETITORS = "competitors"
    BRANCHES = "branches"
    QUOTATIONS = "quotations"
    CAMPAIGN_PLANS = "campaign_plans"


def validate_scoped(
    client_id: Optional[int],
    ids: Sequence[int],
    kind: str,
    lookup: Lookup,
) -> None:
    """
    Raises NotFoundError when any id is missing or soft-deleted (the error
    also carries the foreign ids found in the same pass), otherwise
    CrossTenantError when any entity belongs to another client.
    """
    wanted = unique_ids(ids or [])
    if not wanted:
        return

    label = kind.value if isinstance(kind, Enum) else str(kind)
    found = [rec for rec in lookup(wanted) if not rec.deleted]
    found_ids = {rec.id for rec in found}

    missing_ids = [i for i in wanted if i not in found_ids]
    owner_by_id = {rec.id: rec.client_id for rec in found}
    cross_tenant_ids = [i for i in wanted if i in owner_by_id and owner_by_id[i] != client_id]

    if missing_ids:
        logger.info("scope check failed for %s: missing=%s foreign=%s", label, missing_ids, cross_tenant_ids)
        raise NotFoundError(label, missing_ids, cross_tenant_ids)
    if cross_tenant_ids:
        logger.info("scope check failed for %s: foreign=%s (client %s)", label, cross_tenant_ids, client_id)
        raise CrossTenantError(label, cross_tenant_ids)


class ScopeValidator:
    """Binds validate_scoped to a store; one lookup per kind."""

    def __init__(self, store: ScopedEntityStore):
        self.store = store

    def lookup_for(self, kind: ScopedKind) -> Lookup:
        return lambda ids: self.store.find_many(kind, ids)

    def validate(self, client_id: Optional[int], kind: ScopedKind, ids: Sequence[int]) -> None:
        validate_scoped(client_id, ids, kind, self.lookup_for(kind))

    def validate_all(self, client_id: Optional[int], refs: Mapping[ScopedKind, Sequence[int]]) -> None:
        """Every kind is checked before the caller writes anything."""
        for kind, ids in refs.items():
            self.validate(client_id, kind, ids)


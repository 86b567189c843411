# backend/planner/engine/errors.py
"""
Typed failures of the pricing & composition engine.

Every engine operation either returns a value or raises one of these.
The HTTP layer turns them into ``{"error": {"code": ..., "message": ...}}``
bodies (see ``planner.api.errors``).
"""
from typing import Any, Dict, Iterable, List, Optional


class PlannerError(Exception):
    code = "PLANNER_ERROR"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"code": self.code, "message": self.message}
        body.update({k: v for k, v in self.details.items() if v is not None})
        return body


class ValidationError(PlannerError):
    """Impossible input that slipped past schema validation (e.g. a negative discount)."""
    code = "VALIDATION_ERROR"


class InvalidClientError(PlannerError):
    code = "INVALID_CLIENT"

    def __init__(self, client_id: Any):
        super().__init__("Client not found or has been deleted", client_id=client_id)
        self.client_id = client_id


class InvalidReferenceError(PlannerError):
    """A referenced catalog item does not exist or is soft-deleted."""
    code = "INVALID_REFERENCE"

    def __init__(self, kind: str, id: Any):
        super().__init__(f"{kind} with ID {id} not found or has been deleted", kind=kind, id=id)
        self.kind = kind
        self.id = id


class ScopeError(PlannerError):
    """Base of the scoped-reference failures; always carries the complete offending sets."""

    def __init__(
        self,
        message: str,
        kind: str,
        missing_ids: Optional[Iterable[Any]] = None,
        cross_tenant_ids: Optional[Iterable[Any]] = None,
    ):
        self.kind = kind
        self.missing_ids: List[Any] = list(missing_ids or [])
        self.cross_tenant_ids: List[Any] = list(cross_tenant_ids or [])
        super().__init__(
            message,
            kind=kind,
            missing_ids=self.missing_ids,
            cross_tenant_ids=self.cross_tenant_ids,
        )


class NotFoundError(ScopeError):
    code = "SCOPE_NOT_FOUND"

    def __init__(self, kind: str, missing_ids, cross_tenant_ids=None):
        ids = list(missing_ids)
        super().__init__(
            f"{kind} not found: {', '.join(str(i) for i in ids)}",
            kind,
            missing_ids=ids,
            cross_tenant_ids=cross_tenant_ids,
        )

    @property
    def ids(self) -> List[Any]:
        return self.missing_ids


class CrossTenantError(ScopeError):
    code = "CROSS_TENANT_REFERENCE"

    def __init__(self, kind: str, ids):
        ids = list(ids)
        super().__init__(
            f"{kind} belong to a different client: {', '.join(str(i) for i in ids)}",
            kind,
            cross_tenant_ids=ids,
        )

    @property
    def ids(self) -> List[Any]:
        return self.cross_tenant_ids


class DuplicateOrderError(PlannerError):
    code = "DUPLICATE_TERM_ORDER"

    def __init__(self, orders: Iterable[int]):
        orders = sorted(set(orders))
        super().__init__(f"Duplicate term order values: {orders}", orders=orders)
        self.orders = orders


class NoMatchingTermsError(PlannerError):
    code = "NO_MATCHING_TERMS"

    def __init__(self, ids: Iterable[Any]):
        ids = list(ids)
        super().__init__("None of the given term ids belong to this contract", ids=ids)
        self.ids = ids


class InvalidCustomTermError(PlannerError):
    code = "INVALID_CUSTOM_TERM"


class DocumentNotFoundError(PlannerError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, id: Any):
        super().__init__(f"{entity_type} not found", entity_type=entity_type, id=id)
        self.entity_type = entity_type
        self.id = id


class InvalidTransitionError(PlannerError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409

    def __init__(self, entity_type: str, current: str, target: str):
        super().__init__(
            f"{entity_type} cannot move from '{current}' to '{target}'",
            current=current,
            target=target,
        )


class StorageError(PlannerError):
    """Any failure of the catalog / document store; never retried here."""
    code = "STORAGE_ERROR"
    status_code = 500

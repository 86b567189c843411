# backend/planner/engine/audit.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    action: str
    entity_type: str
    entity_id: Optional[int]
    user_id: Optional[int] = None
    changes: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@runtime_checkable
class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None:
        """Fire-and-forget; must never raise into the business operation."""
        ...


class NullAuditSink:
    def record(self, event: AuditEvent) -> None:
        logger.debug("audit (discarded): %s %s#%s", event.action, event.entity_type, event.entity_id)

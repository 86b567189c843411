# backend/planner/engine/numbering.py
"""
Human-readable document numbers: ``QUO-2026-4821``, ``CNT-2026-1093``.

The 4-digit suffix is random, so every candidate is checked against the
store and re-drawn on a hit. Campaign plans use the row id instead
(``PLAN-000042``), which the database already hands out atomically.
"""
import logging
import random
from datetime import date
from typing import Callable, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)

QUOTATION_PREFIX = "QUO"
CONTRACT_PREFIX = "CNT"
PLAN_PREFIX = "PLAN"

_rng = random.SystemRandom()


def candidate_number(prefix: str, today: Optional[date] = None, rng=None) -> str:
    year = (today or date.today()).year
    suffix = (rng or _rng).randint(1000, 9999)
    return f"{prefix}-{year}-{suffix}"


def document_number(
    prefix: str,
    exists: Callable[[str], bool],
    attempts: int = 20,
    today: Optional[date] = None,
    rng=None,
) -> str:
    for attempt in range(1, attempts + 1):
        number = candidate_number(prefix, today, rng)
        if not exists(number):
            return number
        logger.warning("document number %s already taken (attempt %d/%d)", number, attempt, attempts)
    raise StorageError(f"could not allocate a free {prefix} number after {attempts} attempts")


def plan_number(row_id: int) -> str:
    return f"{PLAN_PREFIX}-{row_id:06d}"

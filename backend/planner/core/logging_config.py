# backend/planner/core/logging_config.py
import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Root logger setup; safe to call more than once (uvicorn reloads)."""
    resolved = (level or settings.LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
    root.setLevel(resolved)
    logging.getLogger("planner").setLevel(resolved)

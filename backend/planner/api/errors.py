# backend/planner/api/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..engine.errors import PlannerError, StorageError

logger = logging.getLogger(__name__)


async def planner_error_handler(request: Request, exc: PlannerError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder({"error": exc.to_dict()}))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlannerError, planner_error_handler)

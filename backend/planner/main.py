# backend/planner/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.logging_config import configure_logging
from .api.errors import install_error_handlers

# ---- Routers ----
from .api import (
    audit,
    auth,
    campaigns,
    clients,
    contract_terms,
    contracts,
    packages,
    quotations,
    services,
    users,
)
from .api.scoped import branches_router, competitors_router, segments_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Agency Planner API")

# ---------------------------
# CORS (frontend dev servers)
# ---------------------------
DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
ALLOW_ORIGINS = settings.cors_origins(DEFAULT_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


# ---------------------------
# Health
# ---------------------------
@app.get("/health", tags=["system"])
def health():
    return {"status": "ok"}


# ---------------------------
# Routers
# ---------------------------
# Auth & clients
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(clients.router, prefix=settings.API_PREFIX)
app.include_router(segments_router, prefix=settings.API_PREFIX)
app.include_router(competitors_router, prefix=settings.API_PREFIX)
app.include_router(branches_router, prefix=settings.API_PREFIX)

# Catalog
app.include_router(services.router, prefix=settings.API_PREFIX)
app.include_router(packages.router, prefix=settings.API_PREFIX)
app.include_router(contract_terms.router, prefix=settings.API_PREFIX)

# Priced documents
app.include_router(quotations.router, prefix=settings.API_PREFIX)
app.include_router(campaigns.router, prefix=settings.API_PREFIX)
app.include_router(contracts.router, prefix=settings.API_PREFIX)

# Admin
app.include_router(users.router, prefix=settings.API_PREFIX)
app.include_router(audit.router, prefix=settings.API_PREFIX)

logger.info("Agency Planner API ready (prefix %s, %d CORS origins)", settings.API_PREFIX, len(ALLOW_ORIGINS))

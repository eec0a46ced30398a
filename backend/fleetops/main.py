from __future__ import annotations

import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from fleetops.api.router import api_router
from fleetops.core.config import get_settings
from fleetops.core.logging_config import configure_logging
from fleetops.db.session import get_engine
import fleetops.models  # noqa: F401
from fleetops.models.base import Base


logger = logging.getLogger(__name__)

app = FastAPI(title="FleetOps API", version="0.1.0")


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "FleetOps API is running. See /docs or /health."}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/health")
def api_health():
    return {"status": "ok"}


@app.on_event("startup")
def _startup():
    configure_logging()

    # Dev-friendly: auto-create tables. Production runs migrations instead.
    if not get_settings().auto_create_tables:
        return

    # Uvicorn's reload can trigger overlapping startups. MySQL DDL isn't atomic with
    # SQLAlchemy's check-then-create, so we retry a few times on transient errors.
    for attempt in range(5):
        try:
            Base.metadata.create_all(bind=get_engine())
            logger.info("Database tables ready")
            return
        except OperationalError as exc:
            message = str(getattr(exc, "orig", exc))
            is_transient = (
                "already exists" in message
                or "definition is being modified by concurrent DDL" in message
            )
            if is_transient and attempt < 4:
                logger.warning("Table creation attempt %s failed transiently: %s", attempt + 1, message)
                time.sleep(0.3 * (attempt + 1))
                continue
            raise


app.include_router(api_router)

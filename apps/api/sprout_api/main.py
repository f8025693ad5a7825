"""FastAPI entrypoint for Sprout Watch."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers.growth import router as growth_router
from .services.engine_host import get_host, shutdown_host
from .storage.kv_store import init_db as init_kv_db
from .storage.kv_store import ping as ping_kv_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("sprout_api")

app = FastAPI(title="Sprout Watch API", version="0.1.0")

_cors_origins = [o.strip() for o in os.environ.get("SPROUT_CORS_ORIGINS", "*").split(",")]
_cors_allow_credentials = "*" not in _cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(growth_router)


@app.on_event("startup")
def startup() -> None:
    logger.info("[STARTUP] Sprout Watch API starting up at %s", datetime.now(timezone.utc).isoformat())
    try:
        logger.info("[STARTUP] Initializing key-value database...")
        init_kv_db()
        logger.info("[STARTUP] Key-value database initialized successfully")
    except Exception as e:
        logger.error("[STARTUP] Failed to initialize key-value database: %s", e)
        raise

    state = get_host().engine.get_state()
    logger.info("[STARTUP] Growth timer online: enabled=%s", state.enabled)


@app.on_event("shutdown")
def shutdown() -> None:
    shutdown_host()


@app.get("/healthz")
def healthz():
    logger.debug("[HEALTH] Health check requested")
    try:
        ping_kv_db()
    except Exception as exc:
        logger.warning("[HEALTH] DB ping failed: %s", exc)
        return JSONResponse(status_code=503, content={"status": "error", "detail": str(exc)})
    return {"status": "ok"}

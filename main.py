"""FastAPI app entry point for the tactics combat server."""

import logging

from fastapi import FastAPI

import config
from api.admin import router as admin_router
from api.campaigns import router as campaigns_router
from api.combat import router as combat_router
from auth import load_tokens
from engine.store import CombatStore, load_store
from idempotency import IdempotencyStore

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Tactics Combat Server",
    description="Server-authoritative, deterministic turn-based combat for narrative RPG campaigns",
    version="0.1.0",
)

config.load_secret()
load_tokens()
app.state.store = load_store(config.SAVE_FILE) or CombatStore()
app.state.idempotency = IdempotencyStore()

app.include_router(admin_router, prefix="/admin", tags=["Admin"])
app.include_router(campaigns_router, prefix="/campaigns", tags=["Campaigns"])
app.include_router(combat_router, prefix="/combat", tags=["Combat"])


@app.get("/")
def root() -> dict:
    """Root endpoint returning server info."""
    return {"name": "Tactics Combat Server", "version": "0.1.0", "status": "running"}


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"healthy": True}

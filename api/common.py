"""Helpers shared by the campaign and combat routers."""

import logging
from contextlib import contextmanager

from fastapi import HTTPException, Request

import config
from engine.errors import CombatError
from engine.store import CombatStore, save_store
from idempotency import IdempotencyStore

logger = logging.getLogger(__name__)


def get_store(request: Request) -> CombatStore:
    """Get the campaign/session store from app state."""
    return request.app.state.store


def get_idempotency(request: Request) -> IdempotencyStore:
    return request.app.state.idempotency


def commit(store: CombatStore) -> None:
    """Persist the store. Failures propagate as 500s."""
    save_store(store, config.SAVE_FILE)


@contextmanager
def engine_errors():
    """Translate engine rejections into HTTP errors with their status codes."""
    try:
        yield
    except CombatError as e:
        logger.warning("Rejected (%d): %s", e.status_code, e)
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

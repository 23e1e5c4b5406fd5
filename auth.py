"""API key authentication and campaign-scoped authorization."""

from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import HTTPException, Request
from pydantic import BaseModel

import config
from engine.errors import AuthorizationError
from models.combat import EntityType

if TYPE_CHECKING:
    from models.campaign import Campaign
    from models.combat import Combatant

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "sk_"


class User(BaseModel):
    """A registered API user."""
    owner_id: str
    name: str


# In-memory token store: api_key -> User
_tokens: dict[str, User] = {}


def load_tokens(path: str | None = None) -> dict[str, User]:
    """Load token store from JSON file.

    Returns:
        Dict mapping API keys to User objects.
    """
    path = path or config.TOKENS_FILE
    _tokens.clear()
    if not Path(path).exists():
        return _tokens
    with open(path) as f:
        data = json.load(f)
    _tokens.update({key: User(**value) for key, value in data.items()})
    return _tokens


def save_tokens(path: str | None = None) -> None:
    """Persist token store to JSON file (atomic write)."""
    path = path or config.TOKENS_FILE
    tmp_path = path + ".tmp"
    data = {key: user.model_dump() for key, user in _tokens.items()}
    with open(tmp_path, "w") as f:
        json.dump(data, f, indent=2)
    os.replace(tmp_path, path)


def _new_key() -> str:
    return API_KEY_PREFIX + secrets.token_hex(32)


def _key_for_owner(owner_id: str) -> str | None:
    return next((key for key, user in _tokens.items() if user.owner_id == owner_id), None)


def create_token(owner_id: str, name: str) -> str:
    """Generate a new API key for a user and persist it.

    Args:
        owner_id: Unique identifier for the player or DM.
        name: Display name for the user.

    Returns:
        The generated API key string.

    Raises:
        ValueError: If owner_id is already registered.
    """
    if _key_for_owner(owner_id) is not None:
        raise ValueError(f"owner_id '{owner_id}' is already registered")
    api_key = _new_key()
    _tokens[api_key] = User(owner_id=owner_id, name=name)
    save_tokens()
    logger.info("Registered user %s", owner_id)
    return api_key


def rotate_token(owner_id: str) -> str | None:
    """Issue a new API key for an existing user, invalidating the old one.

    Returns:
        The new API key, or None if the owner_id is not registered.
    """
    old_key = _key_for_owner(owner_id)
    if old_key is None:
        return None
    user = _tokens.pop(old_key)
    new_key = _new_key()
    _tokens[new_key] = user
    save_tokens()
    logger.info("Rotated API key for %s", owner_id)
    return new_key


def delete_token(owner_id: str) -> bool:
    """Remove a user and their API key. Returns False if not registered."""
    key = _key_for_owner(owner_id)
    if key is None:
        return False
    del _tokens[key]
    save_tokens()
    logger.info("Deleted user %s", owner_id)
    return True


def get_current_user(request: Request) -> User:
    """FastAPI dependency: extract and validate Bearer token.

    Usage:
        @router.post("/endpoint")
        def endpoint(user: User = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If token is missing or invalid.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    token = auth_header[len("Bearer "):]
    user = _tokens.get(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid API key")

    return user


# ---------------------------------------------------------------------------
# Campaign authorization
# ---------------------------------------------------------------------------


def require_participant(campaign: Campaign, user: User) -> None:
    """The caller must be the campaign's DM or a member.

    Raises:
        AuthorizationError: Otherwise.
    """
    if not campaign.is_participant(user.owner_id):
        raise AuthorizationError("You are not a participant in this campaign")


def require_control(campaign: Campaign, combatant: Combatant | None, user: User) -> None:
    """The caller must control the combatant, or be the DM.

    Unknown combatants pass through so the engine can report them as not found.

    Raises:
        AuthorizationError: A player acting for someone else's combatant
            or for an NPC/summon.
    """
    if combatant is None or user.owner_id == campaign.owner_id:
        return
    if combatant.entity_type != EntityType.PLAYER:
        raise AuthorizationError("Only the DM can act for NPCs and summons")
    if combatant.player_id != user.owner_id:
        raise AuthorizationError("You do not control this combatant")

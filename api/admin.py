"""Admin endpoints for user registration and API key management."""

from fastapi import APIRouter, HTTPException, Header, Request
from pydantic import BaseModel

import config
from api.common import commit, get_store
from auth import _tokens, create_token, delete_token, rotate_token
from config import save_secret

router = APIRouter()


class RegisterRequest(BaseModel):
    """Request body for registering a new API user."""
    owner_id: str
    name: str


class RegisterResponse(BaseModel):
    """Response after registering a user or rotating their key."""
    api_key: str
    owner_id: str


class DeleteUserResponse(BaseModel):
    """Response after deleting a user."""
    message: str
    memberships_removed: int


class ChangeSecretRequest(BaseModel):
    """Request body for changing the admin secret."""
    new_secret: str


def _require_admin(x_admin_secret: str) -> None:
    if x_admin_secret != config.ADMIN_SECRET:
        raise HTTPException(status_code=403, detail="Invalid admin secret")


@router.put("/secret")
def change_admin_secret(
    body: ChangeSecretRequest,
    x_admin_secret: str = Header(..., alias="X-Admin-Secret"),
) -> dict:
    """Change the admin secret at runtime and persist it."""
    _require_admin(x_admin_secret)
    if len(body.new_secret) < 8:
        raise HTTPException(status_code=400, detail="New secret must be at least 8 characters")
    config.ADMIN_SECRET = body.new_secret
    save_secret()
    return {"message": "Admin secret updated"}


@router.post("/register", response_model=RegisterResponse)
def register_user(
    body: RegisterRequest,
    x_admin_secret: str = Header(..., alias="X-Admin-Secret"),
) -> RegisterResponse:
    """Register a player or DM and return an API key."""
    _require_admin(x_admin_secret)
    try:
        api_key = create_token(body.owner_id, body.name)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return RegisterResponse(api_key=api_key, owner_id=body.owner_id)


@router.get("/users")
def list_users(x_admin_secret: str = Header(..., alias="X-Admin-Secret")) -> list[dict]:
    """List registered users. Does not expose API keys."""
    _require_admin(x_admin_secret)
    return [{"owner_id": user.owner_id, "name": user.name} for user in _tokens.values()]


@router.post("/users/{owner_id}/rotate", response_model=RegisterResponse)
def rotate_user_token(
    owner_id: str,
    x_admin_secret: str = Header(..., alias="X-Admin-Secret"),
) -> RegisterResponse:
    """Rotate a user's API key. The old key stops working immediately."""
    _require_admin(x_admin_secret)
    new_key = rotate_token(owner_id)
    if new_key is None:
        raise HTTPException(status_code=404, detail=f"owner_id '{owner_id}' not found")
    return RegisterResponse(api_key=new_key, owner_id=owner_id)


@router.delete("/users/{owner_id}", response_model=DeleteUserResponse)
def delete_user(
    owner_id: str,
    request: Request,
    x_admin_secret: str = Header(..., alias="X-Admin-Secret"),
) -> DeleteUserResponse:
    """Delete a user and drop their campaign memberships.

    Characters stay on campaign rosters so existing combat sessions and
    event logs keep referring to valid sheets.
    """
    _require_admin(x_admin_secret)
    if not delete_token(owner_id):
        raise HTTPException(status_code=404, detail=f"owner_id '{owner_id}' not found")

    store = get_store(request)
    removed = 0
    for campaign_id in list(store.campaigns):
        with store.lock_for(campaign_id):
            campaign = store.campaigns[campaign_id]
            if owner_id not in campaign.member_ids:
                continue
            draft = campaign.model_copy(deep=True)
            draft.member_ids.remove(owner_id)
            store.put(campaign=draft)
            removed += 1
    if removed:
        commit(store)
    return DeleteUserResponse(message=f"User '{owner_id}' deleted", memberships_removed=removed)

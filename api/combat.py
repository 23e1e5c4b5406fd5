"""Combat state, event log, action, tick, and reward endpoints."""

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from api.common import commit, engine_errors, get_idempotency, get_store
from auth import User, get_current_user, require_control, require_participant
from config import TICK_MAX_STEPS
from engine.combat import get_current_actor, move, tick
from engine.events import events_since
from engine.items import use_item
from engine.rewards import RewardLedger, claim_rewards
from engine.skills import use_skill
from idempotency import MAX_KEY_LENGTH
from models.actions import (
    ActionOutcome,
    ItemRequest,
    MoveRequest,
    MoveResult,
    SkillRequest,
    TickRequest,
    TickResult,
)
from models.campaign import Campaign
from models.combat import ActionEvent, CombatSession
from models.rewards import ClaimResult
from models.skills import CombatTarget

logger = logging.getLogger(__name__)

router = APIRouter()


def _run(
    request: Request,
    session_id: str,
    user: User,
    action: Callable[..., Any],
    actor_id: str | None = None,
    with_ledger: bool = False,
) -> Any:
    """Run an engine call against copies of the session and campaign.

    The copies replace the stored objects only if the call succeeds, so a
    rejected action leaves no event and no changed field behind. The
    campaign lock is taken before the session lock, the same order every
    other campaign change uses. With ``with_ledger`` the action also gets
    a scratch ledger holding only this session's grant, and a grant it
    records is written to the store ledger on success.
    """
    store = get_store(request)
    with engine_errors():
        campaign_id = store.get_session(session_id).campaign_id
    with store.lock_for(campaign_id), store.lock_for(session_id), engine_errors():
        session = store.get_session(session_id)
        campaign = store.get_campaign(campaign_id)
        require_participant(campaign, user)
        if actor_id is not None:
            require_control(campaign, session.combatants.get(actor_id), user)

        draft_session = session.model_copy(deep=True)
        draft_campaign = campaign.model_copy(deep=True)
        if with_ledger:
            existing = store.ledger.get(session_id)
            scratch = RewardLedger(grants={session_id: existing} if existing else {})
            result = action(draft_session, draft_campaign, scratch)
            grant = None if existing else scratch.get(session_id)
        else:
            grant = None
            result = action(draft_session, draft_campaign)

        store.put(campaign=draft_campaign, session=draft_session, grant=grant)
        commit(store)
    return result


def _visible_session(request: Request, session_id: str, user: User) -> CombatSession:
    with engine_errors():
        session = get_store(request).get_session(session_id)
        require_participant(get_store(request).get_campaign(session.campaign_id), user)
    return session


@router.get("/{session_id}")
def get_combat_state(
    session_id: str,
    request: Request,
    user: User = Depends(get_current_user),
) -> dict:
    """Full session state plus whose turn it is."""
    session = _visible_session(request, session_id, user)
    current = get_current_actor(session)
    data = session.model_dump(mode="json", exclude={"events"})
    data["current_actor_combatant_id"] = current.id if current else None
    data["event_count"] = len(session.events)
    return data


@router.get("/{session_id}/events", response_model=list[ActionEvent])
def get_combat_events(
    session_id: str,
    request: Request,
    after: int = Query(-1, description="Return events with seq greater than this"),
    user: User = Depends(get_current_user),
) -> list[ActionEvent]:
    """Event log in seq order, optionally only the tail after a known seq."""
    return events_since(_visible_session(request, session_id, user), after)


@router.post("/{session_id}/skill", response_model=ActionOutcome)
def submit_skill(
    session_id: str,
    body: SkillRequest,
    request: Request,
    user: User = Depends(get_current_user),
) -> ActionOutcome:
    """Use a skill on the actor's turn."""
    target = CombatTarget(target_id=body.target_id, target_position=body.target_position)
    return _run(
        request, session_id, user,
        lambda session, _: use_skill(session, body.actor_combatant_id, body.skill_id, target),
        actor_id=body.actor_combatant_id,
    )


@router.post("/{session_id}/item", response_model=ActionOutcome)
def submit_item(
    session_id: str,
    body: ItemRequest,
    request: Request,
    user: User = Depends(get_current_user),
) -> ActionOutcome:
    """Use a consumable from the actor's inventory."""
    return _run(
        request, session_id, user,
        lambda session, campaign: use_item(
            session, campaign, body.actor_combatant_id, body.inventory_item_id,
            target_id=body.target_id, target_position=body.target_position,
        ),
        actor_id=body.actor_combatant_id,
    )


@router.post("/{session_id}/move", response_model=MoveResult)
def submit_move(
    session_id: str,
    body: MoveRequest,
    request: Request,
    user: User = Depends(get_current_user),
) -> MoveResult:
    """Move to a tile or wait in place."""
    return _run(
        request, session_id, user,
        lambda session, _: move(session, body.actor_combatant_id, to=body.to, wait=body.wait),
        actor_id=body.actor_combatant_id,
    )


@router.post("/{session_id}/tick", response_model=TickResult)
def submit_tick(
    session_id: str,
    request: Request,
    body: TickRequest | None = None,
    user: User = Depends(get_current_user),
) -> TickResult:
    """Resolve NPC and summon turns until a player must act."""
    max_steps = TICK_MAX_STEPS
    if body is not None and body.max_steps is not None:
        if body.max_steps < 1:
            raise HTTPException(status_code=400, detail="max_steps must be at least 1")
        max_steps = min(body.max_steps, TICK_MAX_STEPS)
    return _run(request, session_id, user, lambda session, _: tick(session, max_steps))


@router.post("/{session_id}/rewards")
def claim_session_rewards(
    session_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
) -> dict:
    """Settle rewards for an ended combat. Requires an Idempotency-Key header.

    A replayed key returns the first response body unchanged. A new key
    after a successful claim returns the stored grant with
    already_granted=true.
    """
    if not idempotency_key or not idempotency_key.strip():
        raise HTTPException(status_code=400, detail="Idempotency-Key header is required")
    if len(idempotency_key) > MAX_KEY_LENGTH:
        raise HTTPException(status_code=400, detail="Idempotency-Key is too long")

    cache = get_idempotency(request)
    scope = f"rewards:{session_id}"
    cached = cache.get(user.owner_id, scope, idempotency_key)
    if cached is not None:
        return cached

    result: ClaimResult = _run(
        request, session_id, user,
        lambda session, campaign, ledger: claim_rewards(session, campaign, ledger),
        with_ledger=True,
    )
    return cache.put(user.owner_id, scope, idempotency_key, result.model_dump(mode="json"))

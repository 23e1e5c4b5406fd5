"""Campaign, roster, and combat start endpoints."""

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from api.common import commit, engine_errors, get_store
from auth import User, get_current_user, require_participant
from config import MAX_CHARACTERS_PER_CAMPAIGN
from engine.combat import start_combat
from engine.errors import StateConflict
from models.campaign import Campaign
from models.characters import (
    Attributes,
    CharacterSheet,
    EquipmentSlot,
    GearItem,
    InventoryItem,
)
from models.combat import Combatant, SessionStatus
from models.skills import Skill

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateCampaignRequest(BaseModel):
    """Request body for creating a campaign. The caller becomes its DM."""
    name: str


class CreateCharacterRequest(BaseModel):
    """Request body for adding a character to a campaign."""
    name: str
    level: int = 1
    attributes: Attributes = Attributes()
    resistances: dict[str, float] = {}
    equipment: dict[EquipmentSlot, GearItem] = {}
    skills: list[Skill] = []
    inventory: list[InventoryItem] | None = None   # None: starter kit


class StartCombatRequest(BaseModel):
    """Request body for starting a combat encounter."""
    seed: int | None = None
    npc_count: int | None = None


class StartCombatResponse(BaseModel):
    """Response after starting combat."""
    session_id: str
    seed: int
    turn_order: list[str]
    current_actor_combatant_id: str
    combatants: list[Combatant]


def starter_inventory() -> list[InventoryItem]:
    return [InventoryItem(id="minor-draught", name="Minor Draught", quantity=2)]


def _load_campaign(request: Request, campaign_id: str, user: User) -> Campaign:
    with engine_errors():
        campaign = get_store(request).get_campaign(campaign_id)
        require_participant(campaign, user)
    return campaign


@router.post("", response_model=Campaign)
def create_campaign(
    body: CreateCampaignRequest,
    request: Request,
    user: User = Depends(get_current_user),
) -> Campaign:
    """Create a campaign owned (DM'd) by the caller."""
    store = get_store(request)
    campaign = Campaign(id=str(uuid4()), name=body.name, owner_id=user.owner_id)
    store.put(campaign=campaign)
    commit(store)
    logger.info("Campaign %s created by %s", campaign.id, user.owner_id)
    return campaign


@router.post("/{campaign_id}/join", response_model=Campaign)
def join_campaign(
    campaign_id: str,
    request: Request,
    user: User = Depends(get_current_user),
) -> Campaign:
    """Join a campaign as a player. Joining twice is a no-op."""
    store = get_store(request)
    with store.lock_for(campaign_id):
        with engine_errors():
            campaign = store.get_campaign(campaign_id)
        if campaign.is_participant(user.owner_id):
            return campaign
        draft = campaign.model_copy(deep=True)
        draft.member_ids.append(user.owner_id)
        store.put(campaign=draft)
        commit(store)
    return draft


@router.post("/{campaign_id}/characters", response_model=CharacterSheet)
def create_character(
    campaign_id: str,
    body: CreateCharacterRequest,
    request: Request,
    user: User = Depends(get_current_user),
) -> CharacterSheet:
    """Add a character controlled by the caller to the campaign roster."""
    store = get_store(request)
    with store.lock_for(campaign_id):
        campaign = _load_campaign(request, campaign_id, user)
        active = store.sessions.get(campaign.active_combat_session_id or "")
        if active is not None and active.status == SessionStatus.ACTIVE:
            raise HTTPException(status_code=409, detail="Cannot add characters during combat")
        if len(campaign.characters) >= MAX_CHARACTERS_PER_CAMPAIGN:
            raise HTTPException(status_code=409, detail="Campaign roster is full")
        if body.level < 1:
            raise HTTPException(status_code=400, detail="Level must be at least 1")

        sheet = CharacterSheet(
            id=str(uuid4()),
            player_id=user.owner_id,
            name=body.name,
            level=body.level,
            attributes=body.attributes,
            resistances=body.resistances,
            equipment=body.equipment,
            skills=body.skills,
            inventory=starter_inventory() if body.inventory is None else body.inventory,
        )
        draft = campaign.model_copy(deep=True)
        draft.characters[sheet.id] = sheet
        store.put(campaign=draft)
        commit(store)
    return sheet


@router.get("/{campaign_id}", response_model=Campaign)
def get_campaign(
    campaign_id: str,
    request: Request,
    user: User = Depends(get_current_user),
) -> Campaign:
    """Campaign roster, visible to its DM and members."""
    return _load_campaign(request, campaign_id, user)


@router.post("/{campaign_id}/combat", response_model=StartCombatResponse)
def start_campaign_combat(
    campaign_id: str,
    request: Request,
    body: StartCombatRequest | None = None,
    user: User = Depends(get_current_user),
) -> StartCombatResponse:
    """Start a combat encounter for the campaign's roster."""
    store = get_store(request)
    body = body or StartCombatRequest()
    with store.lock_for(campaign_id):
        campaign = _load_campaign(request, campaign_id, user)
        with engine_errors():
            active = store.sessions.get(campaign.active_combat_session_id or "")
            if active is not None and active.status == SessionStatus.ACTIVE:
                raise StateConflict("Campaign already has an active combat")
            draft = campaign.model_copy(deep=True)
            session = start_combat(draft, seed=body.seed, npc_count=body.npc_count)
        store.put(campaign=draft, session=session)
        commit(store)

    first = session.turn_order[session.current_turn_index].combatant_id
    return StartCombatResponse(
        session_id=session.id,
        seed=session.seed,
        turn_order=[entry.combatant_id for entry in session.turn_order],
        current_actor_combatant_id=first,
        combatants=list(session.combatants.values()),
    )

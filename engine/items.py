"""Consumable use during combat."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from engine import tunables as t
from engine.combat import complete_action, record_death, require_actor_turn
from engine.damage import absorb_damage
from engine.errors import NotFound, StateConflict, ValidationError
from engine.events import animation_hint, append_event
from engine.status import cleanse

if TYPE_CHECKING:
    from models.actions import ActionOutcome
    from models.campaign import Campaign
    from models.characters import InventoryItem
    from models.combat import CombatSession, Combatant

logger = logging.getLogger(__name__)


def _resolve_item_target(
    session: CombatSession,
    actor: Combatant,
    target_id: str | None,
    target_position: tuple[int, int] | None,
) -> Combatant:
    """Self by default, else the named combatant or whoever stands on the tile."""
    if target_id is not None:
        target = session.combatants.get(target_id)
        if target is None:
            raise NotFound("Target not found")
    elif target_position is not None:
        tile = (int(target_position[0]), int(target_position[1]))
        target = next(
            (c for c in session.combatants.values() if c.is_alive and c.position == tile),
            None,
        )
        if target is None:
            raise NotFound("No combatant on target tile")
    else:
        return actor
    if not target.is_alive:
        raise StateConflict("Target is not alive")
    return target


def use_item(
    session: CombatSession,
    campaign: Campaign,
    actor_id: str,
    inventory_item_id: str,
    target_id: str | None = None,
    target_position: tuple[int, int] | None = None,
) -> ActionOutcome:
    """Consume one unit of a consumable from the actor's inventory.

    A consumable with no declared effects heals for DEFAULT_ITEM_HEAL.
    A stack is removed from the inventory once its last unit is used.

    Args:
        session: Current session (mutated in place on success).
        campaign: Campaign holding the actor's character sheet (its
            inventory is mutated).
        actor_id: Acting combatant.
        inventory_item_id: Stack id in the character's inventory.
        target_id: Target combatant; defaults to the actor.
        target_position: Target tile, used when target_id is absent.

    Returns:
        ActionOutcome.

    Raises:
        NotFound: Unknown stack, character, or target.
        ValidationError: The stack is not a consumable.
        StateConflict: Wrong turn, depleted stack, dead target.
    """
    actor = require_actor_turn(session, actor_id)
    sheet = campaign.characters.get(actor.character_id) if actor.character_id else None
    if sheet is None:
        raise NotFound("Actor has no inventory")
    stack: InventoryItem | None = next(
        (item for item in sheet.inventory if item.id == inventory_item_id), None,
    )
    if stack is None:
        raise NotFound("Inventory item not found for actor")
    if stack.item_type != "consumable":
        raise ValidationError("Only consumables can be used in combat")
    if stack.quantity <= 0:
        raise StateConflict("Item is depleted")
    target = _resolve_item_target(session, actor, target_id, target_position)

    since_seq = len(session.events)
    effects = stack.effects
    heal = effects.heal
    if not (heal or effects.power_gain or effects.damage or effects.cleanse):
        heal = t.DEFAULT_ITEM_HEAL

    stack.quantity -= 1
    if stack.quantity <= 0:
        sheet.inventory = [item for item in sheet.inventory if item is not stack]
    hint = animation_hint("item_use", 280, item_id=stack.id)
    append_event(session, "item_used", {
        "inventory_item_id": stack.id,
        "item_name": stack.name,
        "target_combatant_id": target.id,
        "quantity_after": stack.quantity,
        "animation_hint": hint,
    }, actor_id=actor.id)

    if heal > 0:
        target.hp = min(target.hp_max, target.hp + heal)
        append_event(session, "healed", {
            "target_combatant_id": target.id,
            "amount": heal,
            "hp_after": target.hp,
            "animation_hint": animation_hint("heal", 220),
        }, actor_id=actor.id)
    if effects.power_gain > 0:
        target.power = min(target.power_max, target.power + effects.power_gain)
        append_event(session, "power_gain", {
            "target_combatant_id": target.id,
            "amount": effects.power_gain,
            "power_after": target.power,
            "animation_hint": animation_hint("resource_gain", 200),
        }, actor_id=actor.id)
    if effects.cleanse:
        removed = cleanse(target, effects.cleanse)
        append_event(session, "cleanse", {
            "target_combatant_id": target.id,
            "ids": removed,
            "animation_hint": animation_hint("cleanse", 190),
        }, actor_id=actor.id)
    if effects.damage > 0:
        to_barrier, to_hp, broken = absorb_damage(target, effects.damage)
        append_event(session, "damage", {
            "source_combatant_id": actor.id,
            "target_combatant_id": target.id,
            "inventory_item_id": stack.id,
            "damage_to_barrier": to_barrier,
            "damage_to_hp": to_hp,
            "barrier_broken": broken,
            "hp_after": target.hp,
            "barrier_after": target.barrier,
            "animation_hint": animation_hint("hit", 200),
        }, actor_id=actor.id)
        if target.hp <= 0:
            record_death(session, target, {"combatant_id": actor.id, "item_id": stack.id})

    logger.debug("Session %s: %s used %s on %s", session.id, actor.id, stack.id, target.id)
    return complete_action(session, "item", since_seq, hint)

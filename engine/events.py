"""Append-only event log for combat sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from models.combat import ActionEvent

if TYPE_CHECKING:
    from models.combat import CombatSession


def animation_hint(kind: str, duration_ms: int, **extra: Any) -> dict[str, Any]:
    """Abstract animation metadata attached to event payloads."""
    return {"kind": kind, "duration_ms": duration_ms, **extra}


def append_event(
    session: CombatSession,
    event_type: str,
    payload: dict[str, Any] | None = None,
    actor_id: str | None = None,
    turn_index: int | None = None,
) -> ActionEvent:
    """Append an immutable event to the session log.

    Args:
        session: Session to append to (mutated in place).
        event_type: e.g. "moved", "damage", "turn_start".
        payload: Structured event data.
        actor_id: Acting combatant, if any.
        turn_index: Absolute turn the event belongs to; defaults to the
            session's current turn number.

    Returns:
        The appended event.
    """
    event = ActionEvent(
        id=str(uuid4()),
        seq=len(session.events),
        session_id=session.id,
        turn_index=session.turn_number if turn_index is None else turn_index,
        actor_combatant_id=actor_id,
        event_type=event_type,
        payload=payload or {},
        created_at=datetime.now(timezone.utc),
    )
    session.events.append(event)
    return event


def events_since(session: CombatSession, after_seq: int = -1) -> list[ActionEvent]:
    """Events with seq greater than after_seq, in log order."""
    return [event for event in session.events if event.seq > after_seq]

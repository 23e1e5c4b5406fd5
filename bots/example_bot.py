"""Reference bot that plays a combat through the REST API.

Registers a DM and a player, creates a campaign with two characters,
starts combat, and plays each turn with a simple policy:
  - On an NPC's turn, call /tick.
  - Attack the nearest NPC if it is in reach.
  - Otherwise move toward it as far as the movement budget allows.
  - If nothing works, wait.
Once combat ends, it claims rewards with an Idempotency-Key.

Usage:
    1. Start the server:  uvicorn main:app --reload
    2. Run this bot:      python bots/example_bot.py

Environment variables:
    ADMIN_SECRET  - must match the server's admin secret (default: "change-me-in-production")
    BOT_SEED      - optional combat seed for a reproducible encounter
"""

import os
import sys
from uuid import uuid4

import httpx

BASE_URL = "http://127.0.0.1:8000"
ADMIN_SECRET = os.environ.get("ADMIN_SECRET", "change-me-in-production")
MAX_TURNS = 200


def register_user(client: httpx.Client, owner_id: str, name: str) -> str:
    """Register a user and return their API key."""
    resp = client.post(
        "/admin/register",
        json={"owner_id": owner_id, "name": name},
        headers={"X-Admin-Secret": ADMIN_SECRET},
    )
    if resp.status_code == 409:
        print(f"  {owner_id} already registered (delete tokens.json to reset)")
        sys.exit(1)
    resp.raise_for_status()
    return resp.json()["api_key"]


def setup_campaign(client: httpx.Client, key: str, seed: int | None = None) -> str:
    """Create a campaign with two characters, start combat, return the session id."""
    headers = {"Authorization": f"Bearer {key}"}
    resp = client.post("/campaigns", json={"name": "Inkwell Crossing"}, headers=headers)
    resp.raise_for_status()
    campaign_id = resp.json()["id"]

    for name, attributes in (
        ("Brannoc", {"offense": 18, "defense": 16, "mobility": 14}),
        ("Ilse", {"offense": 14, "control": 16, "support": 14, "mobility": 22}),
    ):
        resp = client.post(
            f"/campaigns/{campaign_id}/characters",
            json={"name": name, "attributes": attributes},
            headers=headers,
        )
        resp.raise_for_status()

    resp = client.post(f"/campaigns/{campaign_id}/combat", json={"seed": seed}, headers=headers)
    resp.raise_for_status()
    return resp.json()["session_id"]


def _distance(a: list[int], b: list[int]) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def _movement_budget(actor: dict) -> int:
    return max(2, min(8, actor["mobility"] // 20 + 2))


def play_turn(client: httpx.Client, session_id: str, headers: dict) -> dict:
    """Take one action for whoever holds the turn. Returns the refreshed state."""
    resp = client.get(f"/combat/{session_id}", headers=headers)
    resp.raise_for_status()
    state = resp.json()
    if state["status"] != "active":
        return state

    actor = state["combatants"][state["current_actor_combatant_id"]]
    if actor["entity_type"] != "player":
        client.post(f"/combat/{session_id}/tick", headers=headers).raise_for_status()
        return state

    enemies = [
        c for c in state["combatants"].values()
        if c["entity_type"] == "npc" and c["is_alive"]
    ]
    target = min(enemies, key=lambda c: (_distance(actor["position"], c["position"]), c["id"]))
    resp = client.post(
        f"/combat/{session_id}/skill",
        json={
            "actor_combatant_id": actor["id"],
            "skill_id": "basic_attack",
            "target_id": target["id"],
        },
        headers=headers,
    )
    if resp.status_code == 200:
        print(f"  {actor['name']} attacks {target['name']}")
        return state

    # Out of reach: try the tiles within budget that end closest to the target
    budget = _movement_budget(actor)
    x, y = actor["position"]
    candidates = [
        [x + dx, y + dy]
        for dx in range(-budget, budget + 1)
        for dy in range(-budget, budget + 1)
        if 0 < abs(dx) + abs(dy) <= budget
        and 0 <= x + dx < state["grid_width"]
        and 0 <= y + dy < state["grid_height"]
    ]
    candidates.sort(key=lambda tile: (_distance(tile, target["position"]), tile))
    for tile in candidates[:12]:
        resp = client.post(
            f"/combat/{session_id}/move",
            json={"actor_combatant_id": actor["id"], "to": tile},
            headers=headers,
        )
        if resp.status_code == 200:
            print(f"  {actor['name']} moves to {tile}")
            return state

    client.post(
        f"/combat/{session_id}/move",
        json={"actor_combatant_id": actor["id"], "wait": True},
        headers=headers,
    ).raise_for_status()
    print(f"  {actor['name']} waits")
    return state


def play_combat(client: httpx.Client, session_id: str, key: str, max_turns: int = MAX_TURNS) -> dict:
    """Play until combat ends, then claim rewards. Returns the reward claim body."""
    headers = {"Authorization": f"Bearer {key}"}
    for _ in range(max_turns):
        state = play_turn(client, session_id, headers)
        if state["status"] == "ended":
            break
    else:
        raise RuntimeError(f"Combat did not end within {max_turns} turns")

    resp = client.post(
        f"/combat/{session_id}/rewards",
        headers={**headers, "Idempotency-Key": str(uuid4())},
    )
    resp.raise_for_status()
    return resp.json()


def main() -> None:
    """Register, set up a campaign, and play one combat to the end."""
    client = httpx.Client(base_url=BASE_URL, timeout=10.0)
    print("Registering DM...")
    key = register_user(client, "bot_dm", "Bot DM")

    seed = os.environ.get("BOT_SEED")
    session_id = setup_campaign(client, key, int(seed) if seed else None)
    print(f"Combat {session_id} started\n\n--- COMBAT ---\n")

    claim = play_combat(client, session_id, key)

    print("\n--- EVENT LOG ---\n")
    resp = client.get(f"/combat/{session_id}/events", headers={"Authorization": f"Bearer {key}"})
    resp.raise_for_status()
    for event in resp.json():
        print(f"  [turn {event['turn_index']}] {event['event_type']}")

    print("\n--- REWARDS ---\n")
    for reward in claim["rewards"]:
        print(
            f"  {reward['character_id'][:8]}: +{reward['xp_gained']} xp, "
            f"level {reward['level_before']} -> {reward['level_after']}, "
            f"{reward['gold']} gold, {len(reward['loot'])} item(s)"
        )
    client.close()


if __name__ == "__main__":
    main()

"""In-memory campaign/session store with per-session locks and JSON persistence."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from pydantic import BaseModel, PrivateAttr

from engine.errors import NotFound
from engine.rewards import RewardLedger
from models.campaign import Campaign
from models.combat import CombatSession
from models.rewards import RewardGrant

logger = logging.getLogger(__name__)


class CombatStore(BaseModel):
    """Everything the server persists: campaigns, sessions, reward grants."""
    campaigns: dict[str, Campaign] = {}
    sessions: dict[str, CombatSession] = {}
    ledger: RewardLedger = RewardLedger()

    _locks: dict[str, threading.Lock] = PrivateAttr(default_factory=dict)
    _guard: threading.Lock = PrivateAttr(default_factory=threading.Lock)
    _write_lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def lock_for(self, key: str) -> threading.Lock:
        """Lock serializing mutations of one campaign or session.

        Campaign changes take the campaign's lock. Combat actions take the
        campaign lock first, then the session lock.
        """
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @property
    def write_lock(self) -> threading.Lock:
        """Store-wide lock held while swapping in copies and while saving."""
        return self._write_lock

    def put(
        self,
        campaign: Campaign | None = None,
        session: CombatSession | None = None,
        grant: RewardGrant | None = None,
    ) -> None:
        """Swap committed copies into the store and record a new grant."""
        with self._write_lock:
            if grant is not None:
                self.ledger.grants[grant.session_id] = grant
            if campaign is not None:
                self.campaigns[campaign.id] = campaign
            if session is not None:
                self.sessions[session.id] = session

    def get_campaign(self, campaign_id: str) -> Campaign:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise NotFound("Campaign not found")
        return campaign

    def get_session(self, session_id: str) -> CombatSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound("Combat session not found")
        return session


def save_store(store: CombatStore, path: str) -> None:
    """Persist the store to a JSON file.

    Writes to a temporary file first, then renames for atomicity.

    Args:
        store: The store to save.
        path: File path to write to.
    """
    tmp_path = path + ".tmp"
    with store.write_lock:
        data = store.model_dump(mode="json")
        with open(tmp_path, "w") as f:
            json.dump(data, f, default=str)
        os.replace(tmp_path, path)


def load_store(path: str) -> CombatStore | None:
    """Load the store from a JSON file.

    Returns:
        The loaded CombatStore, or None if the file doesn't exist.
    """
    if not Path(path).exists():
        return None
    with open(path) as f:
        data = json.load(f)
    store = CombatStore.model_validate(data)
    logger.info(
        "Loaded %d campaign(s) and %d session(s) from %s",
        len(store.campaigns), len(store.sessions), path,
    )
    return store

"""Campaign roster model."""

from pydantic import BaseModel

from models.characters import CharacterSheet


class Campaign(BaseModel):
    """A campaign: its DM (owner), members, and their characters."""
    id: str
    name: str
    owner_id: str                   # The DM
    member_ids: list[str] = []
    characters: dict[str, CharacterSheet] = {}  # character_id -> sheet
    active_combat_session_id: str | None = None

    def is_participant(self, owner_id: str) -> bool:
        return owner_id == self.owner_id or owner_id in self.member_ids

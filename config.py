"""Server-wide configuration constants for the tactics combat server."""

import os

GRID_WIDTH = 12          # Combat grid width in tiles
GRID_HEIGHT = 8          # Combat grid height in tiles
MIN_NPCS = 2             # Seeded NPC band size when not specified
MAX_NPCS = 4
TICK_MAX_STEPS = 32      # Autonomous turns resolved per tick call
MAX_CHARACTERS_PER_CAMPAIGN = 6
XP_CURVE = os.environ.get("XP_CURVE", "standard")  # fast | standard | grindy
IDEMPOTENCY_TTL_SECONDS = int(os.environ.get("IDEMPOTENCY_TTL_SECONDS", "86400"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
DATA_DIR = os.environ.get("DATA_DIR", ".")  # Persistent data directory
SAVE_FILE = os.path.join(DATA_DIR, "combat_state.json")
TOKENS_FILE = os.path.join(DATA_DIR, "tokens.json")
ADMIN_SECRET = os.environ.get("ADMIN_SECRET", "change-me-in-production")
SECRET_FILE = os.path.join(DATA_DIR, "admin_secret.txt")


def load_secret() -> None:
    """Load admin secret from persistent file, if it exists."""
    global ADMIN_SECRET
    if os.path.exists(SECRET_FILE):
        with open(SECRET_FILE) as f:
            stored = f.read().strip()
        if stored:
            ADMIN_SECRET = stored


def save_secret() -> None:
    """Persist current admin secret to file (atomic write)."""
    tmp_path = SECRET_FILE + ".tmp"
    with open(tmp_path, "w") as f:
        f.write(ADMIN_SECRET)
    os.replace(tmp_path, SECRET_FILE)

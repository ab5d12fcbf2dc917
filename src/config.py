"""
Pokedex Roster - Configuration
All tunable constants in one place.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

# ─────────────────────────────────────────────
# Version
# ─────────────────────────────────────────────
_version_file = Path(__file__).resolve().parent.parent / "resources" / "VERSION"
APP_VERSION = _version_file.read_text().strip() if _version_file.exists() else "dev"

USER_AGENT = f"PokedexRoster/{APP_VERSION}"

# ─────────────────────────────────────────────
# Catalog (PokéAPI)
# ─────────────────────────────────────────────
POKEAPI_BASE_URL = os.environ.get("POKEAPI_BASE_URL", "https://pokeapi.co/api/v2")

# Seconds before a single catalog request is abandoned
CATALOG_REQUEST_TIMEOUT = 10

# Highest id the detail endpoint is queried for; anything above is
# treated as "no data" without a request
MAX_CATALOG_ID = 1010

# Cooldown after a 429 when the response carries no Retry-After
CATALOG_RATE_LIMIT_COOLDOWN = 60

SPRITE_ARTWORK_URL = (
    "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/"
    "pokemon/other/official-artwork/{id}.png"
)

# ─────────────────────────────────────────────
# Local storage
# ─────────────────────────────────────────────
DATA_DIR = Path(os.environ.get(
    "POKEDEX_DATA_DIR",
    Path(os.path.expanduser("~")) / ".pokedex-roster",
))
STORE_FILE = DATA_DIR / "storage.json"

# Mirrors the ~5 MB budget browsers give to local storage
STORE_QUOTA_BYTES = 5 * 1024 * 1024

CAPTURED_POKEMONS_KEY = "captured_pokemons"
CACHE_KEY_PREFIX = "cache:"
RECOMMENDATION_CACHE_KEY = f"{CACHE_KEY_PREFIX}top100_strong"

# ─────────────────────────────────────────────
# Roster
# ─────────────────────────────────────────────
EXPORT_VERSION = "1.0"
RECENT_CAPTURES_LIMIT = 4

# Level rolled for a capture when the user doesn't pick one
CAPTURE_LEVEL_MIN = 1
CAPTURE_LEVEL_MAX = 100

PAGE_SIZE = 12

# ─────────────────────────────────────────────
# Detail reconciliation
# ─────────────────────────────────────────────
RECONCILE_CONCURRENCY = 8

# ─────────────────────────────────────────────
# Metrics
# ─────────────────────────────────────────────
NO_DATA = "No data"

# ─────────────────────────────────────────────
# Recommendations
# ─────────────────────────────────────────────
RECOMMENDATION_CACHE_TTL = 12 * 3600   # 12 hours
RECOMMENDATION_SAMPLE_SIZE = 350       # random ids scored per rebuild
RECOMMENDATION_CONCURRENCY = 12
RECOMMENDATION_TOP_N = 100             # entries kept in the cache
RECOMMENDATION_ROTATE_INTERVAL = 600   # 10 minutes between pair rotations

# Cosmetic level shown on recommended cards (70-99)
RECOMMENDATION_LEVEL_MIN = 70
RECOMMENDATION_LEVEL_MAX = 99

# Served when the catalog is unreachable: (id, name, types)
FALLBACK_LEGENDARIES = [
    (150, "mewtwo", ["psychic"]),
    (249, "lugia", ["psychic", "flying"]),
    (250, "ho-oh", ["fire", "flying"]),
    (382, "kyogre", ["water"]),
    (383, "groudon", ["ground"]),
    (384, "rayquaza", ["dragon", "flying"]),
    (483, "dialga", ["steel", "dragon"]),
    (484, "palkia", ["water", "dragon"]),
]

# ─────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────
LOG_LEVEL = os.environ.get("POKEDEX_LOG_LEVEL", "INFO")
LOG_FILE = DATA_DIR / "pokedex.log"

"""
models.py — Data types shared by the roster, catalog, metrics and
recommendation components.

CapturedPokemon is persisted (and exported) in the camelCase document form
(``capturedAt``, ``baseExperience``, ``def``) so documents written by older
exports import cleanly. Everything else lives in memory or in the
recommendation cache.
"""

import math
import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from config import CAPTURE_LEVEL_MIN, CAPTURE_LEVEL_MAX, NO_DATA

# (first id, last id, region, generation)
_REGION_RANGES = [
    (1, 151, "kanto", "1"),
    (152, 251, "johto", "2"),
    (252, 386, "hoenn", "3"),
    (387, 493, "sinnoh", "4"),
    (494, 649, "unova", "5"),
    (650, 721, "kalos", "6"),
    (722, 809, "alola", "7"),
    (810, 905, "galar", "8"),
]

# Python attribute → document key
DOCUMENT_KEYS = {
    "id": "id",
    "name": "name",
    "level": "level",
    "captured_at": "capturedAt",
    "sprite": "sprite",
    "atk": "atk",
    "defense": "def",
    "spd": "spd",
    "types": "types",
    "base_experience": "baseExperience",
    "region": "region",
    "generation": "generation",
}

# Fields the catalog is authoritative for (backfilled by reconciliation)
CATALOG_FIELDS = ("sprite", "atk", "defense", "spd", "types", "base_experience")


def region_for(pokemon_id: int) -> str:
    for first, last, region, _ in _REGION_RANGES:
        if first <= pokemon_id <= last:
            return region
    return "kanto"


def generation_for(pokemon_id: int) -> str:
    for first, last, _, generation in _REGION_RANGES:
        if first <= pokemon_id <= last:
            return generation
    return "1"


def utc_now_iso() -> str:
    """Current time as ``2024-05-01T12:00:00.000Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value) -> float:
    """ISO-8601 string → epoch seconds. Unparseable values sort as 0."""
    if not isinstance(value, str) or not value:
        return 0.0
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_whole_number(value) -> bool:
    """Integral and finite: ``3`` and ``3.0`` pass, ``inf``/``nan``/``2.5`` don't."""
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer()
    return is_number(value)


def _as_int(value, default: int = 0) -> int:
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value) if is_number(value) else default


def is_valid_entry(data) -> bool:
    """Shape check applied to persisted and imported roster entries."""
    return (
        isinstance(data, dict)
        and is_whole_number(data.get("id"))
        and isinstance(data.get("name"), str)
        and is_whole_number(data.get("level"))
        and isinstance(data.get("capturedAt"), str)
    )


@dataclass
class CapturedPokemon:
    """One creature in the user's roster. ``id`` is the only identity."""
    id: int
    name: str
    level: int                 # user-assigned or rolled at capture time
    captured_at: str = ""      # ISO-8601, set once by RosterStore.add
    sprite: str = ""
    atk: int = 0
    defense: int = 0
    spd: int = 0
    types: List[str] = field(default_factory=list)
    base_experience: int = 0
    region: Optional[str] = None
    generation: Optional[str] = None

    def copy(self) -> "CapturedPokemon":
        return replace(self, types=list(self.types))

    @property
    def needs_backfill(self) -> bool:
        return not self.atk or not self.types or not self.sprite

    def to_dict(self) -> dict:
        return {
            key: (list(getattr(self, attr)) if attr == "types" else getattr(self, attr))
            for attr, key in DOCUMENT_KEYS.items()
        }

    @classmethod
    def from_dict(cls, data) -> "CapturedPokemon":
        """Build from the document form.

        Optional fields are lenient (wrong type → default). Raises
        ValueError when id/name/level/capturedAt have the wrong shape.
        """
        if not is_valid_entry(data):
            raise ValueError(f"Malformed roster entry: {data!r}")
        types = data.get("types")
        region = data.get("region")
        generation = data.get("generation")
        sprite = data.get("sprite")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            level=int(data["level"]),
            captured_at=data["capturedAt"],
            sprite=sprite if isinstance(sprite, str) else "",
            atk=_as_int(data.get("atk")),
            defense=_as_int(data.get("def")),
            spd=_as_int(data.get("spd")),
            types=[t for t in types if isinstance(t, str)] if isinstance(types, list) else [],
            base_experience=_as_int(data.get("baseExperience")),
            region=region if isinstance(region, str) else None,
            generation=generation if isinstance(generation, str) else None,
        )

    @classmethod
    def from_catalog(cls, detail: "CatalogDetail", level: Optional[int] = None,
                     rng: Optional[random.Random] = None) -> "CapturedPokemon":
        """New capture from a catalog detail. Rolls a level 1-100 if none given."""
        if level is None:
            level = (rng or random).randint(CAPTURE_LEVEL_MIN, CAPTURE_LEVEL_MAX)
        return cls(
            id=detail.id,
            name=detail.name,
            level=level,
            sprite=detail.sprite,
            atk=detail.stat("attack"),
            defense=detail.stat("defense"),
            spd=detail.stat("speed"),
            types=detail.type_names,
            base_experience=detail.base_experience,
            region=region_for(detail.id),
            generation=generation_for(detail.id),
        )


@dataclass(frozen=True)
class CatalogDetail:
    """Read-only PokéAPI ``/pokemon/{id}`` record."""
    id: int
    name: str
    base_experience: int = 0
    sprite_default: str = ""
    sprite_artwork: str = ""
    stats: Tuple[Tuple[str, int], ...] = ()     # (stat name, base value)
    types: Tuple[Tuple[int, str], ...] = ()     # (slot, type name), slot order

    @classmethod
    def from_api(cls, payload: dict) -> "CatalogDetail":
        if not isinstance(payload, dict):
            raise ValueError("detail payload is not an object")
        pid = payload.get("id")
        name = payload.get("name")
        if not is_whole_number(pid) or not isinstance(name, str):
            raise ValueError(f"detail payload missing id/name: {pid!r}/{name!r}")

        sprites = payload.get("sprites") or {}
        artwork = ((sprites.get("other") or {}).get("official-artwork") or {}).get("front_default")

        stats = []
        for s in payload.get("stats") or []:
            if not isinstance(s, dict):
                continue
            stat_name = (s.get("stat") or {}).get("name")
            if isinstance(stat_name, str):
                stats.append((stat_name, _as_int(s.get("base_stat"))))

        types = []
        for t in payload.get("types") or []:
            if not isinstance(t, dict):
                continue
            type_name = (t.get("type") or {}).get("name")
            if isinstance(type_name, str):
                types.append((_as_int(t.get("slot")), type_name))
        types.sort(key=lambda t: t[0])

        return cls(
            id=int(pid),
            name=name,
            base_experience=_as_int(payload.get("base_experience")),
            sprite_default=sprites.get("front_default") or "",
            sprite_artwork=artwork or "",
            stats=tuple(stats),
            types=tuple(types),
        )

    def stat(self, name: str) -> int:
        for stat_name, value in self.stats:
            if stat_name == name:
                return value
        return 0

    @property
    def bst(self) -> int:
        """Summed base stats (all stats, not only atk/def/spd)."""
        return sum(value for _, value in self.stats)

    @property
    def sprite(self) -> str:
        return self.sprite_artwork or self.sprite_default or ""

    @property
    def type_names(self) -> List[str]:
        return [name for _, name in self.types]


@dataclass(frozen=True)
class CatalogSummary:
    """One row of the bulk ``/pokemon?limit=N`` listing."""
    id: int
    name: str
    url: str = ""


@dataclass(frozen=True)
class FetchFailure:
    """Marks a batch item whose detail could not be fetched."""
    pokemon_id: int
    reason: str = ""


@dataclass
class RecommendedPokemon:
    id: int
    name: str
    sprite: str = ""
    atk: int = 0
    defense: int = 0
    spd: int = 0
    types: List[str] = field(default_factory=list)
    base_experience: int = 0
    bst: int = 0
    level: int = 0             # cosmetic, rolled when served

    @classmethod
    def from_detail(cls, detail: CatalogDetail) -> "RecommendedPokemon":
        return cls(
            id=detail.id,
            name=detail.name,
            sprite=detail.sprite,
            atk=detail.stat("attack"),
            defense=detail.stat("defense"),
            spd=detail.stat("speed"),
            types=detail.type_names,
            base_experience=detail.base_experience,
            bst=detail.bst,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sprite": self.sprite,
            "atk": self.atk,
            "def": self.defense,
            "spd": self.spd,
            "types": list(self.types),
            "baseExperience": self.base_experience,
            "bst": self.bst,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecommendedPokemon":
        if not isinstance(data, dict) or not is_whole_number(data.get("id")):
            raise ValueError(f"Malformed recommendation entry: {data!r}")
        types = data.get("types")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            sprite=data.get("sprite") or "",
            atk=_as_int(data.get("atk")),
            defense=_as_int(data.get("def")),
            spd=_as_int(data.get("spd")),
            types=[t for t in types if isinstance(t, str)] if isinstance(types, list) else [],
            base_experience=_as_int(data.get("baseExperience")),
            bst=_as_int(data.get("bst")),
            level=_as_int(data.get("level")),
        )


@dataclass
class PokemonMetrics:
    captured_count: int = 0
    pokedex_total: int = 0
    pokedex_pct: float = 0.0
    avg_level: int = 0
    favorite_type: str = NO_DATA
    total_exp: int = 0
    strongest: Optional[CapturedPokemon] = None

    def to_dict(self) -> dict:
        return {
            "capturedCount": self.captured_count,
            "pokedexTotal": self.pokedex_total,
            "pokedexPct": self.pokedex_pct,
            "avgLevel": self.avg_level,
            "favoriteType": self.favorite_type,
            "totalExp": self.total_exp,
            "strongest": (
                {"name": self.strongest.name, "atk": self.strongest.atk}
                if self.strongest else None
            ),
        }


@dataclass
class ImportResult:
    success: bool
    message: str
    imported_count: int = 0

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "imported": self.imported_count,
        }

"""Shared fixtures for the Pokedex Roster test suite."""

import sys
import logging
import threading
from pathlib import Path

import pytest

# Ensure src/ is importable
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from kv_store import KeyValueStore
from models import CapturedPokemon, CatalogDetail, FetchFailure

logger = logging.getLogger(__name__)


# ── Helper factories ─────────────────────────────────────

def make_pokemon(id=25, name="pikachu", level=10,
                 captured_at="2024-01-01T00:00:00.000Z", **kwargs):
    """Shorthand to create a fully populated CapturedPokemon."""
    fields = dict(
        sprite=f"https://img.example/{id}.png",
        atk=55,
        defense=40,
        spd=90,
        types=["electric"],
        base_experience=112,
        region="kanto",
        generation="1",
    )
    fields.update(kwargs)
    return CapturedPokemon(id=id, name=name, level=level,
                           captured_at=captured_at, **fields)


def make_detail_payload(id=25, name="pikachu", attack=55, defense=40,
                        speed=90, hp=35, sp_atk=50, sp_def=50,
                        types=("electric",), base_experience=112,
                        artwork=True):
    """PokéAPI /pokemon/{id} JSON, trimmed to the fields the client reads."""
    sprites = {"front_default": f"https://img.example/front/{id}.png"}
    if artwork:
        sprites["other"] = {
            "official-artwork": {"front_default": f"https://img.example/art/{id}.png"},
        }
    stats = [
        ("hp", hp), ("attack", attack), ("defense", defense),
        ("special-attack", sp_atk), ("special-defense", sp_def), ("speed", speed),
    ]
    return {
        "id": id,
        "name": name,
        "base_experience": base_experience,
        "sprites": sprites,
        "stats": [{"base_stat": v, "stat": {"name": n}} for n, v in stats],
        "types": [{"slot": i + 1, "type": {"name": t}} for i, t in enumerate(types)],
    }


def make_detail(**kwargs) -> CatalogDetail:
    return CatalogDetail.from_api(make_detail_payload(**kwargs))


class FakeCatalog:
    """In-memory stand-in for CatalogClient.

    ``details`` maps id → CatalogDetail; ids missing from it fail with
    "not found". Every batch request is recorded in ``batch_calls`` and
    the concurrency it asked for in ``batch_concurrency``.
    """

    def __init__(self, details=None, total=1010):
        self.details = dict(details or {})
        self.total = total
        self.batch_calls = []
        self.batch_concurrency = []
        self.detail_calls = []
        self._lock = threading.Lock()

    def get_total_count(self):
        return self.total

    def get_detail(self, pokemon_id):
        self.detail_calls.append(pokemon_id)
        return self.details.get(pokemon_id)

    def get_details_batch(self, ids, concurrency):
        ids = list(dict.fromkeys(ids))
        with self._lock:
            self.batch_calls.append(ids)
            self.batch_concurrency.append(concurrency)
        return [
            (pid, self.details.get(pid) or FetchFailure(pid, "not found"))
            for pid in ids
        ]


# ── Fixtures ─────────────────────────────────────────────

@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "storage.json"


@pytest.fixture
def kv(store_path):
    """KeyValueStore backed by a temp file."""
    return KeyValueStore(store_path)


@pytest.fixture
def fake_catalog():
    return FakeCatalog({
        1: make_detail(id=1, name="bulbasaur", attack=49, defense=49, speed=45,
                       types=("grass", "poison"), base_experience=64),
        4: make_detail(id=4, name="charmander", attack=52, defense=43, speed=65,
                       types=("fire",), base_experience=62),
        25: make_detail(),
    })

"""
roster_store.py — Owner of the captured-Pokémon roster.

The roster is one JSON document (a list of CapturedPokemon in document form)
under CAPTURED_POKEMONS_KEY. Every mutation is read-modify-write against the
latest in-memory snapshot, persisted first, and only then published: if the
write fails the in-memory roster stays where it was and the mutator returns
False.

Observers subscribe with a callback that receives a copy of the full roster
after each successful mutation, in mutation order.
"""

import json
import logging
import threading
from typing import Callable, List, Mapping, Optional, Union

from config import CAPTURED_POKEMONS_KEY, EXPORT_VERSION, RECENT_CAPTURES_LIMIT
from kv_store import KeyValueStore
from models import (
    CATALOG_FIELDS,
    CapturedPokemon,
    DOCUMENT_KEYS,
    ImportResult,
    is_valid_entry,
    is_whole_number,
    utc_now_iso,
)
import roster_queries

logger = logging.getLogger(__name__)

Subscriber = Callable[[List[CapturedPokemon]], None]

# Set once at creation
_IMMUTABLE_FIELDS = {"id", "captured_at"}

_NUMERIC_FIELDS = {"level", "atk", "defense", "spd", "base_experience"}
_OPTIONAL_STR_FIELDS = {"region", "generation"}


def _checked_value(attr: str, value):
    """Value for ``attr`` in its stored type, or ValueError if it has the wrong shape."""
    if attr in _NUMERIC_FIELDS:
        if not is_whole_number(value):
            raise ValueError(f"{attr} must be a whole number, got {value!r}")
        return int(value)
    if attr == "types":
        if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
            raise ValueError(f"types must be a list of strings, got {value!r}")
        return list(value)
    if attr in _OPTIONAL_STR_FIELDS and value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{attr} must be a string, got {value!r}")
    return value


class RosterStore:
    """
    Canonical list of captured Pokémon.

    Usage:
        store = RosterStore(KeyValueStore())
        unsubscribe = store.subscribe(lambda roster: print(len(roster)))
        store.add(CapturedPokemon(id=25, name="pikachu", level=12))
        store.remove(25)
    """

    def __init__(self, kv: KeyValueStore,
                 now_fn: Optional[Callable[[], str]] = None):
        self._kv = kv
        self._now = now_fn or utc_now_iso
        self._lock = threading.RLock()
        self._roster: List[CapturedPokemon] = []
        self._subscribers: List[Subscriber] = []
        self.loaded = False
        self.load()

    # ─── Loading / persistence ───────────────────────

    def load(self):
        """(Re)load the roster from storage, dropping malformed entries."""
        raw = self._kv.get(CAPTURED_POKEMONS_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Stored roster is not a list, starting empty")
            raw = []

        roster: List[CapturedPokemon] = []
        seen = set()
        dropped = 0
        for entry in raw:
            try:
                p = CapturedPokemon.from_dict(entry)
            except (ValueError, OverflowError):
                dropped += 1
                continue
            if p.id in seen:
                dropped += 1
                continue
            seen.add(p.id)
            roster.append(p)
        if dropped:
            logger.warning(f"Dropped {dropped} malformed/duplicate roster entries on load")

        with self._lock:
            self._roster = roster
            self.loaded = True
        logger.info(f"Roster loaded: {len(roster)} captured")

    def _commit(self, roster: List[CapturedPokemon]) -> bool:
        """Persist ``roster``; on success adopt it and notify. Caller holds the lock."""
        if not self._kv.set(CAPTURED_POKEMONS_KEY, [p.to_dict() for p in roster]):
            logger.error("Roster not saved, keeping previous state (storage full or unavailable?)")
            return False
        self._roster = roster
        self._publish()
        return True

    def _publish(self):
        for callback in list(self._subscribers):
            try:
                callback(self.snapshot())
            except Exception as e:
                logger.error(f"Roster subscriber failed: {e}", exc_info=True)

    # ─── Observable state ────────────────────────────

    def snapshot(self) -> List[CapturedPokemon]:
        """Copy of the current roster."""
        with self._lock:
            return [p.copy() for p in self._roster]

    def get(self, pokemon_id: int) -> Optional[CapturedPokemon]:
        with self._lock:
            for p in self._roster:
                if p.id == pokemon_id:
                    return p.copy()
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._roster)

    def __contains__(self, pokemon_id) -> bool:
        with self._lock:
            return any(p.id == pokemon_id for p in self._roster)

    def subscribe(self, callback: Subscriber, replay: bool = False) -> Callable[[], None]:
        """Register ``callback`` for every roster change.

        With ``replay`` the current roster is delivered immediately.
        Returns a function that unsubscribes.
        """
        with self._lock:
            self._subscribers.append(callback)
            if replay:
                try:
                    callback(self.snapshot())
                except Exception as e:
                    logger.error(f"Roster subscriber failed: {e}", exc_info=True)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    # ─── Mutations ───────────────────────────────────

    def add(self, pokemon: CapturedPokemon) -> bool:
        """Capture ``pokemon``. No-op (False) if its id is already present."""
        with self._lock:
            if any(p.id == pokemon.id for p in self._roster):
                logger.debug(f"Pokemon {pokemon.id} already captured")
                return False
            new = pokemon.copy()
            new.captured_at = self._now()
            if not self._commit(self._roster + [new]):
                return False
        logger.info(f"Captured {new.name} (#{new.id}, lv {new.level})")
        return True

    def remove(self, pokemon_id: int) -> bool:
        """Release a Pokémon. No-op (False) if it isn't in the roster."""
        with self._lock:
            remaining = [p for p in self._roster if p.id != pokemon_id]
            if len(remaining) == len(self._roster):
                return False
            if not self._commit(remaining):
                return False
        logger.info(f"Released #{pokemon_id}")
        return True

    def update(self, pokemon_id: int, fields: Mapping[str, object]) -> bool:
        """Merge ``fields`` (attribute names) into an existing entry.

        ``id`` and ``captured_at`` can't change and are ignored. Unknown
        field names and wrong-typed values raise ValueError. No-op (False) if the id is absent.
        """
        unknown = set(fields) - set(DOCUMENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown roster fields: {', '.join(sorted(unknown))}")
        ignored = _IMMUTABLE_FIELDS & set(fields)
        if ignored:
            logger.warning(f"Ignoring immutable fields on update: {', '.join(sorted(ignored))}")
        changes = {
            k: _checked_value(k, v) for k, v in fields.items() if k not in _IMMUTABLE_FIELDS
        }

        with self._lock:
            for i, p in enumerate(self._roster):
                if p.id == pokemon_id:
                    break
            else:
                return False
            updated = p.copy()
            for attr, value in changes.items():
                setattr(updated, attr, value)
            roster = list(self._roster)
            roster[i] = updated
            return self._commit(roster)

    def clear(self) -> bool:
        """Release everything."""
        with self._lock:
            if not self._kv.remove(CAPTURED_POKEMONS_KEY):
                logger.error("Roster not cleared, storage unavailable")
                return False
            self._roster = []
            self._publish()
        logger.info("Roster cleared")
        return True

    def backfill(self, details: Mapping[int, CapturedPokemon]) -> bool:
        """Copy catalog-derived fields from ``details`` onto matching entries.

        Only sprite/stats/types/base experience are taken; capture time,
        level and name stay as they are in the latest snapshot. Ids no
        longer in the roster are skipped, never re-added.
        """
        with self._lock:
            roster = []
            changed = False
            for p in self._roster:
                fresh = details.get(p.id)
                if fresh is None:
                    roster.append(p)
                    continue
                merged = p.copy()
                for attr in CATALOG_FIELDS:
                    setattr(merged, attr, list(fresh.types) if attr == "types" else getattr(fresh, attr))
                changed = changed or merged != p
                roster.append(merged)
            if not changed:
                return True
            return self._commit(roster)

    # ─── Import / export ─────────────────────────────

    def export_document(self) -> str:
        roster = self.snapshot()
        doc = {
            "exportDate": utc_now_iso(),
            "version": EXPORT_VERSION,
            "captured": [p.to_dict() for p in roster],
            "total": len(roster),
        }
        return json.dumps(doc, indent=2)

    def import_document(self, document: Union[str, bytes, dict]) -> ImportResult:
        """Merge an exported document into the roster.

        Malformed entries are skipped; ids already captured are never
        overwritten. Fails only when the document itself is unreadable or
        holds no valid entry.
        """
        if isinstance(document, (str, bytes)):
            try:
                document = json.loads(document)
            except ValueError:
                return ImportResult(False, "Could not parse the JSON data", 0)

        captured = document.get("captured") if isinstance(document, dict) else None
        if not isinstance(captured, list):
            return ImportResult(False, "Invalid data format: missing 'captured' list", 0)

        valid: List[CapturedPokemon] = []
        for entry in captured:
            if not is_valid_entry(entry):
                continue
            try:
                valid.append(CapturedPokemon.from_dict(entry))
            except (ValueError, OverflowError):
                continue
        if not valid:
            return ImportResult(False, "No valid Pokémon found in the data", 0)

        with self._lock:
            known = {p.id for p in self._roster}
            new: List[CapturedPokemon] = []
            for p in valid:
                if p.id not in known:
                    known.add(p.id)
                    new.append(p)
            if new and not self._commit(self._roster + new):
                return ImportResult(False, "Could not save the imported Pokémon", 0)

        logger.info(f"Imported {len(new)} of {len(valid)} valid entries")
        return ImportResult(True, f"Imported {len(new)} Pokémon successfully", len(new))

    # ─── Read-only views ─────────────────────────────

    def recent_captures(self, limit: int = RECENT_CAPTURES_LIMIT) -> List[CapturedPokemon]:
        return roster_queries.recent_captures(self.snapshot(), limit)

    def search(self, query: str) -> List[CapturedPokemon]:
        return roster_queries.search(self.snapshot(), query)

    def filter(self, **criteria) -> List[CapturedPokemon]:
        return roster_queries.filter_roster(self.snapshot(), **criteria)

    def sorted_by(self, sort_by: str, order: str = "desc") -> List[CapturedPokemon]:
        return roster_queries.sort_roster(self.snapshot(), sort_by, order)

    def storage_stats(self) -> dict:
        return roster_queries.storage_stats(self.snapshot(), self._kv)

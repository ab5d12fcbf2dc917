"""
recommendations.py — "Strong Pokémon" recommendations.

Cache-based: a random sample of the catalog is scored by summed base stats
(BST) and the top entries are persisted with a build timestamp. Reads pick
a random pair from that cache; nothing is fetched on the read path. The
cache is rebuilt at most once per RECOMMENDATION_CACHE_TTL.

Cache document (key RECOMMENDATION_CACHE_KEY):
    {"builtAt": <epoch seconds>, "entries": [RecommendedPokemon dicts, BST desc]}

RecommendationRotator swaps the displayed pair on a timer. Each refresh is
numbered; a refresh that finishes after a newer one has been applied is
dropped, so a slow rebuild can't overwrite a fresher pair.
"""

import logging
import math
import random
import threading
import time
from typing import Callable, List, Optional

from config import (
    CACHE_KEY_PREFIX,
    FALLBACK_LEGENDARIES,
    MAX_CATALOG_ID,
    RECOMMENDATION_CACHE_KEY,
    RECOMMENDATION_CACHE_TTL,
    RECOMMENDATION_CONCURRENCY,
    RECOMMENDATION_LEVEL_MAX,
    RECOMMENDATION_LEVEL_MIN,
    RECOMMENDATION_ROTATE_INTERVAL,
    RECOMMENDATION_SAMPLE_SIZE,
    RECOMMENDATION_TOP_N,
    SPRITE_ARTWORK_URL,
)
from catalog_client import CatalogClient
from kv_store import KeyValueStore
from models import CatalogDetail, RecommendedPokemon, is_number

logger = logging.getLogger(__name__)


def is_cache_valid(entry, now: Optional[float] = None,
                   ttl: float = RECOMMENDATION_CACHE_TTL) -> bool:
    """True while the entry is younger than ``ttl`` and holds entries."""
    if not isinstance(entry, dict):
        return False
    built_at = entry.get("builtAt")
    entries = entry.get("entries")
    if not is_number(built_at) or not math.isfinite(built_at):
        return False
    if not isinstance(entries, list) or not entries:
        return False
    now = time.time() if now is None else now
    return now - built_at < ttl


class RecommendationEngine:
    """
    Builds and serves the top-BST recommendation cache.

    Usage:
        engine = RecommendationEngine(catalog, kv)
        engine.ensure_fresh_cache()
        pair = engine.get_random_pair()
    """

    def __init__(self, catalog: CatalogClient, kv: KeyValueStore,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.time,
                 ttl: float = RECOMMENDATION_CACHE_TTL,
                 sample_size: int = RECOMMENDATION_SAMPLE_SIZE,
                 top_n: int = RECOMMENDATION_TOP_N,
                 concurrency: int = RECOMMENDATION_CONCURRENCY,
                 max_id: int = MAX_CATALOG_ID):
        self._catalog = catalog
        self._kv = kv
        self._rng = rng or random.Random()
        self._clock = clock
        self.ttl = ttl
        self.sample_size = sample_size
        self.top_n = top_n
        self.concurrency = concurrency
        self.max_id = max_id
        self._build_lock = threading.Lock()

    def _read_cache(self) -> Optional[dict]:
        entry = self._kv.get(RECOMMENDATION_CACHE_KEY)
        return entry if is_cache_valid(entry, self._clock(), self.ttl) else None

    def ensure_fresh_cache(self) -> bool:
        """Rebuild the cache unless a valid one exists.

        Returns True when a valid cache is in place afterwards.
        """
        with self._build_lock:
            self._kv.sweep_expired(CACHE_KEY_PREFIX, self.ttl, now=self._clock())
            if self._read_cache() is not None:
                return True
            return self._rebuild()

    def _rebuild(self) -> bool:
        total = self._catalog.get_total_count()
        if total <= 0:
            logger.warning("Recommendation cache not rebuilt: catalog unreachable")
            return False

        upper = min(total, self.max_id)
        ids = self._rng.sample(range(1, upper + 1), min(self.sample_size, upper))
        logger.info(f"Rebuilding recommendation cache from {len(ids)} sampled ids")

        outcomes = self._catalog.get_details_batch(ids, self.concurrency)
        scored = [
            RecommendedPokemon.from_detail(o)
            for _, o in outcomes if isinstance(o, CatalogDetail)
        ]
        if not scored:
            logger.warning("Recommendation cache not rebuilt: no details fetched")
            return False

        scored.sort(key=lambda r: r.bst, reverse=True)
        top = scored[:self.top_n]
        entry = {
            "builtAt": self._clock(),
            "entries": [r.to_dict() for r in top],
        }
        if not self._kv.set(RECOMMENDATION_CACHE_KEY, entry):
            logger.warning("Recommendation cache built but not saved")
            return False
        logger.info(f"Recommendation cache: {len(top)} entries, top BST {top[0].bst}")
        return True

    def get_random_pair(self) -> List[RecommendedPokemon]:
        """Two distinct random cached entries (one if only one is cached).

        Empty when there is no valid cache.
        """
        entry = self._read_cache()
        if entry is None:
            return []

        entries = []
        for raw in entry["entries"]:
            try:
                entries.append(RecommendedPokemon.from_dict(raw))
            except ValueError:
                continue
        picks = self._rng.sample(entries, min(2, len(entries)))
        for p in picks:
            p.level = self._rng.randint(RECOMMENDATION_LEVEL_MIN, RECOMMENDATION_LEVEL_MAX)
        return picks

    def fallback_recommendations(self, count: int = 2) -> List[RecommendedPokemon]:
        """Known legendaries with randomized cosmetic stats."""
        picks = self._rng.sample(FALLBACK_LEGENDARIES, min(count, len(FALLBACK_LEGENDARIES)))
        return [
            RecommendedPokemon(
                id=pid,
                name=name,
                sprite=SPRITE_ARTWORK_URL.format(id=pid),
                atk=self._rng.randint(120, 169),
                defense=self._rng.randint(100, 149),
                spd=self._rng.randint(110, 159),
                types=list(types),
                base_experience=350,
                bst=self._rng.randint(600, 699),
                level=self._rng.randint(RECOMMENDATION_LEVEL_MIN, RECOMMENDATION_LEVEL_MAX),
            )
            for pid, name, types in picks
        ]

    def recommend(self) -> List[RecommendedPokemon]:
        """Pair from a fresh cache, or the fallback list when none can be built."""
        self.ensure_fresh_cache()
        pair = self.get_random_pair()
        if not pair:
            logger.info("No recommendation cache, serving fallback list")
            return self.fallback_recommendations()
        return pair


class RecommendationRotator:
    """Keeps a current recommendation pair and rotates it on a timer.

    Meant for long-running hosts (a UI, or ``pokedex-roster recommend --watch``):
    start() once, read ``current`` or register on_update(), stop() on exit.
    """

    def __init__(self, engine: RecommendationEngine,
                 interval: float = RECOMMENDATION_ROTATE_INTERVAL):
        self._engine = engine
        self.interval = interval
        self.current: List[RecommendedPokemon] = []
        self._listeners: List[Callable[[List[RecommendedPokemon]], None]] = []
        self._lock = threading.Lock()
        self._seq = 0
        self._applied_seq = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def on_update(self, callback: Callable[[List[RecommendedPokemon]], None]):
        self._listeners.append(callback)

    def refresh(self) -> bool:
        """Compute a new pair and apply it unless a newer one landed first.

        Safe to call from any thread. Returns True if the pair was applied.
        """
        with self._lock:
            self._seq += 1
            seq = self._seq

        pair = self._engine.recommend()

        with self._lock:
            if seq < self._applied_seq:
                logger.debug(f"Dropping stale recommendation refresh #{seq}")
                return False
            self._applied_seq = seq
            self.current = pair
            listeners = list(self._listeners)

        for callback in listeners:
            try:
                callback(list(pair))
            except Exception as e:
                logger.error(f"Recommendation listener failed: {e}", exc_info=True)
        return True

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._rotate_loop, daemon=True,
                                        name="recommendation-rotator")
        self._thread.start()
        logger.info("Recommendation rotator started")

    def stop(self, timeout: float = 5.0):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Recommendation rotator stopped")

    def _rotate_loop(self):
        while not self._stop.is_set():
            try:
                self.refresh()
            except Exception as e:
                logger.error(f"Recommendation refresh failed: {e}")
            self._stop.wait(self.interval)

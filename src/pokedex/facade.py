"""
Pokedex — single entry point wiring the roster components together.

Built once at start-up and passed to whatever presents the data (the CLI in
main.py, a UI). Every operation the presentation layer needs is a method
here; the components behind it are reachable as attributes for tests.

Usage:
    from pokedex import Pokedex, create_default_config

    dex = Pokedex(create_default_config())
    dex.capture(25)
    metrics = dex.metrics()
    pair = dex.recommendations()
"""

import logging
from typing import Callable, List, Mapping, Optional

from catalog_client import CatalogClient
from config import PAGE_SIZE
from kv_store import KeyValueStore
from metrics import MetricsEngine
from models import CapturedPokemon, ImportResult, PokemonMetrics, RecommendedPokemon
from pokedex.app_config import AppConfig
from recommendations import RecommendationEngine, RecommendationRotator
from reconcile import DetailReconciler
from roster_queries import Page, paginate
from roster_store import RosterStore

logger = logging.getLogger(__name__)


class Pokedex:
    """Facade over storage, catalog, roster, reconciliation, metrics and recommendations."""

    def __init__(self, config: AppConfig, catalog: Optional[CatalogClient] = None):
        self.config = config
        self.kv = KeyValueStore(config.store_file, quota_bytes=config.store_quota_bytes)
        self.catalog = catalog or CatalogClient(
            base_url=config.catalog_base_url,
            timeout=config.catalog_timeout,
            max_id=config.max_catalog_id,
        )
        self.roster_store = RosterStore(self.kv)
        self.reconciler = DetailReconciler(
            self.catalog, self.roster_store,
            concurrency=config.reconcile_concurrency,
        )
        self.metrics_engine = MetricsEngine(self.catalog, self.reconciler)
        self.recommender = RecommendationEngine(
            self.catalog, self.kv,
            ttl=config.recommendation_ttl,
            sample_size=config.recommendation_sample_size,
            top_n=config.recommendation_top_n,
            concurrency=config.recommendation_concurrency,
            max_id=config.max_catalog_id,
        )
        self.rotator = RecommendationRotator(
            self.recommender, interval=config.recommendation_rotate_interval,
        )
        if not self.kv.is_available():
            logger.warning("Storage unavailable, captures will not be saved")

    # ── Roster mutations ────────────────────────────────────

    def capture(self, pokemon_id: int, level: Optional[int] = None) -> bool:
        """Look ``pokemon_id`` up in the catalog and add it to the roster.

        Returns False if the catalog has no such entry or it is already
        captured.
        """
        if pokemon_id in self.roster_store:
            logger.info(f"#{pokemon_id} already captured")
            return False
        detail = self.catalog.get_detail(pokemon_id)
        if detail is None:
            logger.warning(f"Can't capture #{pokemon_id}: no catalog data")
            return False
        return self.roster_store.add(CapturedPokemon.from_catalog(detail, level=level))

    def add(self, pokemon: CapturedPokemon) -> bool:
        return self.roster_store.add(pokemon)

    def release(self, pokemon_id: int) -> bool:
        return self.roster_store.remove(pokemon_id)

    def update(self, pokemon_id: int, fields: Mapping[str, object]) -> bool:
        return self.roster_store.update(pokemon_id, fields)

    def clear(self) -> bool:
        return self.roster_store.clear()

    def export_document(self) -> str:
        return self.roster_store.export_document()

    def import_document(self, document) -> ImportResult:
        return self.roster_store.import_document(document)

    def subscribe(self, callback: Callable[[List[CapturedPokemon]], None],
                  replay: bool = False) -> Callable[[], None]:
        return self.roster_store.subscribe(callback, replay=replay)

    # ── Derived data ────────────────────────────────────────

    def roster(self) -> List[CapturedPokemon]:
        return self.roster_store.snapshot()

    def reconcile(self) -> List[CapturedPokemon]:
        return self.reconciler.reconcile()

    def metrics(self, roster: Optional[List[CapturedPokemon]] = None) -> PokemonMetrics:
        return self.metrics_engine.compute(roster)

    def recommendations(self) -> List[RecommendedPokemon]:
        return self.recommender.recommend()

    # ── Read-only views ─────────────────────────────────────

    def recent_captures(self, limit: int = 4) -> List[CapturedPokemon]:
        return self.roster_store.recent_captures(limit)

    def search(self, query: str) -> List[CapturedPokemon]:
        return self.roster_store.search(query)

    def filter(self, **criteria) -> List[CapturedPokemon]:
        return self.roster_store.filter(**criteria)

    def sorted_by(self, sort_by: str, order: str = "desc") -> List[CapturedPokemon]:
        return self.roster_store.sorted_by(sort_by, order)

    def page(self, page: int = 1, page_size: int = PAGE_SIZE, **criteria) -> Page:
        """One page of the filtered roster (criteria as for ``filter``)."""
        return paginate(self.roster_store.filter(**criteria), page, page_size)

    def storage_stats(self) -> dict:
        return self.roster_store.storage_stats()

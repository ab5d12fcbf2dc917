"""
AppConfig — everything the roster components need, in one dataclass.

Consumers build one with create_default_config() (constants from config.py,
optionally overridden) and hand it to Pokedex, which constructs every
component from it.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional


@dataclass
class AppConfig:
    """Complete configuration for a Pokedex instance."""

    # ── Storage ─────────────────────────────────────────────
    data_dir: Path
    store_file: Optional[Path]            # None → storage unavailable
    store_quota_bytes: int = 5 * 1024 * 1024

    # ── Catalog ─────────────────────────────────────────────
    catalog_base_url: str = "https://pokeapi.co/api/v2"
    catalog_timeout: float = 10
    max_catalog_id: int = 1010

    # ── Reconciliation ──────────────────────────────────────
    reconcile_concurrency: int = 8

    # ── Recommendations ─────────────────────────────────────
    recommendation_ttl: float = 12 * 3600     # seconds
    recommendation_sample_size: int = 350
    recommendation_top_n: int = 100
    recommendation_concurrency: int = 12
    recommendation_rotate_interval: float = 600


def create_default_config(data_dir: Optional[Path] = None, **overrides) -> AppConfig:
    """AppConfig populated from config.py.

    Args:
        data_dir: Override the data directory (the store file moves with it).
        **overrides: Any other AppConfig field.
    """
    from config import (
        CATALOG_REQUEST_TIMEOUT,
        DATA_DIR,
        MAX_CATALOG_ID,
        POKEAPI_BASE_URL,
        RECOMMENDATION_CACHE_TTL,
        RECOMMENDATION_CONCURRENCY,
        RECOMMENDATION_ROTATE_INTERVAL,
        RECOMMENDATION_SAMPLE_SIZE,
        RECOMMENDATION_TOP_N,
        RECONCILE_CONCURRENCY,
        STORE_FILE,
        STORE_QUOTA_BYTES,
    )

    if data_dir is not None:
        data_dir = Path(data_dir)
        store_file = data_dir / STORE_FILE.name
    else:
        data_dir, store_file = DATA_DIR, STORE_FILE

    cfg = AppConfig(
        data_dir=data_dir,
        store_file=store_file,
        store_quota_bytes=STORE_QUOTA_BYTES,
        catalog_base_url=POKEAPI_BASE_URL,
        catalog_timeout=CATALOG_REQUEST_TIMEOUT,
        max_catalog_id=MAX_CATALOG_ID,
        reconcile_concurrency=RECONCILE_CONCURRENCY,
        recommendation_ttl=RECOMMENDATION_CACHE_TTL,
        recommendation_sample_size=RECOMMENDATION_SAMPLE_SIZE,
        recommendation_top_n=RECOMMENDATION_TOP_N,
        recommendation_concurrency=RECOMMENDATION_CONCURRENCY,
        recommendation_rotate_interval=RECOMMENDATION_ROTATE_INTERVAL,
    )
    return replace(cfg, **overrides) if overrides else cfg

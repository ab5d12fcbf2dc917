"""
reconcile.py — Backfill missing roster fields from the catalog.

A captured Pokémon may have been stored before its stats, types or sprite
were known (imports, older exports, captures made while offline). Those
entries are re-fetched in one bounded batch and merged field by field: the
catalog value wins unless it is empty, in which case the stored one stays.
A failed fetch leaves that entry exactly as it was.
"""

import logging
from typing import Dict, List, Optional, Sequence

from config import RECONCILE_CONCURRENCY
from catalog_client import CatalogClient
from models import CapturedPokemon, CatalogDetail
from roster_store import RosterStore

logger = logging.getLogger(__name__)


def merge_detail(pokemon: CapturedPokemon, detail: CatalogDetail) -> CapturedPokemon:
    """Fetched values win; empty/zero fetched values fall back to stored ones."""
    merged = pokemon.copy()
    merged.atk = detail.stat("attack") or pokemon.atk or 0
    merged.defense = detail.stat("defense") or pokemon.defense or 0
    merged.spd = detail.stat("speed") or pokemon.spd or 0
    merged.types = detail.type_names or list(pokemon.types)
    merged.sprite = detail.sprite or pokemon.sprite or ""
    merged.base_experience = detail.base_experience or pokemon.base_experience or 0
    return merged


class DetailReconciler:
    """Completes roster entries against the catalog and writes them back."""

    def __init__(self, catalog: CatalogClient, store: RosterStore,
                 concurrency: int = RECONCILE_CONCURRENCY):
        self._catalog = catalog
        self._store = store
        self.concurrency = concurrency

    def reconcile(self, roster: Optional[Sequence[CapturedPokemon]] = None) -> List[CapturedPokemon]:
        """Return ``roster`` (default: the store's) with missing fields filled in."""
        if roster is None:
            roster = self._store.snapshot()
        roster = list(roster)

        incomplete = [p for p in roster if p.needs_backfill]
        if not incomplete:
            return roster

        logger.info(f"Reconciling {len(incomplete)}/{len(roster)} incomplete entries")
        by_id = {p.id: p for p in incomplete}
        outcomes = self._catalog.get_details_batch(list(by_id), self.concurrency)

        fetched: Dict[int, CapturedPokemon] = {}
        for pid, outcome in outcomes:
            if isinstance(outcome, CatalogDetail):
                fetched[pid] = merge_detail(by_id[pid], outcome)
            else:
                logger.warning(f"Keeping stored fields for {by_id[pid].name} (#{pid}): {outcome.reason}")

        if fetched:
            self._store.backfill(fetched)
        else:
            logger.debug("Reconciliation fetched nothing, roster unchanged")

        return [fetched.get(p.id, p) for p in roster]

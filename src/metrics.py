"""
metrics.py — Aggregate statistics over the captured roster.

Nothing here is persisted; metrics are recomputed on every call. A missing
catalog total (network down) yields 0% rather than an error.
"""

import logging
import math
from collections import Counter
from typing import Optional, Sequence

from config import NO_DATA
from catalog_client import CatalogClient
from models import CapturedPokemon, PokemonMetrics
from reconcile import DetailReconciler

logger = logging.getLogger(__name__)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def favorite_type(roster: Sequence[CapturedPokemon]) -> str:
    """Most frequent type across all entries; ties go to the first seen."""
    counts = Counter(t for p in roster for t in p.types)
    if not counts:
        return NO_DATA
    # most_common is stable, so equal counts keep first-seen order
    return counts.most_common(1)[0][0]


def strongest(roster: Sequence[CapturedPokemon]) -> Optional[CapturedPokemon]:
    """Highest attack; ties go to the first seen."""
    best = None
    for p in roster:
        if best is None or (p.atk or 0) > (best.atk or 0):
            best = p
    return best.copy() if best else None


class MetricsEngine:
    def __init__(self, catalog: CatalogClient, reconciler: DetailReconciler):
        self._catalog = catalog
        self._reconciler = reconciler

    def compute(self, roster: Optional[Sequence[CapturedPokemon]] = None) -> PokemonMetrics:
        """Metrics for ``roster``; reconciles the stored roster when omitted."""
        if roster is None:
            roster = self._reconciler.reconcile()
        roster = list(roster)

        total = self._catalog.get_total_count()
        count = len(roster)
        pct = min(100.0, count / total * 100) if total else 0.0
        avg_level = _round_half_up(sum(p.level or 0 for p in roster) / count) if count else 0

        metrics = PokemonMetrics(
            captured_count=count,
            pokedex_total=total,
            pokedex_pct=pct,
            avg_level=avg_level,
            favorite_type=favorite_type(roster),
            total_exp=sum(p.base_experience or 0 for p in roster),
            strongest=strongest(roster),
        )
        logger.debug(f"Metrics: {count}/{total} captured, avg lv {avg_level}")
        return metrics

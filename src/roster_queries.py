"""
roster_queries.py — Read-only views over a roster snapshot.

Pure functions: they never mutate the list they are given and never touch
storage or the network (storage_stats only reads the store's size).
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

from config import PAGE_SIZE, RECENT_CAPTURES_LIMIT
from models import CapturedPokemon, parse_timestamp

NUMERIC_SORT_FIELDS = ("level", "atk", "defense", "spd", "base_experience")
SORT_FIELDS = ("name", "captured_at") + NUMERIC_SORT_FIELDS


@dataclass
class Page:
    items: List[CapturedPokemon]
    page: int
    total_pages: int
    total: int


def recent_captures(roster: Sequence[CapturedPokemon],
                    limit: int = RECENT_CAPTURES_LIMIT) -> List[CapturedPokemon]:
    """Newest ``limit`` captures, newest first."""
    ordered = sorted(roster, key=lambda p: parse_timestamp(p.captured_at), reverse=True)
    return ordered[:max(0, limit)]


def search(roster: Sequence[CapturedPokemon], query: str) -> List[CapturedPokemon]:
    """Case-insensitive substring match on name or any type."""
    term = (query or "").strip().lower()
    if not term:
        return list(roster)
    return [
        p for p in roster
        if term in p.name.lower() or any(term in t.lower() for t in p.types)
    ]


def filter_roster(roster: Sequence[CapturedPokemon], search: str = "",
                  type_: str = "", region: str = "",
                  generation: str = "") -> List[CapturedPokemon]:
    """Pokedex page filter. Empty criteria match everything.

    ``search`` matches name, types or region as a substring; ``type_``,
    ``region`` and ``generation`` must match exactly.
    """
    term = (search or "").strip().lower()
    out = []
    for p in roster:
        if term:
            in_name = term in p.name.lower()
            in_types = any(term in t.lower() for t in p.types)
            in_region = bool(p.region) and term in p.region.lower()
            if not (in_name or in_types or in_region):
                continue
        if type_ and type_ not in p.types:
            continue
        if region and p.region != region:
            continue
        if generation and p.generation != generation:
            continue
        out.append(p)
    return out


def sort_roster(roster: Sequence[CapturedPokemon], sort_by: str,
                order: str = "desc") -> List[CapturedPokemon]:
    """Sort by name, capture time or a numeric stat field.

    Raises ValueError for an unknown field or order.
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field {sort_by!r} (expected one of {', '.join(SORT_FIELDS)})")
    if order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort order {order!r}")

    if sort_by == "name":
        key = lambda p: p.name.lower()
    elif sort_by == "captured_at":
        key = lambda p: parse_timestamp(p.captured_at)
    else:
        key = lambda p: getattr(p, sort_by) or 0
    return sorted(roster, key=key, reverse=(order == "desc"))


def paginate(items: Sequence[CapturedPokemon], page: int = 1,
             page_size: int = PAGE_SIZE) -> Page:
    """Slice one page. A page past the end resets to page 1."""
    total = len(items)
    total_pages = math.ceil(total / page_size) if page_size > 0 else 0
    if page < 1 or page > total_pages:
        page = 1
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        total_pages=total_pages,
        total=total,
    )


def storage_stats(roster: Sequence[CapturedPokemon], store) -> dict:
    return {
        "captured_count": len(roster),
        "storage_usage": store.usage(),
        "storage_available": store.is_available(),
    }

"""
catalog_client.py — PokéAPI client for catalog totals, details and listings.

Endpoints used:
  GET /pokemon?limit=1      → total catalog size ("count")
  GET /pokemon/{id}         → full detail (404 for unknown ids)
  GET /pokemon?limit={n}    → name + url pairs for sampling

Every public method degrades instead of raising: 0 for the count, None for
a detail, an empty list for a listing. Batch fetches run on a bounded thread
pool and isolate failures per id.

Rate limiting: a 429 puts the client into a cooldown (Retry-After, else
CATALOG_RATE_LIMIT_COOLDOWN) during which requests fail fast locally.
"""

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional, Tuple, Union

import requests

from config import (
    CATALOG_RATE_LIMIT_COOLDOWN,
    CATALOG_REQUEST_TIMEOUT,
    MAX_CATALOG_ID,
    POKEAPI_BASE_URL,
    USER_AGENT,
)
from models import CatalogDetail, CatalogSummary, FetchFailure

logger = logging.getLogger(__name__)

_ID_FROM_URL = re.compile(r"/pokemon/(\d+)/?$")

BatchOutcome = Tuple[int, Union[CatalogDetail, FetchFailure]]


class CatalogClient:
    """
    Read-only client for the remote creature catalog.

    Usage:
        catalog = CatalogClient()
        total = catalog.get_total_count()
        detail = catalog.get_detail(25)
        outcomes = catalog.get_details_batch([1, 4, 7], concurrency=8)
    """

    def __init__(self, base_url: str = POKEAPI_BASE_URL,
                 timeout: float = CATALOG_REQUEST_TIMEOUT,
                 max_id: int = MAX_CATALOG_ID,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_id = max_id
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

        # When the API returns 429, don't hit it again until this time
        self._rate_limited_until = 0.0
        self._rate_lock = threading.Lock()

    # ─── Rate limiting ───────────────────────────────

    def _is_rate_limited(self) -> bool:
        with self._rate_lock:
            return time.time() < self._rate_limited_until

    def _note_rate_limit(self, resp: requests.Response):
        retry_after = resp.headers.get("Retry-After", "")
        try:
            wait = float(retry_after)
        except ValueError:
            wait = CATALOG_RATE_LIMIT_COOLDOWN
        with self._rate_lock:
            self._rate_limited_until = max(self._rate_limited_until, time.time() + wait)
        logger.warning(f"Catalog rate limited, backing off {wait:.0f}s")

    def _get_json(self, path: str, params: Optional[dict] = None) -> Tuple[Optional[dict], str]:
        """GET ``path`` and decode JSON. Returns (payload, failure reason)."""
        if self._is_rate_limited():
            return None, "rate limited"
        resp = self._session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        if resp.status_code == 429:
            self._note_rate_limit(resp)
            return None, "HTTP 429"
        if resp.status_code == 404:
            return None, "not found"
        if resp.status_code != 200:
            return None, f"HTTP {resp.status_code}"
        return resp.json(), ""

    # ─── Public API ──────────────────────────────────

    def get_total_count(self) -> int:
        """Size of the remote catalog, or 0 when it can't be fetched."""
        try:
            data, reason = self._get_json("/pokemon", params={"limit": 1})
            if data is None:
                logger.warning(f"Catalog count unavailable: {reason}")
                return 0
            count = data.get("count", 0) if isinstance(data, dict) else 0
            return count if isinstance(count, int) and count > 0 else 0
        except Exception as e:
            logger.error(f"Catalog count fetch failed: {e}")
            return 0

    def get_detail(self, pokemon_id: int) -> Optional[CatalogDetail]:
        """Detail for one id, or None (out of range, 404, network error...)."""
        result = self._fetch_detail(pokemon_id)
        return result if isinstance(result, CatalogDetail) else None

    def _fetch_detail(self, pokemon_id: int) -> Union[CatalogDetail, FetchFailure]:
        if not 1 <= pokemon_id <= self.max_id:
            logger.warning(f"Pokemon id out of range: {pokemon_id}")
            return FetchFailure(pokemon_id, "out of range")
        try:
            data, reason = self._get_json(f"/pokemon/{pokemon_id}")
            if data is None:
                if reason == "not found":
                    logger.warning(f"Pokemon {pokemon_id} not found in catalog")
                else:
                    logger.warning(f"Pokemon {pokemon_id} detail: {reason}")
                return FetchFailure(pokemon_id, reason)
            return CatalogDetail.from_api(data)
        except Exception as e:
            logger.error(f"Pokemon {pokemon_id} detail fetch failed: {e}")
            return FetchFailure(pokemon_id, str(e))

    def get_details_batch(self, ids: Iterable[int], concurrency: int) -> List[BatchOutcome]:
        """Fetch many details with at most ``concurrency`` requests in flight.

        Returns one (id, CatalogDetail | FetchFailure) per unique id, in
        completion order. A failed item never cancels its siblings.
        """
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []

        outcomes: List[BatchOutcome] = []
        with ThreadPoolExecutor(max_workers=max(1, concurrency),
                                thread_name_prefix="catalog") as executor:
            futures = {executor.submit(self._fetch_detail, pid): pid for pid in unique_ids}
            for fut in as_completed(futures):
                pid = futures[fut]
                try:
                    outcomes.append((pid, fut.result()))
                except Exception as e:
                    outcomes.append((pid, FetchFailure(pid, str(e))))

        failed = sum(1 for _, o in outcomes if isinstance(o, FetchFailure))
        logger.debug(f"Catalog batch: {len(outcomes) - failed}/{len(outcomes)} fetched")
        return outcomes

    def list_summaries(self, limit: int) -> List[CatalogSummary]:
        """First ``limit`` catalog entries as (id, name, url)."""
        try:
            data, reason = self._get_json("/pokemon", params={"limit": limit})
            if data is None:
                logger.warning(f"Catalog listing unavailable: {reason}")
                return []
        except Exception as e:
            logger.error(f"Catalog listing fetch failed: {e}")
            return []

        rows = data.get("results") if isinstance(data, dict) else None
        summaries = []
        for row in rows or []:
            if not isinstance(row, dict):
                continue
            url = row.get("url") or ""
            m = _ID_FROM_URL.search(url)
            if not m or not isinstance(row.get("name"), str):
                continue
            summaries.append(CatalogSummary(id=int(m.group(1)), name=row["name"], url=url))
        return summaries

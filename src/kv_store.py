"""
kv_store.py — Per-user persistent key-value store.

Plays the role browser local storage plays for a web client: string keys,
JSON-serialized values, a fixed byte budget, and every failure absorbed at
this boundary. Callers get a boolean or their default back, never an
exception.

All keys live in one JSON file ({key: serialized value}) that is rewritten
atomically on every write. A store constructed with ``path=None`` is
unavailable (no backing file, e.g. a sandboxed or read-only context): reads
return defaults and writes report failure.
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import STORE_FILE, STORE_QUOTA_BYTES

logger = logging.getLogger(__name__)

_CHECK_KEY = "__storage_test__"


class StoreUnavailable(Exception):
    """The store has no backing file."""


class StoreQuotaExceeded(Exception):
    """A write would push the store past its byte budget."""


class KeyValueStore:
    """JSON-file backed key-value store with graceful degradation."""

    def __init__(self, path: Optional[Path] = STORE_FILE,
                 quota_bytes: int = STORE_QUOTA_BYTES):
        self.path = Path(path) if path is not None else None
        self.quota_bytes = quota_bytes
        self._lock = threading.RLock()

    # ─── Raw file access (raises) ────────────────────

    def _read_all(self) -> Dict[str, str]:
        if self.path is None:
            raise StoreUnavailable("no backing file")
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a key-value object")
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]):
        if self.path is None:
            raise StoreUnavailable("no backing file")
        size = self._size_of(data)
        if size > self.quota_bytes:
            raise StoreQuotaExceeded(f"{size} bytes > quota {self.quota_bytes}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, self.path)

    @staticmethod
    def _size_of(data: Dict[str, str]) -> int:
        return sum(len(k) + len(v) for k, v in data.items())

    # ─── Public API (never raises) ───────────────────

    def set(self, key: str, value: Any) -> bool:
        """Serialize and store ``value``. Returns False on any failure."""
        with self._lock:
            try:
                serialized = json.dumps(value)
                data = self._read_all()
                data[key] = serialized
                self._write_all(data)
                return True
            except Exception as e:
                logger.error(f"Storage write failed ({key}): {e}")
                return False

    def get(self, key: str, default: Any = None) -> Any:
        """Stored value for ``key``, or ``default`` if missing/unreadable."""
        with self._lock:
            try:
                raw = self._read_all().get(key)
                if raw is None:
                    return default
                return json.loads(raw)
            except Exception as e:
                logger.error(f"Storage read failed ({key}): {e}")
                return default

    def remove(self, key: str) -> bool:
        with self._lock:
            try:
                data = self._read_all()
                if key in data:
                    del data[key]
                    self._write_all(data)
                return True
            except Exception as e:
                logger.error(f"Storage remove failed ({key}): {e}")
                return False

    def is_available(self) -> bool:
        """Check the store with a throwaway write."""
        with self._lock:
            try:
                data = self._read_all()
                data[_CHECK_KEY] = json.dumps("test")
                self._write_all(data)
                del data[_CHECK_KEY]
                self._write_all(data)
                return True
            except Exception:
                return False

    def keys_by_prefix(self, prefix: str) -> List[str]:
        with self._lock:
            try:
                return [k for k in self._read_all() if k.startswith(prefix)]
            except Exception as e:
                logger.error(f"Storage key scan failed ({prefix!r}): {e}")
                return []

    def sweep_expired(self, prefix: str, max_age: float,
                      now: Optional[float] = None) -> int:
        """Remove time-boxed entries under ``prefix`` older than ``max_age``.

        An entry is time-boxed when its value parses to an object with a
        numeric ``builtAt`` or ``ts`` (epoch seconds). Anything else,
        including values that don't parse, is left alone.

        Returns the number of entries removed.
        """
        now = time.time() if now is None else now
        with self._lock:
            try:
                data = self._read_all()
            except Exception as e:
                logger.error(f"Storage sweep failed ({prefix!r}): {e}")
                return 0

            expired = []
            for key, raw in data.items():
                if not key.startswith(prefix):
                    continue
                try:
                    parsed = json.loads(raw)
                except ValueError:
                    continue
                if not isinstance(parsed, dict):
                    continue
                stamp = parsed.get("builtAt", parsed.get("ts"))
                if isinstance(stamp, (int, float)) and not isinstance(stamp, bool):
                    if now - stamp > max_age:
                        expired.append(key)

            if not expired:
                return 0
            for key in expired:
                del data[key]
            try:
                self._write_all(data)
            except Exception as e:
                logger.error(f"Storage sweep write failed ({prefix!r}): {e}")
                return 0
            logger.debug(f"Swept {len(expired)} expired entries under {prefix!r}")
            return len(expired)

    def usage(self) -> int:
        """Approximate bytes used (key + value lengths)."""
        with self._lock:
            try:
                return self._size_of(self._read_all())
            except Exception as e:
                logger.error(f"Storage usage check failed: {e}")
                return 0

    def clear(self) -> bool:
        with self._lock:
            try:
                self._write_all({})
                return True
            except Exception as e:
                logger.error(f"Storage clear failed: {e}")
                return False

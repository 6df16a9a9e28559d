# linkdle/services/cache_store.py
import logging
from typing import Any, Callable, Dict, List, Protocol, Tuple

from sqlalchemy.orm import Session

from linkdle.crud import crud_cache

logger = logging.getLogger("linkdle.services.cache_store")

StoredEntries = List[Tuple[str, Dict[str, Any]]]


class CacheStore(Protocol):
    """Durable home for cache snapshots: a list of (key, {"value", "created_at"}) pairs per cache."""

    def load(self, cache_name: str) -> StoredEntries: ...

    def save(self, cache_name: str, entries: StoredEntries) -> None: ...


class SqlCacheStore:
    """CacheStore backed by the `cache_entries` table. Opens a fresh DB session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def load(self, cache_name: str) -> StoredEntries:
        db = self.session_factory()
        try:
            return crud_cache.get_cache_entries(db, cache_name)
        finally:
            db.close()

    def save(self, cache_name: str, entries: StoredEntries) -> None:
        db = self.session_factory()
        try:
            crud_cache.replace_cache_entries(db, cache_name, entries)
        finally:
            db.close()

# linkdle/crud/crud_cache.py
import json
import logging
from typing import Any, Dict, List, Tuple
from sqlalchemy.orm import Session
from linkdle.schemas.cache_entry import CacheEntryRecord

logger = logging.getLogger("linkdle.crud.cache")

def get_cache_entries(db: Session, cache_name: str) -> List[Tuple[str, Dict[str, Any]]]:
    """Returns the snapshot of a cache as (key, {"value", "created_at"}) pairs, oldest first."""
    rows = (
        db.query(CacheEntryRecord)
        .filter(CacheEntryRecord.cache_name == cache_name)
        .order_by(CacheEntryRecord.created_at.asc())
        .all()
    )
    entries = []
    for row in rows:
        try:
            value = json.loads(row.value_json)
        except json.JSONDecodeError:
            logger.warning(f"Skipping corrupt cache row {row.id} in cache '{cache_name}'.")
            continue
        entries.append((row.key, {"value": value, "created_at": row.created_at}))
    return entries

def replace_cache_entries(db: Session, cache_name: str, entries: List[Tuple[str, Dict[str, Any]]]) -> int:
    """Replaces the stored snapshot of a cache. Returns the number of rows written."""
    try:
        db.query(CacheEntryRecord).filter(CacheEntryRecord.cache_name == cache_name).delete()
        for key, entry in entries:
            db.add(CacheEntryRecord(
                cache_name=cache_name,
                key=key,
                value_json=json.dumps(entry["value"]),
                created_at=entry["created_at"],
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Stored {len(entries)} entries for cache '{cache_name}'.")
    return len(entries)

# linkdle/schemas/cache_entry.py
from sqlalchemy import Column, String, Integer, Float, Text, UniqueConstraint
from linkdle.db.base_class import Base

class CacheEntryRecord(Base):
    """One persisted entry of a named in-memory cache snapshot."""
    __tablename__ = "cache_entries"

    id = Column(Integer, primary_key=True, index=True)
    cache_name = Column(String, nullable=False, index=True) # e.g. "dictionary", "embeddings"
    key = Column(String, nullable=False)
    value_json = Column(Text, nullable=False)
    created_at = Column(Float, nullable=False) # Unix timestamp of the in-memory entry, not of the row

    __table_args__ = (UniqueConstraint('cache_name', 'key', name='_cache_name_key_uc'),)

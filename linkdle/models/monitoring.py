from pydantic import BaseModel
from typing import List

class CacheStats(BaseModel):
    name: str
    size: int
    capacity: int
    ttl_seconds: float
    hits: int
    misses: int
    hit_rate_percent: float

class MonitoringDataResponse(BaseModel):
    active_sessions: int
    caches: List[CacheStats]

# linkdle/api/monitoring.py
import logging
from fastapi import APIRouter, Depends

from linkdle.api import deps
from linkdle.models.monitoring import CacheStats, MonitoringDataResponse
from linkdle.services.game_service import GameService

logger = logging.getLogger("linkdle.api.monitoring")
router = APIRouter()

@router.get("/caches", response_model=MonitoringDataResponse)
async def get_cache_monitoring(service: GameService = Depends(deps.get_game_service)):
    """Live size and hit rate of every cache, plus the number of sessions held in memory."""
    return MonitoringDataResponse(
        active_sessions=len(service.sessions),
        caches=[CacheStats(**stats) for stats in service.cache_stats()],
    )

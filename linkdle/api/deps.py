# linkdle/api/deps.py
import logging
from fastapi import Depends, HTTPException, Request, status

from linkdle.core.errors import SessionNotFoundError
from linkdle.services.chain_state import ChainState
from linkdle.services.game_service import GameService

logger = logging.getLogger("linkdle.api.deps")  # Logger for this module

def get_game_service(request: Request) -> GameService:
    """The GameService built in the application lifespan."""
    service = getattr(request.app.state, "game_service", None)
    if service is None:
        logger.error("GameService requested before application startup completed.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Game service is not ready.")
    return service

def get_session_state(session_id: str, service: GameService = Depends(get_game_service)) -> ChainState:
    try:
        return service.get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Game session '{session_id}' not found.")

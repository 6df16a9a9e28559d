# linkdle/api/game.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status

from linkdle.api import deps
from linkdle.core.errors import ChainStateError
from linkdle.models.game import GameSessionPublic, Puzzle, ScoreBreakdown, SubmitWordRequest
from linkdle.models.validation import ValidationOutcome
from linkdle.services.chain_state import ChainState
from linkdle.services.game_service import GameService

logger = logging.getLogger("linkdle.api.game")  # Logger for this module
router = APIRouter()

@router.get("/puzzle/daily", response_model=Puzzle)
def get_daily_puzzle(service: GameService = Depends(deps.get_game_service)):
    """The puzzle every player gets today."""
    return service.daily_puzzle()

@router.post("/sessions", response_model=GameSessionPublic, status_code=status.HTTP_201_CREATED)
async def create_session(service: GameService = Depends(deps.get_game_service)):
    """Starts a new attempt at the daily puzzle. The clock starts now."""
    return service.create_session().to_public()

@router.get("/sessions/{session_id}", response_model=GameSessionPublic)
def get_session(state: ChainState = Depends(deps.get_session_state)):
    return state.to_public()

@router.post("/sessions/{session_id}/submit", response_model=ValidationOutcome)
async def submit_word(
    submission: SubmitWordRequest,
    state: ChainState = Depends(deps.get_session_state),
    service: GameService = Depends(deps.get_game_service),
):
    """
    Validates a word against the chain's tail and appends it when accepted.
    Rejections are normal responses (200, accepted=false) carrying the reason for the player.
    """
    try:
        return await service.submit(state.session_id, submission.word, previous_word=submission.previous_word)
    except ChainStateError as e:
        logger.warning(f"S:{state.session_id} - Submit refused: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.post("/sessions/{session_id}/complete", response_model=ScoreBreakdown)
async def complete_chain(
    state: ChainState = Depends(deps.get_session_state),
    service: GameService = Depends(deps.get_game_service),
):
    try:
        return await service.complete(state.session_id)
    except ChainStateError as e:
        logger.warning(f"S:{state.session_id} - Complete refused: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.post("/sessions/{session_id}/reset", response_model=GameSessionPublic)
async def reset_session(
    state: ChainState = Depends(deps.get_session_state),
    service: GameService = Depends(deps.get_game_service),
):
    """Discards the chain and starts the clock again."""
    await service.reset(state.session_id)
    return state.to_public()

@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    state: ChainState = Depends(deps.get_session_state),
    service: GameService = Depends(deps.get_game_service),
):
    """Forgets the session. Idle sessions are also pruned in the background."""
    service.remove_session(state.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

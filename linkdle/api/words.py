# linkdle/api/words.py
import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, status

from linkdle.api import deps
from linkdle.core.errors import InputError, ProviderError
from linkdle.models.validation import WordRelationships
from linkdle.services.game_service import GameService

logger = logging.getLogger("linkdle.api.words")  # Logger for this module
router = APIRouter()

@router.get("/{word}/relationships", response_model=WordRelationships)
async def get_word_relationships(word: str, service: GameService = Depends(deps.get_game_service)):
    """Strict and creative relationships of a word, for hints and the word explorer."""
    try:
        return await service.explore(word)
    except InputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)
    except (ProviderError, asyncio.TimeoutError) as e:
        logger.warning(f"Word explorer unavailable for '{word}': {e!r}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Relationship provider is unavailable, try again later.")

# linkdle/services/game_service.py
import asyncio
import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from linkdle.core.config import settings
from linkdle.core.errors import SessionNotFoundError
from linkdle.models.game import Puzzle, ScoreBreakdown
from linkdle.models.validation import ValidationOutcome, WordRelationships
from linkdle.services.cache import TTLCache
from linkdle.services.cache_store import CacheStore
from linkdle.services.chain_state import ChainState
from linkdle.services.relationship_resolver import (
    ConceptualGraphProvider,
    DictionaryProvider,
    EmbeddingProvider,
    GenerativeProvider,
    RelationshipResolver,
)
from linkdle.services.validation_pipeline import ValidationPipeline, normalize_word

logger = logging.getLogger("linkdle.services.game_service")  # Logger for this module


class GameService:
    """
    Owns everything shared between sessions: the caches, the providers, the resolver and
    the pipeline. Sessions live in memory; each has its own lock so its submissions are
    applied one at a time.
    """

    def __init__(
        self,
        dictionary: DictionaryProvider,
        embeddings: EmbeddingProvider,
        conceptnet: ConceptualGraphProvider,
        generative: GenerativeProvider,
        store: Optional[CacheStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.clock = clock
        fraction = settings.CACHE_EVICTION_FRACTION
        self.existence_cache: TTLCache[bool] = TTLCache(
            "dictionary", settings.DICTIONARY_CACHE_CAPACITY, settings.DICTIONARY_CACHE_TTL_SECONDS,
            store=store, eviction_fraction=fraction, clock=clock,
        )
        self.relationship_cache: TTLCache[Any] = TTLCache(
            "relationships", settings.RELATIONSHIP_CACHE_CAPACITY, settings.RELATIONSHIP_CACHE_TTL_SECONDS,
            store=store, eviction_fraction=fraction, clock=clock,
        )
        self.embedding_cache: TTLCache[List[float]] = TTLCache(
            "embeddings", settings.EMBEDDING_CACHE_CAPACITY, settings.EMBEDDING_CACHE_TTL_SECONDS,
            store=store, eviction_fraction=fraction, clock=clock,
        )
        # Outcomes hold pydantic models, so this one stays in memory only.
        self.validation_cache: TTLCache[ValidationOutcome] = TTLCache(
            "validation", settings.VALIDATION_CACHE_CAPACITY, settings.VALIDATION_CACHE_TTL_SECONDS,
            eviction_fraction=fraction, clock=clock,
        )

        self.resolver = RelationshipResolver(
            dictionary=dictionary,
            embeddings=embeddings,
            conceptnet=conceptnet,
            generative=generative,
            existence_cache=self.existence_cache,
            relationship_cache=self.relationship_cache,
            embedding_cache=self.embedding_cache,
        )
        self.pipeline = ValidationPipeline(self.resolver, self.validation_cache)

        self.sessions: Dict[str, ChainState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, store: Optional[CacheStore] = None) -> "GameService":
        from linkdle.services.providers.conceptnet_service import ConceptNetService
        from linkdle.services.providers.dictionary_service import DictionaryService
        from linkdle.services.providers.embedding_service import EmbeddingService
        from linkdle.services.providers.gemini_service import GeminiService

        return cls(
            dictionary=DictionaryService(),
            embeddings=EmbeddingService(),
            conceptnet=ConceptNetService(),
            generative=GeminiService(),
            store=store,
        )

    @property
    def caches(self) -> List[TTLCache]:
        return [self.existence_cache, self.relationship_cache, self.embedding_cache, self.validation_cache]

    def restore_caches(self) -> int:
        return sum(cache.restore() for cache in self.caches)

    async def persist_caches_async(self) -> int:
        saved = 0
        for cache in self.caches:
            if await cache.persist_async():
                saved += 1
        return saved

    def cache_stats(self) -> List[Dict[str, Any]]:
        return [cache.stats() for cache in self.caches]

    # --- Puzzles & sessions ---

    def daily_puzzle(self) -> Puzzle:
        puzzle = Puzzle.model_validate(settings.DAILY_PUZZLE)
        return puzzle.model_copy(update={
            "start_word": normalize_word(puzzle.start_word),
            "end_word": normalize_word(puzzle.end_word),
        })

    def create_session(self, puzzle: Optional[Puzzle] = None) -> ChainState:
        session_id = uuid.uuid4().hex
        state = ChainState(session_id, puzzle or self.daily_puzzle(), self.pipeline, clock=self.clock)
        self.sessions[session_id] = state
        self._locks[session_id] = asyncio.Lock()
        logger.info(f"S:{session_id} - Session created for puzzle {state.puzzle.id} ('{state.puzzle.start_word}' -> '{state.puzzle.end_word}').")
        return state

    def get_session(self, session_id: str) -> ChainState:
        state = self.sessions.get(session_id)
        if state is None:
            raise SessionNotFoundError(session_id)
        return state

    def remove_session(self, session_id: str) -> None:
        if self.sessions.pop(session_id, None) is not None:
            logger.info(f"S:{session_id} - Session removed.")
        self._locks.pop(session_id, None)

    def prune_sessions(self, idle_seconds: Optional[float] = None) -> int:
        """
        Drops sessions nobody has touched for `idle_seconds` (default SESSION_IDLE_TTL_SECONDS),
        completed or not. Sessions with an operation in progress are kept.
        """
        idle_seconds = settings.SESSION_IDLE_TTL_SECONDS if idle_seconds is None else idle_seconds
        now = self.clock()
        stale = [
            session_id for session_id, state in self.sessions.items()
            if now - state.last_activity > idle_seconds and not self._locks[session_id].locked()
        ]
        for session_id in stale:
            self.remove_session(session_id)
        if stale:
            logger.info(f"Pruned {len(stale)} idle sessions; {len(self.sessions)} remain.")
        return len(stale)

    async def submit(self, session_id: str, word: str, previous_word: Optional[str] = None) -> ValidationOutcome:
        state = self.get_session(session_id)
        async with self._locks[session_id]:
            return await state.submit(word, previous_word=previous_word)

    async def complete(self, session_id: str) -> ScoreBreakdown:
        state = self.get_session(session_id)
        async with self._locks[session_id]:
            return state.complete()

    async def reset(self, session_id: str) -> ChainState:
        state = self.get_session(session_id)
        async with self._locks[session_id]:
            state.reset()
        return state

    async def explore(self, word: str) -> WordRelationships:
        return await self.resolver.explore(normalize_word(word))

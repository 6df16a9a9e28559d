# linkdle/services/chain_state.py
import logging
import time
from typing import Callable, List, Optional

from linkdle.core.errors import ChainStateError, InputError
from linkdle.models.enums import ChainStatus
from linkdle.models.game import GameSessionPublic, Puzzle, ScoreBreakdown
from linkdle.models.validation import RelationshipEdge, ValidationOutcome
from linkdle.services import scoring
from linkdle.services.validation_pipeline import ValidationPipeline, normalize_word

logger = logging.getLogger("linkdle.services.chain_state")  # Logger for this module


class ChainState:
    """
    One player's attempt at a puzzle: building -> completed.

    Callers must serialize submit/complete/reset per session (GameService holds a lock);
    the chain invariants rely on it.
    """

    def __init__(self, session_id: str, puzzle: Puzzle, pipeline: ValidationPipeline, clock: Callable[[], float] = time.time):
        self.session_id = session_id
        self.puzzle = puzzle
        self.pipeline = pipeline
        self._clock = clock
        self._start_fresh()

    def _start_fresh(self) -> None:
        self.status = ChainStatus.BUILDING
        self.chain: List[str] = [self.puzzle.start_word]
        self.edges: List[RelationshipEdge] = []
        self.attempts = 0
        self.incorrect_guesses: List[str] = []
        self.start_time = self._clock()
        self.end_time: Optional[float] = None
        self.score: Optional[ScoreBreakdown] = None
        self.last_activity = self.start_time

    @property
    def tail(self) -> str:
        return self.chain[-1]

    @property
    def is_completed(self) -> bool:
        return self.status is ChainStatus.COMPLETED

    @property
    def can_complete(self) -> bool:
        return not self.is_completed and self.tail == self.puzzle.end_word

    async def submit(self, word: str, previous_word: Optional[str] = None) -> ValidationOutcome:
        """
        Validates `word` against the tail and appends it on success. `previous_word` is the
        word the client believes it is extending; it only decides `is_direct_jump`.
        """
        self.last_activity = self._clock()
        if self.is_completed:
            raise ChainStateError("Chain is already completed; reset to play again.")
        if self.tail == self.puzzle.end_word:
            raise ChainStateError("Chain already reaches the end word; complete it instead.")

        try:
            normalized = normalize_word(word)
        except InputError as e:
            return ValidationOutcome.reject(e.reason)

        is_attempting_end_word = normalized == self.puzzle.end_word
        outcome = await self.pipeline.validate(
            self.tail,
            normalized,
            is_attempting_end_word=is_attempting_end_word,
            submitted_previous=previous_word,
        )

        if outcome.accepted:
            self.chain.append(normalized)
            self.edges.append(outcome.edge)
            self.attempts += 1
            logger.info(f"S:{self.session_id} - '{normalized}' appended ({outcome.edge.kind.value}, creativity {outcome.edge.creativity}). Chain length {len(self.chain)}.")
        elif is_attempting_end_word:
            self.attempts += 1
            self.incorrect_guesses.append(normalized)
            logger.info(f"S:{self.session_id} - End word attempt rejected: {outcome.reason}")
        return outcome

    def complete(self) -> ScoreBreakdown:
        self.last_activity = self._clock()
        if self.is_completed:
            raise ChainStateError("Chain is already completed.")
        if self.tail != self.puzzle.end_word:
            raise ChainStateError(f"Chain must end with '{self.puzzle.end_word}' before it can be completed.")

        self.end_time = self._clock()
        self.score = scoring.calculate_score(
            start_time=self.start_time,
            end_time=self.end_time,
            chain_length=len(self.chain),
            min_steps=self.puzzle.min_steps,
            creativity_scores=[scoring.normalize_creativity(edge.creativity) for edge in self.edges],
        )
        self.status = ChainStatus.COMPLETED
        logger.info(f"S:{self.session_id} - Chain completed in {self.score.breakdown.time_elapsed:.1f}s with score {self.score.final_score}.")
        return self.score

    def reset(self) -> None:
        self._start_fresh()
        logger.info(f"S:{self.session_id} - Session reset.")

    def to_public(self) -> GameSessionPublic:
        return GameSessionPublic(
            session_id=self.session_id,
            puzzle=self.puzzle,
            status=self.status,
            chain=list(self.chain),
            edges=list(self.edges),
            attempts=self.attempts,
            incorrect_guesses=list(self.incorrect_guesses),
            start_time=self.start_time,
            end_time=self.end_time,
            score=self.score,
        )

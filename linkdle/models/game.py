# linkdle/models/game.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List

from linkdle.models.enums import ChainStatus
from linkdle.models.validation import RelationshipEdge

class Puzzle(BaseModel):
    id: str
    start_word: str
    end_word: str
    min_steps: int = Field(ge=1, description="Chain length (in words) of the intended solution.")
    date: str

class ScoreStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    time_elapsed: float # seconds
    optimal_steps: int
    actual_steps: int
    average_creativity: float # normalized, 0..1

class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_score: int
    speed_bonus: float
    creativity_score: int
    efficiency_multiplier: float
    chain_penalty: float
    final_score: int
    breakdown: ScoreStats

class GameSessionPublic(BaseModel):
    """Read-only view of a session for rendering."""
    session_id: str
    puzzle: Puzzle
    status: ChainStatus
    chain: List[str]
    edges: List[RelationshipEdge] = []
    attempts: int = 0
    incorrect_guesses: List[str] = []
    start_time: float
    end_time: float | None = None
    score: ScoreBreakdown | None = None

class SubmitWordRequest(BaseModel):
    word: str
    previous_word: str | None = Field(default=None, description="Word the client believes it is extending from. Words are always validated against the chain's tail; a mismatch only marks the edge as a direct jump.")

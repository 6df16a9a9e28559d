# linkdle/services/scoring.py
"""
Scoring for a completed chain.

Every function here is pure: the same chain statistics always produce the same
ScoreBreakdown. Constants come from settings so they can be tuned per deployment,
but the defaults are the canonical values and scores are only comparable across
players when those defaults are kept.
"""
import math
from typing import List, Sequence, Tuple

from linkdle.core.config import settings
from linkdle.models.game import ScoreBreakdown, ScoreStats


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero for positives, like Math.round; round() would use banker's rounding."""
    return math.floor(value + 0.5)


def normalize_creativity(creativity: float) -> float:
    """Maps an edge creativity on the 0..MAX_CREATIVITY scale onto 0..1."""
    return max(0.0, min(1.0, creativity / settings.MAX_CREATIVITY))


def calculate_speed_bonus(elapsed_seconds: float) -> float:
    if elapsed_seconds <= settings.FAST_SOLVE_SECONDS:
        return settings.MAX_SPEED_BONUS
    if elapsed_seconds <= settings.SPEED_DECAY_START_SECONDS:
        window = settings.SPEED_DECAY_START_SECONDS - settings.FAST_SOLVE_SECONDS
        return 1 + (settings.MAX_SPEED_BONUS - 1) * (settings.SPEED_DECAY_START_SECONDS - elapsed_seconds) / window
    decay = math.exp(
        -settings.SPEED_DECAY_RATE * (elapsed_seconds - settings.SPEED_DECAY_START_SECONDS) / settings.SPEED_DECAY_WINDOW_SECONDS
    )
    return max(settings.MIN_SPEED_BONUS, decay)


def longest_high_creativity_run(creativity_scores: Sequence[float]) -> int:
    longest = current = 0
    for score in creativity_scores:
        if score >= settings.HIGH_CREATIVITY_THRESHOLD:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def calculate_creativity_score(creativity_scores: Sequence[float]) -> int:
    """
    creativity_scores are normalized (0..1), one per edge of the finished chain.

    avg * 1000 * weight, boosted by 1.2 when at least 70% of edges are high-creativity,
    plus a flat bonus per exceptional edge and per edge of the longest high-creativity run.
    """
    if not creativity_scores:
        return 0
    average = sum(creativity_scores) / len(creativity_scores)
    score = average * settings.BASE_SCORE * settings.CREATIVITY_WEIGHT

    high = [s for s in creativity_scores if s >= settings.HIGH_CREATIVITY_THRESHOLD]
    if len(high) / len(creativity_scores) >= settings.HIGH_CREATIVITY_RATIO:
        score *= settings.HIGH_CREATIVITY_MULTIPLIER

    exceptional = sum(1 for s in creativity_scores if s >= settings.EXCEPTIONAL_CREATIVITY_THRESHOLD)
    score += exceptional * settings.EXCEPTIONAL_EDGE_BONUS
    score += longest_high_creativity_run(creativity_scores) * settings.CREATIVE_STREAK_BONUS
    return round_half_up(score)


def calculate_efficiency(chain_length: int, min_steps: int) -> Tuple[float, float]:
    """Returns (efficiency_multiplier, chain_penalty)."""
    extra = chain_length - min_steps
    if extra <= 0:
        return settings.OPTIMAL_EFFICIENCY_MULTIPLIER, 0.0
    multiplier = max(settings.MIN_EFFICIENCY_MULTIPLIER, settings.EFFICIENCY_DECAY ** extra)
    penalty = extra ** 1.5 * settings.EXTRA_STEP_PENALTY
    return multiplier, penalty


def calculate_score(
    start_time: float,
    end_time: float,
    chain_length: int,
    min_steps: int,
    creativity_scores: List[float],
) -> ScoreBreakdown:
    """Scores a finished chain. Times are Unix timestamps in seconds."""
    elapsed = max(0.0, end_time - start_time)
    speed_bonus = calculate_speed_bonus(elapsed)
    creativity_score = calculate_creativity_score(creativity_scores)
    efficiency_multiplier, chain_penalty = calculate_efficiency(chain_length, min_steps)

    raw = (settings.BASE_SCORE * speed_bonus + creativity_score) * efficiency_multiplier - chain_penalty
    final_score = max(0, round_half_up(raw))

    average = sum(creativity_scores) / len(creativity_scores) if creativity_scores else 0.0
    return ScoreBreakdown(
        base_score=settings.BASE_SCORE,
        speed_bonus=speed_bonus,
        creativity_score=creativity_score,
        efficiency_multiplier=efficiency_multiplier,
        chain_penalty=chain_penalty,
        final_score=final_score,
        breakdown=ScoreStats(
            time_elapsed=elapsed,
            optimal_steps=min_steps,
            actual_steps=chain_length,
            average_creativity=average,
        ),
    )

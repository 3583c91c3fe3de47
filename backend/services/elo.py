"""
ELO Rating Engine for 1v1 pickup games: fixed K-factor, integer ratings.

Key design decisions:
- Start: 1200 ELO (standard chess default)
- K-factor: fixed at 32 for every player, no provisional bracket.
- Outcomes are win/loss only. A tied score is not an outcome and never
  reaches this module (see match_lifecycle).
- Ratings are integers. The points exchanged are rounded half away from
  zero once and applied to both sides, so the pair stays zero-sum.
- Floor: no rating drops below 100 (configurable). The floor is the only
  place the exchange stops being zero-sum.
- Formula: E = 1 / (1 + 10^((opp - self) / 400))
           ΔR = K * (actual - expected)
"""
import math

DEFAULT_ELO = 1200
DEFAULT_K_FACTOR = 32
DEFAULT_RATING_FLOOR = 100

WIN = 1
LOSS = 0


def expected_score(rating, opponent_rating):
    """Calculate the expected score (win probability) for a player.

    Uses the standard ELO expected score formula:
    E = 1 / (1 + 10^((opponent - player) / 400))
    """
    return 1.0 / (1.0 + math.pow(10, (opponent_rating - rating) / 400.0))


def round_half_away(value):
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    magnitude = int(math.floor(abs(value) + 0.5))
    return magnitude if value >= 0 else -magnitude


def update_ratings(rating_a, rating_b, outcome_a,
                   k_factor=DEFAULT_K_FACTOR, floor=DEFAULT_RATING_FLOOR):
    """Return ``(new_rating_a, new_rating_b)`` after a decided game.

    Args:
        rating_a: Current rating of player A.
        rating_b: Current rating of player B.
        outcome_a: 1 if A won, 0 if A lost.
        k_factor: Maximum points exchanged per game.
        floor: Lowest rating either player can be left with.

    Pure: the same inputs always give the same result.
    """
    if isinstance(outcome_a, bool) or outcome_a not in (WIN, LOSS):
        raise ValueError('outcome_a must be 1 (win) or 0 (loss)')

    expected_a = expected_score(rating_a, rating_b)
    actual_a = float(outcome_a)
    delta = round_half_away(k_factor * (actual_a - expected_a))

    new_a = max(int(rating_a) + delta, floor)
    new_b = max(int(rating_b) - delta, floor)
    return new_a, new_b

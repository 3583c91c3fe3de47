"""
Opponent search: filter, score and rank nearby players.

Composite score (weights default to 0.5 / 0.3 / 0.2 and must sum to 1):

    w1 * (1 - min(rating_gap, max_gap) / max_gap)   skill proximity
  + w2 * (1 - distance / radius)                    locality
  + w3 * playstyle_match                            social fit

Ties are broken by distance, then rating gap, then player id, so a given
pool always ranks the same way.
"""
import logging
from dataclasses import dataclass, field

from backend.errors import InvalidCoordinate
from backend.services.geo import distance_km, midpoint, validate_point
from backend.time_utils import parse_iso_datetime

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = (0.5, 0.3, 0.2)
DEFAULT_MAX_RATING_GAP = 400
DEFAULT_RESULT_LIMIT = 10

# Unordered playstyle pairs that partially match; identical styles score 1.
_PARTIAL_PLAYSTYLE_PAIRS = {
    frozenset(('competitive', 'casual')): 0.5,
}


@dataclass(frozen=True)
class MatchRequest:
    player_id: int
    rating: int
    playstyle: str
    position: tuple
    radius_km: float


@dataclass
class MatchCandidate:
    player: object
    distance_km: float
    rating_gap: int
    playstyle_score: float
    score: float
    midpoint: tuple = field(default=None)

    @property
    def player_id(self):
        return self.player.id

    @property
    def playstyle_compatible(self):
        return self.playstyle_score > 0

    def to_dict(self):
        player = self.player.to_dict() if hasattr(self.player, 'to_dict') else {'id': self.player.id}
        return {
            'player': player,
            'distance_km': round(self.distance_km, 2),
            'rating_gap': self.rating_gap,
            'playstyle_compatible': self.playstyle_compatible,
            'playstyle_score': self.playstyle_score,
            'score': round(self.score, 4),
            'midpoint': {
                'latitude': self.midpoint[0],
                'longitude': self.midpoint[1],
            } if self.midpoint else None,
        }


def playstyle_match(style_a, style_b):
    if style_a and style_a == style_b:
        return 1.0
    return _PARTIAL_PLAYSTYLE_PAIRS.get(frozenset((style_a, style_b)), 0.0)


def _validate_weights(weights):
    if len(weights) != 3:
        raise ValueError('Exactly three weights are required')
    if any(w < 0 for w in weights):
        raise ValueError('Weights must be non-negative')
    if abs(sum(weights) - 1.0) > 1e-9:
        raise ValueError('Weights must sum to 1')
    return tuple(float(w) for w in weights)


def composite_score(rating_gap, distance, radius_km, style_score,
                    weights=DEFAULT_WEIGHTS, max_rating_gap=DEFAULT_MAX_RATING_GAP):
    w_skill, w_distance, w_style = weights
    clamped_gap = min(rating_gap, max_rating_gap)
    return (
        w_skill * (1 - clamped_gap / max_rating_gap)
        + w_distance * (1 - distance / radius_km)
        + w_style * style_score
    )


def windows_overlap(windows, start, end):
    """True if any ``{"start", "end"}`` window overlaps ``[start, end)``."""
    for window in windows or []:
        if not isinstance(window, dict):
            continue
        window_start = parse_iso_datetime(window.get('start'))
        window_end = parse_iso_datetime(window.get('end'))
        if not window_start or not window_end:
            continue
        if window_start < end and start < window_end:
            return True
    return False


def availability_predicate(start, end):
    """Predicate over players' stored availability for the requested window."""
    return lambda candidate: windows_overlap(getattr(candidate, 'availability', None), start, end)


def rank_candidates(request, pool, is_available=None, weights=DEFAULT_WEIGHTS,
                    max_rating_gap=DEFAULT_MAX_RATING_GAP, limit=DEFAULT_RESULT_LIMIT):
    """Return the best ``limit`` opponents for ``request`` out of ``pool``.

    Args:
        request: MatchRequest describing who is searching, from where.
        pool: Iterable of players exposing id, elo_rating, playstyle, position.
        is_available: Optional predicate; players it rejects are dropped.
        weights: (skill, distance, playstyle) weights summing to 1.
        max_rating_gap: Rating gap at which the skill term reaches zero.
        limit: Maximum number of candidates returned; None returns all.

    Raises InvalidCoordinate for a malformed request position. Pool players
    with a missing or malformed position are skipped. An empty result is not
    an error.
    """
    origin = validate_point(request.position)
    radius = float(request.radius_km)
    if radius <= 0:
        raise ValueError('Radius must be positive')
    if max_rating_gap <= 0:
        raise ValueError('max_rating_gap must be positive')
    if limit is not None and limit < 1:
        raise ValueError('limit must be at least 1')
    weights = _validate_weights(weights)

    candidates = []
    for player in pool:
        if player.id == request.player_id:
            continue
        position = getattr(player, 'position', None)
        if position is None:
            continue
        try:
            position = validate_point(position)
        except InvalidCoordinate:
            logger.warning('Skipping player %s with invalid stored position %r', player.id, position)
            continue
        distance = distance_km(origin, position)
        if distance > radius:
            continue
        if is_available is not None and not is_available(player):
            continue

        rating_gap = abs(int(request.rating) - int(player.elo_rating))
        style_score = playstyle_match(request.playstyle, player.playstyle)
        candidates.append(MatchCandidate(
            player=player,
            distance_km=distance,
            rating_gap=rating_gap,
            playstyle_score=style_score,
            score=composite_score(
                rating_gap, distance, radius, style_score,
                weights=weights, max_rating_gap=max_rating_gap,
            ),
        ))

    candidates.sort(key=lambda c: (-c.score, c.distance_km, c.rating_gap, c.player_id))
    if limit is not None:
        candidates = candidates[:limit]

    for candidate in candidates:
        candidate.midpoint = midpoint(origin, candidate.player.position)
    return candidates

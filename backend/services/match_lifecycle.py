"""
Match lifecycle: scheduling, results, expiry.

    scheduled -> in_progress -> completed
    scheduled -> completed          (result reported without a start)
    scheduled -> expired            (scheduled time passed)

completed and expired are terminal. Every status change is a conditional
write on the status the caller observed, so two concurrent completions (or a
completion racing an expiry) cannot both win; the loser sees
InvalidTransition. Rating, stat and achievement writes share the status
change's transaction.
"""
import logging
from dataclasses import dataclass, field

from flask import current_app, has_app_context

from backend import storage
from backend.errors import InvalidParticipants, InvalidTransition
from backend.models import Match
from backend.services.achievements import evaluate_player_achievements, next_streak
from backend.services.elo import (
    DEFAULT_K_FACTOR, DEFAULT_RATING_FLOOR, LOSS, WIN, update_ratings,
)
from backend.services.geo import validate_point
from backend.time_utils import to_utc_naive, utcnow_naive

logger = logging.getLogger(__name__)

_COMPLETABLE_STATUSES = ('scheduled', 'in_progress')
_DEFAULT_MAX_SCORE = 99


def _setting(name, default):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


@dataclass
class MatchCompletion:
    """Outcome of completing a match: ratings before/after and new unlocks."""
    match: Match
    ratings: dict
    achievements: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'match': self.match.to_dict(),
            'ratings': {
                str(player_id): change for player_id, change in self.ratings.items()
            },
            'achievements': {
                str(player_id): [a.to_dict() for a in unlocked]
                for player_id, unlocked in self.achievements.items()
            },
        }


def _validate_score(raw_score, label, max_score):
    if isinstance(raw_score, bool) or not isinstance(raw_score, int):
        raise ValueError(f'{label} must be an integer')
    if raw_score < 0:
        raise ValueError(f'{label} must be non-negative')
    if raw_score > max_score:
        raise ValueError(f'{label} must be at most {max_score}')
    return raw_score


def create_match(creator_id, opponent_id, scheduled_time, midpoint, court_id=None):
    """Schedule a match between two distinct players at ``midpoint``."""
    if creator_id == opponent_id:
        raise InvalidParticipants('A player cannot be matched against themselves')
    if scheduled_time is None:
        raise ValueError('scheduled_time is required')
    latitude, longitude = validate_point(midpoint)

    with storage.transaction():
        storage.load_player(creator_id)
        storage.load_player(opponent_id)
        if court_id is not None:
            storage.load_court(court_id)
        match = storage.add_match(Match(
            creator_id=creator_id,
            opponent_id=opponent_id,
            court_id=court_id,
            scheduled_time=to_utc_naive(scheduled_time),
            status='scheduled',
            midpoint_latitude=latitude,
            midpoint_longitude=longitude,
        ))

    logger.info(
        'Match %s scheduled: player %s vs player %s at %s',
        match.id, creator_id, opponent_id, match.scheduled_time.isoformat(),
    )
    return match


def start_match(match_id):
    with storage.transaction():
        match = storage.load_match(match_id)
        if match.status != 'scheduled':
            raise InvalidTransition(
                f'Match {match_id} cannot start from {match.status}',
                match_id=match_id, status=match.status,
            )
        match = storage.save_match_conditional(match_id, 'scheduled', status='in_progress')

    logger.info('Match %s started', match_id)
    return match


def _apply_result(creator, opponent, winner_id, k_factor, rating_floor, tie_counts):
    if winner_id is None:
        if tie_counts:
            creator.total_matches = (creator.total_matches or 0) + 1
            opponent.total_matches = (opponent.total_matches or 0) + 1
        return

    outcome = WIN if winner_id == creator.id else LOSS
    creator.elo_rating, opponent.elo_rating = update_ratings(
        creator.elo_rating, opponent.elo_rating, outcome,
        k_factor=k_factor, floor=rating_floor,
    )
    for player in (creator, opponent):
        won = player.id == winner_id
        player.total_matches = (player.total_matches or 0) + 1
        if won:
            player.wins = (player.wins or 0) + 1
        else:
            player.losses = (player.losses or 0) + 1
        player.current_streak = next_streak(player.current_streak, won)


def complete_match(match_id, creator_score, opponent_score, now=None):
    """Record the final score and settle ratings, stats and achievements.

    Equal scores complete the match without moving either rating.
    """
    max_score = _setting('MATCH_MAX_SCORE', _DEFAULT_MAX_SCORE)
    creator_score = _validate_score(creator_score, 'creator_score', max_score)
    opponent_score = _validate_score(opponent_score, 'opponent_score', max_score)
    now = to_utc_naive(now) or utcnow_naive()
    k_factor = _setting('ELO_K_FACTOR', DEFAULT_K_FACTOR)
    rating_floor = _setting('ELO_RATING_FLOOR', DEFAULT_RATING_FLOOR)
    tie_counts = _setting('MATCH_TIE_COUNTS_AS_PLAYED', True)

    with storage.transaction():
        match = storage.load_match(match_id)
        observed_status = match.status
        if observed_status not in _COMPLETABLE_STATUSES:
            raise InvalidTransition(
                f'Match {match_id} is already {observed_status}',
                match_id=match_id, status=observed_status,
            )
        match = storage.save_match_conditional(
            match_id, observed_status,
            status='completed',
            creator_score=creator_score,
            opponent_score=opponent_score,
            completed_at=now,
            updated_at=now,
        )

        # Read both, compute, write both; locks taken in ascending id order.
        players = storage.lock_players(match.participant_ids)
        creator = players[match.creator_id]
        opponent = players[match.opponent_id]
        before = {creator.id: creator.elo_rating, opponent.id: opponent.elo_rating}

        _apply_result(creator, opponent, match.winner_id, k_factor, rating_floor, tie_counts)
        for player_id in sorted(players):
            storage.save_player(players[player_id])

        storage.append_history_record(
            match.id,
            creator.id, (before[creator.id], creator.elo_rating),
            opponent.id, (before[opponent.id], opponent.elo_rating),
        )

        ratings = {}
        unlocked = {}
        for player_id in sorted(players):
            player = players[player_id]
            ratings[player_id] = {
                'before': before[player_id],
                'after': player.elo_rating,
                'change': player.elo_rating - before[player_id],
            }
            unlocked[player_id] = evaluate_player_achievements(player, now=now)

    if match.winner_id is None:
        logger.info('Match %s completed as a tie %s-%s, ratings unchanged',
                    match_id, creator_score, opponent_score)
    else:
        logger.info('Match %s completed %s-%s, winner player %s',
                    match_id, creator_score, opponent_score, match.winner_id)
    return MatchCompletion(match=match, ratings=ratings, achievements=unlocked)


def expire_match(match_id, now=None):
    """Expire a scheduled match whose scheduled time has passed."""
    now = to_utc_naive(now) or utcnow_naive()
    with storage.transaction():
        match = storage.load_match(match_id)
        if match.status != 'scheduled':
            raise InvalidTransition(
                f'Match {match_id} cannot expire from {match.status}',
                match_id=match_id, status=match.status,
            )
        if not now > match.scheduled_time:
            raise InvalidTransition(
                f'Match {match_id} is not past its scheduled time',
                match_id=match_id, status=match.status,
            )
        match = storage.save_match_conditional(
            match_id, 'scheduled', status='expired', updated_at=now,
        )

    logger.info('Match %s expired', match_id)
    return match


def expire_overdue_matches(now=None):
    """Expire every scheduled match whose time has passed. Returns the count."""
    now = to_utc_naive(now) or utcnow_naive()
    with storage.transaction():
        expired = storage.expire_scheduled_before(now)
    if expired:
        logger.info('Expired %s overdue matches', expired)
    return expired

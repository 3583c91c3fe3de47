"""Storage operations the engine consumes, backed by Flask-SQLAlchemy.

Nothing here commits. Callers own the transaction so a status change and the
rating/achievement writes that go with it commit or roll back together.
"""
import logging
from contextlib import contextmanager
from functools import wraps

from sqlalchemy.exc import IntegrityError, OperationalError

from backend.app import db
from backend.errors import (
    CourtNotFound, InvalidTransition, MatchNotFound, PlayerNotFound, StorageUnavailable,
)
from backend.models import (
    Achievement, Court, Match, MatchHistory, Player, UnlockedAchievement,
)
from backend.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


def storage_call(f):
    """Surface driver-level connection failures as StorageUnavailable."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except OperationalError as exc:
            logger.warning('Storage call %s failed: %s', f.__name__, exc)
            raise StorageUnavailable() from exc
    return decorated


@contextmanager
def transaction():
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield db.session
        db.session.commit()
    except OperationalError as exc:
        db.session.rollback()
        logger.warning('Transaction rolled back, storage unavailable: %s', exc)
        raise StorageUnavailable() from exc
    except Exception:
        db.session.rollback()
        raise


@storage_call
def load_player(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        raise PlayerNotFound(f'Player {player_id} not found')
    return player


@storage_call
def save_player(player):
    db.session.add(player)
    db.session.flush()
    return player


@storage_call
def lock_players(player_ids):
    """Load players for update, always locking in ascending id order.

    Two completions touching an overlapping pair of players therefore
    acquire row locks in the same order and cannot deadlock. Returns a dict
    keyed by player id.
    """
    ordered_ids = sorted(set(player_ids))
    players = Player.query.filter(Player.id.in_(ordered_ids))\
        .order_by(Player.id.asc())\
        .with_for_update()\
        .populate_existing()\
        .all()
    by_id = {player.id: player for player in players}
    missing = [pid for pid in ordered_ids if pid not in by_id]
    if missing:
        raise PlayerNotFound(f'Player {missing[0]} not found')
    return by_id


@storage_call
def load_candidate_pool(exclude_player_id=None):
    """Players with a declared position, the raw input to opponent search."""
    query = Player.query.filter(
        Player.latitude.isnot(None),
        Player.longitude.isnot(None),
    )
    if exclude_player_id is not None:
        query = query.filter(Player.id != exclude_player_id)
    return query.order_by(Player.id.asc()).all()


@storage_call
def load_court(court_id):
    court = db.session.get(Court, court_id)
    if not court:
        raise CourtNotFound(f'Court {court_id} not found')
    return court


@storage_call
def load_match(match_id):
    match = db.session.get(Match, match_id)
    if not match:
        raise MatchNotFound(f'Match {match_id} not found')
    return match


@storage_call
def add_match(match):
    db.session.add(match)
    db.session.flush()
    return match


@storage_call
def save_match_conditional(match_id, expected_status, **changes):
    """Compare-and-swap on match status.

    Applies ``changes`` only while the row is still in ``expected_status``
    (a status string or a collection of them). When no row matches, another
    writer got there first or the match was never eligible; both surface as
    InvalidTransition.
    """
    if isinstance(expected_status, str):
        expected = [expected_status]
    else:
        expected = list(expected_status)

    values = dict(changes)
    values.setdefault('updated_at', utcnow_naive())
    updated = Match.query.filter(
        Match.id == match_id,
        Match.status.in_(expected),
    ).update(values, synchronize_session=False)

    if updated != 1:
        logger.warning(
            'Conditional update of match %s lost (expected status in %s)',
            match_id, expected,
        )
        current = db.session.get(Match, match_id, populate_existing=True)
        raise InvalidTransition(
            f'Match {match_id} is no longer {" or ".join(expected)}',
            match_id=match_id,
            status=current.status if current else None,
        )
    return db.session.get(Match, match_id, populate_existing=True)


@storage_call
def expire_scheduled_before(cutoff):
    """Bulk conditional expiry of scheduled matches whose time is before ``cutoff``."""
    return Match.query.filter(
        Match.status == 'scheduled',
        Match.scheduled_time < cutoff,
    ).update({'status': 'expired', 'updated_at': cutoff}, synchronize_session=False)


@storage_call
def append_history_record(match_id, player1_id, player1_ratings, player2_id, player2_ratings):
    """Append the immutable before/after rating record for a completed match."""
    record = MatchHistory(
        match_id=match_id,
        player1_id=player1_id,
        player1_elo_before=player1_ratings[0],
        player1_elo_after=player1_ratings[1],
        player2_id=player2_id,
        player2_elo_before=player2_ratings[0],
        player2_elo_after=player2_ratings[1],
    )
    db.session.add(record)
    db.session.flush()
    return record


@storage_call
def load_history_for_player(player_id, since=None):
    query = MatchHistory.query.filter(
        (MatchHistory.player1_id == player_id) | (MatchHistory.player2_id == player_id)
    )
    if since is not None:
        query = query.filter(MatchHistory.created_at >= since)
    return query.order_by(MatchHistory.created_at.asc(), MatchHistory.id.asc()).all()


@storage_call
def load_achievement_catalog():
    return Achievement.query.order_by(Achievement.id.asc()).all()


@storage_call
def load_unlocked_set(player_id):
    rows = db.session.query(UnlockedAchievement.achievement_id).filter(
        UnlockedAchievement.player_id == player_id,
    ).all()
    return {row[0] for row in rows}


@storage_call
def load_unlocked_achievements(player_id):
    return UnlockedAchievement.query.filter_by(player_id=player_id)\
        .order_by(UnlockedAchievement.earned_at.asc(), UnlockedAchievement.id.asc())\
        .all()


@storage_call
def insert_unlock_if_absent(player_id, achievement_id, earned_at=None):
    """Insert an unlock unless the (player, achievement) pair already exists.

    The unique constraint decides. Returns the new row, or None when another
    writer already holds the pair.
    """
    unlock = UnlockedAchievement(
        player_id=player_id,
        achievement_id=achievement_id,
        earned_at=earned_at or utcnow_naive(),
    )
    try:
        with db.session.begin_nested():
            db.session.add(unlock)
    except IntegrityError:
        logger.info(
            'Achievement %s already unlocked for player %s', achievement_id, player_id,
        )
        return None
    return unlock

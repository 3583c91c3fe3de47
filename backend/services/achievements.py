"""Achievement unlocks and win/loss streak bookkeeping."""
import logging

from backend import storage

logger = logging.getLogger(__name__)


def _stat_for_requirement(kind, stats):
    if kind == 'wins':
        return stats.get('wins')
    if kind == 'elo':
        return stats.get('elo_rating')
    if kind == 'matches':
        return stats.get('total_matches')
    if kind == 'streak':
        return stats.get('current_streak')
    return None


def requirement_met(kind, threshold, stats):
    """True when ``stats`` satisfy one catalog requirement. Unknown kinds never match."""
    value = _stat_for_requirement(kind, stats)
    if value is None or threshold is None:
        return False
    return value >= threshold


def player_stats(player):
    return {
        'wins': player.wins or 0,
        'elo_rating': player.elo_rating,
        'total_matches': player.total_matches or 0,
        'current_streak': player.current_streak or 0,
    }


def pending_unlocks(stats, catalog, unlocked_ids):
    """Catalog entries not yet unlocked whose requirement ``stats`` now meet."""
    unlocked = set(unlocked_ids or ())
    return [
        achievement for achievement in catalog
        if achievement.id not in unlocked
        and requirement_met(achievement.requirement_type, achievement.requirement_value, stats)
    ]


def next_streak(current_streak, won):
    """Streak after one decided game: extend a run of the same result, else restart at ±1."""
    current = current_streak or 0
    if won:
        return current + 1 if current > 0 else 1
    return current - 1 if current < 0 else -1


def evaluate_player_achievements(player, now=None):
    """Unlock every achievement the player newly qualifies for.

    Returns the achievements actually unlocked by this call. Running it again
    with the same or higher stats unlocks nothing twice.
    """
    catalog = storage.load_achievement_catalog()
    unlocked_ids = storage.load_unlocked_set(player.id)
    unlocked = []
    for achievement in pending_unlocks(player_stats(player), catalog, unlocked_ids):
        row = storage.insert_unlock_if_absent(player.id, achievement.id, earned_at=now)
        if row is None:
            continue
        unlocked.append(achievement)

    if unlocked:
        logger.info(
            'Player %s unlocked %s', player.id,
            ', '.join(achievement.name for achievement in unlocked),
        )
    return unlocked

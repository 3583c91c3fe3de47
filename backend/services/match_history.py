"""Per-player match history: rating progression and win/loss summary."""
from datetime import timedelta

from backend import storage
from backend.time_utils import utcnow_naive

TIME_RANGES = {
    '7days': timedelta(days=7),
    '30days': timedelta(days=30),
    '90days': timedelta(days=90),
    'all': None,
}
DEFAULT_TIME_RANGE = '30days'


def _result_for(record, player_id):
    before, after = record.rating_change_for(player_id)
    match = record.match
    if match is None or match.winner_id is None:
        result = 'tie'
    elif match.winner_id == player_id:
        result = 'win'
    else:
        result = 'loss'
    return before, after, result


def _streaks(results):
    """(current, best) streaks over results ordered oldest first; ties break a run."""
    current = 0
    best = 0
    for result in results:
        if result == 'win':
            current = current + 1 if current > 0 else 1
        elif result == 'loss':
            current = current - 1 if current < 0 else -1
        else:
            current = 0
        best = max(best, current)
    return current, best


def player_history(player_id, time_range=DEFAULT_TIME_RANGE, now=None):
    """History entries, rating series and summary stats for one player.

    ``time_range`` is one of 7days, 30days, 90days or all.
    """
    if time_range not in TIME_RANGES:
        raise ValueError(f'Unknown time range: {time_range}')
    storage.load_player(player_id)

    window = TIME_RANGES[time_range]
    since = None
    if window is not None:
        since = (now or utcnow_naive()) - window

    entries = []
    rating_series = []
    results = []
    for record in storage.load_history_for_player(player_id, since=since):
        before, after, result = _result_for(record, player_id)
        opponent_id = record.player2_id if record.player1_id == player_id else record.player1_id
        results.append(result)
        entries.append({
            'match_id': record.match_id,
            'opponent_id': opponent_id,
            'result': result,
            'elo_before': before,
            'elo_after': after,
            'elo_change': after - before,
            'match_score': record.match.to_dict()['match_score'] if record.match else None,
            'completed_at': record.created_at.isoformat() if record.created_at else None,
        })
        rating_series.append({
            'date': record.created_at.isoformat() if record.created_at else None,
            'elo': after,
        })

    wins = results.count('win')
    losses = results.count('loss')
    decided = wins + losses
    current_streak, best_streak = _streaks(results)
    return {
        'player_id': player_id,
        'time_range': time_range,
        'matches': list(reversed(entries)),
        'elo_history': rating_series,
        'stats': {
            'total': len(results),
            'wins': wins,
            'losses': losses,
            'win_rate': round((wins / decided) * 100, 1) if decided else 0,
            'current_streak': current_streak,
            'best_streak': best_streak,
        },
    }

"""Opponent search and match lifecycle routes."""
from flask import Blueprint, current_app, request, jsonify
from backend import storage
from backend.auth_utils import acting_player_error, login_required, participant_required
from backend.models import PLAYSTYLES
from backend.services.geo import midpoint as geo_midpoint
from backend.services.match_lifecycle import (
    complete_match, create_match, expire_match, expire_overdue_matches, start_match,
)
from backend.services.matchmaking import (
    MatchRequest, availability_predicate, rank_candidates,
)
from backend.time_utils import parse_iso_datetime

matches_bp = Blueprint('matches', __name__)

_MAX_RESULT_LIMIT = 50


def _json_payload():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return None
    return data


def _parse_int(raw_value):
    if isinstance(raw_value, bool):
        return None
    try:
        return int(raw_value)
    except (TypeError, ValueError):
        return None


def _parse_score(raw_value):
    # Fractional scores are rejected, not truncated
    if isinstance(raw_value, float):
        return None
    return _parse_int(raw_value)


def _parse_float(raw_value):
    if raw_value is None or isinstance(raw_value, bool):
        return None
    try:
        return float(raw_value)
    except (TypeError, ValueError):
        return None


@matches_bp.route('/candidates', methods=['POST'])
@login_required
def find_candidates():
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400

    error = acting_player_error(_parse_int(data.get('player_id', request.current_player.id)))
    if error:
        return error
    player = request.current_player

    if 'latitude' in data or 'longitude' in data:
        position = (data.get('latitude'), data.get('longitude'))
    else:
        position = player.position
        if position is None:
            return jsonify({'error': 'Location required'}), 400

    radius_km = _parse_float(data.get(
        'radius_km', current_app.config.get('MATCHMAKING_DEFAULT_RADIUS_KM', 10.0)
    ))
    max_radius = current_app.config.get('MATCHMAKING_MAX_RADIUS_KM', 50.0)
    if radius_km is None or radius_km <= 0 or radius_km > max_radius:
        return jsonify({'error': f'Radius must be between 0 and {max_radius:g} km'}), 400

    playstyle = str(data.get('playstyle') or player.playstyle or '').strip().lower()
    if playstyle not in PLAYSTYLES:
        return jsonify({'error': 'Invalid playstyle'}), 400

    start = parse_iso_datetime(data.get('start'))
    end = parse_iso_datetime(data.get('end'))
    if not start or not end:
        return jsonify({'error': 'Both start and end times are required'}), 400
    if end <= start:
        return jsonify({'error': 'End time must be after start time'}), 400

    limit = _parse_int(data.get(
        'limit', current_app.config.get('MATCHMAKING_RESULT_LIMIT', 10)
    ))
    if limit is None or limit < 1:
        return jsonify({'error': 'Limit must be a positive integer'}), 400
    limit = min(limit, _MAX_RESULT_LIMIT)

    match_request = MatchRequest(
        player_id=player.id,
        rating=player.elo_rating,
        playstyle=playstyle,
        position=position,
        radius_km=radius_km,
    )
    candidates = rank_candidates(
        match_request,
        storage.load_candidate_pool(exclude_player_id=player.id),
        is_available=availability_predicate(start, end),
        weights=current_app.config.get('MATCHMAKING_WEIGHTS', (0.5, 0.3, 0.2)),
        max_rating_gap=current_app.config.get('MATCHMAKING_MAX_RATING_GAP', 400),
        limit=limit,
    )
    return jsonify({
        'candidates': [candidate.to_dict() for candidate in candidates],
        'count': len(candidates),
    })


@matches_bp.route('', methods=['POST'])
@login_required
def create():
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400

    creator_id = _parse_int(data.get('creator_id', request.current_player.id))
    opponent_id = _parse_int(data.get('opponent_id'))
    error = acting_player_error(creator_id)
    if error:
        return error
    if opponent_id is None:
        return jsonify({'error': 'Opponent ID required'}), 400

    scheduled_time = parse_iso_datetime(data.get('scheduled_time'))
    if not scheduled_time:
        return jsonify({'error': 'A valid scheduled_time is required'}), 400

    court_id = None
    if data.get('court_id') is not None:
        court_id = _parse_int(data.get('court_id'))
        if court_id is None:
            return jsonify({'error': 'Court ID must be numeric'}), 400

    raw_midpoint = data.get('midpoint')
    if isinstance(raw_midpoint, dict):
        midpoint = (raw_midpoint.get('latitude'), raw_midpoint.get('longitude'))
    elif raw_midpoint is None:
        opponent = storage.load_player(opponent_id)
        creator_position = request.current_player.position
        if creator_position is None or opponent.position is None:
            return jsonify({'error': 'Midpoint required when a player has no location'}), 400
        midpoint = geo_midpoint(creator_position, opponent.position)
    else:
        return jsonify({'error': 'Midpoint must be an object with latitude and longitude'}), 400

    expire_overdue_matches()
    match = create_match(
        creator_id, opponent_id, scheduled_time, midpoint, court_id=court_id,
    )
    return jsonify({'match': match.to_dict()}), 201


@matches_bp.route('/<int:match_id>', methods=['GET'])
def get_match(match_id):
    match = storage.load_match(match_id)
    return jsonify({'match': match.to_dict()})


@matches_bp.route('/<int:match_id>/start', methods=['POST'])
@login_required
@participant_required
def start(match_id):
    match = start_match(match_id)
    return jsonify({'match': match.to_dict()})


@matches_bp.route('/<int:match_id>/complete', methods=['POST'])
@login_required
@participant_required
def complete(match_id):
    """Report the final score. Ratings settle immediately."""
    data = _json_payload()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    creator_score = _parse_score(data.get('creator_score'))
    opponent_score = _parse_score(data.get('opponent_score'))
    if creator_score is None or opponent_score is None:
        return jsonify({'error': 'Both scores must be integers'}), 400

    try:
        result = complete_match(match_id, creator_score, opponent_score)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(result.to_dict())


@matches_bp.route('/<int:match_id>/expire', methods=['POST'])
@login_required
def expire(match_id):
    match = expire_match(match_id)
    return jsonify({'match': match.to_dict()})

"""Read-only player views: rating history and unlocked achievements."""
from flask import Blueprint, request, jsonify
from backend import storage
from backend.services.match_history import DEFAULT_TIME_RANGE, TIME_RANGES, player_history

players_bp = Blueprint('players', __name__)


@players_bp.route('/<int:player_id>', methods=['GET'])
def get_player(player_id):
    player = storage.load_player(player_id)
    return jsonify({'player': player.to_dict()})


@players_bp.route('/<int:player_id>/history', methods=['GET'])
def get_history(player_id):
    time_range = (request.args.get('range') or DEFAULT_TIME_RANGE).strip().lower()
    if time_range not in TIME_RANGES:
        return jsonify({'error': f'Range must be one of {", ".join(TIME_RANGES)}'}), 400
    return jsonify(player_history(player_id, time_range=time_range))


@players_bp.route('/<int:player_id>/achievements', methods=['GET'])
def get_achievements(player_id):
    storage.load_player(player_id)
    unlocked = storage.load_unlocked_achievements(player_id)
    return jsonify({
        'player_id': player_id,
        'achievements': [row.to_dict() for row in unlocked],
    })

from functools import wraps
from flask import request, jsonify, current_app
import jwt
from backend import storage
from backend.app import db
from backend.models import Player


def generate_token(player_id):
    """Generate a JWT token for a player."""
    from datetime import datetime, timedelta, timezone
    payload = {
        'player_id': player_id,
        'exp': datetime.now(timezone.utc) + timedelta(
            hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24)
        ),
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def _normalize_bearer_token(raw_token):
    token = str(raw_token or '').strip()
    if token.startswith('Bearer '):
        token = token.split(' ', 1)[1].strip()
    return token


def _decode_player_from_token(token):
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Authentication required'
    try:
        payload = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
        player = db.session.get(Player, payload['player_id'])
        if not player:
            return None, 'Player not found'
        return player, None
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except (jwt.InvalidTokenError, KeyError):
        return None, 'Invalid token'


def login_required(f):
    """Decorator to require an authenticated player on a route.

    The resolved player is exposed as ``request.current_player`` for access
    checks only; engine calls still take explicit player ids.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        player, error = _decode_player_from_token(auth_header)
        if error:
            return jsonify({'error': error}), 401
        request.current_player = player
        return f(*args, **kwargs)
    return decorated


def participant_required(f):
    """Allow only the two players of the ``match_id`` in the URL.

    Use beneath ``login_required``. Unknown matches raise MatchNotFound.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        match = storage.load_match(kwargs['match_id'])
        if request.current_player.id not in match.participant_ids:
            return jsonify({'error': 'You are not a player in this match'}), 403
        return f(*args, **kwargs)
    return decorated


def acting_player_error(player_id):
    """403 reply when ``player_id`` is not the authenticated player, else None."""
    if player_id != request.current_player.id:
        return jsonify({'error': 'You can only act as yourself'}), 403
    return None

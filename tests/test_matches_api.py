"""Tests for the opponent search and match lifecycle endpoints."""
import json
from datetime import timedelta

from backend.app import db
from backend.auth_utils import generate_token
from backend.models import Match, Player
from backend.time_utils import utcnow_naive

WINDOW = [{'start': '2026-06-01T17:00:00Z', 'end': '2026-06-01T21:00:00Z'}]


def _auth(player):
    return {'Authorization': f'Bearer {generate_token(player.id)}'}


def _in_hours(hours):
    return (utcnow_naive() + timedelta(hours=hours)).isoformat()


def _search(client, player, **overrides):
    payload = {
        'start': '2026-06-01T18:00:00Z',
        'end': '2026-06-01T20:00:00Z',
    }
    payload.update(overrides)
    return client.post('/api/matches/candidates', json=payload, headers=_auth(player))


def _create(client, creator, opponent, **overrides):
    payload = {'opponent_id': opponent.id, 'scheduled_time': _in_hours(2)}
    payload.update(overrides)
    return client.post('/api/matches', json=payload, headers=_auth(creator))


def test_routes_require_token(client, make_player):
    opponent = make_player()
    res = client.post('/api/matches', json={'opponent_id': opponent.id})
    assert res.status_code == 401
    res = client.post('/api/matches/candidates', json={},
                      headers={'Authorization': 'Bearer not-a-token'})
    assert res.status_code == 401
    assert json.loads(res.data)['error'] == 'Invalid token'


def test_candidate_search_ranks_available_nearby_players(client, make_player):
    me = make_player('me')
    make_player('close', elo_rating=1190, latitude=40.01, availability_json=json.dumps(WINDOW))
    make_player('far', latitude=41.0, availability_json=json.dumps(WINDOW))
    make_player('busy', latitude=40.01)

    res = _search(client, me, radius_km=10)
    assert res.status_code == 200
    data = json.loads(res.data)
    assert data['count'] == 1
    candidate = data['candidates'][0]
    assert candidate['player']['username'] == 'close'
    assert candidate['rating_gap'] == 10
    assert candidate['playstyle_compatible'] is True
    assert candidate['midpoint']['latitude'] > 40.0


def test_candidate_search_validates_input(client, make_player):
    me = make_player()
    other = make_player()

    assert _search(client, me, radius_km=0).status_code == 400
    assert _search(client, me, radius_km=80).status_code == 400
    assert _search(client, me, playstyle='aggressive').status_code == 400
    assert _search(client, me, end='2026-06-01T17:00:00Z').status_code == 400
    assert _search(client, me, latitude=91, longitude=0).status_code == 400
    assert _search(client, me, player_id=other.id).status_code == 403


def test_candidate_search_requires_a_location(client, make_player):
    me = make_player(latitude=None, longitude=None)
    res = _search(client, me)
    assert res.status_code == 400
    assert json.loads(res.data)['error'] == 'Location required'


def test_create_and_complete_flow(client, make_player, achievements):
    creator = make_player('creator')
    opponent = make_player('opponent', latitude=40.02)

    res = _create(client, creator, opponent)
    assert res.status_code == 201
    match = json.loads(res.data)['match']
    assert match['status'] == 'scheduled'
    assert abs(match['midpoint']['latitude'] - 40.01) < 1e-6

    res = client.post(f'/api/matches/{match["id"]}/start', headers=_auth(opponent))
    assert json.loads(res.data)['match']['status'] == 'in_progress'

    res = client.post(f'/api/matches/{match["id"]}/complete', json={
        'creator_score': 11, 'opponent_score': 6,
    }, headers=_auth(creator))
    assert res.status_code == 200
    data = json.loads(res.data)
    assert data['match']['status'] == 'completed'
    assert data['match']['winner_id'] == creator.id
    assert data['match']['match_score'] == {'creator': 11, 'opponent': 6}
    assert data['ratings'][str(creator.id)] == {'before': 1200, 'after': 1216, 'change': 16}
    assert [a['name'] for a in data['achievements'][str(creator.id)]] == ['First Win']


def test_completed_match_rejects_second_report(client, make_player):
    creator, opponent = make_player(), make_player()
    match_id = json.loads(_create(client, creator, opponent).data)['match']['id']
    client.post(f'/api/matches/{match_id}/complete', json={
        'creator_score': 11, 'opponent_score': 9,
    }, headers=_auth(creator))

    res = client.post(f'/api/matches/{match_id}/complete', json={
        'creator_score': 0, 'opponent_score': 11,
    }, headers=_auth(opponent))
    assert res.status_code == 409
    assert db.session.get(Player, creator.id, populate_existing=True).elo_rating == 1216


def test_only_participants_can_report(client, make_player):
    creator, opponent, outsider = make_player(), make_player(), make_player()
    match_id = json.loads(_create(client, creator, opponent).data)['match']['id']

    res = client.post(f'/api/matches/{match_id}/complete', json={
        'creator_score': 11, 'opponent_score': 2,
    }, headers=_auth(outsider))
    assert res.status_code == 403
    assert db.session.get(Match, match_id).status == 'scheduled'


def test_complete_rejects_bad_scores(client, make_player):
    creator, opponent = make_player(), make_player()
    match_id = json.loads(_create(client, creator, opponent).data)['match']['id']

    res = client.post(f'/api/matches/{match_id}/complete', json={
        'creator_score': 'eleven', 'opponent_score': 2,
    }, headers=_auth(creator))
    assert res.status_code == 400
    res = client.post(f'/api/matches/{match_id}/complete', json={
        'creator_score': -3, 'opponent_score': 2,
    }, headers=_auth(creator))
    assert res.status_code == 400


def test_create_rejects_self_match_and_bad_midpoint(client, make_player):
    creator, opponent = make_player(), make_player()
    res = _create(client, creator, creator)
    assert res.status_code == 400

    res = _create(client, creator, opponent, midpoint={'latitude': 10, 'longitude': 200})
    assert res.status_code == 400
    res = _create(client, creator, opponent, creator_id=opponent.id)
    assert res.status_code == 403
    res = _create(client, creator, opponent, scheduled_time='tomorrow')
    assert res.status_code == 400
    assert Match.query.count() == 0


def test_create_with_unknown_opponent_or_court(client, make_player):
    creator, opponent = make_player(), make_player()
    res = _create(client, creator, opponent, midpoint={'latitude': 40, 'longitude': -74},
                  opponent_id=9999)
    assert res.status_code == 404
    res = _create(client, creator, opponent, court_id=777)
    assert res.status_code == 404


def test_create_expires_overdue_matches(client, make_player):
    creator, opponent = make_player(), make_player()
    overdue_id = json.loads(
        _create(client, creator, opponent, scheduled_time=_in_hours(-1)).data
    )['match']['id']

    _create(client, creator, opponent)
    assert db.session.get(Match, overdue_id, populate_existing=True).status == 'expired'


def test_expire_endpoint(client, make_player):
    creator, opponent = make_player(), make_player()
    upcoming_id = json.loads(_create(client, creator, opponent).data)['match']['id']
    res = client.post(f'/api/matches/{upcoming_id}/expire', headers=_auth(creator))
    assert res.status_code == 409

    match = db.session.get(Match, upcoming_id)
    match.scheduled_time = utcnow_naive() - timedelta(minutes=5)
    db.session.commit()
    res = client.post(f'/api/matches/{upcoming_id}/expire', headers=_auth(creator))
    assert res.status_code == 200
    assert json.loads(res.data)['match']['status'] == 'expired'


def test_get_match(client, make_player, sample_court):
    creator, opponent = make_player(), make_player()
    match_id = json.loads(
        _create(client, creator, opponent, court_id=sample_court.id).data
    )['match']['id']

    res = client.get(f'/api/matches/{match_id}')
    data = json.loads(res.data)['match']
    assert data['court']['name'] == 'Test Court'
    assert data['match_score'] is None
    assert data['winner_id'] is None


def test_fractional_score_is_rejected_not_truncated(client, make_player):
    creator, opponent = make_player(), make_player()
    match_id = json.loads(_create(client, creator, opponent).data)['match']['id']

    res = client.post(f'/api/matches/{match_id}/complete', json={
        'creator_score': 10.9, 'opponent_score': 10,
    }, headers=_auth(creator))
    assert res.status_code == 400
    assert db.session.get(Match, match_id, populate_existing=True).status == 'scheduled'
    assert db.session.get(Player, creator.id, populate_existing=True).total_matches == 0


def test_only_participants_can_start(client, make_player):
    creator, opponent, outsider = make_player(), make_player(), make_player()
    match_id = json.loads(_create(client, creator, opponent).data)['match']['id']

    res = client.post(f'/api/matches/{match_id}/start', headers=_auth(outsider))
    assert res.status_code == 403
    assert json.loads(res.data)['error'] == 'You are not a player in this match'
    assert client.post('/api/matches/4242/start', headers=_auth(creator)).status_code == 404


def test_expired_token_is_rejected(app, client, make_player):
    player = make_player()
    app.config['JWT_EXPIRATION_HOURS'] = -1
    headers = _auth(player)
    res = client.post('/api/matches/candidates', json={}, headers=headers)
    assert res.status_code == 401
    assert json.loads(res.data)['error'] == 'Token expired'


def test_token_for_deleted_player_is_rejected(client, make_player):
    player = make_player()
    headers = _auth(player)
    db.session.delete(player)
    db.session.commit()
    res = client.post('/api/matches/candidates', json={}, headers=headers)
    assert res.status_code == 401
    assert json.loads(res.data)['error'] == 'Player not found'

"""Tests for opponent filtering, scoring and ranking."""
from datetime import datetime
from types import SimpleNamespace

import pytest

from backend.errors import InvalidCoordinate
from backend.services.matchmaking import (
    MatchRequest, availability_predicate, composite_score, playstyle_match,
    rank_candidates, windows_overlap,
)


def _player(player_id, rating=1200, playstyle='competitive', position=(40.0, -74.0), **extra):
    return SimpleNamespace(
        id=player_id, elo_rating=rating, playstyle=playstyle, position=position, **extra
    )


def _request(rating=1200, playstyle='competitive', position=(40.0, -74.0), radius_km=10):
    return MatchRequest(
        player_id=1, rating=rating, playstyle=playstyle,
        position=position, radius_km=radius_km,
    )


def test_nearby_similar_player_scores_high_with_midpoint():
    candidate = _player(2, rating=1180, position=(40.01, -74.0))
    results = rank_candidates(_request(), [candidate])

    assert len(results) == 1
    result = results[0]
    assert result.player_id == 2
    assert result.rating_gap == 20
    assert result.distance_km == pytest.approx(1.11, abs=0.01)
    assert result.playstyle_compatible is True
    assert result.score > 0.9
    assert result.midpoint[0] == pytest.approx(40.005, abs=1e-6)
    assert result.midpoint[1] == pytest.approx(-74.0, abs=1e-6)


def test_requester_is_never_a_candidate():
    results = rank_candidates(_request(), [_player(1), _player(2)])
    assert [c.player_id for c in results] == [2]


def test_candidates_beyond_radius_are_excluded():
    near = _player(2, position=(40.05, -74.0))   # ~5.6 km
    far = _player(3, position=(40.2, -74.0))     # ~22 km
    results = rank_candidates(_request(radius_km=10), [near, far])
    assert [c.player_id for c in results] == [2]
    assert all(c.distance_km <= 10 for c in results)


def test_candidates_without_position_are_skipped():
    results = rank_candidates(_request(), [_player(2, position=None), _player(3)])
    assert [c.player_id for c in results] == [3]


def test_unavailable_candidates_are_excluded():
    pool = [_player(2), _player(3), _player(4)]
    results = rank_candidates(_request(), pool, is_available=lambda p: p.id != 3)
    assert [c.player_id for c in results] == [2, 4]


def test_empty_pool_is_not_an_error():
    assert rank_candidates(_request(), []) == []


def test_malformed_requester_position_raises_even_with_empty_pool():
    with pytest.raises(InvalidCoordinate):
        rank_candidates(_request(position=(95.0, -74.0)), [])


def test_non_positive_radius_is_rejected():
    with pytest.raises(ValueError):
        rank_candidates(_request(radius_km=0), [_player(2)])


def test_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        rank_candidates(_request(), [_player(2)], weights=(0.5, 0.5, 0.5))


def test_skill_proximity_outranks_locality():
    close_but_mismatched = _player(2, rating=1550, position=(40.001, -74.0))
    farther_but_even = _player(3, rating=1200, position=(40.05, -74.0))
    results = rank_candidates(_request(), [close_but_mismatched, farther_but_even])
    assert [c.player_id for c in results] == [3, 2]


def test_rating_gap_is_clamped_to_max_gap():
    way_off = _player(2, rating=2400, position=(40.0, -74.0))
    off = _player(3, rating=1600, position=(40.0, -74.0))
    results = rank_candidates(_request(), [way_off, off])
    assert results[0].score == pytest.approx(results[1].score)
    assert results[0].rating_gap == 400
    assert results[1].rating_gap == 1200


def test_identical_scores_fall_back_to_player_id():
    pool = [
        _player(5, rating=1200, position=(40.0, -74.0)),
        _player(4, rating=1200, position=(40.0, -74.0)),
        _player(3, rating=1200, position=(40.0, -74.0)),
    ]
    results = rank_candidates(_request(), pool)
    assert [c.player_id for c in results] == [3, 4, 5]


def test_equal_scores_prefer_closer_then_smaller_gap():
    # Clamped gaps zero the skill term; the two near players tie on score and distance.
    far = _player(2, rating=2000, position=(40.02, -74.0))
    near_big_gap = _player(3, rating=2400, position=(40.0, -74.0))
    near_small_gap = _player(4, rating=1700, position=(40.0, -74.0))
    results = rank_candidates(_request(), [far, near_big_gap, near_small_gap])
    assert [c.player_id for c in results] == [4, 3, 2]


def test_limit_caps_results():
    pool = [_player(i, rating=1200 + i) for i in range(2, 20)]
    results = rank_candidates(_request(), pool, limit=5)
    assert len(results) == 5
    assert [c.player_id for c in results] == [2, 3, 4, 5, 6]


def test_playstyle_compatibility_table():
    assert playstyle_match('casual', 'casual') == 1.0
    assert playstyle_match('competitive', 'casual') == 0.5
    assert playstyle_match('casual', 'competitive') == 0.5
    assert playstyle_match('friendly', 'competitive') == 0.0
    assert playstyle_match('friendly', 'casual') == 0.0


def test_friendly_vs_competitive_is_not_compatible():
    results = rank_candidates(_request(playstyle='friendly'), [_player(2, playstyle='competitive')])
    assert results[0].playstyle_compatible is False


def test_composite_score_components():
    assert composite_score(0, 0, 10, 1.0) == pytest.approx(1.0)
    assert composite_score(400, 10, 10, 0.0) == pytest.approx(0.0)
    assert composite_score(200, 5, 10, 0.5) == pytest.approx(0.25 + 0.15 + 0.1)


def test_windows_overlap():
    start = datetime(2026, 5, 1, 18, 0)
    end = datetime(2026, 5, 1, 20, 0)
    assert windows_overlap([{'start': '2026-05-01T19:00:00', 'end': '2026-05-01T21:00:00'}], start, end)
    assert not windows_overlap([{'start': '2026-05-01T20:00:00', 'end': '2026-05-01T21:00:00'}], start, end)
    assert not windows_overlap([{'start': 'garbage', 'end': None}, 'x'], start, end)
    assert not windows_overlap(None, start, end)


def test_availability_predicate_reads_player_windows():
    start = datetime(2026, 5, 1, 18, 0)
    end = datetime(2026, 5, 1, 20, 0)
    free = _player(2, availability=[{'start': '2026-05-01T17:00:00Z', 'end': '2026-05-01T18:30:00Z'}])
    busy = _player(3, availability=[])
    results = rank_candidates(_request(), [free, busy], is_available=availability_predicate(start, end))
    assert [c.player_id for c in results] == [2]


def test_corrupt_stored_position_is_skipped():
    good = _player(2, position=(40.01, -74.0))
    corrupt = _player(3, position=(95.0, -74.0))
    results = rank_candidates(_request(), [corrupt, good])
    assert [c.player_id for c in results] == [2]

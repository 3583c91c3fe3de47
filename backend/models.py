import json
from flask import current_app, has_app_context
from backend.app import db
from backend.services.elo import DEFAULT_ELO
from backend.time_utils import utcnow_naive

PLAYSTYLES = ('competitive', 'casual', 'friendly')
MATCH_STATUSES = ('scheduled', 'in_progress', 'completed', 'expired')
REQUIREMENT_TYPES = ('wins', 'elo', 'matches', 'streak')


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


def _isoformat(value):
    return value.isoformat() if value else None


def _default_rating():
    if has_app_context():
        return current_app.config.get('DEFAULT_RATING', DEFAULT_ELO)
    return DEFAULT_ELO


class Player(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    elo_rating = db.Column(db.Integer, default=_default_rating, nullable=False)
    playstyle = db.Column(db.String(20), default='casual', nullable=False)
    wins = db.Column(db.Integer, default=0, nullable=False)
    losses = db.Column(db.Integer, default=0, nullable=False)
    total_matches = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)  # +wins / -losses
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    availability_json = db.Column(db.Text, default='[]')  # [{"start": iso, "end": iso}]
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    __table_args__ = (
        db.CheckConstraint('elo_rating > 0', name='ck_player_rating_positive'),
        db.Index('ix_player_elo_rating', 'elo_rating'),
    )

    @property
    def position(self):
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def availability(self):
        windows = _safe_json(self.availability_json, [])
        return windows if isinstance(windows, list) else []

    @availability.setter
    def availability(self, windows):
        self.availability_json = json.dumps(list(windows or []))

    def to_dict(self):
        return {
            'id': self.id, 'username': self.username,
            'elo_rating': self.elo_rating, 'playstyle': self.playstyle,
            'wins': self.wins, 'losses': self.losses,
            'total_matches': self.total_matches,
            'current_streak': self.current_streak,
            'latitude': self.latitude, 'longitude': self.longitude,
            'availability': self.availability,
            'created_at': _isoformat(self.created_at),
        }


class Court(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    outdoor = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name,
            'latitude': self.latitude, 'longitude': self.longitude,
            'outdoor': self.outdoor,
        }


class Match(db.Model):
    """A scheduled 1v1 game between two players."""
    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    opponent_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    court_id = db.Column(db.Integer, db.ForeignKey('court.id'), nullable=True)
    scheduled_time = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), default='scheduled', nullable=False)
    # scheduled -> in_progress -> completed
    # scheduled -> completed (reported without an explicit start)
    # scheduled -> expired (scheduled time passed)
    midpoint_latitude = db.Column(db.Float, nullable=False)
    midpoint_longitude = db.Column(db.Float, nullable=False)
    creator_score = db.Column(db.Integer, nullable=True)
    opponent_score = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    completed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint('creator_id != opponent_id', name='ck_match_distinct_players'),
        db.Index('ix_match_status_scheduled_time', 'status', 'scheduled_time'),
        db.Index('ix_match_creator_id', 'creator_id'),
        db.Index('ix_match_opponent_id', 'opponent_id'),
    )

    creator = db.relationship('Player', foreign_keys=[creator_id], backref='created_matches')
    opponent = db.relationship('Player', foreign_keys=[opponent_id], backref='invited_matches')
    court = db.relationship('Court', backref='matches')

    @property
    def midpoint(self):
        return (self.midpoint_latitude, self.midpoint_longitude)

    @property
    def participant_ids(self):
        return (self.creator_id, self.opponent_id)

    @property
    def winner_id(self):
        if self.creator_score is None or self.opponent_score is None:
            return None
        if self.creator_score > self.opponent_score:
            return self.creator_id
        if self.opponent_score > self.creator_score:
            return self.opponent_id
        return None

    def to_dict(self):
        score = None
        if self.creator_score is not None and self.opponent_score is not None:
            score = {'creator': self.creator_score, 'opponent': self.opponent_score}
        return {
            'id': self.id,
            'creator_id': self.creator_id, 'opponent_id': self.opponent_id,
            'court_id': self.court_id,
            'scheduled_time': _isoformat(self.scheduled_time),
            'status': self.status,
            'midpoint': {
                'latitude': self.midpoint_latitude,
                'longitude': self.midpoint_longitude,
            },
            'match_score': score,
            'winner_id': self.winner_id,
            'court': self.court.to_dict() if self.court else None,
            'created_at': _isoformat(self.created_at),
            'completed_at': _isoformat(self.completed_at),
        }


class MatchHistory(db.Model):
    """Audit entry written once, when a match completes."""
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('match.id'), nullable=False, unique=True)
    player1_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    player2_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    player1_elo_before = db.Column(db.Integer, nullable=False)
    player1_elo_after = db.Column(db.Integer, nullable=False)
    player2_elo_before = db.Column(db.Integer, nullable=False)
    player2_elo_after = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_match_history_player1_id', 'player1_id'),
        db.Index('ix_match_history_player2_id', 'player2_id'),
        db.Index('ix_match_history_created_at', 'created_at'),
    )

    match = db.relationship('Match', backref=db.backref('history_record', uselist=False))

    def rating_change_for(self, player_id):
        """Return ``(before, after)`` for one side of the record."""
        if player_id == self.player1_id:
            return self.player1_elo_before, self.player1_elo_after
        if player_id == self.player2_id:
            return self.player2_elo_before, self.player2_elo_after
        return None

    def to_dict(self):
        return {
            'id': self.id, 'match_id': self.match_id,
            'player1_id': self.player1_id, 'player2_id': self.player2_id,
            'player1_elo_before': self.player1_elo_before,
            'player1_elo_after': self.player1_elo_after,
            'player2_elo_before': self.player2_elo_before,
            'player2_elo_after': self.player2_elo_after,
            'created_at': _isoformat(self.created_at),
        }


class Achievement(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(50), default='')
    requirement_type = db.Column(db.String(20), nullable=False)  # wins, elo, matches, streak
    requirement_value = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name,
            'description': self.description, 'icon': self.icon,
            'requirement_type': self.requirement_type,
            'requirement_value': self.requirement_value,
        }


class UnlockedAchievement(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    achievement_id = db.Column(db.Integer, db.ForeignKey('achievement.id'), nullable=False)
    earned_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('player_id', 'achievement_id', name='uq_unlocked_achievement_player'),
    )

    achievement = db.relationship('Achievement')

    def to_dict(self):
        return {
            'id': self.id, 'player_id': self.player_id,
            'achievement_id': self.achievement_id,
            'earned_at': _isoformat(self.earned_at),
            'achievement': self.achievement.to_dict() if self.achievement else None,
        }

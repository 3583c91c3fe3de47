"""Seed the achievement catalog and a few sample courts."""

from backend.app import db
from backend.models import Achievement, Court

ACHIEVEMENT_CATALOG = (
    ('First Win', 'Win your first match', '🏆', 'wins', 1),
    ('Rookie', 'Play 10 matches', '🎯', 'matches', 10),
    ('Veteran', 'Play 50 matches', '⭐', 'matches', 50),
    ('Champion', 'Play 100 matches', '👑', 'matches', 100),
    ('Rising Star', 'Reach 1400 ELO', '🚀', 'elo', 1400),
    ('Expert', 'Reach 1600 ELO', '🎯', 'elo', 1600),
    ('Master', 'Reach 1800 ELO', '🏅', 'elo', 1800),
    ('Grandmaster', 'Reach 2000 ELO', '💎', 'elo', 2000),
    ('Win Streak', 'Win 5 matches in a row', '🔥', 'streak', 5),
    ('Competitor', 'Win 25 matches', '⚔️', 'wins', 25),
    ('Dominator', 'Win 100 matches', '👊', 'wins', 100),
)

SAMPLE_COURTS = (
    ('Downtown Court', 40.7128, -74.0060, True),
    ('Central Park Court', 40.7812, -73.9665, True),
    ('Sports Complex', 40.7505, -73.9934, False),
)


def seed_achievements():
    """Insert catalog entries missing by name. Returns how many were added."""
    existing = {name for (name,) in db.session.query(Achievement.name).all()}
    created = 0
    try:
        for name, description, icon, requirement_type, requirement_value in ACHIEVEMENT_CATALOG:
            if name in existing:
                continue
            db.session.add(Achievement(
                name=name, description=description, icon=icon,
                requirement_type=requirement_type,
                requirement_value=requirement_value,
            ))
            created += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return created


def seed_courts():
    """Insert sample courts only when the database has none."""
    if Court.query.first():
        return 0
    try:
        for name, latitude, longitude, outdoor in SAMPLE_COURTS:
            db.session.add(Court(
                name=name, latitude=latitude, longitude=longitude, outdoor=outdoor,
            ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return len(SAMPLE_COURTS)

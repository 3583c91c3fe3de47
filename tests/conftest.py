import pytest
from backend.app import create_app, db


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_player(app):
    """Factory creating a committed player with sensible defaults."""
    from backend.models import Player
    counter = {'n': 0}

    def _make(username=None, **fields):
        counter['n'] += 1
        values = {
            'username': username or f'player{counter["n"]}',
            'elo_rating': 1200,
            'playstyle': 'competitive',
            'latitude': 40.0,
            'longitude': -74.0,
        }
        values.update(fields)
        player = Player(**values)
        db.session.add(player)
        db.session.commit()
        return player

    return _make


@pytest.fixture
def achievements(app):
    """Seed the standard achievement catalog."""
    from backend.models import Achievement
    from backend.services.seeder import seed_achievements
    seed_achievements()
    return {a.name: a for a in Achievement.query.all()}


@pytest.fixture
def sample_court(app):
    from backend.models import Court
    court = Court(name='Test Court', latitude=40.7128, longitude=-74.0060, outdoor=True)
    db.session.add(court)
    db.session.commit()
    return court

import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _env_weights(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        weights = tuple(float(part) for part in str(raw).split(','))
    except (TypeError, ValueError):
        return default
    if len(weights) != 3:
        return default
    return weights


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Rating policy
    DEFAULT_RATING = _env_int('DEFAULT_RATING', 1200)
    ELO_K_FACTOR = _env_int('ELO_K_FACTOR', 32)
    ELO_RATING_FLOOR = _env_int('ELO_RATING_FLOOR', 100)
    MATCH_TIE_COUNTS_AS_PLAYED = _env_bool('MATCH_TIE_COUNTS_AS_PLAYED', True)
    MATCH_MAX_SCORE = _env_int('MATCH_MAX_SCORE', 99)

    # Opponent search
    MATCHMAKING_MAX_RATING_GAP = _env_int('MATCHMAKING_MAX_RATING_GAP', 400)
    MATCHMAKING_WEIGHTS = _env_weights('MATCHMAKING_WEIGHTS', (0.5, 0.3, 0.2))
    MATCHMAKING_RESULT_LIMIT = _env_int('MATCHMAKING_RESULT_LIMIT', 10)
    MATCHMAKING_DEFAULT_RADIUS_KM = _env_float('MATCHMAKING_DEFAULT_RADIUS_KM', 10.0)
    MATCHMAKING_MAX_RADIUS_KM = _env_float('MATCHMAKING_MAX_RADIUS_KM', 50.0)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'hoops_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}

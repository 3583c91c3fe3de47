"""Exceptions raised by the matching and rating engine."""


class EngineError(Exception):
    """Base class for engine failures. ``status_code`` maps to the HTTP reply."""
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class InvalidCoordinate(EngineError):
    """Latitude/longitude is missing or out of range."""

    def __init__(self, message=None, point=None):
        super().__init__(message)
        self.point = point


class InvalidParticipants(EngineError):
    """A player cannot be matched against themselves."""


class InvalidTransition(EngineError):
    """Match cannot move to the requested status."""
    status_code = 409

    def __init__(self, message=None, match_id=None, status=None):
        super().__init__(message)
        self.match_id = match_id
        self.status = status


class StorageUnavailable(EngineError):
    """Storage is temporarily unavailable. Retry with backoff."""
    status_code = 503


class PlayerNotFound(EngineError):
    """Player not found."""
    status_code = 404


class MatchNotFound(EngineError):
    """Match not found."""
    status_code = 404


class CourtNotFound(EngineError):
    """Court not found."""
    status_code = 404

"""
Spherical geometry for opponent search and meeting points.

Points are ``(latitude, longitude)`` pairs in decimal degrees.
- distance_km uses the haversine formula on a mean-radius Earth.
- midpoint averages the two points as 3D unit vectors and projects the sum
  back onto the sphere, so it stays correct across the antimeridian and
  near the poles where averaging degrees does not.
"""
import math

from backend.errors import InvalidCoordinate

EARTH_RADIUS_KM = 6371.0088
_ANTIPODAL_EPSILON = 1e-12


def _coerce_degrees(raw_value, label, limit, point):
    if isinstance(raw_value, bool) or raw_value is None:
        raise InvalidCoordinate(f'{label} is required', point=point)
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f'{label} must be a number', point=point) from None
    if not math.isfinite(value) or value < -limit or value > limit:
        raise InvalidCoordinate(f'{label} must be between -{limit} and {limit}', point=point)
    return value


def validate_point(point):
    """Return ``point`` as a float ``(lat, lon)`` tuple or raise InvalidCoordinate."""
    try:
        raw_lat, raw_lon = point
    except (TypeError, ValueError):
        raise InvalidCoordinate('Point must be a (latitude, longitude) pair', point=point) from None
    lat = _coerce_degrees(raw_lat, 'Latitude', 90, point)
    lon = _coerce_degrees(raw_lon, 'Longitude', 180, point)
    return lat, lon


def distance_km(a, b):
    """Great-circle distance between two points, in kilometers."""
    lat1, lon1 = validate_point(a)
    lat2, lon2 = validate_point(b)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    h = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    # Rounding can push h a hair above 1 for near-antipodal points
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.asin(math.sqrt(h))


def _to_unit_vector(lat, lon):
    phi = math.radians(lat)
    lam = math.radians(lon)
    return (
        math.cos(phi) * math.cos(lam),
        math.cos(phi) * math.sin(lam),
        math.sin(phi),
    )


def midpoint(a, b):
    """Point on the great circle halfway between ``a`` and ``b``."""
    lat1, lon1 = validate_point(a)
    lat2, lon2 = validate_point(b)
    x1, y1, z1 = _to_unit_vector(lat1, lon1)
    x2, y2, z2 = _to_unit_vector(lat2, lon2)
    x, y, z = x1 + x2, y1 + y2, z1 + z2

    norm = math.sqrt(x * x + y * y + z * z)
    if norm < _ANTIPODAL_EPSILON:
        raise InvalidCoordinate('Midpoint of antipodal points is undefined', point=(a, b))
    x, y, z = x / norm, y / norm, z / norm

    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lon = math.degrees(math.atan2(y, x))
    return lat, lon

import math

from config import EARTH_RADIUS_M
from models import Coordinate


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in metres (haversine, spherical Earth)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlam = math.radians(b.lon - a.lon)
    h = math.sin(dphi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(dlam/2)**2
    # rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def initial_bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Forward azimuth from a to b, degrees clockwise from true north in [0, 360)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dlam = math.radians(b.lon - a.lon)
    x = math.sin(dlam) * math.cos(phi2)
    y = math.cos(phi1)*math.sin(phi2) - math.sin(phi1)*math.cos(phi2)*math.cos(dlam)
    return normalize_deg(math.degrees(math.atan2(x, y)))


def back_bearing_deg(bearing_deg: float) -> float:
    return normalize_deg(bearing_deg + 180.0)


def normalize_deg(deg: float) -> float:
    d = deg % 360.0
    # -1e-17 % 360 == 360.0
    return 0.0 if d >= 360.0 else d

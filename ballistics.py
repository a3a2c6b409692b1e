"""First-order firing solutions from the vacuum projectile-range equation.

    R = v^2 * sin(2*theta) / g   =>   theta = 0.5 * asin(g*R / v^2)

Only the low-angle root is computed. No drag, wind, Coriolis or site
correction is applied: this is an estimate, not a fire-control computation.
"""
import math
from dataclasses import dataclass

import numpy as np

from config import G
from errors import RangeError, OutOfRangeError
from models import FiringSolution


def max_range_m(muzzle_velocity: float, gravity: float = G) -> float:
    """Vacuum range at 45 degrees, the farthest reachable point."""
    return muzzle_velocity * muzzle_velocity / gravity


def _check_inputs(range_m: float, muzzle_velocity: float, gravity: float):
    if not math.isfinite(range_m) or range_m < 0:
        raise RangeError(f"Range must be a non-negative number of metres, got {range_m}",
                         field="range", value=range_m)
    if not math.isfinite(muzzle_velocity) or muzzle_velocity <= 0:
        raise RangeError(f"Muzzle velocity must be positive, got {muzzle_velocity}",
                         field="muzzle_velocity", value=muzzle_velocity)
    if not math.isfinite(gravity) or gravity <= 0:
        raise RangeError(f"Gravity must be positive, got {gravity}", field="gravity", value=gravity)


def compute_firing_solution(range_m: float, muzzle_velocity: float, azimuth_deg: float,
                            gravity: float = G) -> FiringSolution:
    _check_inputs(range_m, muzzle_velocity, gravity)
    if not math.isfinite(azimuth_deg) or not 0.0 <= azimuth_deg < 360.0:
        raise RangeError(f"Azimuth must be in [0, 360) degrees, got {azimuth_deg}",
                         field="azimuth", value=azimuth_deg)

    k = gravity * range_m / (muzzle_velocity * muzzle_velocity)
    if k > 1.0:
        raise OutOfRangeError(range_m, max_range_m(muzzle_velocity, gravity), muzzle_velocity)

    elev_rad = 0.5 * math.asin(k)
    tof = range_m / (muzzle_velocity * math.cos(elev_rad))
    return FiringSolution(
        elevation_deg=elev_rad * 180.0 / math.pi,
        azimuth_deg=float(azimuth_deg),
        time_of_flight_s=tof,
        range_m=float(range_m),
    )


@dataclass
class SolutionArrays:
    range_m: np.ndarray
    elevation_deg: np.ndarray
    time_of_flight_s: np.ndarray

    @property
    def reachable(self) -> np.ndarray:
        return ~np.isnan(self.elevation_deg)


def solve_many(ranges_m, muzzle_velocity: float, gravity: float = G) -> SolutionArrays:
    """Vectorised low-angle solutions; unreachable ranges come back as NaN."""
    r = np.asarray(ranges_m, dtype=float)
    if r.size and (not np.all(np.isfinite(r)) or np.any(r < 0)):
        raise RangeError("Ranges must be non-negative finite numbers", field="range")
    _check_inputs(0.0, muzzle_velocity, gravity)

    k = gravity * r / (muzzle_velocity * muzzle_velocity)
    ok = k <= 1.0
    elev = np.full(r.shape, np.nan)
    elev[ok] = 0.5 * np.arcsin(k[ok])
    tof = np.full(r.shape, np.nan)
    tof[ok] = r[ok] / (muzzle_velocity * np.cos(elev[ok]))
    return SolutionArrays(range_m=r, elevation_deg=np.degrees(elev), time_of_flight_s=tof)

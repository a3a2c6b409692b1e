from __future__ import annotations

import math
from typing import Callable, Optional, Tuple

import numpy as np

from config import G
from ballistics import compute_firing_solution
from coords import resolve_coordinates
from errors import FormatError, RangeError, OutOfRangeError
from geodesy import distance_m, initial_bearing_deg, normalize_deg
from logger import logger
from models import (
    Coordinate, FireMission, FiringSolution, PositionInput,
    LatLonInput, MgrsInput, ManualInput, LATLON, MGRS,
)
from weapon import WeaponCatalog

# (quantity name, value) -> perturbed value
Jitter = Callable[[str, float], float]


def uniform_jitter(spread_deg: float = 0.5, seed: Optional[int] = None) -> Jitter:
    """Add U(0, spread) degrees to elevation and azimuth; other quantities untouched."""
    rng = np.random.default_rng(seed)

    def jitter(name: str, value: float) -> float:
        if name in ("elevation_deg", "azimuth_deg"):
            return value + float(rng.uniform(0.0, spread_deg))
        return value

    return jitter


def resolve_positions(position: PositionInput) -> Optional[Tuple[Coordinate, Coordinate]]:
    """Weapon and target coordinates, or None for manual input."""
    if isinstance(position, ManualInput):
        return None
    if isinstance(position, LatLonInput):
        gun = resolve_coordinates(LATLON, position.weapon_lat, position.weapon_lon, field="weapon")
        tgt = resolve_coordinates(LATLON, position.target_lat, position.target_lon, field="target")
    elif isinstance(position, MgrsInput):
        gun = resolve_coordinates(MGRS, mgrs=position.weapon_mgrs, field="weapon")
        tgt = resolve_coordinates(MGRS, mgrs=position.target_mgrs, field="target")
    else:
        raise FormatError(f"Unsupported position input {type(position).__name__}", field="mode")
    return gun, tgt


def range_and_azimuth(position: PositionInput) -> Tuple[float, float]:
    if isinstance(position, ManualInput):
        r, az = position.range_m, position.azimuth_deg
        if not math.isfinite(r) or r <= 0:
            raise RangeError(f"Range must be greater than 0 m, got {r}", field="range_m", value=r)
        if not math.isfinite(az) or not 0.0 <= az < 360.0:
            raise RangeError(f"Azimuth must be in [0, 360) degrees, got {az}", field="azimuth_deg", value=az)
        return r, az
    gun, tgt = resolve_positions(position)
    return distance_m(gun, tgt), initial_bearing_deg(gun, tgt)


def solve(mission: FireMission, catalog: WeaponCatalog, gravity: float = G,
          jitter: Optional[Jitter] = None) -> FiringSolution:
    v0 = catalog.muzzle_velocity_for(mission.weapon, mission.charge)
    rng, az = range_and_azimuth(mission.position)
    try:
        sol = compute_firing_solution(rng, v0, az, gravity)
    except OutOfRangeError as e:
        e.reachable_charges = reachable_charges(catalog, mission.weapon, rng, gravity)
        logger.warning(f"{mission.weapon}/{mission.charge}: {rng:.0f} m is beyond {e.max_range:.0f} m, "
                       f"reachable with: {', '.join(e.reachable_charges) or 'none'}")
        raise

    if jitter is not None:
        sol = FiringSolution(
            elevation_deg=jitter("elevation_deg", sol.elevation_deg),
            azimuth_deg=normalize_deg(jitter("azimuth_deg", sol.azimuth_deg)),
            time_of_flight_s=jitter("time_of_flight_s", sol.time_of_flight_s),
            range_m=jitter("range_m", sol.range_m),
        )

    logger.info(f"Solution {mission.weapon}/{mission.charge} ({mission.position.mode}): "
                f"range {sol.range_m:.0f} m, az {sol.azimuth_deg:.1f} deg, "
                f"QE {sol.elevation_deg:.2f} deg, TOF {sol.time_of_flight_s:.1f} s, "
                f"site {mission.height_difference_m:+.0f} m")
    return sol


def reachable_charges(catalog: WeaponCatalog, weapon_id: str, range_m: float,
                      gravity: float = G) -> Tuple[str, ...]:
    """Charges of ``weapon_id`` whose vacuum maximum range covers ``range_m``."""
    profile = catalog.profile(weapon_id)
    return tuple(c for c, v0 in profile.muzzle_velocities.items() if gravity * range_m <= v0 * v0)

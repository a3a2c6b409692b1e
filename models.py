from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from config import MIL_CIRCLE

LATLON = "latlon"
MGRS = "mgrs"
MANUAL = "manual"
INPUT_MODES = (LATLON, MGRS, MANUAL)


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def __str__(self) -> str:
        return f"{self.lat:.4f}, {self.lon:.4f}"


@dataclass(frozen=True)
class FiringSolution:
    elevation_deg: float
    azimuth_deg: float
    time_of_flight_s: float
    range_m: float

    @property
    def elevation_mil(self) -> float:
        return self.elevation_deg * MIL_CIRCLE / 360.0

    @property
    def azimuth_mil(self) -> float:
        return (self.azimuth_deg % 360.0) * MIL_CIRCLE / 360.0

    def to_dict(self) -> dict:
        return {
            "elevation_deg": self.elevation_deg,
            "elevation_mil": self.elevation_mil,
            "azimuth_deg": self.azimuth_deg,
            "azimuth_mil": self.azimuth_mil,
            "time_of_flight_s": self.time_of_flight_s,
            "range_m": self.range_m,
        }


# Position inputs: one dataclass per coordinate mode, discriminated by ``mode``.

@dataclass(frozen=True)
class LatLonInput:
    weapon_lat: float
    weapon_lon: float
    target_lat: float
    target_lon: float
    mode: str = LATLON


@dataclass(frozen=True)
class MgrsInput:
    weapon_mgrs: str
    target_mgrs: str
    mode: str = MGRS


@dataclass(frozen=True)
class ManualInput:
    range_m: float
    azimuth_deg: float
    mode: str = MANUAL


PositionInput = Union[LatLonInput, MgrsInput, ManualInput]


@dataclass(frozen=True)
class FireMission:
    weapon: str
    charge: str
    position: PositionInput
    ammunition: str = ""
    projectile: str = ""
    weapon_elevation_m: float = 0.0
    target_elevation_m: float = 0.0
    met_data: str = "Standard atmosphere, no wind."

    @property
    def height_difference_m(self) -> float:
        return self.target_elevation_m - self.weapon_elevation_m

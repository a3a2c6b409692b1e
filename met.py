"""Weather and terrain elevation lookups from Open-Meteo.

These are the only network calls in the calculator and they stay out of the
ballistic core: results come back as plain numbers and text that the caller
puts into a FireMission. Failures raise UpstreamError; nothing is simulated.
"""
from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass

from config import OPEN_METEO_ELEVATION_URL, OPEN_METEO_FORECAST_URL, HTTP_TIMEOUT_S
from errors import UpstreamError
from geodesy import distance_m
from logger import logger
from models import Coordinate


def http_get_json(url: str, timeout: float = HTTP_TIMEOUT_S, service: str = "") -> dict:
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        body = ""
        try:
            body = e.read().decode("utf-8", "replace").strip()
        except OSError:
            pass
        raise UpstreamError(body or str(e.reason), status=e.code, service=service) from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        reason = getattr(e, "reason", e)
        raise UpstreamError(f"{service or 'request'} failed: {reason}", service=service) from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise UpstreamError(f"{service or 'response'} is not valid JSON", service=service) from e
    if not isinstance(data, dict):
        raise UpstreamError(f"{service or 'response'} has unexpected shape", service=service)
    return data


def fetch_elevation(coord: Coordinate, timeout: float = HTTP_TIMEOUT_S) -> int:
    """Terrain elevation at ``coord`` in whole metres."""
    query = urllib.parse.urlencode({"latitude": coord.lat, "longitude": coord.lon})
    data = http_get_json(f"{OPEN_METEO_ELEVATION_URL}?{query}", timeout, service="elevation")
    values = data.get("elevation")
    if not values or values[0] is None:
        raise UpstreamError("Could not retrieve elevation from API response.", service="elevation")
    return int(round(float(values[0])))


@dataclass(frozen=True)
class Weather:
    temperature_c: float
    pressure_hpa: float
    wind_speed_kph: float
    wind_from_deg: float

    def to_met_text(self) -> str:
        # no position in here: MET text is passed on to the report service
        lines = [
            f"Temperature: {self.temperature_c:.1f}°C",
            f"Pressure: {self.pressure_hpa:.1f} hPa",
            f"Wind: {self.wind_speed_kph:.1f} kph from {self.wind_from_deg:.0f}°",
        ]
        return "\n".join(lines)


def fetch_weather(coord: Coordinate, timeout: float = HTTP_TIMEOUT_S) -> Weather:
    query = urllib.parse.urlencode({
        "latitude": coord.lat,
        "longitude": coord.lon,
        "current": "temperature_2m,surface_pressure,wind_speed_10m,wind_direction_10m",
        "wind_speed_unit": "kmh",
    })
    data = http_get_json(f"{OPEN_METEO_FORECAST_URL}?{query}", timeout, service="weather")
    cur = data.get("current") or {}
    try:
        return Weather(
            temperature_c=float(cur["temperature_2m"]),
            pressure_hpa=float(cur["surface_pressure"]),
            wind_speed_kph=float(cur["wind_speed_10m"]),
            wind_from_deg=float(cur["wind_direction_10m"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamError(f"Weather response is missing {e}", service="weather") from e


@dataclass(frozen=True)
class MissionData:
    weapon_elevation_m: int
    target_elevation_m: int
    met_data: str
    range_m: float

    def to_dict(self) -> dict:
        return {
            "weapon_elevation_m": self.weapon_elevation_m,
            "target_elevation_m": self.target_elevation_m,
            "met_data": self.met_data,
            "range_m": self.range_m,
        }


def fetch_mission_data(weapon: Coordinate, target: Coordinate,
                       timeout: float = HTTP_TIMEOUT_S) -> MissionData:
    """Weapon/target elevation, weather at the target and range between them."""
    rng = distance_m(weapon, target)
    weather = fetch_weather(target, timeout)
    gun_h = fetch_elevation(weapon, timeout)
    tgt_h = fetch_elevation(target, timeout)
    logger.info(f"Mission data fetched: range {rng:.0f} m, site {tgt_h - gun_h:+d} m")
    return MissionData(
        weapon_elevation_m=gun_h,
        target_elevation_m=tgt_h,
        met_data=weather.to_met_text(),
        range_m=rng,
    )

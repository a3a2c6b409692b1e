"""Coordinate normalizer.

Turns caller text into validated :class:`~models.Coordinate` values:
``"lat, lon"`` strings, numeric lat/lon fields and MGRS grid references.
Nothing here clamps or guesses; bad input raises ``FormatError``,
``RangeError`` or ``MissingInputError``.

MGRS references are decoded to UTM easting/northing by hand (100 km square
letters and latitude band) and converted to lat/lon with ``utm``. A decoded
reference yields the middle of the grid square it names, taken as the
lat/lon midpoint of its south-west and north-east corners (the convention
of the published MGRS test references). ``33UXP04`` (10 km precision) and
``33UXP0000040000`` (1 m precision, the square's south-west corner) are
about 7 km apart.
"""
from __future__ import annotations

import math
import re
from typing import Optional, Union

import utm
from utm.error import OutOfRangeError as UTMOutOfRangeError

from errors import FormatError, RangeError, MissingInputError
from models import (
    Coordinate, LatLonInput, MgrsInput, ManualInput, PositionInput,
    LATLON, MGRS, MANUAL, INPUT_MODES,
)

Number = Union[int, float, str]

# latitude bands C..X (no I, O); A, B, Y, Z are the polar UPS areas
_BANDS = "CDEFGHJKLMNPQRSTUVWX"
# 100 km column letters, cycling through three sets of eight
_SET_COLUMNS = ("ABCDEFGH", "JKLMNPQR", "STUVWXYZ")
# 100 km row letters, 20 per 2000 km cycle
_ROWS = "ABCDEFGHJKLMNPQRSTUV"
# lowest UTM northing inside each band, false northing included south of the equator
_BAND_MIN_NORTHING = {
    "C": 1100000.0, "D": 2000000.0, "E": 2800000.0, "F": 3700000.0,
    "G": 4600000.0, "H": 5500000.0, "J": 6400000.0, "K": 7300000.0,
    "L": 8200000.0, "M": 9100000.0, "N": 0.0, "P": 800000.0,
    "Q": 1700000.0, "R": 2600000.0, "S": 3500000.0, "T": 4400000.0,
    "U": 5300000.0, "V": 6200000.0, "W": 7000000.0, "X": 7900000.0,
}
_ROW_CYCLE_M = 2000000.0
_MGRS_RE = re.compile(r"^(\d{1,2})([A-Z])([A-Z])([A-Z])(\d*)$")


def _field(prefix: str, name: str) -> str:
    return f"{prefix}_{name}" if prefix else name


def _to_float(value: Number, field: str) -> float:
    if isinstance(value, bool):
        raise FormatError(f"'{field}' must be a number", field=field, value=value)
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            raise FormatError(f"'{field}' must be a number, got {text!r}", field=field, value=text) from None
    elif not isinstance(value, (int, float)):
        raise FormatError(f"'{field}' must be a number", field=field, value=value)
    value = float(value)
    if not math.isfinite(value):
        raise FormatError(f"'{field}' must be a finite number", field=field, value=value)
    return value


def validate_coordinate(lat: Number, lon: Number, field: str = "") -> Coordinate:
    lat = _to_float(lat, _field(field, "lat"))
    lon = _to_float(lon, _field(field, "lon"))
    if not -90.0 <= lat <= 90.0:
        raise RangeError(f"Latitude must be -90 to 90, got {lat}", field=_field(field, "lat"), value=lat)
    if not -180.0 <= lon <= 180.0:
        raise RangeError(f"Longitude must be -180 to 180, got {lon}", field=_field(field, "lon"), value=lon)
    return Coordinate(lat, lon)


def parse_coordinate_pair(text: str, field: str = "") -> Coordinate:
    """Parse ``"lat, lon"`` into a Coordinate.

    >>> parse_coordinate_pair("40.7128, -74.0060")
    Coordinate(lat=40.7128, lon=-74.006)
    """
    if not isinstance(text, str):
        raise FormatError('Invalid coordinate format. Use "lat, lon".', field=field or None, value=text)
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise FormatError('Invalid coordinate format. Use "lat, lon".', field=field or None, value=text)
    return validate_coordinate(parts[0], parts[1], field)


def _set_number(zone: int) -> int:
    s = zone % 6
    return 6 if s == 0 else s


def _row_offset(set_number: int) -> int:
    # even sets start their row lettering at F
    return 5 if set_number % 2 == 0 else 0


def mgrs_to_coordinate(grid_ref: str, field: str = "") -> Coordinate:
    """Decode an MGRS reference such as ``18SUJ2348006270`` or ``33U XP 0 4``."""
    prefix, field = field, _field(field, "mgrs")
    if not isinstance(grid_ref, str):
        raise FormatError("MGRS reference must be text", field=field, value=grid_ref)
    text = re.sub(r"\s+", "", grid_ref).upper()
    m = _MGRS_RE.match(text)
    if not m:
        raise FormatError(f"Invalid MGRS reference {grid_ref!r}", field=field, value=grid_ref)
    zone, band, col, row, digits = int(m.group(1)), m.group(2), m.group(3), m.group(4), m.group(5)

    if not 1 <= zone <= 60:
        raise FormatError(f"Invalid MGRS zone {zone} in {grid_ref!r}", field=field, value=grid_ref)
    if band not in _BANDS:
        raise FormatError(f"Invalid MGRS latitude band {band!r} in {grid_ref!r}", field=field, value=grid_ref)
    if len(digits) % 2 or len(digits) > 10:
        raise FormatError(f"MGRS easting/northing digits must be an even count of at most 10 in {grid_ref!r}",
                          field=field, value=grid_ref)

    set_number = _set_number(zone)
    columns = _SET_COLUMNS[(set_number - 1) % 3]
    if col not in columns:
        raise FormatError(f"Invalid 100 km column letter {col!r} for zone {zone}", field=field, value=grid_ref)
    if row not in _ROWS:
        raise FormatError(f"Invalid 100 km row letter {row!r}", field=field, value=grid_ref)

    precision = len(digits) // 2
    scale = 10.0 ** (5 - precision)
    easting_digits = int(digits[:precision]) if precision else 0
    northing_digits = int(digits[precision:]) if precision else 0

    easting = (columns.index(col) + 1) * 100000.0
    northing = ((_ROWS.index(row) - _row_offset(set_number)) % 20) * 100000.0
    while northing < _BAND_MIN_NORTHING[band]:
        northing += _ROW_CYCLE_M

    easting += easting_digits * scale
    northing += northing_digits * scale

    try:
        sw_lat, sw_lon = utm.to_latlon(easting, northing, zone, band)
    except UTMOutOfRangeError as e:
        raise FormatError(f"MGRS reference {grid_ref!r} is outside the UTM grid: {e}",
                          field=field, value=grid_ref) from e
    # the far corner may sit just past the grid edge for coarse squares
    ne_lat, ne_lon = utm.to_latlon(easting + scale, northing + scale, zone, band, strict=False)
    if ne_lon - sw_lon > 180.0:
        ne_lon -= 360.0
    elif sw_lon - ne_lon > 180.0:
        ne_lon += 360.0
    lat = (float(sw_lat) + float(ne_lat)) / 2.0
    lon = (float(sw_lon) + float(ne_lon)) / 2.0
    if lon > 180.0:
        lon -= 360.0
    elif lon < -180.0:
        lon += 360.0
    return validate_coordinate(lat, lon, prefix)


def coordinate_to_mgrs(coord: Coordinate, precision: int = 5) -> str:
    """Encode a coordinate as MGRS; ``precision`` is digits per axis (5 = 1 m)."""
    if not 0 <= precision <= 5:
        raise RangeError(f"MGRS precision must be 0 to 5, got {precision}", field="precision", value=precision)
    try:
        easting, northing, zone, band = utm.from_latlon(coord.lat, coord.lon)
    except UTMOutOfRangeError as e:
        raise RangeError(f"{coord} is outside the MGRS/UTM area: {e}", field="lat", value=coord.lat) from e

    set_number = _set_number(zone)
    col = _SET_COLUMNS[(set_number - 1) % 3][int(easting // 100000) - 1]
    row = _ROWS[(int(northing // 100000) + _row_offset(set_number)) % 20]
    if not precision:
        return f"{zone}{band}{col}{row}"
    div = 10 ** (5 - precision)
    e = int(easting % 100000) // div
    n = int(northing % 100000) // div
    return f"{zone}{band}{col}{row}{e:0{precision}d}{n:0{precision}d}"


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def resolve_coordinates(mode: str, lat: Optional[Number] = None, lon: Optional[Number] = None,
                        mgrs: Optional[str] = None, field: str = "") -> Optional[Coordinate]:
    """Dispatch on input mode.

    ``manual`` returns None: the caller supplies range and azimuth itself.
    """
    mode = (mode or "").strip().lower()
    if mode == MANUAL:
        return None
    if mode == MGRS:
        if not _present(mgrs):
            raise MissingInputError(_field(field, "mgrs"), mode)
        return mgrs_to_coordinate(mgrs, field)
    if mode == LATLON:
        if not _present(lat):
            raise MissingInputError(_field(field, "lat"), mode)
        if not _present(lon):
            raise MissingInputError(_field(field, "lon"), mode)
        return validate_coordinate(lat, lon, field)
    raise FormatError(f"Unknown input mode {mode!r}, expected one of {', '.join(INPUT_MODES)}",
                      field="mode", value=mode)


def position_from_fields(mode: str, **fields) -> PositionInput:
    """Build the tagged position input for ``mode`` from loose form fields.

    Only the fields of the selected mode are looked at; absent ones raise
    ``MissingInputError``. Domain checks happen when the position is resolved.
    """
    mode = (mode or "").strip().lower()

    def need(name: str):
        value = fields.get(name)
        if not _present(value):
            raise MissingInputError(name, mode)
        return value

    if mode == LATLON:
        return LatLonInput(
            weapon_lat=_to_float(need("weapon_lat"), "weapon_lat"),
            weapon_lon=_to_float(need("weapon_lon"), "weapon_lon"),
            target_lat=_to_float(need("target_lat"), "target_lat"),
            target_lon=_to_float(need("target_lon"), "target_lon"),
        )
    if mode == MGRS:
        return MgrsInput(weapon_mgrs=str(need("weapon_mgrs")).strip(),
                         target_mgrs=str(need("target_mgrs")).strip())
    if mode == MANUAL:
        return ManualInput(range_m=_to_float(need("range_m"), "range_m"),
                           azimuth_deg=_to_float(need("azimuth_deg"), "azimuth_deg"))
    raise FormatError(f"Unknown input mode {mode!r}, expected one of {', '.join(INPUT_MODES)}",
                      field="mode", value=mode)

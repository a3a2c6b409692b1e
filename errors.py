"""Error types raised by the fire mission calculator.

Exception hierarchy
-------------------

ArtyError
├── InputError (ValueError)
│   ├── FormatError        malformed text: "lat, lon" strings, MGRS references
│   ├── RangeError         numeric value outside its valid domain
│   └── MissingInputError  required field absent for the selected input mode
├── CatalogError (LookupError)
│   ├── UnknownWeaponError
│   └── UnknownChargeError
├── OutOfRangeError (RuntimeError)  target unreachable under the vacuum model
├── UpstreamError (RuntimeError)    MET / elevation / report service failure
└── ReportError (RuntimeError)      report generation unavailable or empty

None of these are retryable with the same parameters except UpstreamError.
Every error carries the offending ``field`` and ``value`` (when there is one)
so callers can render a precise message without parsing ``str(err)``.
"""
from __future__ import annotations

from typing import Any, Optional, Tuple

__all__ = (
    'ArtyError',
    'InputError',
    'FormatError',
    'RangeError',
    'MissingInputError',
    'CatalogError',
    'UnknownWeaponError',
    'UnknownChargeError',
    'OutOfRangeError',
    'UpstreamError',
    'ReportError',
)


class ArtyError(Exception):
    """Base class for all calculator errors."""

    kind: str = "error"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "field": self.field}


class InputError(ArtyError, ValueError):
    """Invalid caller-supplied input."""

    kind = "input"


class FormatError(InputError):
    """Malformed textual input."""

    kind = "format"


class RangeError(InputError):
    """Numeric value outside a physically valid domain."""

    kind = "range"


class MissingInputError(InputError):
    """Required field absent for the selected coordinate mode."""

    kind = "missing_input"

    def __init__(self, field: str, mode: Optional[str] = None):
        msg = f"'{field}' is required"
        if mode:
            msg += f" for input mode '{mode}'"
        super().__init__(msg, field=field)
        self.mode = mode


class CatalogError(ArtyError, LookupError):
    """Weapon catalog lookup or load failure."""

    kind = "catalog"

    def __str__(self) -> str:
        # LookupError would otherwise repr() the message
        return self.message


class UnknownWeaponError(CatalogError):
    kind = "unknown_weapon"

    def __init__(self, weapon_id: str):
        super().__init__(f"Invalid weapon system: {weapon_id!r}", field="weapon", value=weapon_id)
        self.weapon_id = weapon_id


class UnknownChargeError(CatalogError):
    kind = "unknown_charge"

    def __init__(self, weapon_id: str, charge_id: str):
        super().__init__(f"Invalid charge {charge_id!r} for weapon system {weapon_id!r}",
                         field="charge", value=charge_id)
        self.weapon_id = weapon_id
        self.charge_id = charge_id


class OutOfRangeError(ArtyError, RuntimeError):
    """Target is out of range for the selected weapon system and charge.

    Contains:
    - requested_range: the range that was asked for (m)
    - max_range: the maximum vacuum range at this muzzle velocity (m)
    - muzzle_velocity: the muzzle velocity used (m/s)
    - reachable_charges: other charges of the same weapon that do cover the
      range, filled in by the solver (empty when none does)
    """

    kind = "out_of_range"

    def __init__(self, requested_range: float, max_range: float, muzzle_velocity: float,
                 reachable_charges: Tuple[str, ...] = ()):
        msg = (f"Target is out of range for the selected weapon system and charge: "
               f"{requested_range:.0f} m requested, {max_range:.0f} m maximum "
               f"at {muzzle_velocity:.0f} m/s")
        super().__init__(msg, field="range", value=requested_range)
        self.requested_range = requested_range
        self.max_range = max_range
        self.muzzle_velocity = muzzle_velocity
        self.reachable_charges = tuple(reachable_charges)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["reachable_charges"] = list(self.reachable_charges)
        return d


class UpstreamError(ArtyError, RuntimeError):
    """An external service returned an error or an unusable response."""

    kind = "upstream"

    def __init__(self, message: str, status: Optional[int] = None, service: str = ""):
        if status is not None:
            message = f"API Error ({status}): {message}"
        super().__init__(message, field=service or None)
        self.status = status
        self.service = service


class ReportError(ArtyError, RuntimeError):
    """Fire mission report could not be generated."""

    kind = "report"

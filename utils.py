import math
from typing import Optional

from config import MIL_CIRCLE
from errors import FormatError, MissingInputError


def deg_to_mil(deg: float) -> float:
    return deg * MIL_CIRCLE / 360.0


def mil_to_deg(mil: float) -> float:
    return mil * 360.0 / MIL_CIRCLE


def az_input_to_deg(val: float, unit_text: str) -> float:
    if "mil" in unit_text.lower():
        return mil_to_deg(val % MIL_CIRCLE)
    return val


def parse_float(s: Optional[str], field: str, default: Optional[float] = None) -> float:
    """Parse a form field; a decimal comma is accepted.

    Empty input gives ``default`` or, without one, MissingInputError.
    """
    text = (s or "").strip().replace(",", ".")
    if not text:
        if default is None:
            raise MissingInputError(field)
        return float(default)
    try:
        value = float(text)
    except ValueError:
        raise FormatError(f"Field '{field}' is not a number: {s!r}", field=field, value=s) from None
    if not math.isfinite(value):
        raise FormatError(f"Field '{field}' must be finite: {s!r}", field=field, value=s)
    return value

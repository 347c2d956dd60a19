"""Hashrate and efficiency unit normalization."""

import math
import re
from typing import Literal, NamedTuple, Optional, Union

BaseUnit = Literal["H/s", "Sol/s"]

# SI prefix (short or spelled out) -> multiplier to the base rate
PREFIX_SCALES = {
    "": 1.0,
    "k": 1e3,
    "kilo": 1e3,
    "m": 1e6,
    "mega": 1e6,
    "g": 1e9,
    "giga": 1e9,
    "t": 1e12,
    "tera": 1e12,
    "p": 1e15,
    "peta": 1e15,
    "e": 1e18,
    "exa": 1e18,
}

# "/s", "/sec" and "/second" all mean per second
_PER_SECOND = re.compile(r"/(?:s|sec|second)$")

# "1,250" and "12,500,000.5"; a lone "2,5" is ambiguous and rejected
_THOUSANDS = re.compile(r"[+-]?\d{1,3}(?:,\d{3})+(?:\.\d*)?")

TERAHASH = 1e12


class SpeedReading(NamedTuple):
    value: float
    base_unit: BaseUnit


def parse_magnitude(magnitude: Union[str, float, int, None]) -> Optional[float]:
    """Parse a numeric value from admin-entered input, or None."""
    if magnitude is None or isinstance(magnitude, bool):
        return None
    if isinstance(magnitude, (int, float)):
        value = float(magnitude)
    else:
        text = str(magnitude).strip().replace("_", "")
        if not text:
            return None
        if "," in text:
            if not _THOUSANDS.fullmatch(text):
                return None
            text = text.replace(",", "")
        try:
            value = float(text)
        except ValueError:
            return None
    if not math.isfinite(value):
        return None
    return value


def unit_scale(unit: Optional[str]) -> Optional[tuple[float, BaseUnit]]:
    """
    Scale factor to the base rate for a unit string.

    The unit is read as <prefix><hash|h|sol>[/s]; anything else, including
    spelled-out phrases the grammar does not cover, gives None.
    """
    u = _PER_SECOND.sub("", "".join((unit or "").split()).lower())
    if not u:
        return None

    if u.endswith("sol"):
        prefix, base_unit = u[: -len("sol")], "Sol/s"
    elif u.endswith("hash"):
        prefix, base_unit = u[: -len("hash")], "H/s"
    elif u.endswith("h"):
        prefix, base_unit = u[: -len("h")], "H/s"
    else:
        return None

    scale = PREFIX_SCALES.get(prefix)
    if scale is None:
        return None
    return scale, base_unit


def to_base_rate(
    magnitude: Union[str, float, int, None],
    unit: Optional[str],
) -> Optional[SpeedReading]:
    """
    Convert a hashrate magnitude + unit into a base rate (H/s or Sol/s).

    Returns None for unparsable, non-finite or non-positive magnitudes and for
    unrecognized units. Callers treat None as "cannot compute", never as zero.
    """
    value = parse_magnitude(magnitude)
    if value is None or value <= 0:
        return None
    scaled = unit_scale(unit)
    if scaled is None:
        return None
    scale, base_unit = scaled
    return SpeedReading(value=value * scale, base_unit=base_unit)


def to_joules_per_th(
    efficiency: Union[str, float, int, None],
    efficiency_unit: Optional[str],
    power_w: Optional[float],
    speed: Optional[SpeedReading],
) -> Optional[float]:
    """
    Normalize an efficiency figure to joules per terahash.

    An explicit efficiency such as 17.5 J/TH or 0.3 J/MH wins. Otherwise the
    figure is derived from power draw divided by the base rate.
    """
    value = parse_magnitude(efficiency)
    if value is not None and value > 0 and efficiency_unit:
        # "J/TH" and "W/TH" are the same quantity; only the denominator matters
        _, _, denominator = efficiency_unit.partition("/")
        scaled = unit_scale(denominator)
        if scaled is not None:
            scale, _ = scaled
            return value * TERAHASH / scale

    power = parse_magnitude(power_w)
    if power is None or power <= 0 or speed is None or speed.value <= 0:
        return None
    return power / speed.value * TERAHASH

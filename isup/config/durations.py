"""Human-readable duration parsing (``250ms``, ``5 sec``, ``1 minute``).

Plain numbers are read as seconds. Several segments may be combined,
e.g. ``1m 30s``.
"""

from __future__ import annotations

import re
from typing import Optional, Union

_SEGMENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Zµ]*)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "nsec": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "usec": 1e-6,
    "ms": 1e-3,
    "msec": 1e-3,
    "millis": 1e-3,
    "": 1.0,
    "s": 1.0,
    "sec": 1.0,
    "secs": 1.0,
    "second": 1.0,
    "seconds": 1.0,
    "m": 60.0,
    "min": 60.0,
    "mins": 60.0,
    "minute": 60.0,
    "minutes": 60.0,
    "h": 3600.0,
    "hr": 3600.0,
    "hrs": 3600.0,
    "hour": 3600.0,
    "hours": 3600.0,
    "d": 86400.0,
    "day": 86400.0,
    "days": 86400.0,
}


def parse_duration(value: Union[str, int, float, None]) -> Optional[float]:
    """Return *value* as seconds, or ``None`` if it is ``None``.

    Raises :class:`ValueError` for malformed strings, unknown units or
    negative numbers.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    text = value.strip()
    if not text:
        raise ValueError("Empty duration")

    total = 0.0
    pos = 0
    for match in _SEGMENT_RE.finditer(text):
        if text[pos:match.start()].strip():
            raise ValueError(f"Invalid duration: {value!r}")
        number, unit = match.groups()
        factor = _UNIT_SECONDS.get(unit.lower())
        if factor is None:
            raise ValueError(f"Unknown duration unit '{unit}' in {value!r}")
        total += float(number) * factor
        pos = match.end()
    if pos == 0 or text[pos:].strip():
        raise ValueError(f"Invalid duration: {value!r}")
    return total

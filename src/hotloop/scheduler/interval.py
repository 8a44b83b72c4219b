"""
scheduler/interval.py — Interval parser

Turns interval text like "30s", "5m" or "2h" into milliseconds.
Invalid text raises InvalidIntervalFormat; there is no silent default.
"""

from __future__ import annotations

import re

from hotloop.exceptions import InvalidIntervalFormat

_INTERVAL_RE = re.compile(r"(\d+)([smh])", re.ASCII)

_UNIT_MS: dict[str, int] = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
}


def parse_interval(text: str) -> int:
    """
    Return the duration of `text` in milliseconds.

        parse_interval("30s") -> 30000
        parse_interval("5m")  -> 300000
        parse_interval("2h")  -> 7200000

    Raises InvalidIntervalFormat for anything that is not
    '<digits><s|m|h>' (whole-string match, no whitespace).
    """
    if not isinstance(text, str):
        raise InvalidIntervalFormat(text)
    match = _INTERVAL_RE.fullmatch(text)
    if match is None:
        raise InvalidIntervalFormat(text)
    amount, unit = match.groups()
    return int(amount) * _UNIT_MS[unit]


def interval_seconds(text: str) -> float:
    """Same as parse_interval() but in seconds, for asyncio.sleep()."""
    return parse_interval(text) / 1000

"""Timing codes — "N2", "J3", "M1", "U4".

A code is a phase letter (Nuit, Jour, Meeting, or U for unresolved) followed
by the day ordinal. Codes order by ordinal first, then Night < Day < Meeting.
"""

import re

TIMING_RE = re.compile(r"^([NJMU])(\d+)$")

PHASE_RANK = {"N": 0, "J": 1, "M": 2}

PHASE_TYPES = {"N": "night", "J": "day", "M": "meeting", "U": "unknown"}


def parse_timing(code):
    """Parse a timing code into (phase, number). Returns None if invalid."""
    if not code or not isinstance(code, str):
        return None
    match = TIMING_RE.match(code.strip().upper())
    if not match:
        return None
    number = int(match.group(2))
    if number < 1:
        return None
    return match.group(1), number


def parse_phase(code):
    """Like parse_timing, but only for the three ordered phases N/J/M."""
    parsed = parse_timing(code)
    if parsed is None or parsed[0] not in PHASE_RANK:
        return None
    return parsed


def phase_sort_key(code):
    """Sort key for N/J/M codes: (number, phase rank). None if unparseable."""
    parsed = parse_phase(code)
    if parsed is None:
        return None
    phase, number = parsed
    return number, PHASE_RANK[phase]


def timing_day(code):
    """Day ordinal of a timing code, any phase. None if unparseable."""
    parsed = parse_timing(code)
    return parsed[1] if parsed else None

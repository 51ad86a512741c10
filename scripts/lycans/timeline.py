"""Single-game timeline: every player's events grouped into ordered phases."""

import math

from lycans.cleaning import parse_datetime, seconds_between
from lycans.constants import PHASE_MINUTES
from lycans.timing import parse_phase, phase_sort_key, PHASE_TYPES


def estimate_role_change_timing(game_start, change_date):
    """Night code for a role change, guessed from minutes since game start.

    An approximation: one phase per PHASE_MINUTES, N1 when the dates are
    unusable.
    """
    elapsed = seconds_between(game_start, change_date)
    if elapsed is None:
        return "N1"
    phase = math.floor(elapsed / 60 / PHASE_MINUTES)
    return f"N{phase if phase > 0 else 1}"


def collect_events(game):
    """Flat, unsorted event list of a clean game."""
    events = []
    for p in game.get("players", []):
        base = {"player": p["name"], "color": p.get("color")}

        for a in p.get("actions") or []:
            events.append({
                **base, "type": "action", "timestamp": a.get("date"), "timing": a.get("timing"),
                "action_type": a.get("type"), "action_name": a.get("name"),
                "action_target": a.get("target"), "position": a.get("position"),
            })

        for v in p.get("votes") or []:
            if not v.get("date"):
                continue
            events.append({
                **base, "type": "vote", "timestamp": v["date"], "timing": f"M{v.get('day')}",
                "vote_target": v.get("target"), "vote_day": v.get("day"),
            })

        if p.get("death_date") and p.get("death_timing"):
            events.append({
                **base, "type": "death", "timestamp": p["death_date"], "timing": p["death_timing"],
                "death_type": p.get("death_type"), "killer": p.get("killer_name"),
            })

        for rc in p.get("role_changes") or []:
            events.append({
                **base, "type": "roleChange", "timestamp": rc.get("date"),
                "timing": estimate_role_change_timing(game.get("start_date"), rc.get("date")),
                "new_role": rc.get("new_role"),
            })

    if game.get("end_timing"):
        events.append({
            "player": None, "color": None, "type": "gameEnd",
            "timestamp": game.get("end_date"), "timing": game["end_timing"],
        })
    return events


def _timestamp_key(event):
    dt = parse_datetime(event.get("timestamp"))
    return (0, dt) if dt is not None else (1,)


def build_timeline(game):
    """Events of one game sorted by wall clock, grouped into phases.

    Phases follow game logic (ordinal, then night < day < meeting) rather
    than first-event time. Events whose timing code is not a N/J/M code are
    left out of the phases but still counted in total_events.
    """
    events = sorted(collect_events(game), key=_timestamp_key)

    grouped = {}
    for e in events:
        parsed = parse_phase(e.get("timing"))
        if parsed is None:
            continue
        code = f"{parsed[0]}{parsed[1]}"
        grouped.setdefault(code, []).append(e)

    phases = []
    for code in sorted(grouped, key=phase_sort_key):
        phase_events = grouped[code]
        phase, number = parse_phase(code)
        stamps = sorted(d for d in (parse_datetime(e.get("timestamp")) for e in phase_events) if d)
        phases.append({
            "phase": code,
            "phase_type": PHASE_TYPES[phase],
            "phase_number": number,
            "events": phase_events,
            "start_time": stamps[0].isoformat() if stamps else None,
            "end_time": stamps[-1].isoformat() if stamps else None,
        })

    return {
        "game_id": game.get("game_id"),
        "phases": phases,
        "total_events": len(events),
        "all_players": [p["name"] for p in game.get("players", [])],
        "bounds": {"start": game.get("start_date"), "end": game.get("end_date")},
    }

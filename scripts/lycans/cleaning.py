"""Parsing & cleaning — raw game-log export entries into clean game dicts."""

import math
from datetime import datetime, timezone


# ─── Scalars ────────────────────────────────────────────────────

DATETIME_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%Y-%m-%d %H:%M:%S",
)


def parse_datetime(value):
    """Parse an export timestamp into an aware UTC datetime.

    Accepts ISO-8601 (with or without a trailing Z) and the dd/mm/yyyy form
    found in older logs. Naive values are taken as UTC. Returns None if the
    value cannot be parsed.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            dt = None
            for fmt in DATETIME_FORMATS:
                try:
                    dt = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            if dt is None:
                return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_or_none(value):
    dt = parse_datetime(value)
    return dt.isoformat() if dt else None


def seconds_between(start, end):
    """Seconds from start to end, or None if either side is unparseable."""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        return None
    return (end_dt - start_dt).total_seconds()


def normalize_name(name):
    """Trim and collapse inner whitespace. Returns "" for missing names."""
    if not name:
        return ""
    return " ".join(str(name).split())


def name_key(name):
    """Case-insensitive comparison key for player names."""
    return normalize_name(name).casefold()


def player_key(player):
    """Stable identity for a clean player: its ID if present, else its name."""
    if player.get("id"):
        return str(player["id"])
    return name_key(player.get("name"))


def to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def to_int(value, default=None):
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if not text.lstrip("-").isdecimal():
        return default
    try:
        return int(text)
    except (ValueError, OverflowError):
        return default


def _clean_text(value):
    text = normalize_name(value)
    return text or None


# ─── Events ─────────────────────────────────────────────────────

def clean_role_changes(raw_changes):
    """Role changes in chronological order; entries without a role are dropped."""
    changes = []
    for rc in raw_changes or []:
        if not isinstance(rc, dict):
            continue
        role = _clean_text(rc.get("NewMainRole"))
        if not role:
            continue
        changes.append({"new_role": role, "date": iso_or_none(rc.get("RoleChangeDateIrl"))})
    # Dated changes are reordered among their own slots; undated ones stay put
    dated = iter(sorted((c for c in changes if c["date"]), key=lambda c: c["date"]))
    return [next(dated) if c["date"] else c for c in changes]


def clean_votes(raw_votes):
    if raw_votes is None:
        return None
    votes = []
    for v in raw_votes:
        if not isinstance(v, dict):
            continue
        votes.append({
            "day": to_int(v.get("Day")),
            "target": _clean_text(v.get("Target")),
            "date": iso_or_none(v.get("Date")),
        })
    return votes


def clean_actions(raw_actions):
    if raw_actions is None:
        return None
    actions = []
    for a in raw_actions:
        if not isinstance(a, dict):
            continue
        actions.append({
            "date": iso_or_none(a.get("Date")),
            "timing": _clean_text(a.get("Timing")),
            "type": _clean_text(a.get("ActionType")),
            "name": _clean_text(a.get("ActionName")),
            "target": _clean_text(a.get("ActionTarget")),
            "position": a.get("Position") if isinstance(a.get("Position"), dict) else None,
        })
    return actions


# ─── Players & Games ────────────────────────────────────────────

def clean_player(raw):
    """Parse one PlayerStats entry. Returns None if it carries no identity."""
    if not isinstance(raw, dict):
        return None
    name = normalize_name(raw.get("Username"))
    player_id = _clean_text(raw.get("ID"))
    if not name and not player_id:
        return None

    talked_outside = to_int(raw.get("SecondsTalkedOutsideMeeting"), 0)
    talked_during = to_int(raw.get("SecondsTalkedDuringMeeting"), 0)

    votes = raw.get("Votes")
    actions = raw.get("Actions")
    return {
        "id": player_id,
        "name": name or player_id,
        "color": _clean_text(raw.get("Color")),
        "main_role_initial": _clean_text(raw.get("MainRoleInitial")),
        "role_changes": clean_role_changes(raw.get("MainRoleChanges")),
        "power": _clean_text(raw.get("Power")),
        "secondary_role": _clean_text(raw.get("SecondaryRole")),
        "victorious": to_bool(raw.get("Victorious", False)),
        "death_date": iso_or_none(raw.get("DeathDateIrl")),
        "death_timing": _clean_text(raw.get("DeathTiming")),
        "death_type": _clean_text(raw.get("DeathType")),
        "killer_name": _clean_text(raw.get("KillerName")),
        "death_position": raw.get("DeathPosition") if isinstance(raw.get("DeathPosition"), dict) else None,
        "votes": clean_votes(votes) if isinstance(votes, list) else None,
        "actions": clean_actions(actions) if isinstance(actions, list) else None,
        "loot": to_int(raw.get("TotalCollectedLoot")),
        "seconds_talked_outside": talked_outside,
        "seconds_talked_during": talked_during,
        "seconds_talked": talked_outside + talked_during,
    }


def _skip(skip_log, reason):
    if skip_log is not None:
        skip_log.append(reason)
    return None


def clean_game(raw_entry, skip_log=None):
    """Parse a raw GameStats entry into a clean game dict. Returns None if invalid.

    When skip_log is a list, the reason for a rejection is appended to it.
    """
    if not isinstance(raw_entry, dict):
        return _skip(skip_log, "not_an_object")

    game_id = _clean_text(raw_entry.get("Id"))
    if not game_id:
        return _skip(skip_log, "missing_id")

    raw_players = raw_entry.get("PlayerStats")
    if not isinstance(raw_players, list) or not raw_players:
        return _skip(skip_log, "no_players")

    start = parse_datetime(raw_entry.get("StartDate"))
    if start is None:
        return _skip(skip_log, "bad_start_date")
    end = parse_datetime(raw_entry.get("EndDate"))

    players = [p for p in (clean_player(raw) for raw in raw_players) if p]
    if not players:
        return _skip(skip_log, "no_players")

    # Older logs predate complete death tracking and say so in LegacyData
    legacy = raw_entry.get("LegacyData")
    death_info_filled = True
    if isinstance(legacy, dict) and "deathInformationFilled" in legacy:
        death_info_filled = to_bool(legacy.get("deathInformationFilled"))

    modded = raw_entry.get("Modded")
    return {
        "game_id": game_id,
        "displayed_id": _clean_text(raw_entry.get("DisplayedId")) or game_id,
        "start_date": start.isoformat(),
        "end_date": end.isoformat() if end else None,
        "map": _clean_text(raw_entry.get("MapName")) or "",
        "modded": True if modded is None else to_bool(modded),
        "version": _clean_text(raw_entry.get("Version")),
        "harvest_goal": to_int(raw_entry.get("HarvestGoal")),
        "harvest_done": to_int(raw_entry.get("HarvestDone")),
        "end_timing": _clean_text(raw_entry.get("EndTiming")),
        "death_info_filled": death_info_filled,
        "players": players,
    }

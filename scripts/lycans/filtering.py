"""Game filtering — period, map, mod and date-range selection, chronology."""

from datetime import datetime, timedelta, timezone

from lycans.cleaning import parse_datetime


def _start(game):
    return parse_datetime(game.get("start_date"))


def sort_games_by_start(games):
    """Games in chronological order; games without a start date go last."""
    far_future = datetime.max.replace(tzinfo=timezone.utc)
    return sorted(games, key=lambda g: _start(g) or far_future)


def month_key(game):
    """'YYYY-MM' of the game's start date, or None."""
    dt = _start(game)
    return f"{dt.year}-{dt.month:02d}" if dt else None


def filter_games_by_period(games, days, now=None):
    """Filter games to those within the last N days. None = all games."""
    if days is None:
        return games
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    result = []
    for g in games:
        dt = _start(g)
        if dt is not None and dt >= cutoff:
            result.append(g)
    return result


def filter_games_by_date_range(games, start=None, end=None):
    """Filter games whose start date falls in [start, end]. Open bounds allowed."""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    result = []
    for g in games:
        dt = _start(g)
        if dt is None:
            continue
        if start_dt and dt < start_dt:
            continue
        if end_dt and dt > end_dt:
            continue
        result.append(g)
    return result


def filter_games_by_map(games, map_name):
    """Filter games to those on a specific map. 'all' returns all games."""
    if map_name == "all":
        return games
    return [g for g in games if g.get("map", "") == map_name]


def filter_games_by_mod(games, mode="all"):
    """'modded' keeps modded games, 'vanilla' the others, 'all' everything."""
    if mode == "modded":
        return [g for g in games if g.get("modded", True)]
    if mode == "vanilla":
        return [g for g in games if not g.get("modded", True)]
    return games

"""Consecutive-game series per player: same camp, wins, losses.

Games are walked in chronological order. Each player keeps a running series
of each kind and the longest one seen; a later series of equal length
replaces the earlier record.
"""

from collections import Counter

from lycans.camps import resolve_camp, is_wolf_family
from lycans.cleaning import player_key
from lycans.constants import VILLAGEOIS
from lycans.filtering import sort_games_by_start

SERIES_KINDS = ("villageois", "loups", "wins", "losses")


def main_camp(player):
    """Camp group a player started in: villageois, loups or other."""
    camp = resolve_camp(player, "initial")
    if camp == VILLAGEOIS:
        return "villageois"
    if is_wolf_family(camp):
        return "loups"
    return "other"


def _snapshot(current):
    return {
        "length": len(current),
        "start_game": current[0]["game"],
        "end_game": current[-1]["game"],
        "start_date": current[0]["date"],
        "end_date": current[-1]["date"],
        "camp_counts": dict(Counter(g["camp"] for g in current)),
        "game_ids": [g["game"] for g in current],
    }


def _extend(run, game_id, date, camp):
    run["current"].append({"game": game_id, "date": date, "camp": camp})
    if run["longest"] is None or len(run["current"]) >= run["longest"]["length"]:
        run["longest"] = _snapshot(run["current"])


def aggregate_series(games):
    """Longest camp, win and loss series of every player, longest first."""
    ordered = sort_games_by_start(games)
    runs = {}
    names = {}

    for game in ordered:
        game_id = game.get("displayed_id") or game["game_id"]
        date = game.get("start_date")
        for p in game.get("players", []):
            key = player_key(p)
            names[key] = p["name"]
            player_runs = runs.setdefault(
                key, {kind: {"current": [], "longest": None} for kind in SERIES_KINDS})
            camp = main_camp(p)
            won = bool(p.get("victorious"))

            extended = {
                "villageois": camp == "villageois",
                "loups": camp == "loups",
                "wins": won,
                "losses": not won,
            }
            for kind, extends in extended.items():
                if extends:
                    _extend(player_runs[kind], game_id, date, camp)
                else:
                    player_runs[kind]["current"] = []

    result = {"total_games": len(ordered), "total_players": len(runs)}
    for kind in SERIES_KINDS:
        records = []
        for key, player_runs in runs.items():
            run = player_runs[kind]
            if run["longest"] is None:
                continue
            record = {"id": key, "player": names[key]}
            record.update(run["longest"])
            record["ongoing"] = len(run["current"]) == record["length"]
            records.append(record)
        records.sort(key=lambda r: (-r["length"], r["player"]))
        result[kind] = records
    return result

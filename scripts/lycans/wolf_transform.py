"""Wolf transformation rates: how often wolf-family players shift form per night."""

from collections import defaultdict

from lycans.camps import resolve_camp, is_wolf_family
from lycans.cleaning import player_key
from lycans.constants import TRANSFORM_ACTION, UNTRANSFORM_ACTION
from lycans.timing import parse_timing


def nights_as_wolf(timing):
    """Nights a player spent as a wolf, from its death or game-end timing code.

    N k: k nights (the last one interrupted). J k / M k: k-1 completed
    nights. U k is a rough estimate, floor((k-1)/2). Anything else is 0.
    """
    parsed = parse_timing(timing)
    if parsed is None:
        return 0
    phase, k = parsed
    if phase == "N":
        return k
    if phase in ("J", "M"):
        return k - 1
    return max(0, (k - 1) // 2)


def _per_night(count, nights):
    return round(count / nights, 4) if nights > 0 else 0


def aggregate_wolf_transforms(games):
    """Per-player transform/untransform counts and per-night ratios.

    Only wolf-family players (initial camp) of games that logged actions
    contribute; players who never saw a night are skipped.
    """
    stats = defaultdict(lambda: {"name": "", "games": 0, "nights": 0, "transforms": 0, "untransforms": 0})
    games_with_data = 0

    for game in games:
        counted = False
        for p in game.get("players", []):
            if p.get("actions") is None or not is_wolf_family(resolve_camp(p, "initial")):
                continue
            nights = nights_as_wolf(p.get("death_timing") or game.get("end_timing"))
            if nights < 1:
                continue
            s = stats[player_key(p)]
            s["name"] = p["name"]
            s["games"] += 1
            s["nights"] += nights
            for a in p["actions"]:
                if a.get("type") == TRANSFORM_ACTION:
                    s["transforms"] += 1
                elif a.get("type") == UNTRANSFORM_ACTION:
                    s["untransforms"] += 1
            counted = True
        if counted:
            games_with_data += 1

    players = []
    for s in stats.values():
        players.append({
            "player": s["name"],
            "games_as_wolf": s["games"],
            "nights_as_wolf": s["nights"],
            "transforms": s["transforms"],
            "untransforms": s["untransforms"],
            "transforms_per_night": _per_night(s["transforms"], s["nights"]),
            "untransforms_per_night": _per_night(s["untransforms"], s["nights"]),
        })
    players.sort(key=lambda x: (-x["transforms_per_night"], x["player"]))

    return {"games_with_data": games_with_data, "total_players": len(players), "players": players}

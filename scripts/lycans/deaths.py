"""Death, killer and survival analysis.

Death causes are normalized to the DEATH_TYPES codes first. Games whose log
predates complete death tracking (death_info_filled False) are left out of
every report here.
"""

import math
from collections import Counter, defaultdict

from lycans.aggregation import rate
from lycans.camps import resolve_camp
from lycans.cleaning import name_key, player_key, parse_datetime
from lycans.constants import DEATH_TYPES, NON_KILL_DEATH_TYPES, SURVIVOR, UNKNOWN_DEATH
from lycans.timing import parse_timing, parse_phase, phase_sort_key, timing_day, PHASE_TYPES

# Raw French descriptions → code, first match wins. Every fragment must be
# present in the lowercased description.
DEATH_TYPE_PATTERNS = [
    (("vote",), "VOTED"),
    (("survivaliste",), "SURVIVALIST_NOT_SAVED"),
    (("tué par loup",), "BY_WOLF"),
    (("tué par un loup",), "BY_WOLF"),
    (("amoureux",), "LOVER_DEATH"),
    (("chasseur", "humain"), "BULLET_HUMAN"),
    (("chasseur", "en loup"), "BULLET_WOLF"),
    (("chasseur",), "BULLET"),
    (("balle",), "BULLET"),
    (("potion", "assassin"), "ASSASSIN"),
    (("potion", "hanté"), "HANTED"),
    (("la bête",), "BY_BEAST"),
    (("zombie",), "BY_ZOMBIE"),
    (("vengeur",), "AVENGER"),
    (("l'agent",), "OTHER_AGENT"),
    (("shérif",), "SHERIF_SUCCESS"),
    (("deviné",), "SEER"),
    (("explosé",), "BOMB"),
    (("écrasé",), "CRUSHED"),
    (("bestiale",), "STARVATION_AS_BEAST"),
    (("faim",), "STARVATION"),
    (("chute",), "FALL"),
    (("avatar",), "BY_AVATAR_CHAIN"),
    (("déco",), "DISCONNECT"),
]


def codify_death_type(raw):
    """Normalize a raw death description to a DEATH_TYPES code."""
    if not raw or str(raw).strip().upper() in ("N/A", ""):
        return SURVIVOR
    text = str(raw).strip()
    if text.upper() in DEATH_TYPES:
        return text.upper()
    lowered = text.lower()
    for fragments, code in DEATH_TYPE_PATTERNS:
        if all(f in lowered for f in fragments):
            return code
    return UNKNOWN_DEATH


def death_code(player):
    """Death code of a clean player; a timing without a cause counts as UNKNOWN."""
    code = codify_death_type(player.get("death_type"))
    if code == SURVIVOR and player.get("death_timing"):
        return UNKNOWN_DEATH
    return code


def is_dead(player):
    return death_code(player) != SURVIVOR


def _tracked(games):
    return [g for g in games if g.get("death_info_filled", True)]


def find_killer(game, victim):
    """The player credited with a victim's death, or None."""
    killer_name = victim.get("killer_name")
    if not killer_name or death_code(victim) in NON_KILL_DEATH_TYPES:
        return None
    wanted = name_key(killer_name)
    for p in game.get("players", []):
        if name_key(p.get("name")) == wanted:
            return p
    return None


def _timing_sort_key(timing):
    return phase_sort_key(timing) or (math.inf, math.inf)


def _most_common(counter):
    top = counter.most_common(1)
    return top[0][0] if top else None


# ─── Deaths & Killers ───────────────────────────────────────────

def aggregate_death_stats(games):
    """Deaths by type and timing, per-killer and per-victim statistics."""
    tracked = _tracked(games)

    by_type = Counter()
    by_timing = Counter()
    games_played = Counter()
    names = {}
    killers = defaultdict(lambda: {
        "kills": 0, "victims": Counter(), "roles": Counter(), "by_type": Counter(),
    })
    victims = defaultdict(lambda: {
        "deaths": 0, "by_type": Counter(), "by_phase": Counter(),
        "killed_by": Counter(), "days": [],
    })
    total_deaths = 0

    for game in tracked:
        for p in game.get("players", []):
            key = player_key(p)
            games_played[key] += 1
            names[key] = p["name"]

        for p in game.get("players", []):
            if not is_dead(p):
                continue
            code = death_code(p)
            parsed = parse_timing(p.get("death_timing"))

            total_deaths += 1
            by_type[code] += 1
            by_timing[f"{parsed[0]}{parsed[1]}" if parsed else "unknown"] += 1

            v = victims[player_key(p)]
            v["deaths"] += 1
            v["by_type"][code] += 1
            v["by_phase"][PHASE_TYPES[parsed[0]] if parsed else "unknown"] += 1
            if parsed:
                v["days"].append(parsed[1])
            if p.get("killer_name"):
                v["killed_by"][p["killer_name"]] += 1

            killer = find_killer(game, p)
            if killer is None:
                continue
            k = killers[player_key(killer)]
            k["kills"] += 1
            k["victims"][p["name"]] += 1
            k["roles"][resolve_camp(p, "final")] += 1
            k["by_type"][code] += 1

    deaths_by_type = [
        {"type": code, "count": n, "share": rate(n, total_deaths)}
        for code, n in sorted(by_type.items(), key=lambda x: (-x[1], x[0]))
    ]
    deaths_by_timing = [
        {"timing": timing, "count": n}
        for timing, n in sorted(by_timing.items(), key=lambda x: _timing_sort_key(x[0]))
    ]

    killer_list = []
    for key, k in killers.items():
        played = games_played[key]
        killer_list.append({
            "player": names.get(key, key),
            "kills": k["kills"],
            "unique_victims": len(k["victims"]),
            "victims": sorted(k["victims"]),
            "most_targeted_victim": _most_common(k["victims"]),
            "most_targeted_role": _most_common(k["roles"]),
            "games_played": played,
            "kills_per_game": round(k["kills"] / played, 4) if played > 0 else None,
            "share_of_deaths": rate(k["kills"], total_deaths),
            "kills_by_type": dict(k["by_type"]),
        })
    killer_list.sort(key=lambda x: (-x["kills"], x["player"]))

    player_list = []
    for key, v in victims.items():
        player_list.append({
            "player": names.get(key, key),
            "total_deaths": v["deaths"],
            "deaths_by_type": dict(v["by_type"]),
            "deaths_by_phase": dict(v["by_phase"]),
            "killed_by": dict(v["killed_by"]),
            "average_death_day": round(sum(v["days"]) / len(v["days"]), 2) if v["days"] else None,
            "death_rate": rate(v["deaths"], games_played[key]),
        })
    player_list.sort(key=lambda x: (-x["total_deaths"], x["player"]))

    return {
        "total_games": len(tracked),
        "total_deaths": total_deaths,
        "average_deaths_per_game": round(total_deaths / len(tracked), 4) if tracked else None,
        "deaths_by_type": deaths_by_type,
        "deaths_by_timing": deaths_by_timing,
        "killers": killer_list,
        "players": player_list,
        "most_common_death_type": deaths_by_type[0]["type"] if deaths_by_type else None,
        "most_deadly_killer": killer_list[0]["player"] if killer_list else None,
    }


def _progression_key(death):
    dt = parse_datetime(death["date"])
    if dt is not None:
        return 0, dt
    return 1, _timing_sort_key(death["timing"])


def aggregate_game_deaths(games):
    """Per-game mortality rate and deaths in the order they happened."""
    result = []
    for game in _tracked(games):
        players = game.get("players", [])
        deaths = []
        for p in players:
            if not is_dead(p):
                continue
            deaths.append({
                "player": p["name"],
                "timing": p.get("death_timing"),
                "death_type": death_code(p),
                "killer": p.get("killer_name"),
                "date": p.get("death_date"),
                "position": p.get("death_position"),
            })
        deaths.sort(key=_progression_key)
        result.append({
            "game_id": game["game_id"],
            "displayed_id": game.get("displayed_id"),
            "player_count": len(players),
            "deaths": len(deaths),
            "mortality_rate": rate(len(deaths), len(players)),
            "game_length": game.get("end_timing"),
            "progression": deaths,
        })
    return result


def aggregate_death_locations(games):
    """Where players died: one point per death with a logged position."""
    points = []
    by_type = Counter()
    for game in _tracked(games):
        for p in game.get("players", []):
            position = p.get("death_position")
            if not is_dead(p) or not position:
                continue
            code = death_code(p)
            by_type[code] += 1
            killer = find_killer(game, p)
            points.append({
                "game_id": game["game_id"],
                "map": game.get("map"),
                "player": p["name"],
                "camp": resolve_camp(p, "final"),
                "death_type": code,
                "timing": p.get("death_timing"),
                "killer": killer["name"] if killer else None,
                "x": position.get("x"),
                "y": position.get("y"),
                "z": position.get("z"),
            })
    return {
        "total_points": len(points),
        "points_by_type": dict(by_type),
        "points": points,
    }


# ─── Killer Records ─────────────────────────────────────────────

def _update_record(records, key, name, kills, game_id):
    rec = records.get(key)
    if rec is None or kills > rec["max_kills"]:
        records[key] = {"player": name, "max_kills": kills, "times_achieved": 1, "game_ids": [game_id]}
    elif kills == rec["max_kills"]:
        rec["times_achieved"] += 1
        if game_id not in rec["game_ids"]:
            rec["game_ids"].append(game_id)


def aggregate_killer_records(games):
    """Best single-game and single-night kill counts per player."""
    per_game = {}
    per_night = {}

    for game in _tracked(games):
        game_id = game.get("displayed_id") or game["game_id"]
        game_kills = Counter()
        night_kills = defaultdict(Counter)
        killers = {}
        for victim in game.get("players", []):
            if not victim.get("death_timing"):
                continue
            killer = find_killer(game, victim)
            if killer is None:
                continue
            key = player_key(killer)
            killers[key] = killer
            game_kills[key] += 1
            parsed = parse_phase(victim["death_timing"])
            if parsed and parsed[0] == "N":
                night_kills[key][victim["death_timing"].strip().upper()] += 1

        for key, kills in game_kills.items():
            _update_record(per_game, key, killers[key]["name"], kills, game_id)
        for key, nights in night_kills.items():
            _update_record(per_night, key, killers[key]["name"], max(nights.values()), game_id)

    def ordered(records):
        return sorted(records.values(), key=lambda r: (-r["max_kills"], -r["times_achieved"], r["player"]))

    return {"max_kills_per_game": ordered(per_game), "max_kills_per_night": ordered(per_night)}


# ─── Survival ───────────────────────────────────────────────────

def aggregate_survival_by_day(games, camp=None):
    """Share of players still alive at each day, per player and overall.

    A game reaches every day up to its end-timing day (1 when unknown). A
    player survives day d when they never died or died on a later day.
    camp restricts the report to players of that initial camp.
    """
    tracked = _tracked(games)
    players = defaultdict(lambda: {"name": "", "games": 0, "days": defaultdict(lambda: [0, 0])})
    days = defaultdict(lambda: {"games": 0, "players": 0, "survivors": 0})

    for game in tracked:
        last_day = timing_day(game.get("end_timing")) or 1
        for day in range(1, last_day + 1):
            days[day]["games"] += 1

        for p in game.get("players", []):
            if camp and resolve_camp(p, "initial") != camp:
                continue
            entry = players[player_key(p)]
            entry["name"] = p["name"]
            entry["games"] += 1
            death_day = timing_day(p.get("death_timing")) if is_dead(p) else None
            for day in range(1, last_day + 1):
                survived = death_day is None or death_day > day
                entry["days"][day][0] += 1
                days[day]["players"] += 1
                if survived:
                    entry["days"][day][1] += 1
                    days[day]["survivors"] += 1

    player_list = []
    for entry in players.values():
        by_day = []
        for day in sorted(entry["days"]):
            reached, survived = entry["days"][day]
            by_day.append({
                "day": day, "reached": reached, "survived": survived,
                "survival_rate": rate(survived, reached),
            })
        player_list.append({"player": entry["name"], "total_games": entry["games"], "by_day": by_day})
    player_list.sort(key=lambda x: (-x["total_games"], x["player"]))

    day_list = [
        {
            "day": day,
            "games_reaching_day": d["games"],
            "players_on_day": d["players"],
            "survival_rate": rate(d["survivors"], d["players"]),
        }
        for day, d in sorted(days.items())
    ]

    return {
        "total_games": len(tracked),
        "total_players_analyzed": len(player_list),
        "players": player_list,
        "days": day_list,
    }

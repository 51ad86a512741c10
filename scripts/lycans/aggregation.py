"""Aggregation functions — turn clean games into stats.

All functions take a list of clean game dicts and return aggregated data.
No I/O, no side effects. Rates are percentages rounded to 2 decimals, or
None when nothing was counted.
"""

import math
from collections import defaultdict

from lycans.camps import (
    final_camps, resolve_camp, winning_camp_of, did_camp_win, effective_power,
)
from lycans.cleaning import player_key
from lycans.constants import (
    VILLAGEOIS, LOUP, TRAITRE, LOUVETEAU, LOUPS, AMOUREUX, SOLO_CAMPS,
    MIN_WOLF_PAIR_GAMES, MIN_LOVER_PAIR_GAMES, MIN_COMPOSITION_APPEARANCES,
    MIN_PARTICIPATION_RATIO,
)
from lycans.filtering import sort_games_by_start, month_key


def rate(count, total):
    """count / total as a 0–100 percentage, None when total is 0."""
    return round(count / total * 100, 2) if total > 0 else None


def _rate_sort_key(value):
    # None rates sort after every real rate
    return -value if value is not None else math.inf


# ─── Camp Win Stats ─────────────────────────────────────────────

def aggregate_camp_win_stats(games):
    """Winning-camp tallies plus per-camp participation averages.

    camp_wins counts one win per game with a determined winner, so the sum of
    wins equals games_with_winner. camp_averages counts, per final camp, the
    games it took part in and the games it won.
    """
    camp_wins = defaultdict(int)
    games_with_winner = 0
    solo_appearances = defaultdict(int)
    powers = defaultdict(lambda: [0, 0])
    camps = defaultdict(lambda: {
        "games": 0, "wins": 0,
        "players": defaultdict(lambda: {"name": "", "games": 0, "wins": 0}),
    })

    for game in games:
        winner = winning_camp_of(game)
        if winner is not None:
            games_with_winner += 1
            camp_wins[winner] += 1

        won_in_game = {}
        for p, camp in final_camps(game):
            won = did_camp_win(camp, winner, p.get("victorious"))
            won_in_game[camp] = won_in_game.get(camp, False) or won
            if camp in SOLO_CAMPS:
                solo_appearances[camp] += 1
            power = effective_power(p)
            if power:
                powers[power][0] += 1
                powers[power][1] += int(won)

            entry = camps[camp]["players"][player_key(p)]
            entry["name"] = p["name"]
            entry["games"] += 1
            if won:
                entry["wins"] += 1

        for camp, won in won_in_game.items():
            camps[camp]["games"] += 1
            if won:
                camps[camp]["wins"] += 1

    camp_win_list = [
        {"camp": camp, "wins": wins, "win_rate": rate(wins, games_with_winner)}
        for camp, wins in camp_wins.items()
    ]
    camp_win_list.sort(key=lambda x: (-x["wins"], x["camp"]))

    averages = []
    all_players = set()
    for camp, data in camps.items():
        players = []
        for key, p in data["players"].items():
            all_players.add(key)
            players.append({
                "player": p["name"],
                "games": p["games"],
                "wins": p["wins"],
                "win_rate": rate(p["wins"], p["games"]),
            })
        players.sort(key=lambda x: (-x["games"], x["player"]))
        averages.append({
            "camp": camp,
            "games": data["games"],
            "wins": data["wins"],
            "win_rate": rate(data["wins"], data["games"]),
            "players": players,
        })
    averages.sort(key=lambda x: (-x["games"], x["camp"]))

    solo = [{"camp": c, "appearances": n} for c, n in solo_appearances.items()]
    solo.sort(key=lambda x: (-x["appearances"], x["camp"]))

    elite_powers = [
        {"power": power, "games": n, "wins": wins, "win_rate": rate(wins, n)}
        for power, (n, wins) in powers.items()
    ]
    elite_powers.sort(key=lambda x: (-x["games"], x["power"]))

    return {
        "total_games": len(games),
        "games_with_winner": games_with_winner,
        "camp_wins": camp_win_list,
        "camp_averages": averages,
        "solo_camps": solo,
        "elite_powers": elite_powers,
        "total_players_analyzed": len(all_players),
    }


# ─── Player Stats ───────────────────────────────────────────────

def aggregate_player_stats(games):
    """Per-player games, individual wins and final-camp histogram.

    Players are keyed by stable ID when the log has one, else by normalized
    name; the most recent display name is kept for rendering.
    """
    stats = defaultdict(lambda: {"name": "", "seen": "", "games": 0, "wins": 0, "camps": {}})
    total_games = 0

    for game in games:
        if not game.get("players"):
            continue
        total_games += 1
        started = game.get("start_date") or ""
        for p, camp in final_camps(game):
            key = player_key(p)
            if not key:
                continue
            s = stats[key]
            if started >= s["seen"]:
                s["name"] = p["name"]
                s["seen"] = started
            s["games"] += 1
            if p.get("victorious"):
                s["wins"] += 1
            s["camps"][camp] = s["camps"].get(camp, 0) + 1

    players = []
    for key, s in stats.items():
        players.append({
            "id": key,
            "player": s["name"],
            "games_played": s["games"],
            "games_played_pct": rate(s["games"], total_games),
            "wins": s["wins"],
            "win_rate": rate(s["wins"], s["games"]),
            "camps": dict(sorted(s["camps"].items(), key=lambda x: -x[1])),
        })
    players.sort(key=lambda x: (-x["games_played"], x["player"]))

    return {"total_games": total_games, "players": players}


# ─── Pairings ───────────────────────────────────────────────────

def _tally_pair(pairs, a, b):
    key = tuple(sorted((player_key(a), player_key(b))))
    entry = pairs[key]
    entry["names"][player_key(a)] = a["name"]
    entry["names"][player_key(b)] = b["name"]
    entry["appearances"] += 1
    if a.get("victorious") and b.get("victorious"):
        entry["wins"] += 1


def _finalize_pairs(pairs, min_games):
    result = []
    for key, data in pairs.items():
        if data["appearances"] < min_games:
            continue
        names = sorted(data["names"][k] for k in key)
        result.append({
            "pair": " & ".join(names),
            "players": names,
            "appearances": data["appearances"],
            "wins": data["wins"],
            "win_rate": rate(data["wins"], data["appearances"]),
        })
    result.sort(key=lambda x: (-x["appearances"], _rate_sort_key(x["win_rate"]), x["pair"]))
    return result


def aggregate_pairing_stats(games, min_wolf_games=MIN_WOLF_PAIR_GAMES,
                            min_lover_games=MIN_LOVER_PAIR_GAMES):
    """Co-occurrence and joint win rate of wolf pairs and lover pairs.

    Wolves are players who started as a pure Loup. Lovers are taken two by
    two in roster order. A pair wins only when both members are victorious.
    """
    def new_pairs():
        return defaultdict(lambda: {"appearances": 0, "wins": 0, "names": {}})

    wolf_pairs = new_pairs()
    lover_pairs = new_pairs()
    wolf_games = 0
    lover_games = 0

    for game in games:
        players = game.get("players", [])
        wolves = [p for p in players if resolve_camp(p, "initial") == LOUP]
        lovers = [p for p in players if resolve_camp(p, "initial") == AMOUREUX]

        if len(wolves) >= 2:
            wolf_games += 1
            for i in range(len(wolves)):
                for j in range(i + 1, len(wolves)):
                    _tally_pair(wolf_pairs, wolves[i], wolves[j])

        if len(lovers) >= 2:
            lover_games += 1
            for i in range(0, len(lovers) - 1, 2):
                _tally_pair(lover_pairs, lovers[i], lovers[i + 1])

    return {
        "wolf_pairs": {
            "total_games": wolf_games,
            "pairs": _finalize_pairs(wolf_pairs, min_wolf_games),
        },
        "lover_pairs": {
            "total_games": lover_games,
            "pairs": _finalize_pairs(lover_pairs, min_lover_games),
        },
    }


# ─── Team Compositions ──────────────────────────────────────────

def composition_signature(game):
    """Role-category counts of a game's final camps. The five counts sum to player_count."""
    sig = {"pure_wolf": 0, "traitor": 0, "louveteau": 0, "solo": 0, "villageois": 0}
    for _, camp in final_camps(game):
        if camp == LOUP:
            sig["pure_wolf"] += 1
        elif camp == TRAITRE:
            sig["traitor"] += 1
        elif camp == LOUVETEAU:
            sig["louveteau"] += 1
        elif camp == VILLAGEOIS:
            sig["villageois"] += 1
        else:
            sig["solo"] += 1
    sig["player_count"] = len(game.get("players", []))
    return sig


def config_key(sig):
    wolves = sig["pure_wolf"] + sig["traitor"] + sig["louveteau"]
    return (f"{wolves}w-{sig['solo']}s-"
            f"{sig['pure_wolf']}L-{sig['traitor']}T-{sig['louveteau']}Lou")


def aggregate_team_compositions(games, min_appearances=MIN_COMPOSITION_APPEARANCES):
    """Group games by player count, then by composition signature.

    most_common and best_* picks only consider configurations seen at least
    min_appearances times; they are None when no configuration qualifies.
    """
    # by_count[player_count][config_key] = tracking dict
    by_count = defaultdict(dict)

    for game in games:
        sig = composition_signature(game)
        key = config_key(sig)
        bucket = by_count[sig["player_count"]]
        if key not in bucket:
            bucket[key] = {
                "config_key": key,
                "wolf_count": sig["pure_wolf"] + sig["traitor"] + sig["louveteau"],
                "pure_wolf_count": sig["pure_wolf"],
                "traitor_count": sig["traitor"],
                "louveteau_count": sig["louveteau"],
                "solo_count": sig["solo"],
                "villageois_count": sig["villageois"],
                "appearances": 0,
                "wins_by_wolves": 0,
                "wins_by_villageois": 0,
                "wins_by_solo": 0,
            }
        config = bucket[key]
        config["appearances"] += 1

        winner = winning_camp_of(game)
        if winner == LOUPS:
            config["wins_by_wolves"] += 1
        elif winner == VILLAGEOIS:
            config["wins_by_villageois"] += 1
        elif winner is not None:
            config["wins_by_solo"] += 1

    result = []
    eligible_total = 0
    for player_count in sorted(by_count):
        configurations = []
        for config in by_count[player_count].values():
            n = config["appearances"]
            configurations.append(dict(
                config,
                wolf_win_rate=rate(config["wins_by_wolves"], n),
                villageois_win_rate=rate(config["wins_by_villageois"], n),
                solo_win_rate=rate(config["wins_by_solo"], n),
            ))
        configurations.sort(key=lambda c: (-c["appearances"], c["config_key"]))

        eligible = [c for c in configurations if c["appearances"] >= min_appearances]
        eligible_total += len(eligible)

        result.append({
            "player_count": player_count,
            "total_games": sum(c["appearances"] for c in configurations),
            "configurations": configurations,
            "most_common": eligible[0]["config_key"] if eligible else None,
            "best_wolf_win_rate": (
                max(eligible, key=lambda c: c["wolf_win_rate"])["config_key"] if eligible else None
            ),
            "best_villageois_win_rate": (
                max(eligible, key=lambda c: c["villageois_win_rate"])["config_key"] if eligible else None
            ),
        })

    return {
        "total_games_analyzed": len(games),
        "configurations_with_min_appearances": eligible_total,
        "by_player_count": result,
    }


# ─── Colors ─────────────────────────────────────────────────────

def aggregate_color_stats(games):
    """Per-color appearances, wins and popularity.

    avg_uses_per_game divides a color's instances by the total number of
    games, not by the games the color appeared in.
    """
    total_games = len(games)
    colors = defaultdict(lambda: {"instances": 0, "wins": 0, "games": 0})

    for game in games:
        seen = set()
        for p in game.get("players", []):
            color = p.get("color")
            if not color:
                continue
            colors[color]["instances"] += 1
            if p.get("victorious"):
                colors[color]["wins"] += 1
            seen.add(color)
        for color in seen:
            colors[color]["games"] += 1

    result = []
    for color, data in colors.items():
        result.append({
            "color": color,
            "appearances": data["instances"],
            "games_with_color": data["games"],
            "wins": data["wins"],
            "win_rate": rate(data["wins"], data["instances"]),
            "avg_uses_per_game": round(data["instances"] / total_games, 4) if total_games > 0 else None,
        })
    result.sort(key=lambda x: (_rate_sort_key(x["win_rate"]), x["color"]))
    return result


# ─── Harvest ────────────────────────────────────────────────────

HARVEST_BUCKETS = (("0-25%", 0.25), ("26-50%", 0.50), ("51-75%", 0.75), ("76-99%", 0.99), ("100%", math.inf))


def _harvest_bucket(ratio):
    for label, upper in HARVEST_BUCKETS:
        if ratio <= upper:
            return label


def aggregate_harvest_stats(games):
    """How far the village got towards its harvest goal, overall and per winner.

    Only games with a positive goal and a recorded harvest count.
    """
    total_done = 0
    total_goal = 0
    counted = 0
    reached = 0
    distribution = {label: 0 for label, _ in HARVEST_BUCKETS}
    by_winner = defaultdict(lambda: [0, 0.0])

    for game in games:
        goal = game.get("harvest_goal")
        done = game.get("harvest_done")
        if not goal or goal <= 0 or done is None:
            continue
        ratio = done / goal
        counted += 1
        total_done += done
        total_goal += goal
        distribution[_harvest_bucket(ratio)] += 1
        if done >= goal:
            reached += 1
        winner = winning_camp_of(game)
        if winner is not None:
            by_winner[winner][0] += 1
            by_winner[winner][1] += ratio

    winners = [
        {"camp": camp, "games": n, "average_completion": round(total / n * 100, 2)}
        for camp, (n, total) in by_winner.items()
    ]
    winners.sort(key=lambda x: (-x["games"], x["camp"]))

    return {
        "total_games": len(games),
        "games_with_harvest": counted,
        "average_harvest": round(total_done / counted, 2) if counted else None,
        "average_completion": rate(total_done, total_goal),
        "goal_reached_games": reached,
        "goal_reached_rate": rate(reached, counted),
        "distribution": distribution,
        "by_winner": winners,
    }


# ─── Monthly Ranking ────────────────────────────────────────────

def min_games_required(total_games, min_ratio=MIN_PARTICIPATION_RATIO):
    # round() first so 15 * 0.4 stays 6 instead of 6.000000000000001
    return math.ceil(round(total_games * min_ratio, 9))


def rank_players(games, min_ratio=MIN_PARTICIPATION_RATIO):
    """Rank players of a game list by win rate, games played as tie-break.

    Only players who played at least min_ratio of the games are ranked.
    Ranks start at 1.
    """
    floor = min_games_required(len(games), min_ratio)
    tallies = defaultdict(lambda: {"name": "", "games": 0, "wins": 0})

    for game in games:
        for p in game.get("players", []):
            key = player_key(p)
            if not key:
                continue
            t = tallies[key]
            t["name"] = p["name"]
            t["games"] += 1
            if p.get("victorious"):
                t["wins"] += 1

    eligible = [(key, t) for key, t in tallies.items() if t["games"] >= max(floor, 1)]
    eligible.sort(key=lambda kt: (-kt[1]["wins"] / kt[1]["games"], -kt[1]["games"], kt[1]["name"].casefold()))

    ranking = []
    for i, (key, t) in enumerate(eligible):
        ranking.append({
            "id": key,
            "player": t["name"],
            "rank": i + 1,
            "games_played": t["games"],
            "wins": t["wins"],
            "win_rate": rate(t["wins"], t["games"]),
        })
    return ranking


def aggregate_monthly_rankings(games, min_ratio=MIN_PARTICIPATION_RATIO):
    """One ranking per calendar month of start date, oldest month first."""
    months = defaultdict(list)
    for game in games:
        key = month_key(game)
        if key:
            months[key].append(game)

    result = []
    for key in sorted(months):
        month_games = sort_games_by_start(months[key])
        result.append({
            "month": key,
            "total_games": len(month_games),
            "min_games": min_games_required(len(month_games), min_ratio),
            "players": rank_players(month_games, min_ratio),
        })
    return result


def ranking_progression(month_games, min_ratio=MIN_PARTICIPATION_RATIO):
    """Rankings recomputed over each chronological prefix of a month's games.

    Each frame carries rank_delta = previous rank − current rank, positive
    when the player moved up, None when unranked in the previous frame.
    """
    ordered = sort_games_by_start(month_games)
    frames = []
    previous = {}
    for n in range(1, len(ordered) + 1):
        ranking = rank_players(ordered[:n], min_ratio)
        for entry in ranking:
            prev_rank = previous.get(entry["id"])
            entry["rank_delta"] = prev_rank - entry["rank"] if prev_rank is not None else None
        previous = {entry["id"]: entry["rank"] for entry in ranking}
        frames.append({
            "games_played": n,
            "game_id": ordered[n - 1]["game_id"],
            "min_games": min_games_required(n, min_ratio),
            "players": ranking,
        })
    return frames

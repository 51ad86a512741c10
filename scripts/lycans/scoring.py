"""Population-relative player scores and head-to-head comparison.

Raw per-player metrics (win rate, kills, survival, voting aggressiveness,
harvest pace, talking time) are only comparable after min-max scaling against
the current population, so every score here is fitted to the games passed in.
"""

from lycans.aggregation import rate, aggregate_player_stats
from lycans.camps import resolve_camp, is_wolf_family, affiliation
from lycans.cleaning import name_key, player_key, seconds_between
from lycans.constants import (
    VILLAGEOIS, LOUPS, SKIPPED_VOTE_TARGET,
    MIN_COMPARISON_GAMES, CONSISTENCY_MIN_GAMES, CONSISTENCY_FLOOR_SCORE,
    CONSISTENCY_CAMP_MIN_GAMES, OPTIMAL_VOLATILITY, VOLATILITY_PENALTY,
    CONSISTENCY_WEIGHTS, CONSISTENCY_BOUNDS,
)
from lycans.deaths import is_dead, find_killer
from lycans.filtering import sort_games_by_start
from lycans.talking import has_talking_data, alive_seconds, per_hour

SCORED_METRICS = (
    "win_rate", "kills_per_game", "survival_rate", "aggressiveness", "harvest_rate", "talking_per_hour",
)


def build_scaler(values):
    """Min-max scaler onto [0, 100]. Empty or constant input scores 50."""
    values = [v for v in values if v is not None]
    if not values:
        return lambda v: 50
    lo, hi = min(values), max(values)
    if hi == lo:
        return lambda v: 50
    # Players outside the fitted population may fall beyond its range
    return lambda v: min(100, max(0, (v - lo) / (hi - lo) * 100))


def _matches(player, ident):
    ident = str(ident)
    return player_key(player) == ident or name_key(player.get("name")) == name_key(ident)


def _find(game, ident):
    for p in game.get("players", []):
        if _matches(p, ident):
            return p
    return None


def _appearances(games, ident):
    """(game, player) for every game the player took part in."""
    for game in games:
        p = _find(game, ident)
        if p is not None:
            yield game, p


# ─── Raw Metrics ────────────────────────────────────────────────

def kills_per_game(games, ident):
    played = 0
    kills = 0
    for game, p in _appearances(games, ident):
        played += 1
        kills += sum(1 for v in game.get("players", []) if find_killer(game, v) is p)
    return round(kills / played, 4) if played else None


def survival_rate(games, ident):
    played = 0
    survived = 0
    for _, p in _appearances(games, ident):
        played += 1
        if not is_dead(p):
            survived += 1
    return rate(survived, played)


def aggressiveness(games, ident):
    """Voting rate minus half the skip rate, over meetings the player voted in.

    One vote per meeting day counts (the last one logged). None when the
    player has no recorded votes.
    """
    meetings = 0
    votes = 0
    skips = 0
    for _, p in _appearances(games, ident):
        by_day = {}
        for v in p.get("votes") or []:
            if v.get("day") is not None:
                by_day[v["day"]] = v.get("target")
        meetings += len(by_day)
        for target in by_day.values():
            if target == SKIPPED_VOTE_TARGET:
                skips += 1
            else:
                votes += 1
    if meetings == 0:
        return None
    return round(votes / meetings * 100 - skips / meetings * 100 * 0.5, 2)


def harvest_rate(games, ident):
    """Loot collected per hour alive, up to death or the end of the game."""
    loot = 0
    seconds = 0
    for game, p in _appearances(games, ident):
        if p.get("loot") is None:
            continue
        duration = alive_seconds(game, p)
        if duration and duration > 0:
            loot += p["loot"]
            seconds += duration
    if seconds == 0:
        return None
    return round(loot * 3600 / seconds, 2)


def talking_per_hour(games, ident):
    """Seconds talked per hour alive, over games where talking was logged."""
    talked = 0
    seconds = 0
    for game, p in _appearances(games, ident):
        if not has_talking_data(game):
            continue
        duration = alive_seconds(game, p)
        if duration and duration > 0:
            talked += p.get("seconds_talked") or 0
            seconds += duration
    return per_hour(talked, seconds)


def player_history(games, ident):
    """Chronological [{camp, won}] of a player's games, camp taken at the end."""
    return [
        {"camp": resolve_camp(p, "final"), "won": bool(p.get("victorious"))}
        for _, p in _appearances(sort_games_by_start(games), ident)
    ]


def camp_performance(games, ident):
    """Win rates as Villageois, in the wolf family, and in any other camp."""
    buckets = {"villageois": [0, 0], "loups": [0, 0], "special": [0, 0]}
    for h in player_history(games, ident):
        if h["camp"] == VILLAGEOIS:
            b = buckets["villageois"]
        elif is_wolf_family(h["camp"]):
            b = buckets["loups"]
        else:
            b = buckets["special"]
        b[0] += 1
        b[1] += int(h["won"])
    result = {}
    for name, (played, won) in buckets.items():
        result[f"{name}_games"] = played
        result[f"{name}_win_rate"] = rate(won, played)
    return result


# ─── Consistency ────────────────────────────────────────────────

def _variance(outcomes):
    mean = sum(outcomes) / len(outcomes)
    return sum((o - mean) ** 2 for o in outcomes) / len(outcomes)


def _mean(outcomes):
    return sum(outcomes) / len(outcomes)


def advanced_consistency(history):
    """Composite 5..95 consistency score from a chronological [{camp, won}] history.

    Blends outcome variance within the Villageois and wolf-family games,
    stability of the win rate across early/middle/late thirds, and how far
    the win/loss alternation strays from a natural rate. Histories shorter
    than CONSISTENCY_MIN_GAMES get CONSISTENCY_FLOOR_SCORE.
    """
    n = len(history)
    if n < CONSISTENCY_MIN_GAMES:
        return CONSISTENCY_FLOOR_SCORE

    outcomes = [1 if h["won"] else 0 for h in history]

    camp_score = 50
    villageois = [1 if h["won"] else 0 for h in history if h["camp"] == VILLAGEOIS]
    wolves = [1 if h["won"] else 0 for h in history if is_wolf_family(h["camp"])]
    for sub in (villageois, wolves):
        if len(sub) >= CONSISTENCY_CAMP_MIN_GAMES:
            camp_score += (1 - _variance(sub)) * 20

    third = n // 3
    thirds = [outcomes[:third], outcomes[third:2 * third], outcomes[2 * third:]]
    third_rates = [_mean(t) for t in thirds]
    temporal = 100 * (1 - (max(third_rates) - min(third_rates)))

    changes = sum(1 for i in range(1, n) if outcomes[i] != outcomes[i - 1])
    volatility = changes / (n - 1)
    penalty = abs(volatility - OPTIMAL_VOLATILITY) * VOLATILITY_PENALTY

    w_camp, w_temporal, w_streak = CONSISTENCY_WEIGHTS
    score = w_camp * camp_score + w_temporal * temporal + w_streak * (100 - penalty)
    lo, hi = CONSISTENCY_BOUNDS
    return round(min(hi, max(lo, score)), 2)


# ─── Population Scores ──────────────────────────────────────────

def _raw_metrics(games, entry):
    key = entry["id"]
    return {
        "win_rate": entry["win_rate"],
        "kills_per_game": kills_per_game(games, key),
        "survival_rate": survival_rate(games, key),
        "aggressiveness": aggressiveness(games, key),
        "harvest_rate": harvest_rate(games, key),
        "talking_per_hour": talking_per_hour(games, key),
    }


def _fit_scalers(raws):
    return {m: build_scaler([r[m] for r in raws]) for m in SCORED_METRICS}


def _profile(games, entry, raw, scalers):
    scores = {}
    for m in SCORED_METRICS:
        scores[m] = round(scalers[m](raw[m]), 2) if raw[m] is not None else None
    return {
        "id": entry["id"],
        "player": entry["player"],
        "games_played": entry["games_played"],
        "raw": raw,
        "scores": scores,
        "consistency": advanced_consistency(player_history(games, entry["id"])),
        "camp_performance": camp_performance(games, entry["id"]),
    }


def _population(games, stats, min_games):
    eligible = [e for e in stats["players"] if e["games_played"] >= min_games]
    return eligible, [_raw_metrics(games, e) for e in eligible]


def score_players(games, min_games=MIN_COMPARISON_GAMES):
    """Scaled profile of every player with at least min_games games."""
    stats = aggregate_player_stats(games)
    eligible, raws = _population(games, stats, min_games)
    scalers = _fit_scalers(raws)
    players = [_profile(games, e, raw, scalers) for e, raw in zip(eligible, raws)]
    players.sort(key=lambda x: x["player"].casefold())
    return {"min_games": min_games, "total_players": len(players), "players": players}


def _lookup(stats, ident):
    ident = str(ident)
    for entry in stats["players"]:
        if entry["id"] == ident:
            return entry
    for entry in stats["players"]:
        if name_key(entry["player"]) == name_key(ident):
            return entry
    return None


def _average(total, count):
    return round(total / count, 2) if count else None


def head_to_head(games, a, b):
    """Shared-game record of two players, split by opposing and allied camps."""
    h = {
        "common_games": 0, "a_wins": 0, "b_wins": 0,
        "a_killed_b": 0, "b_killed_a": 0,
        "opposing_games": 0, "a_wins_opposing": 0, "b_wins_opposing": 0,
        "a_killed_b_opposing": 0, "b_killed_a_opposing": 0,
        "same_camp_games": 0, "same_camp_wins": 0,
        "a_killed_b_same_camp": 0, "b_killed_a_same_camp": 0,
        "same_loups_games": 0, "same_loups_wins": 0,
    }
    durations = {"common": [0, 0], "opposing": [0, 0], "same_camp": [0, 0], "same_loups": [0, 0]}

    for game in games:
        pa = _find(game, a)
        pb = _find(game, b)
        if pa is None or pb is None or pa is pb:
            continue
        a_won = bool(pa.get("victorious"))
        b_won = bool(pb.get("victorious"))
        b_killed_a = find_killer(game, pa) is pb
        a_killed_b = find_killer(game, pb) is pa
        duration = seconds_between(game.get("start_date"), game.get("end_date"))
        groups = ["common"]

        h["common_games"] += 1
        h["a_wins"] += a_won
        h["b_wins"] += b_won
        h["a_killed_b"] += a_killed_b
        h["b_killed_a"] += b_killed_a

        side_a = affiliation(resolve_camp(pa, "final"))
        side_b = affiliation(resolve_camp(pb, "final"))
        if side_a != side_b:
            groups.append("opposing")
            h["opposing_games"] += 1
            h["a_wins_opposing"] += a_won
            h["b_wins_opposing"] += b_won
            h["a_killed_b_opposing"] += a_killed_b
            h["b_killed_a_opposing"] += b_killed_a
        else:
            groups.append("same_camp")
            h["same_camp_games"] += 1
            h["same_camp_wins"] += a_won or b_won
            h["a_killed_b_same_camp"] += a_killed_b
            h["b_killed_a_same_camp"] += b_killed_a
            if side_a == LOUPS:
                groups.append("same_loups")
                h["same_loups_games"] += 1
                h["same_loups_wins"] += a_won or b_won

        if duration is not None and duration > 0:
            for g in groups:
                durations[g][0] += duration
                durations[g][1] += 1

    for g, (total, count) in durations.items():
        h[f"average_{g}_duration"] = _average(total, count)
    return h


def compare_players(games, a, b, min_games=MIN_COMPARISON_GAMES):
    """Scaled profiles of two players plus their head-to-head record.

    Players are looked up by identity key or name. Scalers are fitted to the
    min_games population. Returns None if either player has no games.
    """
    stats = aggregate_player_stats(games)
    entry_a = _lookup(stats, a)
    entry_b = _lookup(stats, b)
    if entry_a is None or entry_b is None:
        return None

    _, raws = _population(games, stats, min_games)
    scalers = _fit_scalers(raws)
    h2h = head_to_head(games, entry_a["id"], entry_b["id"])

    profiles = []
    for entry, wins in ((entry_a, h2h["a_wins"]), (entry_b, h2h["b_wins"])):
        profile = _profile(games, entry, _raw_metrics(games, entry), scalers)
        profile["win_rate_together"] = rate(wins, h2h["common_games"])
        profiles.append(profile)

    return {"player_a": profiles[0], "player_b": profiles[1], "head_to_head": h2h}

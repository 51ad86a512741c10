"""Voice-chat talking time per player, normalized per hour alive."""

from lycans.cleaning import player_key, seconds_between


def has_talking_data(game):
    """Whether any player of the game logged talking time."""
    return any(
        (p.get("seconds_talked_outside") or 0) > 0 or (p.get("seconds_talked_during") or 0) > 0
        for p in game.get("players", [])
    )


def alive_seconds(game, player):
    """Seconds from game start to the player's death, or to the game end."""
    end = player.get("death_date") or game.get("end_date")
    return seconds_between(game.get("start_date"), end)


def per_hour(seconds, duration):
    return round(seconds * 3600 / duration, 2) if duration else None


def aggregate_talking_stats(games):
    """Talking seconds outside and during meetings, totals and per hour alive.

    Only games where someone talked count. Players whose alive time cannot be
    measured are left out of that game.
    """
    talking_games = [g for g in games if has_talking_data(g)]
    players = {}

    for game in talking_games:
        for p in game.get("players", []):
            duration = alive_seconds(game, p)
            if not duration or duration <= 0:
                continue
            key = player_key(p)
            if key not in players:
                players[key] = {"player": p["name"], "games": 0, "outside": 0, "during": 0, "seconds": 0}
            entry = players[key]
            entry["player"] = p["name"]
            entry["games"] += 1
            entry["outside"] += p.get("seconds_talked_outside") or 0
            entry["during"] += p.get("seconds_talked_during") or 0
            entry["seconds"] += duration

    player_list = []
    for key, e in players.items():
        total = e["outside"] + e["during"]
        player_list.append({
            "id": key,
            "player": e["player"],
            "games_played": e["games"],
            "seconds_outside": e["outside"],
            "seconds_during": e["during"],
            "seconds_all": total,
            "seconds_alive": round(e["seconds"], 2),
            "seconds_outside_per_hour": per_hour(e["outside"], e["seconds"]),
            "seconds_during_per_hour": per_hour(e["during"], e["seconds"]),
            "seconds_all_per_hour": per_hour(total, e["seconds"]),
        })
    player_list.sort(key=lambda x: (-(x["seconds_all_per_hour"] or 0), x["player"]))

    return {
        "total_games": len(games),
        "games_with_talking_data": len(talking_games),
        "players": player_list,
    }

"""Meeting votes: behavior, accuracy, targeting and vote timing per player.

Meetings are numbered by the vote Day field. Every player alive at a meeting
either votes, skips (target "Passé") or abstains (no vote logged). Sides are
taken from the final camp: villageois, loups (whole wolf family) or solo.
"""

import math
from collections import defaultdict

from lycans.aggregation import rate
from lycans.camps import resolve_camp, is_wolf_family
from lycans.cleaning import name_key, player_key, parse_datetime
from lycans.constants import VILLAGEOIS, SKIPPED_VOTE_TARGET
from lycans.deaths import is_dead, death_code
from lycans.timing import parse_timing

SIDES = ("villageois", "loups", "solo")

# Share of a meeting's dated votes that counts as voting early
EARLY_VOTE_SHARE = 0.33


def side_of(player):
    camp = resolve_camp(player, "final")
    if camp == VILLAGEOIS:
        return "villageois"
    if is_wolf_family(camp):
        return "loups"
    return "solo"


def alive_at_meeting(player, meeting):
    """Whether a player still attends the given meeting.

    Dying at meeting M{k} means attending it, dying during J{k} or N{k}
    means missing meeting k.
    """
    if not is_dead(player):
        return True
    parsed = parse_timing(player.get("death_timing"))
    if parsed is None:
        return True
    phase, number = parsed
    if phase == "M":
        return meeting <= number
    if phase in ("J", "N"):
        return meeting < number
    return True


def has_votes(game):
    return any(p.get("votes") is not None for p in game.get("players", []))


def _meeting_votes(game, meeting):
    """Last vote logged by each player for a meeting, keyed by player key."""
    votes = {}
    for p in game.get("players", []):
        for v in p.get("votes") or []:
            if v.get("day") == meeting:
                votes[player_key(p)] = v
    return votes


def _new_entry():
    return {
        "name": "",
        "meetings": 0, "votes": 0, "skips": 0, "abstentions": 0,
        "sides": {s: {"meetings": 0, "votes": 0, "skips": 0, "abstentions": 0, "deaths": 0} for s in SIDES},
        "enemy_votes": 0, "own_votes": 0,
        "side_accuracy": {s: [0, 0] for s in SIDES},
        "targeted": 0, "targeted_by_enemy": 0, "targeted_by_own": 0,
        "targeted_as": {s: 0 for s in SIDES},
        "eliminated": 0,
        "dated_meetings": 0, "first_votes": 0, "early_votes": 0,
    }


def _aggressiveness(votes, skips, abstentions, meetings):
    if meetings == 0:
        return None
    return round((votes - skips * 0.5 - abstentions * 0.7) / meetings * 100, 2)


def aggregate_voting_stats(games):
    """Per-player voting behavior, accuracy, targeting and speed over all meetings."""
    vote_games = [g for g in games if has_votes(g)]
    stats = defaultdict(_new_entry)
    total_meetings = 0

    for game in vote_games:
        players = game.get("players", [])
        by_name = {name_key(p.get("name")): p for p in players}
        sides = {player_key(p): side_of(p) for p in players}
        for p in players:
            stats[player_key(p)]["name"] = p["name"]

        last_meeting = max(
            (v["day"] for p in players for v in p.get("votes") or [] if v.get("day")),
            default=0,
        )
        for meeting in range(1, last_meeting + 1):
            total_meetings += 1
            votes = _meeting_votes(game, meeting)

            for p in players:
                if not alive_at_meeting(p, meeting):
                    continue
                key = player_key(p)
                side = sides[key]
                entry = stats[key]
                by_side = entry["sides"][side]
                entry["meetings"] += 1
                by_side["meetings"] += 1
                if parse_timing(p.get("death_timing")) == ("M", meeting) and is_dead(p):
                    by_side["deaths"] += 1

                vote = votes.get(key)
                if vote is None:
                    entry["abstentions"] += 1
                    by_side["abstentions"] += 1
                elif vote.get("target") == SKIPPED_VOTE_TARGET:
                    entry["skips"] += 1
                    by_side["skips"] += 1
                else:
                    entry["votes"] += 1
                    by_side["votes"] += 1

            eliminated = set()
            for voter_key, vote in votes.items():
                target = by_name.get(name_key(vote.get("target")))
                if target is None or vote.get("target") == SKIPPED_VOTE_TARGET:
                    continue
                target_key = player_key(target)
                voter_side = sides[voter_key]
                target_side = sides[target_key]
                enemy = voter_side != target_side

                voter = stats[voter_key]
                voter["side_accuracy"][voter_side][0] += 1
                if enemy:
                    voter["enemy_votes"] += 1
                    voter["side_accuracy"][voter_side][1] += 1
                else:
                    voter["own_votes"] += 1

                t = stats[target_key]
                t["targeted"] += 1
                t["targeted_as"][target_side] += 1
                if enemy:
                    t["targeted_by_enemy"] += 1
                else:
                    t["targeted_by_own"] += 1
                if (death_code(target) == "VOTED"
                        and parse_timing(target.get("death_timing")) == ("M", meeting)):
                    eliminated.add(target_key)
            for target_key in eliminated:
                stats[target_key]["eliminated"] += 1

            dated = [
                (parse_datetime(v.get("date")), k) for k, v in votes.items()
                if v.get("target") != SKIPPED_VOTE_TARGET and parse_datetime(v.get("date"))
            ]
            dated.sort()
            early = math.ceil(len(dated) * EARLY_VOTE_SHARE)
            for i, (_, k) in enumerate(dated):
                stats[k]["dated_meetings"] += 1
                if i == 0:
                    stats[k]["first_votes"] += 1
                if i < early:
                    stats[k]["early_votes"] += 1

    player_list = []
    for key, e in stats.items():
        voted = e["enemy_votes"] + e["own_votes"]
        player_list.append({
            "id": key,
            "player": e["name"],
            "meetings": e["meetings"],
            "votes": e["votes"],
            "skips": e["skips"],
            "abstentions": e["abstentions"],
            "voting_rate": rate(e["votes"], e["meetings"]),
            "skip_rate": rate(e["skips"], e["meetings"]),
            "abstention_rate": rate(e["abstentions"], e["meetings"]),
            "aggressiveness": _aggressiveness(e["votes"], e["skips"], e["abstentions"], e["meetings"]),
            "by_side": {
                side: {
                    "meetings": s["meetings"],
                    "aggressiveness": _aggressiveness(s["votes"], s["skips"], s["abstentions"], s["meetings"]),
                    "accuracy_rate": rate(e["side_accuracy"][side][1], e["side_accuracy"][side][0]),
                    "meeting_deaths": s["deaths"],
                    "meeting_survival_rate": rate(s["meetings"] - s["deaths"], s["meetings"]),
                }
                for side, s in e["sides"].items()
            },
            "votes_for_enemy": e["enemy_votes"],
            "votes_for_own_side": e["own_votes"],
            "accuracy_rate": rate(e["enemy_votes"], voted),
            "friendly_fire_rate": rate(e["own_votes"], voted),
            "times_targeted": e["targeted"],
            "targeted_by_enemy": e["targeted_by_enemy"],
            "targeted_by_own_side": e["targeted_by_own"],
            "targeted_as": dict(e["targeted_as"]),
            "eliminations_by_vote": e["eliminated"],
            "targeted_survival_rate": rate(e["targeted"] - e["eliminated"], e["targeted"]),
            "meetings_with_dated_vote": e["dated_meetings"],
            "first_votes": e["first_votes"],
            "early_votes": e["early_votes"],
            "first_vote_rate": rate(e["first_votes"], e["dated_meetings"]),
            "early_vote_rate": rate(e["early_votes"], e["dated_meetings"]),
        })
    player_list.sort(key=lambda x: (-x["meetings"], x["player"]))

    return {
        "total_games": len(games),
        "games_with_votes": len(vote_games),
        "total_meetings": total_meetings,
        "players": player_list,
    }

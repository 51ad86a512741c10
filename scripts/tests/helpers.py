"""Shared test factories for pipeline tests.

Provides factory functions for building raw game-log entries and clean game
dicts with sensible defaults and easy overrides.
"""

import sys
from pathlib import Path

SCRIPTS_DIR = Path(__file__).resolve().parent.parent
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))


# ─── Raw Game-Log Entry Factory ──────────────────────────────────

def make_raw_player(**overrides):
    """Build one raw PlayerStats entry. Override any field via kwargs."""
    player = {
        "Username": "Alice",
        "ID": "steam-alice",
        "Color": "Rouge",
        "MainRoleInitial": "Villageois",
        "MainRoleChanges": [],
        "Power": None,
        "SecondaryRole": None,
        "Victorious": False,
        "DeathDateIrl": None,
        "DeathTiming": None,
        "DeathType": None,
        "KillerName": None,
        "DeathPosition": None,
        "Votes": [],
        "Actions": [],
        "TotalCollectedLoot": 12,
        "SecondsTalkedOutsideMeeting": 100,
        "SecondsTalkedDuringMeeting": 50,
    }
    player.update(overrides)
    return player


def make_raw_entry(**overrides):
    """Build a valid raw GameStats entry. Override any field via kwargs.

    The default entry is a 2-player game (Alice the villager, Bob the winning
    wolf) that should pass all clean_game() validation. Fields:
        player1_overrides / player2_overrides: per-player overrides
    """
    p1_ovr = overrides.pop("player1_overrides", {})
    p2_ovr = overrides.pop("player2_overrides", {})

    p1 = make_raw_player(
        DeathDateIrl="2025-01-15T14:20:00Z",
        DeathTiming="N2",
        DeathType="Tué par Loup",
        KillerName="Bob",
        Votes=[{"Day": 1, "Target": "Bob", "Date": "2025-01-15T14:12:00Z"}],
    )
    p2 = make_raw_player(
        Username="Bob",
        ID="steam-bob",
        Color="Bleu",
        MainRoleInitial="Loup",
        Victorious=True,
        Votes=[{"Day": 1, "Target": "Passé", "Date": "2025-01-15T14:12:30Z"}],
        Actions=[{
            "Date": "2025-01-15T14:19:00Z", "Timing": "N2", "ActionType": "Transform",
            "ActionName": None, "ActionTarget": None, "Position": {"x": 1.0, "y": 0.0, "z": 2.5},
        }],
    )
    p1.update(p1_ovr)
    p2.update(p2_ovr)

    entry = {
        "Id": "game-001",
        "DisplayedId": "#1",
        "StartDate": "2025-01-15T14:00:00Z",
        "EndDate": "2025-01-15T14:30:00Z",
        "MapName": "Village",
        "Modded": True,
        "Version": "0.243",
        "HarvestGoal": 200,
        "HarvestDone": 150,
        "EndTiming": "J3",
        "PlayerStats": [p1, p2],
    }
    entry.update(overrides)
    return entry


# ─── Clean Game Factory ──────────────────────────────────────────

def make_player(name="Alice", role="Villageois", **overrides):
    """Build a clean player dict (one entry of clean_game()["players"])."""
    player = {
        "id": name.lower(),
        "name": name,
        "color": None,
        "main_role_initial": role,
        "role_changes": [],
        "power": None,
        "secondary_role": None,
        "victorious": False,
        "death_date": None,
        "death_timing": None,
        "death_type": None,
        "killer_name": None,
        "death_position": None,
        "votes": None,
        "actions": None,
        "loot": None,
        "seconds_talked_outside": 0,
        "seconds_talked_during": 0,
        "seconds_talked": 0,
    }
    player.update(overrides)
    return player


def default_players():
    """3 Villageois + 1 Loup + 1 Traître, wolf family victorious."""
    return [
        make_player("Alice", "Villageois"),
        make_player("Bob", "Villageois"),
        make_player("Chloé", "Villageois"),
        make_player("Damien", "Loup", victorious=True),
        make_player("Emma", "Villageois", secondary_role="Traître", victorious=True),
    ]


def make_clean_game(players=None, **overrides):
    """Build a valid clean game dict (output of clean_game()).

    Override any top-level field. Pass players= for a custom roster.
    """
    game = {
        "game_id": "game-001",
        "displayed_id": "#1",
        "start_date": "2025-01-15T14:00:00+00:00",
        "end_date": "2025-01-15T14:30:00+00:00",
        "map": "Village",
        "modded": True,
        "version": "0.243",
        "harvest_goal": 200,
        "harvest_done": 150,
        "end_timing": "J3",
        "death_info_filled": True,
        "players": players if players is not None else default_players(),
    }
    game.update(overrides)
    return game


def make_games(n, wolf_wins=None, map_name="Village", month="2025-01", roster=None):
    """Generate N clean games with configurable properties.

    Args:
        n: Number of games
        wolf_wins: Number of games the wolves win (default: n//2). Villagers win the rest.
        map_name: Map for all games
        month: "YYYY-MM" for all start dates (one game per day, wrapping at 28)
        roster: Player names; the first is the Loup, the rest Villageois
    """
    if wolf_wins is None:
        wolf_wins = n // 2
    roster = roster or ["Damien", "Alice", "Bob", "Chloé"]

    games = []
    for i in range(n):
        wolves_won = i < wolf_wins
        players = [make_player(roster[0], "Loup", victorious=wolves_won)]
        players += [make_player(name, "Villageois", victorious=not wolves_won) for name in roster[1:]]
        games.append(make_clean_game(
            players=players,
            game_id=f"game-{i:04d}",
            displayed_id=f"#{i}",
            map=map_name,
            start_date=f"{month}-{(i % 28) + 1:02d}T14:00:00+00:00",
            end_date=f"{month}-{(i % 28) + 1:02d}T14:30:00+00:00",
        ))
    return games

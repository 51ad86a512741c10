"""Category I: Meeting Vote Tests

Tests for the voting report: who attends a meeting, how each attendee
behaved, whether votes hit the other side, and who votes first.
Core question: is every alive player counted exactly once per meeting?
"""

import copy

import pytest
from helpers import make_player, make_clean_game, make_games

from lycans.voting import aggregate_voting_stats, alive_at_meeting, side_of


def _vote(day, target, minute):
    return {"day": day, "target": target, "date": f"2025-01-15T14:{minute:02d}:00+00:00"}


def _meeting_game():
    """Two meetings. Emma dies N2 and misses the second; Damien is voted out at M2."""
    return make_clean_game(players=[
        make_player("Alice", votes=[_vote(1, "Damien", 5), _vote(2, "Damien", 15)]),
        make_player("Bob", votes=[_vote(1, "Passé", 6), _vote(2, "Damien", 16)], victorious=True),
        make_player("Damien", "Loup", death_timing="M2", death_type="VOTED",
                    votes=[_vote(1, "Alice", 7), _vote(2, "Bob", 14)]),
        make_player("Emma", death_timing="N2", death_type="BY_WOLF", killer_name="Damien", votes=[]),
    ])


def _players(result):
    return {p["player"]: p for p in result["players"]}


# ─── I1: Meeting attendance ──────────────────────────────────────

class TestI1_Attendance:
    """Dying at a meeting means attending it; dying by day or night does not."""

    @pytest.mark.parametrize("timing,meeting,expected", [
        ("M2", 2, True),
        ("M2", 3, False),
        ("N2", 1, True),
        ("N2", 2, False),
        ("J3", 2, True),
        ("J3", 3, False),
        ("U1", 5, True),
    ])
    def test_alive_at_meeting(self, timing, meeting, expected):
        player = make_player(death_timing=timing, death_type="BY_WOLF")
        assert alive_at_meeting(player, meeting) is expected

    def test_survivor_always_attends(self):
        assert alive_at_meeting(make_player(), 12) is True

    def test_meetings_counted(self):
        result = aggregate_voting_stats([_meeting_game()])
        players = _players(result)
        assert result["total_meetings"] == 2
        assert players["Alice"]["meetings"] == 2
        assert players["Damien"]["meetings"] == 2
        assert players["Emma"]["meetings"] == 1


# ─── I2: Vote, skip or abstain ───────────────────────────────────

class TestI2_Behavior:

    def test_each_meeting_is_one_outcome(self):
        for p in aggregate_voting_stats([_meeting_game()])["players"]:
            assert p["votes"] + p["skips"] + p["abstentions"] == p["meetings"]

    def test_rates(self):
        players = _players(aggregate_voting_stats([_meeting_game()]))
        assert players["Alice"]["voting_rate"] == 100.0
        assert players["Bob"]["skip_rate"] == 50.0
        assert players["Bob"]["aggressiveness"] == 25.0
        assert players["Emma"]["abstention_rate"] == 100.0
        assert players["Emma"]["aggressiveness"] == -70.0

    def test_last_vote_of_the_day_counts(self):
        game = _meeting_game()
        game["players"][1]["votes"].insert(0, _vote(1, "Damien", 5))
        players = _players(aggregate_voting_stats([game]))
        assert players["Bob"]["skips"] == 1
        assert players["Bob"]["votes"] == 1

    def test_side_breakdown(self):
        players = _players(aggregate_voting_stats([_meeting_game()]))
        damien = players["Damien"]["by_side"]
        assert damien["loups"]["meetings"] == 2
        assert damien["loups"]["meeting_deaths"] == 1
        assert damien["loups"]["meeting_survival_rate"] == 50.0
        assert damien["villageois"]["meetings"] == 0
        assert damien["villageois"]["aggressiveness"] is None


# ─── I3: Accuracy & targeting ────────────────────────────────────

class TestI3_Accuracy:

    def test_votes_against_other_side(self):
        players = _players(aggregate_voting_stats([_meeting_game()]))
        assert players["Alice"]["votes_for_enemy"] == 2
        assert players["Alice"]["accuracy_rate"] == 100.0
        assert players["Damien"]["accuracy_rate"] == 100.0

    def test_traitor_vote_is_friendly_fire(self):
        game = make_clean_game(players=[
            make_player("Emma", secondary_role="Traître", votes=[_vote(1, "damien", 5)]),
            make_player("Damien", "Loup", votes=[]),
        ])
        emma = _players(aggregate_voting_stats([game]))["Emma"]
        assert emma["votes_for_own_side"] == 1
        assert emma["friendly_fire_rate"] == 100.0
        assert emma["by_side"]["loups"]["accuracy_rate"] == 0.0

    def test_targets(self):
        damien = _players(aggregate_voting_stats([_meeting_game()]))["Damien"]
        assert damien["times_targeted"] == 3
        assert damien["targeted_by_enemy"] == 3
        assert damien["targeted_as"]["loups"] == 3
        # two votes against him at M2, one elimination
        assert damien["eliminations_by_vote"] == 1
        assert damien["targeted_survival_rate"] == 66.67

    def test_unknown_target_ignored(self):
        game = make_clean_game(players=[make_player("Alice", votes=[_vote(1, "Nobody", 5)])])
        alice = _players(aggregate_voting_stats([game]))["Alice"]
        assert alice["votes"] == 1
        assert alice["votes_for_enemy"] + alice["votes_for_own_side"] == 0
        assert alice["accuracy_rate"] is None


# ─── I4: First and early voters ──────────────────────────────────

class TestI4_FirstVotes:
    """Dated real votes only; the first third (rounded up) votes early."""

    def test_first_voters(self):
        players = _players(aggregate_voting_stats([_meeting_game()]))
        assert players["Alice"]["first_votes"] == 1
        assert players["Damien"]["first_votes"] == 1
        assert players["Alice"]["first_vote_rate"] == 50.0
        assert players["Bob"]["meetings_with_dated_vote"] == 1
        assert players["Bob"]["early_votes"] == 0

    def test_skips_never_first(self):
        game = make_clean_game(players=[
            make_player("Alice", votes=[_vote(1, "Passé", 1)]),
            make_player("Bob", votes=[_vote(1, "Alice", 9)]),
        ])
        players = _players(aggregate_voting_stats([game]))
        assert players["Bob"]["first_votes"] == 1
        assert players["Alice"]["meetings_with_dated_vote"] == 0

    def test_undated_votes_not_ranked(self):
        game = make_clean_game(players=[
            make_player("Alice", votes=[{"day": 1, "target": "Bob", "date": None}]),
            make_player("Bob", votes=[]),
        ])
        alice = _players(aggregate_voting_stats([game]))["Alice"]
        assert alice["votes"] == 1
        assert alice["first_vote_rate"] is None


# ─── I5: Games without vote data ─────────────────────────────────

class TestI5_NoVoteData:

    def test_games_without_votes_skipped(self):
        result = aggregate_voting_stats(make_games(3))
        assert result["total_games"] == 3
        assert result["games_with_votes"] == 0
        assert result["players"] == []

    def test_does_not_mutate_input(self):
        games = [_meeting_game()]
        before = copy.deepcopy(games)
        assert aggregate_voting_stats(games) == aggregate_voting_stats(games)
        assert games == before

    def test_side_of_final_camp(self):
        player = make_player(role="Villageois", role_changes=[{"new_role": "Zombie", "date": None}])
        assert side_of(player) == "solo"

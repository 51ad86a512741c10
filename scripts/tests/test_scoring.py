"""Category G: Scaling, Consistency & Comparison Tests

Tests for population-relative scoring and player comparison.
Core question: are scores bounded, and do degenerate populations stay sane?
"""

import pytest
from helpers import make_player, make_clean_game, make_games

from lycans.scoring import (
    build_scaler,
    advanced_consistency,
    kills_per_game,
    survival_rate,
    aggressiveness,
    harvest_rate,
    talking_per_hour,
    camp_performance,
    player_history,
    score_players,
    compare_players,
)


def _history(outcomes, camp="Villageois"):
    return [{"camp": camp, "won": bool(o)} for o in outcomes]


# ─── G1: Scaler ──────────────────────────────────────────────────

class TestG1_Scaler:
    """Min-max onto [0, 100]; degenerate input always scores 50."""

    def test_empty(self):
        assert build_scaler([])(12) == 50

    def test_single_value(self):
        assert build_scaler([7])(7) == 50
        assert build_scaler([7])(1000) == 50

    def test_constant_values(self):
        scale = build_scaler([3, 3, 3])
        assert scale(3) == 50
        assert scale(-1) == 50

    def test_identity_on_0_100(self):
        scale = build_scaler([0, 100])
        assert scale(0) == 0
        assert scale(50) == 50
        assert scale(100) == 100

    def test_none_values_ignored(self):
        scale = build_scaler([None, 10, 20])
        assert scale(15) == 50

    def test_out_of_range_clamped(self):
        scale = build_scaler([10, 20])
        assert scale(30) == 100
        assert scale(0) == 0
        assert scale(-1e9) == 0


# ─── G2: Advanced consistency ────────────────────────────────────

class TestG2_Consistency:

    def test_insufficient_history(self):
        assert advanced_consistency(_history([1] * 29)) == 25
        assert advanced_consistency([]) == 25

    def test_always_winning(self):
        # camp 70, temporal 100, volatility penalty 24
        assert advanced_consistency(_history([1] * 30)) == pytest.approx(80.8)

    def test_strict_alternation(self):
        # camp 65, temporal 100, volatility penalty 36
        assert advanced_consistency(_history([i % 2 for i in range(30)])) == pytest.approx(75.2)

    def test_wolf_history_counts_for_camp_score(self):
        history = _history([1] * 15) + _history([1] * 15, camp="Traître")
        # both sub-histories gated in: camp 90, temporal 100, penalty 24
        assert advanced_consistency(history) == pytest.approx(88.8)

    @pytest.mark.parametrize("outcomes", [
        [1] * 15 + [0] * 15,
        [0] * 30,
        [1, 1, 0] * 20,
        [i % 2 for i in range(45)],
    ])
    def test_bounded(self, outcomes):
        assert 5 <= advanced_consistency(_history(outcomes)) <= 95


# ─── G3: Raw metrics ─────────────────────────────────────────────

class TestG3_RawMetrics:

    def _game(self):
        return make_clean_game(players=[
            make_player("Alice", death_timing="N2", death_type="BY_WOLF", killer_name="Damien",
                        death_date="2025-01-15T14:30:00+00:00", loot=30,
                        votes=[{"day": 1, "target": "Bob", "date": None},
                               {"day": 2, "target": "Damien", "date": None},
                               {"day": 2, "target": "Passé", "date": None}]),
            make_player("Bob", loot=10, votes=[]),
            make_player("Damien", "Loup", victorious=True),
        ], end_date="2025-01-15T15:00:00+00:00")

    def test_kills_per_game(self):
        games = [self._game(), make_clean_game(game_id="g2", players=[make_player("Damien", "Loup")])]
        assert kills_per_game(games, "damien") == 0.5
        assert kills_per_game(games, "nobody") is None

    def test_survival_rate(self):
        assert survival_rate([self._game()], "alice") == 0.0
        assert survival_rate([self._game()], "Bob") == 100.0

    def test_aggressiveness_last_vote_per_day(self):
        # day 1 vote, day 2 skip: 50 - 0.5 * 50
        assert aggressiveness([self._game()], "alice") == 25.0

    def test_aggressiveness_without_votes(self):
        assert aggressiveness([self._game()], "bob") is None
        assert aggressiveness([self._game()], "damien") is None

    def test_harvest_rate_until_death(self):
        assert harvest_rate([self._game()], "alice") == 60.0

    def test_harvest_rate_until_end(self):
        assert harvest_rate([self._game()], "bob") == 10.0

    def test_harvest_rate_no_loot(self):
        assert harvest_rate([self._game()], "damien") is None

    def test_talking_per_hour_alive(self):
        game = make_clean_game(players=[
            # 10 minutes alive, 60 seconds talked
            make_player("Alice", death_timing="N1", death_type="BY_WOLF",
                        death_date="2025-01-15T14:10:00+00:00",
                        seconds_talked_outside=40, seconds_talked_during=20, seconds_talked=60),
            make_player("Bob"),
        ])
        assert talking_per_hour([game], "alice") == 360.0
        assert talking_per_hour([game], "bob") == 0.0

    def test_talking_per_hour_without_data(self):
        assert talking_per_hour(make_games(2), "alice") is None

    def test_camp_performance(self):
        perf = camp_performance(make_games(4, wolf_wins=3), "damien")
        assert perf["loups_games"] == 4
        assert perf["loups_win_rate"] == 75.0
        assert perf["villageois_win_rate"] is None

    def test_history_is_chronological(self):
        games = make_games(3, wolf_wins=1)
        history = player_history(list(reversed(games)), "damien")
        assert [h["won"] for h in history] == [True, False, False]


# ─── G4: Population scores ───────────────────────────────────────

class TestG4_ScorePlayers:

    def test_min_games_gate(self):
        result = score_players(make_games(4), min_games=5)
        assert result["total_players"] == 0

    def test_scaled_win_rate(self):
        result = score_players(make_games(4, wolf_wins=3), min_games=3)
        players = {p["player"]: p for p in result["players"]}
        assert players["Damien"]["scores"]["win_rate"] == 100.0
        assert players["Alice"]["scores"]["win_rate"] == 0.0

    def test_flat_metric_scores_50(self):
        result = score_players(make_games(4, wolf_wins=3), min_games=3)
        for p in result["players"]:
            assert p["scores"]["survival_rate"] == 50
            assert p["scores"]["kills_per_game"] == 50

    def test_missing_metric_is_none(self):
        result = score_players(make_games(4), min_games=3)
        for p in result["players"]:
            assert p["raw"]["aggressiveness"] is None
            assert p["scores"]["aggressiveness"] is None

    def test_consistency_floor_for_short_history(self):
        result = score_players(make_games(4), min_games=3)
        assert all(p["consistency"] == 25 for p in result["players"])


# ─── G5: Head-to-head comparison ─────────────────────────────────

class TestG5_Compare:

    def test_absent_player(self):
        assert compare_players(make_games(4), "Damien", "Nobody") is None

    def test_opposing_camps(self):
        result = compare_players(make_games(4, wolf_wins=3), "Damien", "Alice", min_games=3)
        h2h = result["head_to_head"]
        assert h2h["common_games"] == 4
        assert h2h["a_wins"] == 3
        assert h2h["b_wins"] == 1
        assert h2h["opposing_games"] == 4
        assert h2h["same_camp_games"] == 0
        assert h2h["average_common_duration"] == 1800.0
        assert result["player_a"]["win_rate_together"] == 75.0

    def test_same_camp(self):
        h2h = compare_players(make_games(4, wolf_wins=3), "alice", "BOB")["head_to_head"]
        assert h2h["same_camp_games"] == 4
        assert h2h["same_camp_wins"] == 1
        assert h2h["same_loups_games"] == 0
        assert h2h["average_opposing_duration"] is None

    def test_wolf_family_allies(self):
        result = compare_players([make_clean_game()], "Damien", "Emma")
        h2h = result["head_to_head"]
        assert h2h["same_loups_games"] == 1
        assert h2h["same_loups_wins"] == 1

    def test_kills_between_players(self):
        game = make_clean_game(players=[
            make_player("Alice", death_timing="N1", death_type="BY_WOLF", killer_name="Damien"),
            make_player("Damien", "Loup", victorious=True),
        ])
        h2h = compare_players([game], "Damien", "Alice")["head_to_head"]
        assert h2h["a_killed_b"] == 1
        assert h2h["a_killed_b_opposing"] == 1
        assert h2h["b_killed_a"] == 0

    def test_player_below_threshold_stays_in_range(self):
        # Damien wins a third of 30 games, the villagers two thirds; Emma has
        # only two wins, far above anyone in the fitted population
        games = make_games(30, wolf_wins=10)
        extra = make_games(2, wolf_wins=2, month="2025-02", roster=["Emma", "Damien"])
        for g in extra:
            g["game_id"] = g["game_id"].replace("game", "extra")
        result = compare_players(games + extra, "Emma", "Damien", min_games=30)

        assert result["player_a"]["raw"]["win_rate"] == 100.0
        assert result["player_a"]["scores"]["win_rate"] == 100
        for side in ("player_a", "player_b"):
            for metric, score in result[side]["scores"].items():
                assert score is None or 0 <= score <= 100, f"{side}.{metric} = {score}"

    def test_vote_death_is_not_a_kill(self):
        game = make_clean_game(players=[
            make_player("Alice", death_timing="M1", death_type="VOTED", killer_name="Damien"),
            make_player("Damien", "Loup", victorious=True),
        ])
        assert compare_players([game], "Damien", "Alice")["head_to_head"]["a_killed_b"] == 0
        assert kills_per_game([game], "damien") == 0.0

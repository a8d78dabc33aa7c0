"""Tests for insight generation."""

from guildbattle.core.insights import generate_insights, iter_insights
from guildbattle.core.stats import compute_stats, rank_players


def _insights(players, season=1):
    ranked = rank_players(players)
    return generate_insights(ranked, compute_stats(ranked, season), season)


class TestGenerateInsights:
    def test_checklist_order(self, sample_players):
        insights = _insights(sample_players)

        assert insights == [
            "Alice (Lv.70) achieved the highest season total with 14.0B",
            "3/3 players participated (100%)",
            "Excellent guild participation with high battle engagement",
            "Tickets used: 32/54 (59%) on Red Velvet Dragon + Avatar of Destiny; "
            "22 missed, average 10.7 of 18 per player",
            "2 players below the 15-ticket minimum: Bob, Cara",
            "2/2 members meet Red Velvet Dragon requirements (6.0B+)",
            "1/2 members meet Avatar of Destiny requirements (3.5B+)",
            "Guild Structure: 1 Leader, 1 Officer, 1 Members",
            "Average guild level: 60 (range 51-70)",
        ]

    def test_deterministic(self, sample_players):
        assert _insights(sample_players) == _insights(sample_players)

    def test_empty(self):
        stats = compute_stats([], 1)
        assert generate_insights([], stats, 1) == ["No player data available for this season."]

    def test_all_met_minimum(self, player_factory):
        players = [
            player_factory("A", rvd=(7_000_000_000, 9), aod=(4_000_000_000, 9)),
            player_factory("B", rvd=(6_500_000_000, 9), aod=(3_600_000_000, 8)),
        ]
        insights = _insights(players)
        assert "All players met the 15-ticket minimum" in insights
        assert "2/2 members meet Red Velvet Dragon requirements (6.0B+)" in insights

    def test_low_participation(self, player_factory):
        players = [
            player_factory("Active", rvd=(1_000_000, 9)),
            player_factory("Idle1"),
            player_factory("Idle2"),
        ]
        insights = _insights(players)
        assert "1/3 players participated (33%)" in insights
        assert "Low participation rate - consider encouraging more active involvement" in insights

    def test_optional_lines_need_data(self, player_factory):
        players = [player_factory("A", rvd=(1000, 9)), player_factory("B", rvd=(500, 9))]
        insights = _insights(players)
        assert not any(line.startswith("Guild Structure") for line in insights)
        assert not any(line.startswith("Average guild level") for line in insights)
        assert insights[0] == "A achieved the highest season total with 1.0K"

    def test_long_below_minimum_list_is_truncated(self, player_factory):
        players = [player_factory(f"P{i:02d}", rvd=(1000 - i, 1)) for i in range(12)]
        line = next(l for l in _insights(players) if "below the" in l)
        assert line.startswith("12 players below the 15-ticket minimum: P00, P01")
        assert line.endswith("P09 and 2 more")

    def test_season_changes_requirement_lines(self, sample_players):
        insights = _insights(sample_players, season=4)
        assert not any("requirements" in line for line in insights)
        assert any("on Living Abyss + Machine God" in line for line in insights)

    def test_iter_insights_is_lazy(self, sample_players):
        ranked = rank_players(sample_players)
        stats = compute_stats(ranked, 1)
        iterator = iter_insights(ranked, stats, 1)
        assert next(iterator).startswith("Alice")

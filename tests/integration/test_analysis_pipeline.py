"""
Integration tests for the analysis pipeline.

Each test runs a full input path through merge, ranking, statistics
and insights with the network and AI collaborators replaced by fakes.
"""

import json

import pytest

from guildbattle.ingest.models import BossName, SheetLayout
from guildbattle.ingest.pipeline import AnalysisPipeline, roster_fallback
from guildbattle.llm.gateway import TranscriptionError
from tests.fixtures.grids import raw_points_grid
from tests.fixtures.ocr_text import (
    BARE_SCREENSHOT, CSV_TRANSCRIPT, LOW_CONFIDENCE_SCREENSHOT,
)

RVD = BossName.RED_VELVET_DRAGON
AOD = BossName.AVATAR_OF_DESTINY

CSV_HEADER = (
    "Rank,Player Name,Red Velvet Dragon Damage,Red Velvet Dragon Unit,"
    "Red Velvet Dragon Battles,Avatar of Destiny Damage,Avatar of Destiny Unit,"
    "Avatar of Destiny Battles,Living Abyss Damage,Living Abyss Unit,"
    "Living Abyss Battles,Guild Rank\n"
)


class FakeSheetsClient:
    def __init__(self, grid):
        self.grid = grid
        self.calls = []

    def fetch_grid(self, spreadsheet_id, cell_range=None):
        self.calls.append((spreadsheet_id, cell_range))
        return self.grid


class TestGridAnalysis:
    def test_happy_path(self, happy_grid):
        result = AnalysisPipeline(season=1).analyze_grid(happy_grid)

        assert [(p.rank, p.player_name) for p in result.players] == [
            (1, "Alice"), (2, "Bob"), (3, "Cara"),
        ]
        assert result.stats.total_players == 3
        assert result.stats.highest_damage == 17_500_000_000
        assert result.players[1].total_damage == 15_300_000_000
        assert result.stats.ticket_stats.players_below_minimum == []
        assert result.insights
        assert not result.fallback_used

    def test_sheet_with_raw_points(self):
        sheets = FakeSheetsClient(raw_points_grid())
        pipeline = AnalysisPipeline(layout=SheetLayout(damage_scale=1), sheets_client=sheets)

        result = pipeline.analyze_sheet("abc123", "Sheet1!A1:AD60")

        assert sheets.calls == [("abc123", "Sheet1!A1:AD60")]
        assert result.source == "sheet"
        zephyr, gever = result.players
        assert zephyr.player_name == "ZephyrCat"
        assert zephyr.total_damage == 67_069_435_069
        assert gever.total_damage == 61_935_011_454

    def test_sheet_requires_client(self):
        with pytest.raises(ValueError):
            AnalysisPipeline().analyze_sheet("abc123")


class TestTextAnalysis:
    def test_unreadable_text_uses_fallback(self, roster_path):
        pipeline = AnalysisPipeline(fallback_provider=roster_fallback(roster_path))

        result = pipeline.analyze_texts([LOW_CONFIDENCE_SCREENSHOT, BARE_SCREENSHOT])

        assert result.fallback_used
        assert result.source == "text"
        names = [p.player_name for p in result.players]
        assert names[0] == "Jammifyvx"
        assert set(names) == {"Jammifyvx", "Bestoutuber", "woonbabie", "Alice", "Bob"}

    def test_unreadable_text_without_fallback(self):
        result = AnalysisPipeline().analyze_texts([LOW_CONFIDENCE_SCREENSHOT])
        assert result.players == []
        assert result.stats.total_players == 0
        assert not result.fallback_used

    def test_fallback_flag_does_not_carry_into_later_runs(self, roster_path, happy_grid):
        pipeline = AnalysisPipeline(fallback_provider=roster_fallback(roster_path))

        assert pipeline.analyze_texts([LOW_CONFIDENCE_SCREENSHOT]).fallback_used
        grid_result = pipeline.analyze_grid(happy_grid)
        text_result = pipeline.analyze_texts([BARE_SCREENSHOT])

        assert grid_result.fallback_used is False
        assert text_result.fallback_used is False


class TestScreenshotAnalysis:
    def test_csv_transcription(self, mock_gateway, screenshot):
        mock_gateway.add_response(CSV_TRANSCRIPT)
        pipeline = AnalysisPipeline(gateway=mock_gateway)

        result = pipeline.analyze_screenshots([screenshot])

        assert result.source == "screenshot"
        assert [p.player_name for p in result.players] == ["gever", "brownmascara"]
        assert result.players[0].total_damage == 98_510_000_000
        call = mock_gateway.call_log[0]
        assert call["media_type"] == "image/png"
        assert "Player Name" in call["prompt"]

    def test_screenshot_paths(self, mock_gateway, tmp_path):
        path = tmp_path / "shot.jpg"
        path.write_bytes(b"\xff\xd8\xfffake")
        mock_gateway.add_response(CSV_TRANSCRIPT)

        AnalysisPipeline(gateway=mock_gateway).analyze_screenshots([path])

        assert mock_gateway.call_log[0]["media_type"] == "image/jpeg"

    def test_screenshots_merge_additively(self, mock_gateway, screenshot):
        mock_gateway.add_response(CSV_HEADER + "1,gever,10,Billions,9,0,Billions,0,0,Billions,0,Member")
        mock_gateway.add_response(CSV_HEADER + "1,gever,5,Billions,4,2,Billions,3,0,Billions,0,Member")

        result = AnalysisPipeline(gateway=mock_gateway).analyze_screenshots([screenshot, screenshot])

        gever = result.players[0]
        assert gever.bosses[RVD].damage == 15_000_000_000
        assert gever.bosses[RVD].battles_used == 13
        assert gever.bosses[RVD].avg_damage_per_ticket == 15_000_000_000 // 13
        assert gever.bosses[AOD].damage == 2_000_000_000

    def test_structured_rows(self, mock_gateway, screenshot):
        mock_gateway.add_response({"rows": [
            {
                "playerName": "suiphila",
                "playerLevel": 68,
                "guildRank": "Member",
                "bosses": {
                    "RedVelvetDragon": {"damage": "45.58", "unit": "Billions", "battles": 7},
                    "AvatarOfDestiny": {"damage": 15523130478, "battles": 4},
                },
            },
        ]})

        result = AnalysisPipeline(gateway=mock_gateway).analyze_screenshots([screenshot], structured=True)

        suiphila = result.players[0]
        assert suiphila.player_level == 68
        assert suiphila.bosses[RVD].damage == 45_580_000_000
        assert suiphila.bosses[AOD].damage == 15_523_130_478
        assert '"rows"' in mock_gateway.call_log[0]["prompt"]

    def test_unreadable_screenshot_uses_fallback(self, mock_gateway, screenshot, roster_path):
        mock_gateway.add_response("I could not read this screenshot.")
        mock_gateway.add_response(CSV_TRANSCRIPT)
        pipeline = AnalysisPipeline(gateway=mock_gateway, fallback_provider=roster_fallback(roster_path))

        result = pipeline.analyze_screenshots([screenshot, screenshot])

        assert result.fallback_used
        names = {p.player_name for p in result.players}
        assert names == {"Jammifyvx", "Bestoutuber", "woonbabie", "gever", "brownmascara"}

    def test_transcription_error_propagates(self, mock_gateway, screenshot):
        mock_gateway.add_response(TranscriptionError("Screenshot transcription failed after 3 attempt(s)"))
        with pytest.raises(TranscriptionError):
            AnalysisPipeline(gateway=mock_gateway).analyze_screenshots([screenshot])

    def test_requires_gateway(self, screenshot):
        with pytest.raises(ValueError):
            AnalysisPipeline().analyze_screenshots([screenshot])


class TestPersistence:
    def test_save_and_reload(self, happy_grid, analysis_store):
        pipeline = AnalysisPipeline(season=2, store=analysis_store)
        result = pipeline.analyze_grid(happy_grid)

        analysis_id = pipeline.save(result, "Season 12", "Cookie Crew")

        stored = analysis_store.load_latest("Season 12", "Cookie Crew")
        assert stored["id"] == analysis_id
        assert stored["season"] == 2
        assert stored["players"] == result.players
        assert stored["stats"] == json.loads(json.dumps(result.stats.to_dict()))
        assert stored["insights"] == result.insights

    def test_save_without_store(self, happy_grid):
        pipeline = AnalysisPipeline()
        assert pipeline.save(pipeline.analyze_grid(happy_grid), "S", "G") is None

"""Tests for boss-section extraction."""

from guildbattle.ingest.extract import extract_boss_sections, extract_grid, extract_section
from guildbattle.ingest.models import BossName, BossSection, SheetLayout
from tests.fixtures.grids import happy_path_grid, make_row, raw_points_grid

RVD = BossName.RED_VELVET_DRAGON
AOD = BossName.AVATAR_OF_DESTINY
LA = BossName.LIVING_ABYSS
MG = BossName.MACHINE_GOD


class TestExtractBossSections:
    def test_all_four_sections(self):
        row = make_row(1,
                       rvd=("Alice", "10.00", "9", "1.11"),
                       aod=("Bob", "5.00", "9", ""),
                       la=("Cara", "3.00", "8", ""),
                       mg=("Dan", "1.00", "9", ""))

        encounters = extract_boss_sections(row)

        assert [(e.player_name, e.record.boss) for e in encounters] == [
            ("Alice", RVD), ("Bob", AOD), ("Cara", LA), ("Dan", MG),
        ]
        alice = encounters[0].record
        assert alice.damage == 10_000_000_000
        assert alice.battles_used == 9
        assert alice.avg_damage_per_ticket == 1_110_000_000

    def test_missing_avg_is_derived(self):
        row = make_row(1, la=("Cara", "3.00", "8", ""))
        record = extract_boss_sections(row)[0].record
        assert record.avg_damage_per_ticket == 375_000_000

    def test_sections_are_independent(self):
        row = make_row(1, aod=("Bob", "5.00", "9"))
        encounters = extract_boss_sections(row)
        assert len(encounters) == 1
        assert encounters[0].record.boss == AOD

    def test_zero_damage_creates_no_record(self):
        row = make_row(1, rvd=("Alice", "0", "9"), aod=("Alice", "N/A", "3"))
        assert extract_boss_sections(row) == []

    def test_blank_name_creates_no_record(self):
        row = make_row(1, rvd=("   ", "10.00", "9"))
        assert extract_boss_sections(row) == []

    def test_truncated_row(self):
        row = make_row(1, width=12, rvd=("Alice", "1.00", "9"), aod=("Bob", "2.00", "9"))
        names = [e.player_name for e in extract_boss_sections(row)]
        assert names == ["Alice", "Bob"]

    def test_raw_points_layout(self):
        layout = SheetLayout(damage_scale=1)
        row = make_row(1, rvd=("ZephyrCat", "53,701,335,417", "9", "5,966,815,046"))
        record = extract_boss_sections(row, layout)[0].record
        assert record.damage == 53_701_335_417
        assert record.avg_damage_per_ticket == 5_966_815_046


class TestExtractSection:
    def test_custom_offsets(self):
        section = BossSection(RVD, start_col=0, name_offset=1, damage_offset=0, battles_offset=2, avg_offset=3)
        encounter = extract_section(["4.5", "Alice", "3", ""], section, damage_scale=1)
        assert encounter.player_name == "Alice"
        assert encounter.record.damage == 4
        assert encounter.record.battles_used == 3


class TestExtractGrid:
    def test_happy_path_grid(self):
        encounters = extract_grid(happy_path_grid())
        assert len(encounters) == 12
        assert {e.player_name for e in encounters} == {"Alice", "Bob", "Cara"}

    def test_both_unit_conventions_normalize_to_points(self):
        billions = extract_grid(happy_path_grid())
        raw = extract_grid(raw_points_grid(), SheetLayout(damage_scale=1))

        alice_rvd = next(e for e in billions if e.player_name == "Alice" and e.record.boss == RVD)
        zephyr_rvd = next(e for e in raw if e.player_name == "ZephyrCat" and e.record.boss == RVD)

        assert alice_rvd.record.damage == 10_000_000_000
        assert zephyr_rvd.record.damage == 53_701_335_417

"""Boss-section extraction from segmented spreadsheet rows.

Each player row holds one block of columns per boss (name, damage,
battles used, average per ticket). The blocks are independent: every boss
keeps its own ordering, so the same player can sit on different rows in
different blocks. Extraction yields one PlayerEncounter per populated block.
"""

import logging
from typing import Sequence

from .damage import parse_count, parse_damage
from .models import BossEncounterRecord, BossSection, PlayerEncounter, SheetLayout
from .segment import DEFAULT_LAYOUT, Row, cell_text, segment_rows
from .utils import normalize_player_name

logger = logging.getLogger(__name__)


def extract_section(row: Row, section: BossSection, damage_scale: int) -> PlayerEncounter | None:
    """Extract one boss block; None when the block shows no participation."""
    base = section.start_col
    name = normalize_player_name(cell_text(row, base + section.name_offset))
    if not name:
        return None

    damage = parse_damage(_cell(row, base + section.damage_offset), scale=damage_scale)
    if damage <= 0:
        # No damage means no participation; the battle count is discarded.
        return None

    battles = parse_count(_cell(row, base + section.battles_offset))
    avg = parse_damage(_cell(row, base + section.avg_offset), scale=damage_scale)
    if not avg and battles:
        avg = damage // battles

    return PlayerEncounter(
        player_name=name,
        record=BossEncounterRecord(
            boss=section.boss,
            damage=damage,
            battles_used=battles,
            avg_damage_per_ticket=avg or None,
        ),
    )


def extract_boss_sections(row: Row, layout: SheetLayout = DEFAULT_LAYOUT) -> list[PlayerEncounter]:
    """Extract every populated boss block of a player row (0-4 entries)."""
    encounters = []
    for section in layout.sections:
        encounter = extract_section(row, section, layout.damage_scale)
        if encounter is not None:
            encounters.append(encounter)
    return encounters


def extract_grid(grid: Sequence[Row], layout: SheetLayout = DEFAULT_LAYOUT) -> list[PlayerEncounter]:
    """Segment a grid and extract the boss blocks of all player rows."""
    rows = segment_rows(grid, layout)
    encounters: list[PlayerEncounter] = []
    for row in rows:
        encounters.extend(extract_boss_sections(row, layout))
    logger.info("Extracted %d boss encounters from %d rows", len(encounters), len(rows))
    return encounters


def _cell(row: Row, index: int):
    if index < 0 or index >= len(row):
        return None
    return row[index]

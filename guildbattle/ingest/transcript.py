"""Parsing of AI transcription output.

The vision model is asked for a 12-column CSV:

    Rank,Player Name,
    Red Velvet Dragon Damage,Red Velvet Dragon Unit,Red Velvet Dragon Battles,
    Avatar of Destiny Damage,Avatar of Destiny Unit,Avatar of Destiny Battles,
    Living Abyss Damage,Living Abyss Unit,Living Abyss Battles,
    Guild Rank

or, with structured output, JSON rows validated against
``leaderboard_rows.schema.json``. Both shapes become PlayerEncounters.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from .damage import parse_count, parse_damage
from .models import BossEncounterRecord, BossName, GuildRank, PlayerEncounter
from .utils import is_plausible_player_name, normalize_player_name, parse_level

logger = logging.getLogger(__name__)


@dataclass
class CsvBossColumns:
    """Column indexes of one boss inside a transcription row."""
    boss: BossName
    damage: int
    unit: int
    battles: int


CSV_BOSS_COLUMNS = (
    CsvBossColumns(BossName.RED_VELVET_DRAGON, 2, 3, 4),
    CsvBossColumns(BossName.AVATAR_OF_DESTINY, 5, 6, 7),
    CsvBossColumns(BossName.LIVING_ABYSS, 8, 9, 10),
)
CSV_NAME_COLUMN = 1
CSV_GUILD_RANK_COLUMN = 11
CSV_COLUMN_COUNT = 12

_FENCE_RE = re.compile(r"```(?:csv|json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Return the body of a markdown code block, or the text unchanged."""
    match = _FENCE_RE.search(text or "")
    return match.group(1) if match else (text or "")


def parse_transcribed_csv(
    text: str,
    columns: Sequence[CsvBossColumns] = CSV_BOSS_COLUMNS,
) -> list[PlayerEncounter]:
    """Parse a CSV transcription into encounters.

    Header rows, short rows and implausible names are skipped. Damage cells
    are read together with their unit cell ("123.4" + "Billions").
    """
    body = strip_code_fences(text)
    encounters: list[PlayerEncounter] = []
    accepted = skipped = 0

    for row in csv.reader(io.StringIO(body)):
        cells = [c.strip() for c in row]
        if not any(cells):
            continue
        if cells[0].lower() == "rank":
            continue
        if len(cells) < CSV_COLUMN_COUNT:
            logger.debug("Skipping short transcription row: %s", cells)
            skipped += 1
            continue

        name = normalize_player_name(cells[CSV_NAME_COLUMN])
        if not is_plausible_player_name(name):
            logger.debug("Rejected transcribed name %r", name)
            skipped += 1
            continue

        guild_rank = GuildRank.parse(cells[CSV_GUILD_RANK_COLUMN])
        row_encounters = []
        for col in columns:
            damage = parse_damage(f"{cells[col.damage]} {cells[col.unit]}")
            if damage <= 0:
                continue
            battles = parse_count(cells[col.battles])
            row_encounters.append(PlayerEncounter(
                player_name=name,
                record=_record(col.boss, damage, battles),
                guild_rank=guild_rank,
            ))
        encounters.extend(row_encounters)
        accepted += 1

    logger.info(
        "Parsed transcription CSV: %d rows accepted, %d skipped, %d encounters",
        accepted, skipped, len(encounters),
    )
    return encounters


def parse_transcribed_rows(rows: Iterable[dict]) -> list[PlayerEncounter]:
    """Parse structured transcription rows (already schema-validated).

    Row shape::

        {"playerName": "gever", "playerLevel": 66, "guildRank": "Member",
         "bosses": {"RedVelvetDragon": {"damage": "82.15", "unit": "Billions",
                                         "battles": 9}}}
    """
    encounters: list[PlayerEncounter] = []
    for row in rows:
        name = normalize_player_name(row.get("playerName"))
        if not is_plausible_player_name(name):
            logger.debug("Rejected transcribed name %r", name)
            continue

        level = parse_level(row.get("playerLevel"))
        title = (row.get("playerTitle") or "").strip() or None
        guild_rank = GuildRank.parse(row.get("guildRank"))

        for key, entry in (row.get("bosses") or {}).items():
            boss = BossName.parse(key)
            if boss is None or not entry:
                continue
            damage = parse_damage(f"{entry.get('damage', '')} {entry.get('unit') or ''}")
            if damage <= 0:
                continue
            encounters.append(PlayerEncounter(
                player_name=name,
                record=_record(boss, damage, parse_count(entry.get("battles"))),
                player_level=level,
                player_title=title,
                guild_rank=guild_rank,
            ))
    return encounters


def _record(boss: BossName, damage: int, battles: int) -> BossEncounterRecord:
    return BossEncounterRecord(
        boss=boss,
        damage=damage,
        battles_used=battles,
        avg_damage_per_ticket=damage // battles if battles else None,
    )

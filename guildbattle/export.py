"""Excel export of ranked players."""

import logging
from pathlib import Path
from typing import Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .core.stats import efficiency_score, performance_grade
from .ingest.damage import format_damage
from .ingest.models import BossName, CanonicalPlayer

logger = logging.getLogger(__name__)

SHEET_TITLE = "Guild Battle Results"
NOT_AVAILABLE = "N/A"

_WIDTHS = {
    "Rank": 8,
    "Player Name": 20,
    "Level": 8,
    "Title": 25,
    "Guild Rank": 12,
    "Total Damage": 20,
    "Total Damage (Formatted)": 15,
    "Total Battles": 15,
    "Avg DMG/Battle": 18,
    "Grade": 8,
}


def export_bosses(players: Sequence[CanonicalPlayer]) -> list[BossName]:
    """Bosses that appear for at least one player, in leaderboard order."""
    present = [b for b in BossName if any(b in p.bosses for p in players)]
    return present or [BossName.RED_VELVET_DRAGON, BossName.AVATAR_OF_DESTINY, BossName.LIVING_ABYSS]


def players_to_rows(
    players: Sequence[CanonicalPlayer],
    bosses: Optional[Sequence[BossName]] = None,
) -> list[dict]:
    """One ordered dict per player, keyed by column header."""
    bosses = list(bosses) if bosses is not None else export_bosses(players)
    rows = []
    top = max((p.total_damage for p in players), default=0)
    for player in players:
        row = {
            "Rank": player.rank,
            "Player Name": player.player_name,
            "Level": player.player_level or NOT_AVAILABLE,
            "Title": player.player_title or NOT_AVAILABLE,
            "Guild Rank": player.guild_rank.value if player.guild_rank else "Member",
        }
        for boss in bosses:
            record = player.bosses.get(boss)
            damage = record.damage if record else 0
            row[f"{boss.label} - Battles"] = record.battles_used if record else 0
            row[f"{boss.label} - Damage"] = damage
            row[f"{boss.label} - Damage (Formatted)"] = format_damage(damage)
            row[f"{boss.label} - Avg DMG/Ticket"] = (
                record.avg_damage_per_ticket if record and record.avg_damage_per_ticket else NOT_AVAILABLE
            )
        total = sum(player.damage_for(b) for b in bosses)
        row["Total Damage"] = total
        row["Total Damage (Formatted)"] = format_damage(total)
        row["Total Battles"] = sum(player.battles_for(b) for b in bosses)
        row["Avg DMG/Battle"] = efficiency_score(player)
        row["Grade"] = performance_grade(player.total_damage, top)
        rows.append(row)
    return rows


def export_players_xlsx(
    players: Sequence[CanonicalPlayer],
    path: str | Path,
    bosses: Optional[Sequence[BossName]] = None,
) -> Path:
    """Write the players to a single-sheet workbook and return its path."""
    path = Path(path)
    bosses = list(bosses) if bosses is not None else export_bosses(players)
    rows = players_to_rows(players, bosses)
    headers = list(rows[0]) if rows else _headers(bosses)

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(headers)
    for row in rows:
        ws.append([row[h] for h in headers])

    bold = Font(bold=True)
    for col_idx, header in enumerate(headers, start=1):
        ws.cell(row=1, column=col_idx).font = bold
        ws.column_dimensions[get_column_letter(col_idx)].width = _WIDTHS.get(header, 15)
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = ws.dimensions

    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    logger.info("Exported %d players to %s", len(rows), path)
    return path


def _headers(bosses: Sequence[BossName]) -> list[str]:
    headers = ["Rank", "Player Name", "Level", "Title", "Guild Rank"]
    for boss in bosses:
        headers += [
            f"{boss.label} - Battles",
            f"{boss.label} - Damage",
            f"{boss.label} - Damage (Formatted)",
            f"{boss.label} - Avg DMG/Ticket",
        ]
    return headers + [
        "Total Damage", "Total Damage (Formatted)", "Total Battles", "Avg DMG/Battle", "Grade",
    ]

"""Freeform OCR text parsing.

Used when a screenshot was only transcribed to plain text. Each line is
matched against an ordered list of candidate line grammars, most specific
first:

  titled       Name Lv.61 Title x9 97,795,386,178 x3 15,260,416,401 x12 113,055,802,579 Member
  leveled      Name Lv.61 x9 97,795,386,178 x3 15,260,416,401 x12 113,055,802,579
  two_pairs    Name Lv.61 [Title] x9 97,795,386,178 N/A
  bare         Name 97,795,386,178 15,260,416,401  (commas optional)

Any battle/damage pair may read "N/A". The first grammar that yields at
least MIN_PLAYERS plausible players wins. When none does, the result is
empty and the caller decides whether to substitute a fallback dataset.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .damage import parse_count, parse_damage
from .merge import merge_encounters
from .models import (
    BossEncounterRecord, BossName, CanonicalPlayer, GuildRank, MergeMode,
    PlayerEncounter,
)
from .utils import is_plausible_player_name, normalize_player_name, parse_level

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2

# Screenshot columns in order; a trailing Season Total pair is ignored.
DEFAULT_TEXT_BOSSES = (BossName.RED_VELVET_DRAGON, BossName.AVATAR_OF_DESTINY)

_NAME = r"(?P<name>\w+)"
_LEVEL = r"Lv\.?\s*(?P<level>\d+)"
_GUILD_RANK = r"(?:\s+(?P<guild_rank>Leader|Officer|Member)\b)?"
_BARE_NUMBER = r"\d[\d,]*"


def _pair(i: int) -> str:
    return rf"(?:x(?P<b{i}>\d+)\s+(?P<d{i}>\d[\d,]*(?:\.\d+)?)|N/?A)"


@dataclass
class TextStrategy:
    """One candidate line grammar."""
    name: str
    pattern: re.Pattern
    pairs: int

    def match_line(self, line: str) -> Optional[dict]:
        match = self.pattern.search(line)
        return match.groupdict() if match else None


STRATEGIES: list[TextStrategy] = [
    TextStrategy(
        "titled",
        re.compile(rf"{_NAME}\s+{_LEVEL}\s+(?P<title>.+?)\s+{_pair(1)}\s+{_pair(2)}\s+{_pair(3)}{_GUILD_RANK}"),
        pairs=3,
    ),
    TextStrategy(
        "leveled",
        re.compile(rf"{_NAME}\s+{_LEVEL}\s+{_pair(1)}\s+{_pair(2)}\s+{_pair(3)}{_GUILD_RANK}"),
        pairs=3,
    ),
    TextStrategy(
        "two_pairs",
        re.compile(rf"{_NAME}\s+{_LEVEL}(?:\s+(?P<title>.+?))?\s+{_pair(1)}\s+{_pair(2)}{_GUILD_RANK}"),
        pairs=2,
    ),
    TextStrategy(
        "bare",
        re.compile(rf"{_NAME}\s+(?P<d1>{_BARE_NUMBER})\s+(?P<d2>{_BARE_NUMBER})"),
        pairs=2,
    ),
]


@dataclass
class FreeformMatch:
    """Outcome of freeform parsing.

    strategy is None when no grammar reached the minimum player count,
    which is distinct from a confident parse.
    """
    strategy: Optional[str] = None
    players: list[CanonicalPlayer] = field(default_factory=list)
    lines_matched: int = 0

    @property
    def confident(self) -> bool:
        return self.strategy is not None


def match_freeform_text(
    text: str,
    bosses: Sequence[BossName] = DEFAULT_TEXT_BOSSES,
    strategies: Sequence[TextStrategy] = STRATEGIES,
    min_players: int = MIN_PLAYERS,
    damage_scale: int = 1,
) -> FreeformMatch:
    """Try each strategy in order; the first with enough players wins."""
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]

    for strategy in strategies:
        encounters: list[PlayerEncounter] = []
        matched = 0
        for line in lines:
            groups = strategy.match_line(line)
            if groups is None:
                continue
            line_encounters = _line_encounters(groups, strategy, bosses, damage_scale)
            if line_encounters:
                matched += 1
                encounters.extend(line_encounters)

        players = merge_encounters(encounters, MergeMode.ASSIGN_ONCE)
        logger.debug("Strategy %s matched %d lines, %d players", strategy.name, matched, len(players))
        if len(players) >= min_players:
            logger.info("Freeform text parsed with strategy %s: %d players", strategy.name, len(players))
            return FreeformMatch(strategy=strategy.name, players=players, lines_matched=matched)

    logger.info("Freeform text below confidence threshold (%d lines)", len(lines))
    return FreeformMatch()


def parse_freeform_text(text: str, bosses: Sequence[BossName] = DEFAULT_TEXT_BOSSES) -> list[CanonicalPlayer]:
    """Parse OCR text into unranked players; [] signals low confidence."""
    return match_freeform_text(text, bosses).players


def _line_encounters(
    groups: dict,
    strategy: TextStrategy,
    bosses: Sequence[BossName],
    damage_scale: int,
) -> list[PlayerEncounter]:
    name = normalize_player_name(groups.get("name"))
    if not is_plausible_player_name(name):
        return []

    level = parse_level(groups.get("level"))
    title = (groups.get("title") or "").strip() or None
    guild_rank = GuildRank.parse(groups.get("guild_rank"))

    encounters = []
    for index, boss in enumerate(bosses[:strategy.pairs], start=1):
        damage = parse_damage(groups.get(f"d{index}"), scale=damage_scale)
        if damage <= 0:
            continue
        battles = parse_count(groups.get(f"b{index}"))
        encounters.append(PlayerEncounter(
            player_name=name,
            record=BossEncounterRecord(
                boss=boss,
                damage=damage,
                battles_used=battles,
                avg_damage_per_ticket=damage // battles if battles else None,
            ),
            player_level=level,
            player_title=title,
            guild_rank=guild_rank,
        ))
    return encounters

"""Player merging.

Reconciles boss encounters keyed by exact (trimmed) player name into one
CanonicalPlayer per name. Two policies:

  assign_once  Boss blocks of one reporting snapshot. A player fills each
               boss slot at most once; a repeated slot keeps the larger
               record, independent of input order.
  additive     Independent sources such as separate screenshots. Repeated
               slots sum damage and battles.

Merged players come back unranked (rank 0), in first-seen name order.
Metadata is combined independent of order: the highest level, the
most senior guild rank and the longest title are kept.
"""

import logging
from typing import Iterable

from .models import (
    BossEncounterRecord, CanonicalPlayer, PlayerEncounter, MergeMode,
)
from .utils import normalize_player_name

logger = logging.getLogger(__name__)


def merge_encounters(
    encounters: Iterable[PlayerEncounter],
    mode: MergeMode = MergeMode.ASSIGN_ONCE,
) -> list[CanonicalPlayer]:
    """Merge encounters into canonical players.

    Args:
        encounters: (name, record) pairs from any extractor.
        mode: Policy for a boss slot that is already populated.

    Returns:
        Unranked canonical players, one per unique name.
    """
    players: dict[str, CanonicalPlayer] = {}
    conflicts = 0

    for encounter in encounters:
        name = normalize_player_name(encounter.player_name)
        if not name:
            continue

        player = players.get(name)
        if player is None:
            player = CanonicalPlayer(player_name=name)
            players[name] = player
        _merge_metadata(player, encounter)

        record = encounter.record
        existing = player.bosses.get(record.boss)
        if existing is None:
            player.bosses[record.boss] = _copy_record(record)
        elif mode == MergeMode.ADDITIVE:
            player.bosses[record.boss] = _sum_records(existing, record)
        else:
            conflicts += 1
            logger.warning(
                "Duplicate %s entry for %s in one snapshot; keeping the larger",
                record.boss.value, name,
            )
            if _record_key(record) > _record_key(existing):
                player.bosses[record.boss] = _copy_record(record)

    logger.info(
        "Merged %d unique players (%s, %d conflicts)",
        len(players), mode.value, conflicts,
    )
    return list(players.values())


def merge_player_sets(*player_sets: Iterable[CanonicalPlayer]) -> list[CanonicalPlayer]:
    """Additively merge players from independent sources.

    Used for multi-screenshot uploads, where every screenshot covers a
    distinct reporting window.
    """
    return merge_encounters(
        (enc for players in player_sets for enc in player_encounters(players)),
        mode=MergeMode.ADDITIVE,
    )


def player_encounters(players: Iterable[CanonicalPlayer]) -> list[PlayerEncounter]:
    """Flatten canonical players back into encounters, metadata included."""
    encounters = []
    for player in players:
        for record in player.bosses.values():
            encounters.append(PlayerEncounter(
                player_name=player.player_name,
                record=record,
                player_level=player.player_level,
                player_title=player.player_title,
                guild_rank=player.guild_rank,
            ))
    return encounters


def _merge_metadata(player: CanonicalPlayer, encounter: PlayerEncounter) -> None:
    if encounter.player_level is not None:
        player.player_level = max(player.player_level or 0, encounter.player_level)
    title = (encounter.player_title or "").strip()
    if title and (player.player_title is None or _title_key(title) > _title_key(player.player_title)):
        player.player_title = title
    rank = encounter.guild_rank
    if rank is not None and (
        player.guild_rank is None or rank.authority > player.guild_rank.authority
    ):
        player.guild_rank = rank


def _title_key(title: str) -> tuple:
    # Longest title wins, then the alphabetically last
    return (len(title), title)


def _copy_record(record: BossEncounterRecord) -> BossEncounterRecord:
    return BossEncounterRecord(
        boss=record.boss,
        damage=record.damage,
        battles_used=record.battles_used,
        avg_damage_per_ticket=record.avg_damage_per_ticket,
    )


def _sum_records(a: BossEncounterRecord, b: BossEncounterRecord) -> BossEncounterRecord:
    damage = a.damage + b.damage
    battles = a.battles_used + b.battles_used
    return BossEncounterRecord(
        boss=a.boss,
        damage=damage,
        battles_used=battles,
        avg_damage_per_ticket=damage // battles if battles else None,
    )


def _record_key(record: BossEncounterRecord) -> tuple:
    return (record.damage, record.battles_used, record.avg_damage_per_ticket or 0)

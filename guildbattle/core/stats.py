"""
Ranking and guild statistics.

Ranking sorts by total damage across all bosses, descending. Ties keep
their input order (the sort is stable); ranks are 1..n with no gaps and
no shared ranks.

Headline damage stats use total damage over all four bosses. The season
only decides which bosses count toward ticket accounting.
"""

import logging
from dataclasses import replace
from typing import Sequence

from ..ingest.models import (
    BossName, BossStats, BossTicketStats, CanonicalPlayer, GuildStatistics,
    TicketStats,
)
from .seasons import SeasonSelector, get_season

logger = logging.getLogger(__name__)

TOP_PERFORMERS = 5


def rank_players(players: Sequence[CanonicalPlayer]) -> list[CanonicalPlayer]:
    """Return new player objects sorted by total damage with dense ranks."""
    ordered = sorted(players, key=lambda p: p.total_damage, reverse=True)
    return [
        replace(player, rank=index + 1, bosses=dict(player.bosses))
        for index, player in enumerate(ordered)
    ]


def compute_stats(players: Sequence[CanonicalPlayer], season: SeasonSelector) -> GuildStatistics:
    """Compute guild statistics for one season.

    Empty input yields zeroed statistics rather than errors.
    """
    config = get_season(season)
    ranked = rank_players(players)
    total_players = len(ranked)
    guild_score = sum(p.total_damage for p in ranked)

    stats = GuildStatistics(
        season=config.season,
        total_players=total_players,
        highest_damage=ranked[0].total_damage if ranked else 0,
        average_damage=_rounded_mean(guild_score, total_players),
        total_battles_done=sum(p.total_battles for p in ranked),
        top_performers=ranked[:TOP_PERFORMERS],
        guild_score=guild_score,
        boss_stats={boss: _boss_stats(ranked, boss) for boss in BossName},
        ticket_stats=compute_ticket_stats(ranked, config),
    )
    logger.info(
        "Season %d stats: %d players, guild score %d",
        config.season, total_players, guild_score,
    )
    return stats


def compute_ticket_stats(players: Sequence[CanonicalPlayer], season: SeasonSelector) -> TicketStats:
    """Ticket usage over the season's active bosses.

    total_tickets_missed = players * max_tickets - total_tickets_used.
    """
    config = get_season(season)
    count = len(players)

    per_boss = {}
    for boss in config.active_bosses:
        used = sum(p.battles_for(boss) for p in players)
        per_boss[boss] = BossTicketStats(
            tickets_used=used,
            tickets_missed=count * config.tickets_per_boss - used,
            participants=sum(1 for p in players if p.battles_for(boss) > 0),
        )

    total_used = sum(s.tickets_used for s in per_boss.values())
    below = [
        p.player_name for p in players
        if tickets_used(p, config) < config.min_tickets
    ]

    return TicketStats(
        total_tickets_used=total_used,
        total_tickets_missed=count * config.max_tickets - total_used,
        players_below_minimum=below,
        average_tickets_used=round(total_used / count, 2) if count else 0.0,
        per_boss=per_boss,
    )


def tickets_used(player: CanonicalPlayer, season: SeasonSelector) -> int:
    """Tickets a player spent on the season's active bosses."""
    config = get_season(season)
    return sum(player.battles_for(boss) for boss in config.active_bosses)


def is_below_minimum(player: CanonicalPlayer, season: SeasonSelector) -> bool:
    config = get_season(season)
    return tickets_used(player, config) < config.min_tickets


GRADE_THRESHOLDS = ((90, "S"), (80, "A"), (70, "B"), (60, "C"), (50, "D"))


def performance_grade(damage: int, max_damage: int) -> str:
    """Letter grade for damage as a percentage of the top damage.

    S from 90%, then A, B, C and D in steps of ten down to 50%; anything
    lower, or a max of zero, grades F.
    """
    if max_damage <= 0:
        return "F"
    percent = damage * 100 / max_damage
    for threshold, grade in GRADE_THRESHOLDS:
        if percent >= threshold:
            return grade
    return "F"


def efficiency_score(player: CanonicalPlayer) -> int:
    """Damage points per battle across all bosses, rounded half up."""
    return _rounded_mean(player.total_damage, player.total_battles)


def _boss_stats(players: Sequence[CanonicalPlayer], boss: BossName) -> BossStats:
    damages = [p.damage_for(boss) for p in players if p.damage_for(boss) > 0]
    total = sum(damages)
    return BossStats(
        total_damage=total,
        average_damage=_rounded_mean(total, len(damages)),
        participants=len(damages),
    )


def _rounded_mean(total: int, count: int) -> int:
    """Integer mean rounded half up; 0 when count is 0."""
    if count <= 0:
        return 0
    return (2 * total + count) // (2 * count)

"""
Insight generation.

Turns a ranked player set and its statistics into an ordered checklist of
observations: top performer, participation, ticket usage against the
quota, minimum compliance, then per-boss requirements, guild structure and
average level when that data exists. Pure and deterministic.
"""

from typing import Iterator, Sequence

from ..ingest.damage import format_damage
from ..ingest.models import CanonicalPlayer, GuildRank, GuildStatistics
from .seasons import SeasonSelector, get_season

EXCELLENT_PARTICIPATION = 80.0
LOW_PARTICIPATION = 60.0
MAX_LISTED_NAMES = 10


def generate_insights(
    players: Sequence[CanonicalPlayer],
    stats: GuildStatistics,
    season: SeasonSelector,
) -> list[str]:
    """Materialize the insight sequence."""
    return list(iter_insights(players, stats, season))


def iter_insights(
    players: Sequence[CanonicalPlayer],
    stats: GuildStatistics,
    season: SeasonSelector,
) -> Iterator[str]:
    """Lazily yield insights in checklist order.

    Args:
        players: Ranked canonical players (rank 1 first).
        stats: Statistics computed over the same players.
        season: Season selector used for the ticket lines.
    """
    config = get_season(season)
    if not players:
        yield "No player data available for this season."
        return

    ordered = sorted(players, key=lambda p: p.rank or len(players) + 1)

    # Top performer
    top = ordered[0]
    level = f" (Lv.{top.player_level})" if top.player_level else ""
    yield (
        f"{top.player_name}{level} achieved the highest season total "
        f"with {format_damage(top.total_damage)}"
    )

    # Participation
    total = stats.total_players or len(players)
    active = sum(1 for p in players if p.total_battles > 0 or p.total_damage > 0)
    rate = active / total * 100 if total else 0.0
    yield f"{active}/{total} players participated ({rate:.0f}%)"
    if rate >= EXCELLENT_PARTICIPATION:
        yield "Excellent guild participation with high battle engagement"
    elif rate <= LOW_PARTICIPATION:
        yield "Low participation rate - consider encouraging more active involvement"

    # Ticket usage against the quota
    tickets = stats.ticket_stats
    available = total * config.max_tickets
    usage = tickets.total_tickets_used / available * 100 if available else 0.0
    bosses = " + ".join(b.label for b in config.active_bosses)
    yield (
        f"Tickets used: {tickets.total_tickets_used}/{available} ({usage:.0f}%) on {bosses}; "
        f"{tickets.total_tickets_missed} missed, "
        f"average {tickets.average_tickets_used:.1f} of {config.max_tickets} per player"
    )

    # Minimum compliance
    below = tickets.players_below_minimum
    if not below:
        yield f"All players met the {config.min_tickets}-ticket minimum"
    else:
        names = ", ".join(below[:MAX_LISTED_NAMES])
        if len(below) > MAX_LISTED_NAMES:
            names += f" and {len(below) - MAX_LISTED_NAMES} more"
        yield f"{len(below)} players below the {config.min_tickets}-ticket minimum: {names}"

    # Per-boss damage requirements
    for boss in config.active_bosses:
        requirement = config.damage_requirements.get(boss)
        if not requirement:
            continue
        boss_stats = stats.boss_stats.get(boss)
        participants = boss_stats.participants if boss_stats else 0
        met = sum(1 for p in players if p.damage_for(boss) >= requirement)
        yield (
            f"{met}/{participants} members meet {boss.label} requirements "
            f"({format_damage(requirement)}+)"
        )

    # Guild structure
    ranks = [p.guild_rank for p in players if p.guild_rank is not None]
    if ranks:
        leaders = ranks.count(GuildRank.LEADER)
        officers = ranks.count(GuildRank.OFFICER)
        members = ranks.count(GuildRank.MEMBER)
        yield f"Guild Structure: {leaders} Leader, {officers} Officer, {members} Members"

    # Level distribution
    levels = [p.player_level for p in players if p.player_level]
    if levels:
        average = (2 * sum(levels) + len(levels)) // (2 * len(levels))
        yield f"Average guild level: {average} (range {min(levels)}-{max(levels)})"

"""Core season rules, statistics and insights."""

from .seasons import SeasonConfig, SEASON_TABLE, get_season, load_season_table
from .stats import (
    compute_stats, compute_ticket_stats, efficiency_score, performance_grade,
    rank_players,
)
from .insights import generate_insights

__all__ = [
    "SeasonConfig",
    "SEASON_TABLE",
    "get_season",
    "load_season_table",
    "compute_stats",
    "compute_ticket_stats",
    "efficiency_score",
    "performance_grade",
    "rank_players",
    "generate_insights",
]

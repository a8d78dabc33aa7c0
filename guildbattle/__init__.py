"""Guild battle leaderboard parsing, statistics and insights."""

__version__ = "0.1.0"

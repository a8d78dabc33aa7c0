"""Leaderboard ingestion: parsing, extraction and merging of player data."""

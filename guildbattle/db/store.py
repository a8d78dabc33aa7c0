"""
Analysis Store - SQLite-backed cache of finished analyses.

Keeps the latest analysis per (season, guild). The pipeline never reads
from it for correctness; it only lets a later session show the last result.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from ..ingest.models import CanonicalPlayer, GuildStatistics

logger = logging.getLogger(__name__)


class AnalysisStore:
    """
    SQLite-backed store for analysis results.

    Players, stats and insights are stored as JSON columns.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)

    def connect(self) -> sqlite3.Connection:
        """Create a database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def ensure_schema(self) -> None:
        """Initialize database schema from schema.sql."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        schema_path = Path(__file__).with_name("schema.sql")
        sql = schema_path.read_text(encoding="utf-8")
        with self.connect() as conn:
            conn.executescript(sql)
            conn.commit()

    # =========================================================================
    # Analysis Operations
    # =========================================================================

    def save(
        self,
        season_name: str,
        guild_name: str,
        players: Sequence[CanonicalPlayer],
        stats: GuildStatistics,
        insights: Iterable[str] = ()
    ) -> int:
        """Store an analysis, replacing any previous one for the pair.

        Returns:
            The analysis row id.
        """
        now = datetime.now(timezone.utc).isoformat()
        with self.connect() as conn:
            season_id = _get_or_create(conn, "seasons", season_name, now)
            guild_id = _get_or_create(conn, "guilds", guild_name, now)
            conn.execute(
                """
                INSERT INTO analyses (season_id, guild_id, season_selector,
                    total_players, guild_score, players_json, stats_json,
                    insights_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (season_id, guild_id) DO UPDATE SET
                    season_selector = excluded.season_selector,
                    total_players = excluded.total_players,
                    guild_score = excluded.guild_score,
                    players_json = excluded.players_json,
                    stats_json = excluded.stats_json,
                    insights_json = excluded.insights_json,
                    updated_at = excluded.updated_at
                """,
                (
                    season_id,
                    guild_id,
                    stats.season,
                    stats.total_players,
                    stats.guild_score,
                    json_dumps([p.to_dict() for p in players]),
                    json_dumps(stats.to_dict()),
                    json_dumps(list(insights)),
                    now,
                    now
                )
            )
            row = conn.execute(
                "SELECT id FROM analyses WHERE season_id = ? AND guild_id = ?",
                (season_id, guild_id)
            ).fetchone()
            conn.commit()

        logger.info(
            "Stored analysis %d for %s / %s (%d players)",
            row["id"], season_name, guild_name, stats.total_players,
        )
        return row["id"]

    def load_latest(self, season_name: str, guild_name: str) -> Optional[dict]:
        """Get the stored analysis for a season and guild, or None."""
        with self.connect() as conn:
            row = conn.execute(
                """
                SELECT a.*, s.name AS season_name, g.name AS guild_name
                FROM analyses a
                JOIN seasons s ON s.id = a.season_id
                JOIN guilds g ON g.id = a.guild_id
                WHERE s.name = ? AND g.name = ?
                """,
                (season_name, guild_name)
            ).fetchone()
        if not row:
            return None
        return _parse_analysis_row(row)

    def list_analyses(self, guild_name: Optional[str] = None) -> list[dict]:
        """List stored analyses (without player payloads), newest first."""
        query = """
            SELECT a.id, a.season_selector, a.total_players, a.guild_score,
                   a.updated_at, s.name AS season_name, g.name AS guild_name
            FROM analyses a
            JOIN seasons s ON s.id = a.season_id
            JOIN guilds g ON g.id = a.guild_id
        """
        params: list = []
        if guild_name is not None:
            query += " WHERE g.name = ?"
            params.append(guild_name)
        query += " ORDER BY a.updated_at DESC, a.id DESC"

        with self.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            {
                "id": row["id"],
                "season_name": row["season_name"],
                "guild_name": row["guild_name"],
                "season": row["season_selector"],
                "total_players": row["total_players"],
                "guild_score": row["guild_score"],
                "updated_at": row["updated_at"],
            }
            for row in rows
        ]

    def clear_all(self) -> int:
        """Delete every stored analysis. Returns the number removed."""
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM analyses")
            conn.commit()
        logger.info("Cleared %d stored analyses", cursor.rowcount)
        return cursor.rowcount


# =============================================================================
# Helper Functions
# =============================================================================

def json_dumps(value: Any) -> str:
    """Serialize value to JSON string."""
    return json.dumps(value, ensure_ascii=True, separators=(",", ":"))


def json_loads(value: str) -> Any:
    """Deserialize JSON string to value."""
    return json.loads(value) if value else None


def _get_or_create(conn: sqlite3.Connection, table: str, name: str, now: str) -> int:
    conn.execute(
        f"INSERT OR IGNORE INTO {table} (name, created_at) VALUES (?, ?)",
        (name, now)
    )
    row = conn.execute(f"SELECT id FROM {table} WHERE name = ?", (name,)).fetchone()
    return row["id"]


def _parse_analysis_row(row: sqlite3.Row) -> dict:
    """Parse an analysis row to dict."""
    return {
        "id": row["id"],
        "season_name": row["season_name"],
        "guild_name": row["guild_name"],
        "season": row["season_selector"],
        "players": [CanonicalPlayer.from_dict(p) for p in json_loads(row["players_json"]) or []],
        "stats": json_loads(row["stats_json"]),
        "insights": json_loads(row["insights_json"]) or [],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }

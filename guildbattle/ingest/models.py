"""Data models for the guild-battle analysis pipeline.

All intermediate representations passed between pipeline stages, from
extracted boss encounters up to the finished analysis result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class BossName(Enum):
    """The four raid bosses tracked on the guild leaderboard."""
    RED_VELVET_DRAGON = "RedVelvetDragon"
    AVATAR_OF_DESTINY = "AvatarOfDestiny"
    LIVING_ABYSS = "LivingAbyss"
    MACHINE_GOD = "MachineGod"

    @property
    def label(self) -> str:
        return BOSS_LABELS[self]

    @classmethod
    def parse(cls, text) -> Optional["BossName"]:
        """Resolve a boss from its value, label, or squashed label."""
        if isinstance(text, cls):
            return text
        if not text:
            return None
        key = str(text).replace(" ", "").replace("_", "").lower()
        for boss in cls:
            if key in (boss.value.lower(), boss.name.replace("_", "").lower()):
                return boss
        return None


BOSS_LABELS = {
    BossName.RED_VELVET_DRAGON: "Red Velvet Dragon",
    BossName.AVATAR_OF_DESTINY: "Avatar of Destiny",
    BossName.LIVING_ABYSS: "Living Abyss",
    BossName.MACHINE_GOD: "Machine God",
}


class GuildRank(Enum):
    """Guild role of a player."""
    LEADER = "Leader"
    OFFICER = "Officer"
    MEMBER = "Member"

    @property
    def authority(self) -> int:
        return _RANK_AUTHORITY[self]

    @classmethod
    def parse(cls, text) -> Optional["GuildRank"]:
        if isinstance(text, cls):
            return text
        if not text:
            return None
        key = str(text).strip().lower()
        for rank in cls:
            if rank.value.lower() == key:
                return rank
        return None


_RANK_AUTHORITY = {
    GuildRank.LEADER: 3,
    GuildRank.OFFICER: 2,
    GuildRank.MEMBER: 1,
}


class MergeMode(Enum):
    """How a repeated (player, boss) slot is combined."""
    ASSIGN_ONCE = "assign_once"  # one reporting snapshot
    ADDITIVE = "additive"        # independent sources (e.g. screenshots)


# ---------------------------------------------------------------------------
# Stage 1: Extraction
# ---------------------------------------------------------------------------

@dataclass
class BossEncounterRecord:
    """One boss's result for one player in one reporting period."""
    boss: BossName
    damage: int = 0
    battles_used: int = 0
    avg_damage_per_ticket: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "damage": self.damage,
            "battlesUsed": self.battles_used,
            "avgDamagePerTicket": self.avg_damage_per_ticket,
        }

    @classmethod
    def from_dict(cls, boss: BossName, data: dict) -> "BossEncounterRecord":
        avg = data.get("avgDamagePerTicket")
        return cls(
            boss=boss,
            damage=int(data.get("damage") or 0),
            battles_used=int(data.get("battlesUsed", data.get("battles")) or 0),
            avg_damage_per_ticket=int(avg) if avg is not None else None,
        )


@dataclass
class PlayerEncounter:
    """A (player name, boss record) pair plus whatever metadata the source shows."""
    player_name: str
    record: BossEncounterRecord
    player_level: Optional[int] = None
    player_title: Optional[str] = None
    guild_rank: Optional[GuildRank] = None


@dataclass
class BossSection:
    """Column block holding one boss's leaderboard inside a sheet row."""
    boss: BossName
    start_col: int
    name_offset: int = 0
    damage_offset: int = 1
    battles_offset: int = 2
    avg_offset: int = 3


@dataclass
class SheetLayout:
    """Positional conventions of the guild-battle spreadsheet export.

    damage_scale multiplies unit-less damage cells; the guild sheet records
    damage in billions ("53.70"), raw-point exports use a scale of 1.
    """
    header_rows: int = 2
    min_columns: int = 20
    summary_markers: tuple[str, ...] = ("DAMAGE REQ", "DAMAGE GOAL", "Min Tickets")
    sections: tuple[BossSection, ...] = (
        BossSection(BossName.RED_VELVET_DRAGON, 1),
        BossSection(BossName.AVATAR_OF_DESTINY, 8),
        BossSection(BossName.LIVING_ABYSS, 15),
        BossSection(BossName.MACHINE_GOD, 22),
    )
    damage_scale: int = 10 ** 9


# ---------------------------------------------------------------------------
# Stage 2: Merged players
# ---------------------------------------------------------------------------

@dataclass
class CanonicalPlayer:
    """The merged, ranked unit of output. rank == 0 means not ranked yet."""
    player_name: str
    rank: int = 0
    player_level: Optional[int] = None
    player_title: Optional[str] = None
    guild_rank: Optional[GuildRank] = None
    bosses: dict[BossName, BossEncounterRecord] = field(default_factory=dict)

    @property
    def total_damage(self) -> int:
        return sum(r.damage for r in self.bosses.values())

    @property
    def total_battles(self) -> int:
        return sum(r.battles_used for r in self.bosses.values())

    def damage_for(self, boss: BossName) -> int:
        record = self.bosses.get(boss)
        return record.damage if record else 0

    def battles_for(self, boss: BossName) -> int:
        record = self.bosses.get(boss)
        return record.battles_used if record else 0

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "playerName": self.player_name,
            "playerLevel": self.player_level,
            "playerTitle": self.player_title,
            "guildRank": self.guild_rank.value if self.guild_rank else None,
            "bosses": {b.value: r.to_dict() for b, r in self.bosses.items()},
            "totalDamage": self.total_damage,
            "totalBattles": self.total_battles,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalPlayer":
        bosses = {}
        for key, value in (data.get("bosses") or {}).items():
            boss = BossName.parse(key)
            if boss is None or not value:
                continue
            record = BossEncounterRecord.from_dict(boss, value)
            # Zero damage is no participation; its battles do not count
            if record.damage > 0:
                bosses[boss] = record
        level = data.get("playerLevel")
        return cls(
            player_name=str(data["playerName"]).strip(),
            rank=int(data.get("rank") or 0),
            player_level=int(level) if level is not None else None,
            player_title=data.get("playerTitle"),
            guild_rank=GuildRank.parse(data.get("guildRank")),
            bosses=bosses,
        )


# ---------------------------------------------------------------------------
# Stage 3: Statistics
# ---------------------------------------------------------------------------

@dataclass
class BossStats:
    total_damage: int = 0
    average_damage: int = 0
    participants: int = 0

    def to_dict(self) -> dict:
        return {
            "totalDamage": self.total_damage,
            "averageDamage": self.average_damage,
            "participants": self.participants,
        }


@dataclass
class BossTicketStats:
    tickets_used: int = 0
    tickets_missed: int = 0
    participants: int = 0

    def to_dict(self) -> dict:
        return {
            "ticketsUsed": self.tickets_used,
            "ticketsMissed": self.tickets_missed,
            "participants": self.participants,
        }


@dataclass
class TicketStats:
    """Ticket accounting over the season's two active bosses."""
    total_tickets_used: int = 0
    total_tickets_missed: int = 0
    players_below_minimum: list[str] = field(default_factory=list)
    average_tickets_used: float = 0.0
    per_boss: dict[BossName, BossTicketStats] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalTicketsUsed": self.total_tickets_used,
            "totalTicketsMissed": self.total_tickets_missed,
            "playersBelowMinimum": list(self.players_below_minimum),
            "averageTicketsUsed": self.average_tickets_used,
            "perBoss": {b.value: s.to_dict() for b, s in self.per_boss.items()},
        }


@dataclass
class GuildStatistics:
    """Aggregate view over one canonical player set for one season."""
    season: int
    total_players: int = 0
    highest_damage: int = 0
    average_damage: int = 0
    total_battles_done: int = 0
    top_performers: list[CanonicalPlayer] = field(default_factory=list)
    guild_score: int = 0
    boss_stats: dict[BossName, BossStats] = field(default_factory=dict)
    ticket_stats: TicketStats = field(default_factory=TicketStats)

    def to_dict(self) -> dict:
        return {
            "season": self.season,
            "totalPlayers": self.total_players,
            "highestDamage": self.highest_damage,
            "averageDamage": self.average_damage,
            "totalBattlesDone": self.total_battles_done,
            "topPerformers": [p.to_dict() for p in self.top_performers],
            "guildScore": self.guild_score,
            "bossStats": {b.value: s.to_dict() for b, s in self.boss_stats.items()},
            "ticketStats": self.ticket_stats.to_dict(),
        }


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------

@dataclass
class AnalysisResult:
    """Ordered players, their statistics and the derived insights."""
    players: list[CanonicalPlayer]
    stats: GuildStatistics
    insights: list[str] = field(default_factory=list)
    source: str = ""
    fallback_used: bool = False

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "fallbackUsed": self.fallback_used,
            "players": [p.to_dict() for p in self.players],
            "stats": self.stats.to_dict(),
            "insights": list(self.insights),
        }

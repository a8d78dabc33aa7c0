"""
Season configuration.

A season selects which two of the four bosses count toward ticket quotas,
the ticket cap and minimum, and the per-boss damage requirements. The
mapping is a lookup table; nothing else branches on the season number.

Overrides can be loaded from YAML in the same shape:

    2:
      active_bosses: [RedVelvetDragon, LivingAbyss]
      max_tickets: 18
      min_tickets: 15
      damage_requirements: {RedVelvetDragon: 6000000000}
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import yaml

from ..ingest.models import BossName

RVD = BossName.RED_VELVET_DRAGON
AOD = BossName.AVATAR_OF_DESTINY
LA = BossName.LIVING_ABYSS
MG = BossName.MACHINE_GOD

DEFAULT_DAMAGE_REQUIREMENTS = {
    RVD: 6_000_000_000,
    AOD: 3_500_000_000,
}


@dataclass
class SeasonConfig:
    """Ticket rules for one season selector."""
    season: int
    active_bosses: tuple[BossName, ...]
    max_tickets: int = 18
    min_tickets: int = 15
    damage_requirements: dict[BossName, int] = field(
        default_factory=lambda: dict(DEFAULT_DAMAGE_REQUIREMENTS)
    )

    @property
    def tickets_per_boss(self) -> int:
        return self.max_tickets // max(len(self.active_bosses), 1)

    def is_active(self, boss: BossName) -> bool:
        return boss in self.active_bosses

    def to_dict(self) -> dict:
        return {
            "season": self.season,
            "activeBosses": [b.value for b in self.active_bosses],
            "maxTickets": self.max_tickets,
            "minTickets": self.min_tickets,
            "ticketsPerBoss": self.tickets_per_boss,
            "damageRequirements": {b.value: v for b, v in self.damage_requirements.items()},
        }


SEASON_TABLE: dict[int, SeasonConfig] = {
    1: SeasonConfig(1, (RVD, AOD)),
    2: SeasonConfig(2, (RVD, LA)),
    3: SeasonConfig(3, (AOD, MG)),
    4: SeasonConfig(4, (LA, MG)),
}

DEFAULT_SEASON = 1

SeasonSelector = Union[int, str, SeasonConfig]


def get_season(selector: SeasonSelector, table: dict[int, SeasonConfig] | None = None) -> SeasonConfig:
    """Resolve a season selector to its config.

    Raises:
        ValueError: If the selector is not in the table.
    """
    if isinstance(selector, SeasonConfig):
        return selector
    table = table if table is not None else SEASON_TABLE
    try:
        key = int(selector)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid season selector: {selector!r}")
    if key not in table:
        raise ValueError(
            f"Unknown season: {key}. Known seasons: {', '.join(str(k) for k in sorted(table))}"
        )
    return table[key]


def load_season_table(path: str | Path, base: dict[int, SeasonConfig] | None = None) -> dict[int, SeasonConfig]:
    """Load season overrides from YAML, merged over ``base``.

    Entries with unknown boss names, or without exactly two distinct active
    bosses, are rejected with ValueError.
    """
    table = dict(base if base is not None else SEASON_TABLE)
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}

    for key, entry in data.items():
        season = int(key)
        entry = entry or {}
        previous = table.get(season)

        bosses = entry.get("active_bosses")
        if bosses is None:
            if previous is None:
                raise ValueError(f"Season {season} needs active_bosses")
            active = previous.active_bosses
        else:
            active = tuple(_parse_boss(b) for b in bosses)
            if len(active) != 2 or active[0] == active[1]:
                raise ValueError(
                    f"Season {season} must have exactly two active bosses, got {len(active)}"
                )

        requirements = entry.get("damage_requirements")
        if requirements is None:
            reqs = dict(previous.damage_requirements) if previous else dict(DEFAULT_DAMAGE_REQUIREMENTS)
        else:
            reqs = {_parse_boss(b): int(v) for b, v in requirements.items()}

        table[season] = SeasonConfig(
            season=season,
            active_bosses=active,
            max_tickets=int(entry.get("max_tickets", previous.max_tickets if previous else 18)),
            min_tickets=int(entry.get("min_tickets", previous.min_tickets if previous else 15)),
            damage_requirements=reqs,
        )
    return table


def _parse_boss(value) -> BossName:
    boss = BossName.parse(value)
    if boss is None:
        raise ValueError(f"Unknown boss in season table: {value!r}")
    return boss

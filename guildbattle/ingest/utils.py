"""Shared utility functions for the analysis pipeline."""

import json
import re
from pathlib import Path
from typing import Optional

import yaml

from .models import CanonicalPlayer

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 20

# Names vision models invent when they cannot read a row
PLACEHOLDER_NAMES = {"player", "player name", "playername", "unknown player", "name"}


def normalize_player_name(raw) -> str:
    """Merge key for a player: the trimmed cell text.

    >>> normalize_player_name("  ZephyrCat ")
    'ZephyrCat'
    """
    if raw is None:
        return ""
    return str(raw).strip()


def is_plausible_player_name(name: str) -> bool:
    """Reject numeric, placeholder, or out-of-band names from OCR/AI output."""
    if not name:
        return False
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return False
    if re.fullmatch(r"[\d.,]+", name):
        return False
    return name.lower() not in PLACEHOLDER_NAMES


def parse_level(raw) -> Optional[int]:
    """Parse a player level ("Lv.61", "61"); None when absent."""
    if raw is None:
        return None
    match = re.search(r"\d+", str(raw))
    return int(match.group(0)) if match else None


def load_roster(path: Path) -> list[list[CanonicalPlayer]]:
    """Load a fallback roster file (YAML or JSON).

    The file holds either a flat list of player dicts (one batch) or a
    mapping with a ``screenshots`` key listing one batch per screenshot.

    Returns:
        One list of players per batch.
    """
    path = Path(path)
    raw = path.read_text(encoding="utf-8")
    data = json.loads(raw) if path.suffix.lower() == ".json" else yaml.safe_load(raw)

    if isinstance(data, dict):
        batches = data.get("screenshots") or []
    elif isinstance(data, list):
        batches = [data]
    else:
        batches = []

    return [
        [CanonicalPlayer.from_dict(entry) for entry in batch or []]
        for batch in batches
    ]

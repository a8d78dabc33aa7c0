"""
Shared pytest fixtures for all tests.
"""

import pytest
from pathlib import Path

# Add project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from guildbattle.db.store import AnalysisStore
from guildbattle.ingest.models import (
    BossEncounterRecord, BossName, CanonicalPlayer, GuildRank,
)
from guildbattle.llm.gateway import MockGateway, ScreenshotImage
from guildbattle.llm.prompt_registry import PromptRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Isolated config directory with no API key or settings in the env."""
    home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    for name in ("SPREADSHEET_ID", "RANGE", "SEASON", "DB_PATH", "MODEL"):
        monkeypatch.delenv(f"GUILDBATTLE_{name}", raising=False)
    return home


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_path(tmp_path):
    """Temporary database path for testing."""
    return tmp_path / "test_analyses.db"


@pytest.fixture
def analysis_store(db_path):
    """Fresh analysis store with schema initialized."""
    store = AnalysisStore(db_path)
    store.ensure_schema()
    return store


# =============================================================================
# LLM Fixtures
# =============================================================================

@pytest.fixture
def mock_gateway():
    """Mock transcription gateway for testing without API calls."""
    return MockGateway()


@pytest.fixture
def prompt_registry():
    """Prompt registry pointing to the packaged prompts."""
    prompts_dir = Path(__file__).parent.parent / "guildbattle" / "prompts"
    return PromptRegistry(prompts_dir)


@pytest.fixture
def screenshot():
    """Fake PNG bytes; the mock gateway never decodes them."""
    return ScreenshotImage(data=b"\x89PNG\r\n\x1a\nfake", media_type="image/png", name="shot1.png")


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def happy_grid():
    from tests.fixtures.grids import happy_path_grid
    return happy_path_grid()


@pytest.fixture
def roster_path():
    return FIXTURES_DIR / "screenshot_roster.yaml"


def make_player(name, rank=0, level=None, guild_rank=None, **bosses):
    """
    Build a canonical player.

    Args:
        **bosses: rvd/aod/la/mg -> (damage, battles)
    """
    keys = {
        "rvd": BossName.RED_VELVET_DRAGON,
        "aod": BossName.AVATAR_OF_DESTINY,
        "la": BossName.LIVING_ABYSS,
        "mg": BossName.MACHINE_GOD,
    }
    records = {}
    for key, (damage, battles) in bosses.items():
        boss = keys[key]
        records[boss] = BossEncounterRecord(
            boss=boss,
            damage=damage,
            battles_used=battles,
            avg_damage_per_ticket=damage // battles if battles else None,
        )
    return CanonicalPlayer(
        player_name=name,
        rank=rank,
        player_level=level,
        guild_rank=GuildRank.parse(guild_rank),
        bosses=records,
    )


@pytest.fixture
def player_factory():
    return make_player


@pytest.fixture
def sample_players():
    """Three unranked players. Season 1 tickets: Bob 14, Alice 18, Cara 0."""
    return [
        make_player("Bob", level=60, guild_rank="Officer",
                    rvd=(8_000_000_000, 9), aod=(3_000_000_000, 5)),
        make_player("Alice", level=70, guild_rank="Leader",
                    rvd=(10_000_000_000, 9), aod=(4_000_000_000, 9)),
        make_player("Cara", level=51, guild_rank="Member",
                    la=(2_000_000_000, 9)),
    ]

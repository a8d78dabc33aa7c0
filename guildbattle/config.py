"""
Configuration management for the guild battle analyzer.

Handles API key storage, user settings and optional season overrides.
Settings resolve from GUILDBATTLE_<NAME> environment variables first,
then the config file, then the caller's default.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .core.seasons import SEASON_TABLE, SeasonConfig, load_season_table
from .llm.gateway import DEFAULT_MODEL

logger = logging.getLogger(__name__)

ENV_PREFIX = "GUILDBATTLE_"
SEASONS_FILE = "seasons.yaml"

DEFAULT_SETTINGS = {
    "spreadsheet_id": None,
    "range": "Sheet1!A1:AD60",
    "season": "1",
    "db_path": None,
    "model": DEFAULT_MODEL,
}


def get_config_dir() -> Path:
    """$XDG_CONFIG_HOME/guild-battle (~/.config by default), created on demand."""
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    config_dir = Path(base) / "guild-battle"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


def load_config() -> dict:
    """Stored settings; an unreadable file counts as empty."""
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def save_config(config: dict) -> None:
    path = get_config_path()
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    # Holds the API key
    path.chmod(0o600)


def get_setting(name: str, default: Any = None) -> Any:
    """Resolve a setting: environment, then config file, then default."""
    env_value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
    if env_value:
        return env_value
    value = load_config().get(name)
    if value is not None:
        return value
    if default is not None:
        return default
    return DEFAULT_SETTINGS.get(name)


def set_setting(name: str, value: Any) -> None:
    config = load_config()
    config[name] = value
    save_config(config)


def get_db_path() -> Path:
    """Database path setting, defaulting into the config directory."""
    configured = get_setting("db_path")
    return Path(configured) if configured else get_config_dir() / "analyses.db"


def load_seasons() -> dict[int, SeasonConfig]:
    """Built-in season table, with seasons.yaml overrides when present."""
    path = get_config_dir() / SEASONS_FILE
    if not path.exists():
        return dict(SEASON_TABLE)
    logger.info("Loading season overrides from %s", path)
    return load_season_table(path)


# =============================================================================
# Anthropic API key
# =============================================================================

API_KEY_ENV = "ANTHROPIC_API_KEY"
API_KEY_SETTING = "anthropic_api_key"


def get_api_key() -> Optional[str]:
    """The key from ANTHROPIC_API_KEY, else the one stored by ``login``."""
    return os.environ.get(API_KEY_ENV) or load_config().get(API_KEY_SETTING)


def set_api_key(api_key: str) -> None:
    set_setting(API_KEY_SETTING, api_key)


def clear_api_key() -> None:
    config = load_config()
    if config.pop(API_KEY_SETTING, None) is not None:
        save_config(config)


def mask_api_key(api_key: str) -> str:
    """
    >>> mask_api_key("sk-ant-api03-abcdefgh1234")
    'sk-ant-a...1234'
    """
    return f"{api_key[:8]}...{api_key[-4:]}"


def validate_api_key(api_key: str) -> tuple[bool, str]:
    """
    Check a key with a one-token request against the configured model.

    Returns:
        (is_valid, message)
    """
    import anthropic

    try:
        anthropic.Anthropic(api_key=api_key).messages.create(
            model=get_setting("model"),
            max_tokens=1,
            messages=[{"role": "user", "content": "ping"}],
        )
    except anthropic.AuthenticationError:
        return False, "The key was rejected by the API"
    except anthropic.RateLimitError:
        return True, "Key accepted (currently rate limited)"
    except anthropic.APIError as e:
        return False, f"Could not verify the key: {e}"
    return True, "Key accepted"


def _confirm(question: str) -> bool:
    return input(f"  {question} [y/N] ").strip().lower() in ("y", "yes")


def interactive_login() -> bool:
    """
    Prompt for an API key, verify it and store it.

    Returns:
        True when a usable key is configured afterwards.
    """
    print("\n  Guild Battle Analyzer - screenshot transcription setup\n")

    current = get_api_key()
    if current:
        print(f"  A key is already configured ({mask_api_key(current)}).")
        if not _confirm("Replace it?"):
            return True

    print("  Create a key at https://console.anthropic.com/settings/keys")
    try:
        api_key = input("  API key: ").strip()
    except (KeyboardInterrupt, EOFError):
        print()
        return False

    if not api_key:
        print("  Nothing entered; no changes made.")
        return False
    if not api_key.startswith("sk-ant-") and not _confirm("That does not look like an Anthropic key. Use it anyway?"):
        return False

    ok, message = validate_api_key(api_key)
    print(f"  {message}")
    if not ok:
        return False

    set_api_key(api_key)
    print(f"  Saved to {get_config_path()}")
    return True

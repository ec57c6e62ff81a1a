"""
Persistent storage for the local configuration document.

This module manages the file:

    buaa-iclass-config.json   (relative to the current working directory)

Lifecycle:
- loaded once when the CLI starts
- mutated in place by the command handlers
- written back exactly once, at the end of the run

A missing or broken file never stops the CLI: it silently starts from an
empty Config. The load result still says which case happened, so callers
that want to be stricter can check it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from iclass.model import Config

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "buaa-iclass-config.json"

LOADED = "loaded"
MISSING = "missing"
CORRUPT = "corrupt"


@dataclass
class ConfigLoad:
    """
    Result of load_config(): the config plus how it was obtained.
    """

    config: Config
    status: str

    @property
    def from_disk(self) -> bool:
        return self.status == LOADED


def default_config_path() -> Path:
    """
    Return the default path of the config file.

    Using a function instead of a constant makes testing easier,
    because tests can override the path.
    """
    return Path.cwd() / CONFIG_FILENAME


def load_config(path: str | Path | None = None) -> ConfigLoad:
    """
    Load the config document.

    Missing file -> default Config, status "missing".
    Unreadable/invalid JSON or wrong structure -> default Config, status "corrupt".
    """
    config_path = Path(path) if path is not None else default_config_path()

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return ConfigLoad(Config(), MISSING)

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        config = Config.from_dict(data)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, TypeError, ValueError) as exc:
        logger.debug("Ignoring unusable config at %s: %s", config_path, exc)
        return ConfigLoad(Config(), CORRUPT)

    return ConfigLoad(config, LOADED)


def apply_partial(
    config: Config,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Config:
    """
    Overwrite only the fields the caller supplied. None means "keep".
    """
    if username is not None:
        config.username = username
    if password is not None:
        config.password = password
    if user_id is not None:
        config.user_id = user_id
    return config


def remove_course(config: Config, course_id: str) -> int:
    """
    Drop every cached course with the given id. Returns how many were removed.
    """
    before = len(config.courses)
    config.courses = [c for c in config.courses if c.id != course_id]
    return before - len(config.courses)


def save_config(config: Config, path: str | Path | None = None) -> None:
    """
    Write the full config, replacing whatever is on disk.

    Creates parent directories if needed.
    """
    config_path = Path(path) if path is not None else default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_path.write_text(json.dumps(config.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved config to %s", config_path)

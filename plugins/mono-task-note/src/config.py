"""
Service configuration read from the environment.

    VAULT_ROOT      vault directory (required)
    EXCLUDE_DIRS    comma-separated directory names to skip
    DONE_AT_FORMAT  moment.js-style pattern for done_at (empty → default).
                    Supported tokens: YYYY YY MMMM MMM MM M DDDD DDD Do DD D
                    dddd ddd dd d HH H hh h mm m ss s SSS A a ZZ Z X x and
                    [literal]. Other moment tokens (Q, W, k, E, gggg, ...)
                    are written as text; server.py logs a warning for them.
    POLL_INTERVAL   watcher polling interval in seconds
    API_ENABLED     start the REST API ("true"/"1"/"yes")
    API_PORT        REST API port
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Set

from utils.dates import DEFAULT_DONE_AT_FORMAT

DEFAULT_EXCLUDE_DIRS = ".git,.obsidian,node_modules,.trash"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_API_PORT = 9400


class ConfigError(ValueError):
    """The environment does not describe a usable configuration."""


def _parse_exclude_dirs(raw: str) -> Set[str]:
    """Parse a comma-separated list of directory names to exclude."""
    return {part.strip() for part in raw.split(",") if part.strip()}


@dataclass
class Settings:
    vault_root: Optional[Path] = None
    exclude_dirs: Set[str] = field(default_factory=lambda: _parse_exclude_dirs(DEFAULT_EXCLUDE_DIRS))
    done_at_format: str = ""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    api_enabled: bool = True
    api_port: int = DEFAULT_API_PORT

    @property
    def effective_done_at_format(self) -> str:
        return self.done_at_format or DEFAULT_DONE_AT_FORMAT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigError: VAULT_ROOT is missing or not a directory, or a
                numeric variable does not parse
        """
        env = os.environ if environ is None else environ

        vault_root_env = env.get("VAULT_ROOT", "")
        if not vault_root_env:
            raise ConfigError("VAULT_ROOT environment variable is not set")
        vault_root = Path(vault_root_env)
        if not vault_root.is_dir():
            raise ConfigError(f"VAULT_ROOT does not exist or is not a directory: {vault_root}")

        try:
            poll_interval = float(env.get("POLL_INTERVAL", DEFAULT_POLL_INTERVAL))
            api_port = int(env.get("API_PORT", DEFAULT_API_PORT))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        return cls(
            vault_root=vault_root,
            exclude_dirs=_parse_exclude_dirs(env.get("EXCLUDE_DIRS", DEFAULT_EXCLUDE_DIRS)),
            done_at_format=env.get("DONE_AT_FORMAT", "").strip(),
            poll_interval=poll_interval,
            api_enabled=env.get("API_ENABLED", "true").lower() in ("true", "1", "yes"),
            api_port=api_port,
        )

"""
Time Role Keeper Settings — Process configuration.

Resolved from environment variables (TIMEBOT_ prefix) on top of the class
defaults. The per-guild role configuration lives in the JSON file at
``config_path``, see ``timebot.config.configuration``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger("timebot.config")

# Paths
CONF_DIR = Path("conf")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Time Role Keeper settings, resolved from environment and files."""

    # Files
    config_path: Path = CONF_DIR / "conf.json"
    token_path: Path = CONF_DIR / "token"

    # Reconciliation
    tick_interval: float = 60.0

    # Discord
    command_prefix: str = "."

    # Status API
    api_enabled: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __init__(self):
        config_path = os.getenv("TIMEBOT_CONFIG_PATH")
        if config_path:
            self.config_path = Path(config_path)

        token_path = os.getenv("TIMEBOT_TOKEN_PATH")
        if token_path:
            self.token_path = Path(token_path)

        self.tick_interval = float(os.getenv("TIMEBOT_TICK_INTERVAL", str(self.tick_interval)))
        if self.tick_interval <= 0:
            raise ValueError(f"TIMEBOT_TICK_INTERVAL must be positive, got {self.tick_interval}")
        self.command_prefix = os.getenv("TIMEBOT_COMMAND_PREFIX", self.command_prefix)
        self.api_enabled = _env_bool("TIMEBOT_API_ENABLED", self.api_enabled)
        self.api_host = os.getenv("TIMEBOT_API_HOST", self.api_host)
        self.api_port = int(os.getenv("TIMEBOT_API_PORT", str(self.api_port)))
        self.log_level = os.getenv("TIMEBOT_LOG_LEVEL", self.log_level).upper()

        log_file = os.getenv("TIMEBOT_LOG_FILE")
        if log_file:
            self.log_file = Path(log_file)

    def load_token(self) -> Optional[str]:
        """Load the bot token from env var or the token file."""
        token = os.getenv("TIMEBOT_TOKEN")
        if token:
            return token.strip()

        try:
            return self.token_path.read_text().strip() or None
        except OSError as e:
            logger.error("Failed to read the `%s`-File: %s", self.token_path, e)
            return None

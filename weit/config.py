from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

from weit.paths import get_data_dir

logger = logging.getLogger(__name__)

# Cache TTLs in seconds
SHORT_CACHE_TTL = 60 * 30
CACHE_TTL = 60 * 60 * 2
MEDIUM_CACHE_TTL = 60 * 60 * 24
LONG_CACHE_TTL = (60 * 60 * 24 * 7) + (60 * 30)

SUPIBOT_USER_AGENT = "https://github.com/woranov/yeah-but-weit"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8787


@dataclass
class TwitchCredentials:
    """Client credentials for the Twitch Helix API."""
    client_id: str = ""
    client_secret: str = ""

    # Placeholder values that indicate unconfigured credentials
    _PLACEHOLDER_VALUES = frozenset({
        "",
        "YOUR_TWITCH_CLIENT_ID",
        "YOUR_TWITCH_CLIENT_SECRET",
    })

    def is_configured(self) -> bool:
        """Check if credentials are set (not placeholder values)."""
        return (
            self.client_id not in self._PLACEHOLDER_VALUES
            and self.client_secret not in self._PLACEHOLDER_VALUES
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AppConfig:
    """Service configuration, injected into every component at startup."""
    twitch: TwitchCredentials = field(default_factory=TwitchCredentials)
    admin_token: str = ""
    server_host: str = DEFAULT_HOST
    server_port: int = DEFAULT_PORT
    cache_backend: str = "memory"  # "memory" or "file"
    warm_interval: int = 60 * 60 * 24  # seconds between BTTV top list refreshes, 0 disables
    debug: bool = False

    def to_dict(self) -> dict:
        return {
            "twitch": self.twitch.to_dict(),
            "admin_token": self.admin_token,
            "server_host": self.server_host,
            "server_port": self.server_port,
            "cache_backend": self.cache_backend,
            "warm_interval": self.warm_interval,
            "debug": self.debug,
        }


def get_config_file() -> Path:
    """Get path to configuration file."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "config.json"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AppConfig:
    """Load configuration from file, then apply environment overrides.

    Priority: Environment > User config file > Defaults
    """
    config = AppConfig()
    config_file = get_config_file()

    if config_file.exists():
        try:
            with open(config_file, "r") as f:
                data = json.load(f)

            twitch_data = data.get("twitch", {})
            config.twitch = TwitchCredentials(
                client_id=twitch_data.get("client_id", ""),
                client_secret=twitch_data.get("client_secret", ""),
            )
            config.admin_token = data.get("admin_token", "")
            config.server_host = data.get("server_host", DEFAULT_HOST)
            config.server_port = int(data.get("server_port", DEFAULT_PORT))
            config.cache_backend = data.get("cache_backend", "memory")
            config.warm_interval = int(data.get("warm_interval", config.warm_interval))
            config.debug = bool(data.get("debug", False))

        except (OSError, ValueError) as e:
            logger.error("Error loading config %s: %s", config_file, e)

    env = os.environ
    if env.get("WEIT_TWITCH_CLIENT_ID"):
        config.twitch.client_id = env["WEIT_TWITCH_CLIENT_ID"]
    if env.get("WEIT_TWITCH_CLIENT_SECRET"):
        config.twitch.client_secret = env["WEIT_TWITCH_CLIENT_SECRET"]
    if env.get("WEIT_ADMIN_TOKEN"):
        config.admin_token = env["WEIT_ADMIN_TOKEN"]
    if env.get("WEIT_HOST"):
        config.server_host = env["WEIT_HOST"]
    if env.get("WEIT_PORT"):
        config.server_port = int(env["WEIT_PORT"])
    if env.get("WEIT_CACHE_BACKEND"):
        config.cache_backend = env["WEIT_CACHE_BACKEND"]
    if env.get("WEIT_WARM_INTERVAL"):
        config.warm_interval = int(env["WEIT_WARM_INTERVAL"])
    if env.get("WEIT_DEBUG"):
        config.debug = _env_flag(env["WEIT_DEBUG"])

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to file."""
    config_file = get_config_file()

    try:
        with open(config_file, "w") as f:
            json.dump(config.to_dict(), f, indent=2)
    except OSError as e:
        logger.error("Error saving config %s: %s", config_file, e)


def create_example_config() -> None:
    """Create an example configuration file if none exists."""
    config_file = get_config_file()

    if config_file.exists():
        return

    example_config = AppConfig(
        twitch=TwitchCredentials(
            client_id="YOUR_TWITCH_CLIENT_ID",
            client_secret="YOUR_TWITCH_CLIENT_SECRET",
        ),
    )

    save_config(example_config)
    logger.info("Created example config at: %s", config_file)

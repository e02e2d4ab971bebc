"""
Configuration - how luxsync finds its light and its Slack workspace.

Adapts to:
- Hardware (USB vendor/product ids, reconnect settle delay, poll rate)
- Slack app registration (client id/secret, redirect target)
- Where the session token lives on disk

Client credentials can come from the config file or from the
LUXSYNC_SLACK_CLIENT_ID / LUXSYNC_SLACK_CLIENT_SECRET environment variables.
"""

import json
import logging
import os
import yaml
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Tuple, Optional, Dict, Any

logger = logging.getLogger(__name__)

ENV_CLIENT_ID = "LUXSYNC_SLACK_CLIENT_ID"
ENV_CLIENT_SECRET = "LUXSYNC_SLACK_CLIENT_SECRET"

DEFAULT_CONFIG_PATH = Path("~/.luxsync/config.yaml")
DEFAULT_TOKEN_PATH = "~/.luxsync/session.json"

# Luxafor Flag
LUXAFOR_VENDOR_ID = 0x04D8
LUXAFOR_PRODUCT_ID = 0xF372


@dataclass
class SlackConfig:
    """Slack app registration and API behaviour."""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: str = "luxsync://slack/activate"
    base_url: str = "https://slack.com"
    scope: str = "dnd:write"
    snooze_minutes: int = 60 * 24  # One day, ended explicitly on availability
    timeout: float = 10.0  # seconds, per request

    @property
    def is_configured(self) -> bool:
        """Both client credentials present."""
        return bool(self.client_id) and bool(self.client_secret)


@dataclass
class LightConfig:
    """USB light configuration."""
    vendor_id: int = LUXAFOR_VENDOR_ID
    product_id: int = LUXAFOR_PRODUCT_ID
    settle_delay: float = 2.0  # seconds - device flashes after being plugged in
    poll_interval: float = 1.0  # seconds between USB enumerations
    normal_brightness: float = 1.0
    dimmed_brightness: float = 0.1


@dataclass
class LuxsyncConfig:
    """Complete configuration for luxsync."""
    slack: SlackConfig = field(default_factory=SlackConfig)
    light: LightConfig = field(default_factory=LightConfig)
    token_path: str = DEFAULT_TOKEN_PATH

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "slack": asdict(self.slack),
            "light": asdict(self.light),
            "token_path": self.token_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LuxsyncConfig":
        """Create from dictionary."""
        data = data or {}
        return cls(
            slack=SlackConfig(**data.get("slack", {})),
            light=LightConfig(**data.get("light", {})),
            token_path=data.get("token_path", DEFAULT_TOKEN_PATH),
        )

    @property
    def resolved_token_path(self) -> Path:
        return Path(self.token_path).expanduser()

    def validate(self) -> Tuple[bool, Optional[str]]:
        """Validate configuration values are sensible."""
        light = self.light
        if not (0 <= light.vendor_id <= 0xFFFF) or not (0 <= light.product_id <= 0xFFFF):
            return False, "vendor_id and product_id must be 16-bit values"

        if light.settle_delay < 0:
            return False, "settle_delay must not be negative"

        if light.poll_interval <= 0:
            return False, "poll_interval must be positive"

        for name in ("normal_brightness", "dimmed_brightness"):
            if not (0 <= getattr(light, name) <= 1):
                return False, f"{name} must be 0-1"

        if self.slack.snooze_minutes <= 0:
            return False, "snooze_minutes must be positive"

        if self.slack.timeout <= 0:
            return False, "timeout must be positive"

        if not self.slack.redirect_uri:
            return False, "redirect_uri is required"

        return True, None


class ConfigManager:
    """Manages configuration loading and saving."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config manager.

        Args:
            config_path: Path to config file (default: ~/.luxsync/config.yaml)
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH
        self.config_path = Path(config_path).expanduser()
        self._config: Optional[LuxsyncConfig] = None

    def _is_yaml(self) -> bool:
        return self.config_path.suffix in (".yaml", ".yml")

    def load(self, force_reload: bool = False) -> LuxsyncConfig:
        """Load configuration from file or return defaults."""
        if self._config is not None and not force_reload:
            return self._config

        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = yaml.safe_load(f) if self._is_yaml() else json.load(f)

                self._config = LuxsyncConfig.from_dict(data)

                valid, error = self._config.validate()
                if not valid:
                    logger.warning("Invalid config %s, using defaults: %s", self.config_path, error)
                    self._config = LuxsyncConfig()
            except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
                logger.warning("Error loading config %s, using defaults: %s", self.config_path, e)
                self._config = LuxsyncConfig()
        else:
            self._config = LuxsyncConfig()

        self._apply_environment(self._config)
        return self._config

    @staticmethod
    def _apply_environment(config: LuxsyncConfig) -> None:
        client_id = os.environ.get(ENV_CLIENT_ID)
        client_secret = os.environ.get(ENV_CLIENT_SECRET)
        if client_id:
            config.slack.client_id = client_id
        if client_secret:
            config.slack.client_secret = client_secret

    def save(self, config: Optional[LuxsyncConfig] = None) -> bool:
        """
        Save configuration to file.

        Returns:
            True if saved successfully
        """
        if config is None:
            config = self._config or self.load()

        valid, error = config.validate()
        if not valid:
            logger.error("Cannot save invalid config: %s", error)
            return False

        try:
            data = config.to_dict()
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                if self._is_yaml():
                    yaml.dump(data, f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(data, f, indent=2)

            self._config = config
            return True
        except OSError as e:
            logger.error("Error saving config %s: %s", self.config_path, e)
            return False

    def reload(self) -> LuxsyncConfig:
        """Force reload configuration from file."""
        self._config = None
        return self.load()


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """Get global config manager instance."""
    global _config_manager
    if _config_manager is None or (
        config_path is not None and Path(config_path).expanduser() != _config_manager.config_path
    ):
        _config_manager = ConfigManager(config_path)
    return _config_manager


def get_config() -> LuxsyncConfig:
    """Get current configuration."""
    return get_config_manager().load()

"""
Configuration management for EventKit Gateway.

Loads the alias table and runtime settings from a single JSON file once per
invocation. The file is only written when an alias is added or removed.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

from eventkit_gateway.core.errors import ValidationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "EVENTKIT_GATEWAY_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".eventkit-gateway" / "config.json"


def default_config_path() -> Path:
    """Config path from $EVENTKIT_GATEWAY_CONFIG, else ~/.eventkit-gateway/config.json"""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


class Config:
    """Configuration and alias store for the gateway"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_path: Path to the JSON config file (defaults to default_config_path())
        """
        if config_path is None:
            config_path = default_config_path()

        self.config_path = Path(config_path).expanduser()

        data = self._load_json(self.config_path)
        file_settings = data.get("settings", {})
        aliases = data.get("aliases", {})
        if not isinstance(file_settings, dict):
            raise ValidationError(f"Config file {self.config_path}: 'settings' must be a JSON object")
        if not isinstance(aliases, dict):
            raise ValidationError(f"Config file {self.config_path}: 'aliases' must be a JSON object")

        # Only what the file holds is written back; defaults stay in code
        self._file_settings: Dict[str, Any] = dict(file_settings)
        self.settings = {**self._default_settings(), **file_settings}
        self._aliases: Dict[str, str] = {str(k): str(v) for k, v in aliases.items()}

    def _load_json(self, file_path: Path) -> Dict[str, Any]:
        """Load JSON file or return an empty config if the file doesn't exist"""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No config file at {file_path}, using defaults")
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"Config file {file_path} is not valid JSON: {e}")
        except OSError as e:
            raise ValidationError(f"Config file {file_path} could not be read: {e}")

        if not isinstance(data, dict):
            raise ValidationError(f"Config file {file_path} must contain a JSON object")
        return data

    def _save_json(self) -> None:
        """Save aliases and the file's own settings to the config file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump({"aliases": self._aliases, "settings": self._file_settings}, f, indent=2, sort_keys=True)
        logger.debug(f"Saved config to {self.config_path}")

    def _default_settings(self) -> Dict[str, Any]:
        """Default runtime settings"""
        return {
            "access_timeout": 120.0,
            "geocode_timeout_add": 5.0,
            "geocode_timeout_update": 2.0,
            "reminder_fetch_timeout": 15.0,
            "log_level": "WARNING",
            "log_file": None,
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get a settings value"""
        return self.settings.get(key, default)

    # Aliases

    @property
    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    def resolve_alias(self, name: str) -> str:
        """
        Resolve an alias to a store identifier.

        Args:
            name: Alias name or a raw identifier

        Returns:
            The mapped identifier, or name unchanged when it is not an alias
        """
        resolved = self._aliases.get(name)
        if resolved is not None:
            logger.debug(f"Resolved alias '{name}' -> {resolved}")
            return resolved
        return name

    def set_alias(self, name: str, target_id: str) -> None:
        """Create or replace an alias and save to disk"""
        name = name.strip()
        if not name:
            raise ValidationError("Alias name cannot be empty")
        if not target_id.strip():
            raise ValidationError("Alias target ID cannot be empty")

        self._aliases[name] = target_id.strip()
        self._save_json()

    def remove_alias(self, name: str) -> bool:
        """
        Remove an alias and save to disk.

        Returns:
            True if the alias existed, False otherwise
        """
        if name not in self._aliases:
            return False
        del self._aliases[name]
        self._save_json()
        return True

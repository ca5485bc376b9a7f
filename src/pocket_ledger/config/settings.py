import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).resolve().parents[3]
USER_CONFIG_DIR = Path(os.getenv("LEDGER_CONFIG_DIR", PROJECT_ROOT / "config"))

class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'ledger.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path) as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path) as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_ledger_config() -> Dict[str, Any]:
        """Load the ledger runtime configuration"""
        return ConfigLoader.load_config('ledger.json')


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the ledger services and CLI"""
    database_path: str = "data/ledger.db"
    log_level: str = "INFO"
    raise_on_subscriber_failure: bool = False

    @classmethod
    def load(cls, config: Optional[Dict[str, Any]] = None) -> "Settings":
        """
        Build settings from config, then apply environment overrides.

        Args:
            config: Optional config dict. If None, loads from ConfigLoader.
                Useful for testing with custom configs.

        Environment:
            LEDGER_DB_PATH: overrides database.path
            LEDGER_LOG_LEVEL: overrides logging.level
        """
        if config is None:
            config = ConfigLoader.load_ledger_config()

        database = config.get("database", {})
        logging_config = config.get("logging", {})
        event_bus = config.get("event_bus", {})

        return cls(
            database_path=os.getenv("LEDGER_DB_PATH", database.get("path", cls.database_path)),
            log_level=os.getenv("LEDGER_LOG_LEVEL", logging_config.get("level", cls.log_level)),
            raise_on_subscriber_failure=bool(
                event_bus.get("raise_on_subscriber_failure", cls.raise_on_subscriber_failure)
            ),
        )

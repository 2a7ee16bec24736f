"""Configuration management module."""

import copy
import os
import json
from typing import Dict, Optional, Any
from pathlib import Path

from .security import SecureFileHandler, validate_file_path_input
from .error_handler import ValidationError, ConfigurationError


CABINET_OFFICE_URL = "https://www8.cao.go.jp/chosei/shukujitsu/syukujitsu.csv"

SUPPORTED_LOCALES = ('ja', 'en')


class Config:
    """Configuration management for the application."""

    DEFAULT_CONFIG = {
        'calendar': {
            'locale': 'ja',
            'timezone': 'Asia/Tokyo'
        },
        'official_data': {
            'url': CABINET_OFFICE_URL,
            'timeout': 30
        },
        'output': {
            'directory': './output',
            'filename_template': 'japanese_holidays_{year}.ics'
        }
    }

    # 環境変数 -> 設定キー
    ENV_OVERRIDES = {
        'HOLIDAY_CALENDAR_LOCALE': 'calendar.locale',
        'HOLIDAY_CALENDAR_OUTPUT_DIR': 'output.directory',
        'HOLIDAY_CALENDAR_OFFICIAL_URL': 'official_data.url',
    }

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_file: Path to configuration file (optional)
        """
        self.config_file = config_file or self._get_default_config_path()
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.load_config()

    def _get_default_config_path(self) -> str:
        """Get default configuration file path."""
        return str(Path.home() / '.holiday-calendar' / 'config.json')

    def load_config(self):
        """Load configuration from file and environment variables."""
        if os.path.exists(self.config_file):
            try:
                validated_path = validate_file_path_input(self.config_file, require_exists=True)
                content = SecureFileHandler.read_secure_file(validated_path)
                file_config = json.loads(content)
                if not isinstance(file_config, dict):
                    raise ValidationError("Configuration root must be a JSON object")
                self._merge_config(file_config)
            except (json.JSONDecodeError, IOError, ValidationError) as e:
                print(f"Warning: Failed to load config file {self.config_file}: {e}")

        for env_name, key_path in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                self.set(key_path, value)

    def save_config(self):
        """Save current configuration to file."""
        try:
            validated_path = validate_file_path_input(self.config_file, allow_create=True)
            content = json.dumps(self.config, indent=2, ensure_ascii=False)
            SecureFileHandler.write_secure_file(
                validated_path,
                content,
                permissions=SecureFileHandler.READABLE_FILE_PERMISSIONS
            )
        except (IOError, ValidationError) as e:
            print(f"Warning: Failed to save config file {self.config_file}: {e}")

    def _merge_config(self, new_config: Dict[str, Any]):
        """Merge new configuration into the existing config."""
        def merge_dict(base: Dict, update: Dict):
            for key, value in update.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    merge_dict(base[key], value)
                else:
                    base[key] = value

        merge_dict(self.config, new_config)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value by key path.

        Args:
            key_path: Dot-separated key path (e.g., 'calendar.locale')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config
        try:
            for key in key_path.split('.'):
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value: Any):
        """Set configuration value by key path."""
        keys = key_path.split('.')
        config = self.config

        for key in keys[:-1]:
            if key not in config or not isinstance(config[key], dict):
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    def get_locale(self) -> str:
        """Get the day-name locale.

        Raises:
            ConfigurationError: If the configured locale is not supported
        """
        locale = self.get('calendar.locale', 'ja')
        if locale not in SUPPORTED_LOCALES:
            raise ConfigurationError(
                f"Unsupported locale '{locale}' (supported: {', '.join(SUPPORTED_LOCALES)})",
                config_key='calendar.locale'
            )
        return locale

    def get_official_data_config(self) -> Dict[str, Any]:
        """Get official holiday data source configuration."""
        return self.config.get('official_data', {})

    def get_output_config(self) -> Dict[str, Any]:
        """Get output configuration."""
        return self.config.get('output', {})

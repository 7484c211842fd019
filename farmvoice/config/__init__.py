"""Simple YAML configuration loader for farmvoice."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


class FarmVoiceConfig:
    """farmvoice configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. Defaults to farmvoice.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or "farmvoice.yaml")

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in [('google_cloud', 'credentials_path'),
                             ('logging', 'file_path'),
                             ('recording', 'temp_directory')]:
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recognition.language').

        Args:
            key_path: Dot-separated key path (e.g., 'backend.url')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'recognition.language')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> Optional[str]:
        """Get Google credentials path, or None when speech recognition is not configured."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            return None

        creds_file = Path(creds_path)
        if not creds_file.exists():
            logger.warning(f"Google credentials file not found: {creds_path}; speech recognition disabled")
            return None

        return str(creds_file.absolute())

    def get_backend_settings(self) -> Dict[str, Any]:
        """Get hosted backend connection settings - CRASHES if url or key is missing."""
        url = self.get('backend.url')
        api_key = self.get('backend.api_key') or os.environ.get('FARMVOICE_BACKEND_KEY')
        if not url or not api_key:
            raise ValueError("backend.url and backend.api_key must be configured in farmvoice.yaml")

        return {
            "base_url": url,
            "api_key": api_key,
            "access_token": self.get('backend.access_token'),
            "timeout": self.get('backend.timeout_seconds', 30),
        }

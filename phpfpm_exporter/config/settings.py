"""Environment settings and overrides."""

import copy
import os
from typing import Any, Dict, Optional

from ..exceptions import ConfigurationError


class Settings:
    """Application settings from environment variables."""

    # env var -> (section, key, type)
    OVERRIDES = {
        "PHPFPM_ENDPOINT": ("endpoint", "url", str),
        "PHPFPM_FASTCGI_TIMEOUT_MS": ("endpoint", "timeout_ms", int),
        "PHPFPM_EXPORTER_ADDR": ("server", "listen_address", str),
        "PHPFPM_EXPORTER_PORT": ("server", "port", int),
        "PHPFPM_TELEMETRY_PATH": ("server", "telemetry_path", str),
        "LOG_LEVEL": ("logging", "level", str),
    }

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            str: Environment variable value
        """
        return os.getenv(key, default) or ""

    @staticmethod
    def apply_overrides(raw_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return a copy of raw_config with PHPFPM_* environment overrides applied.

        Raises:
            ConfigurationError: If a numeric override is not an integer
        """
        merged = copy.deepcopy(raw_config)
        for env_var, (section, key, cast) in Settings.OVERRIDES.items():
            value = Settings.get(env_var)
            if not value:
                continue
            try:
                typed = cast(value)
            except ValueError:
                raise ConfigurationError(f"{env_var} must be an integer, got {value!r}")
            merged.setdefault(section, {})
            if merged[section] is None:
                merged[section] = {}
            merged[section][key] = typed
        return merged

"""
Configuration management for the TV split optimizer.
Engine policy constants can be overridden through Streamlit secrets or the environment.
"""

import os
import streamlit as st
from typing import Callable, Optional, Union
from dataclasses import dataclass, fields


@dataclass
class AppConfig:
    """Engine policy constants. Shares and cutoffs are percentages."""
    default_min_channel_share: float = 2.0
    default_expensive_channel_cutoff: float = 20.0
    total_trp: float = 1000.0
    max_iterations: int = 20
    minute_to_point_divisor: float = 3.0
    manual_share_tolerance: float = 0.001
    supported_file_formats: list = None

    def __post_init__(self):
        if self.supported_file_formats is None:
            self.supported_file_formats = ['.xlsx', '.xls', '.csv']


# Setting key -> AppConfig field
SETTING_KEYS = {
    "SPLIT_MIN_CHANNEL_SHARE": "default_min_channel_share",
    "SPLIT_EXPENSIVE_CUTOFF": "default_expensive_channel_cutoff",
    "SPLIT_TOTAL_TRP": "total_trp",
    "SPLIT_MAX_ITERATIONS": "max_iterations",
    "SPLIT_MINUTE_DIVISOR": "minute_to_point_divisor",
}


class ConfigManager:
    """Resolves and caches the engine configuration."""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets, then environment, then defaults."""
        if self._config is not None:
            return self._config

        defaults = AppConfig()
        field_types = {f.name: f.type for f in fields(AppConfig)}
        overrides = {}
        for key, name in SETTING_KEYS.items():
            cast = int if field_types[name] is int else float
            overrides[name] = self._get_number_setting(key, getattr(defaults, name), cast)

        self._config = AppConfig(**overrides)
        return self._config

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return st.secrets[key]
        except Exception:
            # No secrets.toml outside a Streamlit session
            pass

        return os.getenv(key)

    def _get_number_setting(self,
                            key: str,
                            default: Union[int, float],
                            cast: Callable = float) -> Union[int, float]:
        """Numeric setting; malformed values keep the default."""
        value = self._get_secret_or_env(key)
        if value is None:
            return default
        try:
            return cast(value)
        except (TypeError, ValueError):
            return default

    def get_total_trp(self) -> float:
        """Delivered points distributed over the channels of one region."""
        return self.load_config().total_trp

    def is_valid_file_format(self, filename: str) -> bool:
        """Check if a table file has a supported extension."""
        formats = self.load_config().supported_file_formats
        return any(filename.lower().endswith(fmt) for fmt in formats)


# Global configuration manager instance
config_manager = ConfigManager()

# layout_profiler/utils/config.py - Configuration management
"""
Configuration management for the profiler.
Loads configuration from YAML files on top of built-in defaults and checks
the values the capture depends on.
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from layout_profiler.exceptions import ConfigError


OUTPUT_FORMATS = ('stdout', 'json', 'prometheus')

# Millisecond settings that must not be negative
DURATION_KEYS = (
    'navigation.timeout_ms',
    'navigation.idle_time_ms',
    'navigation.idle_timeout_ms',
    'scroll.settle_ms',
    'scroll.idle_time_ms',
    'scroll.idle_timeout_ms',
)


class Config:
    """
    Configuration manager for the profiler.

    Values are addressed with dot-notation keys, e.g. ``scroll.settle_ms``.
    """

    DEFAULT_CONFIG = {
        'browser': {
            'headless': True,
            'cpu_throttling': 4,
            'device': 'Pixel 5',
            'trace_categories': [
                '-*',
                'devtools.timeline',
                'v8.execute',
                'disabled-by-default-devtools.timeline',
                'disabled-by-default-devtools.timeline.frame',
                'toplevel',
                'blink.console',
                'blink.user_timing',
                'latencyInfo',
                'disabled-by-default-devtools.timeline.stack',
                'disabled-by-default-v8.cpu_profiler',
            ],
        },
        'navigation': {
            'timeout_ms': 120000,
            'idle_time_ms': 2000,
            'idle_timeout_ms': 120000,
        },
        'scroll': {
            'enabled': True,
            'settle_ms': 3000,
            'idle_time_ms': 2000,
            'idle_timeout_ms': 2000,
        },
        'reflow': {
            'event_names': ['UpdateLayoutTree'],
            'column_threshold': 120,
        },
        'hydration': {
            'marker_suffix': '.hydrate',
            'excluded_modules': ['next', 'react', 'react-dom', 'scheduler', '@dg/search'],
            'ignored_functions': ['ResizeObserver'],
        },
        'output': {
            'directory': '.',
            'directory_prefix': 'measurements',
            'format': 'stdout',
        },
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to YAML configuration file
        """
        self.logger = logging.getLogger(__name__)
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file:
            self.load_from_file(config_file)

    def load_from_file(self, config_file: str):
        """
        Merge a YAML file over the current values.

        A missing file only logs a warning.

        Raises:
            yaml.YAMLError: If the file is not valid YAML
            ConfigError: If the file does not hold a mapping
        """
        config_path = Path(config_file)

        if not config_path.exists():
            self.logger.warning(f"Config file not found: {config_file}, using defaults")
            return

        try:
            with open(config_path, 'r') as f:
                loaded_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            self.logger.error(f"Failed to load config: {e}")
            raise

        if not isinstance(loaded_config, dict):
            raise ConfigError(f"{config_file} must contain a mapping, not {type(loaded_config).__name__}")

        _merge(self.config, loaded_config)
        self.logger.info(f"Loaded configuration from {config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dot-notation key, or ``default`` if any part is missing"""
        value = self.config
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def set(self, key: str, value: Any):
        """Set a dot-notation key, creating intermediate sections"""
        *sections, name = key.split('.')
        target = self.config
        for section in sections:
            target = target.setdefault(section, {})
        target[name] = value

    def validate(self):
        """
        Check the values a capture run depends on.

        Raises:
            ConfigError: On the first invalid value
        """
        export_format = self.get('output.format')
        if export_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {export_format!r}")

        throttling = self.get('browser.cpu_throttling')
        if not _is_number(throttling) or throttling < 1:
            raise ConfigError(f"browser.cpu_throttling must be a number >= 1, got {throttling!r}")

        for key in DURATION_KEYS:
            value = self.get(key)
            if not _is_number(value) or value < 0:
                raise ConfigError(f"{key} must be a non-negative number of milliseconds, got {value!r}")

        event_names = self.get('reflow.event_names')
        if not isinstance(event_names, list) or not event_names:
            raise ConfigError("reflow.event_names must be a non-empty list")

    def to_dict(self) -> Dict:
        """Deep copy of the full configuration"""
        return copy.deepcopy(self.config)


def _merge(base: Dict, override: Dict):
    """Recursively merge ``override`` into ``base``"""
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

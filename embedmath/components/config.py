"""
Configuration management for embedmath.

Configuration is a nested dictionary of per-method defaults. It can be
adjusted programmatically with overrides or dot-path assignment, and saved
to or loaded from JSON or YAML files.
"""

import json
import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, TextIO, Tuple
from copy import deepcopy
import yaml

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'critical': logging.CRITICAL,
}

DEFAULTS: Dict[str, Dict[str, Any]] = {
    'embedding': {
        'default-method': 'pca',
        'cache-enabled': True
    },

    # Displayed components, 1-based
    'pca': {
        'pc-x': 1,
        'pc-y': 2
    },

    'tsne': {
        'perplexity': 30,
        'iterations': 1000,
        'learning-rate': 200,
        'seed': 42
    },

    'umap': {
        'n-neighbors': 15,
        'min-dist': 0.1,
        'iterations': 500,
        'seed': 42
    },

    'logging': {
        'level': 'warn'
    }
}


def _dump_yaml(data: Dict[str, Any], f: TextIO) -> None:
    yaml.safe_dump(data, f, default_flow_style=False)


def _dump_json(data: Dict[str, Any], f: TextIO) -> None:
    json.dump(data, f, indent=2)


# File extension -> (writer, reader)
FILE_FORMATS: Dict[str, Tuple[Callable[[Dict[str, Any], TextIO], None], Callable[[TextIO], Any]]] = {
    '.json': (_dump_json, json.load),
    '.yaml': (_dump_yaml, yaml.safe_load),
    '.yml': (_dump_yaml, yaml.safe_load),
}


def _file_format(filepath: str):
    ext = os.path.splitext(filepath)[1].lower()
    if ext not in FILE_FORMATS:
        raise ValueError(f"Unsupported file format: {filepath}")
    return FILE_FORMATS[ext]


def merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge updates into a copy of base.

    Nested dictionaries are merged key by key; any other value replaces
    the one in base.

    Args:
        base: Starting dictionary
        updates: Values to apply

    Returns:
        New merged dictionary
    """
    merged = deepcopy(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


class Config:
    """
    Configuration for the embedding engine.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Values merged over the defaults
        """
        self._lock = threading.RLock()
        self._config: Dict[str, Any] = {}
        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Reset to the defaults, then apply overrides.

        Args:
            overrides: Values merged over the defaults
        """
        with self._lock:
            self._config = merge(DEFAULTS, overrides or {})
        logger.debug("Configuration loaded")

    def get(self, path: str, default: Any = None) -> Any:
        """
        Look up a value by dot-separated path.

        Args:
            path: Path such as 'tsne.perplexity'
            default: Returned when the path does not exist

        Returns:
            Configuration value
        """
        with self._lock:
            node: Any = self._config
            for part in path.split('.'):
                if not isinstance(node, dict) or part not in node:
                    return default
                node = node[part]
            return node

    def section(self, name: str) -> Dict[str, Any]:
        """
        Copy of one top-level section.

        Args:
            name: Section name, e.g. 'umap'

        Returns:
            Section dictionary, empty if missing
        """
        value = self.get(name)
        return deepcopy(value) if isinstance(value, dict) else {}

    def set(self, path: str, value: Any) -> None:
        """
        Assign a value by dot-separated path, creating sections as needed.

        Args:
            path: Path such as 'umap.min-dist'
            value: New value
        """
        *parents, leaf = path.split('.')
        with self._lock:
            node = self._config
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = value

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return deepcopy(self._config)

    def save_to_file(self, filepath: str) -> None:
        """
        Write the configuration as JSON or YAML, chosen by extension.

        Args:
            filepath: Destination path
        """
        writer, _ = _file_format(filepath)
        with open(filepath, 'w') as f:
            writer(self.to_dict(), f)

    def load_from_file(self, filepath: str) -> None:
        """
        Reset to the defaults and apply the values from a JSON or YAML file.

        Args:
            filepath: Source path
        """
        _, reader = _file_format(filepath)
        with open(filepath, 'r') as f:
            overrides = reader(f)

        self.load_config(overrides)
        logger.info(f"Configuration loaded from {filepath}")


class ConfigManager:
    """
    Singleton manager for configuration.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the shared configuration.

        Args:
            overrides: If given, reload the shared configuration with them

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared configuration instance."""
        with cls._lock:
            cls._instance = None


def configure_logging(config: Optional[Config] = None) -> None:
    """
    Set up package logging from configuration.

    Args:
        config: Configuration (defaults to the shared instance)
    """
    config = config or ConfigManager.get_config()
    level_name = str(config.get('logging.level', 'warn')).lower()
    level = LOG_LEVELS.get(level_name, logging.WARNING)

    package_logger = logging.getLogger('embedmath')
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    package_logger.setLevel(level)

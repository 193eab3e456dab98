"""
Configuration management for OneiroMetrics.

This module handles loading and accessing configuration values from
config.yaml. Older settings layouts are upgraded once at load time by
migrate_config, so the rest of the code only ever sees the current layout.
"""

import copy
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .models import JournalSettings


CONFIG_VERSION = 2

# Sections that held journal structures in older settings files
LEGACY_JOURNAL_SECTIONS = ("linting", "journalStructure", "journal_structure")

_STRUCTURE_KEY_ALIASES = {
    "date_format": "date_formats",
    "children": "child_callouts",
    "required": "required_fields",
    "optional": "optional_fields",
}

_METRIC_KEY_ALIASES = {
    "min": "min_value",
    "max": "max_value",
    "minimum": "min_value",
    "maximum": "max_value",
}

_JOURNAL_KEY_ALIASES = {
    "user_rules": "rules",
    "isolation": "content_isolation",
}

_RULE_KEY_ALIASES = {
    "is_negative": "negative",
    "is_enabled": "enabled",
}

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class ConfigError(ValueError):
    """Raised when configuration values cannot be turned into settings."""


def snake_case(name: str) -> str:
    """Convert camelCase or kebab-case keys to snake_case."""
    return _CAMEL_BOUNDARY_RE.sub("_", name).replace("-", "_").lower()


def _snake_keys(section: Dict[str, Any], aliases: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    aliases = aliases or {}
    result: Dict[str, Any] = {}
    for key, value in section.items():
        name = snake_case(str(key))
        name = aliases.get(name, name)
        # An explicit current-style key wins over a legacy alias
        if name in result and name == str(key):
            result[name] = value
        else:
            result.setdefault(name, value)
    return result


def _require_mapping(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{where}' must be a mapping, got {type(value).__name__}")
    return value


def _require_list(value: Any, where: str) -> List[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"'{where}' must be a list, got {type(value).__name__}")
    return value


def _migrate_structure(raw: Any, index: int) -> Dict[str, Any]:
    structure = _snake_keys(_require_mapping(raw, f"journal.structures[{index}]"), _STRUCTURE_KEY_ALIASES)
    if isinstance(structure.get("date_formats"), str):
        structure["date_formats"] = [structure["date_formats"]]
    structure.setdefault("id", f"structure-{index + 1}")
    return structure


def _migrate_metric(raw: Any, name: Optional[str], index: int) -> Dict[str, Any]:
    metric = _snake_keys(_require_mapping(raw, f"journal.metrics[{index}]"), _METRIC_KEY_ALIASES)
    if name is not None:
        metric.setdefault("name", name)

    value_range = metric.pop("range", None)
    if value_range is not None:
        value_range = _require_mapping(value_range, f"journal.metrics[{index}].range")
        metric.setdefault("min_value", value_range.get("min"))
        metric.setdefault("max_value", value_range.get("max"))
    return metric


def _migrate_metrics(raw: Any) -> List[Dict[str, Any]]:
    # Older files keyed metrics by name
    if isinstance(raw, dict):
        return [
            _migrate_metric(value, name, index)
            for index, (name, value) in enumerate(raw.items())
        ]
    return [
        _migrate_metric(value, None, index)
        for index, value in enumerate(_require_list(raw, "journal.metrics"))
    ]


def _migrate_journal(raw: Dict[str, Any]) -> Dict[str, Any]:
    journal = _snake_keys(raw, _JOURNAL_KEY_ALIASES)

    if "structures" in journal:
        journal["structures"] = [
            _migrate_structure(structure, index)
            for index, structure in enumerate(_require_list(journal["structures"], "journal.structures"))
        ]

    if "metrics" in journal:
        journal["metrics"] = _migrate_metrics(journal["metrics"])

    if "content_isolation" in journal:
        journal["content_isolation"] = _snake_keys(
            _require_mapping(journal["content_isolation"], "journal.content_isolation")
        )

    if "rules" in journal:
        journal["rules"] = [
            _snake_keys(_require_mapping(rule, f"journal.rules[{index}]"), _RULE_KEY_ALIASES)
            for index, rule in enumerate(_require_list(journal["rules"], "journal.rules"))
        ]

    # Keys with no counterpart in JournalSettings, such as the old "enabled" flag
    known = set(JournalSettings.model_fields)
    return {key: value for key, value in journal.items() if key in known}


def migrate_config(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Upgrade a raw configuration mapping to the current layout.

    The input is not modified. Legacy journal sections are moved to
    ``journal``, camelCase keys become snake_case, metric ranges are
    normalised to ``min_value``/``max_value`` and ``config_version`` is
    stamped.

    Args:
        raw: Mapping as loaded from YAML (None for an empty file)

    Returns:
        Migrated configuration mapping

    Raises:
        ConfigError: If a section has the wrong shape
    """
    config = copy.deepcopy(raw) if raw is not None else {}
    _require_mapping(config, "configuration")

    journal = config.pop("journal", None)
    for legacy in LEGACY_JOURNAL_SECTIONS:
        if legacy in config:
            legacy_section = _require_mapping(config.pop(legacy), legacy)
            journal = {**legacy_section, **(journal or {})}

    # Metric definitions used to live at the top level
    if "metrics" in config:
        journal = _require_mapping(journal, "journal") if journal is not None else {}
        journal = {"metrics": config.pop("metrics"), **journal}

    if journal is not None:
        config["journal"] = _migrate_journal(_require_mapping(journal, "journal"))

    config["config_version"] = CONFIG_VERSION
    return config


def build_journal_settings(journal: Optional[Dict[str, Any]]) -> JournalSettings:
    """
    Validate a migrated journal section.

    Raises:
        ConfigError: If any structure, metric or rule is invalid
    """
    try:
        return JournalSettings(**(journal or {}))
    except ValidationError as e:
        raise ConfigError(f"Invalid journal settings: {e}") from e


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Manages configuration loading and access for OneiroMetrics.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        raw: Dict[str, Any] = {}
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f) or {}

            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration: {e}")
            # Fall back to default configuration
            raw = {}

        # Lists such as journal.structures replace the defaults as a whole
        self._config = _merge(self._get_default_config(), migrate_config(raw))

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "config_version": CONFIG_VERSION,
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "paths": {
                "vault_dir": ".",
                "log_file": "oneirometrics.log"
            },
            "scan": {
                "excluded_notes": [],
                "excluded_subfolders": [".obsidian", ".trash"],
                "max_files": 200
            },
            "performance": {
                "max_workers": 4
            },
            "journal": {
                "structures": [
                    {
                        "id": "dream",
                        "name": "Dream with metrics",
                        "description": "A dream callout with a nested metrics callout",
                        "type": "nested",
                        "root_callout": "dream",
                        "child_callouts": ["metrics"],
                        "metrics_callout": "metrics",
                        "date_formats": ["YYYY-MM-DD", "MMMM D, YYYY"],
                        "required_fields": ["date"]
                    },
                    {
                        "id": "journal-entry",
                        "name": "Journal entry with dream diary",
                        "description": "journal-entry > dream-diary > dream-metrics",
                        "type": "nested",
                        "root_callout": "journal-entry",
                        "child_callouts": ["dream-diary", "dream-metrics"],
                        "metrics_callout": "dream-metrics",
                        "content_callout": "dream-diary",
                        "content_search": "deepest",
                        "date_formats": ["YYYY-MM-DD", "dddd, MMMM D, YYYY"],
                        "required_fields": ["dream-diary", "date"]
                    }
                ],
                "metrics": [
                    {"name": "Sensory Detail", "min_value": 1, "max_value": 5},
                    {"name": "Emotional Recall", "min_value": 1, "max_value": 5},
                    {"name": "Lost Segments", "min_value": 0, "max_value": 10},
                    {"name": "Descriptiveness", "min_value": 1, "max_value": 5},
                    {"name": "Confidence Score", "min_value": 1, "max_value": 5},
                    {"name": "Lucidity Level", "min_value": 1, "max_value": 5}
                ],
                "content_isolation": {
                    "ignore_images": True,
                    "ignore_links": False,
                    "ignore_formatting": True,
                    "ignore_headings": False,
                    "ignore_code_blocks": True,
                    "ignore_comments": True,
                    "custom_ignore_patterns": []
                },
                "rules": []
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "scan.max_files")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("logging.level")  # Returns "INFO"
            config.get("performance.max_workers")  # Returns 4
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def config_version(self) -> int:
        return self.get("config_version", CONFIG_VERSION)

    @property
    def log_level(self) -> str:
        """Get logging level name."""
        return str(self.get("logging.level", "INFO")).upper()

    @property
    def log_format(self) -> str:
        return self.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "oneirometrics.log")

    @property
    def vault_directory(self) -> str:
        """Get vault directory path."""
        return self.get("paths.vault_dir", ".")

    @property
    def excluded_notes(self) -> List[str]:
        return list(self.get("scan.excluded_notes", []) or [])

    @property
    def excluded_subfolders(self) -> List[str]:
        return list(self.get("scan.excluded_subfolders", []) or [])

    @property
    def max_files(self) -> int:
        """Get the maximum number of notes read from the vault."""
        return int(self.get("scan.max_files", 200))

    @property
    def max_workers(self) -> int:
        """Get the number of parser threads."""
        return int(self.get("performance.max_workers", 4))

    @property
    def journal_settings(self) -> JournalSettings:
        """
        Get validated journal settings.

        Raises:
            ConfigError: If the journal section is invalid
        """
        return build_journal_settings(self.get_section("journal"))


_config: Optional[ConfigManager] = None


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """
    Get the global configuration instance.

    The instance is created on first use. Passing a path loads that file
    and replaces the global instance.

    Returns:
        The global ConfigManager instance
    """
    global _config
    if _config is None or config_path is not None:
        _config = ConfigManager(config_path or "config.yaml")
    return _config

"""CEO Discovery Configuration

Configuration loading with environment variable support and sensible defaults.

Environment Variables:
    CEO_DISCOVERY_CONFIG_PATH: Path to config file (default: .ceo/config.yaml in project)
    CEO_DISCOVERY_DATA_DIR: Override data directory (database and log sources)
    CEO_DISCOVERY_LOG_LEVEL: Override logging level

Configuration Schema:
    discovery:
        analysis_window_hours: int - Look-back window for behavioral records (default: 168)
        min_confidence: float - Minimum pattern confidence (default: 0.7)
        budget_min: float - Smallest acceptable proposal cost (default: 100)
        budget_max: float - Largest acceptable proposal cost (default: 500)
        target_roi: float - ROI target recorded on proposals (default: 3.0)
    sources:
        dir: str - Directory holding behavioral log files
        commands / file_operations / coordination / interactions: file names
    treasury:
        start_capital: float - Bootstrap balance (default: 100000)
        burn_rate: float - Spend per hour used for runway (default: 250)
    learning:
        auto_train_threshold: int - Pending examples that trigger retraining (default: 10)
        retraining_interval_hours: int - Scheduled retraining interval (default: 168)
        min_accuracy_improvement: float - Reported improvement threshold (default: 2.0)
        default_epochs: int - Epochs per retraining pass (default: 100)
    logging:
        level: str - Logging level (default: "INFO")
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DATA_DIR_NAME = ".ceo"
CONFIG_FILE_NAME = "config.yaml"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "discovery": {
        "analysis_window_hours": 168,
        "min_confidence": 0.7,
        "budget_min": 100.0,
        "budget_max": 500.0,
        "target_roi": 3.0,
    },
    "sources": {
        "dir": None,  # Defaults to <data_dir>/logs
        "commands": "command-history.log",
        "file_operations": "file-operations.jsonl",
        "coordination": "coordination.jsonl",
        "interactions": "interactions.jsonl",
    },
    "treasury": {
        "start_capital": 100000.0,
        "burn_rate": 250.0,
    },
    "learning": {
        "auto_train_threshold": 10,
        "retraining_interval_hours": 168,
        "min_accuracy_improvement": 2.0,
        "default_epochs": 100,
    },
    "logging": {
        "level": "INFO",
    },
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge override dict into base dict.

    Args:
        base: Base dictionary (defaults)
        override: Override dictionary (user config)

    Returns:
        Merged dictionary with override values taking precedence
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_path(path: str | None, base_dir: Path) -> Path | None:
    """Resolve a path, making relative paths absolute from base_dir."""
    if path is None:
        return None

    path_obj = Path(path)
    if path_obj.is_absolute():
        return path_obj
    return (base_dir / path_obj).resolve()


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"top-level value must be a mapping, got {type(data).__name__}")
    return data


def load_config(
    config_path: str | None = None, project_root: Path | None = None
) -> dict[str, Any]:
    """
    Load configuration from YAML file with environment variable overrides.

    Configuration Loading Order (later overrides earlier):
    1. Default values (DEFAULT_CONFIG)
    2. Config file (from CEO_DISCOVERY_CONFIG_PATH or config_path parameter,
       otherwise the optional <project_root>/.ceo/config.yaml)
    3. Environment variable overrides

    Args:
        config_path: Explicit config file path (overrides CEO_DISCOVERY_CONFIG_PATH)
        project_root: Project directory for relative path resolution

    Returns:
        Merged configuration dictionary. ``paths.data_dir`` and
        ``sources.dir`` are always resolved to absolute paths.

    Raises:
        ConfigurationError: If an explicit config file is invalid or unreadable
    """
    if project_root is None:
        project_root = Path.cwd()
    project_root = Path(project_root)

    config = copy.deepcopy(DEFAULT_CONFIG)

    file_path = config_path or os.environ.get("CEO_DISCOVERY_CONFIG_PATH")

    if file_path:
        resolved_path = _resolve_path(file_path, project_root)
        if resolved_path and resolved_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(resolved_path))
                logger.info(f"Loaded configuration from: {resolved_path}")
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
            except OSError as e:
                raise ConfigurationError(f"Cannot read config file: {e}") from e
        else:
            logger.warning(f"Config file not found (using defaults): {file_path}")
    else:
        default_config_path = project_root / DATA_DIR_NAME / CONFIG_FILE_NAME
        if default_config_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(default_config_path))
                logger.info(f"Loaded configuration from: {default_config_path}")
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML in default config (ignoring): {e}")
            except OSError as e:
                logger.warning(f"Cannot read default config (ignoring): {e}")
        else:
            logger.debug("No config file found, using defaults")

    data_dir_override = os.environ.get("CEO_DISCOVERY_DATA_DIR")
    if data_dir_override:
        config.setdefault("paths", {})["data_dir"] = data_dir_override
        logger.info(f"Data directory override from env: {data_dir_override}")

    log_level_override = os.environ.get("CEO_DISCOVERY_LOG_LEVEL")
    if log_level_override:
        config.setdefault("logging", {})["level"] = log_level_override.upper()

    paths = config.setdefault("paths", {})
    data_dir = _resolve_path(paths.get("data_dir"), project_root)
    if data_dir is None:
        data_dir = project_root / DATA_DIR_NAME
    paths["data_dir"] = str(data_dir)

    sources = config.setdefault("sources", {})
    sources_dir = _resolve_path(sources.get("dir"), project_root)
    sources["dir"] = str(sources_dir if sources_dir else data_dir / "logs")

    return config


def get_data_dir(config: dict[str, Any]) -> Path:
    """Get the data directory (database, default log location) from config."""
    return Path(config["paths"]["data_dir"])


def get_source_paths(config: dict[str, Any]) -> dict[str, Path]:
    """Map each behavioral source kind to its file path.

    Kinds whose file name is empty or null in the config are left out.
    """
    sources = config.get("sources", {})
    base = Path(sources.get("dir") or ".")
    paths = {}
    for kind in ("commands", "file_operations", "coordination", "interactions"):
        name = sources.get(kind)
        if name:
            paths[kind] = _resolve_path(name, base) or base / name
    return paths


# =============================================================================
# Typed sections
# =============================================================================


@dataclass
class DiscoveryConfig:
    """Settings for a discovery session."""

    analysis_window_hours: int = 168
    min_confidence: float = 0.7
    budget_min: float = 100.0
    budget_max: float = 500.0
    target_roi: float = 3.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "DiscoveryConfig":
        section = config.get("discovery", {})
        return cls(
            analysis_window_hours=int(section.get("analysis_window_hours", 168)),
            min_confidence=float(section.get("min_confidence", 0.7)),
            budget_min=float(section.get("budget_min", 100.0)),
            budget_max=float(section.get("budget_max", 500.0)),
            target_roi=float(section.get("target_roi", 3.0)),
        )


@dataclass
class TreasuryConfig:
    """Bootstrap values for a fresh ledger."""

    start_capital: float = 100000.0
    burn_rate: float = 250.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "TreasuryConfig":
        section = config.get("treasury", {})
        return cls(
            start_capital=float(section.get("start_capital", 100000.0)),
            burn_rate=float(section.get("burn_rate", 250.0)),
        )


@dataclass
class OptimizationConfig:
    """Thresholds for the improvement scheduler."""

    auto_train_threshold: int = 10
    retraining_interval_hours: int = 168
    min_accuracy_improvement: float = 2.0
    default_epochs: int = 100

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "OptimizationConfig":
        section = config.get("learning", {})
        return cls(
            auto_train_threshold=int(section.get("auto_train_threshold", 10)),
            retraining_interval_hours=int(
                section.get("retraining_interval_hours", 168)
            ),
            min_accuracy_improvement=float(
                section.get("min_accuracy_improvement", 2.0)
            ),
            default_epochs=int(section.get("default_epochs", 100)),
        )

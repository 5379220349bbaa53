"""
Configuration Manager for Study Tracker.

Central place for runtime constants. Every tunable value is declared here
with its default and can be overridden from config/runtime.yaml.

Usage:
    from core.config_manager import config
    delay = config.ANSWER_DEBOUNCE_MS
"""
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.exceptions import ConfigError
from core.logger import get_logger
from core.paths import CONFIG_DIR

RUNTIME_CONFIG_PATH = CONFIG_DIR / "runtime.yaml"

logger = get_logger("config")


@dataclass
class SystemConfig:
    """
    Runtime configuration with defaults.
    """

    # === Storage ===

    # File name of the JSON store inside the data directory.
    STORE_FILENAME: str = "study_store.json"

    # === Client hints ===

    # Idle time after the last keystroke before a goal answer is saved.
    # Clients collapse rapid edits into one write using this value.
    ANSWER_DEBOUNCE_MS: int = 300

    # === Export ===

    # "md" or "txt"
    DEFAULT_EXPORT_FORMAT: str = "md"

    # Download filenames are derived from titles and cut to this length.
    EXPORT_MAX_FILENAME_LENGTH: int = 80

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _load_runtime_config(path: Optional[Path] = None) -> dict:
    """Load runtime overrides; raise ConfigError on malformed files."""
    target = path if path is not None else RUNTIME_CONFIG_PATH
    if not target.exists():
        return {}

    try:
        with open(target, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as exc:
        raise ConfigError(f"Cannot read runtime config: {exc}", config_path=str(target))

    if not isinstance(data, dict):
        raise ConfigError("Runtime config must be a mapping", config_path=str(target))
    return data


def get_config(path: Optional[Path] = None) -> SystemConfig:
    """
    Build the configuration.

    Priority: runtime.yaml > defaults. A broken runtime.yaml is logged and
    ignored.
    """
    base = SystemConfig()
    try:
        overrides = _load_runtime_config(path)
    except ConfigError as exc:
        logger.warning(exc.get_user_message())
        return base

    for key, value in overrides.items():
        if hasattr(base, key):
            setattr(base, key, value)
        else:
            logger.warning("Unknown config key ignored: %s", key)

    if base.DEFAULT_EXPORT_FORMAT not in {"md", "txt"}:
        logger.warning(
            "Unsupported DEFAULT_EXPORT_FORMAT %r, falling back to 'md'",
            base.DEFAULT_EXPORT_FORMAT,
        )
        base.DEFAULT_EXPORT_FORMAT = "md"

    return base


# Process-wide configuration instance
config = get_config()

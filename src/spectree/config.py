"""
Configuration for spectree.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (spectree.toml)
3. Default values (lowest priority)

Environment variables:
- SPECTREE_CONFIG_FILE: Path to TOML config file
- SPECTREE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- SPECTREE_STRUCTURED_LOGGING: Emit JSON log lines (true/false)
- SPECTREE_ITEM_HEIGHT: Row height in pixels for tree windowing
- SPECTREE_OVERSCAN: Rows rendered beyond each viewport edge
- SPECTREE_DEFAULT_MODEL: Model recorded on normalized stores

Example spectree.toml:

    [logging]
    level = "DEBUG"
    structured = false

    [virtual_tree]
    item_height = 40
    overscan = 3

    [normalizer]
    default_model = "gpt-4o"
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from spectree.core.logging_config import configure_logging
from spectree.core.normalizer import DEFAULT_MODEL
from spectree.core.virtual_tree import ITEM_HEIGHT, OVERSCAN


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = ("spectree.toml", ".spectree.toml")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_positive_int(value: Any, name: str) -> Optional[int]:
    """Parse a positive integer setting; invalid values are logged and dropped."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer value for {name}: {value!r}")
        return None
    if parsed <= 0:
        logger.warning(f"Ignoring non-positive value for {name}: {parsed}")
        return None
    return parsed


def _parse_non_negative_int(value: Any, name: str) -> Optional[int]:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer value for {name}: {value!r}")
        return None
    if parsed < 0:
        logger.warning(f"Ignoring negative value for {name}: {parsed}")
        return None
    return parsed


@dataclass
class VirtualTreeSettings:
    """Windowing parameters for flattened tree rendering.

    Attributes:
        item_height: Fixed row height in pixels
        overscan: Rows rendered beyond each edge of the viewport
    """

    item_height: int = ITEM_HEIGHT
    overscan: int = OVERSCAN

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "VirtualTreeSettings":
        """Create settings from a TOML dict (the [virtual_tree] section)."""
        settings = cls()
        if "item_height" in data:
            parsed = _parse_positive_int(data["item_height"], "virtual_tree.item_height")
            if parsed is not None:
                settings.item_height = parsed
        if "overscan" in data:
            parsed = _parse_non_negative_int(data["overscan"], "virtual_tree.overscan")
            if parsed is not None:
                settings.overscan = parsed
        return settings


@dataclass
class NormalizerSettings:
    default_model: str = DEFAULT_MODEL

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "NormalizerSettings":
        model = data.get("default_model")
        if isinstance(model, str) and model.strip():
            return cls(default_model=model.strip())
        return cls()


@dataclass
class SpecTreeConfig:
    """spectree configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "WARNING"
    structured_logging: bool = True

    virtual_tree: VirtualTreeSettings = field(default_factory=VirtualTreeSettings)
    normalizer: NormalizerSettings = field(default_factory=NormalizerSettings)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "SpecTreeConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("SPECTREE_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in DEFAULT_CONFIG_FILES:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = str(log["level"]).upper()
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "virtual_tree" in data:
            self.virtual_tree = VirtualTreeSettings.from_toml_dict(data["virtual_tree"])

        if "normalizer" in data:
            self.normalizer = NormalizerSettings.from_toml_dict(data["normalizer"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("SPECTREE_LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get("SPECTREE_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        if item_height := os.environ.get("SPECTREE_ITEM_HEIGHT"):
            parsed = _parse_positive_int(item_height, "SPECTREE_ITEM_HEIGHT")
            if parsed is not None:
                self.virtual_tree.item_height = parsed

        if overscan := os.environ.get("SPECTREE_OVERSCAN"):
            parsed = _parse_non_negative_int(overscan, "SPECTREE_OVERSCAN")
            if parsed is not None:
                self.virtual_tree.overscan = parsed

        if model := os.environ.get("SPECTREE_DEFAULT_MODEL"):
            self.normalizer.default_model = model.strip()

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(
            level=self.log_level,
            format="structured" if self.structured_logging else "human",
        )


# Global configuration instance
_config: Optional[SpecTreeConfig] = None


def get_config() -> SpecTreeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SpecTreeConfig.from_env()
    return _config


def set_config(config: Optional[SpecTreeConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _config
    _config = config

"""CLI execution context.

Resolves the effective configuration for a command from the --config and
--log-level options layered over spectree.config.
"""

from typing import Optional

from spectree.config import SpecTreeConfig


class CLIContext:
    """Holds the resolved configuration for one CLI invocation."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        log_level: Optional[str] = None,
        config: Optional[SpecTreeConfig] = None,
    ):
        """Initialize CLI context.

        Args:
            config_file: Explicit TOML path from --config.
            log_level: Log level override from --log-level.
            config: Pre-built configuration (skips file and env loading).
        """
        self._config = config or SpecTreeConfig.from_env(config_file)
        if log_level:
            self._config.log_level = log_level.upper()

    @property
    def config(self) -> SpecTreeConfig:
        return self._config

    @property
    def item_height(self) -> int:
        return self._config.virtual_tree.item_height

    @property
    def overscan(self) -> int:
        return self._config.virtual_tree.overscan

    @property
    def default_model(self) -> str:
        return self._config.normalizer.default_model


def create_context(
    config_file: Optional[str] = None, log_level: Optional[str] = None
) -> CLIContext:
    """Create a CLI context and apply its logging settings."""
    context = CLIContext(config_file=config_file, log_level=log_level)
    context.config.setup_logging()
    return context

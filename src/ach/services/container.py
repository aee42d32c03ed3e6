"""Service container with DI wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ach.plugins.claude_code.plugin import ClaudeCodePlugin
from ach.plugins.codex.plugin import CodexPlugin
from ach.plugins.opencode.plugin import OpenCodePlugin
from ach.plugins.protocols import ToolPlugin
from ach.registry import PluginRegistry
from ach.services.history_service import HistoryService

if TYPE_CHECKING:
    from ach.config import Config

logger = logging.getLogger(__name__)


def builtin_plugins(config: Config) -> list[ToolPlugin]:
    return [
        ClaudeCodePlugin(config.claude_dir),
        CodexPlugin(config.codex_dir),
        OpenCodePlugin(config.opencode_dir),
    ]


def create_registry(config: Config) -> PluginRegistry:
    """Register every enabled builtin adapter whose data exists."""
    registry = PluginRegistry()
    for plugin in builtin_plugins(config):
        if not config.is_enabled(plugin.id):
            logger.debug("Adapter %s disabled", plugin.id)
            continue
        if not plugin.is_data_available():
            logger.info("No %s data found, skipping adapter", plugin.display_name)
            continue
        registry.register(plugin)
    return registry


@dataclass
class ServiceContainer:
    """Holds all application services. Built once at startup, immutable."""

    config: Config
    registry: PluginRegistry
    history_service: HistoryService

    @classmethod
    def create(cls, config: Config) -> ServiceContainer:
        """Factory that wires all dependencies."""
        registry = create_registry(config)
        return cls(config=config, registry=registry, history_service=HistoryService(registry))

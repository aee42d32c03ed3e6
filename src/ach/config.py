"""Configuration for ach."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Config:
    """Where each tool keeps its history, and which adapters are enabled."""

    claude_dir: Path = field(default_factory=lambda: Path.home() / ".claude")
    codex_dir: Path = field(default_factory=lambda: Path.home() / ".codex")
    opencode_dir: Path = field(
        default_factory=lambda: Path.home() / ".local" / "share" / "opencode"
    )
    disabled_plugins: frozenset[str] = frozenset()

    def is_enabled(self, plugin_id: str) -> bool:
        return plugin_id not in self.disabled_plugins

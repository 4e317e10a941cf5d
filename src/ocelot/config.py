"""Ocelot configuration.

OcelotConfig is the central configuration object, frozen after creation.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEVTOOLS_ENV = "OCELOT_DEVTOOLS"


def _devtools_from_env() -> bool:
    return os.environ.get(DEVTOOLS_ENV, "").strip().lower() == "true"


@dataclass(frozen=True, slots=True)
class PluginSpec:
    """A configured plugin.

    Attributes:
        name: Plugin name; node ``internal.owner`` values refer to it.
        resolve: Dotted module path, or a ``.py`` file relative to the site root.
        options: Plugin options passed to every hook as ``options``.

    """

    name: str
    resolve: str
    options: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True, slots=True)
class OcelotConfig:
    """Configuration for an Ocelot site.

    Attributes:
        root: Path to the site root directory. Always resolved to an
              absolute path on construction.
        cache_dir: Directory (relative to root) holding the state snapshot.
        snapshot_name: File name of the persisted store snapshot.
        content_dir: Directory sourced by the built-in filesystem plugin.
        output: Output directory for build artifacts.
        save_debounce: Seconds of quiet before a pending snapshot save runs.
        devtools: Attach the development state inspector to the store.
            Defaults to the ``OCELOT_DEVTOOLS`` environment flag.
        plugins: Configured plugins, in registration order.

    """

    root: Path = field(default_factory=Path.cwd)
    cache_dir: str = ".cache"
    snapshot_name: str = "store-state.json"
    content_dir: str = "content"
    output: Path = field(default_factory=lambda: Path("public"))
    save_debounce: float = 1.0
    devtools: bool = field(default_factory=_devtools_from_env)
    plugins: tuple[PluginSpec, ...] = ()

    def __post_init__(self) -> None:
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())

    @property
    def cache_path(self) -> Path:
        """Absolute path to the cache directory."""
        return self.root / self.cache_dir

    @property
    def snapshot_path(self) -> Path:
        """Absolute path to the persisted store snapshot."""
        return self.cache_path / self.snapshot_name

    @property
    def content_path(self) -> Path:
        """Absolute path to content directory."""
        return self.root / self.content_dir

    @property
    def output_path(self) -> Path:
        """Absolute path to output directory."""
        if self.output.is_absolute():
            return self.output
        return self.root / self.output

"""Load OcelotConfig from ocelot.yaml / ocelot.toml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from ocelot._errors import ConfigError
from ocelot.config import OcelotConfig, PluginSpec

_CONFIG_KEYS = (
    "cache_dir", "snapshot_name", "content_dir", "output",
    "save_debounce", "devtools", "plugins",
)

CONFIG_FILES = ("ocelot.yaml", "ocelot.yml", "ocelot.toml")


def load_config(root: Path, **overrides: object) -> OcelotConfig:
    """Load OcelotConfig from root, optionally merging ocelot.yaml.

    Looks for ocelot.yaml, ocelot.yml, or ocelot.toml in root. If found, loads
    and merges with overrides. Overrides take precedence.

    Raises:
        ConfigError: If a plugin entry is malformed.

    """
    file_config = _read_ocelot_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    if "output" in merged and not isinstance(merged["output"], Path):
        merged["output"] = Path(str(merged["output"]))
    if "plugins" in merged:
        merged["plugins"] = parse_plugin_specs(merged["plugins"])
    if "save_debounce" in merged:
        merged["save_debounce"] = float(merged["save_debounce"])  # type: ignore[arg-type]
    return OcelotConfig(root=root, **merged)  # type: ignore[arg-type]


def parse_plugin_specs(entries: object) -> tuple[PluginSpec, ...]:
    """Normalize plugin entries into PluginSpec objects.

    Accepts ``PluginSpec`` instances, bare strings (module path used as both
    name and resolve target), or mappings with ``name`` / ``resolve`` /
    ``options`` keys.

    """
    if not isinstance(entries, (list, tuple)):
        msg = f"plugins must be a list, got {type(entries).__name__}"
        raise ConfigError(msg)

    specs: list[PluginSpec] = []
    for entry in entries:
        if isinstance(entry, PluginSpec):
            specs.append(entry)
        elif isinstance(entry, str):
            specs.append(PluginSpec(name=entry, resolve=entry))
        elif isinstance(entry, dict):
            resolve = entry.get("resolve") or entry.get("name")
            if not resolve:
                msg = f"plugin entry needs 'resolve' or 'name': {entry!r}"
                raise ConfigError(msg)
            options = entry.get("options") or {}
            if not isinstance(options, dict):
                msg = f"plugin {resolve!r}: options must be a mapping"
                raise ConfigError(msg)
            specs.append(
                PluginSpec(name=str(entry.get("name") or resolve), resolve=str(resolve), options=options)
            )
        else:
            msg = f"unsupported plugin entry: {entry!r}"
            raise ConfigError(msg)
    return tuple(specs)


def _read_ocelot_config(root: Path) -> dict[str, object]:
    """Read ocelot config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("ocelot.yaml", "ocelot.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "ocelot.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_ocelot_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_ocelot_section(data)


def _flatten_ocelot_section(data: dict[str, object]) -> dict[str, object]:
    """Extract ocelot.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("ocelot")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _CONFIG_KEYS:
                result[k] = v
    for k, v in data.items():
        if k != "ocelot" and k in _CONFIG_KEYS:
            result[k] = v
    return result

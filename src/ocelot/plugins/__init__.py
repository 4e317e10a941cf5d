"""Plugins — registry, API runner, and the built-in source and transformer."""

from ocelot.plugins.registry import HOOK_NAMES, Plugin, PluginRegistry, resolve_module
from ocelot.plugins.runner import ACTION_HOOKS, ApiRunner, PluginApi

__all__ = [
    "ACTION_HOOKS",
    "HOOK_NAMES",
    "ApiRunner",
    "Plugin",
    "PluginApi",
    "PluginRegistry",
    "resolve_module",
]

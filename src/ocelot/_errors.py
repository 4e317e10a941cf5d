"""Ocelot error hierarchy.

All ocelot-specific errors inherit from OcelotError for easy catching.
"""


class OcelotError(Exception):
    """Base error for all ocelot operations."""


class ConfigError(OcelotError):
    """Invalid or missing configuration."""


class StoreError(OcelotError):
    """Misuse of the node store (e.g. dispatching from inside a reducer)."""


class NodeValidationError(StoreError):
    """A node handed to an action creator is malformed or not owned by the caller."""


class MissingCapabilityError(OcelotError):
    """A plugin cannot be found or does not expose a required function."""


class PluginError(OcelotError):
    """A plugin failed to resolve, or one of its hooks raised."""


class BuildError(OcelotError):
    """A build phase failed."""


class ContentError(OcelotError):
    """Source content could not be parsed (e.g. malformed frontmatter)."""

"""Tests for ocelot._errors."""

from ocelot._errors import (
    BuildError,
    ConfigError,
    ContentError,
    MissingCapabilityError,
    NodeValidationError,
    OcelotError,
    PluginError,
    StoreError,
)


class TestErrorHierarchy:
    """All ocelot errors inherit from OcelotError."""

    def test_ocelot_error_is_exception(self) -> None:
        assert issubclass(OcelotError, Exception)

    def test_node_validation_error_is_store_error(self) -> None:
        assert issubclass(NodeValidationError, StoreError)

    def test_catch_all_ocelot_errors(self) -> None:
        """All specific errors are catchable via OcelotError."""
        for error_cls in (
            ConfigError,
            StoreError,
            NodeValidationError,
            MissingCapabilityError,
            PluginError,
            ContentError,
            BuildError,
        ):
            try:
                raise error_cls("test")
            except OcelotError:
                pass

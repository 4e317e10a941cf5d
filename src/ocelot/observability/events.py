"""Unified event model for store and build observability.

Defines event types for the node store, the plugin API runner, snapshot
persistence, and build phases.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.
    Snapshot saves are recorded from the debouncer's timer thread.

"""

import time
from dataclasses import dataclass
from typing import Literal, TypeAlias


# ---------------------------------------------------------------------------
# Store events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ActionDispatched:
    """An action passed through the reducers and was emitted.

    Attributes:
        action_type: The action type (also the emitted event name).
        plugin: Name of the plugin that dispatched it, if any.
        node_count: Number of nodes after the action was applied.
        reduce_ms: Time spent in the reducers in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    action_type: str
    plugin: str | None
    node_count: int
    reduce_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class HookInvoked:
    """A plugin hook ran for an action or an API call.

    Attributes:
        plugin: Plugin name.
        hook: Hook name (e.g. ``on_create_node``).
        action_type: Triggering action type, or None for direct API calls.
        duration_ms: Time spent in the hook in milliseconds.
        ok: False if the hook raised.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    plugin: str
    hook: str
    action_type: str | None
    duration_ms: float
    ok: bool
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Persistence events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SnapshotLoaded:
    """The startup snapshot was read (or skipped).

    Attributes:
        path: Snapshot file path.
        restored: True if nodes were restored from it.
        node_count: Number of restored nodes.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    restored: bool
    node_count: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SnapshotSaved:
    """A debounced snapshot save ran.

    Attributes:
        path: Snapshot file path.
        ok: False if the write failed (the failure is not re-raised).
        node_count: Number of nodes written.
        error: Error message when ``ok`` is False.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    ok: bool
    node_count: int
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Build pipeline events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BuildPhase:
    """A build phase finished.

    Attributes:
        phase: Phase name.
        status: Outcome of the phase.
        duration_ms: Time taken in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    phase: Literal["bootstrap", "source", "pages", "page_data", "post_build"]
    status: Literal["ok", "failed"]
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

StackEvent: TypeAlias = (
    ActionDispatched
    | HookInvoked
    | SnapshotLoaded
    | SnapshotSaved
    | BuildPhase
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()

"""Observability — one event model for the store, plugins, and builds.

Aggregates events from:
- **Store**: Dispatched actions and snapshot load/save
- **Plugins**: Hook invocations, with timing and outcome
- **Build**: Phase timing

All events are frozen dataclasses with nanosecond timestamps, safe to
record from the debouncer's timer thread as well as the event loop.

Quick Start:
    >>> from ocelot.observability import StoreCollector, EventLog
    >>> log = EventLog()
    >>> collector = StoreCollector(log)
    >>> # Pass collector to Store(...) and it is shared with the runner

"""

from ocelot.observability.collector import StoreCollector
from ocelot.observability.events import (
    ActionDispatched,
    BuildPhase,
    HookInvoked,
    SnapshotLoaded,
    SnapshotSaved,
    StackEvent,
    now_ns,
)
from ocelot.observability.inspector import InspectedAction, StateInspector
from ocelot.observability.log import EventLog

__all__ = [
    "ActionDispatched",
    "BuildPhase",
    "EventLog",
    "HookInvoked",
    "InspectedAction",
    "SnapshotLoaded",
    "SnapshotSaved",
    "StackEvent",
    "StateInspector",
    "StoreCollector",
    "now_ns",
]

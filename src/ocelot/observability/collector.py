"""Store collector — records store, plugin, and build events into the log.

The store, the API runner, the snapshot layer, and the build pipeline all
share one collector so a single ``EventLog`` answers "what happened, in
which order, and how long did it take".

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from ocelot.observability.events import (
    ActionDispatched,
    BuildPhase,
    HookInvoked,
    SnapshotLoaded,
    SnapshotSaved,
    now_ns,
)
from ocelot.observability.log import EventLog


class StoreCollector:
    """Unified event collector for the data layer.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Store events -----

    def record_action(
        self,
        action_type: str,
        *,
        plugin: str | None = None,
        node_count: int = 0,
        reduce_ms: float = 0.0,
    ) -> None:
        """Record a dispatched action."""
        self._log.append(
            ActionDispatched(
                action_type=action_type,
                plugin=plugin,
                node_count=node_count,
                reduce_ms=reduce_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_hook(
        self,
        plugin: str,
        hook: str,
        *,
        action_type: str | None = None,
        duration_ms: float = 0.0,
        ok: bool = True,
    ) -> None:
        """Record a plugin hook invocation."""
        self._log.append(
            HookInvoked(
                plugin=plugin,
                hook=hook,
                action_type=action_type,
                duration_ms=duration_ms,
                ok=ok,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Persistence events -----

    def record_snapshot_load(self, path: str, *, restored: bool, node_count: int = 0) -> None:
        """Record the startup snapshot read."""
        self._log.append(
            SnapshotLoaded(
                path=path,
                restored=restored,
                node_count=node_count,
                timestamp_ns=now_ns(),
            )
        )

    def record_snapshot_save(
        self,
        path: str,
        *,
        ok: bool,
        node_count: int = 0,
        error: str = "",
    ) -> None:
        """Record a snapshot save attempt."""
        self._log.append(
            SnapshotSaved(
                path=path,
                ok=ok,
                node_count=node_count,
                error=error,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Build events -----

    def record_phase(self, phase: str, *, status: str = "ok", duration_ms: float = 0.0) -> None:
        """Record a finished build phase."""
        self._log.append(
            BuildPhase(
                phase=phase,  # type: ignore[arg-type]
                status=status,  # type: ignore[arg-type]
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

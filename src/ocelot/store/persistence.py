"""Persistence — durable snapshots of the node store.

Only the ``nodes``, ``status``, and ``componentDataDependencies`` slices are
written.  Reading is forgiving (a missing or corrupt snapshot means "start
empty"), writing is fire-and-forget behind a ``Debouncer`` so a burst of
actions produces one save of the latest state.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.store.state import StoreState


def json_default(value: object) -> object:
    """Encode set, path and date values in page data and CLI output.

    The snapshot does not use this: store values are already JSON-native,
    and anything else must fail the save rather than change shape.

    Raises:
        TypeError: For any other type.

    """
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


class SnapshotStore:
    """Reads and writes the store snapshot file.

    Args:
        path: Location of the JSON snapshot (e.g. ``.cache/store-state.json``).

    """

    __slots__ = ("_path",)

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Snapshot file location."""
        return self._path

    def load(self) -> dict[str, Any] | None:
        """Return the parsed snapshot, or None if it is missing or unusable."""
        try:
            raw = self._path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except (OSError, UnicodeDecodeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        return data

    def save(self, state: StoreState) -> int:
        """Write the persisted subset of ``state``.

        The file is written to a temporary sibling and moved into place, so
        a crash mid-write leaves the previous snapshot intact.

        Returns:
            Number of bytes written.

        Raises:
            OSError: If the cache directory or file cannot be written.
            TypeError: If the state holds a value JSON cannot encode.
            ValueError: If the state contains a reference cycle.

        """
        payload = json.dumps(state.to_snapshot(), indent=2)
        data = payload.encode("utf-8")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return len(data)

    def remove(self) -> None:
        """Delete the snapshot file if present."""
        self._path.unlink(missing_ok=True)


class Debouncer:
    """Coalesces rapid triggers into one delayed call with the latest args.

    Each ``trigger`` restarts the quiet window.  The call runs on a timer
    thread once ``wait`` seconds pass without a new trigger.  Calls never
    overlap, and each one takes the arguments pending when it starts, so
    the last call always sees the last trigger.

    Args:
        wait: Quiet window in seconds.
        func: Callable invoked with the most recent trigger arguments.

    """

    def __init__(self, wait: float, func: Callable[..., Any]) -> None:
        self._wait = wait
        self._func = func
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._args: tuple[Any, ...] | None = None

    @property
    def pending(self) -> bool:
        """True if a call is scheduled and has not run yet."""
        with self._lock:
            return self._args is not None

    def trigger(self, *args: Any) -> None:
        """Schedule a call, superseding any pending one."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._args = args
            self._timer = threading.Timer(self._wait, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Run the pending call now on the calling thread.

        Returns:
            True if a call was pending and ran.

        """
        with self._run_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                args, self._args = self._args, None
            if args is None:
                return False
            self._func(*args)
            return True

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._args = None

    def _fire(self) -> None:
        with self._run_lock:
            with self._lock:
                args, self._args = self._args, None
            if args is not None:
                self._func(*args)

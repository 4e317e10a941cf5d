"""File watcher — feeds source changes back into the node store in develop mode.

Monitors the content directory and site configuration:

- Content file created/modified -> re-source its File node
- Content file deleted -> delete its File node (and derived children)
- Config changed -> reported; a restart is required
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change

from ocelot.config_loader import CONFIG_FILES

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ocelot.config import OcelotConfig


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.
        category: What kind of file changed.

    """

    path: Path
    kind: Literal["created", "modified", "deleted"]
    category: Literal["content", "config"]


_CHANGE_KIND_MAP: dict[Change, Literal["created", "modified", "deleted"]] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def categorize_change(path: Path, config: OcelotConfig) -> str | None:
    """Determine the category of a changed file based on its location.

    Returns None for files outside the site, inside the cache or output
    directories, or hidden files.

    """
    try:
        rel = path.relative_to(config.root)
    except ValueError:
        return None

    parts = rel.parts
    if not parts:
        return None

    if len(parts) == 1 and parts[0] in CONFIG_FILES:
        return "config"

    if any(part.startswith(".") for part in parts):
        return None

    try:
        path.relative_to(config.content_path)
    except ValueError:
        return None
    return "content"


class ContentWatcher:
    """Watches the site for file changes.

    Runs watchfiles in a background thread and bridges events to an
    asyncio queue consumed by the develop loop.

    """

    def __init__(self, config: OcelotConfig) -> None:
        self._config = config
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start watching in a background thread.

        Must be called from the event loop that will consume ``changes()``.

        """
        if self.is_running:
            return

        self._loop = asyncio.get_running_loop()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="ocelot-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        """Yield ChangeEvent objects as they occur, until stopped."""
        while self.is_running or not self._queue.empty():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
                yield event
            except TimeoutError:
                if not self.is_running:
                    break

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and hand events to the loop."""
        from watchfiles import watch

        for raw_changes in watch(
            self._config.root,
            stop_event=self._stop_event,
            debounce=300,
            step=100,
        ):
            for change_type, path_str in sorted(raw_changes, key=lambda c: c[1]):
                path = Path(path_str)
                category = categorize_change(path, self._config)
                if category is None:
                    continue

                kind = _CHANGE_KIND_MAP.get(change_type, "modified")
                event = ChangeEvent(path=path, kind=kind, category=category)  # type: ignore[arg-type]
                assert self._loop is not None
                self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

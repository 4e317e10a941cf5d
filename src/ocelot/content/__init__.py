"""Content layer — watching the site's sources for the develop loop."""

from ocelot.content.watcher import ChangeEvent, ContentWatcher, categorize_change

__all__ = [
    "ChangeEvent",
    "ContentWatcher",
    "categorize_change",
]

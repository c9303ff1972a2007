from md_preview.core.watch.watch_event import WatchEvent, WatchEventType
from md_preview.core.watch.watch_loop import WatchFunction, WatchLoop

__all__ = [
    "WatchEvent",
    "WatchEventType",
    "WatchFunction",
    "WatchLoop",
]

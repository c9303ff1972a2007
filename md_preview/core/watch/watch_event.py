from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from watchfiles import Change


class WatchEventType(str, Enum):
    """Kind of filesystem change, independent of the platform notification backend."""

    CREATED = "created"
    WRITTEN = "written"
    REMOVED = "removed"
    RENAMED = "renamed"
    OTHER = "other"


# Only these event types cause a render
RENDER_EVENT_TYPES = frozenset({WatchEventType.CREATED, WatchEventType.WRITTEN})

_CHANGE_TO_EVENT_TYPE = {
    Change.added: WatchEventType.CREATED,
    Change.modified: WatchEventType.WRITTEN,
    Change.deleted: WatchEventType.REMOVED,
}


class WatchEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: WatchEventType
    path: Path

    @classmethod
    def from_change(cls, change: Change, path: str) -> "WatchEvent":
        """Convert a watchfiles change entry.

        watchfiles reports a rename as a removal of the old path and a creation of the
        new one, so an editor saving through a temp file shows up as CREATED.
        """
        return cls(type=_CHANGE_TO_EVENT_TYPE.get(change, WatchEventType.OTHER), path=Path(path))

    @property
    def triggers_render(self) -> bool:
        return self.type in RENDER_EVENT_TYPES

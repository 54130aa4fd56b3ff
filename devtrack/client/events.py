"""Client-side event types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from devtrack.core.datetime_utils import to_rfc3339

DEFAULT_METADATA = "None"
DEFAULT_DURATION = 0
TYPING_METADATA = "User was actively typing"


class Activity(str, Enum):
    """Editor activity kinds."""

    OPEN = "open"
    SAVE = "save"
    FOCUS = "focus"
    TYPING = "typing"


@dataclass(frozen=True)
class ActivityKey:
    """What an activity is about: one file, in one language, project and editor."""

    file: str
    language: str
    project: str
    editor: str


@dataclass(frozen=True)
class ActivityEvent:
    """An observed activity, before ancillary context is resolved."""

    key: ActivityKey
    activity: Activity
    metadata: str | None = None
    duration: int | None = None


@dataclass(frozen=True)
class EventRecord:
    """Fully populated record handed to the persistence boundary."""

    file: str
    activity: str
    language: str
    project: str
    project_path: str
    editor: str
    branch_name: str
    metadata: str
    duration: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Wire form: timestamp as an RFC3339 string."""
        return {
            "file": self.file,
            "activity": self.activity,
            "language": self.language,
            "project": self.project,
            "project_path": self.project_path,
            "editor": self.editor,
            "branch_name": self.branch_name,
            "metadata": self.metadata,
            "duration": self.duration,
            "timestamp": to_rfc3339(self.timestamp),
        }

"""lixian core - wire contracts shared by the server and action modules."""

from lixian.core.models import (
    ActionRequest,
    ActionResponse,
    Aria2Config,
    Aria2Stat,
    Aria2Task,
    TaskStatus,
)

__all__ = [
    "ActionRequest",
    "ActionResponse",
    "Aria2Config",
    "Aria2Stat",
    "Aria2Task",
    "TaskStatus",
]

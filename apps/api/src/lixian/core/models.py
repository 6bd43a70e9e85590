"""Core models for the /action protocol.

The front-end speaks a single JSON envelope:
- request:  {"module": ..., "action": ..., "data": ...}
- response: {"module": ..., "action": ..., "data": ..., "err": ""}

aria2 structures keep the camelCase names the front-end reads.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Envelope
# =============================================================================


class ActionRequest(BaseModel):
    """Request sent by the client to /action."""

    module: str
    action: str
    data: Any = None


class ActionResponse(BaseModel):
    """Response returned from /action. An empty err means success."""

    module: str
    action: str
    data: Any = None
    err: str = ""

    @classmethod
    def for_request(cls, request: ActionRequest) -> "ActionResponse":
        """Start a response that echoes the request's module and action."""
        return cls(module=request.module, action=request.action)

    @property
    def ok(self) -> bool:
        return not self.err


# =============================================================================
# aria2
# =============================================================================


class TaskStatus(str, Enum):
    """Download states reported by aria2."""

    ACTIVE = "active"
    WAITING = "waiting"
    PAUSED = "paused"
    ERROR = "error"
    COMPLETE = "complete"
    REMOVED = "removed"


class Aria2Task(BaseModel):
    """One download as shown in the task tables."""

    model_config = ConfigDict(populate_by_name=True)

    gid: str
    filename: str = ""
    status: str = TaskStatus.WAITING.value
    size: int = 0
    completed_length: int = Field(default=0, alias="completedLength")
    progress: float = 0.0  # 0-100
    speed: int = 0  # bytes/sec
    connections: str = ""


class Aria2Stat(BaseModel):
    """Global speed plus the three task lists."""

    model_config = ConfigDict(populate_by_name=True)

    speed: str = "0B/s"
    active_tasks: list[Aria2Task] = Field(default_factory=list, alias="activeTasks")
    waiting_tasks: list[Aria2Task] = Field(default_factory=list, alias="waitingTasks")
    stoped_tasks: list[Aria2Task] = Field(default_factory=list, alias="stopedTasks")


class Aria2Config(BaseModel):
    """Persisted aria2 connection settings (config/aria2.json)."""

    url: str

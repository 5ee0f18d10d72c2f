"""Broadcast event variants and their wire encoding.

Learn: Events are transient: built by the service layer after a store
write, serialized once by the hub, then dropped. Nothing here is persisted.

Wire format (JSON text frame):
    {"type": "NEW_TASK",    "task": {...}}
    {"type": "UPDATE_TASK", "task": {...}}
    {"type": "DELETE_TASK", "taskId": "..."}

RawRelay is the odd one out: its text goes on the wire untouched.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

NEW_TASK = "NEW_TASK"
UPDATE_TASK = "UPDATE_TASK"
DELETE_TASK = "DELETE_TASK"


@dataclass(frozen=True)
class NewTask:
    task: dict[str, Any]

    def to_wire(self) -> str:
        return json.dumps({"type": NEW_TASK, "task": self.task}, default=str)


@dataclass(frozen=True)
class UpdateTask:
    task: dict[str, Any]

    def to_wire(self) -> str:
        return json.dumps({"type": UPDATE_TASK, "task": self.task}, default=str)


@dataclass(frozen=True)
class DeleteTask:
    task_id: str

    def to_wire(self) -> str:
        return json.dumps({"type": DELETE_TASK, "taskId": self.task_id})


@dataclass(frozen=True)
class RawRelay:
    text: str

    def to_wire(self) -> str:
        return self.text


BroadcastEvent = Union[NewTask, UpdateTask, DeleteTask, RawRelay]

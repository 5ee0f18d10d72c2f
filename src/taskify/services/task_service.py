"""Task service — store mutations followed by a hub broadcast.

Learn: Every mutation is two steps with NO transactional coupling:
1. Write to the store and commit (this is the result the caller gets)
2. Schedule a broadcast of the matching event on the hub

Step 2 is queued on FastAPI's BackgroundTasks, so it runs after the HTTP
response has gone out. A broadcast can't fail the mutation and there is
no rollback: the write is committed the moment step 1 returns.

Results mirror a document store's acknowledgements:
  insert → {"acknowledged": true, "insertedId": "..."}
  update → {"acknowledged": true, "matchedCount": 1, "modifiedCount": 1}
  delete → {"acknowledged": true, "deletedCount": 1}
"""

import math
import uuid
from typing import Any, Optional

import structlog
from fastapi import BackgroundTasks
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.db.models import Task, now_ms
from taskify.errors import InvalidPayloadError, MalformedIdError
from taskify.realtime.events import BroadcastEvent, DeleteTask, NewTask, UpdateTask
from taskify.realtime.hub import BroadcastHub
from taskify.services.payload import reject_non_finite

logger = structlog.get_logger()

# Keys that identify a record; a client can send them back but never change them.
IDENTITY_KEYS = ("id", "_id")


def parse_task_id(raw: str) -> uuid.UUID:
    """Turn a path id into a store id, or raise MalformedIdError."""
    try:
        return uuid.UUID(raw)
    except (ValueError, AttributeError, TypeError):
        raise MalformedIdError(f"'{raw}' is not a valid task id") from None


def extract_order(payload: dict[str, Any]) -> Optional[float]:
    """Validate the `order` field, the only task field the backend reads."""
    if "order" not in payload or payload["order"] is None:
        return None
    value = payload["order"]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPayloadError("'order' must be a number")
    if not math.isfinite(value):
        raise InvalidPayloadError("'order' must be a finite number")
    return float(value)


def _strip_identity(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in IDENTITY_KEYS}


class TaskService:
    """Task CRUD against the store, with best-effort fan-out to the hub."""

    def __init__(
        self,
        db: AsyncSession,
        hub: BroadcastHub,
        background: Optional[BackgroundTasks] = None,
    ):
        self.db = db
        self.hub = hub
        self.background = background

    # ─── Create ──────────────────────────────────────────

    async def create_task(self, payload: dict[str, Any]) -> dict[str, Any]:
        reject_non_finite(payload)
        fields = _strip_identity(payload)
        task = Task(sort_order=extract_order(fields), fields=fields)
        self.db.add(task)
        await self.db.commit()

        logger.info("task.created", task_id=str(task.id))
        await self._announce(NewTask(task.to_document()))
        return {"acknowledged": True, "insertedId": str(task.id)}

    # ─── Read ────────────────────────────────────────────

    async def list_tasks(self) -> list[dict[str, Any]]:
        """All tasks, ascending by order. Unordered tasks go last."""
        result = await self.db.execute(
            select(Task).order_by(
                Task.sort_order.asc().nulls_last(),
                Task.created_at.asc(),
            )
        )
        return [task.to_document() for task in result.scalars().all()]

    # ─── Update ──────────────────────────────────────────

    async def update_task(self, raw_id: str, partial: dict[str, Any]) -> dict[str, Any]:
        """Merge `partial` into the task and stamp lastModified.

        The UPDATE_TASK event carries the submitted fields plus `id` and the
        new `lastModified`, not the full merged record.
        """
        task_id = parse_task_id(raw_id)
        reject_non_finite(partial)
        changes = _strip_identity(partial)
        order = extract_order(changes)
        last_modified = now_ms()

        result = await self.db.execute(
            select(Task).where(Task.id == task_id).with_for_update()
        )
        task = result.scalars().first()
        matched = 0
        if task is not None:
            matched = 1
            task.fields = {**task.fields, **changes}
            if "order" in changes:
                task.sort_order = order
            task.last_modified = last_modified
        await self.db.commit()

        logger.info("task.updated", task_id=raw_id, matched=matched, fields=sorted(changes))
        await self._announce(
            UpdateTask({**changes, "id": str(task_id), "lastModified": last_modified})
        )
        return {"acknowledged": True, "matchedCount": matched, "modifiedCount": matched}

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, raw_id: str) -> dict[str, Any]:
        task_id = parse_task_id(raw_id)
        result = await self.db.execute(delete(Task).where(Task.id == task_id))
        await self.db.commit()
        deleted = result.rowcount or 0

        logger.info("task.deleted", task_id=raw_id, deleted=deleted)
        await self._announce(DeleteTask(str(task_id)))
        return {"acknowledged": True, "deletedCount": deleted}

    # ─── Fan-out ─────────────────────────────────────────

    async def _announce(self, event: BroadcastEvent) -> None:
        """Queue a broadcast to run after the response; inline if no queue."""
        if self.background is not None:
            self.background.add_task(self.hub.broadcast, event)
        else:
            await self.hub.broadcast(event)

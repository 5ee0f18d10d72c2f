"""Task API routes.

Learn: Routes translate HTTP to service calls; the service owns the store
write and the broadcast. Bodies are free-form JSON objects; only `order`
is checked, everything else is stored and echoed back as-is.

Error responses (malformed id, bad `order`, store down) are rendered by
the TaskifyError handler registered in main.py.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.db.engine import get_db, require_store
from taskify.realtime.hub import BroadcastHub, get_hub
from taskify.schemas.results import DeleteResult, InsertResult, UpdateResult
from taskify.services.task_service import TaskService

# Tables are created here on first use if startup couldn't reach the store.
router = APIRouter(dependencies=[Depends(require_store)])


def _task_svc(
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    hub: BroadcastHub = Depends(get_hub),
) -> TaskService:
    return TaskService(db, hub, background)


@router.post("/tasks", response_model=InsertResult, status_code=201)
async def create_task(
    body: dict[str, Any] = Body(...),
    svc: TaskService = Depends(_task_svc),
):
    """Store a new task and announce it as NEW_TASK."""
    return await svc.create_task(body)


@router.get("/tasks")
async def list_tasks(svc: TaskService = Depends(_task_svc)):
    """All tasks, ascending by `order`."""
    return await svc.list_tasks()


@router.put("/tasks/{task_id}", response_model=UpdateResult)
async def update_task(
    task_id: str,
    body: dict[str, Any] = Body(...),
    svc: TaskService = Depends(_task_svc),
):
    """Partially update a task, stamp lastModified, announce UPDATE_TASK."""
    return await svc.update_task(task_id, body)


@router.delete("/tasks/{task_id}", response_model=DeleteResult)
async def delete_task(
    task_id: str,
    svc: TaskService = Depends(_task_svc),
):
    """Delete a task and announce DELETE_TASK. Unknown ids delete nothing."""
    return await svc.delete_task(task_id)

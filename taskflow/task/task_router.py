# taskflow/task/task_router.py

from fastapi import APIRouter, Depends, HTTPException

from taskflow.schemas.comment_schema import CommentRead
from taskflow.schemas.subtask_schema import SubtaskRead
from taskflow.schemas.task_schema import TaskCreate, TaskRead, TaskStatusUpdate, TaskUpdate
from taskflow.storage import Storage, get_storage
from taskflow.task.task_service import TaskService, get_task_service


# ==========================
#  ROUTER
# ==========================
router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)


@router.post("/", response_model=TaskRead, status_code=201)
def create_task(data: TaskCreate, service: TaskService = Depends(get_task_service)):
    return service.create_task(data)


@router.get("/{task_id}", response_model=TaskRead)
def get_task(task_id: int, service: TaskService = Depends(get_task_service)):
    task = service.get_task(task_id)
    if not task:
        raise HTTPException(404, "Task not found")
    return task


@router.patch("/{task_id}", response_model=TaskRead)
def update_task(task_id: int, data: TaskUpdate, service: TaskService = Depends(get_task_service)):
    task = service.update_task(task_id, data)
    if not task:
        raise HTTPException(404, "Task not found")
    return task


@router.patch("/{task_id}/status", response_model=TaskRead)
def update_status(task_id: int, data: TaskStatusUpdate, service: TaskService = Depends(get_task_service)):
    task = service.update_task_status(task_id, data.status)
    if not task:
        raise HTTPException(404, "Task not found")
    return task


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: int, service: TaskService = Depends(get_task_service)):
    if not service.delete_task(task_id):
        raise HTTPException(404, "Task not found")
    return


@router.get("/{task_id}/related", response_model=list[TaskRead])
def get_related_tasks(task_id: int, service: TaskService = Depends(get_task_service)):
    return service.list_by_parent(task_id)


@router.get("/{task_id}/subtasks", response_model=list[SubtaskRead])
def get_subtasks(task_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_subtasks(task_id)


@router.get("/{task_id}/comments", response_model=list[CommentRead])
def get_comments(task_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_comments(task_id)

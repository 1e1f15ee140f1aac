# taskflow/workspace/workspace_router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from taskflow.schemas.task_schema import TaskRead, TaskType
from taskflow.schemas.workspace_schema import WorkspaceCreate, WorkspaceRead, WorkspaceUpdate
from taskflow.storage import Storage, get_storage
from taskflow.task.task_service import TaskService, get_task_service

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


# ==========================
#  CREATE WORKSPACE
# ==========================
@router.post("/", response_model=WorkspaceRead, status_code=201)
def create_workspace(data: WorkspaceCreate, storage: Storage = Depends(get_storage)):
    return storage.create_workspace(data.model_dump())


# ==========================
#  GET ALL WORKSPACES
# ==========================
@router.get("/", response_model=list[WorkspaceRead])
def get_all_workspaces(storage: Storage = Depends(get_storage)):
    return storage.get_workspaces()


# ==========================
#  GET WORKSPACE BY ID
# ==========================
@router.get("/{workspace_id}", response_model=WorkspaceRead)
def get_workspace(workspace_id: int, storage: Storage = Depends(get_storage)):
    workspace = storage.get_workspace(workspace_id)
    if not workspace:
        raise HTTPException(404, "Workspace not found")
    return workspace


# ==========================
#  UPDATE WORKSPACE (PATCH)
# ==========================
@router.patch("/{workspace_id}", response_model=WorkspaceRead)
def update_workspace(
    workspace_id: int,
    data: WorkspaceUpdate,
    storage: Storage = Depends(get_storage),
):
    workspace = storage.update_workspace(workspace_id, data.model_dump(exclude_unset=True))
    if not workspace:
        raise HTTPException(404, "Workspace not found")
    return workspace


# ==========================
#  DELETE WORKSPACE
# ==========================
@router.delete("/{workspace_id}", status_code=204)
def delete_workspace(workspace_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_workspace(workspace_id):
        raise HTTPException(status_code=404, detail="Workspace not found")
    return


# ==========================
#  TASKS OF A WORKSPACE
# ==========================
@router.get("/{workspace_id}/tasks", response_model=list[TaskRead])
def get_workspace_tasks(
    workspace_id: int,
    status: Optional[str] = None,
    task_type: Optional[TaskType] = None,
    service: TaskService = Depends(get_task_service),
):
    if status:
        tasks = service.list_by_workspace_and_status(workspace_id, status)
    elif task_type:
        tasks = service.list_by_workspace_and_type(workspace_id, task_type.value)
    else:
        tasks = service.list_by_workspace(workspace_id)

    if status and task_type:
        tasks = [t for t in tasks if t.task_type == task_type.value]
    return tasks

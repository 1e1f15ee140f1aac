# taskflow/task/subtask_router.py

from fastapi import APIRouter, Depends, HTTPException

from taskflow.schemas.comment_schema import CommentCreate, CommentRead
from taskflow.schemas.subtask_schema import SubtaskCreate, SubtaskRead, SubtaskUpdate
from taskflow.storage import Storage, get_storage

router = APIRouter(tags=["subtasks"])


# --------- Subtasks ----------
@router.post("/subtasks", response_model=SubtaskRead, status_code=201)
def create_subtask(data: SubtaskCreate, storage: Storage = Depends(get_storage)):
    return storage.create_subtask(data.model_dump())


@router.patch("/subtasks/{subtask_id}", response_model=SubtaskRead)
def update_subtask(subtask_id: int, data: SubtaskUpdate, storage: Storage = Depends(get_storage)):
    subtask = storage.update_subtask(subtask_id, data.completed)
    if not subtask:
        raise HTTPException(404, "Subtask not found")
    return subtask


@router.delete("/subtasks/{subtask_id}", status_code=204)
def delete_subtask(subtask_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_subtask(subtask_id):
        raise HTTPException(404, "Subtask not found")
    return


# --------- Comments ----------
@router.post("/comments", response_model=CommentRead, status_code=201, tags=["comments"])
def create_comment(data: CommentCreate, storage: Storage = Depends(get_storage)):
    return storage.create_comment(data.model_dump())


@router.delete("/comments/{comment_id}", status_code=204, tags=["comments"])
def delete_comment(comment_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_comment(comment_id):
        raise HTTPException(404, "Comment not found")
    return

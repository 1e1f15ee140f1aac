# taskflow/epic/epic_router.py

import logging

from fastapi import APIRouter, Depends, HTTPException

from taskflow.epic.documentation_service import (
    DocumentationService,
    DocumentationServiceError,
    DocumentationTimeoutError,
    DocumentationInvalidResponseError,
)
from taskflow.schemas.task_schema import TaskRead, TaskType
from taskflow.task.task_service import TaskService, get_task_service

logger = logging.getLogger("taskflow.epic")

router = APIRouter(prefix="/epics", tags=["epics"])


def get_documentation_service() -> DocumentationService:
    return DocumentationService()


def _load_epic(service: TaskService, epic_id: int) -> TaskRead:
    epic = service.get_task(epic_id)
    if not epic or epic.task_type != TaskType.EPIC.value:
        raise HTTPException(404, "Epic not found")
    return epic


@router.get("/{epic_id}/tasks", response_model=list[TaskRead])
def get_epic_tasks(epic_id: int, service: TaskService = Depends(get_task_service)):
    _load_epic(service, epic_id)
    return service.list_by_epic(epic_id)


@router.post("/{epic_id}/generate-documentation")
def generate_documentation(
    epic_id: int,
    service: TaskService = Depends(get_task_service),
    docs: DocumentationService = Depends(get_documentation_service),
):
    epic = _load_epic(service, epic_id)
    tasks = service.list_by_epic(epic_id)

    payload = {
        "epic": epic.model_dump(),
        "tasks": [
            {
                **t.model_dump(),
                "subtasks": [s.model_dump() for s in service.storage.get_subtasks(t.id)],
            }
            for t in tasks
        ],
    }

    try:
        documentation = docs.generate(payload)
    except DocumentationTimeoutError:
        logger.error("doc_timeout", extra={"epic_id": epic_id, "error_type": "timeout"})
        raise HTTPException(status_code=504, detail="Documentation service timed out, please try again later")
    except DocumentationInvalidResponseError:
        logger.error("doc_invalid_response", extra={"epic_id": epic_id, "error_type": "invalid_response"})
        raise HTTPException(status_code=502, detail="Documentation service produced an invalid response")
    except DocumentationServiceError:
        logger.exception("doc_service_error", extra={"epic_id": epic_id, "error_type": "service_error"})
        raise HTTPException(status_code=502, detail="Documentation service failure")

    # stored directly: generated docs are not a tracked change
    epic = service.storage.update_task(epic_id, {"documentation": documentation})
    service.notifier.epic_documented(epic, len(tasks))

    return {"epic_id": epic_id, "documentation": documentation, "task_count": len(tasks)}

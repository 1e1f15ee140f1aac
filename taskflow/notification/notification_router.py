# taskflow/notification/notification_router.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from taskflow.schemas.notification_schema import NotificationRead, NotificationCreate
from taskflow.storage import Storage, get_storage

router = APIRouter(prefix="/notifications", tags=["notifications"])


# No auth enforcement: the recipient is passed as a query param.
def _require_user_id(user_id: int | None):
    if user_id is None:
        raise HTTPException(status_code=400, detail="user_id is required")


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    user_id: int | None = None,
    limit: int | None = Query(None, ge=1),
    storage: Storage = Depends(get_storage),
):
    _require_user_id(user_id)
    return storage.get_notifications(user_id, limit=limit)


@router.get("/unread", response_model=list[NotificationRead])
def list_unread_notifications(user_id: int | None = None, storage: Storage = Depends(get_storage)):
    _require_user_id(user_id)
    return storage.get_unread_notifications(user_id)


@router.get("/unread_count")
def unread_count(user_id: int | None = None, storage: Storage = Depends(get_storage)):
    _require_user_id(user_id)
    return {"unread": len(storage.get_unread_notifications(user_id))}


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(notification_id: int, storage: Storage = Depends(get_storage)):
    n = storage.get_notification(notification_id)
    if not n:
        raise HTTPException(status_code=404, detail="Notification not found")
    return n


@router.post("/", response_model=NotificationRead, status_code=201)
def create_notification(data: NotificationCreate, storage: Storage = Depends(get_storage)):
    return storage.create_notification(data.model_dump())


@router.post("/read_all")
def mark_all_read(user_id: int | None = None, storage: Storage = Depends(get_storage)):
    _require_user_id(user_id)
    updated = storage.mark_all_notifications_as_read(user_id)
    return {"ok": True, "updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read(notification_id: int, storage: Storage = Depends(get_storage)):
    n = storage.mark_notification_as_read(notification_id)
    if not n:
        raise HTTPException(status_code=404, detail="Notification not found")
    return n


@router.delete("/{notification_id}", status_code=204)
def delete_notification(notification_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_notification(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return

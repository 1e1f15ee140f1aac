# taskflow/auth/user_router.py

from fastapi import APIRouter, Depends, HTTPException

from taskflow.auth.auth_router import hash_password
from taskflow.schemas.user_schema import UserCreate, UserRead
from taskflow.storage import Storage, get_storage

router = APIRouter(prefix="/users", tags=["users"])


# Users are created and read, never updated or deleted.
@router.post("/", response_model=UserRead, status_code=201)
def create_user(data: UserCreate, storage: Storage = Depends(get_storage)):
    if storage.get_user_by_username(data.username):
        raise HTTPException(400, "Username already registered")

    values = data.model_dump()
    values["password"] = hash_password(values["password"])
    return storage.create_user(values)


@router.get("/", response_model=list[UserRead])
def get_all_users(storage: Storage = Depends(get_storage)):
    return storage.get_users()


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, storage: Storage = Depends(get_storage)):
    user = storage.get_user(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user

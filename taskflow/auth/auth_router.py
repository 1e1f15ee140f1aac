# taskflow/auth/auth_router.py

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from taskflow.schemas.user_schema import UserRead
from taskflow.storage import Storage, get_storage

# ================= ENV =================
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env"))

logger = logging.getLogger("taskflow.auth")

SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

if not SECRET_KEY:
    # tokens only identify the caller (no route checks them), a dev key will do
    logger.warning("SECRET_KEY not set, signing tokens with an insecure development key")
    SECRET_KEY = "taskflow-dev-secret"

# ================= SECURITY =================
router = APIRouter(prefix="/auth", tags=["auth"])
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ================= PASSWORDS & TOKENS =================
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def check_password(plain: str, stored_hash: str) -> bool:
    return pwd_context.verify(plain, stored_hash)


def issue_token(user: UserRead, ttl_minutes: int = TOKEN_TTL_MINUTES) -> str:
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes),
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def read_token(token: str) -> dict[str, Any]:
    """Decoded claims; raises 401 for a bad signature, expiry or a missing subject."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        claims["sub"] = int(claims["sub"])
    except (JWTError, KeyError, ValueError):
        raise HTTPException(401, "Invalid or expired token")
    return claims


# ================= SCHEMAS =================
class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


# ================= ROUTES =================
@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, storage: Storage = Depends(get_storage)):
    stored_hash = storage.get_user_password(credentials.username)
    if stored_hash is None or not check_password(credentials.password, stored_hash):
        logger.info("login_rejected", extra={"username": credentials.username})
        raise HTTPException(401, "Invalid credentials")

    user = storage.get_user_by_username(credentials.username)
    logger.info("user_logged_in", extra={"user_id": user.id})
    return LoginResponse(access_token=issue_token(user), user=user)


@router.get("/me", response_model=UserRead)
def who_am_i(token: str = Depends(bearer_scheme), storage: Storage = Depends(get_storage)):
    user = storage.get_user(read_token(token)["sub"])
    if user is None:
        raise HTTPException(404, "User not found")
    return user

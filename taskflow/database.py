# taskflow/database.py

import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Load environment variables
load_dotenv()

# If DATABASE_URL is NOT provided -> in-memory SQLite (the whole store lives in the process)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

def build_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO):
    connect_args = {}
    engine_kwargs = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        # an in-memory database only exists inside one connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool

    return create_engine(url, connect_args=connect_args, echo=echo, **engine_kwargs)

engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Every session shares the one in-memory connection, so only one may be open at a time.
# A plain Lock: FastAPI can finish a yield dependency on another threadpool thread.
store_lock = threading.Lock()

@contextmanager
def locked_session(factory=None):
    """A session that holds the store lock from open to close."""
    factory = factory or SessionLocal
    with store_lock:
        db = factory()
        try:
            yield db
        finally:
            db.close()

def get_db():
    with locked_session() as db:
        yield db

def utcnow() -> datetime:
    # naive UTC, the way SQLite stores DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)

# taskflow/main.py

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

# ---------------- ENV ----------------
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), ".env"))

from taskflow.logging_setup import setup_logging  # noqa: E402

setup_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger("taskflow.main")

# ---------------- DATABASE INIT ----------------
from taskflow.database import engine, locked_session  # noqa: E402
from taskflow.seed import seed_sample_data  # noqa: E402
from taskflow.storage import Storage, create_tables  # noqa: E402

create_tables(engine)

if os.getenv("SEED_SAMPLE_DATA", "true").lower() == "true":
    with locked_session() as db:
        seed_sample_data(Storage(db))

# ---------------- ROUTERS ----------------
from taskflow.auth.auth_router import router as auth_router  # noqa: E402
from taskflow.auth.user_router import router as user_router  # noqa: E402
from taskflow.epic.epic_router import router as epic_router  # noqa: E402
from taskflow.integrations.integration_router import router as integration_router  # noqa: E402
from taskflow.integrations.integration_router import scheduler_service  # noqa: E402
from taskflow.notification.notification_router import router as notification_router  # noqa: E402
from taskflow.task.subtask_router import router as subtask_router  # noqa: E402
from taskflow.task.task_router import router as task_router  # noqa: E402
from taskflow.task.task_service import TaskServiceError  # noqa: E402
from taskflow.workspace.workspace_router import router as workspace_router  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await scheduler_service.stop_email_checker()


app = FastAPI(title="TaskFlow Backend", lifespan=lifespan)

# ---------------- CORS ----------------
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

frontend_origin = os.getenv("FRONTEND_ORIGIN")
if frontend_origin:
    origins.append(frontend_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------- ERRORS ----------------
# validation failure -> 400, service rule -> 400, anything else -> 500
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid data", "errors": jsonable_encoder(exc.errors(include_url=False))},
    )


@app.exception_handler(TaskServiceError)
async def task_service_handler(request: Request, exc: TaskServiceError):
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(Exception)
async def unexpected_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(auth_router, prefix="/api")
app.include_router(user_router, prefix="/api")
app.include_router(workspace_router, prefix="/api")
app.include_router(task_router, prefix="/api")
app.include_router(subtask_router, prefix="/api")
app.include_router(notification_router, prefix="/api")
app.include_router(epic_router, prefix="/api")
app.include_router(integration_router, prefix="/api")


# ---------------- ROOT ----------------
@app.get("/")
def read_root():
    return {"message": "TaskFlow backend running"}

# task_api/main.py
"""FastAPI application for the task manager backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from task_api import __version__, config
from task_api.database import create_db_and_tables, database_connected, get_session
from task_api.errors import FieldError, ServerFault, TaskAPIError, ValidationFailure
from task_api.logging_setup import setup_logging
from task_api.routes.auth import router as auth_router
from task_api.routes.tasks import router as tasks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create database tables on startup."""
    setup_logging(config.LOG_LEVEL)
    create_db_and_tables()
    yield


app = FastAPI(title="Task Manager API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth_router)
app.include_router(tasks_router)


@app.exception_handler(TaskAPIError)
async def task_api_error_handler(request: Request, exc: TaskAPIError) -> JSONResponse:
    if isinstance(exc, ServerFault) and exc.__cause__ is not None and config.DEBUG:
        body = {**exc.to_body(), "error": str(exc.__cause__)}
    else:
        body = exc.to_body()
    return JSONResponse(status_code=exc.status_code, content=body)


def _error_field(err: dict) -> str:
    # Malformed JSON reports the byte offset as its location.
    if err.get("type") == "json_invalid":
        return "body"
    return ".".join(str(part) for part in err.get("loc", ())[1:]) or "body"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and parameters share the validation envelope."""
    errors = [
        FieldError(_error_field(err), err.get("msg", "Invalid value"))
        for err in exc.errors()
    ]
    failure = ValidationFailure(errors)
    return JSONResponse(status_code=failure.status_code, content=failure.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"API endpoint not found: {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = {"success": False, "message": ServerFault.default_message}
    if config.DEBUG:
        body["error"] = str(exc)
    return JSONResponse(status_code=500, content=body)


@app.get("/")
def root(session: Session = Depends(get_session)):
    return {
        "message": "Task Manager API is running",
        "version": __version__,
        "database": "connected" if database_connected(session) else "disconnected",
    }


@app.get("/api/health")
def health_check(session: Session = Depends(get_session)):
    """Health check endpoint."""
    connected = database_connected(session)
    return {
        "status": "OK" if connected else "degraded",
        "database": "connected" if connected else "disconnected",
    }


def serve() -> None:
    """Run the API under uvicorn using the configured host and port."""
    import uvicorn

    setup_logging(config.LOG_LEVEL)
    uvicorn.run("task_api.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    serve()

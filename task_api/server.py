"""HTTP routes for the task API.

Each handler issues its SQL through the shared TaskDatabase and maps the
outcome to a JSON response. Storage errors are logged and answered with a
generic 500 body.
"""

import json
import logging
import os
import re
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional, Union

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .db import DEFAULT_DB_PATH, TaskDatabase
from .models import ErrorResponse, MessageResponse, TaskCreated

logger = logging.getLogger(__name__)

DB_ENV_VAR = "TASK_API_DB"

# sqlite3 raises OverflowError for ints that do not fit in 64 bits.
STORAGE_ERRORS = (sqlite3.Error, OverflowError)

LEADING_INT_RE = re.compile(r"\s*[+-]?[0-9]")


class InvalidBody(Exception):
    """Raised when a JSON request body cannot be parsed into an object or array."""


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=message).model_dump(), status_code=status_code
    )


def get_db(request: Request) -> TaskDatabase:
    """Dependency returning the storage handle opened by the lifespan."""
    return request.app.state.db


async def read_task_fields(request: Request) -> tuple[Any, Any]:
    """Pull title and status out of a JSON body without checking them.

    Bodies not sent as application/json, empty bodies and JSON arrays all
    count as an object with neither field. Any other top-level JSON value
    is rejected.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != "application/json":
        return None, None
    raw = await request.body()
    if not raw.strip():
        return None, None
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidBody(str(e)) from e
    if not isinstance(body, (dict, list)):
        raise InvalidBody(f"top-level {type(body).__name__} is not an object or array")
    if not isinstance(body, dict):
        return None, None
    return body.get("title"), body.get("status")


def create_app(db_path: Optional[Union[str, Path]] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        db_path: SQLite file to use. Defaults to $TASK_API_DB, then tasks.db.
    """
    if db_path is None:
        db_path = os.environ.get(DB_ENV_VAR, DEFAULT_DB_PATH)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Opening errors are not caught: the server must not start without storage.
        app.state.db = TaskDatabase(db_path)
        yield
        logger.info(f"Closing task database {db_path}")
        app.state.db.close()

    app = FastAPI(
        title="Task API",
        description="CRUD and status metrics for tasks stored in SQLite",
        lifespan=lifespan,
    )

    @app.exception_handler(InvalidBody)
    async def invalid_body_handler(request: Request, exc: InvalidBody):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
        return error_response("Invalid JSON", 400)

    @app.post("/tasks", status_code=201)
    async def create_task(request: Request, db: TaskDatabase = Depends(get_db)):
        """Create a task from a {title, status} body."""
        title, status = await read_task_fields(request)
        try:
            task_id = db.create_task(title, status)
        except STORAGE_ERRORS:
            logger.exception("Failed to create task")
            return error_response("Failed to create task", 500)
        return TaskCreated(taskId=task_id).model_dump()

    @app.put("/tasks/{task_id}")
    async def update_task(
        task_id: str, request: Request, db: TaskDatabase = Depends(get_db)
    ):
        """Replace title and status of a task.

        Reports success whether or not a task with that ID exists.
        """
        title, status = await read_task_fields(request)
        try:
            db.update_task(task_id, title, status)
        except STORAGE_ERRORS:
            logger.exception(f"Failed to update task {task_id}")
            return error_response("Failed to update task", 500)
        return MessageResponse(message="Task updated successfully").model_dump()

    @app.get("/tasks")
    async def list_tasks(request: Request, db: TaskDatabase = Depends(get_db)):
        """List one page of tasks (?page=1&pageSize=10)."""
        page = request.query_params.get("page", 1)
        page_size = request.query_params.get("pageSize", 10)
        try:
            tasks = db.list_tasks(page, page_size)
        except STORAGE_ERRORS:
            logger.exception(f"Failed to fetch tasks (page={page}, pageSize={page_size})")
            return error_response("Failed to fetch tasks", 500)
        return [task.model_dump(mode="json") for task in tasks]

    @app.get("/task-metrics")
    async def task_metrics(db: TaskDatabase = Depends(get_db)):
        """Count tasks that are open, in progress and completed."""
        try:
            metrics = db.get_metrics()
        except STORAGE_ERRORS:
            logger.exception("Failed to fetch task metrics")
            return error_response("Failed to fetch task metrics", 500)
        return metrics.model_dump()

    @app.delete("/tasks/{task_id}")
    async def delete_task(task_id: str, db: TaskDatabase = Depends(get_db)):
        """Delete a task by ID.

        The ID must start with an integer. It is bound as sent, so trailing
        garbage such as "12abc" matches no row and yields 404.
        """
        if not LEADING_INT_RE.match(task_id):
            return error_response("Invalid task ID", 400)

        try:
            deleted = db.delete_task(task_id)
        except STORAGE_ERRORS:
            logger.exception(f"Failed to delete task {task_id}")
            return error_response("Failed to delete task", 500)

        if not deleted:
            return error_response("Task not found", 404)
        return MessageResponse(message="Task deleted successfully").model_dump()

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app

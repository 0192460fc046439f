"""Task API - CRUD and status metrics for tasks stored in SQLite."""

from .db import TaskDatabase
from .models import (
    ErrorResponse,
    MessageResponse,
    Task,
    TaskCreated,
    TaskMetrics,
    TaskStatus,
)
from .server import create_app

__all__ = [
    "create_app",
    "TaskDatabase",
    "Task",
    "TaskCreated",
    "TaskMetrics",
    "TaskStatus",
    "MessageResponse",
    "ErrorResponse",
]


def main():
    """Entry point for the task API."""
    from .__main__ import main as run

    run()

"""Pydantic models for the task API."""

from enum import Enum

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Status values counted by the metrics endpoint.

    The status column itself is free text; these are only the categories
    that get reported.
    """

    OPEN = "open"
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"


class Task(BaseModel):
    """A stored task row."""

    id: int = Field(description="Unique task identifier")
    title: str = Field(description="Task title")
    status: str = Field(description="Current status")
    created_at: str = Field(
        description="Creation timestamp as stored, 'YYYY-MM-DD HH:MM:SS' in UTC"
    )


class TaskCreated(BaseModel):
    """Response body for a created task."""

    message: str = Field(default="Task created successfully")
    taskId: int = Field(description="ID assigned by the database")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class TaskMetrics(BaseModel):
    """Task counts per recognized status."""

    open_tasks: int = Field(default=0, description="Tasks with status 'open'")
    inprogress_tasks: int = Field(
        default=0, description="Tasks with status 'inprogress'"
    )
    completed_tasks: int = Field(
        default=0, description="Tasks with status 'completed'"
    )

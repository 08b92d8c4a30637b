from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginIn(BaseModel):
    email: str
    password: str


class ProjectIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class TaskIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    project_id: Optional[str] = Field(default=None, alias="project")
    description: Optional[str] = None
    status: str = "todo"
    priority: str = "medium"
    assignee_id: Optional[str] = Field(default=None, alias="assignee")
    start_date: Optional[date] = Field(default=None, alias="startDate")
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    estimated_hours: float = Field(default=0, alias="estimatedHours")
    labels: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Editable payload fields. Column position changes go through /reorder or PATCH."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[str] = Field(default=None, alias="assignee")
    start_date: Optional[date] = Field(default=None, alias="startDate")
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    estimated_hours: Optional[float] = Field(default=None, alias="estimatedHours")
    actual_hours: Optional[float] = Field(default=None, alias="actualHours")
    labels: Optional[List[str]] = None
    is_archived: Optional[bool] = Field(default=None, alias="isArchived")


class StatusChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId", min_length=1)
    status: str = Field(min_length=1)


class ReorderIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId", min_length=1)
    source_status: str = Field(alias="sourceStatus", min_length=1)
    destination_status: str = Field(alias="destinationStatus", min_length=1)
    new_order: int = Field(alias="newOrder", ge=0)


class CompactIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="project", min_length=1)
    status: str = Field(min_length=1)


class CommentIn(BaseModel):
    text: Optional[str] = None

from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    Float,
    Text,
    Index,
)
from sqlalchemy.orm import relationship

from .db import Base


STATUSES = ("todo", "in-progress", "review", "done")
PRIORITIES = ("low", "medium", "high", "urgent")


def utcnow():
    # helper so SQLAlchemy gets a callable
    return datetime.utcnow()


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_archived = Column(Boolean, default=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, default="todo", nullable=False)  # todo/in-progress/review/done
    priority = Column(String, default="medium", nullable=False)  # low/medium/high/urgent

    # dense 0..n-1 within (project_id, status); only taskboard.reorder writes it after creation
    order = Column(Integer, default=0, nullable=False)

    assignee_id = Column(String, ForeignKey("users.id"), nullable=True)
    created_by_id = Column(String, ForeignKey("users.id"), nullable=False)

    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    estimated_hours = Column(Float, default=0)
    actual_hours = Column(Float, default=0)

    # comma-separated list, e.g. "frontend,bug"
    labels = Column(Text, nullable=True)

    is_archived = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    assignee = relationship("User", foreign_keys=[assignee_id])
    project = relationship("Project")
    comments = relationship(
        "TaskComment",
        order_by="TaskComment.created_at",
        cascade="all, delete-orphan",
    )

    # no unique constraint on the column position: bulk shifts pass through duplicates mid-statement
    __table_args__ = (
        Index("ix_tasks_column", "project_id", "status", "order"),
    )


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(String, primary_key=True)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")

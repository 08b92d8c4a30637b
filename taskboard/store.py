from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StoreError
from .models import Project, Task, utcnow


log = logging.getLogger("taskboard.store")


class TaskStore:
    """Task persistence used by the reindexer.

    Every column query is scoped to ``(project_id, status)``. Nothing here
    commits on its own; callers wrap a sequence of calls in ``transaction()``.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as ex:
            self.db.rollback()
            log.error("task store failure, rolled back: %s", ex)
            raise StoreError("Task store operation failed", error=str(ex)) from ex
        except Exception:
            self.db.rollback()
            raise

    def lock_project(self, project_id: str) -> None:
        """Row-lock the project so shifts on any of its columns run one at a time.

        Held until the enclosing transaction ends. Also covers empty columns,
        which have no task rows to lock. No-op on SQLite.
        """
        self.db.query(Project.id).filter(Project.id == project_id).with_for_update().first()

    def get_by_id(self, task_id: str, lock: bool = False) -> Optional[Task]:
        q = self.db.query(Task).filter(Task.id == task_id)
        if lock:
            q = q.with_for_update().populate_existing()
        return q.first()

    def count_in_column(self, project_id: str, status: str) -> int:
        return (
            self.db.query(func.count(Task.id))
            .filter(Task.project_id == project_id, Task.status == status)
            .scalar()
        ) or 0

    def column(self, project_id: str, status: str) -> List[Task]:
        """Tasks of one column, by order; ties go to the most recently updated."""
        return (
            self.db.query(Task)
            .filter(Task.project_id == project_id, Task.status == status)
            .order_by(Task.order.asc(), Task.updated_at.desc(), Task.created_at.asc())
            .all()
        )

    def shift(
        self,
        project_id: str,
        status: str,
        delta: int,
        *,
        gt: Optional[int] = None,
        gte: Optional[int] = None,
        lt: Optional[int] = None,
        lte: Optional[int] = None,
    ) -> int:
        """Add ``delta`` to ``order`` for every task in the column within the bounds.

        Returns the number of rows touched.
        """
        q = self.db.query(Task).filter(Task.project_id == project_id, Task.status == status)
        if gt is not None:
            q = q.filter(Task.order > gt)
        if gte is not None:
            q = q.filter(Task.order >= gte)
        if lt is not None:
            q = q.filter(Task.order < lt)
        if lte is not None:
            q = q.filter(Task.order <= lte)
        return q.update(
            {Task.order: Task.order + delta, Task.updated_at: utcnow()},
            synchronize_session=False,
        )

    def save(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

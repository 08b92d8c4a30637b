"""Dense per-column ordering of tasks.

A column is every task sharing ``(project_id, status)``. Within a column the
``order`` values are always exactly ``0..n-1``. Each public operation runs in
a single store transaction, so a failure part-way through a shift sequence is
rolled back instead of leaving a gapped or duplicated column behind.
"""
from __future__ import annotations

import logging

from .errors import NotFoundError, ValidationError
from .models import STATUSES, Task, utcnow
from .store import TaskStore


log = logging.getLogger("taskboard.reorder")


def _check_status(status: str) -> str:
    if status not in STATUSES:
        raise ValidationError(f"Invalid status: {status}", error=f"expected one of {', '.join(STATUSES)}")
    return status


def _stamp_completion(task: Task, status: str) -> None:
    if status == "done" and not task.completed_at:
        task.completed_at = utcnow()
    elif status != "done" and task.completed_at:
        task.completed_at = None


class TaskReindexer:
    def __init__(self, store: TaskStore):
        self.store = store

    def place_at_end(self, status: str, project_id: str) -> int:
        """Next free tail slot of a column, i.e. its current size."""
        _check_status(status)
        with self.store.transaction():
            return self.store.count_in_column(project_id, status)

    def append(self, task: Task) -> Task:
        """Persist a new task at the tail of its column."""
        _check_status(task.status)
        with self.store.transaction():
            self.store.lock_project(task.project_id)
            task.order = self.store.count_in_column(task.project_id, task.status)
            _stamp_completion(task, task.status)
            self.store.save(task)
        return task

    def _lock_task(self, task_id: str) -> Task:
        # project first, then the task row re-read under lock
        task = self.store.get_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        self.store.lock_project(task.project_id)
        task = self.store.get_by_id(task_id, lock=True)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _relocate(self, task: Task, destination_status: str, new_order) -> None:
        """Shift both columns and place ``task``. ``new_order=None`` means the tail."""
        project_id = task.project_id
        old_status = task.status
        old_order = task.order

        tail = self.store.count_in_column(project_id, destination_status)
        if old_status == destination_status:
            tail -= 1
        if new_order is None:
            new_order = tail
        elif new_order > tail:
            log.warning("move %s: newOrder %s clamped to %s", task.id, new_order, tail)
            new_order = tail

        if old_status != destination_status:
            self.store.shift(project_id, destination_status, 1, gte=new_order)

            task.status = destination_status
            task.order = new_order
            _stamp_completion(task, destination_status)
            task.updated_at = utcnow()
            self.store.save(task)

            self.store.shift(project_id, old_status, -1, gt=old_order)
        elif old_order != new_order:
            if old_order < new_order:
                self.store.shift(project_id, old_status, -1, gt=old_order, lte=new_order)
            else:
                self.store.shift(project_id, old_status, 1, gte=new_order, lt=old_order)

            task.order = new_order
            task.updated_at = utcnow()
            self.store.save(task)

        log.info(
            "moved task %s %s@%s -> %s@%s",
            task.id, old_status, old_order, destination_status, new_order,
        )

    def move(self, task_id: str, source_status: str, destination_status: str, new_order: int) -> Task:
        """Relocate a task to ``new_order`` within ``destination_status``.

        The source column and old position are read from the locked task row.
        ``source_status`` is only checked against it. ``new_order`` beyond the
        tail is clamped to the tail.
        """
        _check_status(source_status)
        _check_status(destination_status)
        if new_order < 0:
            raise ValidationError("newOrder must be a non-negative integer", error=str(new_order))

        with self.store.transaction():
            task = self._lock_task(task_id)
            if task.status != source_status:
                log.warning(
                    "move %s: caller sourceStatus=%s but stored status=%s; using stored",
                    task_id, source_status, task.status,
                )
            self._relocate(task, destination_status, new_order)

        return task

    def set_status(self, task_id: str, status: str) -> Task:
        """Move a task to the tail of another column (no-op if already there)."""
        _check_status(status)
        with self.store.transaction():
            task = self._lock_task(task_id)
            if task.status != status:
                self._relocate(task, status, None)
        return task

    def remove(self, task_id: str) -> None:
        """Delete a task and close the gap it leaves in its column."""
        with self.store.transaction():
            task = self._lock_task(task_id)
            project_id, status, old_order = task.project_id, task.status, task.order
            self.store.delete(task)
            self.store.shift(project_id, status, -1, gt=old_order)
            log.info("removed task %s from %s@%s", task_id, status, old_order)

    def compact(self, project_id: str, status: str) -> int:
        """Renumber a column to 0..n-1, keeping current order and breaking ties by recency.

        Idempotent. Returns how many tasks changed position.
        """
        _check_status(status)
        changed = 0
        with self.store.transaction():
            self.store.lock_project(project_id)
            for position, task in enumerate(self.store.column(project_id, status)):
                if task.order != position:
                    task.order = position
                    changed += 1
        if changed:
            log.warning("compacted %s/%s: %d tasks renumbered", project_id, status, changed)
        return changed

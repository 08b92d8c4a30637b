from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4
import logging
import traceback

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .config import settings
from .db import engine, Base, get_db
from .errors import PortalError, NotFoundError, StoreError, ValidationError
from .models import User, Project, Task, TaskComment, PRIORITIES
from .schemas import (
    LoginIn,
    ProjectIn,
    TaskIn,
    TaskUpdate,
    StatusChange,
    ReorderIn,
    CompactIn,
    CommentIn,
)
from .security import verify_password
from .auth import get_current_user, current_user, login_user, logout_user
from .seed import ensure_admin_user
from .store import TaskStore
from .reorder import TaskReindexer


log = logging.getLogger("taskboard")
logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Taskboard API")
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    body = {"message": exc.message}
    if exc.error:
        body["error"] = exc.error
    return JSONResponse(body, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"message": "Missing required fields", "error": str(exc.errors())},
        status_code=400,
    )


def utcnow() -> datetime:
    return datetime.utcnow()


def _log_exception(prefix: str, ex: Exception) -> None:
    log.error("%s: %s", prefix, ex)
    log.error(traceback.format_exc())


def _clean_str(v) -> str:
    return (v or "").strip()


def _commit(db: Session, prefix: str) -> None:
    try:
        db.commit()
    except Exception as ex:
        db.rollback()
        _log_exception(prefix, ex)
        raise StoreError(f"{prefix} failed", error=str(ex)) from ex


def _reindexer(db: Session) -> TaskReindexer:
    return TaskReindexer(TaskStore(db))


def _norm_priority(v: Optional[str]) -> str:
    v = _clean_str(v).lower() or "medium"
    if v not in PRIORITIES:
        raise ValidationError(f"Invalid priority: {v}")
    return v


def _norm_labels(labels):
    if not labels:
        return None
    seen = set()
    out = []
    for raw in labels:
        for p in str(raw).replace(";", ",").split(","):
            p = p.strip()
            if p and p.lower() not in seen:
                seen.add(p.lower())
                out.append(p)
    return ",".join(out) or None


def _check_assignee(db: Session, assignee_id: Optional[str]) -> Optional[str]:
    assignee_id = _clean_str(assignee_id) or None
    if assignee_id and db.get(User, assignee_id) is None:
        raise ValidationError("Unknown assignee", error=assignee_id)
    return assignee_id


def _iso(v) -> Optional[str]:
    return v.isoformat() if v else None


def _user_out(u: User) -> dict:
    return {"id": u.id, "email": u.email, "name": u.name, "avatar": u.avatar}


def _project_out(p: Project) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "isArchived": bool(p.is_archived),
        "createdAt": _iso(p.created_at),
    }


def _comment_out(c: TaskComment) -> dict:
    user = None
    if c.user is not None:
        user = {"id": c.user.id, "name": c.user.name, "avatar": c.user.avatar}
    return {"id": c.id, "user": user, "text": c.text, "createdAt": _iso(c.created_at)}


def _task_out(t: Task) -> dict:
    assignee = None
    if t.assignee is not None:
        assignee = {"id": t.assignee.id, "name": t.assignee.name, "avatar": t.assignee.avatar}
    return {
        "id": t.id,
        "project": t.project_id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "order": t.order,
        "assignee": assignee,
        "createdBy": t.created_by_id,
        "startDate": _iso(t.start_date),
        "dueDate": _iso(t.due_date),
        "estimatedHours": t.estimated_hours,
        "actualHours": t.actual_hours,
        "labels": t.labels.split(",") if t.labels else [],
        "isArchived": bool(t.is_archived),
        "completedAt": _iso(t.completed_at),
        "createdAt": _iso(t.created_at),
        "updatedAt": _iso(t.updated_at),
        "comments": [_comment_out(c) for c in t.comments],
    }


def _get_task(db: Session, task_id: str) -> Task:
    t = db.get(Task, task_id)
    if not t:
        raise NotFoundError("Task not found")
    return t


@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)

    from .db import SessionLocal
    db = SessionLocal()
    try:
        ensure_admin_user(db)
    finally:
        db.close()


# ------------------------------------------------
# Health / Auth
# ------------------------------------------------
@app.get("/api/health")
def health():
    return {"status": "ok", "timestamp": utcnow().isoformat()}


@app.post("/api/auth/login")
def login(body: LoginIn, request: Request, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.lower().strip()).first()
    if not user or not verify_password(body.password, user.password_hash):
        return JSONResponse({"message": "Invalid credentials"}, status_code=401)
    login_user(request, user)
    return {"message": "Login successful", "user": _user_out(user)}


@app.post("/api/auth/logout")
def logout(request: Request):
    logout_user(request)
    return {"message": "Logged out"}


@app.get("/api/auth/check")
def auth_check(request: Request, db: Session = Depends(get_db)):
    user = get_current_user(request, db)
    if not user:
        return JSONResponse({"authenticated": False, "message": "Not authenticated"}, status_code=401)
    return {"authenticated": True, "user": _user_out(user)}


# -----------------
# Projects
# -----------------
@app.get("/api/projects", dependencies=[Depends(current_user)])
def projects_list(db: Session = Depends(get_db)):
    projects = (
        db.query(Project)
        .filter(Project.is_archived == False)
        .order_by(Project.created_at.desc())
        .all()
    )
    return [_project_out(p) for p in projects]


@app.post("/api/projects", status_code=201, dependencies=[Depends(current_user)])
def projects_create(body: ProjectIn, db: Session = Depends(get_db)):
    name = _clean_str(body.name)
    if not name:
        raise ValidationError("Project name is required")

    p = Project(
        id=str(uuid4()),
        name=name,
        description=_clean_str(body.description) or None,
    )
    db.add(p)
    _commit(db, "projects_create")
    return {"message": "Project created successfully", "project": _project_out(p)}


# -----------------
# Tasks
# -----------------
@app.get("/api/tasks", dependencies=[Depends(current_user)])
def tasks_list(
    db: Session = Depends(get_db),
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
    project: Optional[str] = None,
    search: Optional[str] = None,
):
    q = db.query(Task)
    if status:
        q = q.filter(Task.status == status)
    if priority:
        q = q.filter(Task.priority == priority)
    if assignee:
        q = q.filter(Task.assignee_id == assignee)
    if project:
        q = q.filter(Task.project_id == project)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Task.title.ilike(like), Task.description.ilike(like)))

    tasks = q.order_by(Task.order.asc(), Task.updated_at.desc()).all()
    return [_task_out(t) for t in tasks]


@app.post("/api/tasks", status_code=201)
def tasks_create(body: TaskIn, db: Session = Depends(get_db), user: User = Depends(current_user)):
    title = _clean_str(body.title)
    if not title:
        raise ValidationError("Task title is required")

    project_id = _clean_str(body.project_id)
    if not project_id:
        raise ValidationError("Project is required")
    if db.get(Project, project_id) is None:
        raise NotFoundError("Project not found")

    now = utcnow()
    t = Task(
        id=str(uuid4()),
        project_id=project_id,
        title=title,
        description=_clean_str(body.description) or None,
        status=_clean_str(body.status).lower() or "todo",
        priority=_norm_priority(body.priority),
        assignee_id=_check_assignee(db, body.assignee_id) or user.id,
        created_by_id=user.id,
        start_date=body.start_date,
        due_date=body.due_date,
        estimated_hours=body.estimated_hours,
        actual_hours=0,
        labels=_norm_labels(body.labels),
        created_at=now,
        updated_at=now,
    )
    _reindexer(db).append(t)

    return {"message": "Task created successfully", "task": _task_out(t)}


@app.patch("/api/tasks", dependencies=[Depends(current_user)])
def tasks_set_status(body: StatusChange, db: Session = Depends(get_db)):
    t = _reindexer(db).set_status(body.task_id, _clean_str(body.status).lower())
    return {"message": "Task status updated successfully", "task": _task_out(t)}


@app.post("/api/tasks/reorder", dependencies=[Depends(current_user)])
def tasks_reorder(body: ReorderIn, db: Session = Depends(get_db)):
    try:
        t = _reindexer(db).move(
            body.task_id,
            body.source_status,
            body.destination_status,
            body.new_order,
        )
    except StoreError as ex:
        # already logged by the store
        raise StoreError("Error reordering tasks", error=ex.error) from ex

    return {"message": "Task reordered successfully", "task": _task_out(t)}


@app.post("/api/tasks/compact", dependencies=[Depends(current_user)])
def tasks_compact(body: CompactIn, db: Session = Depends(get_db)):
    changed = _reindexer(db).compact(body.project_id, _clean_str(body.status).lower())
    return {"message": "Column compacted", "changed": changed}


@app.get("/api/tasks/{task_id}", dependencies=[Depends(current_user)])
def tasks_get(task_id: str, db: Session = Depends(get_db)):
    return _task_out(_get_task(db, task_id))


@app.put("/api/tasks/{task_id}", dependencies=[Depends(current_user)])
def tasks_update(task_id: str, body: TaskUpdate, db: Session = Depends(get_db)):
    t = _get_task(db, task_id)
    fields = body.model_fields_set

    if "title" in fields:
        title = _clean_str(body.title)
        if not title:
            raise ValidationError("Task title is required")
        t.title = title
    if "description" in fields:
        t.description = _clean_str(body.description) or None
    if "priority" in fields:
        t.priority = _norm_priority(body.priority)
    if "assignee_id" in fields:
        t.assignee_id = _check_assignee(db, body.assignee_id)
    if "start_date" in fields:
        t.start_date = body.start_date
    if "due_date" in fields:
        t.due_date = body.due_date
    if "estimated_hours" in fields and body.estimated_hours is not None:
        t.estimated_hours = body.estimated_hours
    if "actual_hours" in fields and body.actual_hours is not None:
        t.actual_hours = body.actual_hours
    if "labels" in fields:
        t.labels = _norm_labels(body.labels)
    if "is_archived" in fields and body.is_archived is not None:
        t.is_archived = body.is_archived

    t.updated_at = utcnow()
    _commit(db, "tasks_update")
    return {"message": "Task updated successfully", "task": _task_out(t)}


@app.delete("/api/tasks/{task_id}", dependencies=[Depends(current_user)])
def tasks_delete(task_id: str, db: Session = Depends(get_db)):
    _reindexer(db).remove(task_id)
    return {"message": "Task deleted successfully"}


@app.post("/api/tasks/{task_id}/comment")
def tasks_comment(
    task_id: str,
    body: CommentIn,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    text = _clean_str(body.text)
    if not text:
        raise ValidationError("Comment text is required")

    t = _get_task(db, task_id)
    t.comments.append(TaskComment(id=str(uuid4()), user_id=user.id, text=text, created_at=utcnow()))
    _commit(db, "tasks_comment")
    return {"message": "Comment added successfully", "task": _task_out(t)}

"""
api/routes/tasks.py -- Internal task endpoints (staff only).

Routes:
  POST /api/tasks                   -- create with one or more assignees (atomic)
  GET  /api/tasks                   -- optional ?status= and ?assigned_to= filters
  GET  /api/tasks/my                -- tasks assigned to the caller
  PUT  /api/tasks/{id}              -- assignees only; "completed" stamps completed_at
  POST /api/tasks/{id}/comments
  GET  /api/tasks/{id}/comments

The task row and its assignment rows are written in one transaction: an
unknown assignee id fails the whole create and nothing is stored.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.deps import get_ops_store, http_error, not_found
from api.models import CommentOut, CreateCommentRequest, CreateTaskRequest, TaskOut, UpdateTaskRequest
from auth.dependencies import require_staff
from auth.models import Claims
from ops.models import Comment, Task, TaskPatch, TaskStatus

logger = logging.getLogger("teamdesk.ops")

router = APIRouter(prefix="/tasks", dependencies=[Depends(require_staff)])


@router.post("", status_code=201)
def create_task(request: Request, body: CreateTaskRequest, claims: Claims = Depends(require_staff)) -> dict:
    if not body.assigned_to:
        raise http_error(400, "validation_error", "At least one user must be assigned")
    task = Task(
        title=body.title,
        description=body.description,
        created_by=claims.sub,
        priority=body.priority,
        due_date=body.due_date,
    )
    try:
        task_id = get_ops_store(request).create_task(task, body.assigned_to)
    except IntegrityError as exc:
        logger.warning("Task create rolled back: %s", exc.orig)
        raise http_error(400, "invalid_reference", "assigned_to contains an unknown user") from exc
    return {"success": True, "task_id": task_id}


@router.get("")
def list_tasks(request: Request, status: Optional[TaskStatus] = None, assigned_to: Optional[str] = None) -> dict:
    tasks = get_ops_store(request).list_tasks(status=status, assigned_to=assigned_to)
    return {"success": True, "tasks": [TaskOut.model_validate(t) for t in tasks]}


@router.get("/my")
def my_tasks(request: Request, claims: Claims = Depends(require_staff)) -> dict:
    tasks = get_ops_store(request).list_tasks_for_user(claims.sub)
    return {"success": True, "tasks": [TaskOut.model_validate(t) for t in tasks]}


@router.put("/{task_id}")
def update_task(
    request: Request,
    task_id: str,
    body: UpdateTaskRequest,
    claims: Claims = Depends(require_staff),
) -> dict:
    store = get_ops_store(request)
    if store.get_task(task_id) is None:
        raise not_found("Task")
    if not store.is_assigned(task_id, claims.sub):
        raise http_error(403, "forbidden", "You are not assigned to this task")
    patch = TaskPatch(status=body.status, priority=body.priority, due_date=body.due_date)
    if patch.is_empty():
        raise http_error(400, "no_changes", "No updates provided")
    store.update_task(task_id, patch)
    return {"success": True}


@router.post("/{task_id}/comments", status_code=201)
def add_comment(
    request: Request,
    task_id: str,
    body: CreateCommentRequest,
    claims: Claims = Depends(require_staff),
) -> dict:
    store = get_ops_store(request)
    if store.get_task(task_id) is None:
        raise not_found("Task")
    comment_id = store.add_task_comment(Comment(parent_id=task_id, user_id=claims.sub, comment=body.comment))
    return {"success": True, "comment_id": comment_id}


@router.get("/{task_id}/comments")
def list_comments(request: Request, task_id: str) -> dict:
    store = get_ops_store(request)
    if store.get_task(task_id) is None:
        raise not_found("Task")
    return {"success": True, "comments": [CommentOut.model_validate(c) for c in store.list_task_comments(task_id)]}

"""Task and task comment endpoints.

Admins see every task of the organization; other users only tasks assigned
to or created by them.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import TaskCommentsRepoDep, TasksRepoDep
from crm_pro_service.rest.schemas import (
    CreateTaskCommentRequest,
    CreateTaskRequest,
    TaskCommentSchema,
    TaskSchema,
    UpdateTaskRequest,
    opt_id,
)

router = APIRouter()


def visible_to(row, current_user) -> bool:
    return current_user.is_admin or current_user.profile_id in (
        row.assigned_to_user_id,
        row.created_by_user_id,
    )


def _task_to_schema(task) -> TaskSchema:
    assigned_to, created_by = task.assigned_to, task.created_by
    return TaskSchema(
        id=str(task.id),
        org_id=str(task.org_id),
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        assigned_to_user_id=opt_id(task.assigned_to_user_id),
        assigned_to_user_name=assigned_to.full_name if assigned_to is not None else "N/A",
        created_by_user_id=opt_id(task.created_by_user_id),
        created_by_user_name=created_by.full_name if created_by is not None else "N/A",
        due_date=task.due_date,
        related_lead_id=opt_id(task.related_lead_id),
        related_company_id=opt_id(task.related_company_id),
        related_contact_id=opt_id(task.related_contact_id),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def _comment_to_schema(comment) -> TaskCommentSchema:
    return TaskCommentSchema(
        id=str(comment.id),
        org_id=str(comment.org_id),
        task_id=str(comment.task_id),
        user_id=opt_id(comment.user_id),
        user_full_name=comment.user.full_name if comment.user is not None else "User",
        comment=comment.comment,
        created_at=comment.created_at,
    )


async def _get_or_404(repo, task_id: str, current_user):
    task = await repo.get(parse_id(task_id, "Task"), current_user.org_id)
    if task is None or not visible_to(task, current_user):
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/tasks", response_model=list[TaskSchema])
async def list_tasks(
    repo: TasksRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    status: str | None = None,
) -> list[TaskSchema]:
    org = ensure_org(current_user, org_id)
    user_id = None if current_user.is_admin else current_user.profile_id
    tasks = await repo.list_visible(org, user_id=user_id, status=status)
    return [_task_to_schema(t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=TaskSchema)
async def get_task(
    task_id: str,
    repo: TasksRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> TaskSchema:
    ensure_org(current_user, org_id)
    return _task_to_schema(await _get_or_404(repo, task_id, current_user))


@router.post("/tasks", response_model=TaskSchema, status_code=201)
async def create_task(
    request: CreateTaskRequest,
    repo: TasksRepoDep,
    current_user: CurrentUserDep,
) -> TaskSchema:
    org = ensure_org(current_user, request.org_id)
    task = await repo.create(
        org, created_by_user_id=current_user.profile_id, **request.create_values()
    )
    return _task_to_schema(task)


@router.patch("/tasks/{task_id}", response_model=TaskSchema)
async def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    repo: TasksRepoDep,
    current_user: CurrentUserDep,
) -> TaskSchema:
    task = await _get_or_404(repo, task_id, current_user)
    return _task_to_schema(await repo.update(task, **request.update_values()))


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    repo: TasksRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    task = await _get_or_404(repo, task_id, current_user)
    await repo.delete(task)
    return Response(status_code=204)


@router.get("/tasks/{task_id}/comments", response_model=list[TaskCommentSchema])
async def list_task_comments(
    task_id: str,
    repo: TasksRepoDep,
    comments: TaskCommentsRepoDep,
    current_user: CurrentUserDep,
) -> list[TaskCommentSchema]:
    """Comments on a task, oldest first."""
    task = await _get_or_404(repo, task_id, current_user)
    rows = await comments.list(current_user.org_id, task_id=task.id)
    return [_comment_to_schema(c) for c in rows]


@router.post("/tasks/{task_id}/comments", response_model=TaskCommentSchema, status_code=201)
async def create_task_comment(
    task_id: str,
    request: CreateTaskCommentRequest,
    repo: TasksRepoDep,
    comments: TaskCommentsRepoDep,
    current_user: CurrentUserDep,
) -> TaskCommentSchema:
    task = await _get_or_404(repo, task_id, current_user)
    comment = await comments.create(
        current_user.org_id,
        task_id=task.id,
        user_id=current_user.profile_id,
        comment=request.comment,
    )
    return _comment_to_schema(comment)

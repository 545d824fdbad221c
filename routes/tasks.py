# routes/tasks.py
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc

from core.access import (
    enforce_assignment_rules,
    enforce_plan_limit,
    get_activity_service,
    get_entitlement_engine,
    get_permission_service,
    require_access,
)
from core.database import get_session
from core.security import get_current_user
from models.models import ResourceKind, Task, User
from schemas.activity_schema import TaskAssignedPayload, TaskCreatedPayload
from schemas.task_schema import TaskCreate, TaskRead
from services.activity import ActivityService
from services.entitlements import EntitlementEngine
from services.permissions import PermissionService

router = APIRouter(tags=["Tasks"])


# ==================================================================
#  ✅ Create Task
# ==================================================================
@router.post("/", response_model=TaskRead)
def create_task(
    data: TaskCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    permissions: PermissionService = Depends(get_permission_service),
    activity: ActivityService = Depends(get_activity_service),
):
    require_access(permissions.can_access_board(current_user.id, data.board_id), "board")
    enforce_plan_limit(engine, current_user, ResourceKind.TASKS)
    enforce_assignment_rules(engine, permissions, current_user, data.assigned_user_ids, [data.assigned_team_id])

    # unassigned tasks go to their author, usage is counted by assignment
    assignees = data.assigned_user_ids or [current_user.id]
    task = Task(
        title=data.title,
        description=data.description,
        status=data.status,
        priority=data.priority,
        due_date=data.due_date,
        board_id=data.board_id,
        assigned_user_ids=assignees,
        assigned_team_id=data.assigned_team_id,
    )
    try:
        session.add(task)
        session.commit()
        session.refresh(task)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while creating the task.",
        )

    activity.record(
        current_user.id,
        TaskCreatedPayload(title=task.title, board_id=task.board_id),
        task_id=task.id,
        board_id=task.board_id,
    )
    for assignee_id in assignees:
        if assignee_id != current_user.id:
            activity.record(
                current_user.id,
                TaskAssignedPayload(task_title=task.title, assignee_ids=assignees),
                target_user_id=assignee_id,
                task_id=task.id,
                board_id=task.board_id,
            )
    return task


# ==================================================================
#  ✅ Get Visible Tasks (optionally per board)
# ==================================================================
@router.get("/", response_model=List[TaskRead])
def get_tasks(
    board_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    statement = select(Task).where(Task.archived == False)  # noqa: E712
    if board_id is not None:
        statement = statement.where(Task.board_id == board_id)
    tasks = session.exec(statement.order_by(desc(Task.created_at), desc(Task.id))).all()
    return permissions.filter_tasks(current_user.id, tasks)


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    task = session.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    require_access(permissions.can_access_task(current_user.id, task_id), "task")
    return task

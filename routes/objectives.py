# routes/objectives.py
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List
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
from models.models import Objective, ResourceKind, User
from schemas.activity_schema import ObjectiveCreatedPayload
from schemas.objective_schema import ObjectiveCreate, ObjectiveRead
from services.activity import ActivityService
from services.entitlements import EntitlementEngine
from services.permissions import PermissionService

router = APIRouter(tags=["Objectives"])


# ==================================================================
#  ✅ Create Objective (OKR)
# ==================================================================
@router.post("/", response_model=ObjectiveRead)
def create_objective(
    data: ObjectiveCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    permissions: PermissionService = Depends(get_permission_service),
    activity: ActivityService = Depends(get_activity_service),
):
    if data.project_id is not None:
        require_access(permissions.can_access_project(current_user.id, data.project_id), "project")
    if data.team_id is not None:
        require_access(permissions.can_access_team(current_user.id, data.team_id), "team")
    enforce_plan_limit(engine, current_user, ResourceKind.OKRS)
    enforce_assignment_rules(engine, permissions, current_user, data.user_ids, [data.team_id])

    objective = Objective(
        title=data.title,
        description=data.description,
        creator_id=current_user.id,
        company_id=current_user.company_id,
        project_id=data.project_id,
        team_id=data.team_id,
        user_ids=data.user_ids,
    )
    try:
        session.add(objective)
        session.commit()
        session.refresh(objective)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while creating the objective.",
        )

    activity.record(
        current_user.id,
        ObjectiveCreatedPayload(title=objective.title),
        objective_id=objective.id,
        project_id=objective.project_id,
        team_id=objective.team_id,
    )
    return objective


@router.get("/", response_model=List[ObjectiveRead])
def get_objectives(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    objectives = session.exec(
        select(Objective)
        .where(Objective.archived == False)  # noqa: E712
        .order_by(desc(Objective.created_at), desc(Objective.id))
    ).all()
    return permissions.filter_objectives(current_user.id, objectives)


@router.get("/{objective_id}", response_model=ObjectiveRead)
def get_objective(
    objective_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    objective = session.get(Objective, objective_id)
    if not objective:
        raise HTTPException(status_code=404, detail="Objective not found")
    require_access(permissions.can_access_objective(current_user.id, objective_id), "objective")
    return objective

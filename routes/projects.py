# routes/projects.py
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
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
from models.models import Project, ResourceKind, User
from schemas.activity_schema import ProjectCreatedPayload
from schemas.project_schema import ProjectCreate, ProjectRead
from services.activity import ActivityService
from services.entitlements import EntitlementEngine
from services.permissions import PermissionService

router = APIRouter(tags=["Projects"])


# ==================================================================
#  ✅ Create Project (quota + assignment gate)
# ==================================================================
@router.post("/", response_model=ProjectRead)
def create_project(
    data: ProjectCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    permissions: PermissionService = Depends(get_permission_service),
    activity: ActivityService = Depends(get_activity_service),
):
    enforce_plan_limit(engine, current_user, ResourceKind.PROJECTS)
    enforce_assignment_rules(engine, permissions, current_user, data.member_ids, data.team_ids)

    project = Project(
        title=data.title,
        description=data.description,
        creator_id=current_user.id,
        company_id=current_user.company_id,
        member_ids=data.member_ids,
        team_ids=data.team_ids,
    )
    try:
        session.add(project)
        session.commit()
        session.refresh(project)
    except IntegrityError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Project references an unknown user, team or company.",
        )
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while creating the project.",
        )

    activity.record(current_user.id, ProjectCreatedPayload(title=project.title), project_id=project.id)
    return project


# ==================================================================
#  ✅ Get Visible Projects
# ==================================================================
@router.get("/", response_model=List[ProjectRead])
def get_projects(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    projects = session.exec(
        select(Project)
        .where(Project.archived == False)  # noqa: E712
        .order_by(desc(Project.created_at), desc(Project.id))
    ).all()
    return permissions.filter_projects(current_user.id, projects)


# ==================================================================
#  ✅ Get Single Project
# ==================================================================
@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    project = session.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    require_access(permissions.can_access_project(current_user.id, project_id), "project")
    return project


# ==================================================================
#  ✅ Archive Project (frees a quota slot)
# ==================================================================
@router.post("/{project_id}/archive", response_model=ProjectRead)
def archive_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    project = session.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    if project.creator_id != current_user.id and not current_user.is_hyper_admin:
        raise HTTPException(status_code=403, detail="Only the creator can archive this project")

    project.archived = True
    try:
        session.add(project)
        session.commit()
        session.refresh(project)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while archiving the project.",
        )
    return project

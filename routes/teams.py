# routes/teams.py
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List
from sqlalchemy.exc import SQLAlchemyError

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
from models.models import ResourceKind, Team, TeamMember, User
from schemas.activity_schema import MemberAddedPayload, TeamCreatedPayload
from schemas.team_schema import TeamCreate, TeamRead, TeamMemberCreate, TeamMemberRead
from services.activity import ActivityService
from services.entitlements import EntitlementEngine
from services.permissions import PermissionService

router = APIRouter(tags=["Teams"])


# ==================================================================
#  ✅ Create Team (creator joins as lead)
# ==================================================================
@router.post("/", response_model=TeamRead)
def create_team(
    data: TeamCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    activity: ActivityService = Depends(get_activity_service),
):
    enforce_plan_limit(engine, current_user, ResourceKind.TEAMS)

    team = Team(
        name=data.name,
        description=data.description,
        creator_id=current_user.id,
        company_id=current_user.company_id,
    )
    try:
        session.add(team)
        session.flush()
        session.add(TeamMember(team_id=team.id, user_id=current_user.id, role="lead"))
        session.commit()
        session.refresh(team)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while creating the team.",
        )

    activity.record(current_user.id, TeamCreatedPayload(name=team.name), team_id=team.id)
    return team


@router.get("/", response_model=List[TeamRead])
def get_teams(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    teams = session.exec(select(Team).order_by(Team.name, Team.id)).all()
    return permissions.filter_teams(current_user.id, teams)


@router.get("/{team_id}", response_model=TeamRead)
def get_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    require_access(permissions.can_access_team(current_user.id, team_id), "team")
    return team


# ==================================================================
#  ✅ Team Members
# ==================================================================
@router.get("/{team_id}/members", response_model=List[TeamMemberRead])
def get_team_members(
    team_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    require_access(permissions.can_access_team(current_user.id, team_id), "team")
    members = session.exec(select(TeamMember).where(TeamMember.team_id == team_id)).all()
    return permissions.filter_team_members(current_user.id, members)


@router.post("/{team_id}/members", response_model=TeamMemberRead)
def add_team_member(
    team_id: int,
    data: TeamMemberCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    permissions: PermissionService = Depends(get_permission_service),
    activity: ActivityService = Depends(get_activity_service),
):
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    require_access(permissions.can_access_team(current_user.id, team_id), "team")
    require_access(permissions.can_access_user(current_user.id, data.user_id), "user")
    enforce_assignment_rules(engine, permissions, current_user, [data.user_id])

    existing = session.exec(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == data.user_id)
    ).first()
    if existing:
        return existing

    member = TeamMember(team_id=team_id, user_id=data.user_id, role=data.role)
    try:
        session.add(member)
        session.commit()
        session.refresh(member)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while adding the team member.",
        )

    activity.record(
        current_user.id,
        MemberAddedPayload(resource="team", member_id=data.user_id, role=data.role),
        target_user_id=data.user_id,
        team_id=team_id,
    )
    return member

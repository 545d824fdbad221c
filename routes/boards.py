# routes/boards.py
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
from models.models import Board, BoardMember, ResourceKind, User
from schemas.activity_schema import BoardCreatedPayload, MemberAddedPayload
from schemas.board_schema import BoardCreate, BoardRead, BoardMemberCreate, BoardMemberRead
from services.activity import ActivityService
from services.entitlements import EntitlementEngine
from services.permissions import PermissionService

router = APIRouter(tags=["Boards"])


# ==================================================================
#  ✅ Create Board
# ==================================================================
@router.post("/", response_model=BoardRead)
def create_board(
    data: BoardCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    permissions: PermissionService = Depends(get_permission_service),
    activity: ActivityService = Depends(get_activity_service),
):
    if data.project_id is not None:
        require_access(permissions.can_access_project(current_user.id, data.project_id), "project")
    enforce_plan_limit(engine, current_user, ResourceKind.BOARDS)
    enforce_assignment_rules(engine, permissions, current_user, data.assigned_user_ids, data.team_ids)

    board = Board(
        title=data.title,
        description=data.description,
        project_id=data.project_id,
        creator_id=current_user.id,
        company_id=current_user.company_id,
        assigned_user_ids=data.assigned_user_ids,
        team_ids=data.team_ids,
    )
    try:
        session.add(board)
        session.commit()
        session.refresh(board)
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=400, detail="Board references an unknown project or user.")
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while creating the board.",
        )

    activity.record(
        current_user.id,
        BoardCreatedPayload(title=board.title, project_id=board.project_id),
        board_id=board.id,
        project_id=board.project_id,
    )
    return board


# ==================================================================
#  ✅ Get Visible Boards
# ==================================================================
@router.get("/", response_model=List[BoardRead])
def get_boards(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    boards = session.exec(
        select(Board).where(Board.archived == False).order_by(desc(Board.created_at), desc(Board.id))  # noqa: E712
    ).all()
    return permissions.filter_boards(current_user.id, boards)


@router.get("/{board_id}", response_model=BoardRead)
def get_board(
    board_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    permissions: PermissionService = Depends(get_permission_service),
):
    board = session.get(Board, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    require_access(permissions.can_access_board(current_user.id, board_id), "board")
    return board


# ==================================================================
#  ✅ Board Members
# ==================================================================
@router.post("/{board_id}/members", response_model=BoardMemberRead)
def add_board_member(
    board_id: int,
    data: BoardMemberCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
    permissions: PermissionService = Depends(get_permission_service),
    activity: ActivityService = Depends(get_activity_service),
):
    board = session.get(Board, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    require_access(permissions.can_access_board(current_user.id, board_id), "board")
    require_access(permissions.can_access_user(current_user.id, data.user_id), "user")
    enforce_assignment_rules(engine, permissions, current_user, [data.user_id])

    existing = session.exec(
        select(BoardMember).where(BoardMember.board_id == board_id, BoardMember.user_id == data.user_id)
    ).first()
    if existing:
        return existing

    member = BoardMember(board_id=board_id, user_id=data.user_id, role=data.role)
    try:
        session.add(member)
        session.commit()
        session.refresh(member)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while adding the board member.",
        )

    activity.record(
        current_user.id,
        MemberAddedPayload(resource="board", member_id=data.user_id, role=data.role),
        target_user_id=data.user_id,
        board_id=board_id,
    )
    return member

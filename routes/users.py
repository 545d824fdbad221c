# routes/users.py
from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session, select
from typing import List

from core.access import get_permission_service, require_access
from core.database import get_session
from core.security import get_current_user
from models.models import User
from schemas.user_schema import UserRead
from services.permissions import PermissionService

router = APIRouter(tags=["Users"])


@router.get("/me", response_model=UserRead)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


# ==================================================================
#  ✅ Users visible to the caller (self + same company)
# ==================================================================
@router.get("/", response_model=List[UserRead])
def get_users(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    if current_user.is_hyper_admin:
        users = session.exec(select(User).order_by(User.id)).all()
    elif current_user.company_id is not None:
        users = session.exec(
            select(User).where(User.company_id == current_user.company_id).order_by(User.id)
        ).all()
    else:
        users = [current_user]
    return permissions.filter_users(current_user.id, users)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    require_access(permissions.can_access_user(current_user.id, user_id), "user")
    return user

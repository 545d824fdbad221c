# routes/activity.py
from fastapi import APIRouter, Depends
from typing import List

from core.access import get_permission_service
from core.security import get_current_user
from models.models import User
from schemas.activity_schema import ActivityRead
from services.permissions import PermissionService

router = APIRouter(tags=["Activity"])


@router.get("/", response_model=List[ActivityRead])
def get_activity_feed(
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    return permissions.get_visible_activity_logs(current_user.id)

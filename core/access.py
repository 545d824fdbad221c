# core/access.py
from functools import lru_cache
from typing import Iterable, Optional, Union

from fastapi import HTTPException, Depends, status
from sqlmodel import Session

from core.config import settings
from core.database import get_session
from models.models import ResourceKind, User
from services.activity import ActivityService
from services.audit import AuditTrail
from services.entitlements import EntitlementEngine, scope_for_user
from services.errors import (
    BoardflowError,
    LimitExceededError,
    NotFoundError,
    SubscriptionConflictError,
)
from services.lifecycle import SubscriptionLifecycleManager
from services.payment_provider import PaymentProvider, build_payment_provider
from services.permissions import PermissionService


# ========================================
# 🧩 Service dependencies
# ========================================
@lru_cache
def get_payment_provider() -> PaymentProvider:
    return build_payment_provider(settings)


def get_permission_service(session: Session = Depends(get_session)) -> PermissionService:
    return PermissionService(session)


def get_entitlement_engine(session: Session = Depends(get_session)) -> EntitlementEngine:
    return EntitlementEngine(session)


def get_audit_trail(session: Session = Depends(get_session)) -> AuditTrail:
    return AuditTrail(session)


def get_activity_service(session: Session = Depends(get_session)) -> ActivityService:
    return ActivityService(session)


def get_lifecycle_manager(
    session: Session = Depends(get_session),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> SubscriptionLifecycleManager:
    return SubscriptionLifecycleManager(
        session,
        provider=provider,
        success_url=settings.STRIPE_SUCCESS_URL,
        cancel_url=settings.STRIPE_CANCEL_URL,
        currency=settings.PAYMENT_CURRENCY,
        yearly_discount=settings.YEARLY_DISCOUNT,
    )


# ========================================
# 🚦 Gates used by create endpoints
# ========================================
def require_access(allowed: bool, resource: str) -> None:
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to access this {resource}",
        )


def enforce_plan_limit(engine: EntitlementEngine, user: User, kind: Union[ResourceKind, str]) -> None:
    """Reject with a structured 403 body when the user's scope is out of quota."""
    try:
        engine.enforce_limit(scope_for_user(user), kind)
    except LimitExceededError as e:
        detail = {"message": str(e)}
        detail.update(e.check.model_dump(by_alias=True, mode="json"))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def enforce_assignment_rules(
    engine: EntitlementEngine,
    permissions: PermissionService,
    user: User,
    assignee_ids: Optional[Iterable[int]] = None,
    team_ids: Optional[Iterable[int]] = None,
) -> None:
    """
    Bottom-tier users may only assign themselves and never a team.
    Everyone else may only assign users and teams they can see.
    """
    others = [uid for uid in (assignee_ids or []) if uid != user.id]
    teams = [tid for tid in (team_ids or []) if tid is not None]
    if not others and not teams:
        return
    if not engine.can_assign_teams_or_others(user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your plan does not allow assigning teams or other users. Please upgrade.",
        )
    for uid in others:
        require_access(permissions.can_access_user(user.id, uid), "user")
    for tid in teams:
        require_access(permissions.can_access_team(user.id, tid), "team")


# ========================================
# ⚠️ Domain error → HTTP
# ========================================
def http_error_for(e: BoardflowError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, SubscriptionConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{e}. Please retry.")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

# routes/admin.py
import logging
from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from typing import List, Optional

from core.access import get_audit_trail, get_lifecycle_manager, http_error_for
from core.database import get_session
from core.security import get_current_company_admin, get_current_hyper_admin
from models.models import Company, User, utcnow
from schemas.company_schema import CompanyPaymentInfoRead, CompanyRead, PauseRequest
from schemas.subscription_schema import (
    AdminTierUpdate,
    AuditLogRead,
    PlanRead,
    ProviderConfirmation,
    SubscriptionRead,
)
from schemas.user_schema import UserRead
from services.audit import AuditTrail
from services.errors import BoardflowError
from services.lifecycle import SubscriptionLifecycleManager
from services.plans import PlanCatalog

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Admin"])


# ==================================================================
#  ✅ Full catalog, internal plan included
# ==================================================================
@router.get("/plans", response_model=List[PlanRead])
def list_all_plans(
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_hyper_admin),
):
    return PlanCatalog(session).list_active_plans(include_internal=True)


# ==================================================================
#  ✅ Tier overrides
# ==================================================================
@router.put("/users/{user_id}/subscription", response_model=UserRead)
def set_user_tier(
    user_id: int,
    data: AdminTierUpdate,
    admin: User = Depends(get_current_hyper_admin),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
):
    try:
        return lifecycle.admin_set_tier(admin.id, user_id, data.tier, data.billing_cycle)
    except BoardflowError as e:
        raise http_error_for(e)


@router.put("/companies/{company_id}/subscription", response_model=CompanyPaymentInfoRead)
def set_company_tier(
    company_id: int,
    data: AdminTierUpdate,
    admin: User = Depends(get_current_hyper_admin),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
):
    try:
        return lifecycle.update_company_subscription(company_id, data.tier, admin.id, data.billing_cycle)
    except BoardflowError as e:
        raise http_error_for(e)


@router.post("/subscriptions/{subscription_id}/activate", response_model=SubscriptionRead)
def activate_subscription(
    subscription_id: int,
    data: ProviderConfirmation,
    admin: User = Depends(get_current_hyper_admin),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
):
    try:
        return lifecycle.activate_subscription(
            subscription_id, data.provider_subscription_id, data.provider_customer_id
        )
    except BoardflowError as e:
        raise http_error_for(e)


# ==================================================================
#  ✅ Company audit trail (company admins see their own company)
# ==================================================================
@router.get("/companies/{company_id}/audit-logs", response_model=List[AuditLogRead])
def get_company_audit_logs(
    company_id: int,
    limit: int = 100,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_company_admin),
    audit: AuditTrail = Depends(get_audit_trail),
):
    if not admin.is_hyper_admin and admin.company_id != company_id:
        raise HTTPException(status_code=403, detail="Not authorized for this company")
    if session.get(Company, company_id) is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return audit.list_for_company(company_id, limit=max(1, min(limit, 200)))


# ==================================================================
#  ⏸️ Pause / resume (pausing a company pauses all of its users)
# ==================================================================
def _set_company_paused(session: Session, company_id: int, reason: Optional[str]) -> Company:
    company = session.get(Company, company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")

    paused = reason is not None
    now = utcnow() if paused else None
    company.is_paused = paused
    company.pause_reason = reason
    company.paused_at = now
    try:
        session.add(company)
        session.connection().execute(
            update(User)
            .where(User.company_id == company_id)
            .values(
                is_paused=paused,
                pause_reason=f"Company paused: {reason}" if paused else None,
                paused_at=now,
            )
        )
        session.commit()
        session.refresh(company)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while updating the company.",
        )
    logger.info(f"{'⏸️ Paused' if paused else '▶️ Resumed'} company {company_id} and its users")
    return company


def _set_user_paused(session: Session, user_id: int, reason: Optional[str]) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    paused = reason is not None
    user.is_paused = paused
    user.pause_reason = reason
    user.paused_at = utcnow() if paused else None
    user.updated_at = utcnow()
    try:
        session.add(user)
        session.commit()
        session.refresh(user)
    except SQLAlchemyError:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while updating the user.",
        )
    logger.info(f"{'⏸️ Paused' if paused else '▶️ Resumed'} user {user_id}")
    return user


@router.post("/companies/{company_id}/pause", response_model=CompanyRead)
def pause_company(
    company_id: int,
    data: PauseRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_hyper_admin),
):
    return _set_company_paused(session, company_id, data.pause_reason)


@router.post("/companies/{company_id}/resume", response_model=CompanyRead)
def resume_company(
    company_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_hyper_admin),
):
    return _set_company_paused(session, company_id, None)


@router.post("/users/{user_id}/pause", response_model=UserRead)
def pause_user(
    user_id: int,
    data: PauseRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_hyper_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot pause your own account")
    return _set_user_paused(session, user_id, data.pause_reason)


@router.post("/users/{user_id}/resume", response_model=UserRead)
def resume_user(
    user_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_hyper_admin),
):
    return _set_user_paused(session, user_id, None)

# routes/subscriptions.py
import logging
from dataclasses import asdict
from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session
from typing import List

from core.access import get_activity_service, get_audit_trail, get_lifecycle_manager, http_error_for
from core.database import get_session
from core.security import get_current_user
from models.models import SubscriptionPackage, User
from schemas.activity_schema import SubscriptionChangedPayload
from schemas.subscription_schema import (
    AuditLogRead,
    CurrentSubscriptionRead,
    PlanRead,
    SubscriptionSwitchRequest,
    SubscriptionRead,
    SubscriptionSwitchResponse,
    SubscriptionUpdateResponse,
)
from services.activity import ActivityService
from services.audit import AuditTrail
from services.errors import BoardflowError
from services.lifecycle import SubscriptionLifecycleManager
from services.plans import PlanCatalog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Subscriptions"])


# ==================================================================
#  ✅ Public plan listing (internal plan never shown)
# ==================================================================
@router.get("/plans", response_model=List[PlanRead])
def list_plans(session: Session = Depends(get_session)):
    return PlanCatalog(session).list_active_plans(include_internal=False)


# ==================================================================
#  ✅ Current subscription of the caller
# ==================================================================
@router.get("/current", response_model=CurrentSubscriptionRead)
def get_current_subscription(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
):
    lifecycle.expire_if_elapsed(current_user.id)
    session.refresh(current_user)

    subscription = lifecycle.current_subscription(current_user.id)
    plan = session.get(SubscriptionPackage, subscription.package_id) if subscription else None
    if plan is None:
        plan = PlanCatalog(session).get_plan(current_user.subscription_tier)
    return CurrentSubscriptionRead(
        tier=current_user.subscription_tier,
        billing_cycle=current_user.subscription_billing_cycle,
        expires_at=current_user.subscription_expires_at,
        plan=PlanRead.model_validate(plan) if plan else None,
        subscription=SubscriptionRead.model_validate(subscription) if subscription else None,
    )


# ==================================================================
#  ✅ Switch tier (checkout, or direct update when no payment needed)
# ==================================================================
@router.post("/switch", response_model=SubscriptionSwitchResponse)
def switch_subscription(
    data: SubscriptionSwitchRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
    activity: ActivityService = Depends(get_activity_service),
):
    old_tier = current_user.subscription_tier
    try:
        result = lifecycle.switch_subscription(current_user.id, data.tier, data.billing_cycle)
    except BoardflowError as e:
        raise http_error_for(e)

    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.message)
    if not result.requires_payment:
        _record_change(activity, current_user, old_tier)
    return SubscriptionSwitchResponse(**asdict(result))


# ==================================================================
#  ✅ Guaranteed update (strict path, then direct database path)
# ==================================================================
@router.post("/guaranteed-update", response_model=SubscriptionUpdateResponse)
def guaranteed_update(
    data: SubscriptionSwitchRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
    activity: ActivityService = Depends(get_activity_service),
):
    old_tier = current_user.subscription_tier
    result = lifecycle.guaranteed_update(current_user.id, data.tier, data.billing_cycle)
    if not result.success:
        logger.error(f"❌ Guaranteed update failed for user {current_user.id}: {result.message}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.message)
    _record_change(activity, current_user, old_tier)
    return SubscriptionUpdateResponse(**asdict(result))


def _record_change(activity: ActivityService, user: User, old_tier: str) -> None:
    activity.session.refresh(user)
    activity.record(
        user.id,
        SubscriptionChangedPayload(
            old_tier=old_tier,
            new_tier=user.subscription_tier,
            billing_cycle=user.subscription_billing_cycle,
        ),
    )


@router.get("/audit-logs", response_model=List[AuditLogRead])
def get_my_audit_logs(
    current_user: User = Depends(get_current_user),
    audit: AuditTrail = Depends(get_audit_trail),
):
    return audit.list_for_user(current_user.id)

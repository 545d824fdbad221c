# routes/limits.py
from fastapi import APIRouter, Depends

from core.access import get_entitlement_engine
from core.security import get_current_user
from models.models import ResourceKind, User
from schemas.subscription_schema import FeatureCheckRead
from services.entitlements import EntitlementEngine, LimitCheck, scope_for_user

router = APIRouter(tags=["Limits"])


@router.get("/assignments")
def get_assignment_capability(
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
):
    return {"canAssignTeamsOrOthers": engine.can_assign_teams_or_others(current_user.id)}


@router.get("/features/{feature}", response_model=FeatureCheckRead)
def get_feature_access(
    feature: str,
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
):
    scope = scope_for_user(current_user)
    return FeatureCheckRead(
        feature=feature,
        has_access=engine.has_feature(scope, feature),
        current_plan=engine.resolve_tier(scope),
    )


# ==================================================================
#  ✅ Quota status for one resource kind
# ==================================================================
@router.get("/{kind}", response_model=LimitCheck)
def get_limit_status(
    kind: ResourceKind,
    current_user: User = Depends(get_current_user),
    engine: EntitlementEngine = Depends(get_entitlement_engine),
):
    return engine.check_limit(scope_for_user(current_user), kind)

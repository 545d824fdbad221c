# subscription_schema.py
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


# ---------------------------
# Plans
# ---------------------------
class PlanRead(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    price: int
    version: int
    max_projects: int
    max_boards: int
    max_teams: int
    max_users_per_company: int
    max_tasks: int
    max_okrs: int
    has_gantt_view: bool
    has_advanced_reporting: bool
    has_api_access: bool
    has_custom_branding: bool
    has_priority_support: bool
    has_team_features: bool
    has_okr_features: bool
    requires_company: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# ---------------------------
# Subscriptions
# ---------------------------
class SubscriptionRead(BaseModel):
    id: int
    user_id: int
    company_id: Optional[int] = None
    package_id: int
    status: str
    billing_cycle: str
    provider_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CurrentSubscriptionRead(BaseModel):
    tier: str
    billing_cycle: str
    expires_at: Optional[datetime] = None
    plan: Optional[PlanRead] = None
    subscription: Optional[SubscriptionRead] = None


class SubscriptionSwitchRequest(BaseModel):
    tier: str = Field(..., min_length=1, max_length=30)
    billing_cycle: Optional[str] = None


class SubscriptionSwitchResponse(BaseModel):
    """Camel-cased for the frontend: success, checkoutUrl, requiresPayment."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    success: bool
    checkout_url: Optional[str] = None
    requires_payment: bool = False
    session_id: Optional[str] = None
    subscription_id: Optional[int] = None
    method: Optional[str] = None
    message: str = ""


class SubscriptionUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    message: str
    method: Optional[str] = None
    tier: Optional[str] = None
    billing_cycle: Optional[str] = None


class AdminTierUpdate(BaseModel):
    tier: str = Field(..., min_length=1, max_length=30)
    billing_cycle: Optional[str] = None


class ProviderConfirmation(BaseModel):
    provider_subscription_id: Optional[str] = None
    provider_customer_id: Optional[str] = None


# ---------------------------
# Audit
# ---------------------------
class AuditLogRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    company_id: Optional[int] = None
    changed_by_user_id: Optional[int] = None
    action: str
    old_tier: Optional[str] = None
    new_tier: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------
# Limits & features
# ---------------------------
class FeatureCheckRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    feature: str
    has_access: bool
    current_plan: str

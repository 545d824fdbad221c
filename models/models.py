# models/models.py
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, UniqueConstraint
from pydantic import EmailStr


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================
# ENUMS
# ============================================================
class PlanName(str, Enum):
    FREE = "free"
    FREELANCER = "freelancer"
    ORGANISATION = "organisation"
    ENTERPRISE = "enterprise"
    INTERNAL = "internal"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ResourceKind(str, Enum):
    PROJECTS = "projects"
    BOARDS = "boards"
    TEAMS = "teams"
    TASKS = "tasks"
    OKRS = "okrs"
    USERS = "users"


class Feature(str, Enum):
    TEAMS = "teams"
    OKRS = "okrs"
    GANTT_VIEW = "ganttView"
    ADVANCED_REPORTING = "advancedReporting"
    API_ACCESS = "apiAccess"
    CUSTOM_BRANDING = "customBranding"
    PRIORITY_SUPPORT = "prioritySupport"
    BASIC_FEATURES = "basicFeatures"


class AuditAction(str, Enum):
    CREATE = "create"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    CHANGE_TIER = "change_tier"
    USER_SUBSCRIPTION_CHANGE = "user_subscription_change"
    CHECKOUT_STARTED = "checkout_started"
    CHECKOUT_FAILED = "checkout_failed"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"
    SUBSCRIPTION_SWITCH_DB_ONLY = "subscription_switch_db_only"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    DIRECT_DB_UPDATE = "direct_db_update"
    GUARANTEED_UPDATE = "guaranteed_update"


class ActivityAction(str, Enum):
    PROJECT_CREATED = "project_created"
    BOARD_CREATED = "board_created"
    TEAM_CREATED = "team_created"
    OBJECTIVE_CREATED = "objective_created"
    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    MEMBER_ADDED = "member_added"
    SUBSCRIPTION_CHANGED = "subscription_changed"


# ============================================================
# COMPANY (tenant)
# ============================================================
class Company(SQLModel, table=True):
    __tablename__ = "company"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    invite_code: str = Field(max_length=50, unique=True, index=True)
    is_paused: bool = Field(default=False)
    pause_reason: Optional[str] = Field(default=None, max_length=500)
    paused_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class CompanyPaymentInfo(SQLModel, table=True):
    __tablename__ = "company_payment_info"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: int = Field(foreign_key="company.id", unique=True, index=True)
    subscription_tier: str = Field(default=PlanName.FREE.value, max_length=30)
    subscription_status: str = Field(default=SubscriptionStatus.ACTIVE.value, max_length=20)
    billing_cycle: str = Field(default=BillingCycle.MONTHLY.value, max_length=10)
    subscription_start_date: datetime = Field(default_factory=utcnow)
    subscription_end_date: Optional[datetime] = None
    billing_name: Optional[str] = Field(default=None, max_length=100)
    billing_email: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================
# USER
# ============================================================
class User(SQLModel, table=True):
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=50, index=True)
    email: EmailStr = Field(index=True, max_length=100, nullable=False)

    # Tenancy; no company means a personal account with personal quotas
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    is_company_admin: bool = Field(default=False)
    is_hyper_admin: bool = Field(default=False)

    # Denormalized current subscription
    subscription_tier: str = Field(default=PlanName.FREE.value, max_length=30)
    subscription_billing_cycle: str = Field(default=BillingCycle.MONTHLY.value, max_length=10)
    subscription_expires_at: Optional[datetime] = None

    is_active: bool = Field(default=True)
    is_paused: bool = Field(default=False)
    pause_reason: Optional[str] = Field(default=None, max_length=500)
    paused_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================
# TEAM
# ============================================================
class Team(SQLModel, table=True):
    __tablename__ = "team"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    creator_id: int = Field(foreign_key="user.id", index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


class TeamMember(SQLModel, table=True):
    __tablename__ = "team_member"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    role: str = Field(default="member", max_length=20)
    joined_at: datetime = Field(default_factory=utcnow)


# ============================================================
# PROJECT
# ============================================================
class Project(SQLModel, table=True):
    __tablename__ = "project"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    creator_id: int = Field(foreign_key="user.id", index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    member_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    team_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    archived: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================
# BOARD
# ============================================================
class Board(SQLModel, table=True):
    __tablename__ = "board"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    project_id: Optional[int] = Field(default=None, foreign_key="project.id", index=True)
    creator_id: int = Field(foreign_key="user.id", index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    assigned_user_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    team_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    archived: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


class BoardMember(SQLModel, table=True):
    __tablename__ = "board_member"
    __table_args__ = (UniqueConstraint("board_id", "user_id", name="uq_board_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(foreign_key="board.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    role: str = Field(default="member", max_length=20)
    joined_at: datetime = Field(default_factory=utcnow)


# ============================================================
# OBJECTIVE (OKR)
# ============================================================
class Objective(SQLModel, table=True):
    __tablename__ = "objective"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    creator_id: int = Field(foreign_key="user.id", index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    project_id: Optional[int] = Field(default=None, foreign_key="project.id", index=True)
    team_id: Optional[int] = Field(default=None, foreign_key="team.id", index=True)
    user_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    archived: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


class ObjectiveMember(SQLModel, table=True):
    __tablename__ = "objective_member"
    __table_args__ = (UniqueConstraint("objective_id", "user_id", name="uq_objective_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    objective_id: int = Field(foreign_key="objective.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    role: str = Field(default="member", max_length=20)
    joined_at: datetime = Field(default_factory=utcnow)


# ============================================================
# TASK
# ============================================================
class Task(SQLModel, table=True):
    __tablename__ = "task"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(default="todo", max_length=20)
    priority: str = Field(default="medium", max_length=20)
    due_date: Optional[datetime] = None
    board_id: int = Field(foreign_key="board.id", index=True)
    # Tasks carry no creator; usage and access follow assignment
    assigned_user_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    assigned_team_id: Optional[int] = Field(default=None, foreign_key="team.id", index=True)
    archived: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================
# SUBSCRIPTION PACKAGE (plan catalog)
# ============================================================
class SubscriptionPackage(SQLModel, table=True):
    __tablename__ = "subscription_package"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=30, unique=True, index=True)
    display_name: str = Field(max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    price: int = Field(default=0, ge=0)  # cents per month
    version: int = Field(default=1)

    max_projects: int = Field(default=1)
    max_boards: int = Field(default=1)
    max_teams: int = Field(default=0)
    max_users_per_company: int = Field(default=1)
    max_tasks: int = Field(default=10)
    max_okrs: int = Field(default=0)

    has_gantt_view: bool = Field(default=False)
    has_advanced_reporting: bool = Field(default=False)
    has_api_access: bool = Field(default=False)
    has_custom_branding: bool = Field(default=False)
    has_priority_support: bool = Field(default=False)
    has_team_features: bool = Field(default=False)
    has_okr_features: bool = Field(default=False)

    requires_company: bool = Field(default=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================
# SUBSCRIPTION (instance)
# ============================================================
class Subscription(SQLModel, table=True):
    __tablename__ = "subscription"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    package_id: int = Field(foreign_key="subscription_package.id")
    status: str = Field(default=SubscriptionStatus.PENDING.value, max_length=20, index=True)
    billing_cycle: str = Field(default=BillingCycle.MONTHLY.value, max_length=10)

    # Payment provider correlation
    provider_subscription_id: Optional[str] = Field(default=None, max_length=255, index=True)
    provider_customer_id: Optional[str] = Field(default=None, max_length=255)
    provider_session_id: Optional[str] = Field(default=None, max_length=255)

    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    # Optimistic lock, bumped on every write
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================
# SUBSCRIPTION AUDIT LOG (append only)
# ============================================================
class SubscriptionAuditLog(SQLModel, table=True):
    __tablename__ = "subscription_audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    changed_by_user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    action: str = Field(max_length=50)
    old_tier: Optional[str] = Field(default=None, max_length=30)
    new_tier: Optional[str] = Field(default=None, max_length=30)
    details: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow, index=True)


# ============================================================
# ACTIVITY LOG
# ============================================================
class ActivityLog(SQLModel, table=True):
    __tablename__ = "activity_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    action: str = Field(max_length=50)
    user_id: int = Field(foreign_key="user.id", index=True)
    target_user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    board_id: Optional[int] = Field(default=None, index=True)
    project_id: Optional[int] = Field(default=None, index=True)
    objective_id: Optional[int] = Field(default=None, index=True)
    task_id: Optional[int] = Field(default=None, index=True)
    team_id: Optional[int] = Field(default=None, index=True)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, index=True)

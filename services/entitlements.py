# services/entitlements.py
import logging
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from models.models import (
    Board,
    CompanyPaymentInfo,
    Feature,
    Objective,
    PlanName,
    Project,
    ResourceKind,
    Task,
    Team,
    User,
    utcnow,
)
from services.errors import LimitExceededError
from services.plans import FEATURE_FIELDS, PlanCatalog, is_unlimited, limit_for, next_tier
from services.repository import EntityStore, intersects

logger = logging.getLogger(__name__)

# Tier assumed for a company that has no payment-info record yet
DEFAULT_COMPANY_TIER = PlanName.FREE.value
DEFAULT_PERSONAL_TIER = PlanName.FREE.value

# Personal tiers that may only assign work to themselves
SELF_ASSIGN_ONLY_TIERS = {PlanName.FREE.value, PlanName.FREELANCER.value}


@dataclass(frozen=True)
class Scope:
    """Accounting unit for usage: a company, or a user without one."""

    company_id: Optional[int] = None
    user_id: Optional[int] = None

    @classmethod
    def company(cls, company_id: int) -> "Scope":
        return cls(company_id=company_id)

    @classmethod
    def personal(cls, user_id: int) -> "Scope":
        return cls(user_id=user_id)

    @property
    def is_company(self) -> bool:
        return self.company_id is not None

    def __str__(self) -> str:
        if self.is_company:
            return f"company:{self.company_id}"
        return f"user:{self.user_id}"


def scope_for_user(user: User) -> Scope:
    if user.company_id is not None:
        return Scope.company(user.company_id)
    return Scope.personal(user.id)


class LimitCheck(BaseModel):
    """Outcome of a quota check, detailed enough to render an upgrade prompt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    resource: ResourceKind
    limit_reached: bool
    current_count: int
    max_count: int
    current_plan: str
    next_tier: Optional[str] = None

    @property
    def unlimited(self) -> bool:
        return is_unlimited(self.max_count)

    @property
    def message(self) -> str:
        if not self.limit_reached:
            return f"{self.current_count} of {self.max_count} {self.resource.value} used"
        hint = f" Upgrade to {self.next_tier} to add more." if self.next_tier else ""
        return (
            f"You have reached the {self.resource.value} limit of your {self.current_plan} plan "
            f"({self.current_count}/{self.max_count}).{hint}"
        )


class EntitlementEngine:
    """
    Usage-versus-limit and feature checks for a scope.

    Read checks fail open: if the store errors out, the scope is treated
    as not limited and the error is logged.
    """

    def __init__(self, session: Session):
        self.session = session
        self.store = EntityStore(session)
        self.catalog = PlanCatalog(session)

    # ============================================================
    # ✅ Tier resolution
    # ============================================================
    def resolve_tier(self, scope: Scope) -> str:
        now = utcnow()
        if scope.is_company:
            info = self.store.payment_info.first_where(CompanyPaymentInfo.company_id == scope.company_id)
            if info is None or not info.subscription_tier:
                return DEFAULT_COMPANY_TIER
            if info.subscription_end_date is not None and info.subscription_end_date < now:
                logger.info(f"Company {scope.company_id} subscription lapsed, treating as free.")
                return PlanName.FREE.value
            return info.subscription_tier.lower()

        user = self.store.users.get(scope.user_id)
        if user is None or not user.subscription_tier:
            return DEFAULT_PERSONAL_TIER
        if user.subscription_expires_at is not None and user.subscription_expires_at < now:
            logger.info(f"User {scope.user_id} subscription lapsed, treating as free.")
            return PlanName.FREE.value
        return user.subscription_tier.lower()

    # ============================================================
    # ✅ Usage counting
    # ============================================================
    def count_usage(self, scope: Scope, kind: Union[ResourceKind, str]) -> int:
        kind = ResourceKind(kind)
        if scope.is_company:
            return self._count_company(scope.company_id, kind)
        return self._count_personal(scope.user_id, kind)

    def _count_company(self, company_id: int, kind: ResourceKind) -> int:
        store = self.store
        if kind == ResourceKind.TEAMS:
            return store.teams.count(Team.company_id == company_id)
        if kind == ResourceKind.USERS:
            return len(store.company_user_ids(company_id, active_only=True))

        user_ids = store.company_user_ids(company_id)
        if not user_ids:
            return 0
        if kind == ResourceKind.PROJECTS:
            return store.projects.count(Project.creator_id.in_(user_ids), Project.archived == False)  # noqa: E712
        if kind == ResourceKind.BOARDS:
            return store.boards.count(Board.creator_id.in_(user_ids), Board.archived == False)  # noqa: E712
        if kind == ResourceKind.OKRS:
            return store.objectives.count(Objective.creator_id.in_(user_ids), Objective.archived == False)  # noqa: E712
        if kind == ResourceKind.TASKS:
            return store.tasks.count_where(lambda task: intersects(task.assigned_user_ids, user_ids))
        raise ValueError(f"Unknown resource kind: {kind}")

    def _count_personal(self, user_id: int, kind: ResourceKind) -> int:
        store = self.store
        if kind == ResourceKind.PROJECTS:
            return store.projects.count(Project.creator_id == user_id, Project.archived == False)  # noqa: E712
        if kind == ResourceKind.BOARDS:
            return store.boards.count(Board.creator_id == user_id, Board.archived == False)  # noqa: E712
        if kind == ResourceKind.OKRS:
            return store.objectives.count(Objective.creator_id == user_id, Objective.archived == False)  # noqa: E712
        if kind == ResourceKind.TEAMS:
            return store.teams.count(Team.creator_id == user_id)
        if kind == ResourceKind.TASKS:
            # no creator on tasks, personal usage follows assignment
            return store.tasks.count_where(lambda task: user_id in (task.assigned_user_ids or []))
        if kind == ResourceKind.USERS:
            return 1
        raise ValueError(f"Unknown resource kind: {kind}")

    # ============================================================
    # ✅ Limit checks
    # ============================================================
    def check_limit(self, scope: Scope, kind: Union[ResourceKind, str]) -> LimitCheck:
        kind = ResourceKind(kind)
        tier = DEFAULT_PERSONAL_TIER
        try:
            tier = self.resolve_tier(scope)
            plan = self.catalog.get_plan(tier)
            if plan is None:
                logger.warning(f"No plan row for tier '{tier}' ({scope}), using fallback limits.")
            cap = limit_for(plan, kind)
            current = self.count_usage(scope, kind)
        except SQLAlchemyError:
            logger.exception(f"Limit check for {kind.value} on {scope} failed, allowing.")
            return LimitCheck(
                resource=kind,
                limit_reached=False,
                current_count=0,
                max_count=0,
                current_plan=tier,
                next_tier=next_tier(tier),
            )

        reached = False if is_unlimited(cap) else current >= cap
        return LimitCheck(
            resource=kind,
            limit_reached=reached,
            current_count=current,
            max_count=cap,
            current_plan=tier,
            next_tier=next_tier(tier),
        )

    def has_reached_limit(self, scope: Scope, kind: Union[ResourceKind, str]) -> bool:
        return self.check_limit(scope, kind).limit_reached

    def enforce_limit(self, scope: Scope, kind: Union[ResourceKind, str]) -> LimitCheck:
        check = self.check_limit(scope, kind)
        if check.limit_reached:
            logger.info(f"⛔ {scope} hit {check.resource.value} limit ({check.current_count}/{check.max_count}).")
            raise LimitExceededError(check)
        return check

    # ============================================================
    # ✅ Feature flags
    # ============================================================
    def has_feature(self, scope: Scope, feature: Union[Feature, str]) -> bool:
        try:
            feature = Feature(feature)
        except ValueError:
            logger.debug(f"Unknown feature '{feature}' requested, denying.")
            return False
        if feature == Feature.BASIC_FEATURES:
            return True

        try:
            plan = self.catalog.get_plan(self.resolve_tier(scope))
        except SQLAlchemyError:
            logger.exception(f"Feature check '{feature.value}' on {scope} failed, denying feature.")
            return False
        if plan is None:
            return False
        return bool(getattr(plan, FEATURE_FIELDS[feature]))

    # ============================================================
    # ✅ Assignment gate
    # ============================================================
    def can_assign_teams_or_others(self, user_id: int) -> bool:
        """Bottom-tier personal users may only assign themselves and never a team."""
        try:
            user = self.store.users.get(user_id)
            if user is None:
                return False
            tier = self.resolve_tier(Scope.personal(user_id))
        except SQLAlchemyError:
            logger.exception(f"Assignment check for user {user_id} failed, denying.")
            return False
        return tier not in SELF_ASSIGN_ONLY_TIERS

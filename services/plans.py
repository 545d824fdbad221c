# services/plans.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from models.models import Feature, PlanName, ResourceKind, SubscriptionPackage

logger = logging.getLogger(__name__)

# ============================================================
# ✅ Unlimited sentinel
# ============================================================
UNLIMITED = 999999


def is_unlimited(cap: Optional[int]) -> bool:
    """Any cap at or above the sentinel means no limit."""
    return cap is not None and cap >= UNLIMITED


# Tier order used for upgrade/downgrade decisions and "next tier" hints
TIER_ORDER: List[str] = [
    PlanName.FREE.value,
    PlanName.FREELANCER.value,
    PlanName.ORGANISATION.value,
    PlanName.ENTERPRISE.value,
    PlanName.INTERNAL.value,
]

# Upgrade path offered to users; the internal plan is never suggested
UPGRADE_PATH: Dict[str, str] = {
    PlanName.FREE.value: PlanName.FREELANCER.value,
    PlanName.FREELANCER.value: PlanName.ORGANISATION.value,
    PlanName.ORGANISATION.value: PlanName.ENTERPRISE.value,
}

LIMIT_FIELDS: Dict[ResourceKind, str] = {
    ResourceKind.PROJECTS: "max_projects",
    ResourceKind.BOARDS: "max_boards",
    ResourceKind.TEAMS: "max_teams",
    ResourceKind.USERS: "max_users_per_company",
    ResourceKind.TASKS: "max_tasks",
    ResourceKind.OKRS: "max_okrs",
}

FEATURE_FIELDS: Dict[Feature, str] = {
    Feature.TEAMS: "has_team_features",
    Feature.OKRS: "has_okr_features",
    Feature.GANTT_VIEW: "has_gantt_view",
    Feature.ADVANCED_REPORTING: "has_advanced_reporting",
    Feature.API_ACCESS: "has_api_access",
    Feature.CUSTOM_BRANDING: "has_custom_branding",
    Feature.PRIORITY_SUPPORT: "has_priority_support",
}


# ============================================================
# ✅ Default catalog
# ============================================================
def default_packages() -> List[Dict[str, Any]]:
    return [
        {
            "name": PlanName.FREE.value,
            "display_name": "Free",
            "description": "Basic features for getting started",
            "price": 0,
            "max_projects": 1,
            "max_boards": 1,
            "max_teams": 0,
            "max_users_per_company": 1,
            "max_tasks": 10,
            "max_okrs": 0,
            "requires_company": False,
        },
        {
            "name": PlanName.FREELANCER.value,
            "display_name": "Freelancer",
            "description": "Perfect for individual professionals",
            "price": 900,
            "max_projects": 3,
            "max_boards": 5,
            "max_teams": 0,
            "max_users_per_company": 1,
            "max_tasks": 50,
            "max_okrs": 0,
            "has_gantt_view": True,
            "requires_company": False,
        },
        {
            "name": PlanName.ORGANISATION.value,
            "display_name": "Organisation",
            "description": "Great for growing teams",
            "price": 4900,
            "max_projects": 10,
            "max_boards": 20,
            "max_teams": 5,
            "max_users_per_company": 10,
            "max_tasks": 500,
            "max_okrs": 10,
            "has_gantt_view": True,
            "has_advanced_reporting": True,
            "has_api_access": True,
            "has_team_features": True,
            "has_okr_features": True,
            "requires_company": True,
        },
        {
            "name": PlanName.ENTERPRISE.value,
            "display_name": "Enterprise",
            "description": "Full-featured solution for large organizations",
            "price": 9900,
            "max_projects": 50,
            "max_boards": 100,
            "max_teams": 20,
            "max_users_per_company": 30,
            "max_tasks": 2000,
            "max_okrs": 50,
            "has_gantt_view": True,
            "has_advanced_reporting": True,
            "has_api_access": True,
            "has_custom_branding": True,
            "has_priority_support": True,
            "has_team_features": True,
            "has_okr_features": True,
            "requires_company": True,
        },
        {
            "name": PlanName.INTERNAL.value,
            "display_name": "Internal",
            "description": "Internal plan for platform staff, admin assignment only",
            "price": 0,
            "max_projects": UNLIMITED,
            "max_boards": UNLIMITED,
            "max_teams": UNLIMITED,
            "max_users_per_company": UNLIMITED,
            "max_tasks": UNLIMITED,
            "max_okrs": UNLIMITED,
            "has_gantt_view": True,
            "has_advanced_reporting": True,
            "has_api_access": True,
            "has_custom_branding": True,
            "has_priority_support": True,
            "has_team_features": True,
            "has_okr_features": True,
            "requires_company": False,
        },
    ]


def _default_caps(plan_name: str) -> Dict[ResourceKind, int]:
    row = next(p for p in default_packages() if p["name"] == plan_name)
    return {kind: row[field] for kind, field in LIMIT_FIELDS.items()}


# Used when a scope's plan row cannot be found: the free tier's caps
FALLBACK_LIMITS: Dict[ResourceKind, int] = _default_caps(PlanName.FREE.value)


def tier_rank(plan_name: Optional[str]) -> int:
    """Position in the tier order; unknown tiers rank with free."""
    if not plan_name:
        return 0
    try:
        return TIER_ORDER.index(plan_name.lower())
    except ValueError:
        return 0


def next_tier(plan_name: Optional[str]) -> Optional[str]:
    return UPGRADE_PATH.get((plan_name or PlanName.FREE.value).lower())


def limit_for(plan: Optional[SubscriptionPackage], kind: ResourceKind) -> int:
    if plan is None:
        return FALLBACK_LIMITS[kind]
    return getattr(plan, LIMIT_FIELDS[kind])


# ============================================================
# ✅ Plan catalog
# ============================================================
class PlanCatalog:
    """DB-backed plan definitions."""

    def __init__(self, session: Session):
        self.session = session

    def get_plan(self, name: Optional[str], active_only: bool = False) -> Optional[SubscriptionPackage]:
        if not name:
            return None
        statement = select(SubscriptionPackage).where(
            func.lower(SubscriptionPackage.name) == name.lower()
        )
        if active_only:
            statement = statement.where(SubscriptionPackage.is_active == True)  # noqa: E712
        return self.session.exec(statement).first()

    def list_active_plans(self, include_internal: bool = False) -> List[SubscriptionPackage]:
        plans = self.session.exec(
            select(SubscriptionPackage)
            .where(SubscriptionPackage.is_active == True)  # noqa: E712
            .order_by(SubscriptionPackage.price, SubscriptionPackage.id)
        ).all()
        if include_internal:
            return list(plans)
        return [plan for plan in plans if plan.name != PlanName.INTERNAL.value]

    def list_all_plans(self) -> List[SubscriptionPackage]:
        return list(
            self.session.exec(select(SubscriptionPackage).order_by(SubscriptionPackage.id)).all()
        )

    def seed_default_plans(self) -> int:
        """
        Install the default catalog on an empty plan table.

        Returns the number of plans inserted; zero when any plan already
        exists, so re-running is a no-op.
        """
        existing = self.session.exec(select(func.count()).select_from(SubscriptionPackage)).one()
        if existing:
            logger.info(f"Plan catalog already holds {existing} plan(s), skipping seed.")
            return 0

        packages = [SubscriptionPackage(**data) for data in default_packages()]
        for package in packages:
            self.session.add(package)
        self.session.commit()
        logger.info(f"✅ Seeded {len(packages)} default subscription plans.")
        return len(packages)

# scripts/seed.py

import os
import sys
import argparse

from dotenv import load_dotenv
from sqlmodel import Session, select

# Ensure root path for relative imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ✅ Load environment variables before settings are read
load_dotenv()

from core.database import create_db_and_tables, engine  # noqa: E402
from models.models import Company, PlanName, TeamMember, Team, User  # noqa: E402
from services.lifecycle import SubscriptionLifecycleManager  # noqa: E402
from services.plans import PlanCatalog  # noqa: E402


def seed_plans(session: Session) -> None:
    inserted = PlanCatalog(session).seed_default_plans()
    if inserted:
        print(f"✅ Installed {inserted} subscription plans")
    else:
        print("ℹ️ Subscription plans already present")


def _get_or_create_user(session: Session, email: str, **fields) -> User:
    user = session.exec(select(User).where(User.email == email)).first()
    if user:
        return user
    user = User(email=email, **fields)
    session.add(user)
    session.commit()
    session.refresh(user)
    print(f"✅ Added user {email}")
    return user


def seed_dev_data() -> None:
    """Seed development database with a demo company, its users and a personal account."""
    print("🌱 Seeding development data...")

    with Session(engine) as session:
        seed_plans(session)

        # -----------------------------
        # 🏢 Demo Company
        # -----------------------------
        company = session.exec(select(Company).where(Company.invite_code == "DEMO-COMPANY")).first()
        if not company:
            company = Company(name="Demo Company", invite_code="DEMO-COMPANY")
            session.add(company)
            session.commit()
            session.refresh(company)
            print("✅ Created Demo Company")

        # -----------------------------
        # 👑 Company admin on the organisation plan
        # -----------------------------
        admin = _get_or_create_user(
            session, "admin@demo.com", username="demo-admin", company_id=company.id, is_company_admin=True
        )
        if admin.subscription_tier != PlanName.ORGANISATION.value:
            SubscriptionLifecycleManager(session).update_database_only(admin.id, PlanName.ORGANISATION.value)
            print("✅ Admin moved to organisation plan")

        # -----------------------------
        # 👥 Members + team
        # -----------------------------
        members = [
            _get_or_create_user(session, email, username=email.split("@")[0], company_id=company.id)
            for email in ("member1@demo.com", "member2@demo.com")
        ]

        team = session.exec(select(Team).where(Team.company_id == company.id, Team.name == "Core Team")).first()
        if not team:
            team = Team(name="Core Team", creator_id=admin.id, company_id=company.id)
            session.add(team)
            session.commit()
            session.refresh(team)
            for user in [admin, *members]:
                session.add(TeamMember(team_id=team.id, user_id=user.id))
            session.commit()
            print("✅ Created Core Team")

        # -----------------------------
        # 🧍 Personal (tenant-less) account
        # -----------------------------
        _get_or_create_user(session, "solo@demo.com", username="solo")

        # -----------------------------
        # 🛡️ Platform hyper-admin
        # -----------------------------
        ops = _get_or_create_user(session, "ops@demo.com", username="ops", is_hyper_admin=True)
        if ops.subscription_tier != PlanName.INTERNAL.value:
            SubscriptionLifecycleManager(session).admin_set_tier(ops.id, ops.id, PlanName.INTERNAL.value)
            print("✅ Ops user on internal plan")

    print("🎉 Development data seeded successfully!")


def seed_staging_data() -> None:
    """Staging only gets the plan catalog."""
    print("🌱 Seeding staging data...")
    with Session(engine) as session:
        seed_plans(session)
    print("🎉 Staging data seeded successfully!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the database with initial data.")
    parser.add_argument(
        "--env",
        choices=["dev", "staging"],
        default="dev",
        help="Environment to seed (dev or staging). Default: dev",
    )
    args = parser.parse_args()

    create_db_and_tables()
    if args.env == "dev":
        seed_dev_data()
    elif args.env == "staging":
        seed_staging_data()

"""Pytest configuration and fixtures."""

from __future__ import annotations

import itertools
import os
from datetime import datetime
from typing import Dict, Iterable, List, Optional

# Settings are read at import time; pin them before any app module loads
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from core.access import get_payment_provider
from core.database import get_session
from core.security import create_token_for_user
from models.models import (
    Board,
    BoardMember,
    Company,
    CompanyPaymentInfo,
    Objective,
    ObjectiveMember,
    Project,
    Task,
    Team,
    TeamMember,
    User,
)
from services.errors import PaymentProviderError
from services.payment_provider import CheckoutSession, PaymentProvider, PriceSpec
from services.plans import PlanCatalog


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def empty_session(engine):
    """Session on a fresh schema with no plans installed."""
    with Session(engine) as session:
        yield session


@pytest.fixture()
def session(empty_session):
    """Session with the default plan catalog installed."""
    PlanCatalog(empty_session).seed_default_plans()
    return empty_session


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


class Factory:
    """Creates committed rows with unique names."""

    def __init__(self, session: Session):
        self.session = session
        self._seq = itertools.count(1)

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def company(self, tier: Optional[str] = None, end_date: Optional[datetime] = None) -> Company:
        n = next(self._seq)
        company = self._save(Company(name=f"Company {n}", invite_code=f"INVITE-{n}"))
        if tier is not None:
            self._save(
                CompanyPaymentInfo(company_id=company.id, subscription_tier=tier, subscription_end_date=end_date)
            )
        return company

    def user(self, company: Optional[Company] = None, tier: str = "free", **fields) -> User:
        n = next(self._seq)
        return self._save(
            User(
                username=f"user{n}",
                email=f"user{n}@example.com",
                company_id=company.id if company else None,
                subscription_tier=tier,
                **fields,
            )
        )

    def team(self, creator: User, members: Iterable[User] = (), company_id: Optional[int] = None) -> Team:
        n = next(self._seq)
        team = self._save(
            Team(
                name=f"Team {n}",
                creator_id=creator.id,
                company_id=company_id if company_id is not None else creator.company_id,
            )
        )
        for member in members:
            self._save(TeamMember(team_id=team.id, user_id=member.id))
        return team

    def project(self, creator: User, **fields) -> Project:
        fields.setdefault("company_id", creator.company_id)
        n = next(self._seq)
        return self._save(Project(title=f"Project {n}", creator_id=creator.id, **fields))

    def board(self, creator: User, **fields) -> Board:
        fields.setdefault("company_id", creator.company_id)
        n = next(self._seq)
        return self._save(Board(title=f"Board {n}", creator_id=creator.id, **fields))

    def board_member(self, board: Board, user: User) -> BoardMember:
        return self._save(BoardMember(board_id=board.id, user_id=user.id))

    def objective(self, creator: User, **fields) -> Objective:
        fields.setdefault("company_id", creator.company_id)
        n = next(self._seq)
        return self._save(Objective(title=f"Objective {n}", creator_id=creator.id, **fields))

    def objective_member(self, objective: Objective, user: User) -> ObjectiveMember:
        return self._save(ObjectiveMember(objective_id=objective.id, user_id=user.id))

    def task(self, board: Board, assignees: Iterable[User] = (), **fields) -> Task:
        n = next(self._seq)
        return self._save(
            Task(
                title=f"Task {n}",
                board_id=board.id,
                assigned_user_ids=[u.id for u in assignees],
                **fields,
            )
        )


@pytest.fixture()
def factory(session) -> Factory:
    return Factory(session)


# ---------------------------------------------------------------------------
# Payment provider double
# ---------------------------------------------------------------------------


class FakePaymentProvider(PaymentProvider):
    """Records calls; can be told to fail checkout or cancellation."""

    def __init__(self, fail_checkout: bool = False, fail_cancel: bool = False):
        self.fail_checkout = fail_checkout
        self.fail_cancel = fail_cancel
        self.checkouts: List[Dict] = []
        self.cancelled: List[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    def create_checkout_session(
        self,
        customer_email: str,
        price_spec: PriceSpec,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        if self.fail_checkout:
            raise PaymentProviderError("provider unreachable")
        n = len(self.checkouts) + 1
        self.checkouts.append(
            {
                "customer_email": customer_email,
                "price_spec": price_spec,
                "success_url": success_url,
                "metadata": metadata,
            }
        )
        return CheckoutSession(url=f"https://checkout.test/session/{n}", session_id=f"cs_test_{n}", metadata=metadata)

    def cancel_subscription(self, provider_subscription_id: str) -> None:
        if self.fail_cancel:
            raise PaymentProviderError("cancel failed")
        self.cancelled.append(provider_subscription_id)


@pytest.fixture()
def provider() -> FakePaymentProvider:
    return FakePaymentProvider()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture()
def client(session, provider):
    from main import app

    def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_payment_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_token_for_user(user)}"}


@pytest.fixture()
def headers_for():
    return auth_headers

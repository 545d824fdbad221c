"""Tests for services/entitlements.py quota and feature checks."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from models.models import PlanName, ResourceKind, utcnow
from services.entitlements import (
    DEFAULT_COMPANY_TIER,
    EntitlementEngine,
    Scope,
    scope_for_user,
)
from services.errors import LimitExceededError
from services.plans import UNLIMITED


@pytest.fixture()
def entitlements(session) -> EntitlementEngine:
    return EntitlementEngine(session)


def _db_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))


# ---------------------------------------------------------------------------
# Scope and tier resolution
# ---------------------------------------------------------------------------


class TestTierResolution:
    def test_scope_for_user(self, factory):
        company = factory.company()
        member = factory.user(company)
        solo = factory.user()

        assert scope_for_user(member) == Scope.company(company.id)
        assert scope_for_user(solo) == Scope.personal(solo.id)

    def test_company_without_payment_info_uses_default(self, factory, entitlements):
        company = factory.company()

        assert DEFAULT_COMPANY_TIER == "free"
        assert entitlements.resolve_tier(Scope.company(company.id)) == "free"

    def test_company_tier_from_payment_info(self, factory, entitlements):
        company = factory.company(tier="Enterprise")

        assert entitlements.resolve_tier(Scope.company(company.id)) == "enterprise"

    def test_lapsed_company_tier_resolves_to_free(self, factory, entitlements):
        company = factory.company(tier="organisation", end_date=utcnow() - timedelta(days=1))

        assert entitlements.resolve_tier(Scope.company(company.id)) == "free"

    def test_personal_tier_and_lazy_expiry(self, factory, entitlements):
        active = factory.user(tier="freelancer", subscription_expires_at=utcnow() + timedelta(days=3))
        lapsed = factory.user(tier="freelancer", subscription_expires_at=utcnow() - timedelta(days=3))

        assert entitlements.resolve_tier(Scope.personal(active.id)) == "freelancer"
        assert entitlements.resolve_tier(Scope.personal(lapsed.id)) == "free"
        assert entitlements.resolve_tier(Scope.personal(4242)) == "free"


# ---------------------------------------------------------------------------
# Usage counting
# ---------------------------------------------------------------------------


class TestUsage:
    def test_archived_resources_are_not_counted(self, factory, entitlements):
        solo = factory.user()
        factory.board(solo)
        factory.board(solo, archived=True)

        assert entitlements.count_usage(Scope.personal(solo.id), ResourceKind.BOARDS) == 1

    def test_company_usage_spans_all_members(self, factory, entitlements):
        company = factory.company()
        alice = factory.user(company)
        bob = factory.user(company)
        factory.user(company, is_active=False)
        factory.project(alice)
        factory.project(bob)
        factory.project(factory.user())
        scope = Scope.company(company.id)

        assert entitlements.count_usage(scope, ResourceKind.PROJECTS) == 2
        assert entitlements.count_usage(scope, ResourceKind.USERS) == 2

    def test_personal_tasks_counted_by_assignment(self, factory, entitlements):
        solo = factory.user()
        board = factory.board(solo)
        factory.task(board, assignees=[solo])
        factory.task(board, assignees=[solo, factory.user()])
        factory.task(board)

        assert entitlements.count_usage(Scope.personal(solo.id), "tasks") == 2

    def test_company_teams(self, factory, entitlements):
        company = factory.company()
        admin = factory.user(company)
        factory.team(admin)
        factory.team(admin)
        factory.team(factory.user())

        assert entitlements.count_usage(Scope.company(company.id), ResourceKind.TEAMS) == 2


# ---------------------------------------------------------------------------
# Limit checks
# ---------------------------------------------------------------------------


class TestLimits:
    def test_free_personal_user_with_one_board_is_at_limit(self, factory, entitlements):
        solo = factory.user()
        factory.board(solo)

        check = entitlements.check_limit(Scope.personal(solo.id), ResourceKind.BOARDS)

        assert check.limit_reached is True
        assert check.current_count == 1
        assert check.max_count == 1
        assert check.current_plan == "free"
        assert check.next_tier == "freelancer"
        assert entitlements.has_reached_limit(Scope.personal(solo.id), "boards") is True

    def test_limit_check_serializes_camel_case(self, factory, entitlements):
        solo = factory.user()

        body = entitlements.check_limit(Scope.personal(solo.id), "projects").model_dump(by_alias=True, mode="json")

        assert body == {
            "resource": "projects",
            "limitReached": False,
            "currentCount": 0,
            "maxCount": 1,
            "currentPlan": "free",
            "nextTier": "freelancer",
        }

    def test_enforce_limit_raises_with_check(self, factory, entitlements):
        solo = factory.user()
        factory.project(solo)

        with pytest.raises(LimitExceededError) as exc_info:
            entitlements.enforce_limit(Scope.personal(solo.id), ResourceKind.PROJECTS)

        assert exc_info.value.check.max_count == 1
        assert "free" in str(exc_info.value)

    def test_organisation_team_cap(self, factory, entitlements):
        company = factory.company(tier="organisation")
        admin = factory.user(company)
        scope = Scope.company(company.id)
        for _ in range(4):
            factory.team(admin)

        assert entitlements.has_reached_limit(scope, ResourceKind.TEAMS) is False
        factory.team(admin)
        assert entitlements.has_reached_limit(scope, ResourceKind.TEAMS) is True

    def test_unlimited_ignores_huge_usage(self, factory, entitlements, monkeypatch):
        ops = factory.user(tier="internal")
        monkeypatch.setattr(entitlements, "count_usage", lambda scope, kind: UNLIMITED * 10)

        check = entitlements.check_limit(Scope.personal(ops.id), ResourceKind.TASKS)

        assert check.limit_reached is False
        assert check.unlimited is True

    def test_unknown_plan_falls_back_to_free_caps(self, factory, entitlements):
        solo = factory.user(tier="legacy-gold")
        factory.project(solo)

        check = entitlements.check_limit(Scope.personal(solo.id), ResourceKind.PROJECTS)

        assert check.max_count == 1
        assert check.limit_reached is True

    def test_storage_error_fails_open(self, factory, entitlements, monkeypatch):
        solo = factory.user()
        factory.board(solo)
        monkeypatch.setattr(entitlements, "count_usage", _db_down)

        assert entitlements.has_reached_limit(Scope.personal(solo.id), ResourceKind.BOARDS) is False


# ---------------------------------------------------------------------------
# Features and assignment gate
# ---------------------------------------------------------------------------


class TestFeatures:
    def test_feature_flags_follow_plan(self, factory, entitlements):
        org = factory.company(tier="organisation")
        free = factory.company()

        assert entitlements.has_feature(Scope.company(org.id), "okrs") is True
        assert entitlements.has_feature(Scope.company(org.id), "customBranding") is False
        assert entitlements.has_feature(Scope.company(free.id), "teams") is False

    def test_basic_features_always_and_unknown_never(self, factory, entitlements):
        solo = factory.user()

        assert entitlements.has_feature(Scope.personal(solo.id), "basicFeatures") is True
        assert entitlements.has_feature(Scope.personal(solo.id), "timeTravel") is False

    def test_feature_check_error_denies(self, factory, entitlements, monkeypatch):
        solo = factory.user(tier="enterprise")
        monkeypatch.setattr(entitlements, "resolve_tier", _db_down)

        assert entitlements.has_feature(Scope.personal(solo.id), "ganttView") is False

    @pytest.mark.parametrize(
        "tier, allowed",
        [
            (PlanName.FREE.value, False),
            (PlanName.FREELANCER.value, False),
            (PlanName.ORGANISATION.value, True),
            (PlanName.ENTERPRISE.value, True),
            (PlanName.INTERNAL.value, True),
        ],
    )
    def test_assignment_gate_by_tier(self, factory, entitlements, tier, allowed):
        user = factory.user(tier=tier)

        assert entitlements.can_assign_teams_or_others(user.id) is allowed

    def test_assignment_gate_missing_user(self, entitlements):
        assert entitlements.can_assign_teams_or_others(4242) is False

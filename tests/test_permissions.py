"""Tests for services/permissions.py access rules."""

from __future__ import annotations

import pytest

from services.permissions import PermissionService


@pytest.fixture()
def permissions(session) -> PermissionService:
    return PermissionService(session)


# ---------------------------------------------------------------------------
# Creator override
# ---------------------------------------------------------------------------


class TestCreatorOverride:
    """A creator always reaches their own resource, whatever else it says."""

    def test_creator_reaches_project_in_foreign_company(self, factory, permissions):
        mine = factory.company()
        other = factory.company()
        creator = factory.user(mine)
        project = factory.project(creator, company_id=other.id, team_ids=[999])

        assert permissions.can_access_project(creator.id, project.id) is True

    def test_creator_reaches_board_with_no_assignment(self, factory, permissions):
        creator = factory.user(factory.company())
        board = factory.board(creator, company_id=factory.company().id)

        assert permissions.can_access_board(creator.id, board.id) is True

    def test_creator_reaches_objective_and_team(self, factory, permissions):
        creator = factory.user()
        objective = factory.objective(creator)
        team = factory.team(creator)

        assert permissions.can_access_objective(creator.id, objective.id) is True
        assert permissions.can_access_team(creator.id, team.id) is True


# ---------------------------------------------------------------------------
# Tenant isolation
# ---------------------------------------------------------------------------


class TestTenantIsolation:
    def test_team_membership_does_not_cross_companies(self, factory, permissions):
        company_a = factory.company()
        company_b = factory.company()
        owner = factory.user(company_a)
        outsider = factory.user(company_b)
        team = factory.team(owner, members=[outsider])
        board = factory.board(owner, team_ids=[team.id])

        assert permissions.can_access_board(outsider.id, board.id) is False

    def test_same_company_team_member_is_granted(self, factory, permissions):
        company = factory.company()
        owner = factory.user(company)
        colleague = factory.user(company)
        team = factory.team(owner, members=[colleague])
        board = factory.board(owner, team_ids=[team.id])

        assert permissions.can_access_board(colleague.id, board.id) is True

    def test_direct_assignment_beats_tenant_gate(self, factory, permissions):
        owner = factory.user(factory.company())
        outsider = factory.user(factory.company())
        board = factory.board(owner, assigned_user_ids=[outsider.id])
        project = factory.project(owner, member_ids=[outsider.id])

        assert permissions.can_access_board(outsider.id, board.id) is True
        assert permissions.can_access_project(outsider.id, project.id) is True

    def test_board_membership_row_beats_tenant_gate(self, factory, permissions):
        owner = factory.user(factory.company())
        outsider = factory.user(factory.company())
        board = factory.board(owner)
        factory.board_member(board, outsider)

        assert permissions.can_access_board(outsider.id, board.id) is True

    def test_personal_user_blocked_from_company_project_via_team(self, factory, permissions):
        owner = factory.user(factory.company())
        solo = factory.user()
        team = factory.team(owner, members=[solo])
        project = factory.project(owner, team_ids=[team.id])

        assert permissions.can_access_project(solo.id, project.id) is False


# ---------------------------------------------------------------------------
# Parent and team grants
# ---------------------------------------------------------------------------


class TestInheritedAccess:
    def test_board_inherits_from_project_membership(self, factory, permissions):
        company = factory.company()
        owner = factory.user(company)
        member = factory.user(company)
        project = factory.project(owner, member_ids=[member.id])
        board = factory.board(owner, project_id=project.id)

        assert permissions.can_access_board(member.id, board.id) is True

    def test_objective_inherits_from_team(self, factory, permissions):
        company = factory.company()
        owner = factory.user(company)
        member = factory.user(company)
        team = factory.team(owner, members=[member])
        objective = factory.objective(owner, team_id=team.id)

        assert permissions.can_access_objective(member.id, objective.id) is True

    def test_objective_membership_row(self, factory, permissions):
        owner = factory.user(factory.company())
        member = factory.user(factory.company())
        objective = factory.objective(owner)
        factory.objective_member(objective, member)

        assert permissions.can_access_objective(member.id, objective.id) is True

    def test_task_assignee_and_board_fallback(self, factory, permissions):
        company = factory.company()
        owner = factory.user(company)
        assignee = factory.user(company)
        stranger = factory.user(factory.company())
        board = factory.board(owner)
        task = factory.task(board, assignees=[assignee])

        assert permissions.can_access_task(assignee.id, task.id) is True
        assert permissions.can_access_task(owner.id, task.id) is True
        assert permissions.can_access_task(stranger.id, task.id) is False

    def test_task_assigned_team_member(self, factory, permissions):
        company = factory.company()
        owner = factory.user(company)
        member = factory.user(company)
        team = factory.team(owner, members=[member])
        board = factory.board(owner)
        task = factory.task(board, assigned_team_id=team.id)

        assert permissions.can_access_task(member.id, task.id) is True

    def test_unrelated_colleague_is_denied(self, factory, permissions):
        company = factory.company()
        owner = factory.user(company)
        colleague = factory.user(company)
        board = factory.board(owner)

        assert permissions.can_access_board(colleague.id, board.id) is False


# ---------------------------------------------------------------------------
# Hyper-admins and missing rows
# ---------------------------------------------------------------------------


class TestHyperAdminAndMissing:
    def test_hyper_admin_reaches_everything(self, factory, permissions):
        admin = factory.user(is_hyper_admin=True)
        owner = factory.user(factory.company())
        board = factory.board(owner)
        project = factory.project(owner)
        team = factory.team(owner)
        objective = factory.objective(owner)
        task = factory.task(board, assignees=[owner])

        assert permissions.is_hyper_admin(admin.id) is True
        assert permissions.can_access_board(admin.id, board.id)
        assert permissions.can_access_project(admin.id, project.id)
        assert permissions.can_access_team(admin.id, team.id)
        assert permissions.can_access_objective(admin.id, objective.id)
        assert permissions.can_access_task(admin.id, task.id)
        assert permissions.can_access_company(admin.id, owner.company_id)

    def test_missing_resource_or_actor_is_denied(self, factory, permissions):
        user = factory.user()
        board = factory.board(user)

        assert permissions.can_access_board(user.id, 4242) is False
        assert permissions.can_access_board(4242, board.id) is False
        assert permissions.can_access_project(user.id, None) is False
        assert permissions.can_access_company(user.id, 4242) is False
        assert permissions.is_hyper_admin(4242) is False

    def test_user_visibility(self, factory, permissions):
        company = factory.company()
        alice = factory.user(company)
        bob = factory.user(company)
        carol = factory.user(factory.company())

        assert permissions.can_access_user(alice.id, alice.id)
        assert permissions.can_access_user(alice.id, bob.id)
        assert not permissions.can_access_user(alice.id, carol.id)
        assert not permissions.can_access_user(alice.id, 4242)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class TestFilters:
    def test_filter_boards_preserves_order(self, factory, permissions):
        company = factory.company()
        viewer = factory.user(company)
        other = factory.user(company)
        first = factory.board(viewer)
        hidden = factory.board(other)
        last = factory.board(other, assigned_user_ids=[viewer.id])

        visible = permissions.filter_boards(viewer.id, [last, hidden, first])

        assert [b.id for b in visible] == [last.id, first.id]

    def test_filter_users_personal_account_sees_only_self(self, factory, permissions):
        solo = factory.user()
        others = [factory.user(factory.company()), factory.user()]

        visible = permissions.filter_users(solo.id, [solo, *others])

        assert [u.id for u in visible] == [solo.id]

    def test_filter_users_company_scope(self, factory, permissions):
        company = factory.company()
        viewer = factory.user(company)
        colleague = factory.user(company)
        outsider = factory.user(factory.company())

        visible = permissions.filter_users(viewer.id, [outsider, colleague, viewer])

        assert [u.id for u in visible] == [colleague.id, viewer.id]

    def test_filter_users_hyper_admin_sees_all(self, factory, permissions):
        admin = factory.user(is_hyper_admin=True)
        users = [factory.user(factory.company()), factory.user()]

        assert permissions.filter_users(admin.id, users) == users

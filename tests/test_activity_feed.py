"""Tests for typed activity payloads and the visible activity feed."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from sqlmodel import select

from models.models import Board
from schemas.activity_schema import (
    BoardCreatedPayload,
    MemberAddedPayload,
    ProjectCreatedPayload,
    TaskAssignedPayload,
    TaskCreatedPayload,
    activity_payload_adapter,
)
from services.activity import ActivityService
from services.permissions import FEED_LIMIT, PermissionService, json_list_mentions


@pytest.fixture()
def activity(session) -> ActivityService:
    return ActivityService(session)


@pytest.fixture()
def permissions(session) -> PermissionService:
    return PermissionService(session)


# ---------------------------------------------------------------------------
# Payload variants
# ---------------------------------------------------------------------------


class TestPayloads:
    def test_payload_dispatches_on_action(self):
        payload = activity_payload_adapter.validate_python(
            {"action": "member_added", "resource": "team", "member_id": 3}
        )

        assert isinstance(payload, MemberAddedPayload)
        assert payload.role == "member"

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            activity_payload_adapter.validate_python({"action": "teleported", "title": "x"})

    def test_variant_fields_are_required(self):
        with pytest.raises(ValidationError):
            activity_payload_adapter.validate_python({"action": "task_created", "title": "no board"})

    def test_record_round_trips_typed_payload(self, factory, activity):
        user = factory.user()
        board = factory.board(user)

        entry = activity.record(user.id, BoardCreatedPayload(title=board.title), board_id=board.id)

        assert entry.action == "board_created"
        parsed = ActivityService.parse_payload(entry)
        assert isinstance(parsed, BoardCreatedPayload)
        assert parsed.title == board.title


# ---------------------------------------------------------------------------
# Visible feed
# ---------------------------------------------------------------------------


class TestVisibleFeed:
    def test_sees_own_and_attached_entries_only(self, factory, activity, permissions):
        company = factory.company()
        viewer = factory.user(company)
        colleague = factory.user(company)
        shared = factory.board(colleague, assigned_user_ids=[viewer.id])
        private = factory.board(colleague)

        own = activity.record(viewer.id, BoardCreatedPayload(title="mine"))
        attached = activity.record(colleague.id, BoardCreatedPayload(title=shared.title), board_id=shared.id)
        activity.record(colleague.id, BoardCreatedPayload(title=private.title), board_id=private.id)

        feed = permissions.get_visible_activity_logs(viewer.id)

        assert {e.id for e in feed} == {own.id, attached.id}
        assert feed[0].id == attached.id

    def test_targeted_entries_are_visible(self, factory, activity, permissions):
        company = factory.company()
        viewer = factory.user(company)
        colleague = factory.user(company)

        entry = activity.record(
            colleague.id,
            TaskAssignedPayload(task_title="Review", assignee_ids=[viewer.id]),
            target_user_id=viewer.id,
        )

        assert [e.id for e in permissions.get_visible_activity_logs(viewer.id)] == [entry.id]

    def test_other_company_entries_are_hidden(self, factory, activity, permissions):
        viewer = factory.user(factory.company())
        outsider = factory.user(factory.company())
        board = factory.board(viewer)

        activity.record(outsider.id, BoardCreatedPayload(title="foreign"), board_id=board.id)

        assert permissions.get_visible_activity_logs(viewer.id) == []

    def test_team_entries_reach_team_members(self, factory, activity, permissions):
        company = factory.company()
        lead = factory.user(company)
        member = factory.user(company)
        team = factory.team(lead, members=[member])

        entry = activity.record(
            lead.id, MemberAddedPayload(resource="team", member_id=member.id), team_id=team.id
        )

        assert entry in permissions.get_visible_activity_logs(member.id)

    def test_feed_is_capped(self, factory, activity, permissions):
        user = factory.user()
        for n in range(FEED_LIMIT + 5):
            activity.record(user.id, BoardCreatedPayload(title=f"Board {n}"))

        assert len(permissions.get_visible_activity_logs(user.id)) == FEED_LIMIT

    def test_hyper_admin_sees_everything(self, factory, activity, permissions):
        admin = factory.user(is_hyper_admin=True)
        someone = factory.user(factory.company())
        entry = activity.record(someone.id, BoardCreatedPayload(title="anything"))

        assert [e.id for e in permissions.get_visible_activity_logs(admin.id)] == [entry.id]

    def test_team_project_and_task_entries_are_visible(self, factory, activity, permissions):
        company = factory.company()
        lead = factory.user(company)
        member = factory.user(company)
        team = factory.team(lead, members=[member])
        project = factory.project(lead, team_ids=[team.id])
        board = factory.board(lead)
        task = factory.task(board, assignees=[member])

        on_project = activity.record(lead.id, ProjectCreatedPayload(title=project.title), project_id=project.id)
        on_task = activity.record(
            lead.id, TaskCreatedPayload(title=task.title, board_id=board.id), task_id=task.id
        )

        assert {e.id for e in permissions.get_visible_activity_logs(member.id)} == {on_project.id, on_task.id}

    def test_id_that_only_looks_like_a_member_is_ignored(self, factory, activity, permissions):
        company = factory.company()
        viewer = factory.user(company)
        colleague = factory.user(company)
        lookalike = int(f"{viewer.id}{viewer.id}")
        board = factory.board(colleague, assigned_user_ids=[lookalike])
        project = factory.project(colleague, member_ids=[lookalike])

        activity.record(colleague.id, BoardCreatedPayload(title=board.title), board_id=board.id)
        activity.record(colleague.id, ProjectCreatedPayload(title=project.title), project_id=project.id)

        assert permissions.get_visible_activity_logs(viewer.id) == []


class TestJsonListMentions:
    def test_no_ids_matches_nothing(self, session, factory):
        factory.board(factory.user(), assigned_user_ids=[1, 2])

        rows = session.exec(select(Board).where(json_list_mentions(Board.assigned_user_ids, []))).all()

        assert rows == []

    def test_prefilter_finds_listed_ids(self, session, factory):
        owner = factory.user()
        hit = factory.board(owner, assigned_user_ids=[7, 31])
        factory.board(owner, assigned_user_ids=[5])

        rows = session.exec(select(Board).where(json_list_mentions(Board.assigned_user_ids, [31]))).all()

        assert [b.id for b in rows] == [hit.id]
